# mr_core/payouts/services.py
from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from mr_core.common.actor import Actor, require_admin
from mr_core.common.api.exceptions import NotFoundError
from mr_core.common.models import PaymentStatus
from mr_core.common.money import ZERO, q2, to_decimal
from mr_core.doctors.models import Doctor
from mr_core.financials.models import Financial
from mr_core.payouts.models import PaymentMethod, Payout
from mr_core.payouts.selectors import uncovered_financials

logger = logging.getLogger(__name__)


def _lock_payout(payout_id: UUID) -> Payout:
    try:
        return Payout.objects.select_for_update().get(id=payout_id)
    except Payout.DoesNotExist:
        raise NotFoundError("Payout not found.")


def _validate_method(method: str | None) -> str:
    if not method:
        return ""
    if method not in PaymentMethod.values:
        raise ValidationError({"payment_method": f"Unknown payment method '{method}'."})
    return method


class PayoutService:
    @staticmethod
    @transaction.atomic
    def create_payout(
        *,
        actor: Actor,
        doctor_id: UUID,
        period_start: date,
        period_end: date,
        amount=None,
        notes: str = "",
    ) -> Payout:
        """
        PENDING payout for a doctor. It covers every financial in the period that
        no earlier payout covered; without an amount their commission total is
        paid, an admin-entered amount overrides it.
        """
        require_admin(actor)

        if not Doctor.objects.filter(id=doctor_id).exists():
            raise NotFoundError("Doctor not found.")

        if period_start is None or period_end is None:
            raise ValidationError({"period": "period_start and period_end are required."})
        if period_end < period_start:
            raise ValidationError({"period_end": "period_end must be on or after period_start."})

        covered = list(
            uncovered_financials(doctor_id=doctor_id, period_start=period_start, period_end=period_end)
            .select_for_update(of=("self",))
            .only("id", "doctor_commission")
        )

        if amount is None:
            value = q2(sum((f.doctor_commission for f in covered), ZERO))
            if value <= 0:
                raise ValidationError({"amount": "No outstanding commission for this period."})
        else:
            value = q2(to_decimal(amount, "amount"))
            if value <= 0:
                raise ValidationError({"amount": "Amount must be greater than 0."})

        payout = Payout.objects.create(
            doctor_id=doctor_id,
            amount=value,
            period_start=period_start,
            period_end=period_end,
            status=PaymentStatus.PENDING,
            notes=notes or "",
        )
        if covered:
            Financial.objects.filter(id__in=[f.id for f in covered]).update(payout=payout)

        logger.info("Payout %s created for doctor %s: %s (%s financials)", payout.id, doctor_id, value, len(covered))
        return payout

    @staticmethod
    @transaction.atomic
    def mark_paid(
        *,
        actor: Actor,
        payout_id: UUID,
        payment_date=None,
        payment_method: str | None = None,
        transaction_id: str | None = None,
        receipt_url: str | None = None,
    ) -> Payout:
        """
        processed_by is recorded on the first PAID transition only; repeating the
        call refreshes payment details but keeps the original processor.
        """
        require_admin(actor)
        payout = _lock_payout(payout_id)

        if payout.status == PaymentStatus.CANCELLED:
            raise ValidationError({"status": "A cancelled payout cannot be paid."})

        update_fields = ["status", "payment_date"]
        first_payment = payout.status != PaymentStatus.PAID

        payout.status = PaymentStatus.PAID
        payout.payment_date = payment_date or payout.payment_date or timezone.now()

        if first_payment:
            payout.processed_by_id = actor.user_id
            update_fields.append("processed_by")

        if payment_method is not None:
            payout.payment_method = _validate_method(payment_method)
            update_fields.append("payment_method")
        if transaction_id is not None:
            payout.transaction_id = transaction_id
            update_fields.append("transaction_id")
        if receipt_url is not None:
            payout.receipt_url = receipt_url
            update_fields.append("receipt_url")

        payout.save(update_fields=[*update_fields, "updated_at"])

        if first_payment:
            logger.info("Payout %s paid (%s) by user %s", payout.id, payout.amount, actor.user_id)
        return payout

    @staticmethod
    @transaction.atomic
    def update_payout(
        *,
        actor: Actor,
        payout_id: UUID,
        status: str | None = None,
        notes: str | None = None,
        payment_method: str | None = None,
        transaction_id: str | None = None,
        receipt_url: str | None = None,
    ) -> Payout:
        """
        Edit metadata or cancel a PENDING payout. Use mark_paid to pay.
        """
        require_admin(actor)
        payout = _lock_payout(payout_id)

        update_fields = []

        if status == PaymentStatus.PAID and payout.status != PaymentStatus.PAID:
            payout = PayoutService.mark_paid(actor=actor, payout_id=payout.id)
        elif status is not None and status != payout.status:
            if status != PaymentStatus.CANCELLED:
                raise ValidationError({"status": f"Cannot move payout to {status}."})
            if payout.status == PaymentStatus.PAID:
                raise ValidationError({"status": "A paid payout cannot be cancelled."})
            payout.status = PaymentStatus.CANCELLED
            update_fields.append("status")
            # its commission becomes outstanding again
            payout.financials.update(payout=None)
            logger.info("Payout %s cancelled by user %s", payout.id, actor.user_id)

        if notes is not None:
            payout.notes = notes
            update_fields.append("notes")
        if payment_method is not None:
            payout.payment_method = _validate_method(payment_method)
            update_fields.append("payment_method")
        if transaction_id is not None:
            payout.transaction_id = transaction_id
            update_fields.append("transaction_id")
        if receipt_url is not None:
            payout.receipt_url = receipt_url
            update_fields.append("receipt_url")

        if update_fields:
            payout.save(update_fields=[*update_fields, "updated_at"])
        return payout
