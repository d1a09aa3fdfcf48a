# mr_core/financials/services.py
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from mr_core.cities.services import CityService
from mr_core.common.actor import Actor, require_admin
from mr_core.common.api.exceptions import ConflictError, NotFoundError
from mr_core.common.models import PaymentStatus
from mr_core.common.money import ZERO, q2, to_decimal
from mr_core.equipment.models import EquipmentRentalPrice, ReleaseReason
from mr_core.equipment.services import InventoryService
from mr_core.financials.calculations import calculate_settlement, commission_split
from mr_core.financials.models import Financial, Rental, RentalStatus
from mr_core.leads.models import Lead, LeadStatus

logger = logging.getLogger(__name__)


def _clean_expenses(items) -> list[dict]:
    """
    Normalises [{"description", "amount"}] and stores amounts as 2dp strings (JSON safe).
    """
    if items in (None, ""):
        return []
    if not isinstance(items, list):
        raise ValidationError({"other_expenses": "Must be a list."})

    cleaned = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError({"other_expenses": f"Item {idx} must be an object."})
        amount = q2(to_decimal(item.get("amount", "0"), "other_expenses"))
        if amount < 0:
            raise ValidationError({"other_expenses": f"Item {idx} amount must be >= 0."})
        cleaned.append({"description": str(item.get("description") or ""), "amount": str(amount)})
    return cleaned


def _non_negative(value, field_name: str) -> Decimal:
    amount = q2(to_decimal(value, field_name))
    if amount < 0:
        raise ValidationError({field_name: "Must be >= 0."})
    return amount


class SettlementService:
    @staticmethod
    @transaction.atomic
    def settle_lead(
        *,
        lead,
        days_used: int,
        actor: Actor,
        shipping_cost=ZERO,
        closing_status: str = LeadStatus.COMPLETED,
    ) -> Financial:
        """
        Close a lead's rental: upsert Rental, create the Financial snapshot,
        release the reserved unit.

        The caller holds the lead row lock. Raises before writing anything when
        the lead has no equipment or no resolved city, or is already settled.
        """
        require_admin(actor)

        try:
            days = int(days_used) if days_used is not None else 0
        except (TypeError, ValueError):
            raise ValidationError({"days_used": "Days used must be an integer."})
        if days <= 0:
            raise ValidationError({"days_used": "Days used must be greater than 0 to close a lead."})

        if lead.assigned_equipment_id is None:
            raise ValidationError({"assigned_equipment": "Lead has no assigned equipment."})
        if CityService.resolve_lead_city(lead) is None:
            raise ValidationError({"city": f"City '{lead.city_name}' not found."})

        if Financial.objects.filter(lead_id=lead.id).exists():
            raise ConflictError("Financial record already exists for this lead.")

        pricing = EquipmentRentalPrice.objects.filter(
            equipment_id=lead.assigned_equipment_id,
            city_id=lead.city_id,
        ).first()
        if pricing is None:
            raise NotFoundError("No rental price for this equipment in the lead's city.")

        # rate snapshot is taken now; later rate changes never touch this row
        settlement = calculate_settlement(
            days_used=days,
            price_per_day=pricing.price_per_day,
            commission_rate=lead.doctor.commission_rate,
            shipping_cost=shipping_cost,
        )

        now = timezone.now()
        mark_paid = closing_status == LeadStatus.PAYMENT_RECEIVED
        reservation = InventoryService.open_reservation(lead)
        started = reservation.reserved_at if reservation is not None else now - timedelta(days=days)

        Rental.objects.update_or_create(
            lead=lead,
            defaults={
                "equipment_id": lead.assigned_equipment_id,
                "start_datetime": started,
                "end_datetime": now,
                "days_used": days,
                "status": RentalStatus.COMPLETED,
            },
        )

        financial = Financial.objects.create(
            lead=lead,
            rental_amount=settlement.rental_amount,
            shipping_cost=settlement.shipping_cost,
            gst_amount=settlement.gst_amount,
            other_expenses=[],
            base_amount=settlement.base_amount,
            commission_rate_applied=settlement.commission_rate,
            doctor_commission=settlement.doctor_commission,
            net_profit=settlement.net_profit,
            payment_status=PaymentStatus.PAID if mark_paid else PaymentStatus.PENDING,
            payment_received_date=now if mark_paid else None,
        )

        InventoryService.release_for_lead(lead=lead, reason=ReleaseReason.SETTLED)

        logger.info(
            "Settled lead %s: rental=%s commission=%s net=%s (rate %s%%)",
            lead.id,
            settlement.rental_amount,
            settlement.doctor_commission,
            settlement.net_profit,
            settlement.commission_rate,
        )
        return financial

    @staticmethod
    @transaction.atomic
    def mark_received(*, lead) -> Financial | None:
        financial = Financial.objects.select_for_update().filter(lead_id=lead.id).first()
        if financial is None:
            return None
        if financial.payment_status != PaymentStatus.PAID:
            financial.payment_status = PaymentStatus.PAID
            financial.payment_received_date = timezone.now()
            financial.save(update_fields=["payment_status", "payment_received_date", "updated_at"])
        return financial


class FinancialService:
    @staticmethod
    @transaction.atomic
    def create_manual(
        *,
        actor: Actor,
        lead_id: UUID,
        rental_amount,
        shipping_cost=ZERO,
        gst_amount=ZERO,
        other_expenses=None,
        payment_status: str = PaymentStatus.PENDING,
    ) -> Financial:
        """
        Admin-entered financial record. Commission uses the doctor's current rate
        on the rental amount; shipping, GST and other expenses are recorded as given.
        """
        require_admin(actor)

        try:
            lead = Lead.objects.select_for_update(of=("self",)).select_related("doctor").get(id=lead_id)
        except Lead.DoesNotExist:
            raise NotFoundError("Lead not found.")

        if Financial.objects.filter(lead_id=lead.id).exists():
            raise ConflictError("Financial record already exists for this lead.")

        rental = _non_negative(rental_amount, "rental_amount")
        shipping = _non_negative(shipping_cost or ZERO, "shipping_cost")
        gst = _non_negative(gst_amount or ZERO, "gst_amount")
        expenses = _clean_expenses(other_expenses)

        if payment_status not in PaymentStatus.values:
            raise ValidationError({"payment_status": "Invalid payment status."})

        rate = lead.doctor.commission_rate
        commission, net = commission_split(rental_amount=rental, commission_rate=rate)

        try:
            with transaction.atomic():
                financial = Financial.objects.create(
                    lead=lead,
                    rental_amount=rental,
                    shipping_cost=shipping,
                    gst_amount=gst,
                    other_expenses=expenses,
                    base_amount=q2(rental + shipping),
                    commission_rate_applied=rate,
                    doctor_commission=commission,
                    net_profit=net,
                    payment_status=payment_status,
                    payment_received_date=timezone.now() if payment_status == PaymentStatus.PAID else None,
                )
        except IntegrityError:
            raise ConflictError("Financial record already exists for this lead.")

        logger.info("Manual financial %s for lead %s by user %s", financial.id, lead.id, actor.user_id)
        return financial

    @staticmethod
    @transaction.atomic
    def update_financial(
        *,
        actor: Actor,
        financial_id: UUID,
        rental_amount=None,
        shipping_cost=None,
        gst_amount=None,
        other_expenses=None,
        payment_status: str | None = None,
    ) -> Financial:
        """
        Adjust recorded amounts / payment status. A new rental amount is split
        with the frozen commission_rate_applied, never the doctor's current rate.
        """
        require_admin(actor)

        try:
            financial = Financial.objects.select_for_update().get(id=financial_id)
        except Financial.DoesNotExist:
            raise NotFoundError("Financial record not found.")

        update_fields = []
        if rental_amount is not None:
            financial.rental_amount = _non_negative(rental_amount, "rental_amount")
            financial.doctor_commission, financial.net_profit = commission_split(
                rental_amount=financial.rental_amount,
                commission_rate=financial.commission_rate_applied,
            )
            update_fields += ["rental_amount", "doctor_commission", "net_profit"]

        if shipping_cost is not None:
            financial.shipping_cost = _non_negative(shipping_cost, "shipping_cost")
            update_fields.append("shipping_cost")

        if rental_amount is not None or shipping_cost is not None:
            financial.base_amount = q2(financial.rental_amount + financial.shipping_cost)
            update_fields.append("base_amount")

        if gst_amount is not None:
            financial.gst_amount = _non_negative(gst_amount, "gst_amount")
            update_fields.append("gst_amount")

        if other_expenses is not None:
            financial.other_expenses = _clean_expenses(other_expenses)
            update_fields.append("other_expenses")

        if payment_status is not None and payment_status != financial.payment_status:
            if payment_status not in PaymentStatus.values:
                raise ValidationError({"payment_status": "Invalid payment status."})
            financial.payment_status = payment_status
            financial.payment_received_date = timezone.now() if payment_status == PaymentStatus.PAID else None
            update_fields += ["payment_status", "payment_received_date"]

        if update_fields:
            financial.save(update_fields=[*update_fields, "updated_at"])
        return financial
