# mr_core/payouts/selectors.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from django.db.models import Count, Q, QuerySet, Sum

from mr_core.common.actor import Actor, require_admin_or_owner
from mr_core.common.api.exceptions import AuthorizationError, NotFoundError
from mr_core.common.models import PaymentStatus
from mr_core.common.money import ZERO, q2
from mr_core.financials.models import Financial
from mr_core.payouts.models import Payout


def payouts_visible_to(
    *,
    actor: Actor,
    status: str | None = None,
    doctor_id: UUID | None = None,
) -> QuerySet[Payout]:
    qs = Payout.objects.select_related("doctor", "doctor__user", "processed_by")

    if actor.is_admin:
        if doctor_id:
            qs = qs.filter(doctor_id=doctor_id)
    elif actor.is_doctor and actor.doctor_id is not None:
        qs = qs.filter(doctor_id=actor.doctor_id)
    else:
        raise AuthorizationError()

    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-created_at")


def get_payout_for_actor(*, payout_id: UUID, actor: Actor) -> Payout:
    try:
        payout = Payout.objects.select_related("doctor", "processed_by").get(id=payout_id)
    except Payout.DoesNotExist:
        raise NotFoundError("Payout not found.")
    require_admin_or_owner(actor, payout.doctor_id)
    return payout


def payout_totals(qs: QuerySet[Payout]) -> dict:
    agg = qs.aggregate(
        count=Count("id"),
        total=Sum("amount", filter=~Q(status=PaymentStatus.CANCELLED)),
        pending=Sum("amount", filter=Q(status=PaymentStatus.PENDING)),
        paid=Sum("amount", filter=Q(status=PaymentStatus.PAID)),
    )
    return {
        "count": agg["count"] or 0,
        "total_amount": q2(agg["total"] or ZERO),
        "pending_amount": q2(agg["pending"] or ZERO),
        "paid_amount": q2(agg["paid"] or ZERO),
    }


def uncovered_financials(
    *,
    doctor_id: UUID,
    period_start: date | None = None,
    period_end: date | None = None,
) -> QuerySet[Financial]:
    """
    Non-cancelled financials of the doctor (created within the period) that no
    payout has covered yet.
    """
    qs = Financial.objects.filter(lead__doctor_id=doctor_id, payout__isnull=True).exclude(
        payment_status=PaymentStatus.CANCELLED
    )
    if period_start is not None:
        qs = qs.filter(created_at__date__gte=period_start)
    if period_end is not None:
        qs = qs.filter(created_at__date__lte=period_end)
    return qs


def outstanding_commission(
    *,
    doctor_id: UUID,
    period_start: date | None = None,
    period_end: date | None = None,
) -> Decimal:
    """
    Commission on financials in the period not yet covered by a payout.
    Each financial is covered at most once, so overlapping payout periods
    can never pay the same commission twice.
    """
    qs = uncovered_financials(doctor_id=doctor_id, period_start=period_start, period_end=period_end)
    earned = qs.aggregate(total=Sum("doctor_commission"))["total"] or ZERO
    return q2(earned)
