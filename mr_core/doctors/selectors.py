# mr_core/doctors/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Count, Q, QuerySet, Sum

from mr_core.common.api.exceptions import NotFoundError
from mr_core.common.models import PaymentStatus
from mr_core.common.money import ZERO, q2
from mr_core.doctors.models import CommissionHistory, Doctor
from mr_core.financials.models import Financial
from mr_core.leads.models import Lead, LeadStatus
from mr_core.payouts.models import Payout

ACTIVE_LEAD_STATUSES = [
    LeadStatus.NEW_LEAD,
    LeadStatus.CONTACTED,
    LeadStatus.EQUIPMENT_SHIPPED,
    LeadStatus.ACTIVE_RENTAL,
]
COMPLETED_LEAD_STATUSES = [LeadStatus.COMPLETED, LeadStatus.PAYMENT_RECEIVED]


def doctors_qs() -> QuerySet[Doctor]:
    return Doctor.objects.select_related("user", "city").order_by("clinic_name", "created_at")


def get_doctor(*, doctor_id: UUID) -> Doctor:
    try:
        return doctors_qs().get(id=doctor_id)
    except Doctor.DoesNotExist:
        raise NotFoundError("Doctor not found.")


def commission_history(*, doctor_id: UUID) -> QuerySet[CommissionHistory]:
    return (
        CommissionHistory.objects.filter(doctor_id=doctor_id)
        .select_related("changed_by")
        .order_by("-effective_date", "-created_at")
    )


def doctor_stats(*, doctor_id: UUID) -> dict:
    """
    total_earnings = commission on all non-cancelled financials
    pending_commission = total_earnings - payouts already PAID (floored at 0)
    """
    leads = Lead.objects.filter(doctor_id=doctor_id).aggregate(
        total=Count("id"),
        completed=Count("id", filter=Q(status__in=COMPLETED_LEAD_STATUSES)),
        active=Count("id", filter=Q(status__in=ACTIVE_LEAD_STATUSES)),
    )

    earnings = (
        Financial.objects.filter(lead__doctor_id=doctor_id)
        .exclude(payment_status=PaymentStatus.CANCELLED)
        .aggregate(total=Sum("doctor_commission"))["total"]
        or ZERO
    )
    paid = (
        Payout.objects.filter(doctor_id=doctor_id, status=PaymentStatus.PAID)
        .aggregate(total=Sum("amount"))["total"]
        or ZERO
    )

    return {
        "total_leads": leads["total"] or 0,
        "completed_leads": leads["completed"] or 0,
        "active_leads": leads["active"] or 0,
        "total_earnings": q2(earnings),
        "paid_payouts": q2(paid),
        "pending_commission": q2(max(earnings - paid, ZERO)),
    }
