# mr_core/leads/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Prefetch, QuerySet
from rest_framework.exceptions import ValidationError

from mr_core.common.actor import Actor, require_admin_or_owner
from mr_core.common.api.exceptions import AuthorizationError, NotFoundError
from mr_core.leads.models import Lead, LeadStatus, LeadStatusHistory


def leads_visible_to(*, actor: Actor, status: str | None = None) -> QuerySet[Lead]:
    """
    Doctors see only their own leads; admins see all. Newest submission first.
    """
    qs = Lead.objects.select_related("doctor", "doctor__user", "city", "assigned_equipment")

    if actor.is_admin:
        pass
    elif actor.is_doctor and actor.doctor_id is not None:
        qs = qs.filter(doctor_id=actor.doctor_id)
    else:
        raise AuthorizationError()

    if status:
        if status not in LeadStatus.values:
            raise ValidationError({"status": f"Unknown status '{status}'."})
        qs = qs.filter(status=status)

    return qs.order_by("-submission_date", "-created_at")


def get_lead_for_actor(*, lead_id: UUID, actor: Actor) -> Lead:
    """
    Lead with history (newest first), rental and financial pre-fetched.
    """
    history = LeadStatusHistory.objects.select_related("changed_by").order_by("-changed_at", "-created_at")
    try:
        lead = (
            Lead.objects.select_related("doctor", "doctor__user", "city", "assigned_equipment")
            .prefetch_related(Prefetch("status_history", queryset=history))
            .get(id=lead_id)
        )
    except Lead.DoesNotExist:
        raise NotFoundError("Lead not found.")

    require_admin_or_owner(actor, lead.doctor_id)
    return lead
