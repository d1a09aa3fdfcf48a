# mr_core/leads/services.py
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from mr_core.cities.selectors import find_city_by_name
from mr_core.cities.services import CityService
from mr_core.common.actor import Actor, require_admin, require_doctor
from mr_core.common.api.exceptions import AuthorizationError, NotFoundError
from mr_core.doctors.models import Doctor, DoctorStatus
from mr_core.equipment.models import ReleaseReason
from mr_core.equipment.services import InventoryService
from mr_core.financials.models import Financial
from mr_core.financials.services import SettlementService
from mr_core.leads.models import Lead, LeadStatus, LeadStatusHistory
from mr_core.leads.state_machine import (
    ABANDON_STATUSES,
    ASSIGNABLE_STATUSES,
    CLOSING_STATUSES,
    ensure_transition,
)

logger = logging.getLogger(__name__)

REQUIRED_LEAD_FIELDS = ("patient_name", "parent_name", "parent_email", "phone", "location", "city")

_UNSET = object()


def _lock_lead(lead_id: UUID) -> Lead:
    try:
        return Lead.objects.select_for_update(of=("self",)).select_related("doctor").get(id=lead_id)
    except Lead.DoesNotExist:
        raise NotFoundError("Lead not found.")


class LeadService:
    @staticmethod
    @transaction.atomic
    def create_lead(
        *,
        actor: Actor,
        patient_name: str,
        parent_name: str,
        parent_email: str,
        phone: str,
        location: str,
        city: str,
        notes: str = "",
    ) -> Lead:
        """
        Doctor submits a referral. Starts at NEW_LEAD with one history row.
        An unknown city name is accepted and matched again on assignment and closing.
        """
        doctor_id = require_doctor(actor)
        if not Doctor.objects.filter(id=doctor_id, status=DoctorStatus.ACTIVE).exists():
            raise AuthorizationError("Doctor profile is not active.")

        values = {
            "patient_name": patient_name,
            "parent_name": parent_name,
            "parent_email": parent_email,
            "phone": phone,
            "location": location,
            "city": city,
        }
        missing = [f for f in REQUIRED_LEAD_FIELDS if not str(values.get(f) or "").strip()]
        if missing:
            raise ValidationError({field: "This field is required." for field in missing})

        city_name = city.strip()
        lead = Lead.objects.create(
            doctor_id=doctor_id,
            patient_name=patient_name.strip(),
            parent_name=parent_name.strip(),
            parent_email=parent_email.strip(),
            phone=phone.strip(),
            location=location.strip(),
            city_name=city_name,
            city=find_city_by_name(city_name),
            status=LeadStatus.NEW_LEAD,
            notes=notes or "",
            submission_date=timezone.now(),
        )

        LeadStatusHistory.objects.create(
            lead=lead,
            from_status="",
            status=LeadStatus.NEW_LEAD,
            changed_by_id=actor.user_id,
            comment="Lead submitted",
        )

        if lead.city_id is None:
            logger.warning("Lead %s submitted with unknown city '%s'", lead.id, city_name)
        logger.info("Lead %s created by doctor %s", lead.id, doctor_id)
        return lead

    @staticmethod
    @transaction.atomic
    def assign_equipment(*, lead_id: UUID, equipment_id: UUID | None, actor: Actor) -> Lead:
        """
        Assign (or with equipment_id=None, unassign) equipment outside a status change.
        """
        require_admin(actor)
        lead = _lock_lead(lead_id)
        LeadService._apply_assignment(lead=lead, equipment_id=equipment_id, actor=actor)
        return lead

    @staticmethod
    def _apply_assignment(*, lead: Lead, equipment_id: UUID | None, actor: Actor) -> None:
        if lead.status not in ASSIGNABLE_STATUSES:
            raise ValidationError(
                {"assigned_equipment": f"Equipment cannot be changed on a {lead.status} lead."}
            )
        if equipment_id is None:
            InventoryService.unassign_equipment(lead=lead, actor=actor)
        else:
            InventoryService.assign_equipment(lead=lead, equipment_id=equipment_id, actor=actor)

    @staticmethod
    def _ensure_closable(lead: Lead) -> None:
        """
        Closing needs equipment and a resolved city whether or not amounts
        were already recorded. Raises before any history or counter change.
        """
        if lead.assigned_equipment_id is None:
            raise ValidationError({"assigned_equipment": "Lead has no assigned equipment."})
        if CityService.resolve_lead_city(lead) is None:
            raise ValidationError({"city": f"City '{lead.city_name}' not found."})

    @staticmethod
    @transaction.atomic
    def update_status(
        *,
        lead_id: UUID,
        actor: Actor,
        status: str | None = None,
        comment: str = "",
        assigned_equipment_id=_UNSET,
        days_used: int | None = None,
        shipping_cost=None,
        notes: str | None = None,
    ) -> Lead:
        """
        Single entry point for admin edits of a lead.

        Order inside one transaction (lead row locked):
          1. equipment (re)assignment / unassignment
          2. notes
          3. status transition: closing runs settlement, abandoning releases
             the reservation, every real change appends a history row

        Any failure rolls the whole call back.
        """
        require_admin(actor)
        lead = _lock_lead(lead_id)

        if assigned_equipment_id is not _UNSET:
            LeadService._apply_assignment(lead=lead, equipment_id=assigned_equipment_id, actor=actor)

        if notes is not None and notes != lead.notes:
            lead.notes = notes
            lead.save(update_fields=["notes", "updated_at"])

        if status is None or str(status) == lead.status:
            return lead

        current = lead.status
        new = str(status)
        ensure_transition(current, new)

        if new in CLOSING_STATUSES:
            LeadService._ensure_closable(lead)
            if Financial.objects.filter(lead_id=lead.id).exists():
                # amounts were recorded by hand (or settled earlier): no recalculation
                InventoryService.release_for_lead(lead=lead, reason=ReleaseReason.CLOSED)
                if new == LeadStatus.PAYMENT_RECEIVED:
                    SettlementService.mark_received(lead=lead)
            else:
                SettlementService.settle_lead(
                    lead=lead,
                    days_used=days_used,
                    shipping_cost=shipping_cost,
                    closing_status=new,
                    actor=actor,
                )
        elif new in ABANDON_STATUSES:
            InventoryService.release_for_lead(lead=lead, reason=new)

        lead.status = new
        lead.save(update_fields=["status", "updated_at"])

        LeadStatusHistory.objects.create(
            lead=lead,
            from_status=current,
            status=new,
            changed_by_id=actor.user_id,
            comment=comment or "",
            changed_at=timezone.now(),
        )

        logger.info("Lead %s status %s -> %s by user %s", lead.id, current, new, actor.user_id)
        return lead
