# mr_core/equipment/services.py
from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from mr_core.cities.models import City
from mr_core.cities.services import CityService
from mr_core.common.actor import Actor, require_admin, require_super_admin
from mr_core.common.api.exceptions import CapacityError, ConflictError, NotAvailableError, NotFoundError
from mr_core.common.money import to_decimal
from mr_core.equipment.models import (
    Equipment,
    EquipmentRentalPrice,
    EquipmentReservation,
    EquipmentStatus,
    ReleaseReason,
)

logger = logging.getLogger(__name__)


def _validate_price(value) -> Decimal:
    price = to_decimal(value, "price_per_day").quantize(Decimal("0.01"))
    if price < 0:
        raise ValidationError({"price_per_day": "Price must be >= 0."})
    return price


def _validate_quantity(value) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValidationError({"quantity": "Quantity must be an integer."})
    if qty < 0:
        raise ValidationError({"quantity": "Quantity must be >= 0."})
    return qty


class EquipmentService:
    @staticmethod
    @transaction.atomic
    def create_equipment(
        *,
        actor: Actor,
        name: str,
        model_number: str = "",
        description: str = "",
        status: str = EquipmentStatus.AVAILABLE,
    ) -> Equipment:
        require_admin(actor)
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": "Name is required."})
        return Equipment.objects.create(
            name=name,
            model_number=model_number or "",
            description=description or "",
            status=status,
        )

    @staticmethod
    @transaction.atomic
    def update_equipment(*, actor: Actor, equipment_id: UUID, **fields) -> Equipment:
        require_admin(actor)
        try:
            equipment = Equipment.objects.select_for_update().get(id=equipment_id)
        except Equipment.DoesNotExist:
            raise NotFoundError("Equipment not found.")

        allowed = {"name", "model_number", "description", "status"}
        update_fields = []
        for key, value in fields.items():
            if key not in allowed:
                continue
            setattr(equipment, key, value)
            update_fields.append(key)

        if update_fields:
            equipment.save(update_fields=[*update_fields, "updated_at"])
        return equipment

    @staticmethod
    @transaction.atomic
    def delete_equipment(*, actor: Actor, equipment_id: UUID) -> None:
        """
        Removes a catalogue entry together with its pricing rows.
        Refused while any unit is reserved, and for equipment that leads or
        rentals point at (retire it instead).
        """
        require_super_admin(actor)
        try:
            equipment = Equipment.objects.select_for_update().get(id=equipment_id)
        except Equipment.DoesNotExist:
            raise NotFoundError("Equipment not found.")

        pricing_rows = list(EquipmentRentalPrice.objects.select_for_update().filter(equipment_id=equipment.id))
        if (
            any(row.quantity_in_use > 0 for row in pricing_rows)
            or EquipmentReservation.objects.filter(pricing__equipment_id=equipment.id, released_at__isnull=True).exists()
        ):
            raise ConflictError("Equipment is currently in use.")
        if equipment.leads.exists() or equipment.rentals.exists():
            raise ConflictError("Equipment has rental history. Set its status to RETIRED instead.")

        EquipmentRentalPrice.objects.filter(equipment_id=equipment.id).delete()
        equipment.delete()
        logger.info("Equipment %s deleted by user %s", equipment_id, actor.user_id)


class PricingService:
    @staticmethod
    @transaction.atomic
    def create_pricing(
        *,
        actor: Actor,
        equipment_id: UUID,
        city_id: UUID,
        price_per_day,
        quantity,
    ) -> EquipmentRentalPrice:
        """
        One pricing row per (equipment, city). quantity_in_use always starts at 0.
        """
        require_admin(actor)

        if not Equipment.objects.filter(id=equipment_id).exists():
            raise NotFoundError("Equipment not found.")
        if not City.objects.filter(id=city_id).exists():
            raise NotFoundError("City not found.")

        price = _validate_price(price_per_day)
        qty = _validate_quantity(quantity)

        if EquipmentRentalPrice.objects.filter(equipment_id=equipment_id, city_id=city_id).exists():
            raise ConflictError("Pricing for this equipment and city already exists.")

        try:
            with transaction.atomic():
                pricing = EquipmentRentalPrice.objects.create(
                    equipment_id=equipment_id,
                    city_id=city_id,
                    price_per_day=price,
                    quantity=qty,
                    quantity_in_use=0,
                )
        except IntegrityError:
            raise ConflictError("Pricing for this equipment and city already exists.")

        logger.info("Pricing %s created: equipment=%s city=%s qty=%s", pricing.id, equipment_id, city_id, qty)
        return pricing

    @staticmethod
    @transaction.atomic
    def update_pricing(
        *,
        actor: Actor,
        pricing_id: UUID,
        price_per_day=None,
        quantity=None,
    ) -> EquipmentRentalPrice:
        """
        quantity may never drop below the units currently reserved.
        quantity_in_use is not writable here.
        """
        require_admin(actor)

        try:
            pricing = EquipmentRentalPrice.objects.select_for_update().get(id=pricing_id)
        except EquipmentRentalPrice.DoesNotExist:
            raise NotFoundError("Pricing not found.")

        update_fields = []
        if price_per_day is not None:
            pricing.price_per_day = _validate_price(price_per_day)
            update_fields.append("price_per_day")

        if quantity is not None:
            qty = _validate_quantity(quantity)
            if qty < pricing.quantity_in_use:
                raise ValidationError(
                    {"quantity": f"Quantity cannot be less than units in use ({pricing.quantity_in_use})."}
                )
            pricing.quantity = qty
            update_fields.append("quantity")

        if update_fields:
            pricing.save(update_fields=[*update_fields, "updated_at"])
        return pricing

    @staticmethod
    @transaction.atomic
    def delete_pricing(*, actor: Actor, pricing_id: UUID) -> None:
        """
        Manual admin removal of a pricing row. Released ledger rows keep their
        history with the pricing link cleared.
        """
        require_super_admin(actor)
        try:
            pricing = EquipmentRentalPrice.objects.select_for_update().get(id=pricing_id)
        except EquipmentRentalPrice.DoesNotExist:
            raise NotFoundError("Pricing not found.")

        if pricing.quantity_in_use > 0 or pricing.reservations.filter(released_at__isnull=True).exists():
            raise ConflictError("Pricing has units in use.")

        pricing.delete()
        logger.info("Pricing %s deleted by user %s", pricing_id, actor.user_id)


class InventoryService:
    """
    Owns quantity_in_use. Every change goes through a conditional UPDATE so
    concurrent assignments can never push the counter past quantity or below 0,
    and every change has a matching EquipmentReservation row.
    """

    @staticmethod
    def _reserve_unit(pricing_id: UUID) -> None:
        updated = EquipmentRentalPrice.objects.filter(
            id=pricing_id,
            quantity_in_use__lt=F("quantity"),
        ).update(quantity_in_use=F("quantity_in_use") + 1, updated_at=timezone.now())
        if updated == 0:
            logger.warning("Capacity exhausted on pricing %s", pricing_id)
            raise CapacityError()

    @staticmethod
    def _release_unit(pricing_id: UUID) -> bool:
        updated = EquipmentRentalPrice.objects.filter(
            id=pricing_id,
            quantity_in_use__gt=0,
        ).update(quantity_in_use=F("quantity_in_use") - 1, updated_at=timezone.now())
        if updated == 0:
            logger.warning("Release on pricing %s found no unit in use", pricing_id)
        return updated > 0

    @staticmethod
    def open_reservation(lead) -> EquipmentReservation | None:
        return (
            EquipmentReservation.objects.select_for_update()
            .filter(lead_id=lead.id, released_at__isnull=True)
            .first()
        )

    @staticmethod
    @transaction.atomic
    def release_for_lead(*, lead, reason: str) -> EquipmentReservation | None:
        """
        Close the lead's open reservation and give the unit back.
        No open reservation -> no counter change.
        """
        reservation = InventoryService.open_reservation(lead)
        if reservation is None:
            return None

        InventoryService._release_unit(reservation.pricing_id)
        reservation.released_at = timezone.now()
        reservation.release_reason = reason
        reservation.save(update_fields=["released_at", "release_reason", "updated_at"])

        logger.info("Released pricing %s from lead %s (%s)", reservation.pricing_id, lead.id, reason)
        return reservation

    @staticmethod
    @transaction.atomic
    def assign_equipment(*, lead, equipment_id: UUID, actor: Actor):
        """
        Reserve one unit of equipment_id in the lead's city and point the lead at it.

        The caller must hold a row lock on `lead` (select_for_update).
        Reassignment releases the previous reservation only after the new unit
        is secured, so a failed reserve leaves the old assignment intact.
        """
        require_admin(actor)

        if lead.assigned_equipment_id == equipment_id:
            return lead

        try:
            equipment = Equipment.objects.get(id=equipment_id)
        except Equipment.DoesNotExist:
            raise NotFoundError("Equipment not found.")

        city_id = CityService.resolve_lead_city(lead)
        if city_id is None:
            raise NotFoundError(f"City '{lead.city_name}' not found.")

        pricing = (
            EquipmentRentalPrice.objects.filter(equipment_id=equipment.id, city_id=city_id)
            .only("id")
            .first()
        )
        if pricing is None:
            raise NotAvailableError()

        InventoryService._reserve_unit(pricing.id)
        InventoryService.release_for_lead(lead=lead, reason=ReleaseReason.REASSIGNED)

        EquipmentReservation.objects.create(
            lead=lead,
            pricing_id=pricing.id,
            reserved_by_id=actor.user_id,
            reserved_at=timezone.now(),
        )

        lead.assigned_equipment = equipment
        lead.save(update_fields=["assigned_equipment", "updated_at"])

        if equipment.status != EquipmentStatus.IN_USE:
            equipment.status = EquipmentStatus.IN_USE
            equipment.save(update_fields=["status", "updated_at"])

        logger.info("Assigned equipment %s to lead %s (pricing %s)", equipment.id, lead.id, pricing.id)
        return lead

    @staticmethod
    @transaction.atomic
    def unassign_equipment(*, lead, actor: Actor):
        require_admin(actor)

        if lead.assigned_equipment_id is None:
            return lead

        InventoryService.release_for_lead(lead=lead, reason=ReleaseReason.UNASSIGNED)
        lead.assigned_equipment = None
        lead.save(update_fields=["assigned_equipment", "updated_at"])
        return lead

    @staticmethod
    @transaction.atomic
    def reconcile() -> list[dict]:
        """
        Recompute quantity_in_use from open reservations; returns the rows that drifted.
        """
        drift = []
        for pricing in EquipmentRentalPrice.objects.select_for_update().order_by("id"):
            expected = pricing.reservations.filter(released_at__isnull=True).count()
            if expected != pricing.quantity_in_use:
                drift.append(
                    {
                        "pricing_id": pricing.id,
                        "recorded": pricing.quantity_in_use,
                        "expected": expected,
                    }
                )
                logger.warning(
                    "Pricing %s in-use drift: recorded=%s expected=%s",
                    pricing.id,
                    pricing.quantity_in_use,
                    expected,
                )
                pricing.quantity_in_use = min(expected, pricing.quantity)
                pricing.save(update_fields=["quantity_in_use", "updated_at"])
        return drift
