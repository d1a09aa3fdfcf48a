# mr_core/equipment/models.py
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from mr_core.cities.models import City
from mr_core.common.models import UUIDModel


class EquipmentStatus(models.TextChoices):
    AVAILABLE = "AVAILABLE", "Available"
    IN_USE = "IN_USE", "In Use"
    MAINTENANCE = "MAINTENANCE", "Maintenance"
    RETIRED = "RETIRED", "Retired"


class Equipment(UUIDModel):
    """
    Catalogue entry (a model of device, not a physical unit).
    Unit counts live on EquipmentRentalPrice per city.
    """
    name = models.CharField(max_length=255)
    model_number = models.CharField(max_length=64, blank=True, default="")
    description = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=16,
        choices=EquipmentStatus.choices,
        default=EquipmentStatus.AVAILABLE,
        db_index=True,
    )

    class Meta:
        db_table = "equipment_equipment"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.model_number})" if self.model_number else self.name


class EquipmentRentalPrice(UUIDModel):
    """
    Pricing row: day-rate + availability pool for one equipment in one city.

    quantity_in_use is a materialized counter over open EquipmentReservation rows;
    it is only ever changed through conditional UPDATEs in InventoryService.
    """
    equipment = models.ForeignKey(Equipment, on_delete=models.PROTECT, related_name="rental_prices")
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="rental_prices")

    price_per_day = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    quantity = models.PositiveIntegerField(default=0)
    quantity_in_use = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "equipment_rental_price"
        constraints = [
            models.UniqueConstraint(fields=["equipment", "city"], name="uq_rental_price_equipment_city"),
            models.CheckConstraint(
                condition=Q(quantity_in_use__gte=0) & Q(quantity_in_use__lte=F("quantity")),
                name="ck_rental_price_in_use_within_quantity",
            ),
            models.CheckConstraint(
                condition=Q(price_per_day__gte=0),
                name="ck_rental_price_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["city", "equipment"]),
        ]

    @property
    def available(self) -> int:
        return max(self.quantity - self.quantity_in_use, 0)

    def __str__(self) -> str:
        return f"{self.equipment_id} @ {self.city_id}: {self.quantity_in_use}/{self.quantity}"


class ReleaseReason(models.TextChoices):
    REASSIGNED = "REASSIGNED", "Reassigned"
    UNASSIGNED = "UNASSIGNED", "Unassigned"
    SETTLED = "SETTLED", "Settled"
    CLOSED = "CLOSED", "Closed"
    CANCELLED = "CANCELLED", "Cancelled"
    FAILED = "FAILED", "Failed"


class EquipmentReservation(UUIDModel):
    """
    Reservation ledger: one row per assignment of a unit to a lead.
    Open while released_at is NULL. At most one open row per lead.
    pricing is cleared only when a pricing row with no open reservations is deleted.
    """
    lead = models.ForeignKey("leads.Lead", on_delete=models.PROTECT, related_name="reservations")
    pricing = models.ForeignKey(
        EquipmentRentalPrice,
        on_delete=models.SET_NULL,
        related_name="reservations",
        null=True,
        blank=True,
    )

    reserved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="equipment_reservations",
        null=True,
        blank=True,
    )
    reserved_at = models.DateTimeField(default=timezone.now, db_index=True)
    released_at = models.DateTimeField(null=True, blank=True, db_index=True)
    release_reason = models.CharField(max_length=16, choices=ReleaseReason.choices, blank=True, default="")

    class Meta:
        db_table = "equipment_reservation"
        ordering = ["-reserved_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["lead"],
                condition=Q(released_at__isnull=True),
                name="uq_reservation_one_open_per_lead",
            ),
        ]
        indexes = [
            models.Index(fields=["pricing", "released_at"]),
        ]

    @property
    def is_open(self) -> bool:
        return self.released_at is None
