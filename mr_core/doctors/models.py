# mr_core/doctors/models.py
from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from mr_core.cities.models import City
from mr_core.common.models import UUIDModel


class DoctorStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"


class Doctor(UUIDModel):
    """
    Referral partner. commission_rate is the CURRENT rate (percent);
    settled financials keep their own snapshot.
    """
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="doctor_profile")

    clinic_name = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="doctors", null=True, blank=True)

    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("10.00"),
        validators=[MinValueValidator(Decimal("0.00")), MaxValueValidator(Decimal("100.00"))],
    )
    status = models.CharField(max_length=16, choices=DoctorStatus.choices, default=DoctorStatus.ACTIVE, db_index=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "doctors_doctor"
        indexes = [
            models.Index(fields=["status", "created_at"]),
        ]

    def __str__(self) -> str:
        full_name = self.user.get_full_name() if self.user_id else ""
        return full_name or getattr(self.user, "username", str(self.id))


class CommissionHistory(UUIDModel):
    """
    Append-only audit trail of commission rate changes.
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name="commission_history")
    old_rate = models.DecimalField(max_digits=5, decimal_places=2)
    new_rate = models.DecimalField(max_digits=5, decimal_places=2)
    effective_date = models.DateTimeField(default=timezone.now, db_index=True)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="commission_changes",
        null=True,
        blank=True,
    )
    reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "doctors_commission_history"
        ordering = ["-effective_date", "-created_at"]
        indexes = [
            models.Index(fields=["doctor", "effective_date"]),
        ]
