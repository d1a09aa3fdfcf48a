# mr_core/leads/models.py
from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from mr_core.cities.models import City
from mr_core.common.models import UUIDModel
from mr_core.doctors.models import Doctor
from mr_core.equipment.models import Equipment


class LeadStatus(models.TextChoices):
    NEW_LEAD = "NEW_LEAD", "New Lead"
    CONTACTED = "CONTACTED", "Contacted"
    EQUIPMENT_SHIPPED = "EQUIPMENT_SHIPPED", "Equipment Shipped"
    ACTIVE_RENTAL = "ACTIVE_RENTAL", "Active Rental"
    COMPLETED = "COMPLETED", "Completed"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED", "Payment Received"
    CANCELLED = "CANCELLED", "Cancelled"
    FAILED = "FAILED", "Failed"


class Lead(UUIDModel):
    """
    Patient referral submitted by a doctor.

    city_name keeps what the doctor typed; city is the FK matched by name at
    submission, or later on assignment / closing once such a City exists.
    Never deleted: CANCELLED / FAILED are the soft ends of the lifecycle.
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name="leads")

    patient_name = models.CharField(max_length=255)
    parent_name = models.CharField(max_length=255)
    parent_email = models.EmailField()
    phone = models.CharField(max_length=32)
    location = models.CharField(max_length=255)

    city_name = models.CharField(max_length=128)
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="leads", null=True, blank=True)

    status = models.CharField(max_length=24, choices=LeadStatus.choices, default=LeadStatus.NEW_LEAD, db_index=True)
    assigned_equipment = models.ForeignKey(
        Equipment,
        on_delete=models.PROTECT,
        related_name="leads",
        null=True,
        blank=True,
    )

    notes = models.TextField(blank=True, default="")
    submission_date = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "leads_lead"
        ordering = ["-submission_date"]
        indexes = [
            models.Index(fields=["doctor", "status", "submission_date"]),
            models.Index(fields=["status", "submission_date"]),
        ]

    def __str__(self) -> str:
        return f"{self.patient_name} [{self.status}]"


class LeadStatusHistory(UUIDModel):
    """
    Append-only audit trail; one row per actual status change.
    """
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name="status_history")
    from_status = models.CharField(max_length=24, choices=LeadStatus.choices, blank=True, default="")
    status = models.CharField(max_length=24, choices=LeadStatus.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="lead_status_changes",
        null=True,
        blank=True,
    )
    comment = models.TextField(blank=True, default="")
    changed_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "leads_status_history"
        ordering = ["-changed_at", "-created_at"]
        indexes = [
            models.Index(fields=["lead", "changed_at"]),
        ]
