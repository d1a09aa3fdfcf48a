# mr_core/payouts/models.py
from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from mr_core.common.models import PaymentStatus, UUIDModel
from mr_core.doctors.models import Doctor


class PaymentMethod(models.TextChoices):
    BANK = "BANK", "Bank Transfer"
    UPI = "UPI", "UPI"
    CHEQUE = "CHEQUE", "Cheque"
    CASH = "CASH", "Cash"
    OTHER = "OTHER", "Other"


class Payout(UUIDModel):
    """
    Batch commission payment to a doctor for a period.
    Amount is entered by an admin (or taken from the outstanding commission).
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name="payouts")

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    period_start = models.DateField()
    period_end = models.DateField()

    status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices, blank=True, default="")
    transaction_id = models.CharField(max_length=128, blank=True, default="")
    receipt_url = models.URLField(max_length=500, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="processed_payouts",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "payouts_payout"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name="ck_payout_amount_positive"),
            models.CheckConstraint(condition=Q(period_end__gte=F("period_start")), name="ck_payout_period_order"),
        ]
        indexes = [
            models.Index(fields=["doctor", "status", "created_at"]),
        ]
