# mr_core/financials/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from mr_core.common.models import PaymentStatus, UUIDModel
from mr_core.equipment.models import Equipment
from mr_core.leads.models import Lead


class RentalStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    COMPLETED = "COMPLETED", "Completed"


class BillingIncrement(models.TextChoices):
    DAILY = "DAILY", "Daily"


class Rental(UUIDModel):
    """
    Usage record of a lead's equipment. Upserted at settlement only.
    """
    lead = models.OneToOneField(Lead, on_delete=models.PROTECT, related_name="rental")
    equipment = models.ForeignKey(Equipment, on_delete=models.PROTECT, related_name="rentals")

    start_datetime = models.DateTimeField(default=timezone.now)
    end_datetime = models.DateTimeField(null=True, blank=True)
    days_used = models.PositiveIntegerField(default=0)
    billing_increment = models.CharField(
        max_length=16,
        choices=BillingIncrement.choices,
        default=BillingIncrement.DAILY,
    )
    status = models.CharField(max_length=16, choices=RentalStatus.choices, default=RentalStatus.ACTIVE, db_index=True)

    class Meta:
        db_table = "financials_rental"


class Financial(UUIDModel):
    """
    Financial outcome of a lead.

    commission_rate_applied is a frozen snapshot of the doctor's rate when the
    amounts were calculated; later rate changes never touch this row.

    other_expenses: [{"description": str, "amount": "123.45"}, ...]
    """
    lead = models.OneToOneField(Lead, on_delete=models.PROTECT, related_name="financial")

    rental_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    other_expenses = models.JSONField(default=list, blank=True)
    base_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    commission_rate_applied = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    doctor_commission = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    net_profit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    payment_status = models.CharField(
        max_length=16,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    payment_received_date = models.DateTimeField(null=True, blank=True)

    # payout that covered this commission; NULL while it is still outstanding
    payout = models.ForeignKey(
        "payouts.Payout",
        on_delete=models.SET_NULL,
        related_name="financials",
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "financials_financial"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["payment_status", "created_at"]),
        ]

    @property
    def other_expenses_total(self) -> Decimal:
        total = Decimal("0.00")
        for item in self.other_expenses or []:
            total += Decimal(str(item.get("amount") or "0"))
        return total
