# mr_core/financials/calculations.py
"""
Pure money arithmetic for lead settlement. No database access.

    rental_amount  = days_used * price_per_day
    gst_amount     = (rental_amount + shipping_cost) * GST rate
    base_amount    = rental_amount + shipping_cost
    commission     = rental_amount * rate / 100
    net_profit     = rental_amount - commission

Every intermediate is rounded half-up to 2 decimal places.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from rest_framework.exceptions import ValidationError

from mr_core.common.money import ZERO, q2, to_decimal


@dataclass(frozen=True)
class Settlement:
    rental_amount: Decimal
    shipping_cost: Decimal
    gst_amount: Decimal
    base_amount: Decimal
    commission_rate: Decimal
    doctor_commission: Decimal
    net_profit: Decimal


def gst_rate() -> Decimal:
    return to_decimal(getattr(settings, "MR_GST_RATE", Decimal("0.18")), "gst_rate")


def commission_split(*, rental_amount, commission_rate) -> tuple[Decimal, Decimal]:
    """Returns (doctor_commission, net_profit)."""
    rental = q2(to_decimal(rental_amount, "rental_amount"))
    rate = to_decimal(commission_rate, "commission_rate")
    commission = q2(rental * rate / Decimal("100"))
    return commission, q2(rental - commission)


def calculate_settlement(
    *,
    days_used: int,
    price_per_day,
    commission_rate,
    shipping_cost=ZERO,
) -> Settlement:
    if days_used is None or int(days_used) <= 0:
        raise ValidationError({"days_used": "Days used must be greater than 0."})

    price = to_decimal(price_per_day, "price_per_day")
    shipping = q2(to_decimal(shipping_cost or ZERO, "shipping_cost"))
    if price < 0:
        raise ValidationError({"price_per_day": "Price must be >= 0."})
    if shipping < 0:
        raise ValidationError({"shipping_cost": "Shipping cost must be >= 0."})

    rental = q2(Decimal(int(days_used)) * price)
    gst = q2((rental + shipping) * gst_rate())
    base = q2(rental + shipping)
    commission, net = commission_split(rental_amount=rental, commission_rate=commission_rate)

    return Settlement(
        rental_amount=rental,
        shipping_cost=shipping,
        gst_amount=gst,
        base_amount=base,
        commission_rate=q2(to_decimal(commission_rate, "commission_rate")),
        doctor_commission=commission,
        net_profit=net,
    )
