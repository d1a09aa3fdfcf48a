# mr_core/financials/selectors.py
from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from django.db.models import Count, QuerySet, Sum

from mr_core.common.api.exceptions import NotFoundError
from mr_core.common.money import ZERO, q2
from mr_core.financials.models import Financial


def financials_qs() -> QuerySet[Financial]:
    return Financial.objects.select_related("lead", "lead__doctor").order_by("-created_at")


def get_financial(*, financial_id: UUID) -> Financial:
    try:
        return financials_qs().get(id=financial_id)
    except Financial.DoesNotExist:
        raise NotFoundError("Financial record not found.")


def financial_totals(qs: QuerySet[Financial]) -> dict:
    """
    revenue = rental amounts
    expenses = shipping + other expenses (GST reported on its own)
    """
    agg = qs.aggregate(
        records=Count("id"),
        revenue=Sum("rental_amount"),
        shipping=Sum("shipping_cost"),
        gst=Sum("gst_amount"),
        commission=Sum("doctor_commission"),
        profit=Sum("net_profit"),
    )

    other = Decimal("0.00")
    for expenses in qs.values_list("other_expenses", flat=True):
        for item in expenses or []:
            other += Decimal(str(item.get("amount") or "0"))

    return {
        "records": agg["records"] or 0,
        "total_revenue": q2(agg["revenue"] or ZERO),
        "total_expenses": q2((agg["shipping"] or ZERO) + other),
        "total_gst": q2(agg["gst"] or ZERO),
        "total_commission": q2(agg["commission"] or ZERO),
        "total_profit": q2(agg["profit"] or ZERO),
    }
