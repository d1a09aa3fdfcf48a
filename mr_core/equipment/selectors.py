# mr_core/equipment/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import Count, F, Q, QuerySet, Sum

from mr_core.common.api.exceptions import NotFoundError
from mr_core.equipment.models import Equipment, EquipmentRentalPrice


def equipment_qs() -> QuerySet[Equipment]:
    return Equipment.objects.all().order_by("name")


def get_equipment(*, equipment_id: UUID) -> Equipment:
    try:
        return Equipment.objects.get(id=equipment_id)
    except Equipment.DoesNotExist:
        raise NotFoundError("Equipment not found.")


def pricing_for_equipment(*, equipment_id: UUID) -> QuerySet[EquipmentRentalPrice]:
    return (
        EquipmentRentalPrice.objects.filter(equipment_id=equipment_id)
        .select_related("city", "equipment")
        .order_by("city__name")
    )


def get_pricing(*, pricing_id: UUID) -> EquipmentRentalPrice:
    try:
        return EquipmentRentalPrice.objects.select_related("city", "equipment").get(id=pricing_id)
    except EquipmentRentalPrice.DoesNotExist:
        raise NotFoundError("Pricing not found.")


def find_pricing(*, equipment_id: UUID, city_id: UUID) -> EquipmentRentalPrice | None:
    return EquipmentRentalPrice.objects.filter(equipment_id=equipment_id, city_id=city_id).first()


def inventory_stats() -> dict:
    """
    Availability roll-up:
      totals, per city, per equipment (quantity / in_use / available).
    """
    qs = EquipmentRentalPrice.objects.all()

    totals = qs.aggregate(
        qty_total=Sum("quantity"),
        in_use_total=Sum("quantity_in_use"),
        pricing_rows=Count("id"),
    )
    total_qty = totals["qty_total"] or 0
    total_in_use = totals["in_use_total"] or 0

    by_city = []
    for row in (
        qs.values("city_id", city_name=F("city__name"))
        .annotate(qty_total=Sum("quantity"), in_use_total=Sum("quantity_in_use"))
        .order_by("city_name")
    ):
        qty, in_use = row["qty_total"] or 0, row["in_use_total"] or 0
        by_city.append(
            {
                "city_id": row["city_id"],
                "city_name": row["city_name"],
                "quantity": qty,
                "in_use": in_use,
                "available": qty - in_use,
            }
        )

    # exhausted rows are counted on the raw columns, not the per-group sums
    by_equipment = []
    for row in (
        qs.values("equipment_id", equipment_name=F("equipment__name"))
        .annotate(
            qty_total=Sum("quantity"),
            in_use_total=Sum("quantity_in_use"),
            cities=Count("city", distinct=True),
            exhausted=Count("id", filter=Q(quantity_in_use__gte=F("quantity"))),
        )
        .order_by("equipment_name")
    ):
        qty, in_use = row["qty_total"] or 0, row["in_use_total"] or 0
        by_equipment.append(
            {
                "equipment_id": row["equipment_id"],
                "equipment_name": row["equipment_name"],
                "cities": row["cities"],
                "quantity": qty,
                "in_use": in_use,
                "available": qty - in_use,
                "exhausted_cities": row["exhausted"],
            }
        )

    return {
        "totals": {
            "pricing_rows": totals["pricing_rows"] or 0,
            "quantity": total_qty,
            "in_use": total_in_use,
            "available": total_qty - total_in_use,
        },
        "by_city": by_city,
        "by_equipment": by_equipment,
    }
