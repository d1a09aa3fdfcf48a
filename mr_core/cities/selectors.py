# mr_core/cities/selectors.py
from __future__ import annotations

from uuid import UUID

from django.db.models import QuerySet

from mr_core.cities.models import City
from mr_core.common.api.exceptions import NotFoundError


def cities_qs(*, active_only: bool = False) -> QuerySet[City]:
    qs = City.objects.all().order_by("name")
    if active_only:
        qs = qs.filter(is_active=True)
    return qs


def find_city_by_name(name: str | None) -> City | None:
    """
    Free-text city as typed on a lead form -> City, matched case-insensitively
    after trimming. Returns None for blank / unknown names.
    """
    name = (name or "").strip()
    if not name:
        return None
    return City.objects.filter(name__iexact=name).first()


def get_city(*, city_id: UUID, active_only: bool = False) -> City:
    try:
        return cities_qs(active_only=active_only).get(id=city_id)
    except City.DoesNotExist:
        raise NotFoundError("City not found.")
