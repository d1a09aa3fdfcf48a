# mr_core/cities/services.py
from __future__ import annotations

import logging
from uuid import UUID

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from mr_core.cities.models import City
from mr_core.cities.selectors import find_city_by_name
from mr_core.common.actor import Actor, require_admin, require_super_admin
from mr_core.common.api.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError({"name": "City name is required."})
    return name


def _lock_city(city_id: UUID) -> City:
    try:
        return City.objects.select_for_update().get(id=city_id)
    except City.DoesNotExist:
        raise NotFoundError("City not found.")


class CityService:
    @staticmethod
    @transaction.atomic
    def create_city(*, name: str, state: str = "") -> City:
        name = _clean_name(name)

        try:
            with transaction.atomic():
                return City.objects.create(name=name, state=(state or "").strip())
        except IntegrityError:
            raise ConflictError(f"City '{name}' already exists.")

    @staticmethod
    @transaction.atomic
    def update_city(
        *,
        actor: Actor,
        city_id: UUID,
        name: str | None = None,
        state: str | None = None,
        is_active: bool | None = None,
    ) -> City:
        require_admin(actor)
        city = _lock_city(city_id)

        update_fields = []
        if name is not None:
            name = _clean_name(name)
            if City.objects.filter(name__iexact=name).exclude(id=city.id).exists():
                raise ConflictError(f"City '{name}' already exists.")
            city.name = name
            update_fields.append("name")
        if state is not None:
            city.state = state.strip()
            update_fields.append("state")
        if is_active is not None:
            city.is_active = bool(is_active)
            update_fields.append("is_active")

        if update_fields:
            try:
                with transaction.atomic():
                    city.save(update_fields=[*update_fields, "updated_at"])
            except IntegrityError:
                raise ConflictError(f"City '{city.name}' already exists.")
        return city

    @staticmethod
    @transaction.atomic
    def delete_city(*, actor: Actor, city_id: UUID) -> None:
        """
        Only an unreferenced city can be removed; deactivate it otherwise.
        """
        require_super_admin(actor)
        city = _lock_city(city_id)

        if city.rental_prices.exists() or city.leads.exists() or city.doctors.exists():
            raise ConflictError("City is referenced by pricing, leads or doctors. Deactivate it instead.")

        city.delete()
        logger.info("City %s (%s) deleted by user %s", city_id, city.name, actor.user_id)

    @staticmethod
    def resolve_lead_city(lead) -> UUID | None:
        """
        Links a lead submitted under a then-unknown city name once that City exists.
        The caller holds the lead row lock.
        """
        if lead.city_id is None:
            city = find_city_by_name(lead.city_name)
            if city is not None:
                lead.city = city
                lead.save(update_fields=["city", "updated_at"])
                logger.info("Lead %s linked to city %s", lead.id, city.id)
        return lead.city_id
