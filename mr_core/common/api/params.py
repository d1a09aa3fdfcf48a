from __future__ import annotations

from uuid import UUID

from rest_framework.exceptions import ValidationError

from mr_core.common.api.exceptions import NotFoundError


def uuid_or_none(value: str | None, field_name: str) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError({field_name: "Invalid UUID"})


def path_uuid(value) -> UUID:
    """Malformed ids in the URL are simply unknown resources."""
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError()


def apply_filters(filterset_class, request, queryset):
    """Runs a django-filter FilterSet over query params; invalid params -> 400."""
    filterset = filterset_class(request.query_params, queryset=queryset, request=request)
    if not filterset.is_valid():
        raise ValidationError(filterset.errors)
    return filterset.qs
