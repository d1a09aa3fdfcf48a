# mr_core/common/permissions.py

from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission, SAFE_METHODS

# Group/role names (Django auth Group names)
ROLE_SUPER_ADMIN = "SUPER_ADMIN"
ROLE_SUB_ADMIN = "SUB_ADMIN"
ROLE_DOCTOR = "DOCTOR"

ADMIN_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_SUB_ADMIN})
ALL_ROLES = frozenset({ROLE_SUPER_ADMIN, ROLE_SUB_ADMIN, ROLE_DOCTOR})


def user_roles(user) -> Set[str]:
    """
    Resolve roles from Django groups (superuser is treated as SUPER_ADMIN).
    Unknown group names are ignored.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_SUPER_ADMIN)
        return roles

    if hasattr(user, "groups"):
        roles.update(name for name in user.groups.values_list("name", flat=True) if name in ALL_ROLES)

    return roles


def primary_role(roles: Set[str]) -> str | None:
    """
    Highest-privilege role wins when a user carries several groups.
    """
    for role in (ROLE_SUPER_ADMIN, ROLE_SUB_ADMIN, ROLE_DOCTOR):
        if role in roles:
            return role
    return None


class BaseRolePermission(BasePermission):
    """
    Base permission class for role-based access control.

    Key behavior:
    - Requires authentication (global IsAuthenticated already does this).
    - SUPER_ADMIN bypass.
    - Uses allowed_roles_per_action for strict RBAC.
    - If action is unknown and request is SAFE, fall back to list/retrieve.

    Ownership (doctor may only see own rows) is enforced in services/selectors,
    not here.
    """
    message = "You do not have permission to perform this action."

    # Override in subclasses: dict of action -> set of allowed roles
    allowed_roles_per_action = {
        "list": set(ADMIN_ROLES),
        "retrieve": set(ADMIN_ROLES),
        "create": set(ADMIN_ROLES),
        "update": set(ADMIN_ROLES),
        "partial_update": set(ADMIN_ROLES),
        "destroy": {ROLE_SUPER_ADMIN},
    }

    def _infer_action(self, request, view) -> str | None:
        action = getattr(view, "action", None)
        if action:
            return action

        kwargs = getattr(view, "kwargs", {}) or {}
        is_detail = "pk" in kwargs or "id" in kwargs

        method = request.method.upper()
        if method in ("GET", "HEAD", "OPTIONS"):
            return "retrieve" if is_detail else "list"
        if method == "POST":
            return "create"
        if method == "PUT":
            return "update"
        if method == "PATCH":
            return "partial_update"
        if method == "DELETE":
            return "destroy"
        return None

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        roles = user_roles(user)

        if ROLE_SUPER_ADMIN in roles:
            return True

        action = self._infer_action(request, view)
        allowed = self.allowed_roles_per_action.get(action)

        if allowed is None and request.method in SAFE_METHODS:
            kwargs = getattr(view, "kwargs", {}) or {}
            is_detail = "pk" in kwargs or "id" in kwargs
            read_action = "retrieve" if is_detail else "list"
            allowed = self.allowed_roles_per_action.get(read_action)

        if allowed is not None:
            return bool(roles & allowed)

        # Unknown action => deny by default
        return False


class LeadPermission(BaseRolePermission):
    """Doctors submit and read their own leads; admins run the lifecycle."""
    allowed_roles_per_action = {
        "list": set(ALL_ROLES),
        "retrieve": set(ALL_ROLES),
        "create": {ROLE_DOCTOR},
        "partial_update": set(ADMIN_ROLES),
        "change_status": set(ADMIN_ROLES),
        "assign_equipment": set(ADMIN_ROLES),
    }


class EquipmentPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": set(ADMIN_ROLES),
        "retrieve": set(ADMIN_ROLES),
        "create": set(ADMIN_ROLES),
        "partial_update": set(ADMIN_ROLES),
        "rental_prices": set(ADMIN_ROLES),
        # deletes are SUPER_ADMIN only (bypass above)
        "destroy": set(),
    }


class DoctorPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": set(ADMIN_ROLES),
        "retrieve": set(ADMIN_ROLES),
        "create": set(ADMIN_ROLES),
        "commission_history": set(ADMIN_ROLES),
        # profile edits and rate changes are SUPER_ADMIN only (bypass above)
        "partial_update": set(),
        "commission_rate": set(),
    }


class FinancialPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": set(ADMIN_ROLES),
        "retrieve": set(ADMIN_ROLES),
        "create": set(ADMIN_ROLES),
        "partial_update": set(ADMIN_ROLES),
    }


class PayoutPermission(BaseRolePermission):
    allowed_roles_per_action = {
        "list": set(ALL_ROLES),
        "retrieve": set(ALL_ROLES),
        "create": set(ADMIN_ROLES),
        "partial_update": set(ADMIN_ROLES),
        "mark_paid": set(ADMIN_ROLES),
        "outstanding": set(ADMIN_ROLES),
    }


class CityPermission(BaseRolePermission):
    """Doctors read the city list for the lead form; admins maintain it."""
    allowed_roles_per_action = {
        "list": set(ALL_ROLES),
        "retrieve": set(ALL_ROLES),
        "create": set(ADMIN_ROLES),
        "partial_update": set(ADMIN_ROLES),
        "destroy": set(),
    }
