# mr_core/common/actor.py
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from mr_core.common.api.exceptions import AuthorizationError
from mr_core.common.permissions import ADMIN_ROLES, ROLE_DOCTOR, ROLE_SUPER_ADMIN


@dataclass(frozen=True)
class Actor:
    """
    Who is calling a service. Passed explicitly into every write/read that
    depends on role or ownership (no ambient request/session lookups).
    """
    user_id: int | None
    role: str | None
    doctor_id: UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == ROLE_DOCTOR


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin role required.")


def require_super_admin(actor: Actor) -> None:
    if not actor.is_super_admin:
        raise AuthorizationError("Super admin role required.")


def require_doctor(actor: Actor) -> UUID:
    if not actor.is_doctor:
        raise AuthorizationError("Doctor role required.")
    if actor.doctor_id is None:
        raise AuthorizationError("Doctor profile not found.")
    return actor.doctor_id


def require_admin_or_owner(actor: Actor, doctor_id: UUID) -> None:
    """
    Admins see everything; a doctor only rows owned by their profile.
    """
    if actor.is_admin:
        return
    if actor.is_doctor and actor.doctor_id is not None and actor.doctor_id == doctor_id:
        return
    raise AuthorizationError()
