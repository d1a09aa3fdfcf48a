# mr_core/iam/actor.py
from __future__ import annotations

from mr_core.common.actor import Actor
from mr_core.common.api.exceptions import AuthorizationError
from mr_core.common.permissions import ROLE_DOCTOR, primary_role, user_roles


def actor_from_user(user) -> Actor:
    """
    auth user -> Actor (user id, highest role, doctor profile id when the role is DOCTOR).
    """
    role = primary_role(user_roles(user))
    if role is None:
        raise AuthorizationError("User has no role.")

    doctor_id = None
    if role == ROLE_DOCTOR:
        profile = getattr(user, "doctor_profile", None)
        doctor_id = profile.id if profile is not None else None

    return Actor(user_id=user.pk, role=role, doctor_id=doctor_id)


def actor_from_request(request) -> Actor:
    actor = getattr(request, "actor", None)
    if actor is None:
        actor = actor_from_user(request.user)
        request.actor = actor
    return actor
