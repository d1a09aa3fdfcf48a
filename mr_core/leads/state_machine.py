# mr_core/leads/state_machine.py
"""
Lead lifecycle graph.

    NEW_LEAD -> CONTACTED -> EQUIPMENT_SHIPPED -> ACTIVE_RENTAL -> COMPLETED -> PAYMENT_RECEIVED

CANCELLED / FAILED branch off any pre-settlement state. COMPLETED is already
settled, so it only moves on to PAYMENT_RECEIVED. ACTIVE_RENTAL may close
straight to PAYMENT_RECEIVED (settled and paid in one step).
"""
from __future__ import annotations

from rest_framework.exceptions import ValidationError

from mr_core.leads.models import LeadStatus

S = LeadStatus


def _values(*members: LeadStatus) -> frozenset[str]:
    return frozenset(m.value for m in members)


TERMINAL_STATUSES = _values(S.PAYMENT_RECEIVED, S.CANCELLED, S.FAILED)

# closing a lead runs settlement
CLOSING_STATUSES = _values(S.COMPLETED, S.PAYMENT_RECEIVED)

# abandoning a lead frees its equipment
ABANDON_STATUSES = _values(S.CANCELLED, S.FAILED)

# equipment can be (re)assigned only before closure
ASSIGNABLE_STATUSES = _values(S.NEW_LEAD, S.CONTACTED, S.EQUIPMENT_SHIPPED, S.ACTIVE_RENTAL)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    S.NEW_LEAD.value: _values(S.CONTACTED, S.CANCELLED, S.FAILED),
    S.CONTACTED.value: _values(S.EQUIPMENT_SHIPPED, S.CANCELLED, S.FAILED),
    S.EQUIPMENT_SHIPPED.value: _values(S.ACTIVE_RENTAL, S.CANCELLED, S.FAILED),
    S.ACTIVE_RENTAL.value: _values(S.COMPLETED, S.PAYMENT_RECEIVED, S.CANCELLED, S.FAILED),
    S.COMPLETED.value: _values(S.PAYMENT_RECEIVED),
    S.PAYMENT_RECEIVED.value: frozenset(),
    S.CANCELLED.value: frozenset(),
    S.FAILED.value: frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    return str(new) in ALLOWED_TRANSITIONS.get(str(current), frozenset())


def ensure_transition(current: str, new: str) -> None:
    if str(new) not in S.values:
        raise ValidationError({"status": f"Unknown status '{new}'."})
    if not can_transition(current, new):
        allowed = sorted(ALLOWED_TRANSITIONS.get(str(current), frozenset()))
        raise ValidationError(
            {
                "status": f"Cannot move lead from {current} to {new}.",
                "allowed": allowed,
            }
        )
