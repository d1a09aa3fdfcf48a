import pytest
from rest_framework.exceptions import ValidationError

from mr_core.leads.models import LeadStatus as S
from mr_core.leads.state_machine import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, can_transition, ensure_transition


@pytest.mark.parametrize(
    "current,new",
    [
        (S.NEW_LEAD, S.CONTACTED),
        (S.CONTACTED, S.EQUIPMENT_SHIPPED),
        (S.EQUIPMENT_SHIPPED, S.ACTIVE_RENTAL),
        (S.ACTIVE_RENTAL, S.COMPLETED),
        (S.ACTIVE_RENTAL, S.PAYMENT_RECEIVED),
        (S.COMPLETED, S.PAYMENT_RECEIVED),
        (S.NEW_LEAD, S.CANCELLED),
        (S.EQUIPMENT_SHIPPED, S.FAILED),
    ],
)
def test_allowed_transitions(current, new):
    assert can_transition(current, new)
    ensure_transition(current, new)


@pytest.mark.parametrize(
    "current,new",
    [
        (S.NEW_LEAD, S.ACTIVE_RENTAL),
        (S.NEW_LEAD, S.COMPLETED),
        (S.COMPLETED, S.CANCELLED),
        (S.COMPLETED, S.ACTIVE_RENTAL),
        (S.CANCELLED, S.NEW_LEAD),
        (S.PAYMENT_RECEIVED, S.COMPLETED),
    ],
)
def test_rejected_transitions(current, new):
    assert not can_transition(current, new)
    with pytest.raises(ValidationError):
        ensure_transition(current, new)


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == frozenset()


def test_every_status_is_in_the_graph():
    assert set(ALLOWED_TRANSITIONS) == set(S.values)


def test_unknown_status_is_rejected():
    with pytest.raises(ValidationError):
        ensure_transition(S.NEW_LEAD, "ARCHIVED")
