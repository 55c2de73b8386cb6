import pytest

from moneyflow.services.transaction_state import EVENTS, TRANSITIONS, can_transition, is_terminal, next_state


@pytest.mark.parametrize(
    "current,event,expected",
    [
        ("DRAFT", "submit", "PENDING"),
        ("DRAFT", "cancel", "CANCELLED"),
        ("PENDING", "confirm", "CONFIRMED"),
        ("PENDING", "reject", "FAILED"),
        ("PENDING", "cancel", "CANCELLED"),
        ("CONFIRMED", "reconcile", "RECONCILED"),
    ],
)
def test_allowed_events(current, event, expected):
    assert next_state(current, event) == expected


@pytest.mark.parametrize(
    "current,event",
    [
        ("DRAFT", "confirm"),
        ("DRAFT", "reconcile"),
        ("PENDING", "submit"),
        ("CONFIRMED", "cancel"),
        ("FAILED", "submit"),
        ("CANCELLED", "submit"),
        ("RECONCILED", "reject"),
        ("DRAFT", "unknown"),
    ],
)
def test_rejected_events(current, event):
    assert next_state(current, event) is None


def test_terminal_states():
    assert {s for s in TRANSITIONS if is_terminal(s)} == {"FAILED", "CANCELLED", "RECONCILED"}


def test_every_event_targets_a_known_state():
    assert set(EVENTS.values()) <= set(TRANSITIONS)
    assert not can_transition("NOPE", "PENDING")
