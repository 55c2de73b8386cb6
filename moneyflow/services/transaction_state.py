"""Lifecycle of a transaction row.

The state is bookkeeping only: it never moves money. Balances change when the
row is created or deleted.
"""

TRANSITIONS: dict[str, frozenset[str]] = {
    "DRAFT": frozenset({"PENDING", "CANCELLED"}),
    "PENDING": frozenset({"CONFIRMED", "FAILED", "CANCELLED"}),
    "CONFIRMED": frozenset({"RECONCILED"}),
    "FAILED": frozenset(),
    "CANCELLED": frozenset(),
    "RECONCILED": frozenset(),
}

EVENTS: dict[str, str] = {
    "submit": "PENDING",
    "confirm": "CONFIRMED",
    "reject": "FAILED",
    "cancel": "CANCELLED",
    "reconcile": "RECONCILED",
}

INITIAL_STATE = "DRAFT"


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def next_state(current: str, event: str) -> str | None:
    """State reached by ``event``, or None when the event is not allowed."""
    target = EVENTS.get(event)
    if target is None or not can_transition(current, target):
        return None
    return target


def is_terminal(state: str) -> bool:
    return not TRANSITIONS.get(state)
