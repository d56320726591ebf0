"""
Appointment status policy.

The set of statuses is configuration: the standard deployment uses
scheduled/confirmed/completed/cancelled, the extended one starts at
``pending`` and adds ``no_show``. Both share the same shape: an initial
state, optional confirmation, and terminal states with no way out.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Mapping

from barber_scheduler.core.config import STATUS_SET_EXTENDED, STATUS_SET_STANDARD
from barber_scheduler.core.exceptions import InvalidStateError, ValidationError

SCHEDULED = "scheduled"
PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no_show"


@dataclass(frozen=True)
class StatusPolicy:
    """Allowed statuses and legal transitions between them."""

    initial: str
    transitions: Mapping[str, FrozenSet[str]]
    # Statuses whose appointments no longer hold their slot or their stock
    released: FrozenSet[str]

    def __post_init__(self):
        if self.initial not in self.transitions:
            raise ValueError(f"Initial status {self.initial!r} is not a known status")
        for source, targets in self.transitions.items():
            unknown = set(targets) - set(self.transitions)
            if unknown:
                raise ValueError(f"{source!r} transitions to unknown {sorted(unknown)}")

    @property
    def statuses(self) -> FrozenSet[str]:
        return frozenset(self.transitions)

    @property
    def terminal(self) -> FrozenSet[str]:
        return frozenset(s for s, targets in self.transitions.items() if not targets)

    @property
    def active(self) -> FrozenSet[str]:
        """Statuses that still occupy the provider's calendar."""
        return self.statuses - self.released

    def supports(self, status: str) -> bool:
        return status in self.transitions

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.transitions.get(current, frozenset())

    def ensure_transition(self, current: str, target: str) -> None:
        """Raise ``InvalidStateError`` unless current -> target is legal."""
        if not self.supports(target):
            raise ValidationError(f"Unknown appointment status {target!r}", field="status")
        if current == target:
            raise InvalidStateError(f"Appointment is already {current}")
        if self.is_terminal(current):
            raise InvalidStateError(
                f"Appointment is {current}; no further status changes are allowed"
            )
        if not self.can_transition(current, target):
            raise InvalidStateError(f"Cannot move appointment from {current} to {target}")


def _freeze(transitions: Dict[str, set]) -> Dict[str, FrozenSet[str]]:
    return {status: frozenset(targets) for status, targets in transitions.items()}


STANDARD_POLICY = StatusPolicy(
    initial=SCHEDULED,
    transitions=_freeze(
        {
            SCHEDULED: {CONFIRMED, COMPLETED, CANCELLED},
            CONFIRMED: {COMPLETED, CANCELLED},
            COMPLETED: set(),
            CANCELLED: set(),
        }
    ),
    released=frozenset({CANCELLED}),
)

EXTENDED_POLICY = StatusPolicy(
    initial=PENDING,
    transitions=_freeze(
        {
            PENDING: {CONFIRMED, COMPLETED, CANCELLED, NO_SHOW},
            CONFIRMED: {COMPLETED, CANCELLED, NO_SHOW},
            COMPLETED: set(),
            CANCELLED: set(),
            NO_SHOW: set(),
        }
    ),
    released=frozenset({CANCELLED, NO_SHOW}),
)

_POLICIES = {
    STATUS_SET_STANDARD: STANDARD_POLICY,
    STATUS_SET_EXTENDED: EXTENDED_POLICY,
}


def get_status_policy(status_set: str) -> StatusPolicy:
    try:
        return _POLICIES[status_set]
    except KeyError:
        raise ValueError(f"Unknown status set {status_set!r}") from None
