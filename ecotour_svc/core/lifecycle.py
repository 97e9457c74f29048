"""Registration state machine.

pending -> confirmed -> completed, pending|confirmed -> cancelled. cancelled and
completed are terminal. A registration occupies a seat on its event while it is
pending or confirmed, so every transition tells the caller whether a seat has
to be claimed or released.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import ValidationError


class RegStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL = frozenset({RegStatus.CANCELLED, RegStatus.COMPLETED})
SEAT_HOLDING = frozenset({RegStatus.PENDING, RegStatus.CONFIRMED})

ALLOWED: dict[RegStatus, frozenset[RegStatus]] = {
    RegStatus.PENDING: frozenset({RegStatus.CONFIRMED, RegStatus.CANCELLED, RegStatus.COMPLETED}),
    RegStatus.CONFIRMED: frozenset({RegStatus.COMPLETED, RegStatus.CANCELLED}),
    RegStatus.CANCELLED: frozenset(),
    RegStatus.COMPLETED: frozenset(),
}


@dataclass(frozen=True)
class Transition:
    source: RegStatus
    target: RegStatus

    @property
    def seat_delta(self) -> int:
        """+1 when the target starts holding a seat, -1 when it stops, 0 otherwise."""
        return int(self.target in SEAT_HOLDING) - int(self.source in SEAT_HOLDING)

    @property
    def is_noop(self) -> bool:
        return self.source == self.target


def holds_seat(status: RegStatus) -> bool:
    return status in SEAT_HOLDING


def plan(source: RegStatus, target: RegStatus) -> Transition:
    """Checked transition. Re-applying the current non-terminal status is a no-op."""
    if source in TERMINAL:
        raise ValidationError(f"Registration is already {source.value}")
    if source != target and target not in ALLOWED[source]:
        raise ValidationError(f"Cannot move registration from {source.value} to {target.value}")
    return Transition(source, target)


def force(source: RegStatus, target: RegStatus) -> Transition:
    """Admin override: any target is accepted, the seat delta is still reported."""
    return Transition(source, target)
