"""
Verification state machine.

    pending --> verified   (terminal)
    pending --> rejected   (terminal)

The report store enforces these transitions with a conditional UPDATE whose
predicate is built from ``source_states``.
"""

from enum import Enum

from coastwatch.db.models import ReportStatus
from coastwatch.exceptions import InvalidStateError


class VerificationOutcome(str, Enum):
    """Target states a reviewer can choose."""

    verified = "verified"
    rejected = "rejected"

    @property
    def status(self) -> ReportStatus:
        return ReportStatus(self.value)


ALLOWED_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.pending: frozenset({ReportStatus.verified, ReportStatus.rejected}),
    ReportStatus.verified: frozenset(),
    ReportStatus.rejected: frozenset(),
}


def can_transition(current: ReportStatus, target: ReportStatus) -> bool:
    """Check if ``current -> target`` is a legal transition."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_terminal(status: ReportStatus) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


def source_states(target: ReportStatus) -> frozenset[ReportStatus]:
    """All states from which ``target`` can be reached."""
    return frozenset(
        state for state, targets in ALLOWED_TRANSITIONS.items() if target in targets
    )


def ensure_transition(current: ReportStatus, target: ReportStatus) -> None:
    """
    Raise InvalidStateError unless ``current -> target`` is allowed.
    """
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Report is not pending verification (status: {current.value})",
            current_status=current.value,
            target_status=target.value,
        )
