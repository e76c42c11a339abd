"""Payroll ledger state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from salary_engine.errors import InvalidStateError


class PayrollStatus(str, Enum):
    """Payroll record status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


class InvalidTransitionError(InvalidStateError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayrollStateMachine:
    """State machine for payroll record status transitions.

    Allowed transitions:
    - PENDING → APPROVED
    - APPROVED → PAID

    There is no path back to PENDING.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.PENDING: [PayrollStatus.APPROVED],
        PayrollStatus.APPROVED: [PayrollStatus.PAID],
        PayrollStatus.PAID: [],  # Terminal state
    }

    # Statuses where the figures may still be recomputed
    RECALCULATION_ALLOWED = {PayrollStatus.PENDING}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_recalculate(cls, status: str) -> bool:
        """Check if a record in this status may be overwritten by recomputation."""
        return status in cls.RECALCULATION_ALLOWED

    @classmethod
    def is_frozen(cls, status: str) -> bool:
        return not cls.can_recalculate(status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
