"""Error taxonomy for payroll calculation and ledger operations."""

from __future__ import annotations

from datetime import date

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError


class PayrollError(Exception):
    """Base class for payroll engine errors."""

    code: str = "PAYROLL_ERROR"


# ===== Not found =====


class NotFoundError(PayrollError):
    """A required entity is absent."""

    code = "NOT_FOUND"


class EmployeeNotFoundError(NotFoundError):
    """Raised when an employee does not exist."""

    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: int):
        self.employee_id = employee_id
        super().__init__("Employee not found")


class PolicyNotFoundError(NotFoundError):
    """Raised when neither an employee nor a role compensation policy exists."""

    code = "POLICY_NOT_FOUND"

    def __init__(self, employee_id: int):
        self.employee_id = employee_id
        super().__init__(
            "Salary settings not found for this employee. Configure salary "
            "settings for this employee or their role."
        )


class PayrollRecordNotFoundError(NotFoundError):
    """Raised when a ledger record does not exist."""

    code = "PAYROLL_RECORD_NOT_FOUND"

    def __init__(self, payroll_record_id: int):
        self.payroll_record_id = payroll_record_id
        super().__init__("Salary record not found")


# ===== Invalid state =====


class InvalidStateError(PayrollError):
    """A ledger operation is not allowed from the record's current status."""

    code = "INVALID_STATE"


class RecalculationLockedError(InvalidStateError):
    """Raised when recomputing a record that is already approved or paid."""

    code = "RECALCULATION_LOCKED"

    def __init__(self, employee_id: int, month: date, status: str):
        self.employee_id = employee_id
        self.month = month
        self.status = status
        super().__init__(
            f"Salary for {month:%Y-%m} has already been {status.lower()} "
            f"for employee {employee_id}"
        )


# ===== Arithmetic =====


class ArithmeticFaultError(PayrollError):
    """An intermediate salary component is NaN or infinite."""

    code = "ARITHMETIC_FAULT"

    def __init__(self, component: str, value: object = None):
        self.component = component
        self.value = value
        super().__init__(f"Error calculating {component}")


# ===== Storage =====


class TransientStorageError(PayrollError):
    """Storage was unavailable; the operation may succeed if retried."""

    code = "TRANSIENT_STORAGE"


def is_transient(exc: BaseException) -> bool:
    """Whether an exception is worth retrying.

    Business errors are terminal. Connection-level storage failures and
    timeouts are transient.
    """
    if isinstance(exc, TransientStorageError):
        return True
    if isinstance(exc, PayrollError):
        return False
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (ConnectionError, TimeoutError))
