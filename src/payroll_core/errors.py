"""Typed exceptions for salary and payroll resolution.

Hierarchy:

    PayrollCoreError
    +-- ValidationError          bad input, nothing was computed or stored
    |   +-- InvalidPeriodError
    |   +-- TemplateError
    |   |   +-- DuplicateComponentCodeError
    |   +-- NotFoundError
    |   +-- PayrollRunLockedError
    |   +-- AttendancePeriodLockedError
    +-- ResolutionError          one unit of work (component / employee) failed
    |   +-- FormulaError  (see calculators.formula)
    |   +-- ComponentResolutionError
    |   +-- ProrationError
    |   +-- PayrollRunError
    +-- IntegrityError           results exist but violate an invariant
        +-- SalaryIntegrityError
        +-- ImmutabilityViolationError
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID


class PayrollCoreError(Exception):
    """Base class for all errors raised by the core."""

    code: str = "PAYROLL_CORE_ERROR"


# === Validation ===


class ValidationError(PayrollCoreError):
    """Input rejected before any work was done."""

    code = "VALIDATION_ERROR"


class InvalidPeriodError(ValidationError):
    """Period string is not a valid YYYY-MM month."""

    code = "INVALID_PERIOD"

    def __init__(self, period: Any):
        self.period = period
        super().__init__(f"Invalid period {period!r}, expected YYYY-MM")


class TemplateError(ValidationError):
    """Salary template is structurally invalid."""

    code = "INVALID_TEMPLATE"


class DuplicateComponentCodeError(TemplateError):
    """Two component definitions resolve to the same code."""

    code = "DUPLICATE_COMPONENT_CODE"

    def __init__(self, component_code: str):
        self.component_code = component_code
        super().__init__(
            f"Component code {component_code!r} is defined more than once"
        )


class NotFoundError(ValidationError):
    """Referenced record does not exist for the tenant."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class PayrollRunLockedError(ValidationError):
    """A locked payroll run already exists for the tenant and period."""

    code = "PAYROLL_RUN_LOCKED"

    def __init__(self, tenant_id: UUID, period: str):
        self.tenant_id = tenant_id
        self.period = period
        super().__init__(
            f"Payroll for {period} is already locked for tenant {tenant_id}; "
            "create a correction run instead"
        )


class AttendancePeriodLockedError(ValidationError):
    """Attendance cannot be re-frozen after payroll consumed it."""

    code = "ATTENDANCE_PERIOD_LOCKED"

    def __init__(self, tenant_id: UUID, period: str):
        self.tenant_id = tenant_id
        self.period = period
        super().__init__(
            f"Attendance for {period} was consumed by a payroll run "
            f"for tenant {tenant_id}"
        )


# === Resolution ===


class ResolutionError(PayrollCoreError):
    """A single component or employee could not be resolved."""

    code = "RESOLUTION_ERROR"


class ComponentResolutionError(ResolutionError):
    """Formula resolution failed for a salary component."""

    code = "COMPONENT_RESOLUTION_FAILED"

    def __init__(self, component_code: str, reason: str):
        self.component_code = component_code
        self.reason = reason
        super().__init__(
            f"Formula resolution failed for {component_code}: {reason}"
        )


class ProrationError(ResolutionError):
    """Payroll item cannot be prorated."""

    code = "PRORATION_FAILED"

    def __init__(self, employee_id: UUID, reason: str):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Cannot prorate pay for employee {employee_id}: {reason}")


class PayrollRunError(ResolutionError):
    """No item of a payroll run could be resolved."""

    code = "PAYROLL_RUN_FAILED"

    def __init__(self, period: str, failures: dict[UUID, str]):
        self.period = period
        self.failures = failures
        super().__init__(
            f"Payroll for {period} failed for all {len(failures)} employee(s)"
        )


# === Integrity ===


class IntegrityError(PayrollCoreError):
    """Computed results violate an invariant."""

    code = "INTEGRITY_ERROR"


class SalaryIntegrityError(IntegrityError):
    """Resolved earnings and benefits do not add up to the target CTC."""

    code = "SALARY_INTEGRITY"

    def __init__(self, total: Decimal, ctc: Decimal, tolerance: Decimal):
        self.total = total
        self.ctc = ctc
        self.tolerance = tolerance
        super().__init__(
            f"Salary Integrity Error: components total {total} but target CTC "
            f"is {ctc} (difference {abs(total - ctc)} exceeds {tolerance})"
        )


class ImmutabilityViolationError(IntegrityError):
    """Attempted to modify or delete an immutable snapshot."""

    code = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
