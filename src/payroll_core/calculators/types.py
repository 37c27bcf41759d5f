"""Type definitions for the resolution pipeline.

Snapshot types are frozen dataclasses holding tuples: once built they cannot
be changed, corrections are new snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class ComponentKind(str, Enum):
    """Salary component kinds."""

    EARNING = "EARNING"
    BENEFIT = "BENEFIT"  # employer-side deduction, part of CTC
    DEDUCTION = "DEDUCTION"  # employee-side deduction


class DayStatus(str, Enum):
    """Daily attendance statuses."""

    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"
    HOLIDAY = "holiday"
    WEEKLY_OFF = "weekly_off"
    HALF_DAY = "half_day"


# ===== Salary template (input) =====


@dataclass(frozen=True)
class ComponentDefinition:
    """A component line of a salary template."""

    name: str
    code: str | None = None
    formula: str | None = None
    annual_amount: Decimal | None = None
    monthly_amount: Decimal | None = None


@dataclass(frozen=True)
class SalaryTemplate:
    """Salary template: three ordered lists of component definitions."""

    name: str
    earnings: tuple[ComponentDefinition, ...] = ()
    employer_deductions: tuple[ComponentDefinition, ...] = ()
    employee_deductions: tuple[ComponentDefinition, ...] = ()
    template_id: UUID | None = None
    version: int = 1

    def sections(self) -> list[tuple[ComponentKind, tuple[ComponentDefinition, ...]]]:
        """Component lists in evaluation order."""
        return [
            (ComponentKind.EARNING, self.earnings),
            (ComponentKind.BENEFIT, self.employer_deductions),
            (ComponentKind.DEDUCTION, self.employee_deductions),
        ]


# ===== Salary snapshot (output of stage 1) =====


@dataclass(frozen=True)
class SalaryComponent:
    """A resolved salary component (annual amount)."""

    name: str
    code: str
    formula: str
    amount: Decimal

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "formula": self.formula,
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SalaryComponent:
        return cls(
            name=data["name"],
            code=data["code"],
            formula=data["formula"],
            amount=Decimal(str(data["amount"])),
        )


@dataclass(frozen=True)
class SalaryBreakdown:
    """Resolved components for a CTC, not bound to an owner."""

    ctc: Decimal
    earnings: tuple[SalaryComponent, ...]
    deductions: tuple[SalaryComponent, ...]
    benefits: tuple[SalaryComponent, ...]

    @property
    def total_earnings(self) -> Decimal:
        return sum((c.amount for c in self.earnings), Decimal("0"))

    @property
    def total_benefits(self) -> Decimal:
        return sum((c.amount for c in self.benefits), Decimal("0"))

    @property
    def total_deductions(self) -> Decimal:
        return sum((c.amount for c in self.deductions), Decimal("0"))


@dataclass(frozen=True)
class SalarySnapshot:
    """Immutable resolved salary of one employee or applicant."""

    tenant_id: UUID
    ctc: Decimal
    earnings: tuple[SalaryComponent, ...]
    deductions: tuple[SalaryComponent, ...]
    benefits: tuple[SalaryComponent, ...]
    effective_date: date
    employee_id: UUID | None = None
    applicant_id: UUID | None = None
    snapshot_id: UUID = field(default_factory=uuid4)

    @property
    def owner_id(self) -> UUID:
        return self.employee_id or self.applicant_id  # type: ignore[return-value]


# ===== Attendance (input + output of stage 3) =====


@dataclass(frozen=True)
class AttendanceRecord:
    """One employee's attendance for one day."""

    employee_id: UUID
    work_date: date
    status: str


@dataclass(frozen=True)
class AttendanceSnapshot:
    """Immutable per-employee, per-period attendance counters."""

    employee_id: UUID
    period: str
    total_days: int
    present_days: Decimal = Decimal("0")  # half days count 0.5
    absent_days: int = 0
    leave_days: int = 0
    holidays: int = 0
    weekly_offs: int = 0
    half_days: int = 0
    ignored_records: int = 0
    snapshot_id: UUID = field(default_factory=uuid4)

    @property
    def paid_days(self) -> Decimal:
        """Days that earn pay, before clamping to total days."""
        return self.present_days + self.leave_days + self.holidays + self.weekly_offs


@dataclass
class FreezeResult:
    """Result of aggregating attendance for many employees."""

    period: str
    snapshots: dict[UUID, AttendanceSnapshot] = field(default_factory=dict)
    failures: dict[UUID, str] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0


# ===== Payroll run (output of stage 4) =====


@dataclass(frozen=True)
class ProratedComponent:
    """A salary component scaled to one month of attendance."""

    name: str
    code: str
    formula: str
    base_annual: Decimal
    amount: Decimal  # prorated monthly amount

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "formula": self.formula,
            "base_annual": str(self.base_annual),
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProratedComponent:
        return cls(
            name=data["name"],
            code=data["code"],
            formula=data["formula"],
            base_annual=Decimal(str(data["base_annual"])),
            amount=Decimal(str(data["amount"])),
        )


@dataclass(frozen=True)
class AttendanceBreakdown:
    """How attendance scaled the month."""

    total_days: int
    paid_days: Decimal
    proration_factor: Decimal

    def to_canonical_dict(self) -> dict[str, Any]:
        return {
            "total_days": self.total_days,
            "paid_days": str(self.paid_days),
            "proration_factor": str(self.proration_factor),
        }


@dataclass(frozen=True)
class PayrollItemInput:
    """An employee paired with the snapshots payroll should use."""

    employee_id: UUID
    salary_snapshot: SalarySnapshot
    attendance_snapshot: AttendanceSnapshot


@dataclass(frozen=True)
class PayrollRunItem:
    """Resolved monthly pay for one employee."""

    employee_id: UUID
    salary_snapshot_id: UUID
    attendance_snapshot_id: UUID
    gross_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    earnings: tuple[ProratedComponent, ...]
    deductions: tuple[ProratedComponent, ...]
    benefits: tuple[ProratedComponent, ...]
    attendance: AttendanceBreakdown
    calculation_id: UUID

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict (deterministic ordering, strings for money)."""
        return {
            "employee_id": str(self.employee_id),
            "salary_snapshot_id": str(self.salary_snapshot_id),
            "attendance_snapshot_id": str(self.attendance_snapshot_id),
            "gross_earnings": str(self.gross_earnings),
            "total_deductions": str(self.total_deductions),
            "net_pay": str(self.net_pay),
            "calculation_id": str(self.calculation_id),
            "details": {
                "earnings": [c.to_canonical_dict() for c in self.earnings],
                "deductions": [c.to_canonical_dict() for c in self.deductions],
                "benefits": [c.to_canonical_dict() for c in self.benefits],
                "attendance": self.attendance.to_canonical_dict(),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayrollRunItem:
        details = data["details"]
        attendance = details["attendance"]
        return cls(
            employee_id=UUID(data["employee_id"]),
            salary_snapshot_id=UUID(data["salary_snapshot_id"]),
            attendance_snapshot_id=UUID(data["attendance_snapshot_id"]),
            gross_earnings=Decimal(data["gross_earnings"]),
            total_deductions=Decimal(data["total_deductions"]),
            net_pay=Decimal(data["net_pay"]),
            earnings=tuple(ProratedComponent.from_dict(c) for c in details["earnings"]),
            deductions=tuple(
                ProratedComponent.from_dict(c) for c in details["deductions"]
            ),
            benefits=tuple(ProratedComponent.from_dict(c) for c in details["benefits"]),
            attendance=AttendanceBreakdown(
                total_days=int(attendance["total_days"]),
                paid_days=Decimal(attendance["paid_days"]),
                proration_factor=Decimal(attendance["proration_factor"]),
            ),
            calculation_id=UUID(data["calculation_id"]),
        )


@dataclass(frozen=True)
class PayrollRunSnapshot:
    """Immutable payroll run for one tenant and period."""

    tenant_id: UUID
    period: str
    items: tuple[PayrollRunItem, ...]
    locked: bool = True
    run_id: UUID = field(default_factory=uuid4)

    def get_item(self, employee_id: UUID) -> PayrollRunItem | None:
        for item in self.items:
            if item.employee_id == employee_id:
                return item
        return None

    @property
    def total_gross(self) -> Decimal:
        return sum((i.gross_earnings for i in self.items), Decimal("0"))

    @property
    def total_net(self) -> Decimal:
        return sum((i.net_pay for i in self.items), Decimal("0"))


@dataclass
class PayrollRunResult:
    """Result of a payroll run: the locked snapshot plus what was left out."""

    snapshot: PayrollRunSnapshot
    failures: dict[UUID, str] = field(default_factory=dict)
    skipped: list[UUID] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.failures)
