"""Pydantic schemas for the shapes exchanged with collaborators.

Field names follow the JSON contract (camelCase); Python attributes are
snake_case and both are accepted on input.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from payroll_core.calculators.types import (
    AttendanceSnapshot,
    ComponentDefinition,
    PayrollRunItem,
    PayrollRunSnapshot,
    ProratedComponent,
    SalaryComponent,
    SalarySnapshot,
    SalaryTemplate,
)


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Salary template (input)
# ============================================================================


class ComponentDefinitionPayload(CamelModel):
    """One template component: {name, code?, formula?, annualAmount?, monthlyAmount?}."""

    name: str
    code: str | None = None
    formula: str | None = None
    annual_amount: Decimal | None = None
    monthly_amount: Decimal | None = None

    @field_validator("code", "formula")
    @classmethod
    def _blank_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    def to_definition(self) -> ComponentDefinition:
        return ComponentDefinition(
            name=self.name,
            code=self.code,
            formula=self.formula,
            annual_amount=self.annual_amount,
            monthly_amount=self.monthly_amount,
        )


class SalaryTemplatePayload(CamelModel):
    """Salary template with its three component lists."""

    name: str = "Salary Template"
    earnings: list[ComponentDefinitionPayload] = Field(default_factory=list)
    employer_deductions: list[ComponentDefinitionPayload] = Field(default_factory=list)
    employee_deductions: list[ComponentDefinitionPayload] = Field(default_factory=list)

    def to_template(self, template_id: UUID | None = None, version: int = 1) -> SalaryTemplate:
        return SalaryTemplate(
            name=self.name,
            earnings=tuple(c.to_definition() for c in self.earnings),
            employer_deductions=tuple(c.to_definition() for c in self.employer_deductions),
            employee_deductions=tuple(c.to_definition() for c in self.employee_deductions),
            template_id=template_id,
            version=version,
        )

    def to_storage(self) -> dict[str, list[dict[str, Any]]]:
        """Component lists as JSON-ready dicts for SalaryTemplateRecord."""
        dump = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return {
            "earnings": dump["earnings"],
            "employer_deductions": dump["employerDeductions"],
            "employee_deductions": dump["employeeDeductions"],
        }


# ============================================================================
# Salary snapshot (output)
# ============================================================================


class SalaryComponentView(CamelModel):
    name: str
    code: str
    amount: Decimal
    formula: str

    @classmethod
    def from_component(cls, component: SalaryComponent) -> SalaryComponentView:
        return cls(
            name=component.name,
            code=component.code,
            amount=component.amount,
            formula=component.formula,
        )


class SalarySnapshotView(CamelModel):
    """{employee|applicant, tenant, ctc, earnings, deductions, benefits, effectiveDate}."""

    id: UUID
    employee: UUID | None = None
    applicant: UUID | None = None
    tenant: UUID
    ctc: Decimal
    earnings: list[SalaryComponentView]
    deductions: list[SalaryComponentView]
    benefits: list[SalaryComponentView]
    effective_date: date

    @classmethod
    def from_snapshot(cls, snapshot: SalarySnapshot) -> SalarySnapshotView:
        return cls(
            id=snapshot.snapshot_id,
            employee=snapshot.employee_id,
            applicant=snapshot.applicant_id,
            tenant=snapshot.tenant_id,
            ctc=snapshot.ctc,
            earnings=[SalaryComponentView.from_component(c) for c in snapshot.earnings],
            deductions=[SalaryComponentView.from_component(c) for c in snapshot.deductions],
            benefits=[SalaryComponentView.from_component(c) for c in snapshot.benefits],
            effective_date=snapshot.effective_date,
        )


# ============================================================================
# Attendance snapshot (output)
# ============================================================================


class AttendanceSnapshotView(CamelModel):
    """{employee, period, totalDays, presentDays, absentDays, leaveDays, holidays, weeklyOffs, halfDays}."""

    id: UUID
    employee: UUID
    period: str
    total_days: int
    present_days: Decimal
    absent_days: int
    leave_days: int
    holidays: int
    weekly_offs: int
    half_days: int
    ignored_records: int = 0

    @classmethod
    def from_snapshot(cls, snapshot: AttendanceSnapshot) -> AttendanceSnapshotView:
        return cls(
            id=snapshot.snapshot_id,
            employee=snapshot.employee_id,
            period=snapshot.period,
            total_days=snapshot.total_days,
            present_days=snapshot.present_days,
            absent_days=snapshot.absent_days,
            leave_days=snapshot.leave_days,
            holidays=snapshot.holidays,
            weekly_offs=snapshot.weekly_offs,
            half_days=snapshot.half_days,
            ignored_records=snapshot.ignored_records,
        )


# ============================================================================
# Payroll run (output)
# ============================================================================


class ProratedComponentView(CamelModel):
    name: str
    code: str
    formula: str
    base_annual: Decimal
    amount: Decimal

    @classmethod
    def from_component(cls, component: ProratedComponent) -> ProratedComponentView:
        return cls(
            name=component.name,
            code=component.code,
            formula=component.formula,
            base_annual=component.base_annual,
            amount=component.amount,
        )


class AttendanceBreakdownView(CamelModel):
    total_days: int
    paid_days: Decimal
    proration_factor: Decimal


class PayrollItemDetailsView(CamelModel):
    earnings: list[ProratedComponentView]
    deductions: list[ProratedComponentView]
    benefits: list[ProratedComponentView]
    attendance: AttendanceBreakdownView


class PayrollRunItemView(CamelModel):
    employee: UUID
    salary_snapshot_ref: UUID
    attendance_snapshot_ref: UUID
    gross_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    calculation_id: UUID
    details: PayrollItemDetailsView

    @classmethod
    def from_item(cls, item: PayrollRunItem) -> PayrollRunItemView:
        return cls(
            employee=item.employee_id,
            salary_snapshot_ref=item.salary_snapshot_id,
            attendance_snapshot_ref=item.attendance_snapshot_id,
            gross_earnings=item.gross_earnings,
            total_deductions=item.total_deductions,
            net_pay=item.net_pay,
            calculation_id=item.calculation_id,
            details=PayrollItemDetailsView(
                earnings=[ProratedComponentView.from_component(c) for c in item.earnings],
                deductions=[ProratedComponentView.from_component(c) for c in item.deductions],
                benefits=[ProratedComponentView.from_component(c) for c in item.benefits],
                attendance=AttendanceBreakdownView(
                    total_days=item.attendance.total_days,
                    paid_days=item.attendance.paid_days,
                    proration_factor=item.attendance.proration_factor,
                ),
            ),
        )


class PayrollRunView(CamelModel):
    """{tenant, period, items, locked}."""

    id: UUID
    tenant: UUID
    period: str
    items: list[PayrollRunItemView]
    locked: bool

    @classmethod
    def from_snapshot(cls, snapshot: PayrollRunSnapshot) -> PayrollRunView:
        return cls(
            id=snapshot.run_id,
            tenant=snapshot.tenant_id,
            period=snapshot.period,
            items=[PayrollRunItemView.from_item(i) for i in snapshot.items],
            locked=snapshot.locked,
        )


# ============================================================================
# Payslips
# ============================================================================


class PayslipTotals(CamelModel):
    gross_earnings: Decimal
    total_deductions: Decimal
    net_pay: Decimal


class PayslipView(CamelModel):
    """One employee's slice of a payroll run."""

    employee: UUID
    employee_name: str | None = None
    period: str
    earnings: list[ProratedComponentView]
    deductions: list[ProratedComponentView]
    benefits: list[ProratedComponentView]
    attendance: AttendanceBreakdownView
    totals: PayslipTotals
    run_date: datetime | None = None

    @classmethod
    def from_item(
        cls,
        item: PayrollRunItem,
        period: str,
        employee_name: str | None = None,
        run_date: datetime | None = None,
    ) -> PayslipView:
        details = PayrollRunItemView.from_item(item).details
        return cls(
            employee=item.employee_id,
            employee_name=employee_name,
            period=period,
            earnings=details.earnings,
            deductions=details.deductions,
            benefits=details.benefits,
            attendance=details.attendance,
            totals=PayslipTotals(
                gross_earnings=item.gross_earnings,
                total_deductions=item.total_deductions,
                net_pay=item.net_pay,
            ),
            run_date=run_date,
        )


class PayslipSummary(CamelModel):
    period: str
    net_pay: Decimal
    run_date: datetime | None = None
    locked: bool
