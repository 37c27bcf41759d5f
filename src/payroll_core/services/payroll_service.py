"""Payroll service - pair snapshots, run payroll, read payslips."""

from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_core.calculators.attendance import parse_period, period_bounds
from payroll_core.calculators.payroll_resolver import PayrollResolver
from payroll_core.calculators.types import (
    PayrollItemInput,
    PayrollRunResult,
    PayrollRunSnapshot,
)
from payroll_core.errors import NotFoundError, PayrollRunLockedError, ValidationError
from payroll_core.models import (
    AttendanceSnapshotRecord,
    Employee,
    PayrollRunRecord,
    SalarySnapshotRecord,
)
from payroll_core.schemas import PayslipSummary, PayslipView

logger = logging.getLogger(__name__)


class PayrollService:
    """Service for payroll runs.

    Operations:
    - run_payroll: pair salary + attendance snapshots for active employees,
      resolve them and store one locked run per (tenant, period)
    - get_payroll_run / get_payslip / list_payslips: read stored runs
    """

    def __init__(self, session: AsyncSession, resolver: PayrollResolver | None = None):
        self.session = session
        self.resolver = resolver or PayrollResolver()

    async def collect_items(
        self, tenant_id: UUID, period: str
    ) -> tuple[list[PayrollItemInput], list[UUID]]:
        """Pair each active employee with their snapshots for the period.

        Returns (items, skipped). An employee is skipped when either the
        salary snapshot effective by the period end or the attendance
        snapshot for the period is missing.
        """
        _, period_end = period_bounds(period)

        result = await self.session.execute(
            select(Employee)
            .where(Employee.tenant_id == tenant_id, Employee.status == "active")
            .order_by(Employee.employee_id)
        )
        employees = list(result.scalars().all())

        items: list[PayrollItemInput] = []
        skipped: list[UUID] = []
        for employee in employees:
            salary = await self._get_salary_snapshot(tenant_id, employee.employee_id, period_end)
            attendance = await self._get_attendance_snapshot(
                tenant_id, employee.employee_id, period
            )
            if salary is None or attendance is None:
                skipped.append(employee.employee_id)
                continue
            items.append(
                PayrollItemInput(
                    employee_id=employee.employee_id,
                    salary_snapshot=salary.to_snapshot(),
                    attendance_snapshot=attendance.to_snapshot(),
                )
            )

        return items, skipped

    async def run_payroll(self, tenant_id: UUID, period: str) -> PayrollRunResult:
        """Resolve and store the payroll run for a period.

        Raises PayrollRunLockedError if a run for (tenant, period) exists.
        """
        parse_period(period)
        if await self._get_run_record(tenant_id, period) is not None:
            raise PayrollRunLockedError(tenant_id, period)

        items, skipped = await self.collect_items(tenant_id, period)
        if skipped:
            logger.warning(
                "Skipping %d employee(s) without salary or attendance snapshot for %s: %s",
                len(skipped),
                period,
                ", ".join(str(s) for s in skipped),
            )
        if not items:
            raise ValidationError(
                f"No valid snapshot pairs found for {period}. Ensure salary "
                "assignment and attendance freezing are complete."
            )

        result = self.resolver.run_payroll(tenant_id, period, items)
        result.skipped = skipped

        self.session.add(PayrollRunRecord.from_snapshot(result.snapshot))
        try:
            await self.session.flush()
        except DBIntegrityError as e:
            # Another run for the same (tenant, period) won the race
            raise PayrollRunLockedError(tenant_id, period) from e

        return result

    async def get_payroll_run(
        self, tenant_id: UUID, period: str
    ) -> PayrollRunSnapshot | None:
        record = await self._get_run_record(tenant_id, period)
        return record.to_snapshot() if record else None

    async def get_payslip(
        self, tenant_id: UUID, employee_id: UUID, period: str
    ) -> PayslipView:
        """One employee's payslip from the stored run."""
        record = await self._get_run_record(tenant_id, period)
        if record is None:
            raise NotFoundError("PayrollRun", period)

        item = record.to_snapshot().get_item(employee_id)
        if item is None:
            raise NotFoundError("Payslip", f"{employee_id} in {period}")

        employee = await self.session.get(Employee, employee_id)
        return PayslipView.from_item(
            item,
            period=period,
            employee_name=employee.full_name if employee else None,
            run_date=record.created_at,
        )

    async def list_payslips(self, tenant_id: UUID, employee_id: UUID) -> list[PayslipSummary]:
        """Every run that paid the employee, newest period first."""
        result = await self.session.execute(
            select(PayrollRunRecord)
            .where(PayrollRunRecord.tenant_id == tenant_id)
            .order_by(PayrollRunRecord.period.desc())
        )

        payslips: list[PayslipSummary] = []
        for record in result.scalars().all():
            if employee_id not in record.employee_ids():
                continue
            item = record.to_snapshot().get_item(employee_id)
            payslips.append(
                PayslipSummary(
                    period=record.period,
                    net_pay=item.net_pay,  # type: ignore[union-attr]
                    run_date=record.created_at,
                    locked=record.locked,
                )
            )
        return payslips

    # === Data Loading Methods ===

    async def _get_run_record(self, tenant_id: UUID, period: str) -> PayrollRunRecord | None:
        result = await self.session.execute(
            select(PayrollRunRecord).where(
                PayrollRunRecord.tenant_id == tenant_id,
                PayrollRunRecord.period == period,
            )
        )
        return result.scalar_one_or_none()

    async def _get_salary_snapshot(
        self, tenant_id: UUID, employee_id: UUID, period_end: date
    ) -> SalarySnapshotRecord | None:
        result = await self.session.execute(
            select(SalarySnapshotRecord)
            .where(
                SalarySnapshotRecord.tenant_id == tenant_id,
                SalarySnapshotRecord.employee_id == employee_id,
                SalarySnapshotRecord.effective_date <= period_end,
            )
            .order_by(
                SalarySnapshotRecord.effective_date.desc(),
                SalarySnapshotRecord.created_at.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _get_attendance_snapshot(
        self, tenant_id: UUID, employee_id: UUID, period: str
    ) -> AttendanceSnapshotRecord | None:
        result = await self.session.execute(
            select(AttendanceSnapshotRecord).where(
                AttendanceSnapshotRecord.tenant_id == tenant_id,
                AttendanceSnapshotRecord.employee_id == employee_id,
                AttendanceSnapshotRecord.period == period,
            )
        )
        return result.scalar_one_or_none()
