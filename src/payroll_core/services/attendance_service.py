"""Attendance service - freeze daily attendance into period snapshots."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_core.calculators.attendance import aggregate_many, parse_period, period_bounds
from payroll_core.calculators.types import AttendanceRecord, AttendanceSnapshot, FreezeResult
from payroll_core.errors import AttendancePeriodLockedError, NotFoundError
from payroll_core.models import (
    AttendanceSnapshotRecord,
    DailyAttendance,
    Employee,
    PayrollRunRecord,
)

logger = logging.getLogger(__name__)


class AttendanceService:
    """Service for daily attendance and attendance snapshots.

    Freezing is an upsert per (employee, period): freezing again replaces the
    counters, until a payroll run for the period exists.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_day(
        self, tenant_id: UUID, employee_id: UUID, work_date: date, status: str
    ) -> DailyAttendance:
        """Set an employee's status for one day (last write wins)."""
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.tenant_id != tenant_id:
            raise NotFoundError("Employee", employee_id)

        result = await self.session.execute(
            select(DailyAttendance).where(
                DailyAttendance.employee_id == employee_id,
                DailyAttendance.work_date == work_date,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = DailyAttendance(
                tenant_id=tenant_id,
                employee_id=employee_id,
                work_date=work_date,
                status=status,
            )
            self.session.add(row)
        else:
            row.status = status

        await self.session.flush()
        return row

    async def freeze_attendance(self, tenant_id: UUID, period: str) -> FreezeResult:
        """Aggregate every active employee's month and upsert their snapshots.

        Employees whose aggregation fails are listed in result.failures; the
        rest are still frozen.
        """
        parse_period(period)
        if await self._period_consumed(tenant_id, period):
            raise AttendancePeriodLockedError(tenant_id, period)

        employees = await self._get_active_employees(tenant_id)
        records_by_employee = await self._get_daily_records(
            tenant_id, [e.employee_id for e in employees], period
        )

        result = aggregate_many(period, records_by_employee)

        for employee_id, snapshot in list(result.snapshots.items()):
            record = await self._upsert_snapshot(tenant_id, snapshot)
            result.snapshots[employee_id] = record.to_snapshot()

        await self.session.flush()

        logger.info(
            "Attendance frozen for %d employee(s) for period %s (%d failed)",
            len(result.snapshots),
            period,
            len(result.failures),
        )
        return result

    async def get_snapshot(
        self, tenant_id: UUID, employee_id: UUID, period: str
    ) -> AttendanceSnapshot | None:
        parse_period(period)
        result = await self.session.execute(
            select(AttendanceSnapshotRecord).where(
                AttendanceSnapshotRecord.tenant_id == tenant_id,
                AttendanceSnapshotRecord.employee_id == employee_id,
                AttendanceSnapshotRecord.period == period,
            )
        )
        record = result.scalar_one_or_none()
        return record.to_snapshot() if record else None

    # === Data Loading Methods ===

    async def _period_consumed(self, tenant_id: UUID, period: str) -> bool:
        result = await self.session.execute(
            select(PayrollRunRecord.run_id).where(
                PayrollRunRecord.tenant_id == tenant_id,
                PayrollRunRecord.period == period,
            )
        )
        return result.first() is not None

    async def _get_active_employees(self, tenant_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(Employee).where(
                Employee.tenant_id == tenant_id,
                Employee.status == "active",
            )
        )
        return list(result.scalars().all())

    async def _get_daily_records(
        self, tenant_id: UUID, employee_ids: list[UUID], period: str
    ) -> dict[UUID, list[AttendanceRecord]]:
        """Daily records per employee; employees without records get an empty list."""
        records: dict[UUID, list[AttendanceRecord]] = defaultdict(list)
        for employee_id in employee_ids:
            records[employee_id] = []
        if not employee_ids:
            return records

        start, end = period_bounds(period)
        result = await self.session.execute(
            select(DailyAttendance)
            .where(
                DailyAttendance.tenant_id == tenant_id,
                DailyAttendance.employee_id.in_(employee_ids),
                DailyAttendance.work_date >= start,
                DailyAttendance.work_date <= end,
            )
            .order_by(DailyAttendance.work_date)
        )
        for row in result.scalars().all():
            records[row.employee_id].append(row.to_record())
        return records

    async def _upsert_snapshot(
        self, tenant_id: UUID, snapshot: AttendanceSnapshot
    ) -> AttendanceSnapshotRecord:
        result = await self.session.execute(
            select(AttendanceSnapshotRecord).where(
                AttendanceSnapshotRecord.employee_id == snapshot.employee_id,
                AttendanceSnapshotRecord.period == snapshot.period,
            )
        )
        record = result.scalar_one_or_none()

        if record is None:
            record = AttendanceSnapshotRecord(
                snapshot_id=snapshot.snapshot_id,
                tenant_id=tenant_id,
                employee_id=snapshot.employee_id,
                period=snapshot.period,
                snapshot_version=1,
            )
            record.apply(snapshot)
            self.session.add(record)
        else:
            record.apply(snapshot)
            record.snapshot_version += 1

        return record
