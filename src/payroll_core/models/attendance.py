"""Daily attendance and attendance snapshot models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Date, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.calculators.types import AttendanceRecord, AttendanceSnapshot
from payroll_core.models.base import Base, TimestampMixin


class DailyAttendance(Base, TimestampMixin):
    """One employee's attendance status for one day.

    status is free text; the aggregator ignores values it does not know.
    """

    __tablename__ = "daily_attendance"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="daily_attendance_employee_date_unique"),
    )

    def to_record(self) -> AttendanceRecord:
        return AttendanceRecord(
            employee_id=self.employee_id,
            work_date=self.work_date,
            status=self.status,
        )


class AttendanceSnapshotRecord(Base, TimestampMixin):
    """Frozen attendance counters, one row per (employee, period)."""

    __tablename__ = "attendance_snapshot"

    snapshot_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    present_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    absent_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leave_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    holidays: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_offs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    half_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ignored_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    snapshot_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("employee_id", "period", name="attendance_snapshot_employee_period_unique"),
    )

    def apply(self, snapshot: AttendanceSnapshot) -> None:
        """Overwrite counters with a fresh aggregation (re-freeze)."""
        self.total_days = snapshot.total_days
        self.present_days = snapshot.present_days
        self.absent_days = snapshot.absent_days
        self.leave_days = snapshot.leave_days
        self.holidays = snapshot.holidays
        self.weekly_offs = snapshot.weekly_offs
        self.half_days = snapshot.half_days
        self.ignored_records = snapshot.ignored_records

    def to_snapshot(self) -> AttendanceSnapshot:
        return AttendanceSnapshot(
            snapshot_id=self.snapshot_id,
            employee_id=self.employee_id,
            period=self.period,
            total_days=self.total_days,
            present_days=Decimal(str(self.present_days)),
            absent_days=self.absent_days,
            leave_days=self.leave_days,
            holidays=self.holidays,
            weekly_offs=self.weekly_offs,
            half_days=self.half_days,
            ignored_records=self.ignored_records,
        )
