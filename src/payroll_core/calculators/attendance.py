"""Attendance aggregation: daily records -> per-period snapshot."""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from uuid import UUID

from payroll_core.calculators.types import (
    AttendanceRecord,
    AttendanceSnapshot,
    DayStatus,
    FreezeResult,
)
from payroll_core.errors import InvalidPeriodError

logger = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

HALF = Decimal("0.5")


def parse_period(period: str) -> tuple[int, int]:
    """Split a YYYY-MM period into (year, month)."""
    if not isinstance(period, str):
        raise InvalidPeriodError(period)
    match = PERIOD_PATTERN.match(period)
    if match is None:
        raise InvalidPeriodError(period)
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidPeriodError(period)
    return year, month


def days_in_period(period: str) -> int:
    """Calendar days in the period's month."""
    year, month = parse_period(period)
    return calendar.monthrange(year, month)[1]


def period_bounds(period: str) -> tuple[date, date]:
    """First and last day of the period."""
    year, month = parse_period(period)
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def aggregate(
    employee_id: UUID,
    period: str,
    records: Iterable[AttendanceRecord],
) -> AttendanceSnapshot:
    """Reduce one employee's daily records for a period to counters.

    The first record per date counts. Records with an unknown status, a
    date outside the period or a repeated date are ignored and counted in
    ignored_records.
    """
    start, end = period_bounds(period)
    total_days = (end - start).days + 1

    counts = {status: 0 for status in DayStatus}
    seen_dates: set[date] = set()
    ignored = 0

    for record in records:
        if record.work_date < start or record.work_date > end:
            ignored += 1
            continue
        if record.work_date in seen_dates:
            ignored += 1
            continue
        try:
            status = DayStatus(record.status)
        except ValueError:
            ignored += 1
            continue
        seen_dates.add(record.work_date)
        counts[status] += 1

    if ignored:
        logger.warning(
            "Ignored %d attendance record(s) for employee %s in %s",
            ignored,
            employee_id,
            period,
        )

    return AttendanceSnapshot(
        employee_id=employee_id,
        period=period,
        total_days=total_days,
        present_days=Decimal(counts[DayStatus.PRESENT]) + HALF * counts[DayStatus.HALF_DAY],
        absent_days=counts[DayStatus.ABSENT],
        leave_days=counts[DayStatus.LEAVE],
        holidays=counts[DayStatus.HOLIDAY],
        weekly_offs=counts[DayStatus.WEEKLY_OFF],
        half_days=counts[DayStatus.HALF_DAY],
        ignored_records=ignored,
    )


def aggregate_many(
    period: str,
    records_by_employee: Mapping[UUID, Iterable[AttendanceRecord]],
) -> FreezeResult:
    """Aggregate attendance for many employees independently.

    A failure for one employee is recorded and does not stop the others.
    The period itself is validated up front.
    """
    parse_period(period)
    result = FreezeResult(period=period)

    for employee_id, records in records_by_employee.items():
        try:
            result.snapshots[employee_id] = aggregate(employee_id, period, records)
        except Exception as e:
            # Bad records for one employee must not abort the freeze
            logger.warning("Attendance freeze failed for employee %s: %s", employee_id, e)
            result.failures[employee_id] = str(e)

    return result
