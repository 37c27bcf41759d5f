"""Tests for attendance aggregation."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_core.calculators.attendance import (
    aggregate,
    aggregate_many,
    days_in_period,
    parse_period,
    period_bounds,
)
from payroll_core.calculators.types import AttendanceRecord, DayStatus
from payroll_core.errors import InvalidPeriodError


def records_for(employee_id, start: date, statuses: list[str]) -> list[AttendanceRecord]:
    """One record per consecutive day starting at start."""
    return [
        AttendanceRecord(employee_id=employee_id, work_date=start + timedelta(days=i), status=s)
        for i, s in enumerate(statuses)
    ]


class TestPeriods:
    """Test period parsing and calendar lengths."""

    def test_parse_period(self):
        assert parse_period("2024-01") == (2024, 1)
        assert parse_period("1999-12") == (1999, 12)

    @pytest.mark.parametrize(
        "period", ["2024-13", "2024-00", "2024-1", "24-01", "2024/01", "2024-01-01", "", None, 202401]
    )
    def test_invalid_period(self, period):
        with pytest.raises(InvalidPeriodError):
            parse_period(period)

    @pytest.mark.parametrize(
        "period, days",
        [
            ("2024-01", 31),
            ("2024-02", 29),  # leap year
            ("2023-02", 28),
            ("2100-02", 28),  # not a leap year
            ("2000-02", 29),
            ("2024-04", 30),
        ],
    )
    def test_days_in_period(self, period, days):
        assert days_in_period(period) == days

    def test_period_bounds(self):
        assert period_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))


class TestAggregate:
    """Test reduction of daily records to a snapshot."""

    def test_counts_each_status(self):
        employee_id = uuid4()
        statuses = (
            ["present"] * 20
            + ["leave"] * 2
            + ["holiday"] * 2
            + ["weekly_off"] * 2
            + ["absent"] * 3
            + ["half_day"] * 2
        )
        snapshot = aggregate(employee_id, "2024-01", records_for(employee_id, date(2024, 1, 1), statuses))

        assert snapshot.employee_id == employee_id
        assert snapshot.period == "2024-01"
        assert snapshot.total_days == 31
        assert snapshot.present_days == Decimal("21")  # 20 + 2 * 0.5
        assert snapshot.leave_days == 2
        assert snapshot.holidays == 2
        assert snapshot.weekly_offs == 2
        assert snapshot.absent_days == 3
        assert snapshot.half_days == 2
        assert snapshot.ignored_records == 0
        assert snapshot.paid_days == Decimal("27")

    def test_half_day_counts_half(self):
        employee_id = uuid4()
        snapshot = aggregate(
            employee_id, "2024-01", records_for(employee_id, date(2024, 1, 1), ["half_day"])
        )
        assert snapshot.present_days == Decimal("0.5")
        assert snapshot.half_days == 1

    def test_no_records(self):
        snapshot = aggregate(uuid4(), "2024-02", [])
        assert snapshot.total_days == 29
        assert snapshot.present_days == Decimal("0")
        assert snapshot.paid_days == Decimal("0")

    def test_total_days_independent_of_records(self):
        """Missing days are not counted anywhere but total_days stays calendar length."""
        employee_id = uuid4()
        snapshot = aggregate(
            employee_id, "2024-04", records_for(employee_id, date(2024, 4, 1), ["present"] * 5)
        )
        assert snapshot.total_days == 30
        assert snapshot.present_days == Decimal("5")

    def test_unknown_status_ignored(self):
        employee_id = uuid4()
        snapshot = aggregate(
            employee_id,
            "2024-01",
            records_for(employee_id, date(2024, 1, 1), ["present", "on_site", "PRESENT", ""]),
        )
        assert snapshot.present_days == Decimal("1")
        assert snapshot.ignored_records == 3

    def test_records_outside_period_ignored(self):
        employee_id = uuid4()
        records = records_for(employee_id, date(2023, 12, 31), ["present", "present"])
        records += records_for(employee_id, date(2024, 2, 1), ["present"])
        snapshot = aggregate(employee_id, "2024-01", records)
        assert snapshot.present_days == Decimal("1")
        assert snapshot.ignored_records == 2

    def test_first_record_per_date_wins(self):
        employee_id = uuid4()
        day = date(2024, 1, 10)
        records = [
            AttendanceRecord(employee_id=employee_id, work_date=day, status="leave"),
            AttendanceRecord(employee_id=employee_id, work_date=day, status="present"),
        ]
        snapshot = aggregate(employee_id, "2024-01", records)
        assert snapshot.leave_days == 1
        assert snapshot.present_days == Decimal("0")
        assert snapshot.ignored_records == 1

    def test_invalid_period(self):
        with pytest.raises(InvalidPeriodError):
            aggregate(uuid4(), "2024-13", [])

    def test_snapshots_have_distinct_ids(self):
        employee_id = uuid4()
        assert aggregate(employee_id, "2024-01", []).snapshot_id != aggregate(
            employee_id, "2024-01", []
        ).snapshot_id


class TestAggregateMany:
    """Test freezing many employees at once."""

    def test_failure_isolated_to_one_employee(self):
        good, bad = uuid4(), uuid4()
        result = aggregate_many(
            "2024-01",
            {
                good: records_for(good, date(2024, 1, 1), ["present"] * 3),
                bad: [AttendanceRecord(employee_id=bad, work_date=None, status="present")],
            },
        )

        assert set(result.snapshots) == {good}
        assert result.snapshots[good].present_days == Decimal("3")
        assert bad in result.failures
        assert result.has_failures

    def test_employees_without_records_get_snapshot(self):
        employee_id = uuid4()
        result = aggregate_many("2024-01", {employee_id: []})
        assert result.snapshots[employee_id].total_days == 31
        assert not result.has_failures

    def test_invalid_period_rejected_up_front(self):
        with pytest.raises(InvalidPeriodError):
            aggregate_many("January", {uuid4(): []})


class TestAttendanceProperties:
    """Property tests over generated months."""

    @settings(max_examples=50, deadline=None)
    @given(
        month=st.integers(min_value=1, max_value=12),
        statuses=st.lists(
            st.sampled_from([s.value for s in DayStatus] + ["unknown"]),
            max_size=40,
        ),
    )
    def test_counters_never_exceed_total_days(self, month, statuses):
        employee_id = uuid4()
        period = f"2024-{month:02d}"
        snapshot = aggregate(
            employee_id, period, records_for(employee_id, date(2024, month, 1), statuses)
        )

        counted = (
            snapshot.present_days
            + Decimal(snapshot.half_days) / 2
            + snapshot.absent_days
            + snapshot.leave_days
            + snapshot.holidays
            + snapshot.weekly_offs
        )
        assert counted <= snapshot.total_days
        assert snapshot.paid_days <= snapshot.total_days
        assert snapshot.present_days >= 0
