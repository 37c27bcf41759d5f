"""Payroll resolution: salary + attendance snapshots -> locked payroll run."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from payroll_core.calculators.attendance import parse_period
from payroll_core.calculators.line_builder import ComponentLineBuilder
from payroll_core.calculators.types import (
    AttendanceBreakdown,
    AttendanceSnapshot,
    PayrollItemInput,
    PayrollRunItem,
    PayrollRunResult,
    PayrollRunSnapshot,
    SalarySnapshot,
)
from payroll_core.config import get_settings
from payroll_core.errors import PayrollRunError, ProrationError, ValidationError

logger = logging.getLogger(__name__)


class PayrollResolver:
    """Prorates salary snapshots against frozen attendance.

    Per item (stable order):
    1) paid_days = present + leave + holidays + weekly_offs
    2) factor = min(paid_days, total_days) / total_days
    3) every earning, deduction and benefit -> round(annual / 12 * factor, 2)
    4) gross = sum(earnings), deductions = sum(deductions), net = gross - deductions
       (benefits are employer cost and stay out of gross and net)

    Items are independent: a failing item is reported, the rest still resolve.
    """

    def __init__(self, engine_version: str | None = None):
        if engine_version is None:
            engine_version = get_settings().engine_version
        self.engine_version = engine_version

    def run_payroll(
        self,
        tenant_id: UUID,
        period: str,
        items: Sequence[PayrollItemInput],
    ) -> PayrollRunResult:
        """Resolve all items into one locked payroll run snapshot."""
        parse_period(period)
        if tenant_id is None:
            raise ValidationError("tenant_id is required")
        if not items:
            raise ValidationError("No items to process")

        run_items: list[PayrollRunItem] = []
        failures: dict[UUID, str] = {}
        seen: set[UUID] = set()

        for item in items:
            if item.employee_id in seen:
                failures[item.employee_id] = "duplicate payroll item"
                continue
            seen.add(item.employee_id)

            try:
                run_items.append(self.resolve_item(tenant_id, period, item))
            except ProrationError as e:
                failures[item.employee_id] = e.reason
            except Exception as e:
                # Catch unexpected errors so other employees still resolve
                logger.exception("Unexpected error resolving payroll for %s", item.employee_id)
                failures[item.employee_id] = f"Unexpected error: {e}"

        for employee_id, reason in failures.items():
            logger.warning(
                "Payroll item failed for employee %s in %s: %s", employee_id, period, reason
            )

        if not run_items:
            raise PayrollRunError(period, failures)

        snapshot = PayrollRunSnapshot(
            tenant_id=tenant_id,
            period=period,
            items=tuple(run_items),
            locked=True,
        )
        logger.info(
            "Payroll run %s for %s: %d item(s), %d failure(s), gross %s, net %s",
            snapshot.run_id,
            period,
            len(run_items),
            len(failures),
            snapshot.total_gross,
            snapshot.total_net,
        )
        return PayrollRunResult(snapshot=snapshot, failures=failures)

    def resolve_item(
        self, tenant_id: UUID, period: str, item: PayrollItemInput
    ) -> PayrollRunItem:
        """Prorate one employee's salary for the period."""
        salary = item.salary_snapshot
        attendance = item.attendance_snapshot
        self._validate_item(period, item)

        total_days = attendance.total_days
        paid_days = min(attendance.paid_days, ComponentLineBuilder.to_decimal(total_days))
        factor = ComponentLineBuilder.proration_factor(attendance.paid_days, total_days)

        earnings = ComponentLineBuilder.prorate_lines(salary.earnings, factor)
        deductions = ComponentLineBuilder.prorate_lines(salary.deductions, factor)
        benefits = ComponentLineBuilder.prorate_lines(salary.benefits, factor)

        gross = ComponentLineBuilder.sum_lines(earnings)
        total_deductions = ComponentLineBuilder.sum_lines(deductions)
        net = ComponentLineBuilder.round_to_cents(gross - total_deductions)

        return PayrollRunItem(
            employee_id=item.employee_id,
            salary_snapshot_id=salary.snapshot_id,
            attendance_snapshot_id=attendance.snapshot_id,
            gross_earnings=gross,
            total_deductions=total_deductions,
            net_pay=net,
            earnings=earnings,
            deductions=deductions,
            benefits=benefits,
            attendance=AttendanceBreakdown(
                total_days=total_days,
                paid_days=paid_days,
                proration_factor=factor,
            ),
            calculation_id=self._generate_calculation_id(
                tenant_id, period, item.employee_id, salary, attendance
            ),
        )

    def _validate_item(self, period: str, item: PayrollItemInput) -> None:
        salary = item.salary_snapshot
        attendance = item.attendance_snapshot

        if salary is None:
            raise ProrationError(item.employee_id, "missing salary snapshot")
        if attendance is None:
            raise ProrationError(item.employee_id, "missing attendance snapshot")
        if salary.employee_id != item.employee_id:
            raise ProrationError(
                item.employee_id,
                f"salary snapshot {salary.snapshot_id} belongs to another owner",
            )
        if attendance.employee_id != item.employee_id:
            raise ProrationError(
                item.employee_id,
                f"attendance snapshot {attendance.snapshot_id} belongs to another employee",
            )
        if attendance.period != period:
            raise ProrationError(
                item.employee_id,
                f"attendance snapshot is for {attendance.period}, not {period}",
            )
        if not attendance.total_days or attendance.total_days <= 0:
            raise ProrationError(
                item.employee_id, "attendance snapshot has no total days"
            )

    def _generate_calculation_id(
        self,
        tenant_id: UUID,
        period: str,
        employee_id: UUID,
        salary: SalarySnapshot,
        attendance: AttendanceSnapshot,
    ) -> UUID:
        """Generate deterministic calculation ID from everything the item used."""
        data: dict[str, Any] = {
            "tenant_id": str(tenant_id),
            "period": period,
            "employee_id": str(employee_id),
            "engine_version": self.engine_version,
            "salary": {
                "snapshot_id": str(salary.snapshot_id),
                "ctc": str(salary.ctc),
                "earnings": [c.to_canonical_dict() for c in salary.earnings],
                "deductions": [c.to_canonical_dict() for c in salary.deductions],
                "benefits": [c.to_canonical_dict() for c in salary.benefits],
            },
            "attendance": {
                "snapshot_id": str(attendance.snapshot_id),
                "total_days": attendance.total_days,
                "present_days": str(attendance.present_days),
                "leave_days": attendance.leave_days,
                "holidays": attendance.holidays,
                "weekly_offs": attendance.weekly_offs,
            },
        }
        fingerprint = ComponentLineBuilder.compute_fingerprint(data)
        return UUID(hex=fingerprint)
