"""ORM-level immutability for snapshots.

SQLAlchemy fires before_update / before_delete during flush, before any SQL
reaches the database. The listeners below raise ImmutabilityViolationError
and the flush is aborted.

Entity                 | When immutable
-----------------------|---------------------------------
SalarySnapshotRecord   | always (corrections are new rows)
PayrollRunRecord       | once locked

Attendance snapshots are replaced by re-freezing until a payroll run for
their period exists; that rule lives in AttendanceService because it depends
on other rows.
"""

from __future__ import annotations

import logging

from sqlalchemy import event, inspect

from payroll_core.errors import ImmutabilityViolationError
from payroll_core.models import PayrollRunRecord, SalarySnapshotRecord

logger = logging.getLogger(__name__)

_registered = False


def _blocked(entity_type: str, entity_id: str, operation: str, reason: str) -> None:
    logger.error(
        "Blocked %s of %s %s: %s",
        operation,
        entity_type,
        entity_id,
        reason,
        extra={"entity_type": entity_type, "entity_id": entity_id, "operation": operation},
    )
    raise ImmutabilityViolationError(entity_type, entity_id, reason)


def _check_salary_snapshot_update(mapper, connection, target):
    _blocked(
        "SalarySnapshot",
        str(target.snapshot_id),
        "UPDATE",
        "salary snapshots are immutable; create a new snapshot instead",
    )


def _check_salary_snapshot_delete(mapper, connection, target):
    _blocked(
        "SalarySnapshot",
        str(target.snapshot_id),
        "DELETE",
        "salary snapshots are immutable",
    )


def _was_locked(target: PayrollRunRecord) -> bool:
    """Locked before this flush (unlocking a locked run is itself blocked)."""
    history = inspect(target).attrs.locked.history
    if history.deleted:
        return bool(history.deleted[0])
    return bool(target.locked)


def _check_payroll_run_update(mapper, connection, target):
    if _was_locked(target):
        _blocked(
            "PayrollRun",
            str(target.run_id),
            "UPDATE",
            "locked payroll runs cannot be recomputed in place",
        )


def _check_payroll_run_delete(mapper, connection, target):
    if _was_locked(target):
        _blocked(
            "PayrollRun",
            str(target.run_id),
            "DELETE",
            "locked payroll runs cannot be deleted",
        )


def register_immutability_listeners() -> None:
    """Register the listeners once per process."""
    global _registered
    if _registered:
        return

    event.listen(SalarySnapshotRecord, "before_update", _check_salary_snapshot_update)
    event.listen(SalarySnapshotRecord, "before_delete", _check_salary_snapshot_delete)
    event.listen(PayrollRunRecord, "before_update", _check_payroll_run_update)
    event.listen(PayrollRunRecord, "before_delete", _check_payroll_run_delete)

    _registered = True
