"""ORM models for the storage collaborator."""

from payroll_core.models.attendance import AttendanceSnapshotRecord, DailyAttendance
from payroll_core.models.base import Base, TimestampMixin
from payroll_core.models.payroll import PayrollRunRecord
from payroll_core.models.people import Applicant, Employee
from payroll_core.models.salary import SalarySnapshotRecord, SalaryTemplateRecord

__all__ = [
    "Applicant",
    "AttendanceSnapshotRecord",
    "Base",
    "DailyAttendance",
    "Employee",
    "PayrollRunRecord",
    "SalarySnapshotRecord",
    "SalaryTemplateRecord",
    "TimestampMixin",
]
