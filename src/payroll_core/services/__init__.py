"""Storage-backed services around the resolution pipeline."""

from payroll_core.services.attendance_service import AttendanceService
from payroll_core.services.payroll_service import PayrollService
from payroll_core.services.salary_service import SalaryService

__all__ = [
    "AttendanceService",
    "PayrollService",
    "SalaryService",
]
