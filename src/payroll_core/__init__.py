"""Salary and payroll resolution core for a multi-tenant HR suite."""

__version__ = "1.0.0"
