"""Salary and payroll resolution pipeline."""

from payroll_core.calculators.attendance import aggregate, aggregate_many, parse_period
from payroll_core.calculators.formula import FormulaEvaluator
from payroll_core.calculators.line_builder import ComponentLineBuilder
from payroll_core.calculators.payroll_resolver import PayrollResolver
from payroll_core.calculators.salary_resolver import SalaryResolver, derive_component_code

__all__ = [
    "ComponentLineBuilder",
    "FormulaEvaluator",
    "PayrollResolver",
    "SalaryResolver",
    "aggregate",
    "aggregate_many",
    "derive_component_code",
    "parse_period",
]
