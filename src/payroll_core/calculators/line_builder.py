"""Component line builder: rounding, proration and hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Iterable

from payroll_core.calculators.types import ProratedComponent, SalaryComponent


class ComponentLineBuilder:
    """Builds salary and payroll lines.

    Rounding (non-negotiable):
    - Every stored amount is rounded to 2 decimals, ROUND_HALF_UP
    - Proration factor is kept at full Decimal precision
    - Totals are rounded again after summing rounded lines
    """

    OUTPUT_PRECISION = Decimal("0.01")
    MONTHS_PER_YEAR = Decimal("12")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places.

        Precision is widened for the call so large amounts keep every
        integer digit.
        """
        with localcontext() as ctx:
            if amount.is_finite():
                ctx.prec = max(ctx.prec, amount.adjusted() + 3)
            return amount.quantize(
                ComponentLineBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP
            )

    @staticmethod
    def to_decimal(value: Any) -> Decimal:
        """Coerce a number or numeric string to Decimal without float noise."""
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))

    @staticmethod
    def proration_factor(paid_days: Decimal, total_days: int) -> Decimal:
        """Paid days over total days, paid days clamped to total days."""
        effective = min(paid_days, Decimal(total_days))
        return effective / Decimal(total_days)

    @staticmethod
    def monthly_amount(annual_amount: Decimal, factor: Decimal) -> Decimal:
        """round(annual / 12 * factor, 2)."""
        return ComponentLineBuilder.round_to_cents(
            annual_amount / ComponentLineBuilder.MONTHS_PER_YEAR * factor
        )

    @staticmethod
    def create_salary_line(
        name: str, code: str, formula: str, amount: Decimal
    ) -> SalaryComponent:
        """Create a resolved annual salary line."""
        return SalaryComponent(
            name=name,
            code=code,
            formula=formula,
            amount=ComponentLineBuilder.round_to_cents(amount),
        )

    @staticmethod
    def prorate_line(component: SalaryComponent, factor: Decimal) -> ProratedComponent:
        """Scale an annual line to a month, keeping the annual base."""
        return ProratedComponent(
            name=component.name,
            code=component.code,
            formula=component.formula,
            base_annual=component.amount,
            amount=ComponentLineBuilder.monthly_amount(component.amount, factor),
        )

    @staticmethod
    def prorate_lines(
        components: Iterable[SalaryComponent], factor: Decimal
    ) -> tuple[ProratedComponent, ...]:
        return tuple(ComponentLineBuilder.prorate_line(c, factor) for c in components)

    @staticmethod
    def sum_lines(lines: Iterable[SalaryComponent | ProratedComponent]) -> Decimal:
        """Sum line amounts and round the total."""
        total = Decimal("0")
        for line in lines:
            total += line.amount
        return ComponentLineBuilder.round_to_cents(total)

    @staticmethod
    def compute_fingerprint(data: Any) -> str:
        """Deterministic hash of JSON-serialisable data."""
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
