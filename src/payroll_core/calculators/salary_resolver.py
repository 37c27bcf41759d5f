"""Salary resolution: template + annual CTC -> salary snapshot."""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from payroll_core.calculators.formula import FormulaError, FormulaEvaluator
from payroll_core.calculators.line_builder import ComponentLineBuilder
from payroll_core.calculators.types import (
    ComponentDefinition,
    ComponentKind,
    SalaryBreakdown,
    SalaryComponent,
    SalarySnapshot,
    SalaryTemplate,
)
from payroll_core.config import get_settings
from payroll_core.errors import (
    ComponentResolutionError,
    DuplicateComponentCodeError,
    SalaryIntegrityError,
    TemplateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

CTC_VARIABLE = "CTC"
# Largest CTC a Numeric(14, 2) column holds
MAX_CTC = Decimal("999999999999.99")

_WHITESPACE = re.compile(r"\s+")


def derive_component_code(name: str) -> str:
    """Derive a component code from its display name.

    "Special Allowance" -> "SPECIAL_ALLOWANCE"

    Leading and trailing whitespace is dropped first, so " Basic Pay" gives
    "BASIC_PAY" rather than "_BASIC_PAY".
    """
    return _WHITESPACE.sub("_", name.strip()).upper()


def component_code(definition: ComponentDefinition) -> str:
    """Explicit code if set, otherwise derived from the name."""
    if definition.code:
        return definition.code
    if not definition.name or not definition.name.strip():
        raise TemplateError("Component needs a name or an explicit code")
    return derive_component_code(definition.name)


def component_formula(definition: ComponentDefinition) -> str:
    """Formula text for a definition.

    An explicit formula wins over annual_amount, which wins over
    monthly_amount * 12.
    """
    if definition.formula is not None and definition.formula.strip():
        return definition.formula.strip()
    if definition.annual_amount is not None:
        return str(ComponentLineBuilder.to_decimal(definition.annual_amount))
    if definition.monthly_amount is not None:
        monthly = ComponentLineBuilder.to_decimal(definition.monthly_amount)
        return str(monthly * ComponentLineBuilder.MONTHS_PER_YEAR)
    raise TemplateError(
        f"Component {definition.name!r} has neither a formula nor an amount"
    )


def validate_ctc(annual_ctc: Any) -> Decimal:
    """Return the CTC as Decimal.

    Raises ValidationError unless it is a finite number in (0, MAX_CTC].
    """
    if annual_ctc is None or isinstance(annual_ctc, bool):
        raise ValidationError("Positive annual CTC is required")
    try:
        ctc = ComponentLineBuilder.to_decimal(annual_ctc)
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"Annual CTC {annual_ctc!r} is not a number") from e
    if not ctc.is_finite() or ctc <= 0:
        raise ValidationError(f"Annual CTC must be finite and positive, got {annual_ctc!r}")
    if ctc > MAX_CTC:
        raise ValidationError(f"Annual CTC {annual_ctc!r} exceeds the maximum of {MAX_CTC}")
    return ctc


class SalaryResolver:
    """Resolves salary templates against an annual CTC.

    Pipeline:
    1) Build one formula table from earnings, employer deductions and
       employee deductions (codes unique across all three)
    2) Evaluate every code once, in that order (dependencies may resolve
       earlier)
    3) Round each amount to cents (ROUND_HALF_UP)
    4) Check earnings + benefits == CTC within tolerance
    """

    def __init__(self, tolerance: Decimal | None = None):
        if tolerance is None:
            tolerance = get_settings().ctc_tolerance
        self.tolerance = tolerance

    def build_formula_table(
        self, template: SalaryTemplate
    ) -> tuple[dict[str, str], list[tuple[str, str, ComponentKind]]]:
        """Return code -> formula, plus (code, name, kind) in evaluation order."""
        formulas: dict[str, str] = {}
        meta: list[tuple[str, str, ComponentKind]] = []

        for kind, definitions in template.sections():
            for definition in definitions:
                code = component_code(definition)
                if code in formulas or code == CTC_VARIABLE:
                    raise DuplicateComponentCodeError(code)
                formulas[code] = component_formula(definition)
                meta.append((code, definition.name, kind))

        return formulas, meta

    def resolve_components(
        self, template: SalaryTemplate, annual_ctc: Any
    ) -> SalaryBreakdown:
        """Resolve a template without binding it to an owner or persisting it."""
        if template is None:
            raise ValidationError("Salary template is required")
        ctc = validate_ctc(annual_ctc)

        formulas, meta = self.build_formula_table(template)
        evaluator = FormulaEvaluator(formulas, {CTC_VARIABLE: ctc})

        lines: dict[ComponentKind, list[SalaryComponent]] = {kind: [] for kind in ComponentKind}
        for code, name, kind in meta:
            try:
                amount = evaluator.evaluate(code)
            except FormulaError as e:
                raise ComponentResolutionError(code, str(e)) from e
            lines[kind].append(
                ComponentLineBuilder.create_salary_line(name, code, formulas[code], amount)
            )

        breakdown = SalaryBreakdown(
            ctc=ctc,
            earnings=tuple(lines[ComponentKind.EARNING]),
            deductions=tuple(lines[ComponentKind.DEDUCTION]),
            benefits=tuple(lines[ComponentKind.BENEFIT]),
        )
        self.check_integrity(breakdown)
        return breakdown

    def check_integrity(self, breakdown: SalaryBreakdown) -> None:
        """Earnings plus benefits must add up to the CTC within tolerance."""
        total = ComponentLineBuilder.round_to_cents(
            breakdown.total_earnings + breakdown.total_benefits
        )
        if abs(total - breakdown.ctc) > self.tolerance:
            raise SalaryIntegrityError(total, breakdown.ctc, self.tolerance)

    def resolve(
        self,
        template: SalaryTemplate,
        annual_ctc: Any,
        effective_date: date,
        *,
        tenant_id: UUID,
        employee_id: UUID | None = None,
        applicant_id: UUID | None = None,
    ) -> SalarySnapshot:
        """Resolve a template into a new salary snapshot for one owner."""
        if (employee_id is None) == (applicant_id is None):
            raise ValidationError("Exactly one of employee_id or applicant_id is required")
        if tenant_id is None:
            raise ValidationError("tenant_id is required")
        if effective_date is None:
            raise ValidationError("effective_date is required")

        breakdown = self.resolve_components(template, annual_ctc)
        snapshot = SalarySnapshot(
            tenant_id=tenant_id,
            employee_id=employee_id,
            applicant_id=applicant_id,
            ctc=breakdown.ctc,
            earnings=breakdown.earnings,
            deductions=breakdown.deductions,
            benefits=breakdown.benefits,
            effective_date=effective_date,
        )

        logger.info(
            "Resolved salary snapshot %s for %s %s (CTC %s, template %r)",
            snapshot.snapshot_id,
            "employee" if employee_id else "applicant",
            snapshot.owner_id,
            breakdown.ctc,
            template.name,
        )
        return snapshot
