"""Tests for salary resolution."""

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_core.calculators.salary_resolver import (
    MAX_CTC,
    SalaryResolver,
    component_formula,
    derive_component_code,
    validate_ctc,
)
from payroll_core.calculators.types import ComponentDefinition, SalaryTemplate
from payroll_core.errors import (
    ComponentResolutionError,
    DuplicateComponentCodeError,
    SalaryIntegrityError,
    TemplateError,
    ValidationError,
)


def amounts(components):
    return {c.code: c.amount for c in components}


class TestComponentCodes:
    """Test code derivation and formula precedence."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Basic", "BASIC"),
            ("Special Allowance", "SPECIAL_ALLOWANCE"),
            ("  house   rent allowance ", "HOUSE_RENT_ALLOWANCE"),
            (" Basic Pay", "BASIC_PAY"),
            ("PF Employer", "PF_EMPLOYER"),
        ],
    )
    def test_derive_component_code(self, name, expected):
        assert derive_component_code(name) == expected

    def test_explicit_formula_wins(self):
        definition = ComponentDefinition(
            name="Basic",
            formula="CTC * 0.5",
            annual_amount=Decimal("1000"),
            monthly_amount=Decimal("10"),
        )
        assert component_formula(definition) == "CTC * 0.5"

    def test_annual_amount_beats_monthly(self):
        definition = ComponentDefinition(
            name="Bonus", annual_amount=Decimal("1000"), monthly_amount=Decimal("10")
        )
        assert component_formula(definition) == "1000"

    def test_monthly_amount_times_twelve(self):
        definition = ComponentDefinition(name="PT", monthly_amount=Decimal("200"))
        assert Decimal(component_formula(definition)) == Decimal("2400")

    def test_blank_formula_falls_back_to_amount(self):
        definition = ComponentDefinition(name="PT", formula="   ", annual_amount=Decimal("5"))
        assert component_formula(definition) == "5"

    def test_no_formula_no_amount(self):
        with pytest.raises(TemplateError):
            component_formula(ComponentDefinition(name="Empty"))


class TestValidateCtc:
    """Test CTC validation."""

    def test_accepts_numeric_strings_and_numbers(self):
        assert validate_ctc("600000") == Decimal("600000")
        assert validate_ctc(600000) == Decimal("600000")
        assert validate_ctc(1234.5) == Decimal("1234.5")

    @pytest.mark.parametrize("value", [None, 0, -1, "0", "abc", "NaN", "Infinity", True])
    def test_rejects_non_positive_or_non_numeric(self, value):
        with pytest.raises(ValidationError):
            validate_ctc(value)

    def test_accepts_maximum(self):
        assert validate_ctc("999999999999.99") == MAX_CTC

    @pytest.mark.parametrize("value", ["1000000000000", Decimal("1e27"), 1e30])
    def test_rejects_ctc_above_maximum(self, value):
        with pytest.raises(ValidationError, match="exceeds the maximum"):
            validate_ctc(value)


class TestSalaryResolver:
    """Test template resolution against a CTC."""

    def test_standard_template(self, salary_resolver, standard_template):
        breakdown = salary_resolver.resolve_components(standard_template, 600000)

        assert amounts(breakdown.earnings) == {
            "BASIC": Decimal("300000.00"),
            "HRA": Decimal("120000.00"),
            "SPECIAL_ALLOWANCE": Decimal("158400.00"),
        }
        assert amounts(breakdown.benefits) == {"PF_EMPLOYER": Decimal("21600.00")}
        assert amounts(breakdown.deductions) == {
            "PF_EMPLOYEE": Decimal("21600.00"),
            "PROFESSIONAL_TAX": Decimal("2400.00"),
        }
        assert breakdown.total_earnings + breakdown.total_benefits == Decimal("600000")

    def test_template_order_preserved(self, salary_resolver, standard_template):
        breakdown = salary_resolver.resolve_components(standard_template, 600000)
        assert [c.code for c in breakdown.earnings] == ["BASIC", "HRA", "SPECIAL_ALLOWANCE"]
        assert [c.code for c in breakdown.deductions] == ["PF_EMPLOYEE", "PROFESSIONAL_TAX"]

    def test_component_keeps_formula_text(self, salary_resolver, standard_template):
        breakdown = salary_resolver.resolve_components(standard_template, 600000)
        basic = breakdown.earnings[0]
        assert basic.name == "Basic"
        assert basic.formula == "CTC * 0.5"

    def test_amounts_rounded_half_up(self, salary_resolver):
        template = SalaryTemplate(
            name="Thirds",
            earnings=(
                ComponentDefinition(name="A", formula="CTC / 3"),
                ComponentDefinition(name="B", formula="CTC / 3"),
                ComponentDefinition(name="C", formula="CTC - A - B"),
            ),
        )
        breakdown = salary_resolver.resolve_components(template, "100001")
        assert amounts(breakdown.earnings) == {
            "A": Decimal("33333.67"),
            "B": Decimal("33333.67"),
            "C": Decimal("33333.67"),
        }

    def test_integrity_failure(self, salary_resolver):
        template = SalaryTemplate(
            name="Short",
            earnings=(ComponentDefinition(name="Basic", formula="CTC * 0.5"),),
        )
        with pytest.raises(SalaryIntegrityError) as exc_info:
            salary_resolver.resolve_components(template, 600000)
        assert "Salary Integrity Error" in str(exc_info.value)
        assert exc_info.value.total == Decimal("300000.00")
        assert exc_info.value.ctc == Decimal("600000")

    def test_integrity_within_tolerance(self, salary_resolver):
        template = SalaryTemplate(
            name="Near",
            earnings=(ComponentDefinition(name="Basic", formula="CTC - 10"),),
        )
        breakdown = salary_resolver.resolve_components(template, 1000)
        assert breakdown.total_earnings == Decimal("990.00")

    def test_integrity_just_outside_tolerance(self, salary_resolver):
        template = SalaryTemplate(
            name="Off",
            earnings=(ComponentDefinition(name="Basic", formula="CTC - 10.01"),),
        )
        with pytest.raises(SalaryIntegrityError):
            salary_resolver.resolve_components(template, 1000)

    def test_custom_tolerance(self):
        template = SalaryTemplate(
            name="Off",
            earnings=(ComponentDefinition(name="Basic", formula="CTC - 50"),),
        )
        breakdown = SalaryResolver(tolerance=Decimal("100")).resolve_components(template, 1000)
        assert breakdown.total_earnings == Decimal("950.00")

    def test_duplicate_code_across_sections(self, salary_resolver):
        template = SalaryTemplate(
            name="Dup",
            earnings=(ComponentDefinition(name="PF", formula="CTC"),),
            employee_deductions=(ComponentDefinition(name="pf", annual_amount=Decimal("1")),),
        )
        with pytest.raises(DuplicateComponentCodeError) as exc_info:
            salary_resolver.resolve_components(template, 1000)
        assert exc_info.value.component_code == "PF"

    def test_ctc_is_reserved(self, salary_resolver):
        template = SalaryTemplate(
            name="Reserved",
            earnings=(ComponentDefinition(name="CTC", formula="1000"),),
        )
        with pytest.raises(DuplicateComponentCodeError):
            salary_resolver.resolve_components(template, 1000)

    def test_formula_failure_names_component(self, salary_resolver):
        template = SalaryTemplate(
            name="Broken",
            earnings=(
                ComponentDefinition(name="Basic", formula="CTC"),
                ComponentDefinition(name="Bonus", formula="PERFORMANCE * 2"),
            ),
        )
        with pytest.raises(ComponentResolutionError) as exc_info:
            salary_resolver.resolve_components(template, 1000)
        assert exc_info.value.component_code == "BONUS"
        assert str(exc_info.value).startswith("Formula resolution failed for BONUS")

    def test_cycle_reported_as_resolution_failure(self, salary_resolver):
        template = SalaryTemplate(
            name="Cycle",
            earnings=(
                ComponentDefinition(name="A", formula="B + 1"),
                ComponentDefinition(name="B", formula="A + 1"),
            ),
        )
        with pytest.raises(ComponentResolutionError) as exc_info:
            salary_resolver.resolve_components(template, 1000)
        assert exc_info.value.component_code == "A"

    def test_oversized_ctc_rejected(self, salary_resolver, standard_template):
        with pytest.raises(ValidationError):
            salary_resolver.resolve_components(standard_template, Decimal("1e27"))

    def test_flat_amount_at_maximum_ctc(self, salary_resolver):
        template = SalaryTemplate(
            name="Flat",
            earnings=(ComponentDefinition(name="Basic", annual_amount=MAX_CTC),),
        )
        breakdown = salary_resolver.resolve_components(template, MAX_CTC)
        assert breakdown.total_earnings == Decimal("999999999999.99")

    def test_long_dependency_chain(self, salary_resolver):
        """The last component is listed first, so it resolves the whole chain."""
        earnings = [
            ComponentDefinition(name=f"C{i}", formula=f"C{i - 1} * 0") for i in range(1499, 0, -1)
        ]
        earnings.append(ComponentDefinition(name="C0", formula="CTC"))
        template = SalaryTemplate(name="Chain", earnings=tuple(earnings))
        breakdown = salary_resolver.resolve_components(template, 1000)
        assert breakdown.total_earnings == Decimal("1000.00")

    def test_missing_template(self, salary_resolver):
        with pytest.raises(ValidationError):
            salary_resolver.resolve_components(None, 1000)

    def test_empty_template_fails_integrity(self, salary_resolver):
        with pytest.raises(SalaryIntegrityError):
            salary_resolver.resolve_components(SalaryTemplate(name="Empty"), 1000)


class TestSalarySnapshot:
    """Test snapshots bound to an owner."""

    def test_resolve_for_employee(self, salary_resolver, standard_template, tenant_id):
        employee_id = uuid4()
        snapshot = salary_resolver.resolve(
            standard_template,
            "600000",
            date(2024, 4, 1),
            tenant_id=tenant_id,
            employee_id=employee_id,
        )
        assert snapshot.employee_id == employee_id
        assert snapshot.applicant_id is None
        assert snapshot.owner_id == employee_id
        assert snapshot.ctc == Decimal("600000")
        assert snapshot.effective_date == date(2024, 4, 1)

    def test_resolve_for_applicant(self, salary_resolver, standard_template, tenant_id):
        applicant_id = uuid4()
        snapshot = salary_resolver.resolve(
            standard_template,
            600000,
            date(2024, 4, 1),
            tenant_id=tenant_id,
            applicant_id=applicant_id,
        )
        assert snapshot.applicant_id == applicant_id
        assert snapshot.employee_id is None

    def test_exactly_one_owner(self, salary_resolver, standard_template, tenant_id):
        with pytest.raises(ValidationError):
            salary_resolver.resolve(
                standard_template, 600000, date(2024, 4, 1), tenant_id=tenant_id
            )
        with pytest.raises(ValidationError):
            salary_resolver.resolve(
                standard_template,
                600000,
                date(2024, 4, 1),
                tenant_id=tenant_id,
                employee_id=uuid4(),
                applicant_id=uuid4(),
            )

    def test_snapshot_is_frozen(self, salary_resolver, standard_template, tenant_id):
        snapshot = salary_resolver.resolve(
            standard_template, 600000, date(2024, 4, 1), tenant_id=tenant_id, employee_id=uuid4()
        )
        with pytest.raises(FrozenInstanceError):
            snapshot.ctc = Decimal("1")

    def test_each_resolution_is_a_new_snapshot(
        self, salary_resolver, standard_template, tenant_id
    ):
        employee_id = uuid4()
        first = salary_resolver.resolve(
            standard_template, 600000, date(2024, 4, 1), tenant_id=tenant_id, employee_id=employee_id
        )
        second = salary_resolver.resolve(
            standard_template, 600000, date(2024, 4, 1), tenant_id=tenant_id, employee_id=employee_id
        )
        assert first.snapshot_id != second.snapshot_id
        assert first.earnings == second.earnings


class TestSalaryProperties:
    """Property tests over generated CTCs and splits."""

    @settings(max_examples=50, deadline=None)
    @given(
        ctc=st.integers(min_value=1, max_value=10_000_000),
        basic_pct=st.integers(min_value=1, max_value=90),
    )
    def test_balancing_template_always_passes_integrity(self, ctc, basic_pct):
        template = SalaryTemplate(
            name="Balanced",
            earnings=(
                ComponentDefinition(name="Basic", formula=f"CTC * {basic_pct} / 100"),
                ComponentDefinition(name="Balance", formula="CTC - BASIC"),
            ),
        )
        breakdown = SalaryResolver(tolerance=Decimal("10")).resolve_components(template, ctc)

        total = breakdown.total_earnings + breakdown.total_benefits
        assert abs(total - Decimal(ctc)) <= Decimal("10")
        for component in breakdown.earnings:
            assert component.amount == component.amount.quantize(Decimal("0.01"))
