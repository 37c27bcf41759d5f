"""Pytest fixtures for payroll core tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_core.calculators.types import (
    AttendanceSnapshot,
    ComponentDefinition,
    PayrollItemInput,
    SalarySnapshot,
    SalaryTemplate,
)
from payroll_core.calculators.salary_resolver import SalaryResolver
from payroll_core.database import create_schema, make_session_factory
from payroll_core.immutability import register_immutability_listeners
from payroll_core.models import Applicant, Employee
from payroll_core.schemas import SalaryTemplatePayload

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ===== Pure pipeline fixtures =====


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def standard_template() -> SalaryTemplate:
    """Template whose earnings and benefits add up to the CTC exactly.

    For CTC 600000: BASIC 300000, HRA 120000, PF_EMPLOYER 21600,
    SPECIAL_ALLOWANCE 158400. Employee side: PF 21600, PT 2400.
    """
    return SalaryTemplate(
        name="Standard",
        earnings=(
            ComponentDefinition(name="Basic", formula="CTC * 0.5"),
            ComponentDefinition(name="HRA", formula="BASIC * 0.4"),
            ComponentDefinition(
                name="Special Allowance",
                formula="CTC - BASIC - HRA - PF_EMPLOYER",
            ),
        ),
        employer_deductions=(
            ComponentDefinition(
                name="PF Employer",
                formula="min(BASIC, 15000 * 12) * 0.12",
            ),
        ),
        employee_deductions=(
            ComponentDefinition(
                name="PF Employee",
                code="PF_EMPLOYEE",
                formula="min(BASIC, 15000 * 12) * 0.12",
            ),
            ComponentDefinition(name="Professional Tax", monthly_amount=Decimal("200")),
        ),
    )


@pytest.fixture
def standard_payload() -> SalaryTemplatePayload:
    """Same template as standard_template, in its camelCase JSON shape."""
    return SalaryTemplatePayload.model_validate(
        {
            "name": "Standard",
            "earnings": [
                {"name": "Basic", "formula": "CTC * 0.5"},
                {"name": "HRA", "formula": "BASIC * 0.4"},
                {"name": "Special Allowance", "formula": "CTC - BASIC - HRA - PF_EMPLOYER"},
            ],
            "employerDeductions": [
                {"name": "PF Employer", "formula": "min(BASIC, 15000 * 12) * 0.12"},
            ],
            "employeeDeductions": [
                {
                    "name": "PF Employee",
                    "code": "PF_EMPLOYEE",
                    "formula": "min(BASIC, 15000 * 12) * 0.12",
                },
                {"name": "Professional Tax", "monthlyAmount": 200},
            ],
        }
    )


@pytest.fixture
def salary_resolver() -> SalaryResolver:
    return SalaryResolver(tolerance=Decimal("10"))


@pytest.fixture
def make_item(tenant_id, standard_template, salary_resolver):
    """Build a payroll item for a fresh employee from attendance counters."""

    def _make_item(
        period: str = "2024-01",
        total_days: int = 31,
        present_days: Decimal | str = "20",
        leave_days: int = 2,
        holidays: int = 2,
        weekly_offs: int = 2,
        annual_ctc: Decimal | str = "600000",
        employee_id=None,
    ) -> PayrollItemInput:
        employee_id = employee_id or uuid4()
        salary: SalarySnapshot = salary_resolver.resolve(
            standard_template,
            annual_ctc,
            date(2024, 1, 1),
            tenant_id=tenant_id,
            employee_id=employee_id,
        )
        attendance = AttendanceSnapshot(
            employee_id=employee_id,
            period=period,
            total_days=total_days,
            present_days=Decimal(str(present_days)),
            leave_days=leave_days,
            holidays=holidays,
            weekly_offs=weekly_offs,
        )
        return PayrollItemInput(
            employee_id=employee_id,
            salary_snapshot=salary,
            attendance_snapshot=attendance,
        )

    return _make_item


# ===== Database fixtures =====


@pytest_asyncio.fixture
async def engine():
    """Create test database engine with a fresh schema."""
    register_immutability_listeners()
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = make_session_factory(engine)

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_employees(session: AsyncSession, tenant_id) -> list[Employee]:
    """Two active employees and one inactive one."""
    employees = [
        Employee(
            employee_id=uuid4(),
            tenant_id=tenant_id,
            first_name=first,
            last_name=last,
            employee_number=f"EMP{i:03d}",
            status=status,
        )
        for i, (first, last, status) in enumerate(
            [
                ("Asha", "Rao", "active"),
                ("Ravi", "Menon", "active"),
                ("Old", "Timer", "inactive"),
            ],
            start=1,
        )
    ]
    session.add_all(employees)
    await session.flush()
    return employees


@pytest_asyncio.fixture
async def test_applicant(session: AsyncSession, tenant_id) -> Applicant:
    applicant = Applicant(applicant_id=uuid4(), tenant_id=tenant_id, name="Nina Shah")
    session.add(applicant)
    await session.flush()
    return applicant
