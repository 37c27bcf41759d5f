"""Salary service - preview and assign salaries from stored templates."""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_core.calculators.salary_resolver import SalaryResolver
from payroll_core.calculators.types import SalaryBreakdown, SalarySnapshot, SalaryTemplate
from payroll_core.errors import NotFoundError, ValidationError
from payroll_core.models import Applicant, Employee, SalarySnapshotRecord, SalaryTemplateRecord
from payroll_core.schemas import SalaryTemplatePayload


class SalaryService:
    """Service for salary templates and salary snapshots.

    Operations:
    - preview: resolve a template for a CTC without storing anything
    - assign: resolve and store a new snapshot for an employee or applicant
    - get_current_salary: latest snapshot effective on a date
    """

    def __init__(self, session: AsyncSession, resolver: SalaryResolver | None = None):
        self.session = session
        self.resolver = resolver or SalaryResolver()

    async def create_template(
        self, tenant_id: UUID, payload: SalaryTemplatePayload, version: int = 1
    ) -> SalaryTemplateRecord:
        """Store a template after checking it builds a valid formula table."""
        self.resolver.build_formula_table(payload.to_template())

        record = SalaryTemplateRecord(
            tenant_id=tenant_id,
            name=payload.name,
            version=version,
            **payload.to_storage(),
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_template(self, tenant_id: UUID, template_id: UUID) -> SalaryTemplate:
        record = await self.session.get(SalaryTemplateRecord, template_id)
        if record is None or record.tenant_id != tenant_id:
            raise NotFoundError("SalaryTemplate", template_id)

        payload = SalaryTemplatePayload.model_validate(
            {
                "name": record.name,
                "earnings": record.earnings,
                "employerDeductions": record.employer_deductions,
                "employeeDeductions": record.employee_deductions,
            }
        )
        return payload.to_template(template_id=record.template_id, version=record.version)

    async def preview(
        self, tenant_id: UUID, template_id: UUID, annual_ctc: Any
    ) -> SalaryBreakdown:
        """Resolve a stored template for a CTC. Nothing is written."""
        template = await self.get_template(tenant_id, template_id)
        return self.resolver.resolve_components(template, annual_ctc)

    async def assign(
        self,
        tenant_id: UUID,
        template_id: UUID,
        annual_ctc: Any,
        effective_date: date | None = None,
        employee_id: UUID | None = None,
        applicant_id: UUID | None = None,
    ) -> SalarySnapshot:
        """Resolve and store a new salary snapshot.

        The employee is pointed at the template and the new snapshot; an
        applicant gets the CTC and the snapshot reference.
        """
        if (employee_id is None) == (applicant_id is None):
            raise ValidationError("Exactly one of employee_id or applicant_id is required")

        employee: Employee | None = None
        applicant: Applicant | None = None
        if employee_id is not None:
            employee = await self.session.get(Employee, employee_id)
            if employee is None or employee.tenant_id != tenant_id:
                raise NotFoundError("Employee", employee_id)
        else:
            applicant = await self.session.get(Applicant, applicant_id)
            if applicant is None or applicant.tenant_id != tenant_id:
                raise NotFoundError("Applicant", applicant_id)

        template = await self.get_template(tenant_id, template_id)
        snapshot = self.resolver.resolve(
            template,
            annual_ctc,
            effective_date or date.today(),
            tenant_id=tenant_id,
            employee_id=employee_id,
            applicant_id=applicant_id,
        )

        self.session.add(SalarySnapshotRecord.from_snapshot(snapshot, template_id=template_id))

        if employee is not None:
            employee.salary_template_id = template_id
            employee.latest_salary_snapshot_id = snapshot.snapshot_id
        if applicant is not None:
            applicant.ctc = snapshot.ctc
            applicant.salary_snapshot_id = snapshot.snapshot_id

        await self.session.flush()
        return snapshot

    async def get_current_salary(
        self, tenant_id: UUID, employee_id: UUID, as_of: date | None = None
    ) -> SalarySnapshot | None:
        """Snapshot with the latest effective date on or before as_of."""
        as_of = as_of or date.today()
        result = await self.session.execute(
            select(SalarySnapshotRecord)
            .where(
                SalarySnapshotRecord.tenant_id == tenant_id,
                SalarySnapshotRecord.employee_id == employee_id,
                SalarySnapshotRecord.effective_date <= as_of,
            )
            .order_by(
                SalarySnapshotRecord.effective_date.desc(),
                SalarySnapshotRecord.created_at.desc(),
            )
            .limit(1)
        )
        record = result.scalar_one_or_none()
        return record.to_snapshot() if record else None

    async def get_salary_history(
        self, tenant_id: UUID, employee_id: UUID
    ) -> list[SalarySnapshot]:
        """All snapshots for an employee, newest effective date first."""
        result = await self.session.execute(
            select(SalarySnapshotRecord)
            .where(
                SalarySnapshotRecord.tenant_id == tenant_id,
                SalarySnapshotRecord.employee_id == employee_id,
            )
            .order_by(SalarySnapshotRecord.effective_date.desc())
        )
        return [record.to_snapshot() for record in result.scalars().all()]

    async def get_applicant_offer(self, tenant_id: UUID, applicant_id: UUID) -> SalarySnapshot:
        """Salary snapshot an applicant was last offered."""
        applicant = await self.session.get(Applicant, applicant_id)
        if applicant is None or applicant.tenant_id != tenant_id:
            raise NotFoundError("Applicant", applicant_id)
        if applicant.salary_snapshot_id is None:
            raise NotFoundError("SalarySnapshot", f"for applicant {applicant_id}")

        record = await self.session.get(SalarySnapshotRecord, applicant.salary_snapshot_id)
        if record is None:
            raise NotFoundError("SalarySnapshot", applicant.salary_snapshot_id)
        return record.to_snapshot()

