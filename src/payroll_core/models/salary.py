"""Salary template and salary snapshot models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.calculators.types import SalaryComponent, SalarySnapshot
from payroll_core.models.base import Base, TimestampMixin


class SalaryTemplateRecord(Base, TimestampMixin):
    """Stored salary template.

    Component lists hold the boundary JSON shape
    ({name, code?, formula?, annualAmount?, monthlyAmount?}).
    """

    __tablename__ = "salary_template"

    template_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    earnings: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    employer_deductions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    employee_deductions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", "version", name="salary_template_version_unique"),
    )


class SalarySnapshotRecord(Base, TimestampMixin):
    """Stored salary snapshot. Insert-only (see payroll_core.immutability).

    employee_id / applicant_id are lookups, not foreign keys: removing the
    employee leaves its salary history in place.
    """

    __tablename__ = "salary_snapshot"

    snapshot_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID | None] = mapped_column(nullable=True)
    applicant_id: Mapped[UUID | None] = mapped_column(nullable=True)
    template_id: Mapped[UUID | None] = mapped_column(nullable=True)
    ctc: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    earnings: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    deductions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    benefits: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(employee_id IS NULL) <> (applicant_id IS NULL)",
            name="salary_snapshot_single_owner_check",
        ),
        CheckConstraint("ctc > 0", name="salary_snapshot_ctc_positive"),
        Index("ix_salary_snapshot_employee_effective", "employee_id", "effective_date"),
    )

    @classmethod
    def from_snapshot(
        cls, snapshot: SalarySnapshot, template_id: UUID | None = None
    ) -> SalarySnapshotRecord:
        return cls(
            snapshot_id=snapshot.snapshot_id,
            tenant_id=snapshot.tenant_id,
            employee_id=snapshot.employee_id,
            applicant_id=snapshot.applicant_id,
            template_id=template_id,
            ctc=snapshot.ctc,
            earnings=[c.to_canonical_dict() for c in snapshot.earnings],
            deductions=[c.to_canonical_dict() for c in snapshot.deductions],
            benefits=[c.to_canonical_dict() for c in snapshot.benefits],
            effective_date=snapshot.effective_date,
        )

    def to_snapshot(self) -> SalarySnapshot:
        return SalarySnapshot(
            snapshot_id=self.snapshot_id,
            tenant_id=self.tenant_id,
            employee_id=self.employee_id,
            applicant_id=self.applicant_id,
            ctc=Decimal(str(self.ctc)),
            earnings=tuple(SalaryComponent.from_dict(c) for c in self.earnings),
            deductions=tuple(SalaryComponent.from_dict(c) for c in self.deductions),
            benefits=tuple(SalaryComponent.from_dict(c) for c in self.benefits),
            effective_date=self.effective_date,
        )
