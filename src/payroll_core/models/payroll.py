"""Payroll run snapshot model."""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_core.calculators.types import PayrollRunItem, PayrollRunSnapshot
from payroll_core.models.base import Base, TimestampMixin


class PayrollRunRecord(Base, TimestampMixin):
    """Stored payroll run. One per (tenant, period); locked runs are frozen."""

    __tablename__ = "payroll_run"

    run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    period: Mapped[str] = mapped_column(String(7), nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("tenant_id", "period", name="payroll_run_tenant_period_unique"),
    )

    @classmethod
    def from_snapshot(cls, snapshot: PayrollRunSnapshot) -> PayrollRunRecord:
        return cls(
            run_id=snapshot.run_id,
            tenant_id=snapshot.tenant_id,
            period=snapshot.period,
            items=[item.to_canonical_dict() for item in snapshot.items],
            locked=snapshot.locked,
        )

    def to_snapshot(self) -> PayrollRunSnapshot:
        return PayrollRunSnapshot(
            run_id=self.run_id,
            tenant_id=self.tenant_id,
            period=self.period,
            items=tuple(PayrollRunItem.from_dict(item) for item in self.items),
            locked=self.locked,
        )

    def employee_ids(self) -> set[UUID]:
        return {UUID(item["employee_id"]) for item in self.items}
