"""Payroll run, payslip, run warning and audit models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_run_engine.models.base import Base, JSONType, TimestampMixin

RUN_STATUSES = (
    "draft",
    "under_review",
    "pending_finance_approval",
    "approved",
    "rejected",
    "locked",
)
PAYMENT_STATUSES = ("pending", "paid")

# At most one non-rejected run per (entity, period). The insert itself is the
# check-and-reserve step.
ACTIVE_RUN_PREDICATE = text("status <> 'rejected'")


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class PayrollRun(Base, TimestampMixin):
    """One payroll-period processing cycle for one entity."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    run_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    entity: Mapped[str] = mapped_column(String, nullable=False)
    payroll_period: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    specialist_id: Mapped[str] = mapped_column(String, nullable=False)
    manager_id: Mapped[str | None] = mapped_column(String, nullable=True)
    finance_approver_id: Mapped[str | None] = mapped_column(String, nullable=True)

    manager_approval_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    finance_approval_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Summary, written only by the engine from the persisted payslip set
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exception_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_net_pay: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0.00")
    )

    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    supersedes_run_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(_in_clause("status", RUN_STATUSES), name="payroll_run_status_check"),
        CheckConstraint(
            "status <> 'rejected' OR rejection_reason IS NOT NULL",
            name="payroll_run_rejection_reason_check",
        ),
        Index(
            "payroll_run_active_period_unique",
            "entity",
            "payroll_period",
            unique=True,
            postgresql_where=ACTIVE_RUN_PREDICATE,
            sqlite_where=ACTIVE_RUN_PREDICATE,
        ),
    )

    # Relationships
    payslips: Mapped[list[PaySlip]] = relationship(
        back_populates="payroll_run",
        order_by="PaySlip.employee_id",
        cascade="all, delete-orphan",
    )
    warnings: Mapped[list[PayrollRunWarning]] = relationship(
        back_populates="payroll_run",
        order_by="PayrollRunWarning.employee_id",
        cascade="all, delete-orphan",
    )


class PaySlip(Base, TimestampMixin):
    """One employee's computed pay breakdown within a run."""

    __tablename__ = "payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(String, nullable=False)

    earnings_details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    deductions_details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)

    total_gross_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    exceptions_flags: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    payment_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    bank_status: Mapped[str] = mapped_column(String, nullable=False, default="missing")
    hr_events: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="payslip_run_employee_unique"),
        CheckConstraint(
            _in_clause("payment_status", PAYMENT_STATUSES),
            name="payslip_payment_status_check",
        ),
    )

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="payslips")

    @property
    def has_exceptions(self) -> bool:
        return len(self.exceptions_flags or []) > 0


class PayrollRunWarning(Base, TimestampMixin):
    """Run-level warning, e.g. an employee skipped during draft generation."""

    __tablename__ = "payroll_run_warning"

    warning_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="warnings")


class AuditEvent(Base, TimestampMixin):
    """Append-only audit trail of generations, transitions and payslip edits."""

    __tablename__ = "audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String, nullable=True)
    details_json: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
