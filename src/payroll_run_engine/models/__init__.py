"""ORM models for the payroll run engine."""

from payroll_run_engine.models.base import Base, TimestampMixin
from payroll_run_engine.models.payroll import (
    PAYMENT_STATUSES,
    RUN_STATUSES,
    AuditEvent,
    PayrollRun,
    PayrollRunWarning,
    PaySlip,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "PAYMENT_STATUSES",
    "RUN_STATUSES",
    "AuditEvent",
    "PayrollRun",
    "PayrollRunWarning",
    "PaySlip",
]
