"""Protocols for the external systems the engine reads from.

Employee directory, compensation configuration, leave/attendance and
disputes are owned by other subsystems. The engine only consumes them
through these read-only interfaces.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol

from payroll_run_engine.calculators.types import (
    EarningLine,
    InsuranceLine,
    PenaltyLine,
    TaxLine,
)


@dataclass(frozen=True)
class EmployeeRecord:
    """Employee/contract directory entry."""

    employee_id: str
    entity: str
    base_salary: Decimal
    bank_status: str = "valid"  # valid/missing/invalid
    status: str = "active"


class EmployeeDirectory(Protocol):
    """Employee/contract directory."""

    async def list_employees(self, entity: str) -> list[str]:
        """Return ids of every employee in payroll scope for an entity."""
        ...

    async def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        """Return the employee record, or None if it cannot be found."""
        ...


class CompensationSource(Protocol):
    """Approved variable pay components and rate schedules."""

    async def get_allowances(self, employee_id: str, period: date) -> list[EarningLine]:
        ...

    async def get_bonuses(self, employee_id: str, period: date) -> list[EarningLine]:
        ...

    async def get_benefits(self, employee_id: str, period: date) -> list[EarningLine]:
        ...

    async def get_refunds(self, employee_id: str, period: date) -> list[EarningLine]:
        ...

    async def get_penalties(self, employee_id: str, period: date) -> list[PenaltyLine]:
        ...

    async def get_tax_rules(self, entity: str, period: date) -> list[TaxLine]:
        ...

    async def get_insurance_rates(self, entity: str, period: date) -> list[InsuranceLine]:
        ...


class LeaveAttendanceSource(Protocol):
    """Leave and attendance data."""

    async def get_unpaid_leave_days(self, employee_id: str, period: date) -> Decimal:
        ...

    async def get_hr_events(self, employee_id: str, period: date) -> list[str]:
        """HR events in the period, e.g. NEW_HIRE, PROBATION, RESIGNED, TERMINATED."""
        ...


class DisputeSource(Protocol):
    """Dispute/claims subsystem."""

    async def has_unresolved_disputes(self, employee_id: str, period: date) -> bool:
        ...


@dataclass
class Collaborators:
    """The set of external sources a draft generation reads from."""

    directory: EmployeeDirectory
    compensation: CompensationSource
    leave: LeaveAttendanceSource
    disputes: DisputeSource
