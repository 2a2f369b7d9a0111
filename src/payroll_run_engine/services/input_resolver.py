"""Compensation input resolution from external collaborators."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from decimal import Decimal

from payroll_run_engine.calculators.types import (
    UNPAID_LEAVE_REASON,
    ZERO,
    CompensationBundle,
    PenaltyKind,
    PenaltyLine,
    round_to_cents,
    to_decimal,
)
from payroll_run_engine.collaborators.base import Collaborators
from payroll_run_engine.config import get_settings

logger = logging.getLogger(__name__)


class MissingEmployeeDataError(Exception):
    """Raised when an employee's compensation inputs cannot be resolved."""

    def __init__(self, employee_id: str, reason: str = "employee record not found"):
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Cannot resolve inputs for employee {employee_id}: {reason}")


class CompensationInputResolver:
    """Pulls everything needed to compute one employee's payslip.

    Sources, in order:
    1. Employee directory (base salary, bank status)
    2. Compensation source (allowances, bonuses, benefits, refunds,
       penalties, tax rules, insurance rates)
    3. Leave/attendance (unpaid leave days, HR events)
    4. Disputes

    Unpaid leave is converted into a penalty line at a daily rate of
    base salary / working days per month. Insurance lines with a salary
    bracket apply only when base salary falls inside it. Zero-amount
    lines are dropped. Read-only.
    """

    def __init__(
        self,
        collaborators: Collaborators,
        timeout_seconds: float | None = None,
        working_days_per_month: int | None = None,
    ):
        settings = get_settings()
        self.collaborators = collaborators
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.resolve_timeout_seconds
        )
        self.working_days_per_month = (
            working_days_per_month
            if working_days_per_month is not None
            else settings.working_days_per_month
        )

    async def resolve(
        self,
        employee_id: str,
        entity: str,
        payroll_period: date,
        previous_net_pay: Decimal | None = None,
    ) -> CompensationBundle:
        """Resolve the compensation bundle for one employee and period.

        Raises:
            MissingEmployeeDataError: record not found, or resolution timed out
        """
        try:
            return await asyncio.wait_for(
                self._resolve(employee_id, entity, payroll_period, previous_net_pay),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Input resolution for employee %s timed out after %ss",
                employee_id,
                self.timeout_seconds,
            )
            raise MissingEmployeeDataError(
                employee_id, f"input resolution timed out after {self.timeout_seconds}s"
            ) from None

    async def _resolve(
        self,
        employee_id: str,
        entity: str,
        payroll_period: date,
        previous_net_pay: Decimal | None,
    ) -> CompensationBundle:
        directory = self.collaborators.directory
        compensation = self.collaborators.compensation
        leave = self.collaborators.leave

        employee = await directory.get_employee(employee_id)
        if employee is None:
            raise MissingEmployeeDataError(employee_id)

        # Collaborators may hand back int or float; all arithmetic below is Decimal
        base_salary = to_decimal(employee.base_salary)

        allowances = await compensation.get_allowances(employee_id, payroll_period)
        bonuses = await compensation.get_bonuses(employee_id, payroll_period)
        benefits = await compensation.get_benefits(employee_id, payroll_period)
        refunds = await compensation.get_refunds(employee_id, payroll_period)
        penalties = list(await compensation.get_penalties(employee_id, payroll_period))
        taxes = await compensation.get_tax_rules(entity, payroll_period)
        insurances = [
            line
            for line in await compensation.get_insurance_rates(entity, payroll_period)
            if line.applies_to(base_salary)
        ]

        unpaid_leave_days = to_decimal(
            await leave.get_unpaid_leave_days(employee_id, payroll_period) or 0
        )
        hr_events = await leave.get_hr_events(employee_id, payroll_period)
        has_disputes = await self.collaborators.disputes.has_unresolved_disputes(
            employee_id, payroll_period
        )

        unpaid_leave_penalty = self._unpaid_leave_penalty(base_salary, unpaid_leave_days)
        if unpaid_leave_penalty is not None:
            penalties.append(unpaid_leave_penalty)

        return CompensationBundle(
            employee_id=employee_id,
            entity=entity,
            payroll_period=payroll_period,
            base_salary=base_salary,
            allowances=tuple(line for line in allowances if line.amount > 0),
            bonuses=tuple(line for line in bonuses if line.amount > 0),
            benefits=tuple(line for line in benefits if line.amount > 0),
            refunds=tuple(line for line in refunds if line.amount > 0),
            taxes=tuple(taxes),
            insurances=tuple(insurances),
            penalties=tuple(p for p in penalties if p.amount > 0),
            bank_status=employee.bank_status,
            hr_events=tuple(hr_events),
            unpaid_leave_days=unpaid_leave_days,
            has_unresolved_disputes=has_disputes,
            previous_net_pay=previous_net_pay,
        )

    def _unpaid_leave_penalty(
        self, base_salary: Decimal, unpaid_leave_days: Decimal
    ) -> PenaltyLine | None:
        """Deduction for unpaid leave at a daily rate of base salary."""
        if unpaid_leave_days <= 0 or base_salary <= 0:
            return None
        daily_rate = base_salary / Decimal(self.working_days_per_month)
        amount = round_to_cents(daily_rate * unpaid_leave_days)
        if amount <= ZERO:
            return None
        return PenaltyLine(
            reason=f"{UNPAID_LEAVE_REASON} ({unpaid_leave_days} days)",
            kind=PenaltyKind.UNPAID_LEAVE,
            amount=amount,
        )
