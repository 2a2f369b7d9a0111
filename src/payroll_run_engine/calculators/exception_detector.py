"""Exception detection for computed payslips."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable

from payroll_run_engine.calculators.types import (
    BANK_STATUS_VALID,
    ZERO,
    CompensationBundle,
    ExceptionFlag,
    PayslipComputation,
)
from payroll_run_engine.config import get_settings

MISSING_BANK_DETAILS = "MISSING_BANK_DETAILS"
UNRESOLVED_DISPUTE = "UNRESOLVED_DISPUTE"
UNPAID_LEAVE_NOT_DEDUCTED = "UNPAID_LEAVE_NOT_DEDUCTED"
NEW_HIRE_WITHOUT_SIGNING_BONUS = "NEW_HIRE_WITHOUT_SIGNING_BONUS"
OFFBOARDING_WITHOUT_BENEFIT = "OFFBOARDING_WITHOUT_BENEFIT"
ZERO_BASE_SALARY = "ZERO_BASE_SALARY"
UNUSUAL_NET_PAY_DELTA = "UNUSUAL_NET_PAY_DELTA"

NEW_HIRE_EVENTS = frozenset({"NEW_HIRE"})
OFFBOARDING_EVENTS = frozenset({"RESIGNED", "TERMINATED"})

Rule = Callable[[str, CompensationBundle, PayslipComputation], "ExceptionFlag | None"]


class ExceptionDetector:
    """Flags anomalies on a payslip, independently of the arithmetic.

    Rules are evaluated in a fixed order and each contributes at most one
    flag. Flags raised by the calculator itself (negative net pay) are
    appended last.
    """

    def __init__(self, net_pay_delta_threshold: Decimal | None = None):
        if net_pay_delta_threshold is None:
            net_pay_delta_threshold = get_settings().net_pay_delta_threshold
        self.net_pay_delta_threshold = net_pay_delta_threshold
        self.rules: list[Rule] = [
            self._missing_bank_details,
            self._unresolved_dispute,
            self._unpaid_leave_not_deducted,
            self._new_hire_without_signing_bonus,
            self._offboarding_without_benefit,
            self._zero_base_salary,
            self._unusual_net_pay_delta,
        ]

    def detect(
        self,
        employee_id: str,
        bundle: CompensationBundle,
        computation: PayslipComputation,
    ) -> list[ExceptionFlag]:
        """Return flags for one payslip in rule-evaluation order."""
        flags: list[ExceptionFlag] = []
        for rule in self.rules:
            flag = rule(employee_id, bundle, computation)
            if flag is not None:
                flags.append(flag)
        flags.extend(computation.flags)
        return flags

    # === Rules ===

    def _missing_bank_details(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        if bundle.bank_status == BANK_STATUS_VALID:
            return None
        return ExceptionFlag(
            code=MISSING_BANK_DETAILS,
            message=f"Missing bank details for employee {employee_id}",
            field="bank_status",
        )

    def _unresolved_dispute(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        if not bundle.has_unresolved_disputes:
            return None
        return ExceptionFlag(
            code=UNRESOLVED_DISPUTE,
            message=(
                f"Employee {employee_id} has an unresolved dispute for "
                f"{bundle.payroll_period:%Y-%m}"
            ),
        )

    def _unpaid_leave_not_deducted(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        if bundle.unpaid_leave_days <= 0:
            return None
        if any(p.is_unpaid_leave for p in bundle.penalties):
            return None
        return ExceptionFlag(
            code=UNPAID_LEAVE_NOT_DEDUCTED,
            message=(
                f"{bundle.unpaid_leave_days} unpaid leave day(s) recorded "
                "but no unpaid leave deduction was applied"
            ),
            field="deductions_details.penalties",
        )

    def _new_hire_without_signing_bonus(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        if not NEW_HIRE_EVENTS.intersection(bundle.hr_events) or bundle.bonuses:
            return None
        return ExceptionFlag(
            code=NEW_HIRE_WITHOUT_SIGNING_BONUS,
            message="New hire in this period but no signing bonus was resolved",
            field="earnings_details.bonuses",
        )

    def _offboarding_without_benefit(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        events = OFFBOARDING_EVENTS.intersection(bundle.hr_events)
        if not events or bundle.benefits:
            return None
        return ExceptionFlag(
            code=OFFBOARDING_WITHOUT_BENEFIT,
            message=(
                f"Offboarding event ({', '.join(sorted(events))}) but no "
                "termination/resignation benefit was resolved"
            ),
            field="earnings_details.benefits",
        )

    def _zero_base_salary(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        if bundle.base_salary > 0:
            return None
        return ExceptionFlag(
            code=ZERO_BASE_SALARY,
            message=f"Base salary for employee {employee_id} is zero",
            field="earnings_details.base_salary",
        )

    def _unusual_net_pay_delta(
        self, employee_id: str, bundle: CompensationBundle, computation: PayslipComputation
    ) -> ExceptionFlag | None:
        previous = bundle.previous_net_pay
        if previous is None or previous <= ZERO:
            return None
        delta = abs(computation.net_pay - previous) / previous
        if delta <= self.net_pay_delta_threshold:
            return None
        return ExceptionFlag(
            code=UNUSUAL_NET_PAY_DELTA,
            message=(
                f"Net pay {computation.net_pay} differs from previous period "
                f"({previous}) by {delta:.0%}"
            ),
            field="net_pay",
        )


__all__ = [
    "ExceptionDetector",
    "MISSING_BANK_DETAILS",
    "UNRESOLVED_DISPUTE",
    "UNPAID_LEAVE_NOT_DEDUCTED",
    "NEW_HIRE_WITHOUT_SIGNING_BONUS",
    "OFFBOARDING_WITHOUT_BENEFIT",
    "ZERO_BASE_SALARY",
    "UNUSUAL_NET_PAY_DELTA",
]
