"""Type definitions for the payslip calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

BANK_STATUS_VALID = "valid"
UNPAID_LEAVE_REASON = "Unpaid leave"


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a raw numeric value to Decimal without binary float drift."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def first_of_month(value: date) -> date:
    """Normalize a date to the first of its calendar month."""
    return value.replace(day=1)


class InvalidLineItemError(ValueError):
    """Raised when a compensation line item violates its bounds."""


class Severity(str, Enum):
    """Exception flag severity."""

    WARN = "warn"
    ERROR = "error"


class PenaltyKind(str, Enum):
    """Origin of a deduction line."""

    PENALTY = "penalty"
    UNPAID_LEAVE = "unpaid_leave"


class EarningKind(str, Enum):
    """Additive earnings components on top of base salary."""

    ALLOWANCE = "allowance"
    BONUS = "bonus"
    BENEFIT = "benefit"
    REFUND = "refund"


@dataclass(frozen=True)
class EarningLine:
    """An additive earnings line item (allowance, bonus, benefit or refund)."""

    kind: EarningKind
    name: str
    amount: Decimal

    def __post_init__(self) -> None:
        amount = to_decimal(self.amount)
        if amount < 0:
            raise InvalidLineItemError(
                f"{self.kind.value} '{self.name}' has negative amount {amount}"
            )
        object.__setattr__(self, "amount", round_to_cents(amount))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "amount": str(self.amount)}


def _check_rate(label: str, name: str, rate: Decimal) -> Decimal:
    rate = to_decimal(rate)
    if rate < 0 or rate > HUNDRED:
        raise InvalidLineItemError(f"{label} '{name}' rate {rate} is outside [0, 100]")
    return rate


@dataclass(frozen=True)
class TaxLine:
    """Statutory tax, a percentage of base salary (7.5 means 7.5%)."""

    name: str
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", _check_rate("Tax", self.name, self.rate))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "rate": str(self.rate)}


@dataclass(frozen=True)
class InsuranceLine:
    """Insurance contribution, a percentage of base salary.

    ``min_salary``/``max_salary`` describe the bracket the line applies to;
    both are optional and inclusive.
    """

    name: str
    employee_rate: Decimal
    employer_rate: Decimal = ZERO
    min_salary: Decimal | None = None
    max_salary: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "employee_rate", _check_rate("Insurance", self.name, self.employee_rate)
        )
        object.__setattr__(
            self, "employer_rate", _check_rate("Insurance", self.name, self.employer_rate)
        )
        for attr in ("min_salary", "max_salary"):
            value = getattr(self, attr)
            if value is not None:
                object.__setattr__(self, attr, to_decimal(value))

    def applies_to(self, base_salary: Decimal) -> bool:
        if self.min_salary is not None and base_salary < self.min_salary:
            return False
        if self.max_salary is not None and base_salary > self.max_salary:
            return False
        return True

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "employee_rate": str(self.employee_rate)}


@dataclass(frozen=True)
class PenaltyLine:
    """Flat, already-resolved penalty amount."""

    reason: str
    amount: Decimal
    kind: PenaltyKind = PenaltyKind.PENALTY

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", PenaltyKind(self.kind))
        amount = to_decimal(self.amount)
        if amount < 0:
            raise InvalidLineItemError(f"Penalty '{self.reason}' has negative amount {amount}")
        object.__setattr__(self, "amount", round_to_cents(amount))

    @property
    def is_unpaid_leave(self) -> bool:
        return self.kind is PenaltyKind.UNPAID_LEAVE

    def to_dict(self) -> dict[str, str]:
        return {"reason": self.reason, "amount": str(self.amount), "kind": self.kind.value}


@dataclass(frozen=True)
class ExceptionFlag:
    """A detected anomaly attached to a payslip."""

    code: str
    message: str
    severity: Severity = Severity.WARN
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.field is not None:
            data["field"] = self.field
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExceptionFlag:
        return cls(
            code=data["code"],
            message=data["message"],
            severity=Severity(data.get("severity", Severity.WARN.value)),
            field=data.get("field"),
        )


@dataclass(frozen=True)
class CompensationBundle:
    """Everything needed to compute one employee's payslip for a period."""

    employee_id: str
    entity: str
    payroll_period: date
    base_salary: Decimal = ZERO
    allowances: tuple[EarningLine, ...] = ()
    bonuses: tuple[EarningLine, ...] = ()
    benefits: tuple[EarningLine, ...] = ()
    refunds: tuple[EarningLine, ...] = ()
    taxes: tuple[TaxLine, ...] = ()
    insurances: tuple[InsuranceLine, ...] = ()
    penalties: tuple[PenaltyLine, ...] = ()

    # Signals consumed by exception detection only
    bank_status: str = BANK_STATUS_VALID
    hr_events: tuple[str, ...] = ()
    unpaid_leave_days: Decimal = ZERO
    has_unresolved_disputes: bool = False
    previous_net_pay: Decimal | None = None

    def __post_init__(self) -> None:
        base = to_decimal(self.base_salary)
        if base < 0:
            raise InvalidLineItemError(
                f"Employee {self.employee_id} has negative base salary {base}"
            )
        object.__setattr__(self, "base_salary", round_to_cents(base))
        object.__setattr__(self, "unpaid_leave_days", to_decimal(self.unpaid_leave_days))

    def earning_lines(self) -> list[EarningLine]:
        return [*self.allowances, *self.bonuses, *self.benefits, *self.refunds]

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for fingerprinting (deterministic ordering)."""
        return {
            "employee_id": self.employee_id,
            "entity": self.entity,
            "payroll_period": self.payroll_period.isoformat(),
            "base_salary": str(self.base_salary),
            "allowances": [line.to_dict() for line in self.allowances],
            "bonuses": [line.to_dict() for line in self.bonuses],
            "benefits": [line.to_dict() for line in self.benefits],
            "refunds": [line.to_dict() for line in self.refunds],
            "taxes": [line.to_dict() for line in self.taxes],
            "insurances": [line.to_dict() for line in self.insurances],
            "penalties": [line.to_dict() for line in self.penalties],
        }


@dataclass
class PayslipComputation:
    """Result of computing one employee's payslip."""

    employee_id: str
    calculation_id: UUID
    earnings_details: dict[str, Any]
    deductions_details: dict[str, Any]
    total_gross_salary: Decimal
    total_tax: Decimal
    total_insurance: Decimal
    total_penalties: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    flags: list[ExceptionFlag] = field(default_factory=list)

    @property
    def is_negative(self) -> bool:
        return self.net_pay < 0
