"""Payslip calculator: resolved compensation bundle in, payslip figures out."""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from typing import Any
from uuid import UUID

from payroll_run_engine.calculators.types import (
    HUNDRED,
    ZERO,
    CompensationBundle,
    EarningLine,
    ExceptionFlag,
    PayslipComputation,
    Severity,
    round_to_cents,
)
from payroll_run_engine.config import get_settings

NEGATIVE_NET_PAY = "NEGATIVE_NET_PAY"


class PayslipCalculator:
    """Deterministic payslip arithmetic.

    Calculation pipeline (stable order):
    1) gross = base salary + allowances + bonuses + benefits + refunds
    2) each tax and insurance line contributes rate / 100 * base salary
       (base-salary indexed, not gross indexed)
    3) penalties are summed verbatim
    4) deductions = taxes + insurances + penalties
    5) net = gross - deductions; a negative net is kept and flagged

    Rounding:
    - every line contribution is rounded to cents (half-up) before summing,
      so totals are exact sums of the displayed lines
    """

    @staticmethod
    def compute(
        bundle: CompensationBundle,
        engine_version: str | None = None,
    ) -> PayslipComputation:
        """Compute a payslip from a resolved bundle. Pure and deterministic."""
        base_salary = bundle.base_salary

        # 1) Gross
        earning_lines = bundle.earning_lines()
        total_gross = round_to_cents(base_salary + _sum_amounts(earning_lines))

        # 2) Base-salary indexed statutory deductions
        tax_rows: list[dict[str, str]] = []
        total_tax = ZERO
        for tax in bundle.taxes:
            amount = PayslipCalculator.percentage_of(base_salary, tax.rate)
            total_tax += amount
            tax_rows.append({**tax.to_dict(), "amount": str(amount)})

        insurance_rows: list[dict[str, str]] = []
        total_insurance = ZERO
        for insurance in bundle.insurances:
            amount = PayslipCalculator.percentage_of(base_salary, insurance.employee_rate)
            total_insurance += amount
            insurance_rows.append({**insurance.to_dict(), "amount": str(amount)})

        # 3) Flat penalties
        total_penalties = sum((p.amount for p in bundle.penalties), ZERO)

        # 4) Deductions
        total_deductions = round_to_cents(total_tax + total_insurance + total_penalties)

        # 5) Net, never clamped
        net_pay = round_to_cents(total_gross - total_deductions)

        flags: list[ExceptionFlag] = []
        if net_pay < 0:
            flags.append(
                ExceptionFlag(
                    code=NEGATIVE_NET_PAY,
                    message=(
                        f"Net pay is negative ({net_pay}): deductions {total_deductions} "
                        f"exceed gross salary {total_gross}"
                    ),
                    severity=Severity.ERROR,
                    field="net_pay",
                )
            )

        return PayslipComputation(
            employee_id=bundle.employee_id,
            calculation_id=PayslipCalculator.calculation_id(bundle, engine_version),
            earnings_details={
                "base_salary": str(base_salary),
                "allowances": [line.to_dict() for line in bundle.allowances],
                "bonuses": [line.to_dict() for line in bundle.bonuses],
                "benefits": [line.to_dict() for line in bundle.benefits],
                "refunds": [line.to_dict() for line in bundle.refunds],
            },
            deductions_details={
                "taxes": tax_rows,
                "insurances": insurance_rows,
                "penalties": {"penalties": [p.to_dict() for p in bundle.penalties]},
            },
            total_gross_salary=total_gross,
            total_tax=round_to_cents(total_tax),
            total_insurance=round_to_cents(total_insurance),
            total_penalties=round_to_cents(total_penalties),
            total_deductions=total_deductions,
            net_pay=net_pay,
            flags=flags,
        )

    @staticmethod
    def percentage_of(base: Decimal, rate: Decimal) -> Decimal:
        """Return ``rate`` percent of ``base`` rounded to cents."""
        return round_to_cents(rate / HUNDRED * base)

    @staticmethod
    def calculation_id(
        bundle: CompensationBundle,
        engine_version: str | None = None,
    ) -> UUID:
        """Generate deterministic calculation ID from the canonical bundle."""
        data: dict[str, Any] = {
            "bundle": bundle.to_canonical_dict(),
            "engine_version": engine_version or get_settings().engine_version,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])


def _sum_amounts(lines: list[EarningLine]) -> Decimal:
    return sum((line.amount for line in lines), ZERO)
