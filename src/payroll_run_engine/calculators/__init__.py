"""Payslip calculation and exception detection."""

from payroll_run_engine.calculators.exception_detector import ExceptionDetector
from payroll_run_engine.calculators.payslip_calculator import PayslipCalculator
from payroll_run_engine.calculators.types import (
    CompensationBundle,
    EarningKind,
    EarningLine,
    ExceptionFlag,
    InsuranceLine,
    InvalidLineItemError,
    PayslipComputation,
    PenaltyKind,
    PenaltyLine,
    Severity,
    TaxLine,
)

__all__ = [
    "ExceptionDetector",
    "PayslipCalculator",
    "CompensationBundle",
    "EarningKind",
    "EarningLine",
    "ExceptionFlag",
    "InsuranceLine",
    "InvalidLineItemError",
    "PayslipComputation",
    "PenaltyKind",
    "PenaltyLine",
    "Severity",
    "TaxLine",
]
