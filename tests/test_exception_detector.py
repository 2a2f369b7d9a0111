"""Tests for payslip exception detection."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_run_engine.calculators import (
    CompensationBundle,
    EarningKind,
    EarningLine,
    ExceptionDetector,
    ExceptionFlag,
    PayslipCalculator,
    PenaltyKind,
    PenaltyLine,
    Severity,
    TaxLine,
)
from payroll_run_engine.calculators.exception_detector import (
    MISSING_BANK_DETAILS,
    NEW_HIRE_WITHOUT_SIGNING_BONUS,
    OFFBOARDING_WITHOUT_BENEFIT,
    UNPAID_LEAVE_NOT_DEDUCTED,
    UNRESOLVED_DISPUTE,
    UNUSUAL_NET_PAY_DELTA,
    ZERO_BASE_SALARY,
)
from payroll_run_engine.calculators.payslip_calculator import NEGATIVE_NET_PAY


def detect(detector: ExceptionDetector | None = None, **kwargs) -> list[ExceptionFlag]:
    fields = {
        "employee_id": "E001",
        "entity": "ACME-EG",
        "payroll_period": date(2026, 3, 1),
        "base_salary": Decimal("5000"),
        "taxes": (TaxLine("Income", Decimal("10")),),
    }
    fields.update(kwargs)
    bundle = CompensationBundle(**fields)
    computation = PayslipCalculator.compute(bundle, engine_version="test")
    detector = detector or ExceptionDetector(net_pay_delta_threshold=Decimal("0.5"))
    return detector.detect(bundle.employee_id, bundle, computation)


def codes(flags: list[ExceptionFlag]) -> list[str]:
    return [f.code for f in flags]


class TestIndividualRules:
    """Each rule fires on its own condition only."""

    def test_clean_payslip_has_no_flags(self):
        assert detect() == []

    @pytest.mark.parametrize("bank_status", ["missing", "invalid"])
    def test_missing_bank_details(self, bank_status):
        flags = detect(bank_status=bank_status)

        assert codes(flags) == [MISSING_BANK_DETAILS]
        assert flags[0].severity == Severity.WARN
        assert flags[0].field == "bank_status"

    def test_unresolved_dispute(self):
        flags = detect(has_unresolved_disputes=True)

        assert codes(flags) == [UNRESOLVED_DISPUTE]
        assert "2026-03" in flags[0].message

    def test_unpaid_leave_without_deduction(self):
        assert codes(detect(unpaid_leave_days=Decimal("2"))) == [UNPAID_LEAVE_NOT_DEDUCTED]

    def test_unpaid_leave_with_deduction_is_clean(self):
        flags = detect(
            unpaid_leave_days=Decimal("2"),
            penalties=(
                PenaltyLine(
                    "Unpaid leave (2 days)", Decimal("333.33"), kind=PenaltyKind.UNPAID_LEAVE
                ),
            ),
        )
        assert flags == []

    def test_penalty_named_like_unpaid_leave_does_not_count(self):
        flags = detect(
            unpaid_leave_days=Decimal("2"),
            penalties=(PenaltyLine("Unpaid leave adjustment", Decimal("50")),),
        )
        assert codes(flags) == [UNPAID_LEAVE_NOT_DEDUCTED]

    def test_new_hire_without_signing_bonus(self):
        assert codes(detect(hr_events=("NEW_HIRE",))) == [NEW_HIRE_WITHOUT_SIGNING_BONUS]

    def test_new_hire_with_bonus_is_clean(self):
        flags = detect(
            hr_events=("NEW_HIRE",),
            bonuses=(EarningLine(EarningKind.BONUS, "Signing", Decimal("1000")),),
        )
        assert flags == []

    @pytest.mark.parametrize("event", ["RESIGNED", "TERMINATED"])
    def test_offboarding_without_benefit(self, event):
        flags = detect(hr_events=(event,))

        assert codes(flags) == [OFFBOARDING_WITHOUT_BENEFIT]
        assert event in flags[0].message

    def test_offboarding_with_benefit_is_clean(self):
        flags = detect(
            hr_events=("TERMINATED",),
            benefits=(EarningLine(EarningKind.BENEFIT, "End of service", Decimal("5000")),),
        )
        assert flags == []

    def test_probation_alone_is_clean(self):
        assert detect(hr_events=("PROBATION",)) == []

    def test_zero_base_salary(self):
        assert codes(detect(base_salary=Decimal("0"))) == [ZERO_BASE_SALARY]


class TestNetPayDelta:
    """Net pay compared to the employee's previous approved payslip."""

    def test_no_history_no_flag(self):
        assert detect(previous_net_pay=None) == []

    def test_within_threshold(self):
        # net 4500 vs 4000: +12.5%
        assert detect(previous_net_pay=Decimal("4000")) == []

    def test_above_threshold(self):
        # net 4500 vs 2000: +125%
        flags = detect(previous_net_pay=Decimal("2000"))

        assert codes(flags) == [UNUSUAL_NET_PAY_DELTA]
        assert flags[0].field == "net_pay"

    def test_drop_above_threshold(self):
        # net 4500 vs 10000: -55%
        assert codes(detect(previous_net_pay=Decimal("10000"))) == [UNUSUAL_NET_PAY_DELTA]

    def test_threshold_is_configurable(self):
        strict = ExceptionDetector(net_pay_delta_threshold=Decimal("0.1"))
        # net 4500 vs 4000: +12.5%
        assert codes(detect(strict, previous_net_pay=Decimal("4000"))) == [
            UNUSUAL_NET_PAY_DELTA
        ]


class TestOrdering:
    """Flags appear in rule-evaluation order; calculator flags come last."""

    def test_multiple_flags_in_rule_order(self):
        flags = detect(
            base_salary=Decimal("0"),
            bank_status="missing",
            has_unresolved_disputes=True,
            hr_events=("NEW_HIRE",),
            penalties=(PenaltyLine("Damage", Decimal("50")),),
        )

        assert codes(flags) == [
            MISSING_BANK_DETAILS,
            UNRESOLVED_DISPUTE,
            NEW_HIRE_WITHOUT_SIGNING_BONUS,
            ZERO_BASE_SALARY,
            NEGATIVE_NET_PAY,
        ]
        assert flags[-1].severity == Severity.ERROR
        assert all(f.severity == Severity.WARN for f in flags[:-1])


class TestExceptionFlagSerialization:
    def test_to_dict_omits_missing_field(self):
        flag = ExceptionFlag(code="X", message="m")
        assert flag.to_dict() == {"code": "X", "message": "m", "severity": "warn"}

    def test_from_dict_restores_flag(self):
        raw = {"code": "X", "message": "m", "severity": "error", "field": "net_pay"}
        assert ExceptionFlag.from_dict(raw) == ExceptionFlag(
            code="X", message="m", severity=Severity.ERROR, field="net_pay"
        )
