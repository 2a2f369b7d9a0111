"""Tests for the payslip calculator."""

from datetime import date
from decimal import Decimal

import pytest

from payroll_run_engine.calculators import (
    CompensationBundle,
    EarningKind,
    EarningLine,
    InsuranceLine,
    InvalidLineItemError,
    PayslipCalculator,
    PenaltyLine,
    Severity,
    TaxLine,
)
from payroll_run_engine.calculators.payslip_calculator import NEGATIVE_NET_PAY

PERIOD = date(2026, 3, 1)


def make_bundle(**kwargs) -> CompensationBundle:
    defaults = {
        "employee_id": "E001",
        "entity": "ACME-EG",
        "payroll_period": PERIOD,
        "base_salary": Decimal("5000"),
        "taxes": (TaxLine("Income", Decimal("10")),),
        "insurances": (InsuranceLine("Health", Decimal("2")),),
    }
    defaults.update(kwargs)
    return CompensationBundle(**defaults)


class TestPayslipScenarios:
    """End-to-end figures for simple employees."""

    def test_base_salary_with_tax_and_insurance(self):
        """5000 base, 10% tax, 2% insurance -> 4400 net, no flags."""
        result = PayslipCalculator.compute(make_bundle(), engine_version="test")

        assert result.total_gross_salary == Decimal("5000.00")
        assert result.total_tax == Decimal("500.00")
        assert result.total_insurance == Decimal("100.00")
        assert result.total_deductions == Decimal("600.00")
        assert result.net_pay == Decimal("4400.00")
        assert result.flags == []

    def test_negative_net_pay_is_flagged_not_clamped(self):
        """0 base and a 50 penalty -> -50 net with an error flag."""
        bundle = make_bundle(
            base_salary=Decimal("0"),
            penalties=(PenaltyLine("Late equipment return", Decimal("50")),),
        )

        result = PayslipCalculator.compute(bundle, engine_version="test")

        assert result.total_gross_salary == Decimal("0.00")
        assert result.total_deductions == Decimal("50.00")
        assert result.net_pay == Decimal("-50.00")
        assert result.is_negative
        assert [f.code for f in result.flags] == [NEGATIVE_NET_PAY]
        assert result.flags[0].severity == Severity.ERROR

    def test_gross_is_base_plus_every_earning_line(self):
        bundle = make_bundle(
            allowances=(EarningLine(EarningKind.ALLOWANCE, "Transport", Decimal("200.10")),),
            bonuses=(EarningLine(EarningKind.BONUS, "Quarterly", Decimal("750")),),
            benefits=(EarningLine(EarningKind.BENEFIT, "Meal", Decimal("99.95")),),
            refunds=(EarningLine(EarningKind.REFUND, "Travel", Decimal("0.05")),),
        )

        result = PayslipCalculator.compute(bundle, engine_version="test")

        assert result.total_gross_salary == Decimal("6050.10")
        assert result.net_pay == result.total_gross_salary - result.total_deductions

    def test_no_rates_no_variable_pay(self):
        result = PayslipCalculator.compute(
            make_bundle(taxes=(), insurances=()), engine_version="test"
        )

        assert result.total_deductions == Decimal("0.00")
        assert result.net_pay == Decimal("5000.00")


class TestBaseSalaryIndexing:
    """Statutory deductions are indexed on base salary, not gross.

    Most payroll systems tax gross pay. This engine deliberately keeps the
    observed base-salary rule; these tests pin it so a domain expert can
    confirm or override it in one place.
    """

    def test_tax_ignores_allowances_and_bonuses(self):
        bundle = make_bundle(
            allowances=(EarningLine(EarningKind.ALLOWANCE, "Housing", Decimal("1000")),),
            bonuses=(EarningLine(EarningKind.BONUS, "Signing", Decimal("2000")),),
        )

        result = PayslipCalculator.compute(bundle, engine_version="test")

        assert result.total_gross_salary == Decimal("8000.00")
        # 10% of 5000 base, not of 8000 gross
        assert result.total_tax == Decimal("500.00")
        # 2% of 5000 base
        assert result.total_insurance == Decimal("100.00")
        assert result.net_pay == Decimal("7400.00")

    def test_insurance_on_zero_base_is_zero_even_with_earnings(self):
        bundle = make_bundle(
            base_salary=Decimal("0"),
            bonuses=(EarningLine(EarningKind.BONUS, "Spot", Decimal("300")),),
        )

        result = PayslipCalculator.compute(bundle, engine_version="test")

        assert result.total_tax == Decimal("0.00")
        assert result.total_insurance == Decimal("0.00")
        assert result.net_pay == Decimal("300.00")


class TestRounding:
    """Every line is rounded half-up to cents before summing."""

    def test_line_contribution_rounds_half_up(self):
        # 7.5% of 3333.33 = 249.99975 -> 250.00
        bundle = make_bundle(
            base_salary=Decimal("3333.33"),
            taxes=(TaxLine("Income", Decimal("7.5")),),
            insurances=(),
        )

        result = PayslipCalculator.compute(bundle, engine_version="test")

        assert result.total_tax == Decimal("250.00")
        assert result.deductions_details["taxes"][0]["amount"] == "250.00"

    def test_totals_are_exact_sums_of_displayed_lines(self):
        # Each 1.5% of 1234.57 = 18.518... -> 18.52; two lines -> 37.04
        bundle = make_bundle(
            base_salary=Decimal("1234.57"),
            taxes=(TaxLine("A", Decimal("1.5")), TaxLine("B", Decimal("1.5"))),
            insurances=(),
        )

        result = PayslipCalculator.compute(bundle, engine_version="test")

        amounts = [Decimal(row["amount"]) for row in result.deductions_details["taxes"]]
        assert amounts == [Decimal("18.52"), Decimal("18.52")]
        assert result.total_tax == sum(amounts)

    def test_percentage_of(self):
        assert PayslipCalculator.percentage_of(Decimal("100"), Decimal("33.333")) == Decimal(
            "33.33"
        )


class TestPayslipDetails:
    """JSON payload shapes stored on the payslip."""

    def test_earnings_details_shape(self):
        bundle = make_bundle(
            allowances=(EarningLine(EarningKind.ALLOWANCE, "Transport", Decimal("200")),),
        )

        details = PayslipCalculator.compute(bundle, engine_version="test").earnings_details

        assert details == {
            "base_salary": "5000.00",
            "allowances": [{"name": "Transport", "amount": "200.00"}],
            "bonuses": [],
            "benefits": [],
            "refunds": [],
        }

    def test_deductions_details_shape(self):
        bundle = make_bundle(penalties=(PenaltyLine("Damage", Decimal("25")),))

        details = PayslipCalculator.compute(bundle, engine_version="test").deductions_details

        assert details == {
            "taxes": [{"name": "Income", "rate": "10", "amount": "500.00"}],
            "insurances": [{"name": "Health", "employee_rate": "2", "amount": "100.00"}],
            "penalties": {"penalties": [{"reason": "Damage", "amount": "25.00", "kind": "penalty"}]},
        }


class TestDeterminism:
    """Identical bundles yield identical payslips."""

    def test_same_bundle_same_result(self):
        first = PayslipCalculator.compute(make_bundle(), engine_version="test")
        second = PayslipCalculator.compute(make_bundle(), engine_version="test")

        assert first == second
        assert first.calculation_id == second.calculation_id

    def test_calculation_id_changes_with_inputs(self):
        first = PayslipCalculator.compute(make_bundle(), engine_version="test")
        second = PayslipCalculator.compute(
            make_bundle(base_salary=Decimal("5000.01")), engine_version="test"
        )

        assert first.calculation_id != second.calculation_id

    def test_calculation_id_changes_with_engine_version(self):
        bundle = make_bundle()

        assert PayslipCalculator.calculation_id(bundle, "1.0.0") != (
            PayslipCalculator.calculation_id(bundle, "1.0.1")
        )


class TestLineValidation:
    """Typed line records reject out-of-bounds values on construction."""

    def test_negative_earning_rejected(self):
        with pytest.raises(InvalidLineItemError):
            EarningLine(EarningKind.BONUS, "Clawback", Decimal("-1"))

    def test_negative_penalty_rejected(self):
        with pytest.raises(InvalidLineItemError):
            PenaltyLine("Refund", Decimal("-10"))

    @pytest.mark.parametrize("rate", [Decimal("-0.01"), Decimal("100.01")])
    def test_rate_outside_bounds_rejected(self, rate):
        with pytest.raises(InvalidLineItemError):
            TaxLine("Income", rate)
        with pytest.raises(InvalidLineItemError):
            InsuranceLine("Health", rate)

    def test_rate_bounds_inclusive(self):
        assert TaxLine("None", Decimal("0")).rate == Decimal("0")
        assert TaxLine("All", Decimal("100")).rate == Decimal("100")

    def test_negative_base_salary_rejected(self):
        with pytest.raises(InvalidLineItemError):
            make_bundle(base_salary=Decimal("-1"))

    def test_amounts_are_quantized_to_cents(self):
        line = EarningLine(EarningKind.ALLOWANCE, "Odd", Decimal("10.005"))
        assert line.amount == Decimal("10.01")
