"""Tests for compensation input resolution."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from payroll_run_engine.calculators import EarningKind
from payroll_run_engine.collaborators import (
    Collaborators,
    EmployeeRecord,
    InMemoryEmployeeDirectory,
    in_memory_collaborators,
)
from payroll_run_engine.services import CompensationInputResolver, MissingEmployeeDataError

pytestmark = pytest.mark.asyncio

ENTITY = "ACME-EG"
PERIOD = date(2026, 3, 1)


@pytest.fixture
def sources() -> Collaborators:
    collaborators = in_memory_collaborators()
    collaborators.directory.add(EmployeeRecord("E001", ENTITY, Decimal("6000")))
    return collaborators


def resolver_for(collaborators: Collaborators, **kwargs) -> CompensationInputResolver:
    kwargs.setdefault("timeout_seconds", 1)
    kwargs.setdefault("working_days_per_month", 30)
    return CompensationInputResolver(collaborators, **kwargs)


class SlowDirectory(InMemoryEmployeeDirectory):
    """Directory whose lookups never return in time."""

    async def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        await asyncio.sleep(5)
        return await super().get_employee(employee_id)


class TestResolve:
    async def test_unknown_employee_raises(self, sources):
        with pytest.raises(MissingEmployeeDataError) as exc_info:
            await resolver_for(sources).resolve("NOPE", ENTITY, PERIOD)

        assert exc_info.value.employee_id == "NOPE"

    async def test_no_variable_pay_returns_empty_bundle(self, sources):
        bundle = await resolver_for(sources).resolve("E001", ENTITY, PERIOD)

        assert bundle.base_salary == Decimal("6000.00")
        assert bundle.earning_lines() == []
        assert bundle.taxes == ()
        assert bundle.insurances == ()
        assert bundle.penalties == ()
        assert bundle.hr_events == ()
        assert bundle.has_unresolved_disputes is False

    async def test_collects_every_component(self, sources):
        sources.compensation.add_earning("E001", EarningKind.ALLOWANCE, "Transport", "150")
        sources.compensation.add_earning("E001", EarningKind.BONUS, "Quarterly", "500")
        sources.compensation.add_earning("E001", EarningKind.BENEFIT, "Meal", "80")
        sources.compensation.add_earning("E001", EarningKind.REFUND, "Travel", "45.50")
        sources.compensation.add_penalty("E001", "Damage", "20")
        sources.compensation.add_tax_rule(ENTITY, "Income", "10")
        sources.compensation.add_insurance_rate(ENTITY, "Health", "2")
        sources.leave.add_hr_event("E001", PERIOD, "PROBATION")
        sources.disputes.open_dispute("E001", PERIOD)

        bundle = await resolver_for(sources).resolve(
            "E001", ENTITY, PERIOD, previous_net_pay=Decimal("5100")
        )

        assert [line.name for line in bundle.allowances] == ["Transport"]
        assert [line.name for line in bundle.bonuses] == ["Quarterly"]
        assert [line.name for line in bundle.benefits] == ["Meal"]
        assert bundle.refunds[0].amount == Decimal("45.50")
        assert [p.reason for p in bundle.penalties] == ["Damage"]
        assert [t.name for t in bundle.taxes] == ["Income"]
        assert [i.name for i in bundle.insurances] == ["Health"]
        assert bundle.hr_events == ("PROBATION",)
        assert bundle.has_unresolved_disputes is True
        assert bundle.previous_net_pay == Decimal("5100")

    async def test_period_scoped_items_only_apply_to_their_month(self, sources):
        sources.compensation.add_earning(
            "E001", EarningKind.BONUS, "March only", "300", period=date(2026, 3, 10)
        )
        sources.compensation.add_earning(
            "E001", EarningKind.BONUS, "April only", "400", period=date(2026, 4, 1)
        )

        bundle = await resolver_for(sources).resolve("E001", ENTITY, PERIOD)

        assert [line.name for line in bundle.bonuses] == ["March only"]

    async def test_zero_amount_lines_are_dropped(self, sources):
        sources.compensation.add_earning("E001", EarningKind.ALLOWANCE, "Nothing", "0")
        sources.compensation.add_penalty("E001", "Waived", "0")

        bundle = await resolver_for(sources).resolve("E001", ENTITY, PERIOD)

        assert bundle.allowances == ()
        assert bundle.penalties == ()


class TestUnpaidLeave:
    async def test_unpaid_leave_becomes_penalty(self, sources):
        sources.leave.set_unpaid_leave_days("E001", PERIOD, "3")

        bundle = await resolver_for(sources).resolve("E001", ENTITY, PERIOD)

        # 6000 / 30 * 3
        assert len(bundle.penalties) == 1
        assert bundle.penalties[0].amount == Decimal("600.00")
        assert bundle.penalties[0].is_unpaid_leave
        assert bundle.unpaid_leave_days == Decimal("3")

    async def test_float_leave_days_are_normalized(self, sources, monkeypatch):
        async def float_days(employee_id, period):
            return 1.5

        monkeypatch.setattr(sources.leave, "get_unpaid_leave_days", float_days)
        sources.directory.add(EmployeeRecord("E001", ENTITY, 6000.0))

        bundle = await resolver_for(sources).resolve("E001", ENTITY, PERIOD)

        # 6000 / 30 * 1.5
        assert bundle.penalties[0].amount == Decimal("300.00")
        assert bundle.unpaid_leave_days == Decimal("1.5")
        assert bundle.base_salary == Decimal("6000.00")

    async def test_daily_rate_uses_configured_working_days(self, sources):
        sources.leave.set_unpaid_leave_days("E001", PERIOD, "1")

        bundle = await resolver_for(sources, working_days_per_month=22).resolve(
            "E001", ENTITY, PERIOD
        )

        # 6000 / 22 = 272.7272...
        assert bundle.penalties[0].amount == Decimal("272.73")

    async def test_no_penalty_for_zero_base(self, sources):
        sources.directory.add(EmployeeRecord("E002", ENTITY, Decimal("0")))
        sources.leave.set_unpaid_leave_days("E002", PERIOD, "2")

        bundle = await resolver_for(sources).resolve("E002", ENTITY, PERIOD)

        assert bundle.penalties == ()


class TestInsuranceBrackets:
    async def test_only_matching_bracket_applies(self, sources):
        sources.compensation.add_insurance_rate(
            ENTITY, "Social (low)", "11", max_salary="4999.99"
        )
        sources.compensation.add_insurance_rate(
            ENTITY, "Social (high)", "9", min_salary="5000"
        )

        bundle = await resolver_for(sources).resolve("E001", ENTITY, PERIOD)

        assert [i.name for i in bundle.insurances] == ["Social (high)"]


class TestTimeout:
    async def test_timeout_is_missing_employee_data(self):
        collaborators = in_memory_collaborators()
        collaborators.directory = SlowDirectory([EmployeeRecord("E001", ENTITY, Decimal("1"))])

        with pytest.raises(MissingEmployeeDataError) as exc_info:
            await resolver_for(collaborators, timeout_seconds=0.05).resolve(
                "E001", ENTITY, PERIOD
            )

        assert "timed out" in exc_info.value.reason
