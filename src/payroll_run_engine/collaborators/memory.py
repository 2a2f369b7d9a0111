"""In-memory collaborator adapters for local development and testing.

Replace with adapters over the real employee, leave and dispute services in
production.
"""

from __future__ import annotations

import json
from collections import defaultdict
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from payroll_run_engine.calculators.types import (
    ZERO,
    EarningKind,
    EarningLine,
    InsuranceLine,
    PenaltyLine,
    TaxLine,
    first_of_month,
    to_decimal,
)
from payroll_run_engine.collaborators.base import Collaborators, EmployeeRecord

period_key = first_of_month


class _PeriodScoped:
    """Items recorded per employee, either for one period or for every period."""

    def __init__(self) -> None:
        self._items: dict[str, list[tuple[date | None, Any]]] = defaultdict(list)

    def add(self, employee_id: str, item: Any, period: date | None = None) -> None:
        key = period_key(period) if period is not None else None
        self._items[employee_id].append((key, item))

    def get(self, employee_id: str, period: date) -> list[Any]:
        key = period_key(period)
        return [item for p, item in self._items.get(employee_id, []) if p is None or p == key]


class InMemoryEmployeeDirectory:
    """Employee directory backed by a dict."""

    def __init__(self, records: list[EmployeeRecord] | None = None):
        self._records: dict[str, EmployeeRecord] = {}
        # Ids listed in scope but deliberately missing a record
        self._dangling: dict[str, list[str]] = defaultdict(list)
        for record in records or []:
            self.add(record)

    def add(self, record: EmployeeRecord) -> None:
        self._records[record.employee_id] = record

    def add_dangling(self, entity: str, employee_id: str) -> None:
        """List an employee in scope whose record cannot be fetched."""
        self._dangling[entity].append(employee_id)

    async def list_employees(self, entity: str) -> list[str]:
        ids = [
            r.employee_id
            for r in self._records.values()
            if r.entity == entity and r.status == "active"
        ]
        return sorted([*ids, *self._dangling.get(entity, [])])

    async def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        return self._records.get(employee_id)


class InMemoryCompensationSource:
    """Compensation components keyed by employee (and optionally period)."""

    def __init__(self) -> None:
        self._earnings: dict[EarningKind, _PeriodScoped] = {
            kind: _PeriodScoped() for kind in EarningKind
        }
        self._penalties = _PeriodScoped()
        self._taxes: dict[str, list[TaxLine]] = defaultdict(list)
        self._insurances: dict[str, list[InsuranceLine]] = defaultdict(list)

    def add_earning(
        self,
        employee_id: str,
        kind: EarningKind,
        name: str,
        amount: Decimal | str | int,
        period: date | None = None,
    ) -> None:
        self._earnings[kind].add(
            employee_id, EarningLine(kind=kind, name=name, amount=to_decimal(amount)), period
        )

    def add_penalty(
        self,
        employee_id: str,
        reason: str,
        amount: Decimal | str | int,
        period: date | None = None,
    ) -> None:
        self._penalties.add(
            employee_id, PenaltyLine(reason=reason, amount=to_decimal(amount)), period
        )

    def add_tax_rule(self, entity: str, name: str, rate: Decimal | str | int) -> None:
        self._taxes[entity].append(TaxLine(name=name, rate=to_decimal(rate)))

    def add_insurance_rate(
        self,
        entity: str,
        name: str,
        employee_rate: Decimal | str | int,
        employer_rate: Decimal | str | int = ZERO,
        min_salary: Decimal | str | int | None = None,
        max_salary: Decimal | str | int | None = None,
    ) -> None:
        self._insurances[entity].append(
            InsuranceLine(
                name=name,
                employee_rate=to_decimal(employee_rate),
                employer_rate=to_decimal(employer_rate),
                min_salary=to_decimal(min_salary) if min_salary is not None else None,
                max_salary=to_decimal(max_salary) if max_salary is not None else None,
            )
        )

    async def get_allowances(self, employee_id: str, period: date) -> list[EarningLine]:
        return self._earnings[EarningKind.ALLOWANCE].get(employee_id, period)

    async def get_bonuses(self, employee_id: str, period: date) -> list[EarningLine]:
        return self._earnings[EarningKind.BONUS].get(employee_id, period)

    async def get_benefits(self, employee_id: str, period: date) -> list[EarningLine]:
        return self._earnings[EarningKind.BENEFIT].get(employee_id, period)

    async def get_refunds(self, employee_id: str, period: date) -> list[EarningLine]:
        return self._earnings[EarningKind.REFUND].get(employee_id, period)

    async def get_penalties(self, employee_id: str, period: date) -> list[PenaltyLine]:
        return self._penalties.get(employee_id, period)

    async def get_tax_rules(self, entity: str, period: date) -> list[TaxLine]:
        return list(self._taxes.get(entity, []))

    async def get_insurance_rates(self, entity: str, period: date) -> list[InsuranceLine]:
        return list(self._insurances.get(entity, []))


class InMemoryLeaveAttendance:
    """Unpaid leave days and HR events per employee and period."""

    def __init__(self) -> None:
        self._unpaid: dict[tuple[str, date], Decimal] = {}
        self._events: dict[tuple[str, date], list[str]] = defaultdict(list)

    def set_unpaid_leave_days(
        self, employee_id: str, period: date, days: Decimal | str | int
    ) -> None:
        self._unpaid[(employee_id, period_key(period))] = to_decimal(days)

    def add_hr_event(self, employee_id: str, period: date, event: str) -> None:
        self._events[(employee_id, period_key(period))].append(event)

    async def get_unpaid_leave_days(self, employee_id: str, period: date) -> Decimal:
        return self._unpaid.get((employee_id, period_key(period)), ZERO)

    async def get_hr_events(self, employee_id: str, period: date) -> list[str]:
        return list(self._events.get((employee_id, period_key(period)), []))


class InMemoryDisputes:
    """Open disputes per employee and period."""

    def __init__(self) -> None:
        self._open: set[tuple[str, date]] = set()

    def open_dispute(self, employee_id: str, period: date) -> None:
        self._open.add((employee_id, period_key(period)))

    def resolve_dispute(self, employee_id: str, period: date) -> None:
        self._open.discard((employee_id, period_key(period)))

    async def has_unresolved_disputes(self, employee_id: str, period: date) -> bool:
        return (employee_id, period_key(period)) in self._open


def in_memory_collaborators() -> Collaborators:
    """Build an empty set of in-memory collaborators."""
    return Collaborators(
        directory=InMemoryEmployeeDirectory(),
        compensation=InMemoryCompensationSource(),
        leave=InMemoryLeaveAttendance(),
        disputes=InMemoryDisputes(),
    )


def load_collaborators_fixture(path: str | Path) -> Collaborators:
    """Seed in-memory collaborators from a JSON fixture file.

    Expected shape::

        {
          "employees": [{"employee_id", "entity", "base_salary", "bank_status"}],
          "earnings": [{"employee_id", "kind", "name", "amount", "period"?}],
          "penalties": [{"employee_id", "reason", "amount", "period"?}],
          "taxes": [{"entity", "name", "rate"}],
          "insurances": [{"entity", "name", "employee_rate", ...}],
          "unpaid_leave": [{"employee_id", "period", "days"}],
          "hr_events": [{"employee_id", "period", "event"}],
          "disputes": [{"employee_id", "period"}]
        }
    """
    data: dict[str, Any] = json.loads(Path(path).read_text())
    collaborators = in_memory_collaborators()
    directory: InMemoryEmployeeDirectory = collaborators.directory  # type: ignore[assignment]
    compensation: InMemoryCompensationSource = collaborators.compensation  # type: ignore[assignment]
    leave: InMemoryLeaveAttendance = collaborators.leave  # type: ignore[assignment]
    disputes: InMemoryDisputes = collaborators.disputes  # type: ignore[assignment]

    for emp in data.get("employees", []):
        directory.add(
            EmployeeRecord(
                employee_id=emp["employee_id"],
                entity=emp["entity"],
                base_salary=to_decimal(emp["base_salary"]),
                bank_status=emp.get("bank_status", "valid"),
                status=emp.get("status", "active"),
            )
        )
    for item in data.get("earnings", []):
        compensation.add_earning(
            item["employee_id"],
            EarningKind(item["kind"]),
            item["name"],
            item["amount"],
            _optional_date(item.get("period")),
        )
    for item in data.get("penalties", []):
        compensation.add_penalty(
            item["employee_id"],
            item["reason"],
            item["amount"],
            _optional_date(item.get("period")),
        )
    for item in data.get("taxes", []):
        compensation.add_tax_rule(item["entity"], item["name"], item["rate"])
    for item in data.get("insurances", []):
        compensation.add_insurance_rate(
            item["entity"],
            item["name"],
            item["employee_rate"],
            item.get("employer_rate", ZERO),
            item.get("min_salary"),
            item.get("max_salary"),
        )
    for item in data.get("unpaid_leave", []):
        leave.set_unpaid_leave_days(
            item["employee_id"], date.fromisoformat(item["period"]), item["days"]
        )
    for item in data.get("hr_events", []):
        leave.add_hr_event(item["employee_id"], date.fromisoformat(item["period"]), item["event"])
    for item in data.get("disputes", []):
        disputes.open_dispute(item["employee_id"], date.fromisoformat(item["period"]))

    return collaborators


def _optional_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None
