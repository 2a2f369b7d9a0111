"""Pytest fixtures for payroll run engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from payroll_run_engine.calculators import EarningKind
from payroll_run_engine.collaborators import (
    Collaborators,
    EmployeeRecord,
    InMemoryCompensationSource,
    InMemoryEmployeeDirectory,
    in_memory_collaborators,
)
from payroll_run_engine.database import create_schema, create_session_factory, get_engine
from payroll_run_engine.events import DomainEvent, EventEmitter
from payroll_run_engine.models import PayrollRun
from payroll_run_engine.services import (
    Actor,
    ActorRole,
    ApprovalService,
    PayrollRunService,
    PayrollRunStatus,
)

ENTITY = "ACME-EG"
PERIOD = date(2026, 3, 1)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test SQLite database.

    File-backed rather than :memory: so that every pooled connection sees
    the same schema and data.
    """
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def other_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A second, independent session for concurrent-writer scenarios."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def collaborators() -> Collaborators:
    """Three active employees in ENTITY, a 10% income tax and 2% health insurance.

    Expected payslips for PERIOD:
    - E001: base 5000, net 4400
    - E002: base 3000 + 200 allowance, net 2840
    - E003: base 4000, net 3520, missing bank details
    """
    collaborators = in_memory_collaborators()
    directory: InMemoryEmployeeDirectory = collaborators.directory  # type: ignore[assignment]
    compensation: InMemoryCompensationSource = collaborators.compensation  # type: ignore[assignment]

    directory.add(EmployeeRecord("E001", ENTITY, Decimal("5000.00")))
    directory.add(EmployeeRecord("E002", ENTITY, Decimal("3000.00")))
    directory.add(EmployeeRecord("E003", ENTITY, Decimal("4000.00"), bank_status="missing"))

    compensation.add_tax_rule(ENTITY, "Income", "10")
    compensation.add_insurance_rate(ENTITY, "Health", "2")
    compensation.add_earning("E002", EarningKind.ALLOWANCE, "Transport", "200")
    return collaborators


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def recorded_events(emitter: EventEmitter) -> list[DomainEvent]:
    """Every event emitted during the test, in order."""
    events: list[DomainEvent] = []
    emitter.on_all(events.append)
    return events


@pytest.fixture
def specialist() -> Actor:
    return Actor("sp-1", ActorRole.PAYROLL_SPECIALIST)


@pytest.fixture
def manager() -> Actor:
    return Actor("mgr-1", ActorRole.PAYROLL_MANAGER)


@pytest.fixture
def finance() -> Actor:
    return Actor("fin-1", ActorRole.FINANCE_STAFF)


@pytest.fixture
def run_service(
    session: AsyncSession,
    collaborators: Collaborators,
    emitter: EventEmitter,
) -> PayrollRunService:
    return PayrollRunService(session, collaborators, emitter, engine_version="test")


@pytest.fixture
def approvals(session: AsyncSession, emitter: EventEmitter) -> ApprovalService:
    return ApprovalService(session, emitter)


@pytest.fixture
def advance(
    approvals: ApprovalService,
    specialist: Actor,
    manager: Actor,
    finance: Actor,
) -> Callable[[UUID, PayrollRunStatus], Awaitable[PayrollRun]]:
    """Walk a draft forward along the approval path until it reaches ``target``."""

    async def _advance(payroll_run_id: UUID, target: PayrollRunStatus) -> PayrollRun:
        steps = [
            (PayrollRunStatus.UNDER_REVIEW, approvals.publish, specialist),
            (PayrollRunStatus.PENDING_FINANCE_APPROVAL, approvals.manager_approve, manager),
            (PayrollRunStatus.APPROVED, approvals.finance_approve, finance),
            (PayrollRunStatus.LOCKED, approvals.lock, manager),
        ]
        for status, step, actor in steps:
            run = await step(payroll_run_id, actor)
            if status == target:
                return run
        raise ValueError(f"{target} is not on the approval path")

    return _advance
