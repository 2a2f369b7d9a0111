"""Payroll run service - orchestrates draft generation and payslip upkeep."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_run_engine.calculators import (
    CompensationBundle,
    ExceptionDetector,
    ExceptionFlag,
    InvalidLineItemError,
    PayslipCalculator,
    PayslipComputation,
)
from payroll_run_engine.calculators.types import ZERO, first_of_month, round_to_cents
from payroll_run_engine.collaborators import Collaborators
from payroll_run_engine.config import get_settings
from payroll_run_engine.events import (
    DomainEvent,
    DraftGenerated,
    EventEmitter,
    EventMetadata,
    PayslipUpdated,
)
from payroll_run_engine.models import (
    PAYMENT_STATUSES,
    PayrollRun,
    PayrollRunWarning,
    PaySlip,
)
from payroll_run_engine.services.audit import record_audit
from payroll_run_engine.services.input_resolver import (
    CompensationInputResolver,
    MissingEmployeeDataError,
)
from payroll_run_engine.services.state_machine import (
    Actor,
    InvalidTransitionError,
    PayrollAction,
    PayrollRunStateMachine,
    PayrollRunStatus,
    PayslipMutation,
    RunLockedError,
)

logger = logging.getLogger(__name__)

# Run-level warning codes for employees left out of a draft
MISSING_EMPLOYEE_DATA = "MISSING_EMPLOYEE_DATA"
INVALID_COMPENSATION_DATA = "INVALID_COMPENSATION_DATA"
CALCULATION_FAILED = "CALCULATION_FAILED"

# Statuses whose payslips feed the next period's net pay comparison
_HISTORY_STATUSES = (PayrollRunStatus.APPROVED.value, PayrollRunStatus.LOCKED.value)

_RESERVE_ATTEMPTS = 3


class DuplicateRunError(Exception):
    """Raised when a non-rejected run already exists for the entity and period."""

    def __init__(self, entity: str, payroll_period: date, existing: PayrollRun | None = None):
        self.entity = entity
        self.payroll_period = payroll_period
        self.existing_run_id = existing.payroll_run_id if existing else None
        self.existing_status = existing.status if existing else None
        msg = f"A payroll run already exists for {entity} {payroll_period:%Y-%m}"
        if existing is not None:
            msg += f": {existing.run_id} ({existing.status})"
        super().__init__(msg)


class PayrollRunNotFoundError(Exception):
    """Raised when a run, or a payslip inside a run, does not exist."""

    def __init__(self, payroll_run_id: UUID, employee_id: str | None = None):
        self.payroll_run_id = payroll_run_id
        self.employee_id = employee_id
        if employee_id is None:
            msg = f"Payroll run {payroll_run_id} not found"
        else:
            msg = f"No payslip for employee {employee_id} in payroll run {payroll_run_id}"
        super().__init__(msg)


@dataclass
class DraftResult:
    """A generated draft and the employees it had to leave out."""

    run: PayrollRun
    warnings: list[PayrollRunWarning] = field(default_factory=list)

    @property
    def skipped_employee_ids(self) -> list[str]:
        return [w.employee_id for w in self.warnings]


@dataclass(frozen=True)
class PayslipException:
    """One exception flag, flattened with the payslip it belongs to."""

    payslip_id: UUID
    employee_id: str
    flag: ExceptionFlag


class PayrollRunService:
    """Service for payroll run generation and payslip maintenance.

    Operations:
    - generate_draft: Resolve, compute and flag every employee in scope
    - regenerate_draft: New draft superseding a rejected run
    - recalculate_employee / clear_exceptions / mark_payment_status:
      payslip writes gated by run status and actor role
    - recompute_summary / verify_summary: backend-owned run counters

    Each write operation commits its own transaction; events are emitted
    only after the commit succeeds.
    """

    def __init__(
        self,
        session: AsyncSession,
        collaborators: Collaborators,
        emitter: EventEmitter | None = None,
        resolver: CompensationInputResolver | None = None,
        detector: ExceptionDetector | None = None,
        engine_version: str | None = None,
        concurrency: int | None = None,
    ):
        settings = get_settings()
        self.session = session
        self.collaborators = collaborators
        self.emitter = emitter
        self.resolver = resolver or CompensationInputResolver(collaborators)
        self.detector = detector or ExceptionDetector()
        self.engine_version = engine_version or settings.engine_version
        self.concurrency = concurrency or settings.draft_concurrency

    # === Draft generation ===

    async def generate_draft(
        self,
        entity: str,
        payroll_period: date,
        actor: Actor,
        supersedes_run_id: UUID | None = None,
    ) -> DraftResult:
        """Generate a draft run for every employee in scope for ``entity``.

        Employees whose inputs cannot be resolved are skipped and recorded
        as run warnings. Payslips, warnings and the summary are committed
        together, so readers never see a partially written run.

        Raises:
            DuplicateRunError: a non-rejected run exists for the period
            InvalidTransitionError: the actor is not a payroll specialist
        """
        PayrollRunStateMachine.validate_generate(actor.role)
        period = first_of_month(payroll_period)

        run = await self._reserve_run(entity, period, actor, supersedes_run_id)
        logger.info(
            "Generating draft %s for %s %s (specialist %s)",
            run.run_id,
            entity,
            f"{period:%Y-%m}",
            actor.actor_id,
        )

        try:
            previous_net_pays = await self._load_previous_net_pays(entity, period)
            employee_ids = list(
                dict.fromkeys(await self.collaborators.directory.list_employees(entity))
            )

            semaphore = asyncio.Semaphore(self.concurrency)
            outcomes = await asyncio.gather(
                *(
                    self._build_payslip(
                        run,
                        employee_id,
                        previous_net_pays.get(employee_id),
                        semaphore,
                    )
                    for employee_id in employee_ids
                )
            )
            payslips = [o for o in outcomes if isinstance(o, PaySlip)]
            warnings = [o for o in outcomes if isinstance(o, PayrollRunWarning)]
            self.session.add_all([*payslips, *warnings])

            await self.recompute_summary(run)
            record_audit(
                self.session,
                "payroll_run",
                run.payroll_run_id,
                "generated",
                actor,
                {
                    "entity": entity,
                    "payroll_period": period.isoformat(),
                    "employee_count": run.employee_count,
                    "skipped_employee_ids": [w.employee_id for w in warnings],
                    "supersedes_run_id": str(supersedes_run_id) if supersedes_run_id else None,
                },
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Generated draft %s: %d payslips, %d exceptions, %d skipped, total net pay %s",
            run.run_id,
            run.employee_count,
            run.exception_count,
            len(warnings),
            run.total_net_pay,
        )
        self._emit(
            DraftGenerated(
                metadata=EventMetadata.create(actor.actor_id, actor.role.value),
                payroll_run_id=run.payroll_run_id,
                run_id=run.run_id,
                entity=entity,
                payroll_period=period,
                employee_count=run.employee_count,
                exception_count=run.exception_count,
                total_net_pay=run.total_net_pay,
                skipped_employee_ids=tuple(w.employee_id for w in warnings),
                supersedes_run_id=run.supersedes_run_id,
            )
        )
        return DraftResult(run=await self.get_run(run.payroll_run_id), warnings=warnings)

    async def regenerate_draft(self, payroll_run_id: UUID, actor: Actor) -> DraftResult:
        """Create a new draft superseding a rejected run.

        The rejected run is left untouched as history.
        """
        rejected = await self._load_run(payroll_run_id)
        PayrollRunStateMachine.next_status(rejected.status, PayrollAction.REGENERATE, actor.role)
        logger.info("Regenerating rejected run %s", rejected.run_id)
        return await self.generate_draft(
            rejected.entity,
            rejected.payroll_period,
            actor,
            supersedes_run_id=rejected.payroll_run_id,
        )

    async def _reserve_run(
        self,
        entity: str,
        period: date,
        actor: Actor,
        supersedes_run_id: UUID | None,
    ) -> PayrollRun:
        """Insert the run row; the partial unique index makes this the atomic
        check-and-reserve for (entity, period)."""
        for _ in range(_RESERVE_ATTEMPTS):
            run = PayrollRun(
                payroll_run_id=uuid4(),
                run_id=await self._next_run_label(period),
                entity=entity,
                payroll_period=period,
                status=PayrollRunStatus.DRAFT.value,
                specialist_id=actor.actor_id,
                supersedes_run_id=supersedes_run_id,
                employee_count=0,
                exception_count=0,
                total_net_pay=ZERO,
            )
            self.session.add(run)
            try:
                await self.session.flush()
            except IntegrityError:
                await self.session.rollback()
                existing = await self.find_active_run(entity, period)
                if existing is not None:
                    logger.warning(
                        "Duplicate draft for %s %s rejected; active run %s is %s",
                        entity,
                        f"{period:%Y-%m}",
                        existing.run_id,
                        existing.status,
                    )
                    raise DuplicateRunError(entity, period, existing) from None
                # Run label taken by a concurrent run for another entity
                continue
            return run

        raise RuntimeError(f"Could not reserve a payroll run for {entity} {period:%Y-%m}")

    async def _next_run_label(self, period: date) -> str:
        count = await self.session.scalar(
            select(func.count())
            .select_from(PayrollRun)
            .where(PayrollRun.payroll_period == period)
        )
        return f"PR-{period:%Y-%m}-{(count or 0) + 1}"

    async def _load_previous_net_pays(self, entity: str, period: date) -> dict[str, Decimal]:
        """Net pay per employee from the latest approved or locked earlier run."""
        latest_run = (
            select(PayrollRun.payroll_run_id)
            .where(
                PayrollRun.entity == entity,
                PayrollRun.payroll_period < period,
                PayrollRun.status.in_(_HISTORY_STATUSES),
            )
            .order_by(PayrollRun.payroll_period.desc())
            .limit(1)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(PaySlip.employee_id, PaySlip.net_pay).where(
                PaySlip.payroll_run_id == latest_run
            )
        )
        return {employee_id: net_pay for employee_id, net_pay in result.all()}

    async def _build_payslip(
        self,
        run: PayrollRun,
        employee_id: str,
        previous_net_pay: Decimal | None,
        semaphore: asyncio.Semaphore,
    ) -> PaySlip | PayrollRunWarning:
        """Resolve, compute and flag one employee. Never touches the session."""
        try:
            async with semaphore:
                bundle = await self.resolver.resolve(
                    employee_id, run.entity, run.payroll_period, previous_net_pay
                )
            computation = PayslipCalculator.compute(bundle, self.engine_version)
            flags = self.detector.detect(employee_id, bundle, computation)
        except MissingEmployeeDataError as exc:
            logger.warning("Skipping employee %s in %s: %s", employee_id, run.run_id, exc.reason)
            return PayrollRunWarning(
                payroll_run_id=run.payroll_run_id,
                employee_id=employee_id,
                code=MISSING_EMPLOYEE_DATA,
                message=str(exc),
            )
        except InvalidLineItemError as exc:
            logger.warning("Skipping employee %s in %s: %s", employee_id, run.run_id, exc)
            return PayrollRunWarning(
                payroll_run_id=run.payroll_run_id,
                employee_id=employee_id,
                code=INVALID_COMPENSATION_DATA,
                message=str(exc),
            )
        except Exception as exc:
            logger.exception("Calculation failed for employee %s in %s", employee_id, run.run_id)
            return PayrollRunWarning(
                payroll_run_id=run.payroll_run_id,
                employee_id=employee_id,
                code=CALCULATION_FAILED,
                message=f"{type(exc).__name__}: {exc}",
            )

        payslip = PaySlip(
            payslip_id=uuid4(),
            payroll_run_id=run.payroll_run_id,
            employee_id=employee_id,
            payment_status="pending",
        )
        _apply_computation(payslip, bundle, computation, flags)
        return payslip

    # === Queries ===

    async def get_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Load a committed run with its payslips and warnings."""
        result = await self.session.execute(
            select(PayrollRun)
            .where(PayrollRun.payroll_run_id == payroll_run_id)
            .options(selectinload(PayrollRun.payslips), selectinload(PayrollRun.warnings))
            .execution_options(populate_existing=True)
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise PayrollRunNotFoundError(payroll_run_id)
        return run

    async def find_active_run(self, entity: str, payroll_period: date) -> PayrollRun | None:
        """The non-rejected run for (entity, period), if any."""
        result = await self.session.execute(
            select(PayrollRun).where(
                PayrollRun.entity == entity,
                PayrollRun.payroll_period == first_of_month(payroll_period),
                PayrollRun.status != PayrollRunStatus.REJECTED.value,
            )
        )
        return result.scalar_one_or_none()

    async def list_runs(
        self,
        entity: str | None = None,
        status: str | None = None,
    ) -> list[PayrollRun]:
        query = select(PayrollRun).order_by(
            PayrollRun.payroll_period.desc(), PayrollRun.created_at.desc()
        )
        if entity is not None:
            query = query.where(PayrollRun.entity == entity)
        if status is not None:
            query = query.where(PayrollRun.status == PayrollRunStatus(status).value)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_run_employees(
        self,
        payroll_run_id: UUID,
        only_exceptions: bool = False,
    ) -> list[PaySlip]:
        """Payslips of a run ordered by employee id."""
        await self._load_run(payroll_run_id)
        payslips = await self._payslips(payroll_run_id)
        if only_exceptions:
            return [p for p in payslips if p.has_exceptions]
        return payslips

    async def get_payslip(self, payroll_run_id: UUID, employee_id: str) -> PaySlip:
        await self._load_run(payroll_run_id)
        return await self._require_payslip(payroll_run_id, employee_id)

    async def get_run_warnings(self, payroll_run_id: UUID) -> list[PayrollRunWarning]:
        await self._load_run(payroll_run_id)
        result = await self.session.execute(
            select(PayrollRunWarning)
            .where(PayrollRunWarning.payroll_run_id == payroll_run_id)
            .order_by(PayrollRunWarning.employee_id)
        )
        return list(result.scalars().all())

    async def get_exceptions(
        self,
        payroll_run_id: UUID,
        employee_id: str | None = None,
    ) -> list[PayslipException]:
        """Every exception flag in a run, in employee then rule order."""
        payslips = await self.get_run_employees(payroll_run_id, only_exceptions=True)
        return [
            PayslipException(
                payslip_id=p.payslip_id,
                employee_id=p.employee_id,
                flag=ExceptionFlag.from_dict(raw),
            )
            for p in payslips
            if employee_id is None or p.employee_id == employee_id
            for raw in p.exceptions_flags
        ]

    # === Payslip mutations ===

    async def recalculate_employee(
        self,
        payroll_run_id: UUID,
        employee_id: str,
        actor: Actor,
    ) -> PaySlip:
        """Re-resolve and recompute one employee's payslip on a draft run.

        An employee skipped during generation gets a payslip once their
        inputs resolve, and their run warning is removed.

        Raises:
            MissingEmployeeDataError: inputs still cannot be resolved
        """
        run = await self._load_run(payroll_run_id)
        PayrollRunStateMachine.validate_payslip_mutation(
            run.status, PayslipMutation.RECALCULATE, actor.role
        )

        payslip = await self._find_payslip(payroll_run_id, employee_id)
        if payslip is None and not await self._has_warning(payroll_run_id, employee_id):
            raise PayrollRunNotFoundError(payroll_run_id, employee_id)

        previous = await self._load_previous_net_pays(run.entity, run.payroll_period)
        bundle = await self.resolver.resolve(
            employee_id, run.entity, run.payroll_period, previous.get(employee_id)
        )
        computation = PayslipCalculator.compute(bundle, self.engine_version)
        flags = self.detector.detect(employee_id, bundle, computation)

        try:
            if payslip is None:
                payslip = PaySlip(
                    payslip_id=uuid4(),
                    payroll_run_id=payroll_run_id,
                    employee_id=employee_id,
                    payment_status="pending",
                )
                self.session.add(payslip)
                await self.session.execute(
                    delete(PayrollRunWarning).where(
                        PayrollRunWarning.payroll_run_id == payroll_run_id,
                        PayrollRunWarning.employee_id == employee_id,
                    )
                )
            _apply_computation(payslip, bundle, computation, flags)
            await self.recompute_summary(run)
            record_audit(
                self.session,
                "payslip",
                payslip.payslip_id,
                "recalculated",
                actor,
                {
                    "payroll_run_id": str(payroll_run_id),
                    "employee_id": employee_id,
                    "calculation_id": str(computation.calculation_id),
                    "net_pay": str(computation.net_pay),
                },
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._emit_payslip_updated(payslip, "recalculated", actor)
        return payslip

    async def clear_exceptions(
        self,
        payroll_run_id: UUID,
        employee_id: str,
        actor: Actor,
    ) -> PaySlip:
        """Manager acknowledges and clears a payslip's exception flags."""
        run = await self._load_run(payroll_run_id)
        PayrollRunStateMachine.validate_payslip_mutation(
            run.status, PayslipMutation.CLEAR_EXCEPTIONS, actor.role
        )
        payslip = await self._require_payslip(payroll_run_id, employee_id)

        try:
            cleared = list(payslip.exceptions_flags or [])
            payslip.exceptions_flags = []
            await self.recompute_summary(run)
            record_audit(
                self.session,
                "payslip",
                payslip.payslip_id,
                "exceptions_cleared",
                actor,
                {"payroll_run_id": str(payroll_run_id), "cleared": cleared},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._emit_payslip_updated(payslip, "exceptions_cleared", actor)
        return payslip

    async def mark_payment_status(
        self,
        payroll_run_id: UUID,
        employee_id: str,
        payment_status: str,
        actor: Actor,
    ) -> PaySlip:
        """Record the disbursement outcome for one payslip of an approved run."""
        if payment_status not in PAYMENT_STATUSES:
            raise ValueError(
                f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}, "
                f"got '{payment_status}'"
            )
        run = await self._load_run(payroll_run_id)
        PayrollRunStateMachine.validate_payslip_mutation(
            run.status, PayslipMutation.PAYMENT_STATUS, actor.role
        )
        payslip = await self._require_payslip(payroll_run_id, employee_id)

        try:
            previous_status = payslip.payment_status
            payslip.payment_status = payment_status
            await self.recompute_summary(run)
            record_audit(
                self.session,
                "payslip",
                payslip.payslip_id,
                "payment_status",
                actor,
                {
                    "payroll_run_id": str(payroll_run_id),
                    "from": previous_status,
                    "to": payment_status,
                },
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        self._emit_payslip_updated(payslip, "payment_status", actor)
        return payslip

    # === Summary ===

    async def recompute_summary(self, run: PayrollRun) -> PayrollRun:
        """Rewrite the run counters from its persisted payslips.

        The write is conditional on the run still having the status it was
        loaded with, so a payslip edit racing a transition (e.g. a lock)
        fails instead of landing on a frozen run.
        """
        payroll_run_id = run.payroll_run_id
        expected_status = run.status

        await self.session.flush()
        payslips = await self._payslips(payroll_run_id)
        employee_count = len(payslips)
        exception_count = sum(len(p.exceptions_flags or []) for p in payslips)
        total_net_pay = round_to_cents(sum((p.net_pay for p in payslips), ZERO))

        result = await self.session.execute(
            update(PayrollRun)
            .where(
                PayrollRun.payroll_run_id == payroll_run_id,
                PayrollRun.status == expected_status,
            )
            .values(
                employee_count=employee_count,
                exception_count=exception_count,
                total_net_pay=total_net_pay,
            )
        )
        if result.rowcount == 0:
            await self.session.rollback()
            current = await self._load_run(payroll_run_id)
            if current.status == PayrollRunStatus.LOCKED.value:
                raise RunLockedError("update_summary", current.run_id)
            raise InvalidTransitionError(
                current.status,
                "update_summary",
                f"run status changed from '{expected_status}' during the update",
            )

        run.employee_count = employee_count
        run.exception_count = exception_count
        run.total_net_pay = total_net_pay
        return run

    async def verify_summary(self, payroll_run_id: UUID) -> list[str]:
        """Check stored counters and payslip totals against their definitions.

        Returns list of discrepancies (empty if consistent).
        """
        run = await self._load_run(payroll_run_id)
        payslips = await self._payslips(payroll_run_id)
        errors: list[str] = []

        if run.employee_count != len(payslips):
            errors.append(
                f"employee_count is {run.employee_count}, run has {len(payslips)} payslips"
            )
        exception_count = sum(len(p.exceptions_flags or []) for p in payslips)
        if run.exception_count != exception_count:
            errors.append(
                f"exception_count is {run.exception_count}, payslips carry {exception_count} flags"
            )
        total_net_pay = round_to_cents(sum((p.net_pay for p in payslips), ZERO))
        if round_to_cents(run.total_net_pay) != total_net_pay:
            errors.append(
                f"total_net_pay is {run.total_net_pay}, payslips sum to {total_net_pay}"
            )

        for p in payslips:
            gross = _gross_from_details(p.earnings_details)
            if round_to_cents(p.total_gross_salary) != gross:
                errors.append(
                    f"{p.employee_id}: total_gross_salary {p.total_gross_salary} != "
                    f"earnings sum {gross}"
                )
            if round_to_cents(p.net_pay) != round_to_cents(
                p.total_gross_salary - p.total_deductions
            ):
                errors.append(
                    f"{p.employee_id}: net_pay {p.net_pay} != "
                    f"{p.total_gross_salary} - {p.total_deductions}"
                )

        return errors

    # === Internals ===

    async def _load_run(self, payroll_run_id: UUID) -> PayrollRun:
        result = await self.session.execute(
            select(PayrollRun)
            .where(PayrollRun.payroll_run_id == payroll_run_id)
            .execution_options(populate_existing=True)
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise PayrollRunNotFoundError(payroll_run_id)
        return run

    async def _payslips(self, payroll_run_id: UUID) -> list[PaySlip]:
        result = await self.session.execute(
            select(PaySlip)
            .where(PaySlip.payroll_run_id == payroll_run_id)
            .order_by(PaySlip.employee_id)
        )
        return list(result.scalars().all())

    async def _find_payslip(self, payroll_run_id: UUID, employee_id: str) -> PaySlip | None:
        result = await self.session.execute(
            select(PaySlip).where(
                PaySlip.payroll_run_id == payroll_run_id,
                PaySlip.employee_id == employee_id,
            )
        )
        return result.scalar_one_or_none()

    async def _require_payslip(self, payroll_run_id: UUID, employee_id: str) -> PaySlip:
        payslip = await self._find_payslip(payroll_run_id, employee_id)
        if payslip is None:
            raise PayrollRunNotFoundError(payroll_run_id, employee_id)
        return payslip

    async def _has_warning(self, payroll_run_id: UUID, employee_id: str) -> bool:
        count = await self.session.scalar(
            select(func.count())
            .select_from(PayrollRunWarning)
            .where(
                PayrollRunWarning.payroll_run_id == payroll_run_id,
                PayrollRunWarning.employee_id == employee_id,
            )
        )
        return bool(count)

    def _emit_payslip_updated(self, payslip: PaySlip, change: str, actor: Actor) -> None:
        self._emit(
            PayslipUpdated(
                metadata=EventMetadata.create(actor.actor_id, actor.role.value),
                payroll_run_id=payslip.payroll_run_id,
                employee_id=payslip.employee_id,
                change=change,
                net_pay=payslip.net_pay,
                exception_count=len(payslip.exceptions_flags or []),
                payment_status=payslip.payment_status,
            )
        )

    def _emit(self, event: DomainEvent) -> None:
        if self.emitter is not None:
            self.emitter.emit(event)


def _apply_computation(
    payslip: PaySlip,
    bundle: CompensationBundle,
    computation: PayslipComputation,
    flags: list[ExceptionFlag],
) -> None:
    payslip.earnings_details = computation.earnings_details
    payslip.deductions_details = computation.deductions_details
    payslip.total_gross_salary = computation.total_gross_salary
    payslip.total_deductions = computation.total_deductions
    payslip.net_pay = computation.net_pay
    payslip.exceptions_flags = [flag.to_dict() for flag in flags]
    payslip.bank_status = bundle.bank_status
    payslip.hr_events = list(bundle.hr_events)
    payslip.calculation_id = computation.calculation_id


def _gross_from_details(earnings_details: dict[str, Any]) -> Decimal:
    total = Decimal(earnings_details.get("base_salary", "0"))
    for key in ("allowances", "bonuses", "benefits", "refunds"):
        total += sum((Decimal(line["amount"]) for line in earnings_details.get(key, [])), ZERO)
    return round_to_cents(total)
