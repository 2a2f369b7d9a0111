"""Approval workflow - applies role-gated status transitions to payroll runs."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_run_engine.events import EventEmitter, EventMetadata, PayrollRunTransitioned
from payroll_run_engine.models import PayrollRun
from payroll_run_engine.models.base import utcnow
from payroll_run_engine.services.audit import record_audit
from payroll_run_engine.services.payroll_run_service import PayrollRunNotFoundError
from payroll_run_engine.services.state_machine import (
    Actor,
    ActorRole,
    InvalidTransitionError,
    PayrollAction,
    PayrollRunStateMachine,
    PayrollRunStatus,
    RunLockedError,
)

logger = logging.getLogger(__name__)


class ApprovalService:
    """Service for moving a payroll run through review and approval.

    Operations:
    - publish: specialist sends a draft for manager review
    - manager_approve / finance_approve: two-step sign-off
    - reject: manager or finance sends the run back, with a reason
    - lock: manager freezes an approved run (terminal)

    Every transition is a compare-and-swap on the run's status, so two
    near-simultaneous actions against the same prior state cannot both
    succeed. Approval identities and timestamps are written once.
    """

    def __init__(self, session: AsyncSession, emitter: EventEmitter | None = None):
        self.session = session
        self.emitter = emitter

    async def publish(self, payroll_run_id: UUID, actor: Actor) -> PayrollRun:
        return await self._transition(payroll_run_id, PayrollAction.PUBLISH, actor)

    async def manager_approve(self, payroll_run_id: UUID, actor: Actor) -> PayrollRun:
        return await self._transition(payroll_run_id, PayrollAction.MANAGER_APPROVE, actor)

    async def finance_approve(self, payroll_run_id: UUID, actor: Actor) -> PayrollRun:
        return await self._transition(payroll_run_id, PayrollAction.FINANCE_APPROVE, actor)

    async def reject(
        self,
        payroll_run_id: UUID,
        actor: Actor,
        reason: str | None,
    ) -> PayrollRun:
        """Reject a run under review or pending finance approval.

        Raises:
            RejectionReasonRequiredError: empty reason, checked before the run is read
        """
        reason = PayrollRunStateMachine.validate_rejection_reason(reason)
        return await self._transition(payroll_run_id, PayrollAction.REJECT, actor, reason)

    async def lock(self, payroll_run_id: UUID, actor: Actor) -> PayrollRun:
        return await self._transition(payroll_run_id, PayrollAction.LOCK, actor)

    async def _transition(
        self,
        payroll_run_id: UUID,
        action: PayrollAction,
        actor: Actor,
        reason: str | None = None,
    ) -> PayrollRun:
        run = await self._load_run(payroll_run_id)
        run_label = run.run_id
        from_status = PayrollRunStatus(run.status)

        try:
            to_status = PayrollRunStateMachine.next_status(from_status, action, actor.role)
        except InvalidTransitionError as e:
            logger.warning(
                "Rejected %s on %s by %s (%s): %s",
                action.value,
                run_label,
                actor.actor_id,
                actor.role.value,
                e,
            )
            raise

        values, guards = self._transition_values(action, actor, reason)
        values["status"] = to_status.value

        # Conditional update: only applies if nobody moved the run meanwhile
        result = await self.session.execute(
            update(PayrollRun)
            .where(
                PayrollRun.payroll_run_id == payroll_run_id,
                PayrollRun.status == from_status.value,
                *guards,
            )
            .values(**values)
        )

        if result.rowcount == 0:
            await self.session.rollback()
            current = await self._load_run(payroll_run_id)
            logger.warning(
                "Concurrent change on %s: %s expected '%s', found '%s'",
                run_label,
                action.value,
                from_status.value,
                current.status,
            )
            if current.status == PayrollRunStatus.LOCKED.value:
                raise RunLockedError(action, run_label)
            raise InvalidTransitionError(
                current.status,
                action,
                f"status changed from '{from_status.value}' concurrently",
                role=actor.role,
            )

        record_audit(
            self.session,
            "payroll_run",
            payroll_run_id,
            f"status_change:{from_status.value}:{to_status.value}",
            actor,
            {"action": action.value, "reason": reason} if reason else {"action": action.value},
        )
        await self.session.commit()

        next_role = PayrollRunStateMachine.next_actor_role(to_status)
        logger.info(
            "%s: %s -> %s by %s (%s)",
            run_label,
            from_status.value,
            to_status.value,
            actor.actor_id,
            actor.role.value,
        )
        if self.emitter is not None:
            self.emitter.emit(
                PayrollRunTransitioned(
                    metadata=EventMetadata.create(actor.actor_id, actor.role.value),
                    payroll_run_id=payroll_run_id,
                    run_id=run_label,
                    action=action.value,
                    from_status=from_status.value,
                    to_status=to_status.value,
                    next_actor_role=next_role.value if next_role else None,
                    reason=reason,
                )
            )

        return await self._load_run(payroll_run_id)

    @staticmethod
    def _transition_values(
        action: PayrollAction,
        actor: Actor,
        reason: str | None,
    ) -> tuple[dict[str, Any], list[Any]]:
        """Column values for a transition, plus extra write-once guards."""
        now = utcnow()
        values: dict[str, Any] = {}
        guards: list[Any] = []

        if action == PayrollAction.MANAGER_APPROVE:
            values.update(manager_id=actor.actor_id, manager_approval_date=now)
            guards.append(PayrollRun.manager_approval_date.is_(None))

        elif action == PayrollAction.FINANCE_APPROVE:
            values.update(finance_approver_id=actor.actor_id, finance_approval_date=now)
            guards.append(PayrollRun.finance_approval_date.is_(None))

        elif action == PayrollAction.REJECT:
            values["rejection_reason"] = reason
            if actor.role == ActorRole.PAYROLL_MANAGER:
                values["manager_id"] = actor.actor_id
            else:
                values["finance_approver_id"] = actor.actor_id

        elif action == PayrollAction.LOCK:
            values["locked_at"] = now

        return values, guards

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
