"""Audit trail writes shared by the payroll services."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_run_engine.models import AuditEvent
from payroll_run_engine.services.state_machine import Actor, ActorRole


def record_audit(
    session: AsyncSession,
    entity_type: str,
    entity_id: UUID,
    action: str,
    actor: Actor | None = None,
    details: dict[str, Any] | None = None,
) -> AuditEvent:
    """Add an audit event to the session's current transaction."""
    event = AuditEvent(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor.actor_id if actor else None,
        actor_role=ActorRole(actor.role).value if actor else None,
        details_json=details,
    )
    session.add(event)
    return event
