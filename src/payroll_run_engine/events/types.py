"""Domain event types for payroll run operations.

All events are immutable frozen dataclasses carrying an ``EventMetadata``.
Notification delivery (specialist, manager and finance inboxes) subscribes
to these through the ``EventEmitter``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EventCategory(str, Enum):
    """Event categories for routing and filtering."""

    RUN = "run"
    PAYSLIP = "payslip"


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every domain event."""

    event_id: UUID
    timestamp: datetime
    correlation_id: UUID
    actor_id: str | None
    actor_role: str | None
    source_service: str = "payroll_run_engine"
    version: int = 1

    @classmethod
    def create(
        cls,
        actor_id: str | None = None,
        actor_role: str | None = None,
        correlation_id: UUID | None = None,
    ) -> EventMetadata:
        """Create metadata with auto-generated fields."""
        return cls(
            event_id=uuid4(),
            timestamp=datetime.now(timezone.utc),
            correlation_id=correlation_id or uuid4(),
            actor_id=actor_id,
            actor_role=actor_role,
        )


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    metadata: EventMetadata

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    @property
    def category(self) -> EventCategory:
        raise NotImplementedError("Subclasses must define category")

    def to_dict(self) -> dict[str, Any]:
        """Serialize event to dictionary."""
        return _serialize(asdict(self))

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def _serialize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    return obj


# =============================================================================
# Run Events
# =============================================================================


@dataclass(frozen=True)
class DraftGenerated(DomainEvent):
    """A draft payroll run was generated and persisted."""

    payroll_run_id: UUID
    run_id: str
    entity: str
    payroll_period: date
    employee_count: int
    exception_count: int
    total_net_pay: Decimal
    skipped_employee_ids: tuple[str, ...] = ()
    supersedes_run_id: UUID | None = None

    @property
    def category(self) -> EventCategory:
        return EventCategory.RUN


@dataclass(frozen=True)
class PayrollRunTransitioned(DomainEvent):
    """A payroll run moved between approval states."""

    payroll_run_id: UUID
    run_id: str
    action: str
    from_status: str
    to_status: str
    next_actor_role: str | None
    reason: str | None = None

    @property
    def category(self) -> EventCategory:
        return EventCategory.RUN


# =============================================================================
# Payslip Events
# =============================================================================


@dataclass(frozen=True)
class PayslipUpdated(DomainEvent):
    """A payslip inside a run was recalculated or annotated."""

    payroll_run_id: UUID
    employee_id: str
    change: str  # recalculated/exceptions_cleared/payment_status
    net_pay: Decimal
    exception_count: int
    payment_status: str

    @property
    def category(self) -> EventCategory:
        return EventCategory.PAYSLIP
