"""Domain events for payroll runs."""

from payroll_run_engine.events.emitter import EventBatch, EventEmitter
from payroll_run_engine.events.types import (
    DomainEvent,
    DraftGenerated,
    EventCategory,
    EventMetadata,
    PayrollRunTransitioned,
    PayslipUpdated,
)

__all__ = [
    "EventBatch",
    "EventEmitter",
    "DomainEvent",
    "DraftGenerated",
    "EventCategory",
    "EventMetadata",
    "PayrollRunTransitioned",
    "PayslipUpdated",
]
