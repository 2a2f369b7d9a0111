"""In-process publisher for payroll domain events.

Services emit after their transaction commits. Subscribers (notification
delivery, audit shipping) register per event class or for everything.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

from payroll_run_engine.events.types import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventEmitter:
    """Synchronous event emitter.

    A failing handler is logged and its exception returned from ``emit``;
    the remaining handlers still run and the caller never sees a raise.

    Usage:
        emitter = EventEmitter()
        emitter.on(PayrollRunTransitioned, notify_next_approver)
        emitter.on_all(ship_to_audit_log)
    """

    def __init__(self) -> None:
        self._by_type: defaultdict[str, list[EventHandler]] = defaultdict(list)
        self._wildcard: list[EventHandler] = []
        self._pending: list[DomainEvent] | None = None

    def on(
        self,
        event_type: type[DomainEvent] | list[type[DomainEvent]],
        handler: EventHandler,
    ) -> None:
        """Subscribe ``handler`` to one event class or several."""
        classes = event_type if isinstance(event_type, list) else [event_type]
        for cls in classes:
            self._by_type[cls.__name__].append(handler)

    def on_all(self, handler: EventHandler) -> None:
        self._wildcard.append(handler)

    def off(self, handler: EventHandler) -> None:
        """Remove every subscription of ``handler``."""
        self._wildcard = [h for h in self._wildcard if h is not handler]
        for name, handlers in self._by_type.items():
            self._by_type[name] = [h for h in handlers if h is not handler]

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Deliver ``event`` now, or queue it while a batch is open."""
        if self._pending is not None:
            self._pending.append(event)
            return []

        failures: list[Exception] = []
        for handler in [*self._by_type.get(event.event_type, ()), *self._wildcard]:
            try:
                handler(event)
            except Exception as exc:
                logger.exception("Handler %r failed on %s", handler, event.event_type)
                failures.append(exc)
        return failures

    def batch(self) -> EventBatch:
        """Hold events until the block exits; drop them if it raises."""
        return EventBatch(self)


class EventBatch:
    """Context manager returned by ``EventEmitter.batch``."""

    def __init__(self, emitter: EventEmitter) -> None:
        self._emitter = emitter
        self.errors: list[Exception] = []

    def __enter__(self) -> EventBatch:
        self._emitter._pending = []
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        queued, self._emitter._pending = self._emitter._pending or [], None
        if exc_type is not None:
            logger.info("Discarding %d batched event(s) after %s", len(queued), exc_type.__name__)
            return
        for event in queued:
            self.errors.extend(self._emitter.emit(event))

    def add(self, event: DomainEvent) -> None:
        self._emitter.emit(event)
