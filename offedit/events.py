"""
Typed notifications for host listeners.

Handlers subscribe by event class; subscribing to ``OffeditEvent`` receives
every event. Any number of handlers may attach to one event type.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from .mutation.models import Operation

if TYPE_CHECKING:
    from .queue.models import OutcomeRecord

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OffeditEvent:
    pass


@dataclass(frozen=True)
class DuplicateDetected(OffeditEvent):
    payload: str
    time: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ConnectivityChanged(OffeditEvent):
    online: bool
    time: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class OutcomeLogged(OffeditEvent):
    outcome: OutcomeRecord
    time: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class OutcomeNotRecorded(OffeditEvent):
    """A replayed call completed but its outcome could not be stored."""
    outcome: OutcomeRecord
    error: Exception
    time: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class SubmissionFailed(OffeditEvent):
    layer_id: str
    operation: Operation
    error: Exception
    payload: Optional[str] = None
    time: datetime = field(default_factory=_now)


E = TypeVar("E", bound=OffeditEvent)
Handler = Callable[[E], None]


class EventBus:
    """In-process dispatcher keyed by event class."""

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: type[E], handler: Handler) -> None:
        try:
            self._subscribers[event_type].remove(handler)
        except ValueError:
            pass

    def publish(self, event: OffeditEvent) -> None:
        """Deliver event to handlers of its class and of every base class."""
        handlers: list[Callable] = []
        for cls in type(event).__mro__:
            handlers.extend(self._subscribers.get(cls, []))
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:
                logger.error("Handler for %s failed: %s", type(event).__name__, exc)
