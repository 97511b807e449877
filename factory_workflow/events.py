"""Fire-and-forget notifications emitted on every workflow transition."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_EVENT_HISTORY = 50


class EventType(str, Enum):
    ORDER_SENT_TO_FACTORY = "ORDER_SENT_TO_FACTORY"
    WORKER_ASSIGNED = "WORKER_ASSIGNED"
    ORDER_QUEUED = "ORDER_QUEUED"
    WORKER_REASSIGNED = "WORKER_REASSIGNED"
    WORKER_UNASSIGNED = "WORKER_UNASSIGNED"
    DEPARTMENT_COMPLETED = "DEPARTMENT_COMPLETED"
    DEPARTMENT_ON_HOLD = "DEPARTMENT_ON_HOLD"
    DEPARTMENT_RESUMED = "DEPARTMENT_RESUMED"
    ORDER_MOVED = "ORDER_MOVED"
    ORDER_COMPLETED = "ORDER_COMPLETED"


@dataclass(slots=True)
class WorkflowEvent:
    type: EventType
    order_id: str
    timestamp: datetime
    message: str
    department_id: Optional[str] = None
    worker_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    def publish(self, event: WorkflowEvent) -> None:
        ...


class InMemoryEventSink:
    """Keeps the most recent events for the notifications feed."""

    def __init__(self, history: int = DEFAULT_EVENT_HISTORY) -> None:
        self._events: Deque[WorkflowEvent] = deque(maxlen=max(history, 1))
        self._lock = threading.Lock()

    def publish(self, event: WorkflowEvent) -> None:
        with self._lock:
            self._events.append(event)

    def recent(self, limit: Optional[int] = None) -> List[WorkflowEvent]:
        """Newest first."""

        with self._lock:
            events = list(reversed(self._events))
        return events[:limit] if limit else events


def publish_quietly(sink: Optional[EventSink], event: WorkflowEvent) -> None:
    """Hand ``event`` to ``sink``; a failing sink never fails the workflow."""

    if sink is None:
        return
    try:
        sink.publish(event)
    except Exception:
        logger.exception(
            "Event sink rejected %s for order %s", event.type.value, event.order_id
        )


__all__ = [
    "EventType",
    "WorkflowEvent",
    "EventSink",
    "InMemoryEventSink",
    "publish_quietly",
    "DEFAULT_EVENT_HISTORY",
]
