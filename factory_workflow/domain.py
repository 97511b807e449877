"""Core data structures for the jewelry factory workflow engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum, IntEnum
from typing import Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    """Overall lifecycle of an order as far as the factory floor is concerned."""

    DRAFT = "DRAFT"
    IN_FACTORY = "IN_FACTORY"
    COMPLETED = "COMPLETED"


class DepartmentStatus(str, Enum):
    """Status of a single order's visit to a single department."""

    PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"

    @property
    def is_open(self) -> bool:
        return self is not DepartmentStatus.COMPLETED


class OrderPriority(IntEnum):
    """Priority levels shown on the board. The queues ignore them."""

    LOW = 1
    NORMAL = 2
    HIGH = 3
    URGENT = 4

    @property
    def label(self) -> str:
        return {
            OrderPriority.LOW: "Low",
            OrderPriority.NORMAL: "Normal",
            OrderPriority.HIGH: "High",
            OrderPriority.URGENT: "Urgent",
        }[self]


@dataclass(slots=True, frozen=True)
class Department:
    """One fixed stage of the manufacturing pipeline."""

    id: str
    name: str
    display_name: str
    position: int
    terminal: bool = False
    color: str = ""


@dataclass(slots=True)
class Order:
    """An order travelling through the factory."""

    id: str
    reference: str
    customer_name: str = ""
    priority: OrderPriority = OrderPriority.NORMAL
    due_date: Optional[date] = None
    status: OrderStatus = OrderStatus.DRAFT
    current_department_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    sent_to_factory_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: str = ""


@dataclass(slots=True)
class TrackingEntry:
    """Record of one order's visit to one department."""

    id: str
    order_id: str
    department_id: str
    entered_at: datetime
    status: DepartmentStatus = DepartmentStatus.PENDING_ASSIGNMENT
    assigned_worker_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    exited_at: Optional[datetime] = None
    work_progress: int = 0
    visit: int = 1
    metrics: Dict[str, float] = field(default_factory=dict)
    notes: str = ""
    hold_reason: str = ""
    completed_by_worker_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @property
    def duration_hours(self) -> Optional[float]:
        if self.assigned_at is None or self.exited_at is None:
            return None
        seconds = (self.exited_at - self.assigned_at).total_seconds()
        return round(seconds / 3600.0, 2)


@dataclass(slots=True)
class QueueEntry:
    """An order waiting for a free worker in a department."""

    department_id: str
    order_id: str
    queue_position: int
    queued_at: datetime

    @property
    def key(self) -> str:
        return queue_key(self.department_id, self.order_id)


def queue_key(department_id: str, order_id: str) -> str:
    return f"{department_id}:{order_id}"


@dataclass(slots=True)
class Worker:
    """Factory worker as known to the worker directory."""

    id: str
    name: str
    department_id: str
    active: bool = True
    max_workload: int = 5


@dataclass(slots=True, frozen=True)
class WorkerAvailability:
    """A worker that can take work right now, with its current load."""

    id: str
    name: str
    current_workload: int


__all__ = [
    "OrderStatus",
    "DepartmentStatus",
    "OrderPriority",
    "Department",
    "Order",
    "TrackingEntry",
    "QueueEntry",
    "Worker",
    "WorkerAvailability",
    "queue_key",
    "utcnow",
]
