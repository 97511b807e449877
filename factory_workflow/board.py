"""Read-only projections of the tracking entries: the Kanban board and order timelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, Iterable, List, Optional

from .catalog import DepartmentCatalog
from .domain import (
    DepartmentStatus,
    Order,
    OrderPriority,
    OrderStatus,
    TrackingEntry,
)
from .queues import DepartmentQueue

WAITING = "WAITING"


@dataclass(slots=True)
class KanbanWorker:
    id: str
    name: str


@dataclass(slots=True)
class DepartmentVisit:
    """One row of an order's history, as shown on the timeline."""

    department_id: str
    department_name: str
    visit: int
    status: str
    entered_at: datetime
    assigned_at: Optional[datetime] = None
    exited_at: Optional[datetime] = None
    worker: Optional[KanbanWorker] = None
    completed_by: Optional[KanbanWorker] = None
    duration_hours: Optional[float] = None
    work_progress: int = 0
    metrics: Dict[str, float] = field(default_factory=dict)
    notes: str = ""


@dataclass(slots=True)
class KanbanCard:
    order_id: str
    reference: str
    customer_name: str
    priority: str
    department_id: str
    status: str
    entered_at: datetime
    due_date: Optional[date] = None
    assigned_worker: Optional[KanbanWorker] = None
    work_progress: int = 0
    queue_position: Optional[int] = None
    hold_reason: str = ""
    history: List[DepartmentVisit] = field(default_factory=list)


@dataclass(slots=True)
class KanbanColumn:
    department_id: str
    display_name: str
    position: int
    color: str
    cards: List[KanbanCard] = field(default_factory=list)
    total_orders: int = 0
    in_progress: int = 0
    waiting: int = 0
    on_hold: int = 0
    urgent_count: int = 0
    queue_length: int = 0


@dataclass(slots=True)
class KanbanBoard:
    columns: List[KanbanColumn]
    completed_orders: List[KanbanCard]
    generated_at: datetime


@dataclass(slots=True)
class OrderTimeline:
    order_id: str
    reference: str
    status: str
    current_department: Optional[str]
    visits: List[DepartmentVisit]
    total_departments: int
    completed_departments: int
    completion_percentage: int
    total_hours: Optional[float]


WorkerNameLookup = Callable[[str], Optional[str]]


def _visit(
    entry: TrackingEntry, catalog: DepartmentCatalog, worker_name: WorkerNameLookup
) -> DepartmentVisit:
    department_name = (
        catalog.get(entry.department_id).display_name
        if catalog.exists(entry.department_id)
        else entry.department_id
    )
    return DepartmentVisit(
        department_id=entry.department_id,
        department_name=department_name,
        visit=entry.visit,
        status=entry.status.value,
        entered_at=entry.entered_at,
        assigned_at=entry.assigned_at,
        exited_at=entry.exited_at,
        worker=_worker(entry.assigned_worker_id, worker_name),
        completed_by=_worker(entry.completed_by_worker_id, worker_name),
        duration_hours=entry.duration_hours,
        work_progress=entry.work_progress,
        metrics=dict(entry.metrics),
        notes=entry.notes,
    )


def _worker(worker_id: Optional[str], worker_name: WorkerNameLookup) -> Optional[KanbanWorker]:
    if worker_id is None:
        return None
    return KanbanWorker(id=worker_id, name=worker_name(worker_id) or worker_id)


def _group_by_order(entries: Iterable[TrackingEntry]) -> Dict[str, List[TrackingEntry]]:
    grouped: Dict[str, List[TrackingEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.order_id, []).append(entry)
    return grouped


def build_board(
    catalog: DepartmentCatalog,
    orders: Iterable[Order],
    entries: Iterable[TrackingEntry],
    queue: DepartmentQueue,
    worker_name: WorkerNameLookup,
    now: datetime,
) -> KanbanBoard:
    """Fold tracking entries into one column per department."""

    by_order = _group_by_order(entries)
    columns = {
        department.id: KanbanColumn(
            department_id=department.id,
            display_name=department.display_name,
            position=department.position,
            color=department.color,
        )
        for department in catalog
    }
    positions: Dict[str, Dict[str, int]] = {}
    for department in catalog:
        department_queue = queue.entries(department.id)
        columns[department.id].queue_length = len(department_queue)
        positions[department.id] = {
            item.order_id: item.queue_position for item in department_queue
        }

    completed: List[KanbanCard] = []
    for order in orders:
        history = by_order.get(order.id, [])
        if order.status is OrderStatus.DRAFT or not history:
            continue
        latest = history[-1]
        queue_position = positions.get(latest.department_id, {}).get(order.id)
        status = latest.status.value
        if latest.status is DepartmentStatus.PENDING_ASSIGNMENT and queue_position is not None:
            status = WAITING
        card = KanbanCard(
            order_id=order.id,
            reference=order.reference,
            customer_name=order.customer_name,
            priority=order.priority.name,
            department_id=latest.department_id,
            status=status,
            entered_at=latest.entered_at,
            due_date=order.due_date,
            assigned_worker=_worker(latest.assigned_worker_id, worker_name),
            work_progress=latest.work_progress,
            queue_position=queue_position,
            hold_reason=latest.hold_reason,
            history=[_visit(entry, catalog, worker_name) for entry in history],
        )
        if order.status is OrderStatus.COMPLETED:
            completed.append(card)
            continue
        column = columns.get(latest.department_id)
        if column is None:
            continue
        column.cards.append(card)
        column.total_orders += 1
        if latest.status is DepartmentStatus.IN_PROGRESS:
            column.in_progress += 1
        elif latest.status is DepartmentStatus.ON_HOLD:
            column.on_hold += 1
        else:
            column.waiting += 1
        if order.priority is OrderPriority.URGENT:
            column.urgent_count += 1

    for column in columns.values():
        # queued cards first in queue order, then the rest by arrival
        column.cards.sort(
            key=lambda card: (
                card.queue_position is None,
                card.queue_position if card.queue_position is not None else 0,
                card.entered_at,
            )
        )
    return KanbanBoard(
        columns=sorted(columns.values(), key=lambda column: column.position),
        completed_orders=completed,
        generated_at=now,
    )


def build_order_timeline(
    catalog: DepartmentCatalog,
    order: Order,
    entries: Iterable[TrackingEntry],
    worker_name: WorkerNameLookup,
) -> OrderTimeline:
    visits = [_visit(entry, catalog, worker_name) for entry in entries]
    completed_departments = {
        visit.department_id
        for visit in visits
        if visit.status == DepartmentStatus.COMPLETED.value
    }
    durations = [visit.duration_hours for visit in visits if visit.duration_hours is not None]
    total = len(catalog)
    return OrderTimeline(
        order_id=order.id,
        reference=order.reference,
        status=order.status.value,
        current_department=(
            order.current_department_id if order.status is OrderStatus.IN_FACTORY else None
        ),
        visits=visits,
        total_departments=total,
        completed_departments=len(completed_departments),
        completion_percentage=round(len(completed_departments) / total * 100) if total else 0,
        total_hours=round(sum(durations), 2) if durations else None,
    )


__all__ = [
    "KanbanBoard",
    "KanbanCard",
    "KanbanColumn",
    "KanbanWorker",
    "DepartmentVisit",
    "OrderTimeline",
    "build_board",
    "build_order_timeline",
    "WAITING",
]
