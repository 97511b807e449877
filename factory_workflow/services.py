"""Service layer that implements the factory workflow."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence
from uuid import uuid4

from .assignment import AssignmentPolicy, AssignmentResolver, Resolution, ResolutionOutcome
from .board import KanbanBoard, OrderTimeline, build_board, build_order_timeline
from .catalog import DepartmentCatalog
from .domain import (
    Department,
    DepartmentStatus,
    Order,
    OrderPriority,
    OrderStatus,
    TrackingEntry,
    WorkerAvailability,
    utcnow,
)
from .errors import (
    ErrorCode,
    StateConflictError,
    UnknownOrderError,
    UnknownWorkerError,
    WorkflowError,
    WorkflowValidationError,
)
from .events import EventSink, EventType, InMemoryEventSink, WorkflowEvent, publish_quietly
from .locks import KeyedLocks
from .queues import DepartmentQueue
from .repository import InMemoryRepository, RecordNotFoundError
from .tracking import TrackingEntryStore
from .workers import InMemoryWorkerDirectory, WorkerDirectory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssignmentResult:
    """Outcome of asking for a worker in one department."""

    success: bool
    assigned: bool
    queued: bool
    message: str
    order_id: Optional[str] = None
    department_id: Optional[str] = None
    worker_id: Optional[str] = None
    worker_name: Optional[str] = None
    queue_position: Optional[int] = None


@dataclass(slots=True)
class SendToFactoryResult:
    order_id: str
    success: bool
    reference: str = ""
    departments_created: int = 0
    first_assignment: Optional[AssignmentResult] = None
    error_code: Optional[str] = None
    message: str = ""


@dataclass(slots=True)
class BulkSendToFactoryResult:
    results: List[SendToFactoryResult]
    success_count: int
    failed_count: int
    success: bool


@dataclass(slots=True)
class MoveResult:
    order_id: str
    from_department: Optional[str]
    new_department: str
    changed: bool
    assignment: Optional[AssignmentResult]
    queue_drain_assignment: Optional[AssignmentResult] = None


@dataclass(slots=True)
class CompletionResult:
    order_id: str
    department_id: str
    completed: bool
    next_department: Optional[str]
    next_assignment: Optional[AssignmentResult]
    queue_drain_assignment: Optional[AssignmentResult]
    order_completed: bool


@dataclass(slots=True)
class UnassignResult:
    order_id: str
    department_id: str
    unassigned: bool
    assignment: Optional[AssignmentResult] = None
    queue_drain_assignment: Optional[AssignmentResult] = None


@dataclass(slots=True)
class SelfAssignResult:
    order_id: str
    department_id: str
    assigned: bool
    worker_id: str


@dataclass(slots=True)
class QueueItem:
    order_id: str
    reference: str
    customer_name: str
    priority: str
    queue_position: int
    queued_at: datetime
    due_date: Optional[date] = None


@dataclass(slots=True)
class DepartmentQueueView:
    department_id: str
    department_name: str
    queue_length: int
    queue: List[QueueItem] = field(default_factory=list)


class WorkflowService:
    """Facade that exposes the factory workflow use-cases to clients.

    This is the only writer of orders, tracking entries and queues. Every
    mutation of an order runs inside that order's critical section; queue
    drains run after it is released so two order locks are never held at
    the same time.
    """

    def __init__(
        self,
        catalog: Optional[DepartmentCatalog] = None,
        order_repo: Optional[InMemoryRepository[Order]] = None,
        tracking_repo: Optional[InMemoryRepository[TrackingEntry]] = None,
        queue_repo: Optional[InMemoryRepository[Any]] = None,
        worker_directory: Optional[WorkerDirectory] = None,
        event_sink: Optional[EventSink] = None,
        policy: Optional[AssignmentPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.catalog = catalog or DepartmentCatalog.default()
        self.orders = order_repo if order_repo is not None else InMemoryRepository()
        self.tracking = TrackingEntryStore(tracking_repo)
        self.queue = DepartmentQueue(queue_repo)
        if worker_directory is None:
            worker_directory = InMemoryWorkerDirectory()
        if (
            isinstance(worker_directory, InMemoryWorkerDirectory)
            and not worker_directory.has_workload_counter
        ):
            worker_directory.bind_workload_counter(self.tracking.workload)
        self.workers = worker_directory
        self.events = event_sink if event_sink is not None else InMemoryEventSink()
        self.resolver = AssignmentResolver(self.tracking, self.queue, self.workers, policy)
        self._clock = clock or utcnow
        self._order_locks = KeyedLocks()
        self._outbox = threading.local()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _now(self) -> datetime:
        return self._clock()

    def _load_order(self, order_id: str) -> Order:
        try:
            return self.orders.get(order_id)
        except RecordNotFoundError as exc:
            raise UnknownOrderError(order_id) from exc

    def _save_order(self, order: Order) -> None:
        self.orders.upsert(order.id, order)

    def _require_in_factory(self, order: Order) -> None:
        if order.status is not OrderStatus.IN_FACTORY:
            raise StateConflictError(
                f"Order {order.reference} must be IN_FACTORY, it is {order.status.value}",
                code=ErrorCode.ORDER_NOT_IN_FACTORY,
                details={"order_id": order.id, "status": order.status.value},
            )

    def _require_open_entry(self, order: Order, department: Department) -> TrackingEntry:
        entry = self.tracking.get_open_entry(order.id)
        if entry is None or entry.department_id != department.id:
            raise StateConflictError(
                f"Order {order.reference} is not currently in {department.display_name}",
                code=ErrorCode.TRACKING_NOT_FOUND,
                details={
                    "order_id": order.id,
                    "department_id": department.id,
                    "current_department": entry.department_id if entry else None,
                },
            )
        return entry

    def _active_worker(self, worker_id: str) -> WorkerAvailability:
        worker = self.workers.get_worker(worker_id)
        if not worker.active:
            raise WorkflowValidationError(
                f"Worker {worker.name} is not active",
                code=ErrorCode.WORKER_INACTIVE,
                details={"worker_id": worker_id},
            )
        return WorkerAvailability(
            id=worker.id, name=worker.name, current_workload=self.tracking.workload(worker.id)
        )

    def _worker_name(self, worker_id: str) -> Optional[str]:
        try:
            return self.workers.get_worker(worker_id).name
        except UnknownWorkerError:
            return None

    def _publish(
        self,
        event_type: EventType,
        order_id: str,
        message: str,
        *,
        department_id: Optional[str] = None,
        worker_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        event = WorkflowEvent(
            type=event_type,
            order_id=order_id,
            timestamp=self._now(),
            message=message,
            department_id=department_id,
            worker_id=worker_id,
            details=details,
        )
        pending = getattr(self._outbox, "pending", None)
        if pending is not None:
            pending.append(event)
            return
        publish_quietly(self.events, event)

    @contextmanager
    def _undo_on_failure(self, order_id: str) -> Iterator[None]:
        """Run one order update as a unit.

        If the block raises, the order, its tracking entries and its queue
        places go back to what they were and the error propagates. Events
        are held back until the block has finished.
        """

        order = self._load_order(order_id)
        entries = self.tracking.entries_for_order(order_id)
        queued = self.queue.entries_for_order(order_id)
        pending: List[WorkflowEvent] = []
        self._outbox.pending = pending
        try:
            yield
        except Exception:
            self._outbox.pending = None
            self._save_order(order)
            self.tracking.restore(order_id, entries)
            self.queue.restore(order_id, queued)
            logger.warning("Rolled back order %s after a failed update", order_id)
            raise
        self._outbox.pending = None
        for event in pending:
            publish_quietly(self.events, event)

    def _assignment_result(
        self, order_id: str, department_id: str, resolution: Resolution
    ) -> AssignmentResult:
        worker = resolution.worker
        if resolution.outcome is ResolutionOutcome.QUEUED:
            message = f"Waiting for available worker (position {resolution.queue_position})"
        elif resolution.outcome is ResolutionOutcome.ALREADY_ASSIGNED and worker is not None:
            message = f"Already assigned to {worker.name}"
        elif worker is not None:
            message = f"Assigned to {worker.name}"
        else:
            message = "No assignment made"
        return AssignmentResult(
            success=True,
            assigned=resolution.assigned,
            queued=resolution.queued,
            message=message,
            order_id=order_id,
            department_id=department_id,
            worker_id=worker.id if worker else None,
            worker_name=worker.name if worker else None,
            queue_position=resolution.queue_position,
        )

    def _resolve(
        self, entry: TrackingEntry, now: datetime, *, behind_waiting: bool = False
    ) -> AssignmentResult:
        resolution = self.resolver.resolve(entry, now, behind_waiting=behind_waiting)
        if resolution.outcome is ResolutionOutcome.ASSIGNED and resolution.worker:
            self._publish(
                EventType.WORKER_ASSIGNED,
                entry.order_id,
                f"Assigned to {resolution.worker.name}",
                department_id=entry.department_id,
                worker_id=resolution.worker.id,
            )
        elif resolution.outcome is ResolutionOutcome.QUEUED:
            self._publish(
                EventType.ORDER_QUEUED,
                entry.order_id,
                "Waiting for available worker",
                department_id=entry.department_id,
                queue_position=resolution.queue_position,
            )
        return self._assignment_result(entry.order_id, entry.department_id, resolution)

    def _current_assignment(self, entry: Optional[TrackingEntry]) -> Optional[AssignmentResult]:
        """Describe where an entry stands without changing anything."""

        if entry is None:
            return None
        if entry.status is DepartmentStatus.IN_PROGRESS and entry.assigned_worker_id:
            name = self._worker_name(entry.assigned_worker_id)
            return AssignmentResult(
                success=True,
                assigned=True,
                queued=False,
                message=f"Already assigned to {name or entry.assigned_worker_id}",
                order_id=entry.order_id,
                department_id=entry.department_id,
                worker_id=entry.assigned_worker_id,
                worker_name=name,
            )
        position = self.queue.position_of(entry.department_id, entry.order_id)
        return AssignmentResult(
            success=True,
            assigned=False,
            queued=position is not None,
            message=(
                f"Waiting for available worker (position {position})"
                if position is not None
                else f"Department is {entry.status.value}"
            ),
            order_id=entry.order_id,
            department_id=entry.department_id,
            queue_position=position,
        )

    def _drain_department(self, department_id: str) -> Optional[AssignmentResult]:
        """Give the front of a department's queue a worker, if one is free."""

        while True:
            front = self.queue.peek_front(department_id)
            if front is None:
                logger.debug("Queue for %s is empty, nothing to drain", department_id)
                return None
            with self._order_locks.hold(front.order_id):
                resolution = self.resolver.assign_from_queue(
                    department_id, front.order_id, self._now()
                )
            if resolution.outcome is ResolutionOutcome.SKIPPED:
                continue
            if resolution.outcome is not ResolutionOutcome.ASSIGNED or not resolution.worker:
                logger.debug("No free worker in %s, queue left as is", department_id)
                return None
            self._publish(
                EventType.WORKER_ASSIGNED,
                front.order_id,
                f"Assigned waiting order to {resolution.worker.name}",
                department_id=department_id,
                worker_id=resolution.worker.id,
                from_queue=True,
            )
            return self._assignment_result(front.order_id, department_id, resolution)

    def _drain_after(self, department_id: str) -> Optional[AssignmentResult]:
        """Drain once an update has been committed.

        The update already stands, so a failing drain is logged and the
        queue is left for the next drain or ``process_waiting_orders``.
        """

        try:
            return self._drain_department(department_id)
        except Exception:
            logger.exception("Could not drain the %s queue", department_id)
            return None

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    def register_order(
        self,
        reference: str,
        *,
        customer_name: str = "",
        priority: OrderPriority = OrderPriority.NORMAL,
        due_date: Optional[date] = None,
        notes: str = "",
    ) -> Order:
        if not reference.strip():
            raise WorkflowValidationError("An order needs a reference number")
        order = Order(
            id=str(uuid4()),
            reference=reference.strip(),
            customer_name=customer_name,
            priority=priority,
            due_date=due_date,
            notes=notes,
            created_at=self._now(),
        )
        self.orders.add(order.id, order)
        logger.info("Registered order %s (%s)", order.reference, order.id)
        return order

    def get_order(self, order_id: str) -> Order:
        return self._load_order(order_id)

    # ------------------------------------------------------------------
    # Send to factory
    # ------------------------------------------------------------------
    def send_order_to_factory(self, order_id: str) -> SendToFactoryResult:
        """Put a DRAFT order into the first department and look for a worker."""

        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            if order.status is not OrderStatus.DRAFT:
                raise StateConflictError(
                    f"Order {order.reference} is already {order.status.value}",
                    code=ErrorCode.ORDER_NOT_DRAFT,
                    details={"order_id": order.id, "status": order.status.value},
                )
            now = self._now()
            first = self.catalog.first()
            with self._undo_on_failure(order.id):
                entry, _ = self.tracking.open_entry(order.id, first.id, now)
                order.status = OrderStatus.IN_FACTORY
                order.current_department_id = first.id
                order.sent_to_factory_at = now
                self._save_order(order)
                self._publish(
                    EventType.ORDER_SENT_TO_FACTORY,
                    order.id,
                    f"Order {order.reference} sent to factory",
                    department_id=first.id,
                )
                assignment = self._resolve(entry, now)
        logger.info(
            "Order %s sent to factory, %s: %s",
            order.reference,
            first.id,
            assignment.message,
        )
        return SendToFactoryResult(
            order_id=order.id,
            success=True,
            reference=order.reference,
            departments_created=1,
            first_assignment=assignment,
            message=assignment.message,
        )

    def send_to_factory(self, order_ids: Sequence[str]) -> BulkSendToFactoryResult:
        """Send several orders; each one succeeds or fails on its own."""

        results: List[SendToFactoryResult] = []
        for order_id in order_ids:
            try:
                results.append(self.send_order_to_factory(order_id))
            except WorkflowError as exc:
                logger.warning("Could not send order %s to factory: %s", order_id, exc.message)
                results.append(
                    SendToFactoryResult(
                        order_id=order_id,
                        success=False,
                        error_code=exc.code.value,
                        message=exc.message,
                    )
                )
            except Exception as exc:
                logger.exception("Unexpected failure sending order %s to factory", order_id)
                results.append(
                    SendToFactoryResult(
                        order_id=order_id,
                        success=False,
                        error_code=ErrorCode.INTERNAL_ERROR.value,
                        message=f"{type(exc).__name__}: {exc}",
                    )
                )
        failed = sum(1 for result in results if not result.success)
        return BulkSendToFactoryResult(
            results=results,
            success_count=len(results) - failed,
            failed_count=failed,
            success=failed == 0,
        )

    # ------------------------------------------------------------------
    # Manual moves
    # ------------------------------------------------------------------
    def move_to_department(self, order_id: str, department_id: str) -> MoveResult:
        """Drag an order to any department, bypassing the normal cascade."""

        target = self.catalog.get(department_id)
        freed_department: Optional[str] = None
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            current = self.tracking.get_open_entry(order.id)
            from_department = order.current_department_id
            if from_department == target.id:
                logger.info("Order %s already in %s, move ignored", order.reference, target.id)
                return MoveResult(
                    order_id=order.id,
                    from_department=from_department,
                    new_department=target.id,
                    changed=False,
                    assignment=self._current_assignment(current),
                )
            now = self._now()
            with self._undo_on_failure(order.id):
                if current is not None and current.status is DepartmentStatus.IN_PROGRESS:
                    freed_department = current.department_id
                for queued_in in self.queue.departments_for(order.id):
                    self.queue.remove(queued_in, order.id)
                entry, _ = self.tracking.open_entry(order.id, target.id, now)
                order.current_department_id = target.id
                self._save_order(order)
                self._publish(
                    EventType.ORDER_MOVED,
                    order.id,
                    f"Moved from {from_department} to {target.id}",
                    department_id=target.id,
                    from_department=from_department,
                )
                assignment = self._resolve(entry, now)
        logger.info(
            "Order %s moved from %s to %s: %s",
            order.reference,
            from_department,
            target.id,
            assignment.message,
        )
        drained = self._drain_after(freed_department) if freed_department else None
        return MoveResult(
            order_id=order.id,
            from_department=from_department,
            new_department=target.id,
            changed=True,
            assignment=assignment,
            queue_drain_assignment=drained,
        )

    # ------------------------------------------------------------------
    # Completion and cascade
    # ------------------------------------------------------------------
    def complete_department(
        self,
        order_id: str,
        department_id: str,
        metrics: Optional[Mapping[str, float]] = None,
        *,
        notes: str = "",
        completed_by: Optional[str] = None,
    ) -> CompletionResult:
        """Finish a department, cascade into its successor and drain its queue.

        ``completed_by`` names the worker who signed the department off; it
        defaults to whoever the entry is assigned to.
        """

        department = self.catalog.get(department_id)
        if completed_by is not None:
            completed_by = self.workers.get_worker(completed_by).id
        next_assignment: Optional[AssignmentResult] = None
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            now = self._now()
            with self._undo_on_failure(order.id):
                entry = self.tracking.complete(
                    entry, now, metrics=metrics, notes=notes, completed_by=completed_by
                )
                successor = self.catalog.next(department)
                self._publish(
                    EventType.DEPARTMENT_COMPLETED,
                    order.id,
                    f"{department.display_name} completed",
                    department_id=department.id,
                    worker_id=entry.completed_by_worker_id,
                    next_department=successor.id if successor else None,
                )
                if successor is not None:
                    next_entry, _ = self.tracking.open_entry(order.id, successor.id, now)
                    order.current_department_id = successor.id
                    self._save_order(order)
                    next_assignment = self._resolve(next_entry, now)
                else:
                    order.status = OrderStatus.COMPLETED
                    order.completed_at = now
                    self._save_order(order)
                    self._publish(
                        EventType.ORDER_COMPLETED,
                        order.id,
                        f"Order {order.reference} finished all departments",
                        department_id=department.id,
                    )
        if next_assignment is not None:
            logger.info(
                "Order %s cascaded from %s to %s: %s",
                order.reference,
                department.id,
                successor.id,
                next_assignment.message,
            )
        else:
            logger.info("Order %s completed, all departments finished", order.reference)
        drained = self._drain_after(department.id)
        return CompletionResult(
            order_id=order.id,
            department_id=department.id,
            completed=True,
            next_department=successor.id if successor else None,
            next_assignment=next_assignment,
            queue_drain_assignment=drained,
            order_completed=successor is None,
        )

    # ------------------------------------------------------------------
    # Worker changes
    # ------------------------------------------------------------------
    def reassign_department(
        self, order_id: str, department_id: str, worker_id: str
    ) -> AssignmentResult:
        department = self.catalog.get(department_id)
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            if entry.status is not DepartmentStatus.IN_PROGRESS:
                raise StateConflictError(
                    f"Only an in-progress {department.display_name} can be reassigned",
                    code=ErrorCode.NOT_STARTED,
                    details={"status": entry.status.value},
                )
            worker = self._active_worker(worker_id)
            if entry.assigned_worker_id == worker.id:
                return AssignmentResult(
                    success=True,
                    assigned=True,
                    queued=False,
                    message=f"Already assigned to {worker.name}",
                    order_id=order.id,
                    department_id=department.id,
                    worker_id=worker.id,
                    worker_name=worker.name,
                )
            previous = entry.assigned_worker_id
            self.tracking.rebind_worker(entry, worker.id, self._now())
            self._publish(
                EventType.WORKER_REASSIGNED,
                order.id,
                f"Reassigned to {worker.name}",
                department_id=department.id,
                worker_id=worker.id,
                previous_worker_id=previous,
            )
        logger.info(
            "Order %s in %s reassigned from %s to %s",
            order.reference,
            department.id,
            previous,
            worker.id,
        )
        return AssignmentResult(
            success=True,
            assigned=True,
            queued=False,
            message=f"Reassigned to {worker.name}",
            order_id=order.id,
            department_id=department.id,
            worker_id=worker.id,
            worker_name=worker.name,
        )

    def unassign_worker(self, order_id: str, department_id: str) -> UnassignResult:
        """Take the worker off an entry and run assignment again straight away.

        If other orders are already waiting in the department, the released
        order joins the back of the queue and the front is drained instead.
        """

        department = self.catalog.get(department_id)
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            previous = entry.assigned_worker_id
            with self._undo_on_failure(order.id):
                entry = self.tracking.release_worker(entry)
                self._publish(
                    EventType.WORKER_UNASSIGNED,
                    order.id,
                    "Worker unassigned",
                    department_id=department.id,
                    worker_id=previous,
                )
                assignment = self._resolve(entry, self._now(), behind_waiting=True)
        logger.info(
            "Unassigned %s from order %s in %s: %s",
            previous,
            order.reference,
            department.id,
            assignment.message,
        )
        drained = self._drain_after(department.id) if assignment.queued else None
        return UnassignResult(
            order_id=order.id,
            department_id=department.id,
            unassigned=True,
            assignment=assignment,
            queue_drain_assignment=drained,
        )

    def self_assign(self, order_id: str, department_id: str, worker_id: str) -> SelfAssignResult:
        """A worker claims a pending entry in their own department."""

        department = self.catalog.get(department_id)
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            worker = self._active_worker(worker_id)
            home = self.workers.get_worker(worker_id).department_id
            if home != department.id:
                raise WorkflowValidationError(
                    f"Worker {worker.name} belongs to {home}, not {department.id}",
                    code=ErrorCode.WORKER_WRONG_DEPARTMENT,
                    details={"worker_id": worker.id, "department_id": home},
                )
            with self._undo_on_failure(order.id):
                self.resolver.assign_worker(entry, worker, self._now())
                self._publish(
                    EventType.WORKER_ASSIGNED,
                    order.id,
                    f"{worker.name} took the order",
                    department_id=department.id,
                    worker_id=worker.id,
                    self_assigned=True,
                )
        return SelfAssignResult(
            order_id=order.id, department_id=department.id, assigned=True, worker_id=worker.id
        )

    def process_waiting_orders(self, department_id: str) -> List[AssignmentResult]:
        """Hand queued orders to free workers until either runs out."""

        department = self.catalog.get(department_id)
        assignments: List[AssignmentResult] = []
        while True:
            drained = self._drain_department(department.id)
            if drained is None:
                break
            assignments.append(drained)
        if assignments:
            logger.info("Assigned %d waiting orders in %s", len(assignments), department.id)
        return assignments

    # ------------------------------------------------------------------
    # Progress and holds
    # ------------------------------------------------------------------
    def update_progress(self, order_id: str, department_id: str, percentage: int) -> TrackingEntry:
        department = self.catalog.get(department_id)
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            return self.tracking.update_progress(entry, percentage)

    def put_on_hold(self, order_id: str, department_id: str, reason: str) -> TrackingEntry:
        department = self.catalog.get(department_id)
        if not reason.strip():
            raise WorkflowValidationError("A reason is required to put work on hold")
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            entry = self.tracking.hold(entry, reason.strip())
            self._publish(
                EventType.DEPARTMENT_ON_HOLD,
                order.id,
                f"{department.display_name} has been put on hold: {reason.strip()}",
                department_id=department.id,
                worker_id=entry.assigned_worker_id,
            )
        logger.info("Order %s on hold in %s: %s", order.reference, department.id, reason)
        # a held entry no longer counts against its worker
        self._drain_after(department.id)
        return entry

    def resume_department(self, order_id: str, department_id: str) -> TrackingEntry:
        department = self.catalog.get(department_id)
        with self._order_locks.hold(order_id):
            order = self._load_order(order_id)
            self._require_in_factory(order)
            entry = self._require_open_entry(order, department)
            entry = self.tracking.resume(entry)
            self._publish(
                EventType.DEPARTMENT_RESUMED,
                order.id,
                f"{department.display_name} resumed",
                department_id=department.id,
                worker_id=entry.assigned_worker_id,
            )
        logger.info("Order %s resumed in %s", order.reference, department.id)
        return entry

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def get_department_queue(self, department_id: str) -> DepartmentQueueView:
        department = self.catalog.get(department_id)
        items: List[QueueItem] = []
        for queued in self.queue.entries(department.id):
            try:
                order = self.orders.get(queued.order_id)
            except RecordNotFoundError:
                logger.warning("Queue %s references unknown order %s", department.id, queued.order_id)
                continue
            items.append(
                QueueItem(
                    order_id=order.id,
                    reference=order.reference,
                    customer_name=order.customer_name,
                    priority=order.priority.name,
                    queue_position=queued.queue_position,
                    queued_at=queued.queued_at,
                    due_date=order.due_date,
                )
            )
        return DepartmentQueueView(
            department_id=department.id,
            department_name=department.display_name,
            queue_length=len(items),
            queue=items,
        )

    def get_order_timeline(self, order_id: str) -> OrderTimeline:
        order = self._load_order(order_id)
        return build_order_timeline(
            self.catalog, order, self.tracking.entries_for_order(order.id), self._worker_name
        )

    def get_board(self) -> KanbanBoard:
        return build_board(
            self.catalog,
            self.orders.list(),
            self.tracking.all(),
            self.queue,
            self._worker_name,
            self._now(),
        )

    def recent_events(self, limit: Optional[int] = None) -> List[WorkflowEvent]:
        if isinstance(self.events, InMemoryEventSink):
            return self.events.recent(limit)
        return []


__all__ = [
    "WorkflowService",
    "AssignmentResult",
    "SendToFactoryResult",
    "BulkSendToFactoryResult",
    "MoveResult",
    "CompletionResult",
    "UnassignResult",
    "SelfAssignResult",
    "QueueItem",
    "DepartmentQueueView",
]
