"""Decides whether an order entering a department gets a worker or waits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Sequence

from .domain import DepartmentStatus, TrackingEntry, WorkerAvailability
from .errors import ErrorCode, InvalidStatusTransitionError
from .queues import DepartmentQueue
from .tracking import TrackingEntryStore
from .workers import WorkerDirectory

logger = logging.getLogger(__name__)


class ResolutionOutcome(str, Enum):
    ASSIGNED = "ASSIGNED"
    QUEUED = "QUEUED"
    ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
    # queue front moved or pointed at an entry that no longer waits there
    SKIPPED = "SKIPPED"


@dataclass(slots=True)
class Resolution:
    outcome: ResolutionOutcome
    entry: Optional[TrackingEntry]
    worker: Optional[WorkerAvailability] = None
    queue_position: Optional[int] = None

    @property
    def assigned(self) -> bool:
        return self.outcome in {ResolutionOutcome.ASSIGNED, ResolutionOutcome.ALREADY_ASSIGNED}

    @property
    def queued(self) -> bool:
        return self.outcome is ResolutionOutcome.QUEUED


class AssignmentPolicy(Protocol):
    """Chooses one worker out of those currently available."""

    def select(self, candidates: Sequence[WorkerAvailability]) -> Optional[WorkerAvailability]:
        ...


class LeastWorkloadPolicy:
    """Lowest current workload wins; ties go to the lowest worker id."""

    def select(self, candidates: Sequence[WorkerAvailability]) -> Optional[WorkerAvailability]:
        if not candidates:
            return None
        return min(candidates, key=lambda worker: (worker.current_workload, worker.id))


class AssignmentResolver:
    """Binds a worker to a pending tracking entry or queues the order.

    The caller holds the order's lock. Worker lookup and the bind/enqueue
    that follows run under the department's queue lock so a worker freed
    concurrently cannot miss the order being queued.
    """

    def __init__(
        self,
        tracking: TrackingEntryStore,
        queue: DepartmentQueue,
        directory: WorkerDirectory,
        policy: Optional[AssignmentPolicy] = None,
    ) -> None:
        self.tracking = tracking
        self.queue = queue
        self.directory = directory
        self.policy: AssignmentPolicy = policy or LeastWorkloadPolicy()

    def _availability(self, entry: TrackingEntry) -> Optional[WorkerAvailability]:
        if entry.assigned_worker_id is None:
            return None
        worker = self.directory.get_worker(entry.assigned_worker_id)
        return WorkerAvailability(
            id=worker.id,
            name=worker.name,
            current_workload=self.tracking.workload(worker.id),
        )

    def resolve(
        self, entry: TrackingEntry, now: datetime, *, behind_waiting: bool = False
    ) -> Resolution:
        """Bind the policy's pick, or queue the order when nobody is free.

        With ``behind_waiting`` the order joins the back of the queue whenever
        other orders already wait there, so it cannot overtake them.
        """

        if entry.status is DepartmentStatus.IN_PROGRESS:
            return Resolution(
                ResolutionOutcome.ALREADY_ASSIGNED, entry, worker=self._availability(entry)
            )
        if entry.status is not DepartmentStatus.PENDING_ASSIGNMENT:
            raise InvalidStatusTransitionError(
                f"Cannot assign {entry.department_id} while {entry.status.value}",
                details={"status": entry.status.value},
            )
        department_id = entry.department_id
        with self.queue.locked(department_id):
            others_waiting = behind_waiting and any(
                queued.order_id != entry.order_id
                for queued in self.queue.entries(department_id)
            )
            chosen = (
                None
                if others_waiting
                else self.policy.select(self.directory.list_available_workers(department_id))
            )
            if chosen is None:
                queued = self.queue.enqueue(department_id, entry.order_id, now)
                logger.info(
                    "No available worker in %s, order %s waits at position %d",
                    department_id,
                    entry.order_id,
                    queued.queue_position,
                )
                return Resolution(
                    ResolutionOutcome.QUEUED, entry, queue_position=queued.queue_position
                )
            entry = self.tracking.bind_worker(entry, chosen.id, now)
            self.queue.remove(department_id, entry.order_id)
        logger.info(
            "Assigned order %s in %s to %s (workload %d)",
            entry.order_id,
            department_id,
            chosen.name,
            chosen.current_workload,
        )
        return Resolution(ResolutionOutcome.ASSIGNED, entry, worker=chosen)

    def assign_worker(
        self, entry: TrackingEntry, worker: WorkerAvailability, now: datetime
    ) -> Resolution:
        """Bind ``worker`` directly, skipping the policy."""

        if entry.status is not DepartmentStatus.PENDING_ASSIGNMENT:
            raise InvalidStatusTransitionError(
                f"{entry.department_id} is already {entry.status.value}",
                code=(
                    ErrorCode.ALREADY_STARTED
                    if entry.status is DepartmentStatus.IN_PROGRESS
                    else ErrorCode.INVALID_STATUS_TRANSITION
                ),
                details={"status": entry.status.value},
            )
        with self.queue.locked(entry.department_id):
            entry = self.tracking.bind_worker(entry, worker.id, now)
            self.queue.remove(entry.department_id, entry.order_id)
        logger.info(
            "Worker %s took order %s in %s", worker.name, entry.order_id, entry.department_id
        )
        return Resolution(ResolutionOutcome.ASSIGNED, entry, worker=worker)

    def assign_from_queue(
        self, department_id: str, order_id: str, now: datetime
    ) -> Resolution:
        """Give the front order of a queue a worker if one is free.

        ``order_id`` is the front the caller saw before taking that order's
        lock. The order only leaves the queue once a worker is bound, so it
        keeps its place when nobody is free.
        """

        with self.queue.locked(department_id):
            front = self.queue.peek_front(department_id)
            if front is None or front.order_id != order_id:
                return Resolution(ResolutionOutcome.SKIPPED, None)
            entry = self.tracking.get_open_entry(order_id)
            if (
                entry is None
                or entry.department_id != department_id
                or entry.status is not DepartmentStatus.PENDING_ASSIGNMENT
            ):
                logger.warning(
                    "Dropping stale queue entry for order %s in %s", order_id, department_id
                )
                self.queue.remove(department_id, order_id)
                return Resolution(ResolutionOutcome.SKIPPED, entry)
            chosen = self.policy.select(self.directory.list_available_workers(department_id))
            if chosen is None:
                return Resolution(
                    ResolutionOutcome.QUEUED, entry, queue_position=front.queue_position
                )
            entry = self.tracking.bind_worker(entry, chosen.id, now)
            self.queue.dequeue_front(department_id)
        logger.info(
            "Drained order %s from the %s queue to %s", order_id, department_id, chosen.name
        )
        return Resolution(ResolutionOutcome.ASSIGNED, entry, worker=chosen)


__all__ = [
    "AssignmentPolicy",
    "AssignmentResolver",
    "LeastWorkloadPolicy",
    "Resolution",
    "ResolutionOutcome",
]
