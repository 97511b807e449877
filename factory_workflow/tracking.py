"""Per-order, per-department progress records and their state machine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple
from uuid import uuid4

from .domain import DepartmentStatus, TrackingEntry
from .errors import ErrorCode, InvalidStatusTransitionError, WorkflowValidationError
from .repository import InMemoryRepository

logger = logging.getLogger(__name__)

_TRANSITIONS: Dict[DepartmentStatus, FrozenSet[DepartmentStatus]] = {
    DepartmentStatus.PENDING_ASSIGNMENT: frozenset(
        {DepartmentStatus.IN_PROGRESS, DepartmentStatus.COMPLETED}
    ),
    DepartmentStatus.IN_PROGRESS: frozenset(
        {
            DepartmentStatus.PENDING_ASSIGNMENT,
            DepartmentStatus.ON_HOLD,
            DepartmentStatus.COMPLETED,
        }
    ),
    DepartmentStatus.ON_HOLD: frozenset(
        {DepartmentStatus.IN_PROGRESS, DepartmentStatus.COMPLETED}
    ),
    DepartmentStatus.COMPLETED: frozenset(),
}


def can_transition(current: DepartmentStatus, target: DepartmentStatus) -> bool:
    return target in _TRANSITIONS.get(current, frozenset())


class TrackingEntryStore:
    """Owns every TrackingEntry and enforces one open entry per order.

    Callers serialize writes per order; the store itself only checks that
    each transition is legal for the entry's current status.
    """

    def __init__(self, repository: Optional[InMemoryRepository[TrackingEntry]] = None) -> None:
        self._entries = repository if repository is not None else InMemoryRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get(self, entry_id: str) -> TrackingEntry:
        return self._entries.get(entry_id)

    def entries_for_order(self, order_id: str) -> List[TrackingEntry]:
        return [entry for entry in self._entries if entry.order_id == order_id]

    def entries_for_department(self, department_id: str) -> List[TrackingEntry]:
        return [entry for entry in self._entries if entry.department_id == department_id]

    def open_entries(self, order_id: str) -> List[TrackingEntry]:
        return [entry for entry in self.entries_for_order(order_id) if entry.is_open]

    def get_open_entry(self, order_id: str) -> Optional[TrackingEntry]:
        entries = self.open_entries(order_id)
        return entries[-1] if entries else None

    def current_entry(self, order_id: str, department_id: str) -> Optional[TrackingEntry]:
        """Latest visit of ``order_id`` to ``department_id``, open or not."""

        visits = [
            entry
            for entry in self.entries_for_order(order_id)
            if entry.department_id == department_id
        ]
        return visits[-1] if visits else None

    def workload(self, worker_id: str) -> int:
        return sum(
            1
            for entry in self._entries
            if entry.assigned_worker_id == worker_id
            and entry.status is DepartmentStatus.IN_PROGRESS
        )

    def all(self) -> List[TrackingEntry]:
        return self._entries.list()

    def restore(self, order_id: str, snapshot: List[TrackingEntry]) -> None:
        """Put an order's history back to ``snapshot``, dropping newer visits."""

        kept = {entry.id for entry in snapshot}
        for entry in self.entries_for_order(order_id):
            if entry.id not in kept:
                self._entries.remove(entry.id)
        for entry in snapshot:
            self._entries.upsert(entry.id, entry)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _transition(self, entry: TrackingEntry, target: DepartmentStatus) -> None:
        if not can_transition(entry.status, target):
            raise InvalidStatusTransitionError(
                f"Cannot move {entry.department_id} from {entry.status.value} "
                f"to {target.value}",
                details={
                    "order_id": entry.order_id,
                    "department_id": entry.department_id,
                    "status": entry.status.value,
                    "target": target.value,
                },
            )
        entry.status = target

    def _save(self, entry: TrackingEntry) -> TrackingEntry:
        self._entries.upsert(entry.id, entry)
        return entry

    def open_entry(
        self, order_id: str, department_id: str, now: datetime
    ) -> Tuple[TrackingEntry, List[TrackingEntry]]:
        """Start a new visit, force-completing whatever the order had open."""

        closed: List[TrackingEntry] = []
        for entry in self.open_entries(order_id):
            closed.append(self.close(entry, now))
        previous_visits = sum(
            1
            for entry in self.entries_for_order(order_id)
            if entry.department_id == department_id
        )
        entry = TrackingEntry(
            id=str(uuid4()),
            order_id=order_id,
            department_id=department_id,
            entered_at=now,
            visit=previous_visits + 1,
        )
        self._entries.add(entry.id, entry)
        logger.debug(
            "Opened tracking entry %s for order %s in %s (visit %d)",
            entry.id,
            order_id,
            department_id,
            entry.visit,
        )
        return entry, closed

    def close(self, entry: TrackingEntry, now: datetime) -> TrackingEntry:
        """Force-complete an open entry, whatever state it is in."""

        self._transition(entry, DepartmentStatus.COMPLETED)
        entry.exited_at = now
        return self._save(entry)

    def bind_worker(self, entry: TrackingEntry, worker_id: str, now: datetime) -> TrackingEntry:
        self._transition(entry, DepartmentStatus.IN_PROGRESS)
        entry.assigned_worker_id = worker_id
        entry.assigned_at = now
        return self._save(entry)

    def rebind_worker(self, entry: TrackingEntry, worker_id: str, now: datetime) -> TrackingEntry:
        if entry.status is not DepartmentStatus.IN_PROGRESS:
            raise InvalidStatusTransitionError(
                f"Only an in-progress {entry.department_id} can be reassigned",
                details={"status": entry.status.value},
            )
        if entry.assigned_worker_id == worker_id:
            return entry
        entry.assigned_worker_id = worker_id
        entry.assigned_at = now
        return self._save(entry)

    def release_worker(self, entry: TrackingEntry) -> TrackingEntry:
        if entry.status is not DepartmentStatus.IN_PROGRESS:
            raise InvalidStatusTransitionError(
                f"Cannot unassign {entry.department_id} while {entry.status.value}",
                details={"status": entry.status.value},
            )
        self._transition(entry, DepartmentStatus.PENDING_ASSIGNMENT)
        entry.assigned_worker_id = None
        entry.assigned_at = None
        entry.work_progress = 0
        return self._save(entry)

    def complete(
        self,
        entry: TrackingEntry,
        now: datetime,
        *,
        metrics: Optional[Mapping[str, float]] = None,
        notes: str = "",
        completed_by: Optional[str] = None,
    ) -> TrackingEntry:
        if entry.status is not DepartmentStatus.IN_PROGRESS:
            raise InvalidStatusTransitionError(
                f"Cannot complete {entry.department_id} while {entry.status.value}",
                code=(
                    ErrorCode.NOT_STARTED
                    if entry.status is DepartmentStatus.PENDING_ASSIGNMENT
                    else ErrorCode.INVALID_STATUS_TRANSITION
                ),
                details={"status": entry.status.value},
            )
        self._transition(entry, DepartmentStatus.COMPLETED)
        entry.exited_at = now
        entry.work_progress = 100
        entry.completed_by_worker_id = completed_by or entry.assigned_worker_id
        if metrics:
            entry.metrics.update({key: float(value) for key, value in metrics.items()})
        if notes:
            entry.notes = notes
        return self._save(entry)

    def hold(self, entry: TrackingEntry, reason: str) -> TrackingEntry:
        self._transition(entry, DepartmentStatus.ON_HOLD)
        entry.hold_reason = reason
        return self._save(entry)

    def resume(self, entry: TrackingEntry) -> TrackingEntry:
        if entry.status is not DepartmentStatus.ON_HOLD:
            raise InvalidStatusTransitionError(
                "Can only resume a department that is on hold",
                details={"status": entry.status.value},
            )
        self._transition(entry, DepartmentStatus.IN_PROGRESS)
        entry.hold_reason = ""
        return self._save(entry)

    def update_progress(self, entry: TrackingEntry, percentage: int) -> TrackingEntry:
        if entry.status is not DepartmentStatus.IN_PROGRESS:
            raise InvalidStatusTransitionError(
                f"Progress can only be reported while {entry.department_id} is in progress",
                code=ErrorCode.NOT_STARTED,
                details={"status": entry.status.value},
            )
        if percentage < 0 or percentage > 100:
            raise WorkflowValidationError(
                "Progress must be between 0 and 100",
                code=ErrorCode.INVALID_PROGRESS,
                details={"percentage": percentage},
            )
        if percentage <= entry.work_progress:
            return entry
        entry.work_progress = percentage
        return self._save(entry)


__all__ = ["TrackingEntryStore", "can_transition"]
