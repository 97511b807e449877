"""FIFO waiting lists of orders, one per department."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from .domain import QueueEntry, queue_key
from .locks import KeyedLocks
from .repository import InMemoryRepository, RecordNotFoundError

logger = logging.getLogger(__name__)


class DepartmentQueue:
    """Strict FIFO per department with dense ``0..n-1`` positions.

    Priority never reorders a queue. Every mutation runs inside the
    department's critical section, which callers may also hold across
    several calls through :meth:`locked`.
    """

    def __init__(self, repository: Optional[InMemoryRepository[QueueEntry]] = None) -> None:
        self._entries = repository if repository is not None else InMemoryRepository()
        self._locks = KeyedLocks()

    @contextmanager
    def locked(self, department_id: str) -> Iterator[None]:
        with self._locks.hold(department_id):
            yield

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def entries(self, department_id: str) -> List[QueueEntry]:
        return sorted(
            (entry for entry in self._entries if entry.department_id == department_id),
            key=lambda entry: entry.queue_position,
        )

    def length(self, department_id: str) -> int:
        return len(self.entries(department_id))

    def peek_front(self, department_id: str) -> Optional[QueueEntry]:
        entries = self.entries(department_id)
        return entries[0] if entries else None

    def find(self, department_id: str, order_id: str) -> Optional[QueueEntry]:
        try:
            return self._entries.get(queue_key(department_id, order_id))
        except RecordNotFoundError:
            return None

    def position_of(self, department_id: str, order_id: str) -> Optional[int]:
        entry = self.find(department_id, order_id)
        return entry.queue_position if entry is not None else None

    def entries_for_order(self, order_id: str) -> List[QueueEntry]:
        return [entry for entry in self._entries if entry.order_id == order_id]

    def departments_for(self, order_id: str) -> List[str]:
        return [entry.department_id for entry in self.entries_for_order(order_id)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def enqueue(self, department_id: str, order_id: str, now: datetime) -> QueueEntry:
        with self.locked(department_id):
            existing = self.find(department_id, order_id)
            if existing is not None:
                return existing
            entries = self.entries(department_id)
            position = entries[-1].queue_position + 1 if entries else 0
            entry = QueueEntry(
                department_id=department_id,
                order_id=order_id,
                queue_position=position,
                queued_at=now,
            )
            self._entries.add(entry.key, entry)
            logger.info(
                "Queued order %s in %s at position %d", order_id, department_id, position
            )
            return entry

    def dequeue_front(self, department_id: str) -> Optional[QueueEntry]:
        with self.locked(department_id):
            front = self.peek_front(department_id)
            if front is None:
                return None
            self._entries.remove(front.key)
            self._compact(department_id)
            logger.info("Dequeued order %s from %s", front.order_id, department_id)
            return front

    def remove(self, department_id: str, order_id: str) -> bool:
        with self.locked(department_id):
            key = queue_key(department_id, order_id)
            if key not in self._entries:
                return False
            self._entries.remove(key)
            self._compact(department_id)
            logger.info("Removed order %s from the %s queue", order_id, department_id)
            return True

    def restore(self, order_id: str, snapshot: List[QueueEntry]) -> None:
        """Put ``order_id`` back into exactly the queues it held in ``snapshot``.

        An entry that was removed goes back to its old position, pushing
        the orders queued behind it down by one.
        """

        wanted = {entry.department_id: entry for entry in snapshot}
        for department_id in self.departments_for(order_id):
            if department_id not in wanted:
                self.remove(department_id, order_id)
        for department_id, saved in wanted.items():
            with self.locked(department_id):
                if self.find(department_id, order_id) is not None:
                    continue
                for entry in self.entries(department_id):
                    if entry.queue_position >= saved.queue_position:
                        entry.queue_position += 1
                        self._entries.upsert(entry.key, entry)
                self._entries.add(saved.key, saved)
                self._compact(department_id)
            logger.info(
                "Restored order %s to the %s queue at position %d",
                order_id,
                department_id,
                saved.queue_position,
            )

    def _compact(self, department_id: str) -> None:
        for position, entry in enumerate(self.entries(department_id)):
            if entry.queue_position != position:
                entry.queue_position = position
                self._entries.upsert(entry.key, entry)


__all__ = ["DepartmentQueue"]
