"""Simple in-memory repositories used by the workflow engine."""

from __future__ import annotations

import copy
import threading
from typing import Generic, Iterator, List, MutableMapping, TypeVar

T = TypeVar("T")


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class InMemoryRepository(Generic[T]):
    """Generic repository backed by a simple dictionary.

    Records are copied on the way in and out so callers see the same
    semantics as the SQLite repository: changes only stick after ``upsert``.
    """

    def __init__(self) -> None:
        self._items: MutableMapping[str, T] = {}
        self._lock = threading.Lock()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        with self._lock:
            if item_id in self._items:
                raise DuplicateRecordError(f"Record with id {item_id!r} already exists")
            self._items[item_id] = copy.deepcopy(item)

    def upsert(self, item_id: str, item: T) -> None:
        with self._lock:
            self._items[item_id] = copy.deepcopy(item)

    def get(self, item_id: str) -> T:
        try:
            return copy.deepcopy(self._items[item_id])
        except KeyError as exc:
            raise RecordNotFoundError(f"Record with id {item_id!r} not found") from exc

    def remove(self, item_id: str) -> None:
        with self._lock:
            if item_id not in self._items:
                raise RecordNotFoundError(f"Record with id {item_id!r} not found")
            del self._items[item_id]

    def list(self) -> List[T]:
        with self._lock:
            items = list(self._items.values())
        return [copy.deepcopy(item) for item in items]

    def __iter__(self) -> Iterator[T]:
        return iter(self.list())


__all__ = [
    "InMemoryRepository",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
]
