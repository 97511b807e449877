"""Worker directory: the collaborator that knows who can take work."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol
from uuid import uuid4

from .domain import Worker, WorkerAvailability
from .errors import UnknownWorkerError
from .repository import InMemoryRepository, RecordNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKLOAD = 5


class WorkerDirectory(Protocol):
    """Read-only view of the factory's workers used by the engine."""

    def list_available_workers(self, department_id: str) -> List[WorkerAvailability]:
        ...

    def get_worker(self, worker_id: str) -> Worker:
        ...


class InMemoryWorkerDirectory:
    """Worker directory backed by a repository.

    A worker is available for a department when active, homed there and
    below its workload cap. Workload is looked up on every call through
    ``workload_counter`` so assignment never works from a stale count.
    """

    def __init__(
        self,
        repository: Optional[InMemoryRepository[Worker]] = None,
        *,
        workload_counter: Optional[Callable[[str], int]] = None,
        default_max_workload: int = DEFAULT_MAX_WORKLOAD,
    ) -> None:
        self.workers = repository if repository is not None else InMemoryRepository()
        self._workload_counter = workload_counter
        self.default_max_workload = default_max_workload

    @property
    def has_workload_counter(self) -> bool:
        return self._workload_counter is not None

    def bind_workload_counter(self, counter: Callable[[str], int]) -> None:
        self._workload_counter = counter

    def workload(self, worker_id: str) -> int:
        if self._workload_counter is None:
            return 0
        return self._workload_counter(worker_id)

    def register_worker(
        self,
        name: str,
        department_id: str,
        *,
        worker_id: Optional[str] = None,
        active: bool = True,
        max_workload: Optional[int] = None,
    ) -> Worker:
        worker = Worker(
            id=worker_id or str(uuid4()),
            name=name,
            department_id=department_id,
            active=active,
            max_workload=(
                self.default_max_workload if max_workload is None else max(max_workload, 0)
            ),
        )
        self.workers.add(worker.id, worker)
        logger.info("Registered worker %s (%s) in %s", worker.name, worker.id, department_id)
        return worker

    def set_active(self, worker_id: str, active: bool) -> Worker:
        worker = self.get_worker(worker_id)
        worker.active = active
        self.workers.upsert(worker.id, worker)
        return worker

    def get_worker(self, worker_id: str) -> Worker:
        try:
            return self.workers.get(worker_id)
        except RecordNotFoundError as exc:
            raise UnknownWorkerError(worker_id) from exc

    def list_workers(self, department_id: Optional[str] = None) -> List[Worker]:
        return [
            worker
            for worker in self.workers
            if department_id is None or worker.department_id == department_id
        ]

    def list_available_workers(self, department_id: str) -> List[WorkerAvailability]:
        available: List[WorkerAvailability] = []
        for worker in self.list_workers(department_id):
            if not worker.active:
                continue
            load = self.workload(worker.id)
            if load >= worker.max_workload:
                continue
            available.append(
                WorkerAvailability(id=worker.id, name=worker.name, current_workload=load)
            )
        return available


__all__ = ["WorkerDirectory", "InMemoryWorkerDirectory", "DEFAULT_MAX_WORKLOAD"]
