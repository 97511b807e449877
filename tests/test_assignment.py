from datetime import datetime, timezone

import pytest

from factory_workflow.assignment import AssignmentResolver, LeastWorkloadPolicy, ResolutionOutcome
from factory_workflow.domain import DepartmentStatus, WorkerAvailability
from factory_workflow.errors import ErrorCode, InvalidStatusTransitionError
from factory_workflow.queues import DepartmentQueue
from factory_workflow.tracking import TrackingEntryStore
from factory_workflow.workers import InMemoryWorkerDirectory

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def parts():
    tracking = TrackingEntryStore()
    queue = DepartmentQueue()
    directory = InMemoryWorkerDirectory(workload_counter=tracking.workload)
    return tracking, queue, directory, AssignmentResolver(tracking, queue, directory)


def test_policy_prefers_lowest_workload_then_id():
    policy = LeastWorkloadPolicy()
    candidates = [
        WorkerAvailability(id="w-3", name="C", current_workload=1),
        WorkerAvailability(id="w-2", name="B", current_workload=0),
        WorkerAvailability(id="w-1", name="A", current_workload=0),
    ]

    assert policy.select(candidates).id == "w-1"
    assert policy.select([]) is None


def test_resolve_queues_when_nobody_is_free(parts):
    tracking, queue, _, resolver = parts
    entry, _ = tracking.open_entry("o1", "CAD", T0)

    resolution = resolver.resolve(entry, T0)

    assert resolution.outcome is ResolutionOutcome.QUEUED
    assert resolution.queue_position == 0
    assert tracking.get(entry.id).status is DepartmentStatus.PENDING_ASSIGNMENT


def test_resolve_balances_workload(parts):
    tracking, _, directory, resolver = parts
    directory.register_worker("Anita", "CAD", worker_id="w-1")
    directory.register_worker("Vikram", "CAD", worker_id="w-2")

    picked = []
    for order_id in ("o1", "o2", "o3"):
        entry, _ = tracking.open_entry(order_id, "CAD", T0)
        picked.append(resolver.resolve(entry, T0).worker.id)

    assert picked == ["w-1", "w-2", "w-1"]
    assert tracking.workload("w-1") == 2


def test_inactive_and_saturated_workers_are_skipped(parts):
    tracking, queue, directory, resolver = parts
    directory.register_worker("Off duty", "CAD", worker_id="w-1", active=False)
    directory.register_worker("Busy", "CAD", worker_id="w-2", max_workload=1)
    directory.register_worker("Printer", "PRINT", worker_id="w-3")

    first, _ = tracking.open_entry("o1", "CAD", T0)
    assert resolver.resolve(first, T0).worker.id == "w-2"

    second, _ = tracking.open_entry("o2", "CAD", T0)
    assert resolver.resolve(second, T0).outcome is ResolutionOutcome.QUEUED
    assert queue.position_of("CAD", "o2") == 0


def test_resolve_on_started_entry_is_a_no_op(parts):
    tracking, _, directory, resolver = parts
    directory.register_worker("Anita", "CAD", worker_id="w-1")
    entry, _ = tracking.open_entry("o1", "CAD", T0)
    entry = resolver.resolve(entry, T0).entry

    again = resolver.resolve(entry, T0)

    assert again.outcome is ResolutionOutcome.ALREADY_ASSIGNED
    assert again.worker.id == "w-1"
    assert tracking.workload("w-1") == 1


def test_assign_from_queue_keeps_front_until_worker_free(parts):
    tracking, queue, directory, resolver = parts
    entry, _ = tracking.open_entry("o1", "CAD", T0)
    resolver.resolve(entry, T0)

    assert resolver.assign_from_queue("CAD", "o1", T0).outcome is ResolutionOutcome.QUEUED
    assert queue.position_of("CAD", "o1") == 0

    directory.register_worker("Anita", "CAD", worker_id="w-1")
    resolution = resolver.assign_from_queue("CAD", "o1", T0)

    assert resolution.outcome is ResolutionOutcome.ASSIGNED
    assert queue.length("CAD") == 0
    assert tracking.get(entry.id).assigned_worker_id == "w-1"


def test_assign_from_queue_drops_stale_front(parts):
    tracking, queue, _, resolver = parts
    queue.enqueue("CAD", "ghost", T0)

    resolution = resolver.assign_from_queue("CAD", "ghost", T0)

    assert resolution.outcome is ResolutionOutcome.SKIPPED
    assert queue.length("CAD") == 0
    assert resolver.assign_from_queue("CAD", "other", T0).outcome is ResolutionOutcome.SKIPPED


def test_forced_assignment_requires_pending_entry(parts):
    tracking, queue, _, resolver = parts
    worker = WorkerAvailability(id="w-9", name="Floater", current_workload=0)
    entry, _ = tracking.open_entry("o1", "CAD", T0)
    resolver.resolve(entry, T0)

    entry = resolver.assign_worker(tracking.get(entry.id), worker, T0).entry
    assert queue.length("CAD") == 0

    with pytest.raises(InvalidStatusTransitionError) as excinfo:
        resolver.assign_worker(entry, worker, T0)
    assert excinfo.value.code is ErrorCode.ALREADY_STARTED


def test_custom_policy_is_used(parts):
    tracking, queue, directory, _ = parts

    class HighestIdPolicy:
        def select(self, candidates):
            return max(candidates, key=lambda worker: worker.id, default=None)

    resolver = AssignmentResolver(tracking, queue, directory, HighestIdPolicy())
    directory.register_worker("A", "CAD", worker_id="w-1")
    directory.register_worker("B", "CAD", worker_id="w-2")
    entry, _ = tracking.open_entry("o1", "CAD", T0)

    assert resolver.resolve(entry, T0).worker.id == "w-2"
