from datetime import datetime, timezone

from factory_workflow.queues import DepartmentQueue

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _positions(queue, department_id):
    return [(entry.order_id, entry.queue_position) for entry in queue.entries(department_id)]


def test_enqueue_is_fifo_and_idempotent():
    queue = DepartmentQueue()
    queue.enqueue("CASTING", "o1", T0)
    queue.enqueue("CASTING", "o2", T0)
    again = queue.enqueue("CASTING", "o1", T0)

    assert again.queue_position == 0
    assert _positions(queue, "CASTING") == [("o1", 0), ("o2", 1)]
    assert queue.peek_front("CASTING").order_id == "o1"


def test_removal_keeps_positions_dense():
    queue = DepartmentQueue()
    for order_id in ("o1", "o2", "o3", "o4"):
        queue.enqueue("CASTING", order_id, T0)

    assert queue.remove("CASTING", "o2") is True
    assert queue.remove("CASTING", "missing") is False
    assert _positions(queue, "CASTING") == [("o1", 0), ("o3", 1), ("o4", 2)]

    front = queue.dequeue_front("CASTING")
    assert front.order_id == "o1"
    assert _positions(queue, "CASTING") == [("o3", 0), ("o4", 1)]

    queue.enqueue("CASTING", "o5", T0)
    assert [position for _, position in _positions(queue, "CASTING")] == [0, 1, 2]


def test_departments_are_independent():
    queue = DepartmentQueue()
    queue.enqueue("CAD", "o1", T0)
    queue.enqueue("PRINT", "o1", T0)
    queue.enqueue("PRINT", "o2", T0)

    assert queue.length("CAD") == 1
    assert queue.position_of("PRINT", "o2") == 1
    assert sorted(queue.departments_for("o1")) == ["CAD", "PRINT"]
    assert queue.dequeue_front("POLISH_2") is None


def test_restore_puts_an_order_back_in_its_old_place():
    queue = DepartmentQueue()
    for order_id in ("o1", "o2", "o3"):
        queue.enqueue("CAD", order_id, T0)
    saved = queue.entries_for_order("o2")

    queue.remove("CAD", "o2")
    queue.enqueue("CASTING", "o2", T0)
    queue.restore("o2", saved)

    assert _positions(queue, "CAD") == [("o1", 0), ("o2", 1), ("o3", 2)]
    assert queue.length("CASTING") == 0

    queue.restore("o2", [])
    assert _positions(queue, "CAD") == [("o1", 0), ("o3", 1)]
