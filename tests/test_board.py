from factory_workflow.board import WAITING
from factory_workflow.domain import OrderPriority


def _column(board, department_id):
    return next(column for column in board.columns if column.department_id == department_id)


def test_board_groups_orders_by_current_department(service, directory, make_order):
    anita = directory.register_worker("Anita Rao", "CAD", max_workload=1)
    urgent = make_order(priority=OrderPriority.URGENT, customer_name="Sharma Jewellers")
    waiting = make_order()
    draft = make_order()
    service.send_to_factory([urgent.id, waiting.id])

    board = service.get_board()

    assert [column.department_id for column in board.columns] == service.catalog.ids
    cad = _column(board, "CAD")
    assert cad.total_orders == 2
    assert cad.in_progress == 1
    assert cad.waiting == 1
    assert cad.urgent_count == 1
    assert cad.queue_length == 1
    # queued cards come first
    assert [card.order_id for card in cad.cards] == [waiting.id, urgent.id]
    assert cad.cards[0].status == WAITING
    assert cad.cards[0].queue_position == 0
    assert cad.cards[1].assigned_worker.name == anita.name
    assert draft.id not in [card.order_id for column in board.columns for card in column.cards]


def test_completed_orders_leave_the_columns(service, directory, make_order):
    for department in service.catalog:
        directory.register_worker(f"{department.id} worker", department.id)
    order = make_order()
    service.send_order_to_factory(order.id)
    for department_id in service.catalog.ids:
        service.complete_department(order.id, department_id)

    board = service.get_board()

    assert [card.order_id for card in board.completed_orders] == [order.id]
    assert sum(column.total_orders for column in board.columns) == 0


def test_order_timeline_reports_progress(service, directory, clock, make_order):
    directory.register_worker("Anita Rao", "CAD")
    directory.register_worker("Meera Iyer", "PRINT")
    order = make_order()
    service.send_order_to_factory(order.id)
    clock.advance(hours=3)
    service.complete_department(order.id, "CAD", {"design_hours": 3})
    clock.advance(minutes=90)
    service.complete_department(order.id, "PRINT")

    timeline = service.get_order_timeline(order.id)

    assert [visit.department_id for visit in timeline.visits] == ["CAD", "PRINT", "CASTING"]
    assert timeline.visits[0].duration_hours == 3.0
    assert timeline.visits[0].worker.name == "Anita Rao"
    assert timeline.visits[0].metrics == {"design_hours": 3.0}
    assert timeline.completed_departments == 2
    assert timeline.total_departments == 4
    assert timeline.completion_percentage == 50
    assert timeline.total_hours == 4.5
    assert timeline.current_department == "CASTING"
