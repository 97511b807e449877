"""Demonstration script walking two orders through the factory."""

from __future__ import annotations

from datetime import date, timedelta
from pprint import pprint

from . import DepartmentCatalog, InMemoryWorkerDirectory, OrderPriority, WorkflowService
from .config import configure_logging


def main() -> None:
    configure_logging("INFO")
    workers = InMemoryWorkerDirectory()
    workflow = WorkflowService(
        catalog=DepartmentCatalog.from_ids(["CAD", "PRINT", "CASTING", "POLISH_2"]),
        worker_directory=workers,
    )

    workers.register_worker("Anita Rao", "CAD", max_workload=1)
    workers.register_worker("Meera Iyer", "PRINT")
    workers.register_worker("Suresh Patel", "CASTING")

    ring = workflow.register_order(
        "JO-2401",
        customer_name="Sharma Jewellers",
        priority=OrderPriority.URGENT,
        due_date=date.today() + timedelta(days=7),
    )
    pendant = workflow.register_order(
        "JO-2402",
        customer_name="Kapoor & Sons",
        due_date=date.today() + timedelta(days=14),
    )

    # Anita takes one order at a time, so the pendant waits in CAD
    sent = workflow.send_to_factory([ring.id, pendant.id])
    for result in sent.results:
        print(f"{result.reference}: {result.message}")

    print("\nCAD queue:")
    pprint(workflow.get_department_queue("CAD"))

    # finishing CAD frees Anita for the pendant and sends the ring to printing
    completion = workflow.complete_department(ring.id, "CAD", {"design_hours": 3.5})
    print(f"\nRing moved to {completion.next_department}")
    if completion.queue_drain_assignment:
        print(f"Waiting order picked up: {completion.queue_drain_assignment.message}")

    workflow.update_progress(ring.id, "PRINT", 60)
    workflow.complete_department(ring.id, "PRINT")

    # nobody polishes yet; move the ring there by hand and add a polisher
    workflow.move_to_department(ring.id, "POLISH_2")
    workers.register_worker("Nikhil Joshi", "POLISH_2")
    workflow.process_waiting_orders("POLISH_2")
    final = workflow.complete_department(ring.id, "POLISH_2")
    print(f"\nRing completed: {final.order_completed}")

    print("\nTimeline of the ring:")
    for visit in workflow.get_order_timeline(ring.id).visits:
        print(
            f"  {visit.department_name:<12} visit {visit.visit} {visit.status:<18}"
            f" worker={visit.worker.name if visit.worker else '-'}"
        )

    print("\nBoard:")
    for column in workflow.get_board().columns:
        print(
            f"  {column.display_name:<12} cards={column.total_orders}"
            f" in_progress={column.in_progress} queue={column.queue_length}"
        )

    print("\nRecent events:")
    for event in workflow.recent_events(5):
        print(f"  {event.type.value}: {event.message}")


if __name__ == "__main__":
    main()
