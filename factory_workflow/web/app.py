"""FastAPI-based JSON interface for the factory workflow engine."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import WorkflowSettings, configure_logging
from ..domain import Order, OrderPriority
from ..errors import ErrorCode, StateConflictError, WorkflowError, WorkflowValidationError
from ..events import InMemoryEventSink
from ..repository import DuplicateRecordError
from ..services import WorkflowService
from ..storage import WorkflowDatabase
from ..workers import InMemoryWorkerDirectory

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {
    ErrorCode.ORDER_NOT_FOUND,
    ErrorCode.DEPARTMENT_NOT_FOUND,
    ErrorCode.WORKER_NOT_FOUND,
}


class OrderCreate(BaseModel):
    reference: str = Field(..., min_length=1)
    customer_name: str = ""
    priority: str = "NORMAL"
    due_date: Optional[date] = None
    notes: str = ""


class WorkerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    department_id: str
    worker_id: Optional[str] = None
    active: bool = True
    max_workload: Optional[int] = Field(default=None, ge=0)


class BulkSendRequest(BaseModel):
    order_ids: List[str] = Field(default_factory=list)


class CompleteRequest(BaseModel):
    metrics: Dict[str, float] = Field(default_factory=dict)
    notes: str = ""
    completed_by: Optional[str] = None


class WorkerRequest(BaseModel):
    worker_id: str


class ProgressRequest(BaseModel):
    percentage: int


class HoldRequest(BaseModel):
    reason: str = Field(..., min_length=1)


def _order_payload(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "reference": order.reference,
        "customer_name": order.customer_name,
        "priority": order.priority.name,
        "due_date": order.due_date,
        "status": order.status.value,
        "current_department_id": order.current_department_id,
        "created_at": order.created_at,
        "sent_to_factory_at": order.sent_to_factory_at,
        "completed_at": order.completed_at,
        "notes": order.notes,
    }


def _status_for(exc: WorkflowError) -> int:
    if isinstance(exc, StateConflictError):
        return 409
    if exc.code in NOT_FOUND_CODES:
        return 404
    return 422


def create_app(
    settings: Optional[WorkflowSettings] = None, *, database_path: Optional[str] = None
) -> FastAPI:
    settings = settings or WorkflowSettings.from_env()
    if database_path is not None:
        settings.database_path = database_path
    configure_logging(settings.log_level)

    database = WorkflowDatabase(settings.database_path)
    directory = InMemoryWorkerDirectory(
        database.workers, default_max_workload=settings.max_workload
    )
    service = WorkflowService(
        catalog=settings.build_catalog(),
        order_repo=database.orders,
        tracking_repo=database.tracking_entries,
        queue_repo=database.queue_entries,
        worker_directory=directory,
        event_sink=InMemoryEventSink(settings.event_history),
    )
    if settings.seed_demo_data:
        ensure_demo_data(service, directory)

    app = FastAPI(title="Jewelry Factory Workflow")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.workflow_service = service
    app.state.worker_directory = directory
    app.state.database = database

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        status_code = _status_for(exc)
        logger.warning(
            "%s %s rejected with %s: %s",
            request.method,
            request.url.path,
            exc.code.value,
            exc.message,
        )
        return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})

    @app.get("/")
    def root() -> Dict[str, Any]:
        return {
            "service": "factory-workflow",
            "status": "ok",
            "departments": len(service.catalog),
        }

    @app.get("/departments")
    def list_departments() -> List[Dict[str, Any]]:
        return [
            {
                "id": department.id,
                "name": department.name,
                "display_name": department.display_name,
                "position": department.position,
                "terminal": department.terminal,
                "color": department.color,
                "queue_length": service.queue.length(department.id),
            }
            for department in service.catalog
        ]

    # ------------------------------------------------------------------
    # Orders and workers
    # ------------------------------------------------------------------
    @app.post("/orders", status_code=201)
    def create_order(payload: OrderCreate) -> Dict[str, Any]:
        try:
            priority = OrderPriority[payload.priority.strip().upper()]
        except KeyError as exc:
            raise WorkflowValidationError(
                f"Unknown priority {payload.priority!r}",
                code=ErrorCode.INVALID_INPUT,
                details={"priority": payload.priority},
            ) from exc
        order = service.register_order(
            payload.reference,
            customer_name=payload.customer_name,
            priority=priority,
            due_date=payload.due_date,
            notes=payload.notes,
        )
        return _order_payload(order)

    @app.get("/orders/{order_id}")
    def get_order(order_id: str) -> Dict[str, Any]:
        return _order_payload(service.get_order(order_id))

    @app.get("/orders/{order_id}/departments")
    def order_timeline(order_id: str):
        return service.get_order_timeline(order_id)

    @app.get("/board")
    def board():
        return service.get_board()

    @app.post("/workers", status_code=201)
    def create_worker(payload: WorkerCreate):
        department = service.catalog.get(payload.department_id)
        try:
            return directory.register_worker(
                payload.name,
                department.id,
                worker_id=payload.worker_id,
                active=payload.active,
                max_workload=payload.max_workload,
            )
        except DuplicateRecordError as exc:
            raise WorkflowValidationError(
                f"Worker {payload.worker_id!r} already exists",
                details={"worker_id": payload.worker_id},
            ) from exc

    @app.get("/workers")
    def list_workers(department_id: Optional[str] = None):
        return directory.list_workers(department_id)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------
    @app.post("/assignments/send-to-factory")
    def send_to_factory(payload: BulkSendRequest):
        return service.send_to_factory(payload.order_ids)

    @app.post("/assignments/orders/{order_id}/send-to-factory")
    def send_order_to_factory(order_id: str):
        return service.send_order_to_factory(order_id)

    @app.post("/assignments/orders/{order_id}/move-to/{department_id}")
    def move_to_department(order_id: str, department_id: str):
        return service.move_to_department(order_id, department_id)

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/complete")
    def complete_department(
        order_id: str, department_id: str, payload: Optional[CompleteRequest] = None
    ):
        payload = payload or CompleteRequest()
        return service.complete_department(
            order_id,
            department_id,
            payload.metrics,
            notes=payload.notes,
            completed_by=payload.completed_by,
        )

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/reassign")
    def reassign_department(order_id: str, department_id: str, payload: WorkerRequest):
        return service.reassign_department(order_id, department_id, payload.worker_id)

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/unassign")
    def unassign_worker(order_id: str, department_id: str):
        return service.unassign_worker(order_id, department_id)

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/self-assign")
    def self_assign(order_id: str, department_id: str, payload: WorkerRequest):
        return service.self_assign(order_id, department_id, payload.worker_id)

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/progress")
    def update_progress(order_id: str, department_id: str, payload: ProgressRequest):
        return service.update_progress(order_id, department_id, payload.percentage)

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/hold")
    def put_on_hold(order_id: str, department_id: str, payload: HoldRequest):
        return service.put_on_hold(order_id, department_id, payload.reason)

    @app.post("/assignments/orders/{order_id}/departments/{department_id}/resume")
    def resume_department(order_id: str, department_id: str):
        return service.resume_department(order_id, department_id)

    @app.get("/assignments/queue/{department_id}")
    def department_queue(department_id: str):
        return service.get_department_queue(department_id)

    @app.post("/assignments/queue/{department_id}/process")
    def process_queue(department_id: str):
        assignments = service.process_waiting_orders(department_id)
        return {
            "department_id": department_id,
            "assigned": len(assignments),
            "assignments": assignments,
        }

    @app.get("/events")
    def recent_events(limit: int = 20):
        return service.recent_events(limit)

    return app


def ensure_demo_data(service: WorkflowService, directory: InMemoryWorkerDirectory) -> None:
    if len(service.orders) > 0:
        return

    crew = {
        "CAD": ["Anita Rao", "Vikram Shah"],
        "PRINT": ["Meera Iyer"],
        "CASTING": ["Suresh Patel", "Ravi Kumar"],
        "FILLING": ["Kavya Nair"],
        "MEENA": ["Farhan Ali"],
        "POLISH_1": ["Deepa Menon"],
        "SETTING": ["Arjun Verma", "Lakshmi Pillai"],
        "POLISH_2": ["Nikhil Joshi"],
        "ADDITIONAL": ["Pooja Desai"],
    }
    for department in service.catalog:
        for name in crew.get(department.id, []):
            directory.register_worker(name, department.id)

    today = date.today()
    samples = [
        ("JO-2401", "Sharma Jewellers", OrderPriority.URGENT, 5),
        ("JO-2402", "Kapoor & Sons", OrderPriority.HIGH, 9),
        ("JO-2403", "Mehta Gold House", OrderPriority.NORMAL, 14),
        ("JO-2404", "Bansal Diamonds", OrderPriority.NORMAL, 21),
        ("JO-2405", "Rathi Ornaments", OrderPriority.LOW, 30),
    ]
    orders = [
        service.register_order(
            reference,
            customer_name=customer,
            priority=priority,
            due_date=today + timedelta(days=days),
        )
        for reference, customer, priority, days in samples
    ]
    sent = service.send_to_factory([order.id for order in orders[:4]])
    leader = sent.results[0]
    if leader.first_assignment is not None and leader.first_assignment.assigned:
        service.complete_department(
            orders[0].id, service.catalog.first().id, {"design_hours": 3.5}
        )
    logger.info("Seeded demo data: %d workers, %d orders", len(directory.workers), len(orders))


__all__ = ["create_app", "ensure_demo_data"]
