"""Workflow engine for a jewelry manufacturing floor.

Orders travel through a fixed pipeline of departments (CAD, printing,
casting, polishing, stone setting and so on). The engine assigns a worker
to every stage, queues orders when nobody is free and cascades completed
stages into the next one until the order leaves the factory.
"""

from .assignment import AssignmentResolver, LeastWorkloadPolicy
from .catalog import DepartmentCatalog
from .domain import (
    Department,
    DepartmentStatus,
    Order,
    OrderPriority,
    OrderStatus,
    QueueEntry,
    TrackingEntry,
    Worker,
)
from .errors import ErrorCode, StateConflictError, WorkflowError, WorkflowValidationError
from .services import (
    AssignmentResult,
    BulkSendToFactoryResult,
    CompletionResult,
    MoveResult,
    WorkflowService,
)
from .workers import InMemoryWorkerDirectory

__all__ = [
    "AssignmentResolver",
    "LeastWorkloadPolicy",
    "DepartmentCatalog",
    "Department",
    "DepartmentStatus",
    "Order",
    "OrderPriority",
    "OrderStatus",
    "QueueEntry",
    "TrackingEntry",
    "Worker",
    "ErrorCode",
    "StateConflictError",
    "WorkflowError",
    "WorkflowValidationError",
    "AssignmentResult",
    "BulkSendToFactoryResult",
    "CompletionResult",
    "MoveResult",
    "WorkflowService",
    "InMemoryWorkerDirectory",
]
