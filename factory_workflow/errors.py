"""Typed errors raised by the workflow engine."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable reasons a workflow operation was rejected."""

    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    DEPARTMENT_NOT_FOUND = "DEPARTMENT_NOT_FOUND"
    WORKER_NOT_FOUND = "WORKER_NOT_FOUND"
    WORKER_INACTIVE = "WORKER_INACTIVE"
    WORKER_WRONG_DEPARTMENT = "WORKER_WRONG_DEPARTMENT"
    ORDER_NOT_IN_FACTORY = "ORDER_NOT_IN_FACTORY"
    ORDER_NOT_DRAFT = "ORDER_NOT_DRAFT"
    TRACKING_NOT_FOUND = "TRACKING_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    ALREADY_STARTED = "ALREADY_STARTED"
    NOT_STARTED = "NOT_STARTED"
    INVALID_PROGRESS = "INVALID_PROGRESS"
    INVALID_CATALOG = "INVALID_CATALOG"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class WorkflowError(RuntimeError):
    """Base exception for rejected workflow operations."""

    default_code = ErrorCode.INVALID_STATUS_TRANSITION

    def __init__(
        self,
        message: str,
        *,
        code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "details": self.details}


class WorkflowValidationError(WorkflowError):
    """Unknown ids or malformed input. Nothing was changed."""

    default_code = ErrorCode.INVALID_INPUT


class UnknownOrderError(WorkflowValidationError):
    default_code = ErrorCode.ORDER_NOT_FOUND

    def __init__(self, order_id: str) -> None:
        super().__init__(
            f"Order with ID {order_id!r} not found", details={"order_id": order_id}
        )


class UnknownDepartmentError(WorkflowValidationError):
    default_code = ErrorCode.DEPARTMENT_NOT_FOUND

    def __init__(self, department_id: str) -> None:
        super().__init__(
            f"Department {department_id!r} does not exist",
            details={"department_id": department_id},
        )


class UnknownWorkerError(WorkflowValidationError):
    default_code = ErrorCode.WORKER_NOT_FOUND

    def __init__(self, worker_id: str) -> None:
        super().__init__(
            f"Worker {worker_id!r} not found", details={"worker_id": worker_id}
        )


class StateConflictError(WorkflowError):
    """The operation needs a status that does not currently hold."""


class InvalidStatusTransitionError(StateConflictError):
    default_code = ErrorCode.INVALID_STATUS_TRANSITION


__all__ = [
    "ErrorCode",
    "WorkflowError",
    "WorkflowValidationError",
    "UnknownOrderError",
    "UnknownDepartmentError",
    "UnknownWorkerError",
    "StateConflictError",
    "InvalidStatusTransitionError",
]
