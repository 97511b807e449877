"""Environment-driven settings and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .catalog import DepartmentCatalog
from .events import DEFAULT_EVENT_HISTORY
from .workers import DEFAULT_MAX_WORKLOAD

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            "Ignoring %s=%r, expected an integer", name, raw
        )
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(slots=True)
class WorkflowSettings:
    database_path: str = "workflow.sqlite3"
    department_ids: List[str] = field(default_factory=list)
    max_workload: int = DEFAULT_MAX_WORKLOAD
    event_history: int = DEFAULT_EVENT_HISTORY
    log_level: str = "INFO"
    seed_demo_data: bool = False
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "WorkflowSettings":
        return cls(
            database_path=os.getenv("WORKFLOW_DATABASE_PATH") or "workflow.sqlite3",
            department_ids=_env_list("WORKFLOW_DEPARTMENTS"),
            max_workload=max(_env_int("WORKFLOW_MAX_WORKLOAD", DEFAULT_MAX_WORKLOAD), 0),
            event_history=max(_env_int("WORKFLOW_EVENT_HISTORY", DEFAULT_EVENT_HISTORY), 1),
            log_level=(os.getenv("WORKFLOW_LOG_LEVEL") or "INFO").upper(),
            seed_demo_data=_env_bool("WORKFLOW_SEED_DEMO_DATA"),
            cors_origins=_env_list("API_CORS_ORIGINS") or list(DEFAULT_CORS_ORIGINS),
            host=os.getenv("WORKFLOW_HOST") or "0.0.0.0",
            port=_env_int("WORKFLOW_PORT", 8000),
        )

    def build_catalog(self) -> DepartmentCatalog:
        if self.department_ids:
            return DepartmentCatalog.from_ids(self.department_ids)
        return DepartmentCatalog.default()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


__all__ = ["WorkflowSettings", "configure_logging", "LOG_FORMAT"]
