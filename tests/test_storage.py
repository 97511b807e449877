import pytest

from factory_workflow.config import WorkflowSettings
from factory_workflow.domain import DepartmentStatus, OrderStatus
from factory_workflow.repository import DuplicateRecordError, RecordNotFoundError
from factory_workflow.services import WorkflowService
from factory_workflow.storage import WorkflowDatabase
from factory_workflow.workers import InMemoryWorkerDirectory


def _service(database, catalog, clock):
    return WorkflowService(
        catalog=catalog,
        order_repo=database.orders,
        tracking_repo=database.tracking_entries,
        queue_repo=database.queue_entries,
        worker_directory=InMemoryWorkerDirectory(database.workers),
        clock=clock,
    )


def test_workflow_state_survives_reopening(tmp_path, catalog, clock):
    path = str(tmp_path / "workflow.sqlite3")
    with WorkflowDatabase(path) as database:
        service = _service(database, catalog, clock)
        service.workers.register_worker("Anita Rao", "CAD", max_workload=1)
        first = service.register_order("JO-0001")
        second = service.register_order("JO-0002")
        service.send_to_factory([first.id, second.id])

    with WorkflowDatabase(path) as database:
        service = _service(database, catalog, clock)
        assert service.get_order(first.id).status is OrderStatus.IN_FACTORY
        assert service.queue.position_of("CAD", second.id) == 0

        service.complete_department(first.id, "CAD")

        entry = service.tracking.current_entry(second.id, "CAD")
        assert entry.status is DepartmentStatus.IN_PROGRESS
        assert service.queue.length("CAD") == 0


def test_sqlite_repository_errors(tmp_path):
    with WorkflowDatabase(str(tmp_path / "errors.sqlite3")) as database:
        with pytest.raises(RecordNotFoundError):
            database.orders.get("missing")
        database.workers.add("w-1", "payload")
        with pytest.raises(DuplicateRecordError):
            database.workers.add("w-1", "payload")
        assert "w-1" in database.workers
        assert len(database.workers) == 1


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("WORKFLOW_DEPARTMENTS", "cad, casting ,polish_2")
    monkeypatch.setenv("WORKFLOW_MAX_WORKLOAD", "3")
    monkeypatch.setenv("WORKFLOW_EVENT_HISTORY", "not-a-number")
    monkeypatch.setenv("WORKFLOW_SEED_DEMO_DATA", "yes")
    monkeypatch.setenv("API_CORS_ORIGINS", "https://factory.example")

    settings = WorkflowSettings.from_env()

    assert settings.build_catalog().ids == ["CAD", "CASTING", "POLISH_2"]
    assert settings.max_workload == 3
    assert settings.event_history == 50
    assert settings.seed_demo_data is True
    assert settings.cors_origins == ["https://factory.example"]


def test_default_settings(monkeypatch):
    for name in ("WORKFLOW_DEPARTMENTS", "WORKFLOW_DATABASE_PATH", "WORKFLOW_PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = WorkflowSettings.from_env()

    assert settings.database_path == "workflow.sqlite3"
    assert settings.port == 8000
    assert settings.build_catalog().first().id == "CAD"
    assert len(settings.build_catalog()) == 9
