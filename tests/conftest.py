from datetime import datetime, timedelta, timezone

import pytest

from factory_workflow.catalog import DepartmentCatalog
from factory_workflow.services import WorkflowService
from factory_workflow.workers import InMemoryWorkerDirectory


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture()
def directory():
    return InMemoryWorkerDirectory()


@pytest.fixture()
def catalog():
    return DepartmentCatalog.from_ids(["CAD", "PRINT", "CASTING", "POLISH_2"])


@pytest.fixture()
def service(catalog, directory, clock):
    return WorkflowService(catalog=catalog, worker_directory=directory, clock=clock)


@pytest.fixture()
def make_order(service):
    counter = iter(range(1, 1000))

    def _make(**kwargs):
        return service.register_order(f"JO-{next(counter):04d}", **kwargs)

    return _make
