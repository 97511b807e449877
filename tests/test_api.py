import pytest
from fastapi.testclient import TestClient

from factory_workflow.config import WorkflowSettings
from factory_workflow.web.app import create_app


@pytest.fixture()
def client(tmp_path):
    settings = WorkflowSettings(
        database_path=str(tmp_path / "workflow.sqlite3"),
        department_ids=["CAD", "PRINT", "CASTING"],
    )
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def _create_order(client, reference, **extra):
    response = client.post("/orders", json={"reference": reference, **extra})
    assert response.status_code == 201
    return response.json()["id"]


def _create_worker(client, name, department_id, **extra):
    response = client.post(
        "/workers", json={"name": name, "department_id": department_id, **extra}
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_end_to_end_order_flow(client):
    assert client.get("/").json()["status"] == "ok"
    departments = client.get("/departments").json()
    assert [department["id"] for department in departments] == ["CAD", "PRINT", "CASTING"]

    order_id = _create_order(client, "JO-2401", customer_name="Sharma Jewellers", priority="urgent")

    # no CAD worker yet, so the order waits
    response = client.post("/assignments/send-to-factory", json={"order_ids": [order_id]})
    assert response.status_code == 200
    body = response.json()
    assert body["success_count"] == 1
    assert body["results"][0]["first_assignment"]["queued"] is True

    queue = client.get("/assignments/queue/CAD").json()
    assert queue["queue_length"] == 1
    assert queue["queue"][0]["priority"] == "URGENT"

    worker_id = _create_worker(client, "Anita Rao", "CAD")
    processed = client.post("/assignments/queue/CAD/process").json()
    assert processed["assigned"] == 1
    assert processed["assignments"][0]["worker_id"] == worker_id

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/progress", json={"percentage": 70}
    )
    assert response.json()["work_progress"] == 70

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/complete",
        json={"metrics": {"design_hours": 2.5}, "notes": "approved by customer"},
    )
    assert response.status_code == 200
    completion = response.json()
    assert completion["next_department"] == "PRINT"
    assert completion["next_assignment"]["queued"] is True

    timeline = client.get(f"/orders/{order_id}/departments").json()
    assert [visit["department_id"] for visit in timeline["visits"]] == ["CAD", "PRINT"]
    assert timeline["visits"][0]["notes"] == "approved by customer"

    board = client.get("/board").json()
    print_column = next(column for column in board["columns"] if column["department_id"] == "PRINT")
    assert print_column["cards"][0]["status"] == "WAITING"

    events = client.get("/events", params={"limit": 3}).json()
    assert len(events) == 3
    assert events[0]["type"] == "ORDER_QUEUED"


def test_move_reassign_and_hold(client):
    order_id = _create_order(client, "JO-2402")
    anita = _create_worker(client, "Anita Rao", "CAD", worker_id="w-anita")
    vikram = _create_worker(client, "Vikram Shah", "CAD", worker_id="w-vikram")
    client.post(f"/assignments/orders/{order_id}/send-to-factory")

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/reassign", json={"worker_id": vikram}
    )
    assert response.json()["worker_id"] == vikram

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/hold", json={"reason": "stone shortage"}
    )
    assert response.json()["status"] == "ON_HOLD"
    response = client.post(f"/assignments/orders/{order_id}/departments/CAD/resume")
    assert response.json()["status"] == "IN_PROGRESS"

    response = client.post(f"/assignments/orders/{order_id}/departments/CAD/unassign")
    assert response.json()["assignment"]["worker_id"] == anita

    moved = client.post(f"/assignments/orders/{order_id}/move-to/CASTING").json()
    assert moved["changed"] is True
    assert moved["from_department"] == "CAD"
    again = client.post(f"/assignments/orders/{order_id}/move-to/CASTING").json()
    assert again["changed"] is False


def test_self_assign_over_http(client):
    order_id = _create_order(client, "JO-2403")
    client.post(f"/assignments/orders/{order_id}/send-to-factory")
    worker_id = _create_worker(client, "Kavya Nair", "CAD")

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/self-assign",
        json={"worker_id": worker_id},
    )

    assert response.status_code == 200
    assert response.json() == {
        "order_id": order_id,
        "department_id": "CAD",
        "assigned": True,
        "worker_id": worker_id,
    }


def test_error_responses(client):
    response = client.post("/assignments/orders/missing/send-to-factory")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ORDER_NOT_FOUND"

    order_id = _create_order(client, "JO-2404")
    response = client.post(f"/assignments/orders/{order_id}/move-to/SMELTING")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DEPARTMENT_NOT_FOUND"

    response = client.post(f"/assignments/orders/{order_id}/departments/CAD/complete")
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ORDER_NOT_IN_FACTORY"

    client.post(f"/assignments/orders/{order_id}/send-to-factory")
    response = client.post(f"/assignments/orders/{order_id}/send-to-factory")
    assert response.status_code == 409
    assert response.json()["error"]["details"]["status"] == "IN_FACTORY"

    _create_worker(client, "Anita Rao", "CAD")
    client.post("/assignments/queue/CAD/process")
    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/progress", json={"percentage": 150}
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_PROGRESS"

    response = client.post("/orders", json={"reference": "JO-2405", "priority": "whenever"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INVALID_INPUT"

    response = client.post("/workers", json={"name": "Ghost", "department_id": "SMELTING"})
    assert response.status_code == 404


def test_demo_data_is_seeded(tmp_path):
    settings = WorkflowSettings(database_path=str(tmp_path / "demo.sqlite3"), seed_demo_data=True)
    with TestClient(create_app(settings)) as client:
        board = client.get("/board").json()
        cards = sum(column["total_orders"] for column in board["columns"])
        assert cards == 4
        workers = client.get("/workers", params={"department_id": "CASTING"}).json()
        assert len(workers) == 2


def test_complete_with_signer_over_http(client):
    order_id = _create_order(client, "JO-2406")
    anita = _create_worker(client, "Anita Rao", "CAD", worker_id="w-anita")
    vikram = _create_worker(client, "Vikram Shah", "CAD", worker_id="w-vikram")
    client.post(f"/assignments/orders/{order_id}/send-to-factory")

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/complete",
        json={"completed_by": "w-nobody"},
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "WORKER_NOT_FOUND"

    response = client.post(
        f"/assignments/orders/{order_id}/departments/CAD/complete",
        json={"completed_by": vikram},
    )
    assert response.status_code == 200

    visit = client.get(f"/orders/{order_id}/departments").json()["visits"][0]
    assert visit["worker"]["id"] == anita
    assert visit["completed_by"] == {"id": vikram, "name": "Vikram Shah"}
