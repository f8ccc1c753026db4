from conftest import iso
from workshop_api.shared import numbering
from workshop_api.shared.timeutils import utcnow


def transition(client, headers, order_id, status):
    return client.post(f"/service-orders/{order_id}/transition", json={"status": status}, headers=headers)


def test_walk_in_order_is_numbered_and_scheduled(client, headers, customer, vehicle, make_service_order):
    order = make_service_order(
        customerId=customer["id"], vehicleId=vehicle["id"], laborCost=120, partsCost=30, discount=20
    )
    assert order["number"] == f"OS-{utcnow().year}-0001"
    assert order["status"] == "scheduled"
    assert order["totalCost"] == 130
    assert order["customerName"] == "Maria Souza"

    assert make_service_order()["number"] == f"OS-{utcnow().year}-0002"


def test_lifecycle_sets_timestamps(client, headers, make_service_order):
    order = make_service_order()

    started = transition(client, headers, order["id"], "in_progress").json()
    assert started["status"] == "in_progress"
    assert started["startedAt"] is not None
    # Started without a planned date: it begins now
    assert started["appointmentDate"] == started["startedAt"]

    completed = transition(client, headers, order["id"], "completed").json()
    assert completed["status"] == "completed"
    assert completed["completedAt"] is not None


def test_completed_order_cannot_restart(client, headers, make_service_order):
    order = make_service_order()
    transition(client, headers, order["id"], "in_progress")
    transition(client, headers, order["id"], "completed")

    response = transition(client, headers, order["id"], "in_progress")
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"


def test_scheduled_order_cannot_complete_directly(client, headers, make_service_order):
    order = make_service_order()
    assert transition(client, headers, order["id"], "completed").status_code == 409


def test_technician_must_be_a_mechanic(client, headers, make_service_order):
    receptionist = client.post(
        "/users", json={"name": "Ana", "email": "ana@example.com", "role": "receptionist"}, headers=headers
    ).json()
    response = client.post("/service-orders", json={"technicianId": receptionist["id"]}, headers=headers)
    assert response.status_code == 404


def test_scheduled_order_does_not_block_mechanic(client, headers, mechanic, make_service_order):
    make_service_order(technicianId=mechanic["id"], appointmentDate=iso(9), estimatedHours=3)
    response = client.post(
        "/appointments", json={"date": iso(10), "assignedToId": mechanic["id"]}, headers=headers
    )
    assert response.status_code == 201


def test_list_filters_by_status(client, headers, make_service_order):
    first = make_service_order()
    make_service_order()
    transition(client, headers, first["id"], "cancelled")

    body = client.get("/service-orders", params={"status": "cancelled"}, headers=headers).json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == first["id"]


def test_invalid_amounts_rejected(client, headers):
    response = client.post("/service-orders", json={"laborCost": -5}, headers=headers)
    assert response.status_code == 422


def test_number_taken_concurrently_is_retried(client, headers, make_service_order, monkeypatch):
    first = make_service_order()
    real_next_number = numbering.next_document_number
    calls = []

    def stale_once(db, model, tenant_id, prefix):
        calls.append(prefix)
        # The first read behaves like a transaction that has not yet seen the committed OS-...-0001
        if len(calls) == 1:
            return first["number"]
        return real_next_number(db, model, tenant_id, prefix)

    monkeypatch.setattr(numbering, "next_document_number", stale_once)

    second = make_service_order()
    assert second["number"] == f"OS-{utcnow().year}-0002"
    assert len(calls) == 2
    assert client.get("/service-orders", headers=headers).json()["total"] == 2
