import threading
from datetime import datetime

import pytest

from conftest import at, iso
from workshop_api.domain.elevators import service as elevator_service_module
from workshop_api.domain.elevators.service import ElevatorService
from workshop_api.errors import ElevatorUnavailable


def reserve(client, headers, elevator_id, **body):
    return client.post(f"/elevators/{elevator_id}/reserve", json=body, headers=headers)


# ============================================================================
# RECORDS
# ============================================================================


def test_create_elevator_defaults(client, headers):
    response = client.post(
        "/elevators", json={"name": "Main lift", "number": "E-01", "capacity": 3500}, headers=headers
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["status"] == "available"
    assert body["type"] == "hydraulic"


def test_duplicate_number_is_rejected(client, headers, elevator):
    response = client.post("/elevators", json={"name": "Other", "number": elevator["number"]}, headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_record"


def test_same_number_allowed_in_other_tenant(client, elevator, make_tenant):
    other = make_tenant()
    response = client.post(
        "/elevators",
        json={"name": "Their lift", "number": elevator["number"]},
        headers={"X-Tenant-ID": other["id"]},
    )
    assert response.status_code == 201


def test_list_filters_by_status(client, headers, make_elevator):
    make_elevator()
    lift = make_elevator()
    client.patch(f"/elevators/{lift['id']}", json={"status": "maintenance"}, headers=headers)

    body = client.get("/elevators", params={"status": "maintenance"}, headers=headers).json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == lift["id"]


@pytest.mark.parametrize("status", ["occupied", "reserved"])
def test_derived_statuses_cannot_be_set_by_hand(client, headers, elevator, status):
    response = client.patch(f"/elevators/{elevator['id']}", json={"status": status}, headers=headers)
    assert response.status_code == 422
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "available"


def test_leaving_maintenance_restores_reserved(client, headers, elevator):
    reserve(client, headers, elevator["id"], scheduledStart=iso(10))
    client.patch(f"/elevators/{elevator['id']}", json={"status": "maintenance"}, headers=headers)

    response = client.patch(f"/elevators/{elevator['id']}", json={"status": "available"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "reserved"


def test_elevator_in_use_cannot_be_marked_available(client, headers, elevator):
    client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers)

    response = client.patch(f"/elevators/{elevator['id']}", json={"status": "available"}, headers=headers)
    assert response.status_code == 409
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "occupied"


def test_delete_unused_elevator(client, headers, elevator):
    assert client.delete(f"/elevators/{elevator['id']}", headers=headers).status_code == 200
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).status_code == 404


# ============================================================================
# RESERVATIONS
# ============================================================================


def test_overlapping_reservation_is_rejected(client, headers, elevator):
    first = reserve(client, headers, elevator["id"], scheduledStart=iso(10), durationMinutes=60)
    assert first.status_code == 201, first.text
    assert first.json()["status"] == "active"
    assert first.json()["endTime"] == at(11).isoformat()

    second = reserve(client, headers, elevator["id"], scheduledStart=iso(10, 30), durationMinutes=60)
    assert second.status_code == 409
    body = second.json()
    assert body["error"] == "elevator_unavailable"
    assert body["elevatorId"] == elevator["id"]

    # Only the first one exists
    assert reserve(client, headers, elevator["id"], scheduledStart=iso(11), durationMinutes=60).status_code == 201


def test_reservation_marks_elevator_reserved(client, headers, elevator):
    reservation = reserve(client, headers, elevator["id"], scheduledStart=iso(10)).json()
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "reserved"

    response = client.delete(
        f"/elevators/{elevator['id']}/reservations/{reservation['id']}", headers=headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "available"

    again = client.delete(f"/elevators/{elevator['id']}/reservations/{reservation['id']}", headers=headers)
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_transition"


def test_reservation_blocked_by_elevator_appointment(client, headers, elevator):
    client.post(
        "/appointments", json={"date": iso(9), "duration": 120, "elevatorId": elevator["id"]}, headers=headers
    )
    response = reserve(client, headers, elevator["id"], scheduledStart=iso(10), durationMinutes=30)
    assert response.status_code == 409
    assert response.json()["error"] == "elevator_unavailable"


def test_reservation_rejected_during_maintenance(client, headers, elevator):
    client.patch(f"/elevators/{elevator['id']}", json={"status": "maintenance"}, headers=headers)
    response = reserve(client, headers, elevator["id"], scheduledStart=iso(10))
    assert response.status_code == 409


def test_reservation_unknown_vehicle(client, headers, elevator):
    response = reserve(client, headers, elevator["id"], scheduledStart=iso(10), vehicleId="nope")
    assert response.status_code == 404


def test_reservation_unknown_service_order_or_quote(client, headers, elevator):
    for field, entity in (("serviceOrderId", "Service order"), ("quoteId", "Quote")):
        response = reserve(client, headers, elevator["id"], scheduledStart=iso(10), **{field: "nope"})
        assert response.status_code == 404
        assert response.json()["entity"] == entity
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "available"


def test_concurrent_reservations_exactly_one_wins(session_factory, tenant, elevator):
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def attempt(start_hour, start_minute):
        db = session_factory()
        try:
            barrier.wait(timeout=10)
            ElevatorService(db, tenant["id"]).reserve(
                elevator["id"], scheduled_start=at(start_hour, start_minute), duration_minutes=60
            )
            result = "reserved"
        except ElevatorUnavailable:
            result = "unavailable"
        finally:
            db.close()
        with lock:
            outcomes.append(result)

    threads = [
        threading.Thread(target=attempt, args=(10, 0)),
        threading.Thread(target=attempt, args=(10, 30)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes) == ["reserved", "unavailable"]


# ============================================================================
# USAGE
# ============================================================================


def test_start_and_end_usage(client, headers, elevator, vehicle):
    started = client.post(
        f"/elevators/{elevator['id']}/start-usage",
        json={"vehicleId": vehicle["id"], "notes": "Brake job"},
        headers=headers,
    )
    assert started.status_code == 201, started.text
    usage = started.json()
    assert usage["endTime"] is None
    assert usage["vehiclePlate"] == vehicle["plate"]
    assert usage["customerName"] == "Maria Souza"
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "occupied"

    current = client.get(f"/elevators/{elevator['id']}/current-usage", headers=headers).json()
    assert current["id"] == usage["id"]

    ended = client.post(
        f"/elevators/{elevator['id']}/end-usage", json={"notes": "Pads replaced"}, headers=headers
    )
    assert ended.status_code == 200
    body = ended.json()
    assert body["endTime"] is not None
    assert body["durationMinutes"] == 0
    assert body["notes"] == "Brake job\nPads replaced"
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "available"
    assert client.get(f"/elevators/{elevator['id']}/current-usage", headers=headers).json() is None


def test_ending_twice_reports_missing_usage(client, headers, elevator):
    client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers)
    assert client.post(f"/elevators/{elevator['id']}/end-usage", json={}, headers=headers).status_code == 200

    response = client.post(f"/elevators/{elevator['id']}/end-usage", json={}, headers=headers)
    assert response.status_code == 404
    assert response.json()["error"] == "usage_not_found"


def test_ending_a_closed_usage_by_id_reports_missing_usage(client, headers, elevator):
    usage = client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers).json()
    first = client.post(f"/elevators/{elevator['id']}/end-usage", json={"usageId": usage["id"]}, headers=headers)
    assert first.status_code == 200
    ended_at = first.json()["endTime"]

    second = client.post(f"/elevators/{elevator['id']}/end-usage", json={"usageId": usage["id"]}, headers=headers)
    assert second.status_code == 404
    body = second.json()
    assert body["error"] == "usage_not_found"
    assert body["usageId"] == usage["id"]

    history = client.get(f"/elevators/{elevator['id']}/usage-history", headers=headers).json()
    assert history["total"] == 1
    assert history["data"][0]["endTime"] == ended_at


def test_concurrent_starts_open_exactly_one_usage(session_factory, tenant, elevator):
    workers = 4
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        db = session_factory()
        try:
            barrier.wait(timeout=10)
            ElevatorService(db, tenant["id"]).start_usage(elevator["id"])
            result = "started"
        except ElevatorUnavailable:
            result = "unavailable"
        finally:
            db.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert sorted(outcomes) == ["started"] + ["unavailable"] * (workers - 1)
    db = session_factory()
    try:
        history, total = ElevatorService(db, tenant["id"]).repo.get_usage_history(db, elevator["id"], 1, 10)
        assert total == 1
        assert history[0].end_time is None
    finally:
        db.close()


def test_second_start_while_open_is_rejected(client, headers, elevator):
    assert client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers).status_code == 201

    response = client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "elevator_unavailable"


def test_open_usage_blocks_delete_and_maintenance(client, headers, elevator):
    client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers)

    assert client.delete(f"/elevators/{elevator['id']}", headers=headers).status_code == 409
    response = client.patch(f"/elevators/{elevator['id']}", json={"status": "maintenance"}, headers=headers)
    assert response.status_code == 409


def test_maintenance_blocks_usage(client, headers, elevator):
    client.patch(f"/elevators/{elevator['id']}", json={"status": "maintenance"}, headers=headers)
    response = client.post(f"/elevators/{elevator['id']}/start-usage", json={}, headers=headers)
    assert response.status_code == 409


def test_reservation_now_only_usable_by_its_job(client, headers, elevator, vehicle, customer):
    other_vehicle = client.post(
        f"/customers/{customer['id']}/vehicles",
        json={"plate": "XYZ9876", "make": "VW", "model": "Gol"},
        headers=headers,
    ).json()
    reservation = reserve(client, headers, elevator["id"], vehicleId=vehicle["id"]).json()

    blocked = client.post(
        f"/elevators/{elevator['id']}/start-usage", json={"vehicleId": other_vehicle["id"]}, headers=headers
    )
    assert blocked.status_code == 409
    assert blocked.json()["reservationId"] == reservation["id"]

    allowed = client.post(
        f"/elevators/{elevator['id']}/start-usage", json={"vehicleId": vehicle["id"]}, headers=headers
    )
    assert allowed.status_code == 201


def test_usage_duration_is_floored_to_whole_minutes(session_factory, tenant, elevator, monkeypatch):
    moments = iter([datetime(2030, 1, 2, 10, 0, 0), datetime(2030, 1, 2, 10, 5, 59)])
    monkeypatch.setattr(elevator_service_module, "utcnow", lambda: next(moments))

    db = session_factory()
    try:
        service = ElevatorService(db, tenant["id"])
        usage = service.start_usage(elevator["id"])
        ended = service.end_usage(elevator["id"], usage.id)
        assert ended.duration_minutes == 5
        assert ended.end_time == datetime(2030, 1, 2, 10, 5, 59)
    finally:
        db.close()


def test_usage_history_and_status_overview(client, headers, make_elevator):
    busy, idle = make_elevator(), make_elevator()
    for _ in range(2):
        client.post(f"/elevators/{busy['id']}/start-usage", json={}, headers=headers)
        client.post(f"/elevators/{busy['id']}/end-usage", json={}, headers=headers)
    client.post(f"/elevators/{busy['id']}/start-usage", json={}, headers=headers)

    history = client.get(f"/elevators/{busy['id']}/usage-history", headers=headers).json()
    assert history["total"] == 3
    assert history["data"][0]["endTime"] is None

    overview = {e["id"]: e for e in client.get("/elevators/status/overview", headers=headers).json()}
    assert overview[busy["id"]]["status"] == "occupied"
    assert overview[busy["id"]]["currentUsage"] is not None
    assert overview[idle["id"]]["currentUsage"] is None
