import pytest

from conftest import at, iso
from workshop_api.shared.timeutils import utcnow


def create_quote(client, headers, **body):
    response = client.post("/quotes", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def advance_to_awaiting_approval(client, headers, quote_id, hours=2):
    client.post(f"/quotes/{quote_id}/send-for-diagnosis", headers=headers)
    client.post(
        f"/quotes/{quote_id}/complete-diagnosis",
        json={"identifiedProblemDescription": "Worn brake pads", "estimatedHours": hours},
        headers=headers,
    )
    response = client.post(f"/quotes/{quote_id}/send", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_new_quote_is_numbered_draft(client, headers, customer):
    year = utcnow().year
    first = create_quote(client, headers, customerId=customer["id"], laborCost=100, partsCost=50.5, discount=10)
    second = create_quote(client, headers)

    assert first["status"] == "draft"
    assert first["number"] == f"ORC-{year}-0001"
    assert second["number"] == f"ORC-{year}-0002"
    assert first["totalCost"] == 140.5
    assert first["customerName"] == "Maria Souza"


def test_approving_a_draft_is_rejected(client, headers):
    quote = create_quote(client, headers)

    response = client.post(f"/quotes/{quote['id']}/approve", json={}, headers=headers)
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "invalid_transition"
    assert body["currentStatus"] == "draft"
    assert body["requestedStatus"] == "approved"
    assert client.get(f"/quotes/{quote['id']}", headers=headers).json()["status"] == "draft"


def test_full_workflow_ends_in_service_order(client, headers, customer, vehicle, mechanic, elevator):
    quote = create_quote(
        client, headers, customerId=customer["id"], vehicleId=vehicle["id"], reportedProblem="Squeaking brakes"
    )
    quote_id = quote["id"]

    assert client.post(f"/quotes/{quote_id}/send-for-diagnosis", headers=headers).json()["status"] == "pending_diagnosis"

    assigned = client.post(
        f"/quotes/{quote_id}/assign-mechanic", json={"mechanicId": mechanic["id"]}, headers=headers
    ).json()
    assert assigned["assignedMechanicName"] == "Joao"
    assert assigned["status"] == "pending_diagnosis"

    diagnosed = client.post(
        f"/quotes/{quote_id}/complete-diagnosis",
        json={
            "identifiedProblemDescription": "Worn brake pads",
            "recommendations": "Replace front pads",
            "estimatedHours": 1.5,
            "laborCost": 200,
            "partsCost": 80,
        },
        headers=headers,
    ).json()
    assert diagnosed["status"] == "diagnosis_complete"
    assert diagnosed["totalCost"] == 280

    sent = client.post(f"/quotes/{quote_id}/send", headers=headers).json()
    assert sent["status"] == "awaiting_approval"
    assert sent["sentAt"] is not None

    approved = client.post(
        f"/quotes/{quote_id}/approve",
        json={"customerSignature": "M. Souza", "elevatorId": elevator["id"], "scheduledStart": iso(9)},
        headers=headers,
    )
    assert approved.status_code == 200, approved.text
    approved = approved.json()
    assert approved["status"] == "approved"
    assert approved["elevatorId"] == elevator["id"]
    assert approved["reservationId"] is not None

    # 1.5 hours of work keep the elevator until 10:30
    blocked = client.post(
        f"/elevators/{elevator['id']}/reserve",
        json={"scheduledStart": iso(10), "durationMinutes": 15},
        headers=headers,
    )
    assert blocked.status_code == 409

    converted = client.post(f"/quotes/{quote_id}/convert", headers=headers)
    assert converted.status_code == 201, converted.text
    order = converted.json()
    assert order["number"] == f"OS-{utcnow().year}-0001"
    assert order["status"] == "scheduled"
    assert order["quoteId"] == quote_id
    assert order["technicianId"] == mechanic["id"]
    assert order["appointmentDate"] == at(9).isoformat()
    assert order["totalCost"] == 280

    final = client.get(f"/quotes/{quote_id}", headers=headers).json()
    assert final["status"] == "converted"
    assert final["serviceOrderId"] == order["id"]

    again = client.post(f"/quotes/{quote_id}/convert", headers=headers)
    assert again.status_code == 409


def test_approval_with_busy_elevator_changes_nothing(client, headers, elevator):
    client.post(
        f"/elevators/{elevator['id']}/reserve",
        json={"scheduledStart": iso(10), "durationMinutes": 60},
        headers=headers,
    )
    quote = create_quote(client, headers)
    advance_to_awaiting_approval(client, headers, quote["id"], hours=2)

    response = client.post(
        f"/quotes/{quote['id']}/approve",
        json={"elevatorId": elevator["id"], "scheduledStart": iso(9)},
        headers=headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "elevator_unavailable"

    current = client.get(f"/quotes/{quote['id']}", headers=headers).json()
    assert current["status"] == "awaiting_approval"
    assert current["reservationId"] is None
    assert current["approvedAt"] is None


def test_reject_is_final(client, headers):
    quote = create_quote(client, headers)
    advance_to_awaiting_approval(client, headers, quote["id"])

    rejected = client.post(f"/quotes/{quote['id']}/reject", json={"reason": "Too expensive"}, headers=headers)
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["rejectionReason"] == "Too expensive"

    assert client.post(f"/quotes/{quote['id']}/approve", json={}, headers=headers).status_code == 409


@pytest.mark.parametrize("hours", [0.2, 25])
def test_estimated_hours_must_be_in_range(client, headers, hours):
    quote = create_quote(client, headers)
    client.post(f"/quotes/{quote['id']}/send-for-diagnosis", headers=headers)

    response = client.post(
        f"/quotes/{quote['id']}/complete-diagnosis",
        json={"identifiedProblemDescription": "Leak", "estimatedHours": hours},
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_mechanic_cannot_be_assigned_after_diagnosis(client, headers, mechanic):
    quote = create_quote(client, headers)
    advance_to_awaiting_approval(client, headers, quote["id"])

    response = client.post(
        f"/quotes/{quote['id']}/assign-mechanic", json={"mechanicId": mechanic["id"]}, headers=headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"


def test_update_only_while_editable(client, headers):
    quote = create_quote(client, headers, laborCost=100)
    updated = client.patch(f"/quotes/{quote['id']}", json={"discount": 25}, headers=headers).json()
    assert updated["totalCost"] == 75

    advance_to_awaiting_approval(client, headers, quote["id"])
    response = client.patch(f"/quotes/{quote['id']}", json={"discount": 5}, headers=headers)
    assert response.status_code == 409


def test_money_with_three_decimals_is_rejected(client, headers):
    response = client.post("/quotes", json={"laborCost": 10.125}, headers=headers)
    assert response.status_code == 422


def test_non_finite_labor_cost_is_rejected(client, headers):
    response = client.post(
        "/quotes", content='{"laborCost": NaN}', headers={**headers, "Content-Type": "application/json"}
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_vehicle_of_another_customer_is_rejected(client, headers, vehicle):
    other = client.post("/customers", json={"name": "Pedro"}, headers=headers).json()
    response = client.post("/quotes", json={"customerId": other["id"], "vehicleId": vehicle["id"]}, headers=headers)
    assert response.status_code == 404


def test_delete_releases_reservation_but_not_converted(client, headers, elevator):
    quote = create_quote(client, headers)
    advance_to_awaiting_approval(client, headers, quote["id"])
    client.post(
        f"/quotes/{quote['id']}/approve",
        json={"elevatorId": elevator["id"], "scheduledStart": iso(14)},
        headers=headers,
    )

    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "reserved"
    assert client.delete(f"/quotes/{quote['id']}", headers=headers).status_code == 200
    assert client.get(f"/elevators/{elevator['id']}", headers=headers).json()["status"] == "available"
    # The window is free again
    response = client.post(
        f"/elevators/{elevator['id']}/reserve",
        json={"scheduledStart": iso(14), "durationMinutes": 60},
        headers=headers,
    )
    assert response.status_code == 201

    converted = create_quote(client, headers)
    advance_to_awaiting_approval(client, headers, converted["id"])
    client.post(f"/quotes/{converted['id']}/approve", json={}, headers=headers)
    client.post(f"/quotes/{converted['id']}/convert", headers=headers)

    response = client.delete(f"/quotes/{converted['id']}", headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"


# ============================================================================
# ITEMS
# ============================================================================


@pytest.fixture
def brake_pad(client, headers):
    response = client.post(
        "/parts", json={"name": "Brake pad", "partNumber": "BP-1", "sellPrice": 59.9}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_items_are_priced_into_the_total(client, headers, brake_pad):
    quote = create_quote(
        client,
        headers,
        laborCost=20,
        discount=10,
        items=[
            {"type": "service", "name": "Brake service", "unitCost": 100, "hours": 1.5},
            {"type": "part", "partId": brake_pad["id"], "quantity": 2},
        ],
    )

    service_line, part_line = quote["items"]
    assert service_line["totalCost"] == 100
    assert service_line["hours"] == 1.5
    # A part line defaults to the part's name and sell price
    assert part_line["name"] == "Brake pad"
    assert part_line["unitCost"] == 59.9
    assert part_line["totalCost"] == 119.8
    assert quote["totalCost"] == 229.8


def test_item_part_must_belong_to_tenant(client, headers, make_tenant):
    other = make_tenant()
    foreign = client.post(
        "/parts", json={"name": "Their pad", "sellPrice": 10}, headers={"X-Tenant-ID": other["id"]}
    ).json()

    response = client.post(
        "/quotes", json={"items": [{"type": "part", "partId": foreign["id"]}]}, headers=headers
    )
    assert response.status_code == 404
    assert response.json()["entity"] == "Part"
    assert client.get("/quotes", headers=headers).json()["total"] == 0


@pytest.mark.parametrize(
    "item",
    [
        {"type": "part", "name": "Filter", "unitCost": 10, "hours": 1},
        {"type": "service", "name": "Alignment"},
        {"type": "service", "name": "Alignment", "unitCost": 50, "quantity": 0},
        {"type": "service", "unitCost": 50},
    ],
)
def test_invalid_items_are_rejected(client, headers, item):
    response = client.post("/quotes", json={"items": [item]}, headers=headers)
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_service_item_cannot_reference_a_part(client, headers, brake_pad):
    response = client.post(
        "/quotes",
        json={"items": [{"type": "service", "name": "Fit", "unitCost": 30, "partId": brake_pad["id"]}]},
        headers=headers,
    )
    assert response.status_code == 422


def test_update_replaces_items(client, headers):
    quote = create_quote(client, headers, items=[{"type": "service", "name": "Oil change", "unitCost": 80}])

    updated = client.patch(
        f"/quotes/{quote['id']}",
        json={"items": [{"type": "service", "name": "Full service", "unitCost": 150, "quantity": 2}]},
        headers=headers,
    ).json()
    assert [item["name"] for item in updated["items"]] == ["Full service"]
    assert updated["totalCost"] == 300

    cleared = client.patch(f"/quotes/{quote['id']}", json={"items": []}, headers=headers).json()
    assert cleared["items"] == []
    assert cleared["totalCost"] == 0


def test_diagnosis_hours_default_to_service_items(client, headers):
    quote = create_quote(client, headers)
    client.post(f"/quotes/{quote['id']}/send-for-diagnosis", headers=headers)

    response = client.post(
        f"/quotes/{quote['id']}/complete-diagnosis",
        json={
            "identifiedProblemDescription": "Worn clutch",
            "items": [
                {"type": "service", "name": "Clutch removal", "unitCost": 200, "hours": 2},
                {"type": "service", "name": "Clutch fitting", "unitCost": 150, "hours": 1.5},
            ],
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["estimatedHours"] == 3.5
    assert body["totalCost"] == 350


def test_diagnosis_without_any_hours_is_rejected(client, headers):
    quote = create_quote(client, headers)
    client.post(f"/quotes/{quote['id']}/send-for-diagnosis", headers=headers)

    response = client.post(
        f"/quotes/{quote['id']}/complete-diagnosis",
        json={"identifiedProblemDescription": "Noise", "items": [{"type": "service", "name": "Check", "unitCost": 40}]},
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["field"] == "estimatedHours"
    current = client.get(f"/quotes/{quote['id']}", headers=headers).json()
    assert current["status"] == "pending_diagnosis"
    assert current["items"] == []


def test_convert_carries_items_to_service_order(client, headers, brake_pad):
    quote = create_quote(
        client,
        headers,
        items=[
            {"type": "service", "name": "Brake service", "unitCost": 100, "hours": 1},
            {"type": "part", "partId": brake_pad["id"], "quantity": 4},
        ],
    )
    advance_to_awaiting_approval(client, headers, quote["id"], hours=1)
    client.post(f"/quotes/{quote['id']}/approve", json={}, headers=headers)

    order = client.post(f"/quotes/{quote['id']}/convert", headers=headers).json()
    assert [(item["type"], item["name"], item["quantity"]) for item in order["items"]] == [
        ("service", "Brake service", 1),
        ("part", "Brake pad", 4),
    ]
    assert order["items"][0]["hours"] == 1
    assert order["items"][1]["partId"] == brake_pad["id"]
    assert order["totalCost"] == 339.6

    fetched = client.get(f"/service-orders/{order['id']}", headers=headers).json()
    assert len(fetched["items"]) == 2


def test_deleting_a_part_keeps_the_quote_line(client, headers, brake_pad):
    quote = create_quote(client, headers, items=[{"type": "part", "partId": brake_pad["id"]}])
    assert client.delete(f"/parts/{brake_pad['id']}", headers=headers).status_code == 200

    line = client.get(f"/quotes/{quote['id']}", headers=headers).json()["items"][0]
    assert line["partId"] is None
    assert line["name"] == "Brake pad"
