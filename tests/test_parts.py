import pytest


def create_part(client, headers, **body):
    response = client.post("/parts", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_fetch_part(client, headers):
    part = create_part(
        client, headers, partNumber="BP-100", name="Brake pad", category="brakes", quantity=8, minQuantity=4,
        costPrice=35.5, sellPrice=59.9,
    )
    assert part["lowStock"] is False

    fetched = client.get(f"/parts/{part['id']}", headers=headers).json()
    assert fetched["partNumber"] == "BP-100"
    assert fetched["sellPrice"] == 59.9


def test_low_stock_filter(client, headers):
    create_part(client, headers, name="Oil filter", quantity=10, minQuantity=5)
    low = create_part(client, headers, name="Spark plug", quantity=1, minQuantity=4)
    create_part(client, headers, name="Wiper", quantity=2, minQuantity=2)

    body = client.get("/parts", params={"lowStock": "true"}, headers=headers).json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == low["id"]
    assert body["data"][0]["lowStock"] is True


def test_search_by_name_or_number(client, headers):
    create_part(client, headers, partNumber="OF-22", name="Oil filter")
    create_part(client, headers, partNumber="AF-10", name="Air filter")
    create_part(client, headers, name="Timing belt")

    assert client.get("/parts", params={"search": "filter"}, headers=headers).json()["total"] == 2
    assert client.get("/parts", params={"search": "OF-22"}, headers=headers).json()["total"] == 1


@pytest.mark.parametrize("price", [10.999, -1])
def test_invalid_prices_are_rejected(client, headers, price):
    response = client.post("/parts", json={"name": "Bolt", "sellPrice": price}, headers=headers)
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
def test_non_finite_prices_are_rejected(client, headers, literal):
    # Sent as raw JSON: these literals are what a lenient client serializer emits
    response = client.post(
        "/parts",
        content=f'{{"name": "Bolt", "costPrice": {literal}}}',
        headers={**headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert client.get("/parts", headers=headers).json()["total"] == 0


def test_negative_quantity_is_rejected(client, headers):
    response = client.post("/parts", json={"name": "Bolt", "quantity": -2}, headers=headers)
    assert response.status_code == 422


def test_duplicate_part_number(client, headers):
    create_part(client, headers, partNumber="BP-100", name="Brake pad")
    response = client.post("/parts", json={"partNumber": "BP-100", "name": "Other pad"}, headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_record"


def test_update_stock_level(client, headers):
    part = create_part(client, headers, name="Coolant", quantity=6, minQuantity=3)
    updated = client.patch(f"/parts/{part['id']}", json={"quantity": 1}, headers=headers).json()
    assert updated["quantity"] == 1
    assert updated["lowStock"] is True
    assert updated["name"] == "Coolant"


def test_delete_part(client, headers):
    part = create_part(client, headers, name="Fuse")
    assert client.delete(f"/parts/{part['id']}", headers=headers).status_code == 200
    assert client.get(f"/parts/{part['id']}", headers=headers).status_code == 404


def test_parts_are_tenant_scoped(client, headers, make_tenant):
    part = create_part(client, headers, name="Fuse")
    other = make_tenant()
    response = client.get(f"/parts/{part['id']}", headers={"X-Tenant-ID": other["id"]})
    assert response.status_code == 404
