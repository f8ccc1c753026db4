def test_tenant_defaults_to_business_hours(client, tenant, headers):
    body = client.get(f"/tenants/{tenant['id']}", headers=headers).json()
    assert body["workStartHour"] == 8
    assert body["workEndHour"] == 18
    assert body["slotIntervalMinutes"] == 30


def test_duplicate_slug(client, make_tenant):
    make_tenant(slug="oficina-centro")
    response = client.post("/tenants", json={"name": "Copy", "slug": "oficina-centro"})
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_record"


def test_invalid_scheduling_settings(client, tenant, headers):
    response = client.patch(
        f"/tenants/{tenant['id']}/scheduling",
        json={"workStartHour": 18, "workEndHour": 8},
        headers=headers,
    )
    assert response.status_code == 422

    response = client.patch(
        f"/tenants/{tenant['id']}/scheduling",
        json={"workStartHour": 8, "workEndHour": 18, "slotIntervalMinutes": 45},
        headers=headers,
    )
    assert response.status_code == 422


def test_tenant_cannot_read_another(client, headers, make_tenant):
    other = make_tenant()
    assert client.get(f"/tenants/{other['id']}", headers=headers).status_code == 404


def test_unknown_tenant_header(client):
    response = client.get("/customers", headers={"X-Tenant-ID": "does-not-exist"})
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_customer_contact_is_normalized(client, headers, customer):
    assert customer["email"] == "maria@example.com"
    assert customer["phone"] == "+5511988887777"


def test_invalid_email_rejected(client, headers):
    response = client.post("/customers", json={"name": "Bad", "email": "not-an-email"}, headers=headers)
    assert response.status_code == 422


def test_customer_vehicles(client, headers, customer, vehicle):
    assert vehicle["plate"] == "ABC1D23"

    detail = client.get(f"/customers/{customer['id']}", headers=headers).json()
    assert [v["id"] for v in detail["vehicles"]] == [vehicle["id"]]

    listed = client.get(f"/customers/{customer['id']}/vehicles", headers=headers).json()
    assert listed[0]["make"] == "Fiat"


def test_customer_search(client, headers, customer):
    client.post("/customers", json={"name": "Carlos Lima"}, headers=headers)
    body = client.get("/customers", params={"search": "maria"}, headers=headers).json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == customer["id"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_mechanics_listing(client, headers, mechanic):
    client.post("/users", json={"name": "Ana", "email": "ana@example.com", "role": "receptionist"}, headers=headers)
    mechanics = client.get("/users", params={"role": "mechanic"}, headers=headers).json()
    assert [m["id"] for m in mechanics] == [mechanic["id"]]


def test_duplicate_user_email(client, headers, mechanic):
    response = client.post(
        "/users", json={"name": "Clone", "email": "mechanic1@example.com", "role": "mechanic"}, headers=headers
    )
    assert response.status_code == 409
