from datetime import date, datetime, time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from workshop_api import models  # noqa: F401
from workshop_api.database import Base, build_engine, get_db
from workshop_api.main import app
from workshop_api.shared.timeutils import utcnow

# A day safely in the future so "no booking in the past" never interferes
FUTURE_DAY = date(utcnow().year + 1, 3, 10)


def at(hour: int, minute: int = 0, day: date = FUTURE_DAY) -> datetime:
    return datetime.combine(day, time(hour, minute))


def iso(hour: int, minute: int = 0, day: date = FUTURE_DAY) -> str:
    """ISO string with explicit UTC designator, as clients send it"""
    return at(hour, minute, day).isoformat() + "Z"


@pytest.fixture
def engine(tmp_path):
    # File-backed so that threads with their own connections share one database
    engine = build_engine(f"sqlite:///{tmp_path / 'workshop_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_tenant(client):
    counter = {"n": 0}

    def _make(**overrides) -> dict:
        counter["n"] += 1
        body = {"name": f"Workshop {counter['n']}", "slug": f"workshop-{counter['n']}"}
        body.update(overrides)
        response = client.post("/tenants", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def tenant(make_tenant):
    return make_tenant()


@pytest.fixture
def headers(tenant):
    return {"X-Tenant-ID": tenant["id"]}


@pytest.fixture
def customer(client, headers):
    response = client.post(
        "/customers",
        json={"name": "Maria Souza", "email": "maria@example.com", "phone": "+55 11 98888-7777"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def vehicle(client, headers, customer):
    response = client.post(
        f"/customers/{customer['id']}/vehicles",
        json={"plate": "ABC-1D23", "make": "Fiat", "model": "Uno", "year": 2015},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def make_mechanic(client, headers):
    counter = {"n": 0}

    def _make(name: str = None) -> dict:
        counter["n"] += 1
        response = client.post(
            "/users",
            json={
                "name": name or f"Mechanic {counter['n']}",
                "email": f"mechanic{counter['n']}@example.com",
                "role": "mechanic",
            },
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def mechanic(make_mechanic):
    return make_mechanic("Joao")


@pytest.fixture
def make_elevator(client, headers):
    counter = {"n": 0}

    def _make(**overrides) -> dict:
        counter["n"] += 1
        body = {"name": f"Lift {counter['n']}", "number": f"E{counter['n']}"}
        body.update(overrides)
        response = client.post("/elevators", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def elevator(make_elevator):
    return make_elevator()


@pytest.fixture
def make_service_order(client, headers):
    def _make(**body) -> dict:
        response = client.post("/service-orders", json=body, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
