"""Pytest fixtures — file-backed SQLite database, fresh for every test."""
import uuid
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from event_approvals.config import settings
from event_approvals.database import Base, get_db
from event_approvals.main import app

# Import all models so they register with Base.metadata
import event_approvals.models  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False, "timeout": 30})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _no_retry_backoff(monkeypatch):
    """Retries stay on, the sleeps between them do not."""
    monkeypatch.setattr(settings, "NOTIFICATION_RETRY_BACKOFF_SECONDS", 0)


@pytest.fixture
def actors(client):
    """One department with a lead, two administrators and a super administrator."""
    department = create_test_department(client)
    return {
        "department": department,
        "lead": create_test_user(client, "Lead", "lead", department["department_id"]),
        "admin": create_test_user(client, "Admin", "admin"),
        "admin2": create_test_user(client, "Second Admin", "admin"),
        "superadmin": create_test_user(client, "Super Admin", "superadmin"),
    }


# ---------------------------------------------------------------------------
# Helpers: create records via the API, return the response JSON
# ---------------------------------------------------------------------------
def auth(user: dict) -> dict:
    """Headers identifying ``user`` as the caller."""
    return {"X-User-Id": user["user_id"]}


def future_date(days: int = 30) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


def create_test_department(client: TestClient, name: str = "Youth Ministry") -> dict:
    """Helper — POST /api/departments and return response JSON."""
    resp = client.post("/api/departments/", json={
        "name": name,
        "lead_name": "Pat Doe",
        "lead_email": "pat@church.org",
        "color": "#336699",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_user(
    client: TestClient,
    name: str = "Test User",
    role: str = "member",
    department_id: str = None,
) -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={
        "name": name,
        "email": f"{uuid.uuid4().hex[:10]}@church.org",
        "role": role,
        "department_id": department_id,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def request_payload(**overrides) -> dict:
    """A request body complete enough to pass submission."""
    payload = {
        "title": "Youth Retreat",
        "event_type": "local",
        "event_date": future_date(),
        "start_time": "09:00",
        "end_time": "17:00",
        "location": "Fellowship Hall",
        "description": "Annual retreat for the youth group.",
        "expected_attendance": 40,
        "budget": "250.00",
    }
    payload.update(overrides)
    return payload


def create_test_request(client: TestClient, lead: dict, **overrides) -> dict:
    """Helper — POST /api/requests as ``lead`` and return the draft JSON."""
    resp = client.post("/api/requests/", json=request_payload(**overrides), headers=auth(lead))
    assert resp.status_code == 201, resp.text
    return resp.json()


def act(client: TestClient, user: dict, request_id: str, action: str, feedback: str = None):
    """Helper — POST one workflow action and return the raw response."""
    body = {"feedback": feedback} if feedback is not None else None
    return client.post(f"/api/requests/{request_id}/{action}", json=body, headers=auth(user))


def advance(client: TestClient, actors: dict, request_id: str, *actions: str) -> dict:
    """Run ``actions`` in order with the role that owns each one; return the last request JSON."""
    owner = {
        "submit": "lead",
        "claim": "admin",
        "forward": "admin",
        "approve": "superadmin",
    }
    data = None
    for action in actions:
        resp = act(client, actors[owner[action]], request_id, action)
        assert resp.status_code == 200, resp.text
        data = resp.json()["request"]
    return data
