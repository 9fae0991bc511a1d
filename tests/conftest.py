import os
import uuid
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import Base, get_db
from app.models.audit_log import AuditLog  # noqa: F401
from app.models.booking import AdminBooking
from app.models.customer_booking import CustomerBooking  # noqa: F401
from app.models.email_log import EmailLog  # noqa: F401
from app.models.setting import Setting  # noqa: F401
from app.models.vehicle import Vehicle
from app.services import email_service


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture(autouse=True)
def dispatched(monkeypatch):
    """Record notification dispatches instead of reaching the broker."""
    calls = {"received": [], "confirmation": []}
    monkeypatch.setattr(email_service, "dispatch_booking_received", lambda ref: calls["received"].append(ref) or True)
    monkeypatch.setattr(email_service, "dispatch_booking_confirmation", lambda bid: calls["confirmation"].append(bid) or True)
    return calls


@pytest.fixture
def make_vehicle(db):
    def _make(vid: int, status: str = "available", price: int = 4000, name: str | None = None) -> Vehicle:
        v = Vehicle(id=vid, name=name or f"Car {vid}", brand="Renault", model="Clio 5", category="Économique",
                    price_per_day=price, status=status)
        db.add(v)
        db.commit()
        return v
    return _make


@pytest.fixture
def make_booking(db):
    def _make(vehicle_id: int, start: date, end: date, status: str = "pending", assigned: int | None = -1,
              reference: str | None = None, client_name: str = "Ahmed Benali", email: str | None = None,
              source: str = "web") -> AdminBooking:
        b = AdminBooking(
            id=str(uuid.uuid4()),
            booking_reference=reference or f"HD-2024-07-{uuid.uuid4().int % 10000:04d}",
            status=status,
            source=source,
            departure_date=start,
            return_date=end,
            rental_days=max(1, (end - start).days),
            vehicle_id=vehicle_id,
            vehicle_name=f"Car {vehicle_id}",
            assigned_vehicle_id=vehicle_id if assigned == -1 else assigned,
            client_name=client_name,
            client_phone="0555123456",
            client_email=email,
            total_price=1000,
            version=1,
        )
        db.add(b)
        db.commit()
        return b
    return _make


@pytest.fixture
def client(session_factory):
    from app.main import app
    from app.api import deps

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[deps.get_session_factory] = lambda: session_factory
    deps.dashboard_sessions.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    deps.dashboard_sessions.clear()


@pytest.fixture
def admin_headers(client):
    r = client.post("/api/v1/auth/login", json={"username": "admin", "password": "happydays"})
    token = r.json()["access_token"]
    r = client.post("/api/v1/auth/verify-pin", json={"pin": "0000"}, headers={"Authorization": f"Bearer {token}"})
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
