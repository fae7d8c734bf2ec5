import os

# Must be set before anything under app/ builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401  registers the tables on Base.metadata
from app.core.security import create_access_token, get_password_hash
from app.db.database import Base, SessionLocal, engine
from app.main import app
from app.models.user import User, UserRole

PASSWORD = "secret123"
# bcrypt is deliberately slow; hash once for the whole run
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, username, *, role=UserRole.EMPLOYEE, department="Engineering", band="B2",
              manager=None, business_unit="Platform", is_active=True):
    user = User(
        username=username,
        hashed_password=PASSWORD_HASH,
        name=username.title(),
        email=f"{username}@acme-corp.com",
        role=role,
        is_active=is_active,
        department=department,
        designation=f"{role.value.title()}",
        branch="Pune",
        e_code=f"E{username.upper()}",
        band=band,
        business_unit=business_unit,
        manager_id=manager.id if manager is not None else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def org(db):
    """A small company.

    ids in creation order: admin=1, fiona=2, manoj=3, emma=4, dina=5, sam=6.
    emma reports to manoj; nobody else has a manager. sam's department has
    no approvers at all.
    """
    admin = make_user(db, "admin", role=UserRole.ADMIN, department="Administration",
                      band="B5", business_unit="Corporate")
    fiona = make_user(db, "fiona", role=UserRole.FINANCE, department="Finance",
                      band="B4", business_unit="Corporate")
    manoj = make_user(db, "manoj", role=UserRole.MANAGER, band="B3")
    emma = make_user(db, "emma", manager=manoj)
    dina = make_user(db, "dina", role=UserRole.MANAGER, band="B4")
    sam = make_user(db, "sam", department="Sales", business_unit="Field")
    return SimpleNamespace(admin=admin, fiona=fiona, manoj=manoj, emma=emma, dina=dina, sam=sam)


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}
    return _headers


def travel_details(amount=1000.0):
    return {
        "destination": "Mumbai",
        "purpose": "Client workshop",
        "departureDate": "2024-03-04",
        "returnDate": "2024-03-06",
        "travelMode": "flight",
        "travelClass": "economy",
        "advanceAmount": 0,
        "expenses": [
            {"date": "2024-03-04", "category": "airfare", "description": "BOM return", "amount": amount},
        ],
        "checklist": {"receiptsAttached": True, "policyCompliance": True, "detailsAccurate": True},
    }


@pytest.fixture
def submit_claim(client, auth_headers):
    """POST a valid travel claim straight into submitted; returns the response JSON."""
    def _submit(user, amount, **extra):
        body = {
            "type": "travel",
            "status": "submitted",
            "totalAmount": amount,
            "details": travel_details(amount),
        }
        body.update(extra)
        response = client.post("/api/claims", json=body, headers=auth_headers(user))
        assert response.status_code == 201, response.text
        return response.json()
    return _submit
