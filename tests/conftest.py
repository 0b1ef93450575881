# Scrap Desk test suite - shared configuration and fixtures
#
# - In-memory SQLite shared across threads, wiped before every test
# - Local storage backend in a temporary directory
# - Multi-tenant fixtures: two organizations, each with an admin and a staff user
# - Login helpers returning bearer headers

import os
import sys
import tempfile
from datetime import date
from pathlib import Path
from typing import Dict

import pytest

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

STORAGE_DIR = tempfile.mkdtemp(prefix="scrapdesk-test-")
SUPER_ADMIN_EMAIL = "root@scrapdesk.io"
SUPER_ADMIN_PASSWORD = "Root@1234"
PASSWORD = "Passw0rd!"

os.environ.update({
    "DATABASE_URL": "sqlite://",
    "AUTO_CREATE_DB": "true",
    "JWT_SECRET": "test-access-secret",
    "JWT_REFRESH_SECRET": "test-refresh-secret",
    "RATE_LIMIT_ENABLED": "false",
    "STORAGE_PROVIDER": "local",
    "LOCAL_STORAGE_DIR": STORAGE_DIR,
    "SUPER_ADMIN_EMAIL": SUPER_ADMIN_EMAIL,
    "SUPER_ADMIN_PASSWORD": SUPER_ADMIN_PASSWORD,
    "AUDIT_PURGE_INTERVAL": "0",
    "LOG_LEVEL": "WARNING",
})

from fastapi.testclient import TestClient  # noqa: E402

from scrapdesk.db import Base, engine, SessionLocal  # noqa: E402
from scrapdesk.main import app  # noqa: E402
from scrapdesk.services.users import bootstrap_super_admin  # noqa: E402


# =============================================================================
# CORE FIXTURES
# =============================================================================

@pytest.fixture(scope="session")
def client() -> TestClient:
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def clean_db(client: TestClient):
    """Every test starts from an empty database holding only the super admin."""
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    db = SessionLocal()
    try:
        bootstrap_super_admin(db)
    finally:
        db.close()
    client.cookies.clear()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# AUTH HELPERS
# =============================================================================

def login(client: TestClient, email: str, password: str = PASSWORD) -> Dict[str, str]:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def super_headers(client: TestClient) -> Dict[str, str]:
    return login(client, SUPER_ADMIN_EMAIL, SUPER_ADMIN_PASSWORD)


def _create_org(client: TestClient, headers: Dict[str, str], name: str) -> dict:
    response = client.post("/organizations", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _create_admin(client: TestClient, headers: Dict[str, str], org_id: str, email: str) -> dict:
    response = client.post(
        "/users",
        json={"name": "Admin", "email": email, "password": PASSWORD, "organization_id": org_id},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _create_staff(client: TestClient, admin_headers: Dict[str, str], email: str) -> dict:
    response = client.post(
        "/users/create-staff",
        json={"name": "Staff", "email": email, "password": PASSWORD},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _tenant(client: TestClient, super_headers: Dict[str, str], suffix: str) -> dict:
    org = _create_org(client, super_headers, f"Scrapyard {suffix.upper()}")
    admin = _create_admin(client, super_headers, org["id"], f"admin.{suffix}@scrapdesk.io")
    admin_headers = login(client, admin["email"])
    staff = _create_staff(client, admin_headers, f"staff.{suffix}@scrapdesk.io")
    return {
        "org": org,
        "admin": admin,
        "admin_headers": admin_headers,
        "staff": staff,
        "staff_headers": login(client, staff["email"]),
    }


@pytest.fixture
def tenant_a(client: TestClient, super_headers) -> dict:
    return _tenant(client, super_headers, "a")


@pytest.fixture
def tenant_b(client: TestClient, super_headers) -> dict:
    return _tenant(client, super_headers, "b")


# =============================================================================
# PAYLOAD BUILDERS
# =============================================================================

def direct_invoice(**overrides) -> dict:
    payload = {
        "seller_name": "Ravi Kumar",
        "seller_type": "DIRECT",
        "mobile": "9876543210",
        "email": "ravi@example.com",
        "aadhaar_number": "123412341234",
        "pan_number": "ABCDE1234F",
        "lead_source": "WALK_IN",
        "purchase_amount": 50000,
        "purchase_date": date(2024, 5, 1).isoformat(),
        "gst_applicable": True,
        "gst_rate": 18,
        "reverse_charge_applicable": False,
    }
    payload.update(overrides)
    return payload


def mstc_invoice(**overrides) -> dict:
    payload = {
        "seller_name": "MSTC Ltd",
        "seller_type": "MSTC",
        "auction_number": "AUC-77",
        "auction_date": "2024-04-20",
        "source": "e-auction",
        "lot_number": "LOT-9",
        "purchase_amount": 120000,
        "purchase_date": "2024-05-02",
        "gst_applicable": False,
        "reverse_charge_applicable": True,
    }
    payload.update(overrides)
    return payload


_registration_seq = iter(range(1000, 100000))


def vehicle(invoice_id: str, **overrides) -> dict:
    payload = {
        "invoice_id": invoice_id,
        "owner_name": "Ravi Kumar",
        "vehicle_type": "FOUR_WHEELER",
        "make": "Maruti",
        "model": "Swift",
        "variant": "VXI",
        "fuel_type": "PETROL",
        "registration_number": f"KA01AB{next(_registration_seq)}",
        "chassis_number": "MA3EJKD1S00123456",
        "engine_number": "K12MN1234567",
        "color": "White",
        "year_of_manufacture": 2012,
        "vehicle_purchase_date": "2024-05-01",
    }
    payload.update(overrides)
    return payload


def part(**overrides) -> dict:
    payload = {
        "part_name": "Alternator",
        "part_type": "ELECTRICAL",
        "opening_stock": 10,
        "quantity_received": 0,
        "quantity_issued": 0,
        "condition": "USED",
    }
    payload.update(overrides)
    return payload


def create_invoice(client: TestClient, headers: Dict[str, str], payload: dict = None) -> dict:
    response = client.post("/invoice", json=payload or direct_invoice(), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def create_vehicle(client: TestClient, headers: Dict[str, str], invoice_id: str, **overrides) -> dict:
    response = client.post("/invoice/vechile", json=vehicle(invoice_id, **overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def purchased_vehicle(client: TestClient, tenant_a) -> dict:
    """A confirmed invoice with its vehicle in PURCHASED state, owned by tenant A."""
    invoice = create_invoice(client, tenant_a["staff_headers"])
    car = create_vehicle(client, tenant_a["staff_headers"], invoice["id"])
    return {"invoice": invoice, "vehicle": car}


@pytest.fixture
def dismantled_vehicle(client: TestClient, tenant_a, purchased_vehicle) -> dict:
    response = client.post(
        "/inventory",
        json={
            "invoice_id": purchased_vehicle["invoice"]["id"],
            "vehicle_id": purchased_vehicle["vehicle"]["id"],
            "parts": [part(), part(part_name="Door", part_type="BODY", opening_stock=4)],
        },
        headers=tenant_a["staff_headers"],
    )
    assert response.status_code == 201, response.text
    return {**purchased_vehicle, "parts": response.json()}
