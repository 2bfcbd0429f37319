# backend/tests/conftest.py
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from garagehub.main import app
from garagehub.api import deps as app_deps
from garagehub.models import Base

# -----------------------------
# Test DB: separate SQLite file
# -----------------------------
TEST_DB_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "test_garagehub.db"))
TEST_DB_URL = f"sqlite:///{TEST_DB_PATH}"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[app_deps.get_db] = override_get_db


# -----------------------------
# Fixtures
# -----------------------------
@pytest.fixture(scope="session", autouse=True)
def _test_db_file():
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)
    yield
    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def signup(client, company="Acme Motors", email="owner@example.com", password="secret123"):
    r = client.post(
        "/auth/signup",
        json={
            "company_name": company,
            "email": email,
            "password": password,
            "first_name": "Olive",
            "last_name": "Owner",
        },
    )
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def login(client, tenant_slug, email, password):
    r = client.post("/auth/login", json={"tenant_slug": tenant_slug, "email": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return signup(client)


@pytest.fixture
def job_setup(client, admin_headers):
    """Client + vehicle + job inside the admin's tenant."""
    c = client.post(
        "/clients/",
        headers=admin_headers,
        json={"first_name": "Carl", "last_name": "Customer", "email": "carl@example.com"},
    )
    assert c.status_code == 201, c.text
    v = client.post(
        "/vehicles/",
        headers=admin_headers,
        json={"client_id": c.json()["id"], "make": "Toyota", "model": "Hilux", "year": 2019, "license_plate": "CA 123"},
    )
    assert v.status_code == 201, v.text
    j = client.post(
        "/jobs/",
        headers=admin_headers,
        json={
            "client_id": c.json()["id"],
            "vehicle_id": v.json()["id"],
            "title": "Brake service",
            "description": "Front pads squealing",
        },
    )
    assert j.status_code == 201, j.text
    return {"client": c.json(), "vehicle": v.json(), "job": j.json()}
