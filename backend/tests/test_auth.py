# backend/tests/test_auth.py
from conftest import login, signup


def test_signup_me_and_login(client):
    headers = signup(client, company="Bay Garage", email="boss@example.com")

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200, me.text
    body = me.json()
    assert body["role"] == "admin"
    assert "job_management" in body["permissions"]
    assert "/jobs" in body["routes"]
    assert "/super-admin" not in body["routes"]

    again = login(client, "bay-garage", "BOSS@example.com", "secret123")
    assert client.get("/auth/me", headers=again).status_code == 200


def test_duplicate_slug_rejected(client):
    signup(client, company="Bay Garage")
    r = client.post(
        "/auth/signup",
        json={
            "company_name": "Bay Garage",
            "email": "other@example.com",
            "password": "secret123",
            "first_name": "O",
            "last_name": "Ther",
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Tenant slug already exists"


def test_bad_credentials(client):
    signup(client)
    r = client.post("/auth/login", json={"tenant_slug": "acme-motors", "email": "owner@example.com", "password": "nope"})
    assert r.status_code == 401
    r = client.post("/auth/login", json={"tenant_slug": "missing", "email": "owner@example.com", "password": "x"})
    assert r.status_code == 400


def test_missing_token_is_401(client):
    assert client.get("/jobs/").status_code == 401
    assert client.get("/jobs/", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_invite_technician_limits_permissions(client, admin_headers):
    r = client.post(
        "/auth/invite",
        headers=admin_headers,
        json={"email": "tech@example.com", "first_name": "Tia", "last_name": "Tech", "role_name": "technician"},
    )
    assert r.status_code == 201, r.text
    temp = r.json()["temporary_password"]
    assert len(temp) == 12

    dup = client.post(
        "/auth/invite",
        headers=admin_headers,
        json={"email": "tech@example.com", "first_name": "Tia", "last_name": "Tech", "role_name": "technician"},
    )
    assert dup.status_code == 409

    tech = login(client, "acme-motors", "tech@example.com", temp)
    assert client.get("/jobs/", headers=tech).status_code == 200
    assert client.get("/invoices/", headers=tech).status_code == 403
    assert client.post("/clients/", headers=tech, json={"first_name": "A", "last_name": "B"}).status_code == 403


def test_deactivated_user_is_blocked(client, admin_headers):
    r = client.post(
        "/auth/invite",
        headers=admin_headers,
        json={"email": "acc@example.com", "first_name": "Ann", "last_name": "Counts", "role_name": "accounts"},
    )
    user_id = r.json()["id"]
    acc = login(client, "acme-motors", "acc@example.com", r.json()["temporary_password"])

    assert client.delete(f"/users/{user_id}", headers=admin_headers).status_code == 204
    assert client.get("/invoices/", headers=acc).status_code == 403


def test_tenant_settings_round_trip(client, admin_headers):
    r = client.get("/settings/", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"default_tax_rate": 15.0, "default_invoice_due_days": 30}

    r = client.put("/settings/", headers=admin_headers, json={"default_tax_rate": 20, "default_invoice_due_days": 14})
    assert r.status_code == 200
    assert r.json() == {"default_tax_rate": 20.0, "default_invoice_due_days": 14}


def test_signup_rejects_reserved_and_blank_slugs(client):
    for company, detail in (("Platform", "Tenant slug is reserved"), ("!!!", "Tenant slug must contain letters or digits")):
        r = client.post(
            "/auth/signup",
            json={"company_name": company, "email": "owner@example.com", "password": "secret123", "first_name": "Olive", "last_name": "Owner"},
        )
        assert r.status_code == 400, company
        assert r.json()["detail"] == detail
