# backend/tests/test_super_admin.py
import pytest

from garagehub.models import Tenant
from garagehub.services.tenants import PLATFORM_TENANT_SLUG, ensure_super_admin

from conftest import login


@pytest.fixture
def root_headers(client, db):
    ensure_super_admin(db, "Ops@Example.com", "rootpass1")
    db.commit()
    return login(client, PLATFORM_TENANT_SLUG, "ops@example.com", "rootpass1")


def _new_tenant(client, headers, subdomain="north-garage", **overrides):
    payload = {
        "name": "North Garage",
        "subdomain": subdomain,
        "subscription_tier": "professional",
        "admin_email": "boss@example.com",
        "admin_first_name": "Nora",
        "admin_last_name": "North",
    }
    payload.update(overrides)
    return client.post("/super-admin/tenants", headers=headers, json=payload)


def test_ensure_super_admin_is_idempotent(client, db):
    first = ensure_super_admin(db, "ops@example.com", "rootpass1")
    second = ensure_super_admin(db, "ops@example.com", "newpass22")
    db.commit()
    assert first.id == second.id
    login(client, PLATFORM_TENANT_SLUG, "ops@example.com", "newpass22")


def test_create_tenant_with_admin(client, root_headers):
    r = _new_tenant(client, root_headers, subdomain="North-Garage")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["tenant"]["slug"] == "north-garage"
    assert body["tenant"]["status"] == "active"
    assert body["admin_email"] == "boss@example.com"

    admin = login(client, "north-garage", "boss@example.com", body["temporary_password"])
    statuses = client.get("/jobs/statuses", headers=admin)
    assert statuses.status_code == 200
    assert len(statuses.json()) > 0

    dup = _new_tenant(client, root_headers)
    assert dup.status_code == 409
    assert dup.json()["detail"] == "Subdomain already taken"


def test_subdomain_must_be_slug_safe(client, root_headers):
    assert _new_tenant(client, root_headers, subdomain="north garage!").status_code == 422


def test_tenant_admin_cannot_use_super_admin_endpoints(client, admin_headers):
    assert _new_tenant(client, admin_headers).status_code == 403
    assert client.get("/super-admin/tenants", headers=admin_headers).status_code == 403
    assert client.get("/super-admin/analytics", headers=admin_headers).status_code == 403


def test_suspending_tenant_blocks_its_users(client, root_headers):
    created = _new_tenant(client, root_headers).json()
    tenant_id = created["tenant"]["id"]
    admin = login(client, "north-garage", "boss@example.com", created["temporary_password"])
    assert client.get("/jobs/", headers=admin).status_code == 200

    r = client.patch(f"/super-admin/tenants/{tenant_id}/status", headers=root_headers, json={"status": "suspended"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "suspended"
    assert client.get("/jobs/", headers=admin).status_code == 403

    suspended = client.get("/super-admin/tenants?status=suspended", headers=root_headers).json()
    assert [t["id"] for t in suspended] == [tenant_id]

    bad = client.patch(f"/super-admin/tenants/{tenant_id}/status", headers=root_headers, json={"status": "paused"})
    assert bad.status_code == 422


def test_branding_by_own_admin_only(client, root_headers, admin_headers):
    me = client.get("/auth/me", headers=admin_headers).json()
    own_id = me["tenant_id"]
    brand = {"company_name": "Acme Motors", "primary_color": "#112233", "logo_url": "https://example.com/logo.png"}

    r = client.put(f"/super-admin/tenants/{own_id}/branding", headers=admin_headers, json=brand)
    assert r.status_code == 200, r.text
    assert r.json()["primary_color"] == "#112233"

    brand["primary_color"] = "#445566"
    r = client.put(f"/super-admin/tenants/{own_id}/branding", headers=root_headers, json=brand)
    assert r.status_code == 200
    assert client.get(f"/super-admin/tenants/{own_id}", headers=root_headers).json()["branding"]["primary_color"] == "#445566"

    other = _new_tenant(client, root_headers).json()["tenant"]["id"]
    r = client.put(f"/super-admin/tenants/{other}/branding", headers=admin_headers, json=brand)
    assert r.status_code == 403


def test_feature_flags_replace_previous(client, root_headers):
    tenant_id = _new_tenant(client, root_headers).json()["tenant"]["id"]
    r = client.put(f"/super-admin/tenants/{tenant_id}/features", headers=root_headers, json={"flags": {"client_portal": True}})
    assert r.status_code == 200, r.text
    r = client.put(
        f"/super-admin/tenants/{tenant_id}/features",
        headers=root_headers,
        json={"flags": {"client_portal": False, "inventory": True}},
    )
    assert r.json()["flags"] == {"client_portal": False, "inventory": True}

    assert client.put("/super-admin/tenants/9999/features", headers=root_headers, json={"flags": {}}).status_code == 404


def test_platform_analytics(client, root_headers, admin_headers, job_setup):
    r = client.get("/super-admin/analytics", headers=root_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    # platform tenant + Acme Motors
    assert body["total_tenants"] == 2
    assert body["active_tenants"] == 2
    assert body["total_jobs"] == 1
    assert body["total_revenue"] == 0

    tenant_id = client.get("/auth/me", headers=admin_headers).json()["tenant_id"]
    scoped = client.get(f"/super-admin/analytics?tenant_id={tenant_id}", headers=root_headers).json()
    assert scoped["total_tenants"] == 1
    assert scoped["active_users"] == 1


def test_platform_and_dash_subdomains_refused(client, root_headers):
    reserved = _new_tenant(client, root_headers, subdomain="platform")
    assert reserved.status_code == 400
    assert reserved.json()["detail"] == "Tenant slug is reserved"

    dashes = _new_tenant(client, root_headers, subdomain="---")
    assert dashes.status_code == 400


def test_bootstrap_keeps_super_admin_out_of_shops(client, db):
    r = client.post(
        "/auth/signup",
        json={"company_name": "Platform", "email": "shop@example.com", "password": "secret123", "first_name": "Sam", "last_name": "Shop"},
    )
    assert r.status_code == 400

    user = ensure_super_admin(db, "ops@example.com", "rootpass1")
    db.commit()
    tenant = db.get(Tenant, user.tenant_id)
    assert tenant.slug == PLATFORM_TENANT_SLUG
    assert tenant.name == "Platform"
