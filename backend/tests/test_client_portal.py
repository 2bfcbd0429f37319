# backend/tests/test_client_portal.py
from garagehub.models import Quote


def _enable_portal(client, headers, client_id, password="portal123"):
    r = client.post(f"/clients/{client_id}/portal-access", headers=headers, json={"password": password})
    assert r.status_code == 200, r.text
    assert r.json()["portal_access"] is True


def _portal_login(client, email="carl@example.com", password="portal123", slug="acme-motors"):
    return client.post("/portal/login", json={"tenant_slug": slug, "email": email, "password": password})


def _quote(client, headers, job_id, send=True):
    q = client.post("/quotes/", headers=headers, json={"job_id": job_id, "title": "Brake pads"}).json()
    client.post(
        f"/quotes/{q['id']}/items",
        headers=headers,
        json={"item_type": "part", "description": "Pads", "quantity": "1", "unit_price": "100"},
    )
    if send:
        client.post(f"/quotes/{q['id']}/send", headers=headers)
    return q


def test_portal_login_requires_access(client, admin_headers, job_setup):
    assert _portal_login(client).status_code == 401

    _enable_portal(client, admin_headers, job_setup["client"]["id"])
    r = _portal_login(client)
    assert r.status_code == 200, r.text
    assert r.json()["client_id"] == job_setup["client"]["id"]

    assert _portal_login(client, password="wrong-pass").status_code == 401
    assert _portal_login(client, slug="no-such-shop").status_code == 400


def test_portal_sees_own_jobs_without_internal_notes(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    r = client.post(f"/jobs/{job_id}/progress", headers=admin_headers, json={"internal_notes": "Customer haggles"})
    assert r.json()["internal_notes"] == "Customer haggles"
    _enable_portal(client, admin_headers, job_setup["client"]["id"])
    headers = {"Authorization": f"Bearer {_portal_login(client).json()['access_token']}"}

    me = client.get("/portal/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "carl@example.com"

    jobs = client.get("/portal/jobs", headers=headers).json()
    assert [j["id"] for j in jobs] == [job_id]
    assert jobs[0]["internal_notes"] is None


def test_portal_lists_only_sent_quotes_and_approves(client, admin_headers, job_setup, db):
    job_id = job_setup["job"]["id"]
    _quote(client, admin_headers, job_id, send=False)
    sent = _quote(client, admin_headers, job_id)
    _enable_portal(client, admin_headers, job_setup["client"]["id"])
    headers = {"Authorization": f"Bearer {_portal_login(client).json()['access_token']}"}

    quotes = client.get("/portal/quotes", headers=headers).json()
    assert [q["id"] for q in quotes] == [sent["id"]]

    blank = client.post(f"/portal/quotes/{sent['id']}/approve", headers=headers, json={"signature": " "})
    assert blank.status_code == 400

    r = client.post(f"/portal/quotes/{sent['id']}/approve", headers=headers, json={"signature": "Carl C."})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"
    assert r.json()["client_approved"] is True
    assert r.json()["client_signature"] == "Carl C."

    row = db.get(Quote, sent["id"])
    assert row.client_ip_address == "testclient"

    job = client.get(f"/jobs/{job_id}", headers=admin_headers).json()
    assert job["quote_approved"] is True


def test_portal_hides_other_clients_quotes(client, admin_headers, job_setup):
    other = client.post(
        "/clients/", headers=admin_headers, json={"first_name": "Olga", "last_name": "Other", "email": "olga@example.com"}
    ).json()
    q = _quote(client, admin_headers, job_setup["job"]["id"])
    _enable_portal(client, admin_headers, other["id"])
    headers = {"Authorization": f"Bearer {_portal_login(client, email='olga@example.com').json()['access_token']}"}

    assert client.get("/portal/quotes", headers=headers).json() == []
    r = client.post(f"/portal/quotes/{q['id']}/approve", headers=headers, json={"signature": "Olga"})
    assert r.status_code == 404


def test_staff_and_client_tokens_do_not_mix(client, admin_headers, job_setup):
    assert client.get("/portal/me", headers=admin_headers).status_code == 401

    _enable_portal(client, admin_headers, job_setup["client"]["id"])
    headers = {"Authorization": f"Bearer {_portal_login(client).json()['access_token']}"}
    assert client.get("/jobs/", headers=headers).status_code == 401


def test_revoked_access_blocks_existing_token(client, admin_headers, job_setup):
    client_id = job_setup["client"]["id"]
    _enable_portal(client, admin_headers, client_id)
    headers = {"Authorization": f"Bearer {_portal_login(client).json()['access_token']}"}

    r = client.delete(f"/clients/{client_id}/portal-access", headers=admin_headers)
    assert r.status_code == 200
    assert client.get("/portal/me", headers=headers).status_code == 401
