# backend/tests/test_reports.py
from datetime import timedelta

from garagehub.core.timeutil import today, utcnow

from conftest import login


def _status_id(client, headers, name):
    rows = client.get("/jobs/statuses", headers=headers).json()
    return next(s["id"] for s in rows if s["name"] == name)


def _paid_invoice(client, headers, job_id):
    q = client.post("/quotes/", headers=headers, json={"job_id": job_id, "title": "Service"}).json()
    client.post(
        f"/quotes/{q['id']}/items",
        headers=headers,
        json={"item_type": "service", "description": "Full service", "quantity": "1", "unit_price": "200"},
    )
    client.post(f"/quotes/{q['id']}/approve", headers=headers, json={"signature": "Carl"})
    inv = client.post(f"/invoices/from-quote/{q['id']}", headers=headers).json()
    r = client.post(
        f"/invoices/{inv['id']}/payments",
        headers=headers,
        json={"amount": inv["total_amount"], "payment_method": "card"},
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_empty_dashboard(client, admin_headers):
    r = client.get("/reports/dashboard", headers=admin_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["active_jobs_count"] == 0
    assert body["completed_jobs_count"] == 0
    assert body["overdue_jobs_count"] == 0
    assert body["overdue_payments_count"] == 0


def test_dashboard_counts(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]

    client.post(f"/jobs/{job_id}/status", headers=admin_headers, json={"status_id": _status_id(client, admin_headers, "In Progress")})
    assert client.get("/reports/dashboard", headers=admin_headers).json()["active_jobs_count"] == 1

    invoice = _paid_invoice(client, admin_headers, job_id)
    assert invoice["status"] == "paid"

    client.post(f"/jobs/{job_id}/status", headers=admin_headers, json={"status_id": _status_id(client, admin_headers, "Completed")})
    body = client.get("/reports/dashboard", headers=admin_headers).json()
    assert body["active_jobs_count"] == 0
    assert body["completed_jobs_count"] == 1
    assert body["current_month_revenue"] == invoice["total_amount"]


def test_overdue_jobs_and_payments(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    past = (utcnow() - timedelta(days=2)).replace(microsecond=0).isoformat()
    client.patch(f"/jobs/{job_id}", headers=admin_headers, json={"estimated_completion": past})

    q = client.post("/quotes/", headers=admin_headers, json={"job_id": job_id, "title": "Clutch"}).json()
    client.post(
        f"/quotes/{q['id']}/items",
        headers=admin_headers,
        json={"item_type": "part", "description": "Clutch kit", "quantity": "1", "unit_price": "500"},
    )
    client.post(f"/quotes/{q['id']}/approve", headers=admin_headers, json={"signature": "Carl"})
    inv = client.post(
        f"/invoices/from-quote/{q['id']}",
        headers=admin_headers,
        json={"issue_date": (today() - timedelta(days=40)).isoformat(), "due_days": 30},
    ).json()

    dash = client.get("/reports/dashboard", headers=admin_headers).json()
    assert dash["overdue_jobs_count"] == 1
    assert dash["overdue_payments_count"] == 1

    overdue = client.get("/reports/overdue", headers=admin_headers).json()
    assert [j["id"] for j in overdue["overdue_jobs"]] == [job_id]
    assert overdue["overdue_jobs"][0]["client_name"] == "Carl Customer"
    assert [i["id"] for i in overdue["overdue_payments"]] == [inv["id"]]

    # finishing the job takes it off the overdue list
    client.post(f"/jobs/{job_id}/status", headers=admin_headers, json={"status_id": _status_id(client, admin_headers, "Completed")})
    assert client.get("/reports/dashboard", headers=admin_headers).json()["overdue_jobs_count"] == 0


def test_revenue_and_job_metrics(client, admin_headers, job_setup):
    _paid_invoice(client, admin_headers, job_setup["job"]["id"])

    rev = client.get("/reports/revenue", headers=admin_headers)
    assert rev.status_code == 200, rev.text
    body = rev.json()
    assert len(body["months"]) == 1
    assert body["months"][0]["invoice_count"] == 1
    assert body["total_outstanding"] in ("0", "0.00")

    jobs = client.get("/reports/jobs", headers=admin_headers).json()
    assert jobs["total_jobs"] == 1
    assert jobs["by_priority"] == {"medium": 1}

    bad = client.get("/reports/revenue?start=2026-02-01&end=2026-01-01", headers=admin_headers)
    assert bad.status_code == 400


def test_technician_has_no_report_access(client, admin_headers):
    r = client.post(
        "/auth/invite",
        headers=admin_headers,
        json={"email": "tech@example.com", "first_name": "Tia", "last_name": "Tech", "role_name": "technician"},
    )
    assert r.status_code == 201, r.text
    tech = login(client, "acme-motors", "tech@example.com", r.json()["temporary_password"])
    assert client.get("/reports/dashboard", headers=tech).status_code == 403
