# backend/tests/test_quotes_invoices.py
from datetime import date, timedelta
from decimal import Decimal

from conftest import login


def D(x):
    return Decimal(str(x))


def _quote_with_items(client, headers, job_id):
    q = client.post("/quotes/", headers=headers, json={"job_id": job_id, "title": "Brake service quote"})
    assert q.status_code == 201, q.text
    quote_id = q.json()["id"]

    r = client.post(
        f"/quotes/{quote_id}/items",
        headers=headers,
        json={"item_type": "labor", "description": "Fit pads", "hours": "2", "hourly_rate": "80"},
    )
    assert r.status_code == 201, r.text
    r = client.post(
        f"/quotes/{quote_id}/items",
        headers=headers,
        json={"item_type": "part", "description": "Brake pads", "quantity": "2", "unit_price": "45.50"},
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_quote_totals_follow_items(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    assert quote["quote_number"].startswith("QTE-")
    assert quote["status"] == "draft"
    assert D(quote["tax_rate"]) == D("15")
    assert D(quote["subtotal"]) == D("251.00")
    assert D(quote["tax_amount"]) == D("37.65")
    assert D(quote["total_amount"]) == D("288.65")
    assert len(quote["items"]) == 2

    labor = quote["items"][0]
    r = client.delete(f"/quotes/{quote['id']}/items/{labor['id']}", headers=admin_headers)
    assert r.status_code == 200
    after = r.json()
    assert D(after["subtotal"]) == D("91.00")
    assert D(after["total_amount"]) == D(after["subtotal"]) + D(after["tax_amount"])


def test_item_added_after_delete_goes_last(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    labor, pads = quote["items"]
    assert (labor["order_index"], pads["order_index"]) == (0, 1)

    client.delete(f"/quotes/{quote['id']}/items/{labor['id']}", headers=admin_headers)
    r = client.post(
        f"/quotes/{quote['id']}/items",
        headers=admin_headers,
        json={"item_type": "service", "description": "Brake fluid flush", "quantity": "1", "unit_price": "30"},
    )
    assert r.status_code == 201, r.text
    items = r.json()["items"]
    assert [i["description"] for i in items] == ["Brake pads", "Brake fluid flush"]
    assert [i["order_index"] for i in items] == [1, 2]


def test_quote_uses_tenant_tax_rate(client, admin_headers, job_setup):
    client.put("/settings/", headers=admin_headers, json={"default_tax_rate": 10})
    q = client.post("/quotes/", headers=admin_headers, json={"job_id": job_setup["job"]["id"], "title": "Q"})
    assert D(q.json()["tax_rate"]) == D("10")


def test_approval_requires_signature(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    r = client.post(f"/quotes/{quote['id']}/approve", headers=admin_headers, json={"signature": "  "})
    assert r.status_code == 400

    r = client.post(f"/quotes/{quote['id']}/approve", headers=admin_headers, json={"signature": "C. Customer"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "approved"
    assert body["client_approved"] is True
    assert body["client_signature"] == "C. Customer"
    assert body["client_approved_at"] is not None

    job = client.get(f"/jobs/{job_setup['job']['id']}", headers=admin_headers).json()
    assert job["quote_approved"] is True


def test_reject_and_free_status_change(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    r = client.post(f"/quotes/{quote['id']}/reject", headers=admin_headers, json={"reason": "Too pricey"})
    assert r.json()["status"] == "rejected"
    assert r.json()["rejection_reason"] == "Too pricey"

    r = client.post(f"/quotes/{quote['id']}/status", headers=admin_headers, json={"status": "draft"})
    assert r.json()["status"] == "draft"
    assert client.post(f"/quotes/{quote['id']}/status", headers=admin_headers, json={"status": "bogus"}).status_code == 422


def test_invoice_requires_approved_quote(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    r = client.post(f"/invoices/from-quote/{quote['id']}", headers=admin_headers)
    assert r.status_code == 400


def test_invoice_lifecycle(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    client.post(f"/quotes/{quote['id']}/approve", headers=admin_headers, json={"signature": "Carl"})

    r = client.post(f"/invoices/from-quote/{quote['id']}", headers=admin_headers)
    assert r.status_code == 201, r.text
    inv = r.json()
    assert inv["invoice_number"].startswith("INV-")
    assert inv["status"] == "draft"
    assert inv["client_id"] == job_setup["client"]["id"]
    assert D(inv["total_amount"]) == D("288.65")
    assert D(inv["amount_due"]) == D("288.65")
    assert len(inv["items"]) == 2
    assert date.fromisoformat(inv["due_date"]) - date.fromisoformat(inv["issue_date"]) == timedelta(days=30)

    # one invoice per quote
    assert client.post(f"/invoices/from-quote/{quote['id']}", headers=admin_headers).status_code == 409

    assert client.post(f"/invoices/{inv['id']}/send", headers=admin_headers).json()["status"] == "sent"

    assert client.post(f"/invoices/{inv['id']}/payments", headers=admin_headers, json={"amount": "0"}).status_code == 422

    r = client.post(f"/invoices/{inv['id']}/payments", headers=admin_headers, json={"amount": "100", "payment_method": "card"})
    body = r.json()
    assert body["status"] == "partial"
    assert D(body["amount_paid"]) == D("100")
    assert D(body["amount_due"]) == D("188.65")
    assert body["paid_date"] is None

    r = client.post(f"/invoices/{inv['id']}/payments", headers=admin_headers, json={"amount": "200"})
    body = r.json()
    assert body["status"] == "paid"
    assert D(body["amount_due"]) == D("0")
    assert body["paid_date"] is not None

    assert client.post(f"/invoices/{inv['id']}/cancel", headers=admin_headers).status_code == 400


def test_mark_overdue(client, admin_headers, job_setup):
    quote = _quote_with_items(client, admin_headers, job_setup["job"]["id"])
    client.post(f"/quotes/{quote['id']}/approve", headers=admin_headers, json={"signature": "Carl"})
    old_issue = (date.today() - timedelta(days=60)).isoformat()
    inv = client.post(
        f"/invoices/from-quote/{quote['id']}",
        headers=admin_headers,
        json={"issue_date": old_issue, "due_days": 30},
    ).json()

    r = client.post("/invoices/mark-overdue", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["updated"] == 1
    assert client.get(f"/invoices/{inv['id']}", headers=admin_headers).json()["status"] == "overdue"

    # second run finds nothing new
    assert client.post("/invoices/mark-overdue", headers=admin_headers).json()["updated"] == 0


def test_technician_cannot_quote(client, admin_headers, job_setup):
    tech = client.post(
        "/auth/invite",
        headers=admin_headers,
        json={"email": "tech@example.com", "first_name": "Tia", "last_name": "Tech", "role_name": "technician"},
    ).json()
    tech_headers = login(client, "acme-motors", "tech@example.com", tech["temporary_password"])
    r = client.post("/quotes/", headers=tech_headers, json={"job_id": job_setup["job"]["id"], "title": "Q"})
    assert r.status_code == 403
