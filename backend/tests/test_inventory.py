# backend/tests/test_inventory.py


def _part(client, headers, **overrides):
    payload = {
        "part_number": "BP-100",
        "name": "Brake pads",
        "category": "Brakes",
        "cost_price": "20",
        "selling_price": "45.50",
        "current_stock": 10,
        "minimum_stock": 2,
    }
    payload.update(overrides)
    r = client.post("/inventory/parts", headers=headers, json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_part_records_initial_movement(client, admin_headers):
    part = _part(client, admin_headers)
    assert part["available_stock"] == 10
    assert part["is_low_stock"] is False

    moves = client.get(f"/inventory/movements?part_id={part['id']}", headers=admin_headers).json()["items"]
    assert len(moves) == 1
    assert moves[0]["movement_type"] == "in"
    assert moves[0]["quantity"] == 10

    dup = client.post(
        "/inventory/parts",
        headers=admin_headers,
        json={"part_number": "bp-100", "name": "Dup", "category": "Brakes"},
    )
    assert dup.status_code == 409


def test_stock_adjustment_writes_ledger(client, admin_headers):
    part = _part(client, admin_headers)

    r = client.post(f"/inventory/parts/{part['id']}/stock", headers=admin_headers, json={"new_stock": 4, "reason": "Stocktake"})
    assert r.status_code == 200
    assert r.json()["current_stock"] == 4

    # no-op adjustment leaves the ledger alone
    client.post(f"/inventory/parts/{part['id']}/stock", headers=admin_headers, json={"new_stock": 4, "reason": "Recount"})

    moves = client.get(f"/inventory/movements?part_id={part['id']}", headers=admin_headers).json()["items"]
    assert [(m["movement_type"], m["quantity"], m["reason"]) for m in moves] == [
        ("out", 6, "Stocktake"),
        ("in", 10, "Initial stock"),
    ]


def test_low_stock_filter_and_search(client, admin_headers):
    _part(client, admin_headers)
    _part(client, admin_headers, part_number="OF-1", name="Oil filter", category="Engine", current_stock=1, minimum_stock=3)

    low = client.get("/inventory/parts?low_stock=true", headers=admin_headers).json()["items"]
    assert [p["part_number"] for p in low] == ["OF-1"]
    assert low[0]["is_low_stock"] is True

    found = client.get("/inventory/parts?search=brake", headers=admin_headers).json()["items"]
    assert [p["part_number"] for p in found] == ["BP-100"]

    by_cat = client.get("/inventory/parts?category=Engine", headers=admin_headers).json()["items"]
    assert len(by_cat) == 1


def test_allocate_then_use(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    part = _part(client, admin_headers)

    r = client.post(
        f"/inventory/jobs/{job_id}/allocations",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity": 4}]},
    )
    assert r.status_code == 201, r.text
    assert r.json()[0]["quantity_allocated"] == 4

    after_alloc = client.get(f"/inventory/parts/{part['id']}", headers=admin_headers).json()
    assert after_alloc["current_stock"] == 10
    assert after_alloc["reserved_stock"] == 4
    assert after_alloc["available_stock"] == 6

    too_many = client.post(
        f"/inventory/jobs/{job_id}/allocations",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity": 7}]},
    )
    assert too_many.status_code == 400
    assert too_many.json()["detail"] == "Insufficient stock for Brake pads"

    r = client.post(
        f"/inventory/jobs/{job_id}/usage",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity_used": 3, "notes": "Front axle"}]},
    )
    assert r.status_code == 200, r.text
    used = r.json()[0]
    assert used["quantity_used"] == 3
    assert used["usage_notes"] == "Front axle"
    assert used["used_at"] is not None

    after_use = client.get(f"/inventory/parts/{part['id']}", headers=admin_headers).json()
    assert after_use["current_stock"] == 7
    assert after_use["reserved_stock"] == 1

    moves = client.get(f"/inventory/movements?part_id={part['id']}", headers=admin_headers).json()["items"]
    assert moves[0]["movement_type"] == "out"
    assert moves[0]["reference_type"] == "job"
    assert moves[0]["reference_id"] == job_id
    assert moves[0]["reason"] == f"Used on job {job_setup['job']['job_number']}"

    listed = client.get(f"/inventory/jobs/{job_id}/allocations", headers=admin_headers).json()
    assert len(listed) == 1


def test_usage_never_drives_stock_negative(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    part = _part(client, admin_headers, current_stock=2)

    r = client.post(
        f"/inventory/jobs/{job_id}/usage",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity_used": 5}]},
    )
    assert r.status_code == 200, r.text
    assert r.json()[0]["quantity_allocated"] == 0
    assert client.get(f"/inventory/parts/{part['id']}", headers=admin_headers).json()["current_stock"] == 0


def test_empty_requests_rejected(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    r = client.post(f"/inventory/jobs/{job_id}/allocations", headers=admin_headers, json={"parts": []})
    assert r.status_code == 400
    assert r.json()["detail"] == "At least one part is required"

    r = client.post(f"/inventory/jobs/{job_id}/usage", headers=admin_headers, json={"parts": []})
    assert r.status_code == 400
    assert r.json()["detail"] == "Please specify usage quantities"

    r = client.post(f"/inventory/jobs/{job_id}/usage", headers=admin_headers, json={"parts": [{"part_id": 999, "quantity_used": 1}]})
    assert r.status_code == 404


def test_repeated_usage_keeps_other_jobs_reservations(client, admin_headers, job_setup):
    job_a = job_setup["job"]["id"]
    job_b = client.post(
        "/jobs/",
        headers=admin_headers,
        json={
            "client_id": job_setup["client"]["id"],
            "vehicle_id": job_setup["vehicle"]["id"],
            "title": "Rear brakes",
            "description": "Rear shoes worn",
        },
    ).json()["id"]
    part = _part(client, admin_headers)

    for job_id in (job_a, job_b):
        r = client.post(
            f"/inventory/jobs/{job_id}/allocations",
            headers=admin_headers,
            json={"parts": [{"part_id": part["id"], "quantity": 5}]},
        )
        assert r.status_code == 201, r.text

    # the same count posted twice is a resubmission, not a second use
    for _ in range(2):
        r = client.post(
            f"/inventory/jobs/{job_a}/usage",
            headers=admin_headers,
            json={"parts": [{"part_id": part["id"], "quantity_used": 5}]},
        )
        assert r.status_code == 200, r.text
        assert r.json()[0]["quantity_used"] == 5

    after = client.get(f"/inventory/parts/{part['id']}", headers=admin_headers).json()
    assert after["current_stock"] == 5
    assert after["reserved_stock"] == 5
    assert after["available_stock"] == 0

    job_moves = [
        m
        for m in client.get(f"/inventory/movements?part_id={part['id']}", headers=admin_headers).json()["items"]
        if m["reference_type"] == "job"
    ]
    assert [(m["movement_type"], m["quantity"]) for m in job_moves] == [("out", 5)]


def test_lowering_usage_returns_stock(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    part = _part(client, admin_headers)
    client.post(
        f"/inventory/jobs/{job_id}/allocations",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity": 4}]},
    )
    client.post(
        f"/inventory/jobs/{job_id}/usage",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity_used": 4}]},
    )
    r = client.post(
        f"/inventory/jobs/{job_id}/usage",
        headers=admin_headers,
        json={"parts": [{"part_id": part["id"], "quantity_used": 1}]},
    )
    assert r.status_code == 200, r.text

    after = client.get(f"/inventory/parts/{part['id']}", headers=admin_headers).json()
    assert after["current_stock"] == 9
    assert after["reserved_stock"] == 3

    latest = client.get(f"/inventory/movements?part_id={part['id']}", headers=admin_headers).json()["items"][0]
    assert (latest["movement_type"], latest["quantity"]) == ("in", 3)
    assert latest["reason"] == f"Returned from job {job_setup['job']['job_number']}"
