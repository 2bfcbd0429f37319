# backend/tests/test_calendar.py


def _event(client, headers, **overrides):
    payload = {
        "title": "Hilux drop-off",
        "start_time": "2026-03-02T08:00:00",
        "end_time": "2026-03-02T10:00:00",
    }
    payload.update(overrides)
    return client.post("/calendar/events", headers=headers, json=payload)


def test_end_before_start_rejected(client, admin_headers):
    r = _event(client, admin_headers, end_time="2026-03-02T07:00:00")
    assert r.status_code == 400
    assert r.json()["detail"] == "end_time must not be before start_time"

    ok = _event(client, admin_headers)
    assert ok.status_code == 201, ok.text
    bad_patch = client.patch(
        f"/calendar/events/{ok.json()['id']}", headers=admin_headers, json={"end_time": "2026-03-01T09:00:00"}
    )
    assert bad_patch.status_code == 400


def test_job_event_sets_job_schedule(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    r = _event(client, admin_headers, event_type="job", job_id=job_id)
    assert r.status_code == 201, r.text
    assert r.json()["status"] == "scheduled"

    job = client.get(f"/jobs/{job_id}", headers=admin_headers).json()
    assert job["scheduled_start_date"].startswith("2026-03-02T08:00")
    assert job["scheduled_end_date"].startswith("2026-03-02T10:00")

    client.patch(
        f"/calendar/events/{r.json()['id']}",
        headers=admin_headers,
        json={"start_time": "2026-03-03T09:00:00", "end_time": "2026-03-03T12:00:00"},
    )
    job = client.get(f"/jobs/{job_id}", headers=admin_headers).json()
    assert job["scheduled_start_date"].startswith("2026-03-03T09:00")


def test_appointment_leaves_job_alone(client, admin_headers, job_setup):
    job_id = job_setup["job"]["id"]
    r = _event(client, admin_headers, event_type="appointment", job_id=job_id)
    assert r.status_code == 201
    assert client.get(f"/jobs/{job_id}", headers=admin_headers).json()["scheduled_start_date"] is None


def test_list_by_range_and_delete(client, admin_headers):
    _event(client, admin_headers, title="Monday")
    _event(client, admin_headers, title="Friday", start_time="2026-03-06T08:00:00", end_time="2026-03-06T09:00:00")

    r = client.get(
        "/calendar/events",
        headers=admin_headers,
        params={"start": "2026-03-05T00:00:00", "end": "2026-03-07T00:00:00"},
    )
    assert r.status_code == 200
    assert [e["title"] for e in r.json()] == ["Friday"]

    all_events = client.get("/calendar/events", headers=admin_headers).json()
    assert [e["title"] for e in all_events] == ["Monday", "Friday"]

    d = client.delete(f"/calendar/events/{all_events[0]['id']}", headers=admin_headers)
    assert d.status_code == 204
    assert client.get(f"/calendar/events/{all_events[0]['id']}", headers=admin_headers).status_code == 404


def test_unknown_job_reference(client, admin_headers):
    r = _event(client, admin_headers, event_type="job", job_id=9999)
    assert r.status_code == 404
    assert r.json()["detail"] == "Job not found"


def test_zoned_times_are_stored_as_utc(client, admin_headers):
    created = _event(client, admin_headers)
    event_id = created.json()["id"]

    r = client.patch(
        f"/calendar/events/{event_id}",
        headers=admin_headers,
        json={"start_time": "2026-03-02T09:30:00+02:00"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["start_time"].startswith("2026-03-02T07:30:00")

    mixed = _event(client, admin_headers, start_time="2026-03-04T08:00:00Z", end_time="2026-03-04T09:00:00")
    assert mixed.status_code == 201, mixed.text
    assert mixed.json()["start_time"].startswith("2026-03-04T08:00:00")

    backwards = client.patch(
        f"/calendar/events/{event_id}",
        headers=admin_headers,
        json={"end_time": "2026-03-02T09:00:00+02:00"},
    )
    assert backwards.status_code == 400
    assert backwards.json()["detail"] == "end_time must not be before start_time"


def test_patch_cannot_clear_required_fields(client, admin_headers):
    event_id = _event(client, admin_headers).json()["id"]

    for field in ("end_time", "start_time", "title"):
        r = client.patch(f"/calendar/events/{event_id}", headers=admin_headers, json={field: None})
        assert r.status_code == 400, field
        assert r.json()["detail"] == f"{field} cannot be null"

    unchanged = client.get(f"/calendar/events/{event_id}", headers=admin_headers).json()
    assert unchanged["title"] == "Hilux drop-off"
