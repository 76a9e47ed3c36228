from roster_api.models.shift import Shift
from roster_api.services import recurrence

from conftest import dt, make_client, make_location, make_shift, make_staff, make_team


def _payload(**kw):
    body = {
        "title": "Office clean",
        "start_time": "2024-01-03T09:00:00",
        "end_time": "2024-01-03T13:00:00",
    }
    body.update(kw)
    return body


def test_create_and_get(client, admin_headers, session):
    a = make_staff(session, "Anna")
    c = make_client(session)
    loc = make_location(session)

    r = client.post("/api/v1/shifts", json=_payload(
        staffIds=[a.id], clientIds=[c.id], locationIds=[loc.id], shiftInstructions="Alarm code 1234",
    ), headers=admin_headers)
    assert r.status_code == 201, r.get_json()
    body = r.get_json()
    assert body["success"] is True
    data = body["data"]
    assert data["staff_ids"] == [a.id]
    assert data["client_ids"] == [c.id]
    assert data["locations"][0]["id"] == loc.id
    assert data["job_state"] == "not_started"

    r = client.get(f"/api/v1/shifts/{data['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.get_json()["data"]["title"] == "Office clean"

    r = client.get(f"/api/v1/shifts/{data['id']}/instructions", headers=admin_headers)
    assert [i["instruction_text"] for i in r.get_json()["data"]] == ["Alarm code 1234"]


def test_create_with_unknown_ids(client, admin_headers, session):
    a = make_staff(session, "Anna")
    r = client.post("/api/v1/shifts", json=_payload(staff_ids=[a.id, 999]), headers=admin_headers)
    assert r.status_code == 400
    err = r.get_json()["error"]
    assert err["code"] == "VALIDATION_ERROR"
    assert err["message"] == "Invalid staff IDs: 999"
    assert err["detail"]["missing"] == {"staff": [999]}
    assert Shift.query.count() == 0


def test_create_rejects_bad_window(client, admin_headers):
    r = client.post("/api/v1/shifts", json=_payload(end_time="2024-01-03T09:00:00"), headers=admin_headers)
    assert r.status_code == 400
    r = client.post("/api/v1/shifts", json=_payload(theme="Purple"), headers=admin_headers)
    assert r.status_code == 400


def test_auth_required(client, cleaner_headers):
    assert client.get("/api/v1/shifts").status_code == 401
    r = client.post("/api/v1/shifts", json=_payload(), headers=cleaner_headers)
    assert r.status_code == 403


def test_list_filters_by_date(client, admin_headers, session):
    make_shift(dt("2024-01-02T09:00"), dt("2024-01-02T10:00"), title="A")
    make_shift(dt("2024-01-03T23:30"), dt("2024-01-04T01:00"), title="B")
    make_shift(dt("2024-01-05T09:00"), dt("2024-01-05T10:00"), title="C")

    r = client.get("/api/v1/shifts?startDate=2024-01-03&endDate=2024-01-03", headers=admin_headers)
    body = r.get_json()
    assert [s["title"] for s in body["data"]] == ["B"]
    assert body["meta"]["total"] == 1

    r = client.get("/api/v1/shifts?startDate=nope", headers=admin_headers)
    assert r.status_code == 400


def test_update_and_assignment_type_lock(client, admin_headers, session):
    a = make_staff(session, "Anna")
    b = make_staff(session, "Ben")
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"), staff_ids=[a.id])

    r = client.put(f"/api/v1/shifts/{s.id}", json={"title": "Deep clean", "staff_ids": [a.id, b.id]},
                   headers=admin_headers)
    assert r.status_code == 200
    assert r.get_json()["data"]["staff_ids"] == sorted([a.id, b.id])

    r = client.put(f"/api/v1/shifts/{s.id}", json={"assignment_type": "team"}, headers=admin_headers)
    assert r.status_code == 409

    r = client.put(f"/api/v1/shifts/{s.id}", json={"end_time": "2024-01-03T08:00:00"}, headers=admin_headers)
    assert r.status_code == 400


def test_job_lifecycle_endpoints(client, admin_headers, session):
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"))

    r = client.post(f"/api/v1/shifts/{s.id}/job/pause", headers=admin_headers)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "CONFLICT"

    assert client.post(f"/api/v1/shifts/{s.id}/job/start", headers=admin_headers).status_code == 200
    assert client.post(f"/api/v1/shifts/{s.id}/job/pause", headers=admin_headers).status_code == 200
    assert client.post(f"/api/v1/shifts/{s.id}/job/end", headers=admin_headers).status_code == 200

    r = client.get(f"/api/v1/shifts/{s.id}/time-summary", headers=admin_headers)
    data = r.get_json()["data"]
    assert data["job_state"] == "ended"
    assert data["scheduled_length"] == 240

    r = client.post(f"/api/v1/shifts/{s.id}/job/reset", headers=admin_headers)
    assert r.get_json()["data"]["job_state"] == "not_started"

    assert client.post(f"/api/v1/shifts/{s.id}/job/fly", headers=admin_headers).status_code == 404


def test_repeat_endpoint(client, admin_headers, session):
    a = make_staff(session, "Anna")
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"), staff_ids=[a.id])

    r = client.post(f"/api/v1/shifts/{s.id}/repeat",
                    json={"weekdays": ["Monday", "Wednesday"], "close_date": "2024-01-17"},
                    headers=admin_headers)
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["succeeded"] == 4
    assert data["dates"] == ["2024-01-08", "2024-01-10", "2024-01-15", "2024-01-17"]

    r = client.post(f"/api/v1/shifts/{s.id}/repeat",
                    json={"weekdays": ["Monday"], "close_date": "2024-01-07"},
                    headers=admin_headers)
    assert r.status_code == 400

    r = client.post(f"/api/v1/shifts/{s.id}/repeat", json={"weekdays": ["Monday"]}, headers=admin_headers)
    assert r.status_code == 400


def test_repeat_all_failed_is_422(client, admin_headers, session, monkeypatch):
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"))

    def broken(draft):
        raise RuntimeError("nope")

    monkeypatch.setattr(recurrence, "_create_one", broken)
    r = client.post(f"/api/v1/shifts/{s.id}/repeat",
                    json={"weekdays": ["Monday"], "close_date": "2024-01-08"},
                    headers=admin_headers)
    assert r.status_code == 422
    err = r.get_json()["error"]
    assert err["code"] == "RECURRENCE_FAILED"
    assert err["detail"]["failed"] == 1


def test_cancel_endpoint(client, admin_headers, session):
    a = make_staff(session, "Anna")
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"), staff_ids=[a.id])

    r = client.post(f"/api/v1/shifts/{s.id}/cancel", headers=admin_headers)
    assert r.status_code == 404

    cover = make_staff(session, "Cover", role="staff")
    r = client.post(f"/api/v1/shifts/{s.id}/cancel", headers=admin_headers)
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["staff_ids"] == [cover.id]
    assert data["theme"] == "Danger"


def test_travel_endpoints(client, admin_headers, session, fake_provider):
    a = make_staff(session, "Anna")
    x = make_location(session, unit="U1", name="X", address="1 First St")
    y = make_location(session, unit="U2", name="Y", address="2 Second St")
    make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T12:00"), staff_ids=[a.id], location_ids=[x.id])
    s2 = make_shift(dt("2024-01-03T13:00"), dt("2024-01-03T16:00"), staff_ids=[a.id], location_ids=[y.id])

    r = client.post(f"/api/v1/shifts/{s2.id}/travel", headers=admin_headers)
    data = r.get_json()["data"]
    assert data["from_location"] == "1 First St"
    assert data["distance_km"] == 12.3

    r = client.put(f"/api/v1/shifts/{s2.id}/travel",
                   json={"distance_km": 3.2, "duration_min": 9, "from_location": "Depot"},
                   headers=admin_headers)
    assert r.status_code == 200
    r = client.get(f"/api/v1/shifts/{s2.id}", headers=admin_headers)
    data = r.get_json()["data"]
    assert (data["travel_distance_km"], data["travel_duration_min"], data["travel_from_location"]) == (3.2, 9, "Depot")


def test_relation_edits(client, admin_headers, session):
    t = make_team(session)
    c1 = make_client(session, "One")
    c2 = make_client(session, "Two")
    loc = make_location(session)
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"), assignment_type="team",
                   team_ids=[t.id], client_ids=[c1.id])

    r = client.put(f"/api/v1/shifts/{s.id}/client", json={"client_id": c2.id}, headers=admin_headers)
    assert r.get_json()["data"]["client_ids"] == [c2.id]

    r = client.put(f"/api/v1/shifts/{s.id}/location", json={"location_id": loc.id}, headers=admin_headers)
    assert [l["id"] for l in r.get_json()["data"]["locations"]] == [loc.id]

    r = client.put(f"/api/v1/shifts/{s.id}/location", json={"location_id": 999}, headers=admin_headers)
    assert r.status_code == 404

    r = client.delete(f"/api/v1/shifts/{s.id}/teams/{t.id}", headers=admin_headers)
    assert r.get_json()["data"]["team_ids"] == []
    r = client.delete(f"/api/v1/shifts/{s.id}/teams/{t.id}", headers=admin_headers)
    assert r.status_code == 404


def test_messages_and_delete(client, admin_headers, session):
    a = make_staff(session, "Anna")
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"), staff_ids=[a.id])

    r = client.post(f"/api/v1/shifts/{s.id}/messages", json={"message_text": "Running late", "staff_id": a.id},
                    headers=admin_headers)
    assert r.status_code == 201
    r = client.post(f"/api/v1/shifts/{s.id}/messages", json={"message_text": " "}, headers=admin_headers)
    assert r.status_code == 400

    r = client.delete(f"/api/v1/shifts/{s.id}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/api/v1/shifts/{s.id}", headers=admin_headers).status_code == 404


def test_timesheet_endpoint(client, admin_headers, cleaner_headers, session):
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"))

    r = client.put(f"/api/v1/shifts/{s.id}/timesheet",
                   json={"scheduledInTime": "2024-01-03T10:00:00", "scheduledOutTime": "2024-01-03T12:00:00"},
                   headers=admin_headers)
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["job_state"] == "not_started"
    assert data["display"]["scheduled"] == "2:00"

    r = client.put(f"/api/v1/shifts/{s.id}/timesheet",
                   json={"logged_in_time": "2024-01-03T11:00:00", "logged_out_time": "2024-01-03T10:00:00"},
                   headers=admin_headers)
    assert r.status_code == 400

    r = client.put(f"/api/v1/shifts/{s.id}/timesheet", json={}, headers=cleaner_headers)
    assert r.status_code == 403


def test_update_keeps_roles_disjoint(client, admin_headers, session):
    sup = make_staff(session, "Sam")
    mem = make_staff(session, "Mia")
    t = make_team(session)
    s = make_shift(dt("2024-01-03T09:00"), dt("2024-01-03T13:00"), assignment_type="team",
                   team_ids=[t.id], supervisor_ids=[sup.id], team_member_ids=[mem.id])

    r = client.put(f"/api/v1/shifts/{s.id}", json={"supervisorIds": [sup.id, mem.id]}, headers=admin_headers)
    assert r.status_code == 400
    assert r.get_json()["error"]["detail"]["overlap"] == [mem.id]

    r = client.post("/api/v1/shifts", json=_payload(teamIds=[t.id]), headers=admin_headers)
    assert r.status_code == 400
