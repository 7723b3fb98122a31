from datetime import datetime, time

from conftest import promote


def _admin(app, make_player):
    headers = make_player("admin@example.com")
    promote(app, "admin@example.com", "ADMIN")
    return headers


def test_create_court(app, client, make_player):
    admin = _admin(app, make_player)
    resp = client.post("/admin/courts", json={"name": "Center Court", "hourly_rate": 3000}, headers=admin)
    assert resp.status_code == 201
    assert resp.get_json()["hourly_rate"] == 3000
    assert client.post("/admin/courts", json={"name": "Center Court"}, headers=admin).status_code == 409
    assert client.post("/admin/courts", json={"name": "X", "hourly_rate": -5}, headers=admin).status_code == 400


def test_deactivated_court_not_bookable(app, client, make_player, courts, future_day):
    admin = _admin(app, make_player)
    client.patch(f"/admin/courts/{courts[0]}", json={"is_active": False}, headers=admin)

    assert [c["id"] for c in client.get("/courts").get_json()] == [courts[1]]
    resp = client.post("/reservations", json={"date": future_day.isoformat(), "hours": [9], "court_id": courts[0]},
                       headers=admin)
    assert resp.status_code == 404


def test_promote_coach(app, client, make_player):
    admin = _admin(app, make_player)
    make_player("newcoach@example.com", first_name="Sam", last_name="Smash")
    user_id = next(u["id"] for u in client.get("/admin/users", headers=admin).get_json()
                   if u["email"] == "newcoach@example.com")

    resp = client.post(f"/admin/coaches/{user_id}",
                       json={"coaching_rate": 45000, "bio": "Former tennis pro", "specialties": ["serve"]},
                       headers=admin)
    assert resp.status_code == 200
    assert resp.get_json()["specialties"] == ["serve"]

    coaches = client.get("/coaches").get_json()
    assert [c["first_name"] for c in coaches] == ["Sam"]
    users = {u["id"]: u for u in client.get("/admin/users?role=COACH", headers=admin).get_json()}
    assert list(users) == [user_id]


def test_promote_coach_validation(app, client, make_player):
    admin = _admin(app, make_player)
    assert client.post("/admin/coaches/999", json={"coaching_rate": 1}, headers=admin).status_code == 404
    resp = client.post("/admin/coaches/1", json={}, headers=admin)
    assert resp.status_code == 400


def test_day_reservations(app, client, make_player, courts, future_day):
    admin = _admin(app, make_player)
    headers = make_player()
    client.post("/reservations", json={"date": future_day.isoformat(), "hours": [18]}, headers=headers)

    rows = client.get(f"/admin/reservations?date={future_day.isoformat()}", headers=admin).get_json()
    assert len(rows) == 1
    assert rows[0]["user_email"] == "player@example.com"
    assert rows[0]["start_time"].endswith("18:00:00")


def test_admin_only(client, make_player):
    headers = make_player()
    assert client.get("/admin/audit-logs", headers=headers).status_code == 403
    assert client.get("/admin/audit-logs").status_code == 401


def test_audit_log_records_bookings(app, client, make_player, courts, future_day):
    admin = _admin(app, make_player)
    headers = make_player()
    client.post("/reservations", json={"date": future_day.isoformat(), "hours": [9]}, headers=headers)

    actions = [r["action"] for r in client.get("/admin/audit-logs", headers=admin).get_json()]
    assert "RESERVATION_CREATE" in actions
    assert "LOGIN_SUCCESS" in actions

    filtered = client.get("/admin/audit-logs?action=RESERVATION_CREATE", headers=admin).get_json()
    assert len(filtered) == 1


def test_create_event_rejects_malformed_ids(app, client, make_player, courts, future_day):
    admin = _admin(app, make_player)
    body = {
        "name": "Round Robin",
        "event_type": "social_event",
        "start_time": datetime.combine(future_day, time(18)).isoformat(),
        "end_time": datetime.combine(future_day, time(20)).isoformat(),
    }
    resp = client.post("/admin/events", json={**body, "coach_id": "abc"}, headers=admin)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "coach_id must be a positive integer"
    assert client.post("/admin/events", json={**body, "court_ids": ["x"]}, headers=admin).status_code == 400
    assert client.post("/admin/events", json={**body, "court_ids": "1"}, headers=admin).status_code == 400
    assert client.post("/admin/events", json={**body, "court_ids": [courts[0]]}, headers=admin).status_code == 201


def test_admin_cancel_frees_court(app, client, make_player, courts, future_day):
    admin = _admin(app, make_player)
    headers = make_player()
    body = {"date": future_day.isoformat(), "hours": [9], "court_id": courts[0]}
    event_id = client.post("/reservations", json=body, headers=headers).get_json()["id"]

    resp = client.post(f"/admin/events/{event_id}/cancel", json={"reason": "Resurfacing"}, headers=admin)
    assert resp.status_code == 200
    assert client.post("/reservations", json=body, headers=make_player("next@example.com")).status_code == 201
