from unittest import mock

from conftest import give_membership
from models import db
from models.event import Event


def _book(client, headers, coach_id, day, hours, court_id=None):
    body = {"coach_id": coach_id, "date": day.isoformat(), "hours": hours}
    if court_id:
        body["court_id"] = court_id
    return client.post("/lessons", json=body, headers=headers)


def test_list_coaches(client, coach):
    rows = client.get("/coaches").get_json()
    assert [c["id"] for c in rows] == [coach]
    assert rows[0]["coaching_rate"] == 50000
    assert rows[0]["specialties"] == ["dinking", "third shot drop"]
    assert client.get("/coaches/999").status_code == 404


def test_book_lesson_holds_coach_and_court(app, client, make_player, courts, coach, future_day):
    headers = make_player()
    resp = _book(client, headers, coach, future_day, [15, 16])
    assert resp.status_code == 201, resp.get_json()
    data = resp.get_json()
    assert data["court"]["id"] == courts[0]
    assert data["pricing"]["final_price"] == 100000

    with app.app_context():
        event = db.session.get(Event, data["id"])
        assert event.name == "Private Lesson (2 hours)"
        assert event.coach_id == coach
        assert event.event_type.code == "lesson"

    # the court shows as held on the court calendar
    slots = client.get(
        f"/courts/availability?date={future_day.isoformat()}&court_id={courts[0]}", headers=headers
    ).get_json()["time_slots"]
    assert [s["hour"] for s in slots if not s["available"]] == [15, 16]


def test_coach_cannot_be_double_booked(client, make_player, courts, coach, future_day):
    first = make_player("one@example.com")
    second = make_player("two@example.com")
    assert _book(client, first, coach, future_day, [15]).status_code == 201
    resp = _book(client, second, coach, future_day, [15, 16])
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Coach is not available for that time"


def test_lesson_needs_free_court(client, make_player, courts, coach, future_day):
    headers = make_player()
    for court_id in courts:
        client.post("/reservations", json={"date": future_day.isoformat(), "hours": [9], "court_id": court_id},
                    headers=make_player(f"c{court_id}@example.com"))
    assert _book(client, headers, coach, future_day, [9]).status_code == 409
    assert _book(client, headers, coach, future_day, [9], court_id=courts[0]).status_code == 409


def test_coach_availability(client, make_player, courts, coach, future_day):
    headers = make_player()
    _book(client, headers, coach, future_day, [10])

    resp = client.get(f"/lessons/availability?date={future_day.isoformat()}&coach_id={coach}", headers=headers)
    slots = {s["hour"]: s for s in resp.get_json()["time_slots"]}
    assert slots[10]["available"] is False
    assert slots[11]["coaches"] == [coach]
    assert slots[11]["price"] == 50000


def test_lesson_member_discount(app, client, make_player, courts, coach, future_day):
    headers = make_player()
    give_membership(app, "player@example.com", "ultimate")
    pricing = _book(client, headers, coach, future_day, [15]).get_json()["pricing"]
    assert pricing["discount_percentage"] == 33
    assert pricing["final_price"] == 33500


def test_unknown_coach(client, make_player, courts, future_day):
    headers = make_player()
    assert _book(client, headers, 999, future_day, [9]).status_code == 404


def test_cancel_lesson(client, make_player, courts, coach, future_day):
    headers = make_player()
    event_id = _book(client, headers, coach, future_day, [15]).get_json()["id"]
    assert client.post(f"/lessons/{event_id}/cancel", headers=headers).status_code == 200
    assert _book(client, make_player("again@example.com"), coach, future_day, [15]).status_code == 201


def test_non_numeric_ids_rejected(client, make_player, courts, coach, future_day):
    headers = make_player()
    resp = _book(client, headers, "abc", future_day, [9])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "coach_id must be a positive integer"
    assert _book(client, headers, coach, future_day, [9], court_id="x").status_code == 400
    assert client.post("/lessons", json={"date": future_day.isoformat(), "hours": [9]},
                       headers=headers).status_code == 400


def test_concurrent_lesson_loses_to_held_coach_hour(client, make_player, courts, coach, future_day):
    assert _book(client, make_player("one@example.com"), coach, future_day, [15], court_id=courts[0]).status_code == 201

    with mock.patch("routes.lessons.events_between", return_value=[]):
        resp = _book(client, make_player("two@example.com"), coach, future_day, [15], court_id=courts[1])
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Coach or court already booked for that time"
