from datetime import date, datetime
from types import SimpleNamespace

from booking.availability import (
    coach_time_slots,
    court_time_slots,
    first_free_court,
    is_coach_free,
    is_court_free,
)
from booking.slots import hourly_slots

DAY = date(2026, 5, 1)
GRID = hourly_slots(8, 20)


def _event(start_hour, end_hour, court_ids=(), coach_id=None):
    return SimpleNamespace(
        start_time=datetime(2026, 5, 1, start_hour),
        end_time=datetime(2026, 5, 1, end_hour),
        court_ids=list(court_ids),
        coach_id=coach_id,
    )


def _by_hour(slots):
    return {s.slot.start_hour: s for s in slots}


def test_all_free_without_events():
    slots = court_time_slots(DAY, [1, 2], [], GRID)
    assert len(slots) == 12
    assert all(s.available and s.free_ids == [1, 2] for s in slots)


def test_reservation_blocks_its_court_only():
    slots = _by_hour(court_time_slots(DAY, [1, 2], [_event(9, 11, [1])], GRID))
    assert slots[9].free_ids == [2]
    assert slots[10].free_ids == [2]
    assert slots[11].free_ids == [1, 2]


def test_slot_unavailable_when_every_court_taken():
    events = [_event(14, 15, [1]), _event(14, 16, [2])]
    slots = _by_hour(court_time_slots(DAY, [1, 2], events, GRID))
    assert not slots[14].available
    assert slots[15].available and slots[15].free_ids == [1]


def test_tournament_holding_all_courts():
    slots = _by_hour(court_time_slots(DAY, [1, 2], [_event(8, 12, [1, 2])], GRID))
    assert [h for h, s in slots.items() if not s.available] == [8, 9, 10, 11]


def test_past_hours_today_are_unavailable():
    now = datetime(2026, 5, 1, 13, 30)
    slots = _by_hour(court_time_slots(DAY, [1], [], GRID, now=now))
    assert not slots[12].available
    assert slots[13].available
    assert slots[19].available


def test_past_days_and_future_days():
    yesterday_now = datetime(2026, 5, 2, 9, 0)
    assert not any(s.available for s in court_time_slots(DAY, [1], [], GRID, now=yesterday_now))
    earlier_now = datetime(2026, 4, 30, 23, 0)
    assert all(s.available for s in court_time_slots(DAY, [1], [], GRID, now=earlier_now))


def test_coach_slots_follow_coach_events():
    events = [_event(10, 11, [1], coach_id=7), _event(12, 13, [2])]
    slots = _by_hour(coach_time_slots(DAY, [7, 8], events, GRID))
    assert slots[10].free_ids == [8]
    assert slots[12].free_ids == [7, 8]
    assert "coaches" in slots[10].to_dict(key="coaches")


def test_point_checks():
    events = [_event(9, 11, [1], coach_id=7)]
    start, end = datetime(2026, 5, 1, 10), datetime(2026, 5, 1, 12)
    assert not is_court_free(1, start, end, events)
    assert is_court_free(2, start, end, events)
    assert not is_coach_free(7, start, end, events)
    assert is_coach_free(8, start, end, events)
    assert is_court_free(1, datetime(2026, 5, 1, 11), end, events)


def test_first_free_court_keeps_order():
    events = [_event(9, 10, [1])]
    start, end = datetime(2026, 5, 1, 9), datetime(2026, 5, 1, 10)
    assert first_free_court([1, 2, 3], start, end, events) == 2
    assert first_free_court([1], start, end, events) is None
