import random
from datetime import date, datetime

import pytest

from booking.slots import (
    HourSlot,
    InvalidSlot,
    MaxHoursExceeded,
    NonConsecutiveSelection,
    SlotSelection,
    SlotSelectionError,
    adjacent_hours,
    hourly_slots,
    is_consecutive,
    overlaps,
    parse_hour,
    span,
    validate_selection,
)

GRID = hourly_slots(8, 20)


def test_grid_covers_opening_hours():
    assert GRID[0].start_label == "08:00"
    assert GRID[-1].start_label == "19:00"
    assert GRID[-1].end_label == "20:00"
    assert len(GRID) == 12


def test_grid_rejects_inverted_hours():
    with pytest.raises(ValueError):
        hourly_slots(20, 8)


def test_hour_slot_bounds():
    start, end = HourSlot(9).bounds(date(2026, 5, 1))
    assert start == datetime(2026, 5, 1, 9)
    assert end == datetime(2026, 5, 1, 10)


@pytest.mark.parametrize("value, expected", [(9, 9), ("9", 9), ("09:00", 9), (" 17:00 ", 17)])
def test_parse_hour_accepts_whole_hours(value, expected):
    assert parse_hour(value) == expected


@pytest.mark.parametrize("value", ["09:30", "nine", 24, -1, True, None, 9.5])
def test_parse_hour_rejects_everything_else(value):
    with pytest.raises(InvalidSlot):
        parse_hour(value)


def test_is_consecutive_ignores_order():
    assert is_consecutive([11, 9, 10])
    assert not is_consecutive([9, 11])
    assert is_consecutive([14])


def test_overlaps_is_half_open():
    nine, ten, eleven = (datetime(2026, 5, 1, h) for h in (9, 10, 11))
    assert overlaps(nine, eleven, ten, eleven)
    assert not overlaps(nine, ten, ten, eleven)


def test_span_runs_from_first_start_to_last_end():
    start, end = span(date(2026, 5, 1), [11, 10])
    assert start == datetime(2026, 5, 1, 10)
    assert end == datetime(2026, 5, 1, 12)


# ── SlotSelection (booking wizard rules) ───────────────────────────────────


def test_first_tap_starts_a_block():
    sel = SlotSelection(3)
    assert sel.toggle(10) == [10]


def test_block_grows_at_either_edge():
    sel = SlotSelection(3, [10])
    sel.toggle(11)
    sel.toggle(9)
    assert sel.hours == [9, 10, 11]
    assert sel.is_full


def test_gap_is_rejected_with_message():
    sel = SlotSelection(3, [10])
    with pytest.raises(NonConsecutiveSelection) as exc:
        sel.toggle(12)
    assert "consecutive" in str(exc.value)
    assert sel.hours == [10]


def test_cap_is_enforced():
    sel = SlotSelection(3, [9, 10, 11])
    with pytest.raises(MaxHoursExceeded) as exc:
        sel.toggle(12)
    assert str(exc.value) == "You can book up to 3 consecutive hours maximum."


def test_cap_can_be_four_for_web_flow():
    sel = SlotSelection(4, [9, 10, 11])
    assert sel.toggle(12) == [9, 10, 11, 12]


def test_deselect_last_hour_shrinks_block():
    sel = SlotSelection(3, [9, 10, 11])
    assert sel.toggle(11) == [9, 10]


def test_deselect_middle_keeps_earlier_hours():
    sel = SlotSelection(3, [9, 10, 11])
    assert sel.toggle(10) == [9]


def test_deselect_first_hour_clears_block():
    sel = SlotSelection(3, [9, 10, 11])
    assert sel.toggle(9) == []
    assert len(sel) == 0


def test_deselect_unselected_hour_is_ignored():
    sel = SlotSelection(3, [9, 10])
    assert sel.deselect(5) == [9, 10]
    assert sel.deselect(12) == [9, 10]


@pytest.mark.parametrize("seed", range(20))
@pytest.mark.parametrize("max_hours", [1, 3, 4])
def test_random_toggles_keep_block_contiguous_and_capped(seed, max_hours):
    rng = random.Random(seed)
    sel = SlotSelection(max_hours)
    for _ in range(200):
        try:
            sel.toggle(rng.choice(GRID).start_hour)
        except SlotSelectionError:
            pass
        assert is_consecutive(sel.hours)
        assert len(sel) <= max_hours


def test_to_dict_labels():
    data = SlotSelection(3, [14, 15]).to_dict()
    assert data == {
        "hours": [14, 15],
        "start_time": "14:00",
        "end_time": "16:00",
        "hour_count": 2,
        "max_hours": 3,
    }
    assert SlotSelection(3).to_dict()["start_time"] is None


def test_initial_hours_must_be_consecutive():
    with pytest.raises(NonConsecutiveSelection):
        SlotSelection(3, [9, 12])


# ── validate_selection (server side) ───────────────────────────────────────


def test_validate_selection_sorts_and_parses():
    assert validate_selection(["11:00", 10], 3, GRID) == [10, 11]


@pytest.mark.parametrize("hours, error", [
    ([], InvalidSlot),
    (None, InvalidSlot),
    ([9, 9], InvalidSlot),
    ([7], InvalidSlot),
    ([19, 20], InvalidSlot),
    ([9, 10, 11, 12], MaxHoursExceeded),
    ([9, 11], NonConsecutiveSelection),
])
def test_validate_selection_rejects(hours, error):
    with pytest.raises(error):
        validate_selection(hours, 3, GRID)


def test_adjacent_hours():
    before, after = adjacent_hours([10, 11], GRID, 3)
    assert before.start_hour == 9
    assert after.start_hour == 12


def test_adjacent_hours_at_grid_edge():
    before, after = adjacent_hours([8], GRID, 3)
    assert before is None
    assert after.start_hour == 9


def test_adjacent_hours_none_when_full():
    assert adjacent_hours([9, 10, 11], GRID, 3) == (None, None)
    assert adjacent_hours([], GRID, 3) == (None, None)
