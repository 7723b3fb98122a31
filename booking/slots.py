from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple


class SlotSelectionError(ValueError):
    """Base class for rejected slot selections (routes map these to 400)."""


class NonConsecutiveSelection(SlotSelectionError):
    pass


class MaxHoursExceeded(SlotSelectionError):
    pass


class InvalidSlot(SlotSelectionError):
    pass


@dataclass(frozen=True)
class HourSlot:
    start_hour: int

    @property
    def end_hour(self) -> int:
        return self.start_hour + 1

    @property
    def start_label(self) -> str:
        return f"{self.start_hour:02d}:00"

    @property
    def end_label(self) -> str:
        return f"{self.end_hour:02d}:00"

    def bounds(self, day: date) -> Tuple[datetime, datetime]:
        start = datetime.combine(day, time(self.start_hour))
        return start, start + timedelta(hours=1)


def hourly_slots(open_hour: int, close_hour: int) -> List[HourSlot]:
    if not (0 <= open_hour < close_hour <= 24):
        raise ValueError("open_hour must be before close_hour within a day")
    return [HourSlot(h) for h in range(open_hour, close_hour)]


def parse_hour(value) -> int:
    """Accepts 9, "9" or "09:00". Anything not on the hour is rejected."""
    if isinstance(value, bool):
        raise InvalidSlot(f"Invalid hour: {value!r}")
    if isinstance(value, int):
        hour = value
    elif isinstance(value, str):
        text = value.strip()
        hours_part, _, minutes_part = text.partition(":")
        if not hours_part.isdigit() or (minutes_part and not minutes_part.isdigit()):
            raise InvalidSlot(f"Invalid time: {value!r}")
        if minutes_part and int(minutes_part) != 0:
            raise InvalidSlot("Slots start on the hour")
        hour = int(hours_part)
    else:
        raise InvalidSlot(f"Invalid hour: {value!r}")

    if not 0 <= hour <= 23:
        raise InvalidSlot(f"Hour out of range: {hour}")
    return hour


def is_consecutive(hours: Iterable[int]) -> bool:
    ordered = sorted(hours)
    return all(b == a + 1 for a, b in zip(ordered, ordered[1:]))


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def span(day: date, hours: Sequence[int]) -> Tuple[datetime, datetime]:
    """Start of the first hour to end of the last one."""
    ordered = sorted(hours)
    start, _ = HourSlot(ordered[0]).bounds(day)
    _, end = HourSlot(ordered[-1]).bounds(day)
    return start, end


class SlotSelection:
    """Hours picked in a booking wizard.

    Hours only grow at either edge and never past ``max_hours``. Deselecting
    keeps the hours before the one tapped, so tapping the first hour of a
    block clears the whole block.
    """

    def __init__(self, max_hours: int, hours: Iterable[int] = ()):
        if max_hours < 1:
            raise ValueError("max_hours must be at least 1")
        self.max_hours = max_hours
        self._hours: List[int] = []
        for hour in sorted(set(hours)):
            self.select(hour)

    @property
    def hours(self) -> List[int]:
        return list(self._hours)

    def __len__(self) -> int:
        return len(self._hours)

    def __contains__(self, hour: int) -> bool:
        return hour in self._hours

    @property
    def is_full(self) -> bool:
        return len(self._hours) >= self.max_hours

    def select(self, hour: int) -> List[int]:
        if hour in self._hours:
            return self.hours
        if not self._hours:
            self._hours = [hour]
            return self.hours
        if self.is_full:
            raise MaxHoursExceeded(
                f"You can book up to {self.max_hours} consecutive hours maximum."
            )
        if hour not in (self._hours[0] - 1, self._hours[-1] + 1):
            raise NonConsecutiveSelection(
                f"Time slots must be consecutive. You can book up to {self.max_hours} consecutive hours."
            )
        self._hours = sorted(self._hours + [hour])
        return self.hours

    def deselect(self, hour: int) -> List[int]:
        # TODO: confirm with the front desk whether deselecting the first hour
        # should re-anchor on the remaining hours instead of clearing them.
        if hour not in self._hours:
            return self.hours
        self._hours = [h for h in self._hours if h < hour]
        return self.hours

    def toggle(self, hour: int) -> List[int]:
        if hour in self._hours:
            return self.deselect(hour)
        return self.select(hour)

    def to_dict(self) -> dict:
        slots = [HourSlot(h) for h in self._hours]
        return {
            "hours": self.hours,
            "start_time": slots[0].start_label if slots else None,
            "end_time": slots[-1].end_label if slots else None,
            "hour_count": len(slots),
            "max_hours": self.max_hours,
        }


def validate_selection(hours, max_hours: int, grid: Sequence[HourSlot]) -> List[int]:
    """Server-side check of a requested block of hours; returns them sorted."""
    if not isinstance(hours, (list, tuple)) or not hours:
        raise InvalidSlot("At least one hour must be selected")

    parsed = [parse_hour(h) for h in hours]
    if len(set(parsed)) != len(parsed):
        raise InvalidSlot("Duplicate hours in selection")

    open_hours = {slot.start_hour for slot in grid}
    outside = [h for h in parsed if h not in open_hours]
    if outside:
        raise InvalidSlot(f"Hour {outside[0]:02d}:00 is outside booking hours")

    if len(parsed) > max_hours:
        raise MaxHoursExceeded(f"You can book up to {max_hours} consecutive hours maximum.")
    if not is_consecutive(parsed):
        raise NonConsecutiveSelection(
            f"Time slots must be consecutive. You can book up to {max_hours} consecutive hours."
        )
    return sorted(parsed)


def adjacent_hours(
    hours: Sequence[int], grid: Sequence[HourSlot], max_hours: int
) -> Tuple[Optional[HourSlot], Optional[HourSlot]]:
    """Grid slots right before and after the selection, if it can still grow."""
    if not hours or len(hours) >= max_hours:
        return None, None
    by_hour = {slot.start_hour: slot for slot in grid}
    ordered = sorted(hours)
    return by_hour.get(ordered[0] - 1), by_hour.get(ordered[-1] + 1)
