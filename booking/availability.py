from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set

from booking.slots import HourSlot, overlaps


@dataclass
class TimeSlot:
    """One hour of a day with the resources (courts or coaches) still free.

    Derived per request, never stored.
    """
    slot: HourSlot
    available: bool
    free_ids: List[int] = field(default_factory=list)
    price: Optional[int] = None

    def to_dict(self, key: str = "courts") -> dict:
        return {
            "start_time": self.slot.start_label,
            "end_time": self.slot.end_label,
            "hour": self.slot.start_hour,
            "available": self.available,
            key: list(self.free_ids),
            "price": self.price,
        }


def _event_court_ids(event) -> Set[int]:
    return set(getattr(event, "court_ids", None) or [])


def _is_past(slot: HourSlot, day: date, now: Optional[datetime]) -> bool:
    if now is None or day > now.date():
        return False
    if day < now.date():
        return True
    return slot.start_hour < now.hour


def busy_by_hour(day: date, events: Iterable, grid: Sequence[HourSlot], resource_ids_of) -> Dict[int, Set[int]]:
    """Start hour -> ids of resources held by an overlapping event."""
    busy: Dict[int, Set[int]] = {}
    events = list(events)
    for slot in grid:
        slot_start, slot_end = slot.bounds(day)
        for event in events:
            if overlaps(event.start_time, event.end_time, slot_start, slot_end):
                busy.setdefault(slot.start_hour, set()).update(resource_ids_of(event))
    return busy


def _time_slots(day, resource_ids, events, grid, resource_ids_of, now) -> List[TimeSlot]:
    busy = busy_by_hour(day, events, grid, resource_ids_of)
    out = []
    for slot in grid:
        if _is_past(slot, day, now):
            out.append(TimeSlot(slot=slot, available=False))
            continue
        taken = busy.get(slot.start_hour, set())
        free = [rid for rid in resource_ids if rid not in taken]
        out.append(TimeSlot(slot=slot, available=bool(free), free_ids=free))
    return out


def court_time_slots(day: date, court_ids: Sequence[int], events: Iterable,
                     grid: Sequence[HourSlot], now: Optional[datetime] = None) -> List[TimeSlot]:
    return _time_slots(day, list(court_ids), events, grid, _event_court_ids, now)


def coach_time_slots(day: date, coach_ids: Sequence[int], events: Iterable,
                     grid: Sequence[HourSlot], now: Optional[datetime] = None) -> List[TimeSlot]:
    def coach_of(event):
        coach_id = getattr(event, "coach_id", None)
        return {coach_id} if coach_id is not None else set()

    return _time_slots(day, list(coach_ids), events, grid, coach_of, now)


def is_court_free(court_id: int, start: datetime, end: datetime, events: Iterable) -> bool:
    return not any(
        court_id in _event_court_ids(e) and overlaps(e.start_time, e.end_time, start, end)
        for e in events
    )


def is_coach_free(coach_id: int, start: datetime, end: datetime, events: Iterable) -> bool:
    return not any(
        getattr(e, "coach_id", None) == coach_id and overlaps(e.start_time, e.end_time, start, end)
        for e in events
    )


def first_free_court(court_ids: Sequence[int], start: datetime, end: datetime, events: Iterable) -> Optional[int]:
    events = list(events)
    for court_id in court_ids:
        if is_court_free(court_id, start, end, events):
            return court_id
    return None
