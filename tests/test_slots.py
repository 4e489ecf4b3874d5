from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from turnos_adapter.errors import CalendarError
from turnos_adapter.models import CalendarEvent
from turnos_adapter.slots import candidate_slots, find_free_slots, normalize_preference, working_window

from .fakes import FakeCalendar

TZ = ZoneInfo("America/Argentina/Buenos_Aires")
DAY = date(2024, 5, 1)


def timed_event(event_id, start, end):
    return CalendarEvent.model_validate({
        "id": event_id,
        "summary": "Ocupado",
        "start": {"dateTime": f"2024-05-01T{start}:00-03:00"},
        "end": {"dateTime": f"2024-05-01T{end}:00-03:00"},
    })


@pytest.mark.parametrize("value,expected", [
    ("mañana", "mañana"), ("MAÑANA", "mañana"), ("manana", "mañana"),
    ("tarde", "tarde"), ("noche", "tarde"), (None, "tarde"),
])
def test_normalize_preference(value, expected):
    assert normalize_preference(value) == expected


def test_candidates_fit_inside_window():
    start, end = working_window(DAY, "mañana", TZ)
    slots = candidate_slots(start, end, 30)
    assert len(slots) == 8
    assert slots[0] == datetime(2024, 5, 1, 9, 0, tzinfo=TZ)
    assert slots[-1] + timedelta(minutes=30) == end
    # a 45-minute appointment cannot start at 12:45
    assert candidate_slots(start, end, 45)[-1].strftime("%H:%M") == "12:00"


@pytest.mark.asyncio
async def test_empty_morning_offers_every_half_hour():
    slots = await find_free_slots(FakeCalendar(), DAY, "mañana", TZ)
    assert slots == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30", "12:00", "12:30"]


@pytest.mark.asyncio
async def test_afternoon_window():
    slots = await find_free_slots(FakeCalendar(), DAY, "tarde", TZ)
    assert slots[0] == "14:00"
    assert slots[-1] == "18:30"
    assert len(slots) == 10


@pytest.mark.asyncio
async def test_busy_events_exclude_overlapping_slots():
    calendar = FakeCalendar([
        timed_event("full", "10:00", "10:30"),
        # partial overlap still blocks 11:00 and 11:30
        timed_event("partial", "11:15", "11:45"),
    ])
    slots = await find_free_slots(calendar, DAY, "mañana", TZ)
    assert slots == ["09:00", "09:30", "10:30", "12:00", "12:30"]


@pytest.mark.asyncio
async def test_back_to_back_event_does_not_block_neighbours():
    calendar = FakeCalendar([timed_event("edge", "09:30", "10:00")])
    slots = await find_free_slots(calendar, DAY, "mañana", TZ)
    assert "09:00" in slots and "10:00" in slots and "09:30" not in slots


@pytest.mark.asyncio
async def test_all_day_event_blocks_whole_window():
    all_day = CalendarEvent.model_validate({
        "id": "holiday", "summary": "Feriado",
        "start": {"date": "2024-05-01"}, "end": {"date": "2024-05-02"},
    })
    assert await find_free_slots(FakeCalendar([all_day]), DAY, "tarde", TZ) == []


@pytest.mark.asyncio
async def test_calendar_failure_returns_empty_list():
    calendar = FakeCalendar()
    calendar.error = CalendarError("connection refused")
    assert await find_free_slots(calendar, DAY, "mañana", TZ) == []
