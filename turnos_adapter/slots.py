"""Free-slot search inside the clinic's two daily working windows."""
from __future__ import annotations
import logging
from datetime import date, datetime, time, timedelta, tzinfo

from .errors import CalendarError
from .models import CalendarEvent

logger = logging.getLogger(__name__)

MORNING = "mañana"
AFTERNOON = "tarde"

WORKING_WINDOWS = {
    MORNING: (time(9, 0), time(13, 0)),
    AFTERNOON: (time(14, 0), time(19, 0)),
}


def normalize_preference(preference: str | None) -> str:
    """Map a free-text preference onto one of the two windows.

    Only "mañana" (accent optional) selects the morning; anything else is
    treated as afternoon.
    """
    value = (preference or "").strip().lower()
    return MORNING if value in (MORNING, "manana") else AFTERNOON


def working_window(day: date, preference: str, tz: tzinfo) -> tuple[datetime, datetime]:
    opens, closes = WORKING_WINDOWS[normalize_preference(preference)]
    return datetime.combine(day, opens, tzinfo=tz), datetime.combine(day, closes, tzinfo=tz)


def candidate_slots(window_start: datetime, window_end: datetime, duration: int) -> list[datetime]:
    """Slot starts at ``duration``-minute stride that fit entirely inside the window."""
    step = timedelta(minutes=duration)
    slots = []
    current = window_start
    while current + step <= window_end:
        slots.append(current)
        current += step
    return slots


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


def available_slots(candidates: list[datetime], events: list[CalendarEvent], duration: int) -> list[datetime]:
    busy = []
    for event in events:
        interval = event.interval
        if interval is None:
            # all-day or malformed event: nothing in the window is bookable
            logger.info(f"Event {event.id} has no start/end time, blocking the whole window")
            return []
        busy.append(interval)

    step = timedelta(minutes=duration)
    return [
        slot for slot in candidates
        if not any(overlaps(slot, slot + step, busy_start, busy_end) for busy_start, busy_end in busy)
    ]


async def find_free_slots(calendar, day: date, preference: str, tz: tzinfo, duration: int = 30) -> list[str]:
    """Return the free ``HH:MM`` start times for ``day`` in ascending order.

    An unreachable calendar yields an empty list.
    """
    window_start, window_end = working_window(day, preference, tz)
    logger.info(f"Searching {duration}-minute slots on {day} ({normalize_preference(preference)})")
    try:
        events = await calendar.list_events(window_start, window_end)
    except CalendarError as e:
        logger.error(f"❌ Could not list calendar events: {e}")
        return []

    free = available_slots(candidate_slots(window_start, window_end, duration), events, duration)
    formatted = [slot.astimezone(tz).strftime("%H:%M") for slot in free]
    logger.info(f"Free slots: {formatted}")
    return formatted
