import json
import pathlib
from datetime import date, datetime
from zoneinfo import ZoneInfo

import httpx
import pytest
import respx

from turnos_adapter.calendar import GoogleCalendarClient
from turnos_adapter.config import RetryPolicy
from turnos_adapter.errors import CalendarError
from turnos_adapter.slots import find_free_slots

from .fakes import EVENTS, StaticCredentials

FIX = pathlib.Path(__file__).parent / "fixtures"
TZ = ZoneInfo("America/Argentina/Buenos_Aires")


def make_client(settings, retry=None):
    return GoogleCalendarClient(settings, credentials=StaticCredentials(), retry=retry)


@pytest.mark.asyncio
async def test_list_events_follows_pages(settings):
    page1 = json.loads((FIX / "events_page1.json").read_text())
    page2 = json.loads((FIX / "events_page2.json").read_text())
    client = make_client(settings)
    with respx.mock() as m:
        route = m.get(EVENTS)
        route.side_effect = [httpx.Response(200, json=page1), httpx.Response(200, json=page2)]

        events = await client.list_events(
            datetime(2024, 5, 1, 9, tzinfo=TZ), datetime(2024, 5, 1, 13, tzinfo=TZ)
        )

    assert [e.id for e in events] == ["evt_busy_1", "evt_holiday"]
    assert events[0].interval is not None
    assert events[1].interval is None
    first, second = route.calls
    assert first.request.headers["Authorization"] == "Bearer fake-token"
    assert first.request.url.params["singleEvents"] == "true"
    assert first.request.url.params["timeMin"] == "2024-05-01T09:00:00-03:00"
    assert second.request.url.params["pageToken"] == "page-2"


@pytest.mark.asyncio
async def test_insert_event_returns_calendar_id(settings):
    client = make_client(settings)
    with respx.mock() as m:
        route = m.post(EVENTS).respond(200, json={"id": "evt_new", "summary": "x"})
        event = await client.insert_event({"summary": "x"})
    assert event.id == "evt_new"
    assert json.loads(route.calls.last.request.content) == {"summary": "x"}


@pytest.mark.asyncio
async def test_get_and_patch_event(settings):
    payload = json.loads((FIX / "event_get.json").read_text())
    client = make_client(settings)
    with respx.mock() as m:
        m.get(f"{EVENTS}/evt_1").respond(200, json=payload)
        patch = m.patch(f"{EVENTS}/evt_1").respond(200, json={**payload, "summary": "done"})

        event = await client.get_event("evt_1")
        assert event.private_properties["confirmationCode"] == "T-ABC123"
        updated = await client.patch_event("evt_1", {"summary": "done"})

    assert updated.summary == "done"
    assert patch.called


@pytest.mark.asyncio
async def test_delete_missing_event_is_gone(settings):
    client = make_client(settings)
    with respx.mock() as m:
        m.delete(f"{EVENTS}/evt_1").respond(410, json={"error": {"code": 410, "message": "Resource has been deleted"}})
        with pytest.raises(CalendarError) as exc:
            await client.delete_event("evt_1")
    assert exc.value.status_code == 410
    assert exc.value.gone


@pytest.mark.asyncio
async def test_server_errors_are_not_retried_by_default(settings):
    client = make_client(settings)
    with respx.mock() as m:
        route = m.delete(f"{EVENTS}/evt_1").respond(503)
        with pytest.raises(CalendarError):
            await client.delete_event("evt_1")
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_retry_policy_repeats_server_errors(settings):
    client = make_client(settings, retry=RetryPolicy(max_retries=2, backoff=0))
    with respx.mock() as m:
        route = m.delete(f"{EVENTS}/evt_1")
        route.side_effect = [httpx.Response(503), httpx.ConnectError("reset"), httpx.Response(204)]
        await client.delete_event("evt_1")
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_transport_error_becomes_calendar_error(settings):
    client = make_client(settings)
    with respx.mock() as m:
        m.get(EVENTS).mock(side_effect=httpx.ConnectError("unreachable"))
        with pytest.raises(CalendarError):
            await client.list_events(datetime(2024, 5, 1, 9, tzinfo=TZ), datetime(2024, 5, 1, 13, tzinfo=TZ))


@pytest.mark.asyncio
async def test_missing_credentials_file(settings, tmp_path):
    settings.google_credentials_file = str(tmp_path / "missing.json")
    client = GoogleCalendarClient(settings)
    with pytest.raises(CalendarError):
        await client.get_event("evt_1")


@pytest.mark.asyncio
async def test_inserts_are_never_retried(settings):
    client = make_client(settings, retry=RetryPolicy(max_retries=2, backoff=0))
    with respx.mock() as m:
        route = m.post(EVENTS).respond(503)
        with pytest.raises(CalendarError):
            await client.insert_event({"summary": "x"})
    assert route.call_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    httpx.Response(200, text="<html>proxy</html>"),
    httpx.Response(200, json={"id": "evt_1", "start": {"dateTime": "mañana a las diez"}}),
])
async def test_unusable_event_payload_becomes_calendar_error(settings, reply):
    client = make_client(settings)
    with respx.mock() as m:
        m.get(f"{EVENTS}/evt_1").mock(return_value=reply)
        with pytest.raises(CalendarError):
            await client.get_event("evt_1")


@pytest.mark.asyncio
async def test_slot_search_survives_unreadable_event_list(settings):
    client = make_client(settings)
    with respx.mock() as m:
        m.get(EVENTS).respond(200, text="Service Unavailable")
        slots = await find_free_slots(client, date(2024, 5, 1), "mañana", TZ)
    assert slots == []
