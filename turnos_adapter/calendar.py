"""Async Google Calendar v3 client.

Authenticates with a service-account key file; the bearer token is cached on
the credentials object and refreshed shortly before it expires.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime
from urllib.parse import quote

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from pydantic import ValidationError

from .config import RetryPolicy, Settings
from .errors import CalendarError
from .models import CalendarEvent
from .transport import request_with_retry

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
SCOPES = ["https://www.googleapis.com/auth/calendar"]


class GoogleCalendarClient:
    def __init__(
        self,
        settings: Settings,
        credentials=None,
        retry: RetryPolicy | None = None,
    ):
        self.calendar_id = settings.calendar_id
        self.time_zone = settings.timezone
        self.retry = retry or settings.retry
        self._credentials_file = settings.google_credentials_file
        self._credentials = credentials
        self._client = httpx.AsyncClient(
            base_url=GOOGLE_CALENDAR_API, http2=True, timeout=settings.http_timeout
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_token(self) -> str:
        try:
            if self._credentials is None:
                self._credentials = service_account.Credentials.from_service_account_file(
                    self._credentials_file, scopes=SCOPES
                )
            if not self._credentials.valid:
                # google-auth refreshes with a blocking requests call
                await asyncio.to_thread(self._credentials.refresh, Request())
        except (OSError, ValueError, GoogleAuthError) as e:
            raise CalendarError(f"Google credentials unavailable: {e}") from e
        return self._credentials.token

    def _events_path(self, event_id: str | None = None) -> str:
        if not self.calendar_id:
            raise CalendarError("CALENDAR_ID is not configured")
        path = f"/calendars/{quote(self.calendar_id, safe='')}/events"
        if event_id is not None:
            path += f"/{quote(event_id, safe='')}"
        return path

    async def _call(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {await self._get_token()}", "Accept": "application/json"}
        try:
            resp = await request_with_retry(self._client, self.retry, method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise CalendarError(f"{method} {path} failed: {e}") from e
        if resp.is_error:
            raise CalendarError(f"{method} {path} returned {resp.status_code}: {resp.text}", resp.status_code)
        return resp

    @staticmethod
    def _decode(resp: httpx.Response, what: str):
        """JSON body of a 2xx reply; undecodable bodies count as calendar failures."""
        try:
            return resp.json()
        except ValueError as e:
            raise CalendarError(f"Unreadable {what} response: {resp.text[:200]!r}", resp.status_code) from e

    def _event(self, data, what: str) -> CalendarEvent:
        try:
            return CalendarEvent.model_validate(data)
        except ValidationError as e:
            raise CalendarError(f"Unexpected {what} payload: {e}") from e

    async def list_events(self, time_min: datetime, time_max: datetime) -> list[CalendarEvent]:
        """Return every single (expanded) event overlapping ``[time_min, time_max)``."""
        params = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        events: list[CalendarEvent] = []
        while True:
            resp = await self._call("GET", self._events_path(), params=params)
            page = self._decode(resp, "event list")
            if not isinstance(page, dict):
                raise CalendarError("Event list response is not a JSON object")
            events.extend(self._event(item, "event list") for item in page.get("items", []))
            token = page.get("nextPageToken")
            if not token:
                return events
            params["pageToken"] = token

    async def insert_event(self, body: dict) -> CalendarEvent:
        resp = await self._call("POST", self._events_path(), json=body)
        event = self._event(self._decode(resp, "insert"), "insert")
        logger.info(f"✅ Google Calendar event created: {event.id}")
        return event

    async def get_event(self, event_id: str) -> CalendarEvent:
        resp = await self._call("GET", self._events_path(event_id))
        return self._event(self._decode(resp, "get"), "get")

    async def patch_event(self, event_id: str, body: dict) -> CalendarEvent:
        resp = await self._call("PATCH", self._events_path(event_id), json=body)
        event = self._event(self._decode(resp, "patch"), "patch")
        logger.info(f"✅ Google Calendar event updated: {event_id}")
        return event

    async def delete_event(self, event_id: str) -> None:
        await self._call("DELETE", self._events_path(event_id))
        logger.info(f"✅ Google Calendar event deleted: {event_id}")
