from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


# Conversation platform payloads ---------------------------------------------

class Intent(BaseModel):
    display_name: str = Field("", alias="displayName")

    model_config = {"populate_by_name": True}


class OutputContext(BaseModel):
    name: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class QueryResult(BaseModel):
    intent: Intent = Field(default_factory=Intent)
    parameters: dict[str, Any] = Field(default_factory=dict)
    output_contexts: list[OutputContext] = Field(default_factory=list, alias="outputContexts")

    model_config = {"populate_by_name": True}


class WebhookRequest(BaseModel):
    """Fulfillment request; only the fields the bridge reads are modelled."""
    query_result: QueryResult = Field(default_factory=QueryResult, alias="queryResult")

    model_config = {"populate_by_name": True}


class WebhookResponse(BaseModel):
    fulfillment_text: str = Field(alias="fulfillmentText")
    fulfillment_messages: list[dict[str, Any]] | None = Field(None, alias="fulfillmentMessages")

    model_config = {"populate_by_name": True}


# Calendar --------------------------------------------------------------------

class EventTime(BaseModel):
    date_time: datetime | None = Field(None, alias="dateTime")
    date: str | None = None  # all-day events only carry a date
    time_zone: str | None = Field(None, alias="timeZone")

    model_config = {"populate_by_name": True}


class CalendarEvent(BaseModel):
    id: str | None = None
    summary: str = ""
    description: str | None = None
    start: EventTime | None = None
    end: EventTime | None = None
    extended_properties: dict[str, dict[str, str]] | None = Field(None, alias="extendedProperties")

    model_config = {"populate_by_name": True}

    @property
    def interval(self) -> tuple[datetime, datetime] | None:
        """``(start, end)`` for timed events, None for all-day or malformed ones."""
        if self.start and self.end and self.start.date_time and self.end.date_time:
            return self.start.date_time, self.end.date_time
        return None

    @property
    def private_properties(self) -> dict[str, str]:
        return dict((self.extended_properties or {}).get("private", {}))


class Appointment(BaseModel):
    """A tentative appointment about to be placed on the calendar."""
    start: datetime  # timezone-aware
    patient_name: str
    reason: str
    confirmation_code: str


class ReplyCommand(BaseModel):
    action: str
    code: str
