"""Tentative appointment creation on the calendar."""
from __future__ import annotations
import logging
import secrets
import string
from datetime import timedelta

from .errors import CalendarError
from .models import Appointment, AppointmentStatus, CalendarEvent

logger = logging.getLogger(__name__)

CODE_PREFIX = "T-"
CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_LENGTH = 6
CONFIRMED_MARKER = "Turno Confirmado ✅"


def generate_confirmation_code(taken: set[str] | frozenset[str] = frozenset()) -> str:
    """Random ``T-XXXXXX`` code (base-36, uppercase) not present in ``taken``."""
    while True:
        code = CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        if code not in taken:
            return code


def pending_marker(code: str) -> str:
    return f"(PENDIENTE-{code})"


def pending_title(patient_name: str, code: str) -> str:
    return f"{pending_marker(code)} Turno para {patient_name}"


def confirmed_title(event: CalendarEvent, code: str) -> str:
    """Title for a confirmed appointment.

    The pending marker is swapped in place when it is still intact. If the
    title was edited on the calendar side, it is rebuilt from the patient name
    kept in the event's private properties.
    """
    marker = pending_marker(code)
    if marker in event.summary:
        return event.summary.replace(marker, CONFIRMED_MARKER)
    patient_name = event.private_properties.get("patientName")
    logger.warning(f"Pending marker for {code} not found in title {event.summary!r}, rebuilding it")
    if patient_name:
        return f"{CONFIRMED_MARKER} Turno para {patient_name}"
    return f"{CONFIRMED_MARKER} {event.summary}".strip()


def build_event_body(appointment: Appointment, duration: int, time_zone: str) -> dict:
    end = appointment.start + timedelta(minutes=duration)
    code = appointment.confirmation_code
    return {
        "summary": pending_title(appointment.patient_name, code),
        "description": f"Motivo: {appointment.reason}\nID de Turno: {code}",
        "start": {"dateTime": appointment.start.isoformat(), "timeZone": time_zone},
        "end": {"dateTime": end.isoformat(), "timeZone": time_zone},
        "extendedProperties": {
            "private": {
                "confirmationCode": code,
                "status": AppointmentStatus.PENDING.value,
                "patientName": appointment.patient_name,
            }
        },
    }


async def create_appointment(calendar, appointment: Appointment, duration: int = 30) -> str | None:
    """Create the pending calendar event; returns its id, or None if nothing was created."""
    logger.info(f"Creating event for {appointment.patient_name} with code {appointment.confirmation_code}")
    body = build_event_body(appointment, duration, calendar.time_zone)
    try:
        event = await calendar.insert_event(body)
    except CalendarError as e:
        logger.error(f"❌ Error creating calendar event: {e}")
        return None
    if not event.id:
        logger.error("❌ Calendar accepted the event but returned no id")
        return None
    return event.id
