"""Fulfillment logic for the conversation platform's intents."""
from __future__ import annotations
import logging
from datetime import date, datetime, time, tzinfo
from typing import Any

from .booking import create_appointment, generate_confirmation_code
from .config import Settings
from .errors import PayloadError
from .models import Appointment, QueryResult, WebhookRequest, WebhookResponse
from .notifications import send_approval_request
from .slots import find_free_slots, normalize_preference
from .store import PendingStore

logger = logging.getLogger(__name__)

REQUEST_APPOINTMENT = "Solicitar_Turno"
SELECT_DATE = "Solicitar_Turno - select_date"
SELECT_TIME = "Solicitar_Turno - select_time"

ASK_SPECIALTY = "¡Claro! Para darte el turno correcto, primero decime, ¿la consulta es para Ortodoncia u Ortopedia?"
LOST_CONTEXT = "Me perdí en la conversación, ¿podríamos empezar de nuevo?"
MISSING_DATA = "Faltó información para agendar. ¿Empezamos de nuevo?"
REQUEST_SENT = "¡Excelente! Se envió la solicitud al doctor para su confirmación final."
CREATE_FAILED = "Hubo un problema al crear la cita en el calendario. Intenta de nuevo."
TECHNICAL_ERROR = "Ups, ocurrió un error técnico al procesar la hora."
NOT_UNDERSTOOD = "Disculpa, no entendí qué necesitas."


def suggestion_chips(*titles: str) -> list[dict[str, Any]]:
    return [
        {
            "platform": "ACTIONS_ON_GOOGLE",
            "suggestions": {"suggestions": [{"title": title} for title in titles]},
        }
    ]


def context_parameters(query: QueryResult) -> dict[str, Any]:
    """Merge the parameters of all output contexts; earlier contexts win."""
    params: dict[str, Any] = {}
    for context in query.output_contexts:
        for key, value in context.parameters.items():
            params.setdefault(key, value)
    return params


def person_name(params: dict[str, Any]) -> str:
    value = params.get("patient_name")
    if isinstance(value, dict):
        value = value.get("name")
    return value or params.get("patient_name.original") or ""


def to_local(value: str, tz: tzinfo) -> datetime:
    """Parse an ISO date/datetime; naive values are taken as local time."""
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise PayloadError(f"Unparseable date/time {value!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def combine_date_and_time(turn_date: str, selected_time: str, tz: tzinfo) -> datetime:
    """Appointment start: the calendar day of ``turn_date`` at the hour/minute of ``selected_time``."""
    day = to_local(turn_date, tz).date()
    chosen = to_local(selected_time, tz)
    return datetime.combine(day, time(chosen.hour, chosen.minute), tzinfo=tz)


def friendly_date(day: date) -> str:
    return f"{day.day}/{day.month}/{day.year}"


class IntentRouter:
    def __init__(self, settings: Settings, store: PendingStore, calendar, messenger):
        self.settings = settings
        self.store = store
        self.calendar = calendar
        self.messenger = messenger

    async def dispatch(self, request: WebhookRequest) -> WebhookResponse:
        query = request.query_result
        intent = query.intent.display_name
        logger.info(f">>> Intent received: {intent}")

        if intent == REQUEST_APPOINTMENT:
            return WebhookResponse(
                fulfillment_text=ASK_SPECIALTY,
                fulfillment_messages=suggestion_chips("Sí, para ortodoncia", "No, es para otra cosa"),
            )
        if intent == SELECT_DATE:
            try:
                return await self.select_date(query)
            except Exception:
                logger.exception("[SELECT_DATE] unexpected failure")
                return WebhookResponse(fulfillment_text=TECHNICAL_ERROR)
        if intent == SELECT_TIME:
            try:
                return await self.select_time(query)
            except Exception:
                logger.exception("[SELECT_TIME] unexpected failure")
                return WebhookResponse(fulfillment_text=TECHNICAL_ERROR)
        return WebhookResponse(fulfillment_text=NOT_UNDERSTOOD)

    async def select_date(self, query: QueryResult) -> WebhookResponse:
        params = {**context_parameters(query), **query.parameters}
        turn_date = params.get("turn_date")
        if not turn_date:
            return WebhookResponse(fulfillment_text=MISSING_DATA)
        tz = self.settings.tz
        try:
            day = to_local(turn_date, tz).date()
        except PayloadError as e:
            logger.warning(str(e))
            return WebhookResponse(fulfillment_text=MISSING_DATA)

        preference = normalize_preference(params.get("time_preference"))
        slots = await find_free_slots(
            self.calendar, day, preference, tz, duration=self.settings.appointment_duration
        )
        if not slots:
            return WebhookResponse(
                fulfillment_text=f"No quedan horarios libres el {friendly_date(day)} por la {preference}. "
                "¿Querés probar otro día?"
            )
        return WebhookResponse(
            fulfillment_text=f"Para el {friendly_date(day)} por la {preference} tengo estos horarios: "
            f"{', '.join(slots)}. ¿Cuál preferís?",
            fulfillment_messages=suggestion_chips(*slots),
        )

    async def select_time(self, query: QueryResult) -> WebhookResponse:
        if not query.output_contexts:
            return WebhookResponse(fulfillment_text=LOST_CONTEXT)

        params = context_parameters(query)
        patient_name = person_name(params)
        reason = params.get("consultation_reason") or params.get("consultation_reason.original")
        turn_date = params.get("turn_date")
        selected_time = query.parameters.get("time")
        if not (patient_name and reason and turn_date and selected_time):
            return WebhookResponse(fulfillment_text=MISSING_DATA)

        tz = self.settings.tz
        try:
            start = combine_date_and_time(turn_date, selected_time, tz)
        except PayloadError as e:
            logger.warning(str(e))
            return WebhookResponse(fulfillment_text=MISSING_DATA)

        code = generate_confirmation_code(set(await self.store.pending()))
        appointment = Appointment(start=start, patient_name=patient_name, reason=reason, confirmation_code=code)
        event_id = await create_appointment(self.calendar, appointment, self.settings.appointment_duration)
        if not event_id:
            return WebhookResponse(fulfillment_text=CREATE_FAILED)

        await self.store.add(code, event_id)
        await send_approval_request(
            self.messenger, patient_name, friendly_date(start.date()), start.strftime("%H:%M"), reason, code
        )
        return WebhookResponse(fulfillment_text=REQUEST_SENT)
