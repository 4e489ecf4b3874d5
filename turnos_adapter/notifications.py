"""
Messages sent to the approving doctor
Every approver-facing text lives here; delivery failures are logged, never raised
"""
from __future__ import annotations
import logging

from .errors import MessagingError

logger = logging.getLogger(__name__)

CONFIRM_KEYWORD = "CONFIRMAR"
REJECT_KEYWORD = "RECHAZAR"


def approval_request_text(patient_name: str, date_text: str, time_text: str, reason: str, code: str) -> str:
    return (
        "NUEVA SOLICITUD DE TURNO 🔵\n\n"
        f"Paciente: {patient_name}\n"
        f"Fecha: {date_text}\n"
        f"Hora: {time_text}\n"
        f"Motivo: {reason}\n\n"
        f"Para confirmar, responde: {CONFIRM_KEYWORD} {code}\n"
        f"Para rechazar, responde: {REJECT_KEYWORD} {code}"
    )


def not_found_text(code: str) -> str:
    return (
        f"No se encontró un turno pendiente con el ID {code}. "
        "Puede que ya haya sido procesado o que el ID sea incorrecto."
    )


def confirmed_text(code: str) -> str:
    return f"El turno {code} quedó confirmado en el calendario."


def rejected_text(code: str) -> str:
    return f"El turno {code} fue rechazado y eliminado del calendario."


def processing_error_text(code: str) -> str:
    return f"Hubo un error al procesar el turno {code}. Es posible que ya haya sido eliminado."


def unknown_action_text(action: str, code: str) -> str:
    return (
        f"No reconozco la acción '{action}'. "
        f"Responde {CONFIRM_KEYWORD} {code} o {REJECT_KEYWORD} {code}."
    )


async def notify_approver(messenger, body: str) -> bool:
    """Send ``body`` to the approver; returns False if Twilio did not accept it."""
    try:
        await messenger.send(body)
    except MessagingError as e:
        logger.error(f"❌ Could not message the approver: {e}")
        return False
    return True


async def send_approval_request(
    messenger, patient_name: str, date_text: str, time_text: str, reason: str, code: str
) -> bool:
    sent = await notify_approver(messenger, approval_request_text(patient_name, date_text, time_text, reason, code))
    if sent:
        logger.info(f"Approval request for {code} sent to the doctor")
    return sent
