"""Interpretation of the approver's WhatsApp replies (``ACTION CODE``)."""
from __future__ import annotations
import logging
from enum import Enum

from .booking import confirmed_title
from .errors import CalendarError
from .models import AppointmentStatus, ReplyCommand
from .notifications import (
    CONFIRM_KEYWORD,
    REJECT_KEYWORD,
    confirmed_text,
    not_found_text,
    notify_approver,
    processing_error_text,
    rejected_text,
    unknown_action_text,
)
from .store import PendingStore

logger = logging.getLogger(__name__)


class ReplyOutcome(str, Enum):
    IGNORED_SENDER = "ignored_sender"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    UNKNOWN_ACTION = "unknown_action"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


def parse_command(body: str | None) -> ReplyCommand | None:
    """Split a reply into action and code; anything but exactly two tokens is rejected."""
    parts = (body or "").strip().upper().split()
    if len(parts) != 2:
        return None
    return ReplyCommand(action=parts[0], code=parts[1])


class ReplyInterpreter:
    def __init__(self, approver: str | None, store: PendingStore, calendar, messenger):
        self.approver = approver
        self.store = store
        self.calendar = calendar
        self.messenger = messenger

    async def handle(self, sender: str, body: str) -> ReplyOutcome:
        """Process one inbound message. Never raises; failures are logged."""
        try:
            return await self._handle(sender, body)
        except Exception:
            logger.exception(f"Unexpected failure handling reply from {sender}")
            return ReplyOutcome.FAILED

    async def _handle(self, sender: str, body: str) -> ReplyOutcome:
        if not self.approver or sender != self.approver:
            logger.info(f"Ignoring message from {sender}: not the approver")
            return ReplyOutcome.IGNORED_SENDER

        command = parse_command(body)
        if command is None:
            # no reply goes back for malformed commands
            logger.warning(f"Reply {body!r} is not in 'ACTION CODE' form, dropping it")
            return ReplyOutcome.MALFORMED
        logger.info(f"Approver reply: action={command.action} code={command.code}")

        event_id = await self.store.get(command.code)
        if event_id is None:
            logger.info(f"No pending appointment with code {command.code}")
            await notify_approver(self.messenger, not_found_text(command.code))
            return ReplyOutcome.NOT_FOUND

        if command.action == CONFIRM_KEYWORD:
            return await self._confirm(command.code, event_id)
        if command.action == REJECT_KEYWORD:
            return await self._reject(command.code, event_id)

        logger.warning(f"Unknown action {command.action!r} for {command.code}, keeping it pending")
        await notify_approver(self.messenger, unknown_action_text(command.action, command.code))
        return ReplyOutcome.UNKNOWN_ACTION

    async def _confirm(self, code: str, event_id: str) -> ReplyOutcome:
        try:
            event = await self.calendar.get_event(event_id)
            private = {**event.private_properties, "status": AppointmentStatus.CONFIRMED.value}
            await self.calendar.patch_event(
                event_id,
                {"summary": confirmed_title(event, code), "extendedProperties": {"private": private}},
            )
        except CalendarError as e:
            return await self._failed(code, e)

        await self.store.pop(code)
        logger.info(f"Appointment {code} confirmed")
        await notify_approver(self.messenger, confirmed_text(code))
        return ReplyOutcome.CONFIRMED

    async def _reject(self, code: str, event_id: str) -> ReplyOutcome:
        try:
            await self.calendar.delete_event(event_id)
        except CalendarError as e:
            return await self._failed(code, e)

        await self.store.pop(code)
        logger.info(f"Appointment {code} rejected and removed from the calendar")
        await notify_approver(self.messenger, rejected_text(code))
        return ReplyOutcome.REJECTED

    async def _failed(self, code: str, error: CalendarError) -> ReplyOutcome:
        logger.error(f"❌ Calendar update for {code} failed: {error}")
        if error.gone:
            # the event no longer exists, so the code can never be processed
            await self.store.pop(code)
            logger.info(f"Dropped stale pending code {code}")
        await notify_approver(self.messenger, processing_error_text(code))
        return ReplyOutcome.FAILED
