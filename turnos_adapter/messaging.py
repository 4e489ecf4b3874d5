"""
Twilio WhatsApp messaging client
Sends text messages from the bridge's fixed number, by default to the approver
"""
from __future__ import annotations
import logging

import httpx

from .config import RetryPolicy, Settings
from .errors import MessagingError
from .transport import request_with_retry

logger = logging.getLogger(__name__)

TWILIO_API = "https://api.twilio.com/2010-04-01"


class TwilioMessenger:
    def __init__(self, settings: Settings, retry: RetryPolicy | None = None):
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.sender = settings.twilio_whatsapp_number
        self.approver = settings.doctor_whatsapp_number
        self.retry = retry or settings.retry
        self._client = httpx.AsyncClient(base_url=TWILIO_API, timeout=settings.http_timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(self, body: str, to: str | None = None) -> str:
        """Send ``body`` and return the Twilio message SID.

        Only the API's immediate acceptance is awaited; delivery receipts are
        not tracked.
        """
        recipient = to or self.approver
        if not recipient:
            raise MessagingError("No recipient configured")
        if not self.account_sid or not self.auth_token:
            raise MessagingError("Twilio credentials are not configured")

        data = {"From": self.sender, "To": recipient, "Body": body}
        try:
            response = await request_with_retry(
                self._client,
                self.retry,
                "POST",
                f"/Accounts/{self.account_sid}/Messages.json",
                auth=(self.account_sid, self.auth_token),
                data=data,
            )
        except httpx.HTTPError as e:
            raise MessagingError(f"Twilio API error: {e}") from e

        if response.status_code not in (200, 201):
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            error_message = error_data.get("message", response.text or "Unknown error")
            error_code = error_data.get("code")
            raise MessagingError(f"[{error_code}] {error_message}" if error_code else error_message)

        message_sid = response.json().get("sid")
        logger.info(f"📱 Message sent to {recipient} (SID: {message_sid})")
        return message_sid
