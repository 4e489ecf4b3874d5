"""Runtime settings for the scheduling bridge.

Values come from the environment (optionally a ``.env`` file). Nothing is
validated at startup: a missing calendar id or Twilio credential only shows
up as a failure on first use.
"""
from __future__ import annotations
import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel


class RetryPolicy(BaseModel):
    """How often an outbound call is re-attempted on transport errors or 5xx.

    Applies to idempotent requests only; inserts and message sends go out once.
    """
    max_retries: int = 0
    backoff: float = 0.5  # seconds, doubled after each attempt


class Settings(BaseModel):
    calendar_id: str | None = None
    google_credentials_file: str = "./credentials.json"

    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_whatsapp_number: str = "whatsapp:+14155238886"
    doctor_whatsapp_number: str | None = None

    pending_file_path: Path = Path("pending.json")
    port: int = 3000
    timezone: str = "America/Argentina/Buenos_Aires"
    appointment_duration: int = 30  # minutes
    http_timeout: float = 15.0
    http_max_retries: int = 0
    log_level: str = "INFO"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def retry(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.http_max_retries)

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "Settings":
        load_dotenv(env_file)
        values = {
            "calendar_id": os.getenv("CALENDAR_ID"),
            "google_credentials_file": os.getenv("GOOGLE_CREDENTIALS_FILE"),
            "twilio_account_sid": os.getenv("TWILIO_ACCOUNT_SID"),
            "twilio_auth_token": os.getenv("TWILIO_AUTH_TOKEN"),
            "twilio_whatsapp_number": os.getenv("TWILIO_WHATSAPP_NUMBER"),
            "doctor_whatsapp_number": os.getenv("DOCTOR_WHATSAPP_NUMBER"),
            "pending_file_path": os.getenv("PENDING_FILE_PATH"),
            "port": os.getenv("PORT"),
            "timezone": os.getenv("TIMEZONE"),
            "appointment_duration": os.getenv("APPOINTMENT_DURATION"),
            "http_timeout": os.getenv("HTTP_TIMEOUT"),
            "http_max_retries": os.getenv("HTTP_MAX_RETRIES"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        # unset variables fall back to the field defaults
        return cls(**{k: v for k, v in values.items() if v not in (None, "")})
