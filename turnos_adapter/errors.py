"""Exceptions raised by the collaborator clients and payload parsing."""


class BridgeError(Exception):
    """Base exception for the scheduling bridge."""
    pass


class CalendarError(BridgeError):
    """Calendar API call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def gone(self) -> bool:
        """True when the calendar reports the event no longer exists."""
        return self.status_code in (404, 410)


class MessagingError(BridgeError):
    """Outbound message could not be handed to Twilio."""
    pass


class PayloadError(BridgeError):
    """Conversation payload is missing context or required fields."""
    pass
