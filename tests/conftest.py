import pytest
from fastapi.testclient import TestClient

from turnos_adapter.api import create_app
from turnos_adapter.config import Settings
from turnos_adapter.store import PendingStore

from .fakes import DOCTOR, FakeCalendar, FakeMessenger


@pytest.fixture
def settings(tmp_path):
    return Settings(
        calendar_id="clinic-calendar",
        twilio_account_sid="AC123",
        twilio_auth_token="secret",
        doctor_whatsapp_number=DOCTOR,
        pending_file_path=tmp_path / "pending.json",
    )


@pytest.fixture
def store(settings):
    return PendingStore(settings.pending_file_path)


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def client(settings, calendar, messenger, store):
    app = create_app(settings, calendar=calendar, messenger=messenger, store=store)
    with TestClient(app) as test_client:
        yield test_client
