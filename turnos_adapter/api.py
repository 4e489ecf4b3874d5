import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Form, Request, Response

from .calendar import GoogleCalendarClient
from .config import Settings
from .messaging import TwilioMessenger
from .models import WebhookRequest, WebhookResponse
from .replies import ReplyInterpreter
from .store import PendingStore
from .webhook import IntentRouter

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

router = APIRouter()


def get_intent_router(request: Request) -> IntentRouter:
    return request.app.state.intent_router


def get_reply_interpreter(request: Request) -> ReplyInterpreter:
    return request.app.state.reply_interpreter


@router.get("/")
async def health():
    """Health check endpoint."""
    return {"message": "Turnos scheduling bridge is running", "status": "healthy"}


@router.post("/webhook", response_model=WebhookResponse, response_model_exclude_none=True)
async def webhook(payload: WebhookRequest, intents: IntentRouter = Depends(get_intent_router)):
    """Fulfillment webhook: exactly one reply per conversation turn."""
    return await intents.dispatch(payload)


@router.post("/twilio-reply", status_code=204, response_class=Response)
async def twilio_reply(
    background_tasks: BackgroundTasks,
    sender: str = Form("", alias="From"),
    body: str = Form("", alias="Body"),
    replies: ReplyInterpreter = Depends(get_reply_interpreter),
):
    """Acknowledge Twilio right away; the reply is processed after the response is sent."""
    logger.info(f"Inbound WhatsApp message from {sender}: {body!r}")
    background_tasks.add_task(replies.handle, sender, body)
    return Response(status_code=204)


def create_app(settings: Settings | None = None, calendar=None, messenger=None, store=None) -> FastAPI:
    """Build the app. Settings and any collaborator not injected here are
    created when the application starts and closed when it shuts down."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings if settings is not None else Settings.from_env()
        logging.getLogger().setLevel(app_settings.log_level.upper())

        owned = []
        app_calendar = calendar
        if app_calendar is None:
            app_calendar = GoogleCalendarClient(app_settings)
            owned.append(app_calendar)
        app_messenger = messenger
        if app_messenger is None:
            app_messenger = TwilioMessenger(app_settings)
            owned.append(app_messenger)
        app_store = store if store is not None else PendingStore(app_settings.pending_file_path)
        logger.info(f"Pending store file: {app_store.path}")

        app.state.settings = app_settings
        app.state.intent_router = IntentRouter(app_settings, app_store, app_calendar, app_messenger)
        app.state.reply_interpreter = ReplyInterpreter(
            app_settings.doctor_whatsapp_number, app_store, app_calendar, app_messenger
        )
        try:
            yield
        finally:
            for client in owned:
                await client.aclose()

    app = FastAPI(title="Turnos Scheduling Bridge", lifespan=lifespan)
    app.include_router(router)
    return app


def main() -> None:
    settings = Settings.from_env()
    logger.info(f"Listening on port {settings.port}")
    uvicorn.run("turnos_adapter.api:create_app", factory=True, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
