# turnbot/main.py
from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()

from .auth import channel_from_header, create_token
from .bot.handler import TurnContext, TurnHandler
from .bot.state import BotAccessors, ConversationState, CounterState
from .errors import BotError, ChannelAuthError, ConfigurationError, StateError, StorageUnavailable
from .log import setup_logging
from .schemas import Activity, ConversationStateOut, TurnResult
from .storage import MemoryStorage, SqlStorage, Storage

logger = logging.getLogger(__name__)


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    state_backend: str = os.getenv("STATE_BACKEND", "memory").strip().lower()
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./turnbot.db").strip()
    log_level: str = os.getenv("LOG_LEVEL", "INFO").strip()
    channel_auth_enabled: bool = os.getenv("CHANNEL_AUTH_ENABLED", "0").strip().lower() in {"1", "true", "yes"}
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256").strip()
    jwt_expire_min: int = int(os.getenv("JWT_EXPIRE_MIN", "1440"))

    def channel_token(self, channel_id: str) -> str:
        return create_token(channel_id, self.jwt_secret, self.jwt_alg, self.jwt_expire_min)


def build_storage(settings: Settings) -> Storage:
    if settings.state_backend == "memory":
        return MemoryStorage()
    if settings.state_backend == "sql":
        return SqlStorage(url=settings.database_url)
    raise ConfigurationError(
        f"Unknown state backend: {settings.state_backend!r}",
        details={"available": ["memory", "sql"]},
    )


# -------------------
# Helpers
# -------------------
def _error_body(exc: BotError) -> dict:
    return {
        "error": {
            "code": exc.code,
            "message": exc.message,
            "details": exc.details,
        }
    }


def create_app(settings: Settings | None = None, storage: Storage | None = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.log_level)

    if storage is None:
        storage = build_storage(settings)

    # Outlive a single turn: one per process.
    conversation_state = ConversationState(storage)
    accessors = BotAccessors(conversation_state)

    app = FastAPI(
        title="Turn Bot API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.accessors = accessors

    def require_channel(authorization: str | None = Header(default=None)) -> str | None:
        if not settings.channel_auth_enabled:
            return None
        return channel_from_header(authorization, settings.jwt_secret, settings.jwt_alg)

    # -------------------
    # Errors
    # -------------------
    @app.exception_handler(ChannelAuthError)
    async def channel_auth_handler(request: Request, exc: ChannelAuthError) -> JSONResponse:
        logger.warning(f"Rejected activity: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content=_error_body(exc),
        )

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable) -> JSONResponse:
        logger.error(f"Turn aborted, storage unavailable: {exc.details}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body(exc),
        )

    @app.exception_handler(StateError)
    async def state_error_handler(request: Request, exc: StateError) -> JSONResponse:
        logger.error(f"Turn aborted, state error: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(exc),
        )

    # -------------------
    # Health
    # -------------------
    @app.get("/")
    def root():
        return {"ok": True, "service": "turnbot"}

    # -------------------
    # Turns
    # -------------------
    @app.post("/api/messages", response_model=TurnResult)
    async def messages(activity: Activity, channel: str | None = Depends(require_channel)):
        turn_context = TurnContext(activity)

        # Transient: a new handler for every activity.
        handler = TurnHandler(accessors, logging.getLogger("turnbot.bot"))
        await handler.on_turn(turn_context)

        return TurnResult(
            conversation_id=turn_context.conversation_id,
            replies=turn_context.responses,
        )

    @app.get("/conversations/{conversation_id}/state", response_model=ConversationStateOut)
    async def conversation_state_view(conversation_id: str):
        bag = await storage.read(conversation_id) or {}
        raw = bag.get(accessors.counter_state.name)
        counter = CounterState() if raw is None else accessors.counter_state.parse(raw)
        return ConversationStateOut(conversation_id=conversation_id, turn_count=counter.turn_count)

    return app


app = create_app()
