import logging
import os

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import models  # noqa: F401  registers every table on Base.metadata
from app.core.config import Settings, get_settings
from app.core.errors import (
    ApiError,
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.core.logging import RequestIdMiddleware, configure_logging
from app.core.security import PasswordHasher, TokenIssuer
from app.db.base import Base
from app.db.session import make_engine, make_session_factory
from app.routers.users import router as users_router
from app.services.media import LocalMediaStore

logger = logging.getLogger("app")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the API. Run with ``uvicorn --factory app.main:create_app``.
    Tests pass their own ``Settings``; otherwise the environment / .env is read.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    engine = make_engine(settings.DATABASE_URL)
    Base.metadata.create_all(engine)

    app = FastAPI(title="VidTube Accounts API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    # fails fast on missing signing keys
    app.state.token_issuer = TokenIssuer.from_settings(settings)
    app.state.password_hasher = PasswordHasher.from_settings(settings)
    app.state.media_store = LocalMediaStore.from_settings(settings)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(users_router)

    os.makedirs(settings.MEDIA_ROOT, exist_ok=True)
    app.mount(
        settings.MEDIA_BASE_URL,
        StaticFiles(directory=settings.MEDIA_ROOT),
        name="media",
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/")
    def root():
        return {"status": "ok", "docs": "/docs"}

    logger.info("app ready env=%s", settings.ENV)
    return app
