"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
routers, and the health endpoint. The module-level ``app`` instance
allows ``uvicorn src.api.app:app --reload``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import register_error_handlers
from src.api.routes import auth, workflow
from src.core.config import get_settings
from src.core.models import HealthResponse
from src.services import workflow as workflow_service
from src.services.auth import create_identity_provider
from src.services.auth import session as session_state
from src.services.storage.database import close_db, init_db


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Startup: create the SQLite tables when saving locally, and subscribe to
    the identity provider's session changes.
    Shutdown: release the microphone and store clients, unsubscribe from
    the identity provider, then dispose the DB engine.
    """
    settings = get_settings()
    if settings.persistence_provider == "sqlite":
        await init_db()
    if session_state.get_provider() is None:
        session_state.init_session_state(create_identity_provider())
    yield
    await workflow_service.cleanup()
    await session_state.teardown_session_state()
    await close_db()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application.

    Returns:
        FastAPI: The configured application, ready for ``uvicorn``.
    """
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Amharic Voice",
        description="Record or upload speech, transcribe it with Gemini or Whisper, "
        "translate, edit, and save.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # -- CORS --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(workflow.router, prefix="/api/v1")

    return app


app = create_app()
