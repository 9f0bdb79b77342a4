# feedguard/main.py
"""
FastAPI application.

Run with:
    uvicorn feedguard.main:app --port 8080
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedguard import __version__
from feedguard.config import get_settings
from feedguard.llm import get_completion_provider
from feedguard.logging_config import configure_logging
from feedguard.middleware import BodySizeLimitMiddleware, RequestContextMiddleware
from feedguard.routers import chat_router, dialects_router, moderation_router, preferences_router
from feedguard.schemas.moderation import HealthResponse
from feedguard.services.preference_store import get_preference_store, run_periodic_flush

logger = logging.getLogger(__name__)

SERVICE_NAME = "feedguard"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    # Storage misconfiguration escapes here and fails startup
    store = get_preference_store()
    store.load()
    flush_task = asyncio.create_task(
        run_periodic_flush(store, settings.PREFERENCE_FLUSH_INTERVAL_SECONDS)
    )

    provider = get_completion_provider()
    logger.info(
        f"{SERVICE_NAME} {__version__} started (env={settings.ENVIRONMENT}, "
        f"completion={'on' if provider else 'off'})",
        extra={"event": "startup"},
    )

    try:
        yield
    finally:
        flush_task.cancel()
        try:
            await flush_task
        except asyncio.CancelledError:
            pass
        await asyncio.to_thread(store.flush)
        if provider is not None:
            await provider.close()
        logger.info(f"{SERVICE_NAME} stopped", extra={"event": "shutdown"})


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title="FeedGuard Moderation API", version=__version__, lifespan=lifespan)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_REQUEST_BYTES)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    # Added last so it wraps everything, including CORS and size rejections
    app.add_middleware(RequestContextMiddleware)

    app.include_router(moderation_router)
    app.include_router(preferences_router)
    app.include_router(dialects_router)
    app.include_router(chat_router)

    @app.get("/", response_model=HealthResponse)
    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            service=SERVICE_NAME,
            time=datetime.now(timezone.utc).isoformat(),
            completion_configured=get_completion_provider() is not None,
        )

    return app


app = create_app()
