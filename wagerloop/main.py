"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .routers import (
    auth_router,
    communities_router,
    follows_router,
    notifications_router,
    posts_router,
    realtime_router,
    users_router,
)

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

app = FastAPI(title=APP_NAME, version=API_VERSION)

if settings.cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(communities_router)
app.include_router(follows_router)
app.include_router(notifications_router)
app.include_router(posts_router)
app.include_router(realtime_router)
app.include_router(users_router)


@app.on_event("startup")
async def _startup() -> None:
    """Ensure the database schema exists before serving."""

    try:
        init_db()
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Database initialisation failed")
        raise
    logger.info("%s %s ready (public URL %s)", APP_NAME, API_VERSION, settings.public_base_url)


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok", "public_base_url": settings.public_base_url}
