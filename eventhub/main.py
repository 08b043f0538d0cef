"""
FastAPI application entry point.

This module initializes the FastAPI application, configures middleware,
and registers all API routers.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.logging_config import configure_logging

from .api.routers import admin_users, ai, auth

# Ensure logging is configured before the application starts serving requests.
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown events."""
    if os.getenv("SKIP_DB_INIT") == "1":
        logger.info("SKIP_DB_INIT=1 detected; skipping database bootstrap during startup")
        yield
        return

    from .core.security import init_auth_tables
    from .core.password_reset import init_password_reset_tables

    try:
        init_auth_tables()
        init_password_reset_tables()
        logger.info("Auth tables ready")
    except Exception:
        logger.exception("Failed to initialize database tables; refusing to start")
        raise

    yield


app = FastAPI(
    title="EventHub API",
    version="1.0.0",
    description="Sessions, password resets and AI helpers for the EventHub marketplace",
    lifespan=lifespan,
)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    # Session cookies must cross origins in development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin_users.router)
app.include_router(ai.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
