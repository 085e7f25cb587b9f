"""
Bachelor Fantasy League API Server

FastAPI server for leagues, drafts, live episode scoring and standings.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import os
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from bachelor_league.api.routes import router, limiter as routes_limiter
from bachelor_league.api.error_handlers import setup_error_handlers
from bachelor_league.database import db
from bachelor_league.database.db import get_db_session
from bachelor_league.models.schemas import HealthResponse, default_scoring_rules
from bachelor_league.services.notification_cleanup_service import (
    get_notification_cleanup_service,
)

# Allow log level to be configured via environment variable (default: INFO)
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    logger.info("Starting up Bachelor Fantasy League API...")

    # Create tables not yet covered by migrations
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    try:
        cleanup_service = get_notification_cleanup_service()
        cleanup_service.start()
        logger.info("✓ Notification cleanup worker started")
    except Exception as e:
        logger.error(f"Failed to start notification cleanup worker: {e}", exc_info=True)

    yield  # App is running

    logger.info("Shutting down Bachelor Fantasy League API...")

    try:
        cleanup_service = get_notification_cleanup_service()
        cleanup_service.stop()
        logger.info("✓ Notification cleanup worker stopped")
    except Exception as e:
        logger.error(f"Error stopping notification cleanup worker: {e}", exc_info=True)

    await db.dispose_engine()


app = FastAPI(
    title="Bachelor Fantasy League API",
    description="API for fantasy leagues built around The Bachelor: drafts, live scoring and standings",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
setup_error_handlers(app)

# Add CORS middleware; origins configured via ALLOWED_ORIGINS env var
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/api/health", response_model=HealthResponse)
async def health_check(session: AsyncSession = Depends(get_db_session)):
    """Health check endpoint."""
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.warning(f"Health check database probe failed: {e}")
        return {"status": "unhealthy", "database": "unavailable"}


@app.get("/api/scoring-categories")
async def get_scoring_categories():
    """Default point values for each scoring action."""
    return [rule.model_dump() for rule in default_scoring_rules()]


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
