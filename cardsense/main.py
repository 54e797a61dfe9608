"""FastAPI application entry point — wires everything together.

Usage:
    python -m cardsense.main
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cardsense import __version__
from cardsense.api import advisor, beginner, cards, profile, recommend, recommendations, spending
from cardsense.config import settings
from cardsense.db.engine import db_lifespan
from cardsense.errors import CardSenseError, RateLimitedError
from cardsense.events import emit, start_event_system, stop_event_system, subscribe
from cardsense.llm.client import llm_client
from cardsense.schemas.events import EventType, SystemEvent
from cardsense.security.audit import audit_on_event

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting CardSense (env=%s, llm_enabled=%s)", settings.environment, settings.llm.llm_enabled)

    # 1. Database
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Event system
        await start_event_system()

        # 3. Audit logging (global subscriber)
        subscribe(audit_on_event)
        logger.info("Audit logging subscriber registered")

        await emit(SystemEvent(
            event_type=EventType.SYSTEM_STARTUP,
            data={"environment": settings.environment, "version": __version__},
            source_module="main",
        ))

        try:
            yield
        finally:
            logger.info("Shutting down CardSense...")

            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))

            await llm_client.close()
            logger.info("LLM client closed")

            await stop_event_system()

    logger.info("CardSense shutdown complete")


# ── Error envelopes ──────────────────────────────────────────────────


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures are client errors: 400 with field-level detail."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid recommendation input",
                "details": {"errors": jsonable_encoder(exc.errors())},
            }
        },
    )


async def cardsense_error_handler(request: Request, exc: CardSenseError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimitedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "INTERNAL_SERVER_ERROR", "message": "Internal server error", "details": {}}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(CardSenseError, cardsense_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="CardSense API",
    description="Credit card recommendations for Indian users",
    version=__version__,
    lifespan=lifespan,
)
register_error_handlers(app)

app.include_router(beginner.router)
app.include_router(recommend.router)
app.include_router(recommendations.router)
app.include_router(cards.router)
app.include_router(advisor.router)
app.include_router(spending.router)
app.include_router(profile.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": __version__,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "cardsense.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
