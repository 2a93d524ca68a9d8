"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from listing_ai.api.dependencies import set_session_cookie
from listing_ai.api.routes import health, listings, marketplace
from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.config import settings
from listing_ai.domain.errors import MarketplaceError
from listing_ai.infrastructure.database.connection import engine
from listing_ai.infrastructure.memory.stores import (
    InMemoryAuthorizationStateStore,
    InMemoryTokenStore,
)
from listing_ai.infrastructure.messaging.noop_publisher import NoOpEventPublisher
from listing_ai.infrastructure.messaging.rabbitmq_publisher import RabbitMQPublisher
from listing_ai.logging_config import configure_logging

logger = structlog.get_logger(__name__)


def _build_event_publisher() -> EventPublisher:
    if settings.rabbitmq_url:
        return RabbitMQPublisher(settings.rabbitmq_url)
    return NoOpEventPublisher()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    app.state.token_store = InMemoryTokenStore()
    app.state.state_store = InMemoryAuthorizationStateStore()
    app.state.event_publisher = _build_event_publisher()
    logger.info(
        "listing_ai_starting",
        storage_backend=settings.storage_backend,
        ebay_environment=settings.ebay_environment,
    )
    yield
    logger.info("listing_ai_stopping")
    await engine.dispose()


async def _marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    logger.info("request_failed", path=request.url.path, reason=exc.reason, detail=exc.message)
    response = JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.reason, "detail": exc.message},
    )
    issued_session_id = getattr(request.state, "issued_session_id", None)
    if issued_session_id:
        set_session_cookie(response, issued_session_id)
    return response


def create_app() -> FastAPI:
    app = FastAPI(
        title="Listing AI",
        description="eBay connection and listing-publish service for AI-generated listings.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MarketplaceError, _marketplace_error_handler)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(marketplace.router)
    app.include_router(listings.router)

    return app


app = create_app()
