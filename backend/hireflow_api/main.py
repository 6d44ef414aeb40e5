"""FastAPI application entrypoint for the Hireflow API backend."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from hireflow_api.api.middleware import RateLimitMiddleware
from hireflow_api.api.routes import api_router
from hireflow_api.core.config import Settings, get_settings
from hireflow_api.db.session import create_tables, get_async_engine, get_session_maker
from hireflow_api.security import ApiKeyManager
from hireflow_api.services.events import RateLimitEventLogger
from hireflow_api.services.rate_limit import RateLimitService, WindowStore
from hireflow_api.services.tiers import SubscriptionRepository, TierResolver
from hireflow_api.services.usage import UsageAggregator
from hireflow_api.services.users import UserDirectory


class HealthResponse(BaseModel):
    status: str = "ok"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build an application with its own window store and service objects."""

    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if settings.database_create_tables:
            await create_tables(settings)
        yield
        await get_async_engine(settings).dispose()

    app = FastAPI(title="Hireflow API", version="0.1.0", lifespan=lifespan)

    session_maker = get_session_maker(settings)
    events = RateLimitEventLogger(session_maker)
    service = RateLimitService(
        TierResolver(session_maker),
        WindowStore(
            max_keys=settings.rate_limit_max_keys,
            sweep_interval_seconds=settings.rate_limit_sweep_interval_seconds,
        ),
        events,
    )
    api_keys = ApiKeyManager(session_maker)
    usage = UsageAggregator(session_maker)

    app.state.settings = settings
    app.state.rate_limit_service = service
    app.state.api_key_manager = api_keys
    app.state.usage_aggregator = usage
    app.state.event_logger = events
    app.state.subscriptions = SubscriptionRepository(session_maker)

    # CORS must stay outside the rate limiter
    app.middleware("http")(
        RateLimitMiddleware(
            service=service,
            api_keys=api_keys,
            users=UserDirectory(session_maker),
            usage=usage,
            path_prefix=settings.rate_limit_path_prefix,
            anonymous_paths=settings.rate_limit_anonymous_paths,
        )
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "Retry-After",
            "X-RateLimit-Limit-Minute",
            "X-RateLimit-Limit-Hour",
            "X-RateLimit-Limit-Day",
        ],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check() -> HealthResponse:
        """Return service health information for monitoring and load-balancers."""
        return HealthResponse()

    return app


app = create_app()
