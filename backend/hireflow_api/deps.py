"""FastAPI dependency helpers.

Services are built once per application by ``create_app`` and kept on
``app.state``; these helpers hand them to route handlers.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, Request, status

from hireflow_api.core.config import Settings

if TYPE_CHECKING:
    from hireflow_api.security import ApiKeyManager
    from hireflow_api.services.events import RateLimitEventLogger
    from hireflow_api.services.rate_limit import RateLimitService
    from hireflow_api.services.tiers import SubscriptionRepository
    from hireflow_api.services.usage import UsageAggregator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limit_service(request: Request) -> "RateLimitService":
    return request.app.state.rate_limit_service


def get_api_key_manager(request: Request) -> "ApiKeyManager":
    return request.app.state.api_key_manager


def get_usage_aggregator(request: Request) -> "UsageAggregator":
    return request.app.state.usage_aggregator


def get_event_logger(request: Request) -> "RateLimitEventLogger":
    return request.app.state.event_logger


def get_subscription_repository(request: Request) -> "SubscriptionRepository":
    return request.app.state.subscriptions


def require_tenant(request: Request) -> str:
    """Tenant resolved by the rate limit middleware for this request."""

    tenant_id = getattr(request.state, "tenant_id", None)
    if not tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return tenant_id
