"""Admin endpoints for tenant API keys, subscriptions and usage (requires Basic auth)."""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from hireflow_api.deps import (
    get_api_key_manager,
    get_event_logger,
    get_subscription_repository,
    get_usage_aggregator,
)
from hireflow_api.schemas.rate_limit import (
    ApiKeyCreateResponse,
    ApiKeyItem,
    RateLimitEventItem,
    RateLimitsResponse,
    SubscriptionResponse,
    UsageStatsResponse,
)
from hireflow_api.security import ApiKeyManager, require_basic_user
from hireflow_api.services.events import RateLimitEventLogger
from hireflow_api.services.tiers import SubscriptionRepository, resolve_rate_limits
from hireflow_api.services.usage import UsageAggregator


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_basic_user)])


class ApiKeyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    environment: Optional[Literal["live", "test"]] = Field(
        default=None, description="Defaults to the configured API key environment"
    )
    expires_at: Optional[datetime] = Field(default=None, description="Optional expiry (ISO 8601)")


@router.post(
    "/tenants/{tenant_id}/api-keys",
    response_model=ApiKeyCreateResponse,
    status_code=201,
    summary="Issue an API key",
)
async def create_api_key(
    tenant_id: str,
    payload: ApiKeyCreateRequest,
    request: Request,
    manager: ApiKeyManager = Depends(get_api_key_manager),
) -> ApiKeyCreateResponse:
    environment = payload.environment or request.app.state.settings.api_key_environment
    rec, full_key = await manager.issue_api_key(
        tenant_id=tenant_id,
        name=payload.name,
        environment=environment,
        expires_at=payload.expires_at,
    )
    return ApiKeyCreateResponse(**asdict(rec), api_key=full_key)


@router.get("/tenants/{tenant_id}/api-keys", response_model=List[ApiKeyItem], summary="List API keys")
async def list_api_keys(
    tenant_id: str,
    manager: ApiKeyManager = Depends(get_api_key_manager),
) -> list[ApiKeyItem]:
    return [ApiKeyItem(**asdict(rec)) for rec in await manager.list_api_keys(tenant_id)]


@router.delete("/api-keys/{key_id}", summary="Revoke an API key")
async def revoke_api_key(
    key_id: str,
    manager: ApiKeyManager = Depends(get_api_key_manager),
) -> dict:
    if not await manager.revoke_api_key(key_id):
        raise HTTPException(status_code=404, detail="API key not found")
    return {"revoked": True}


class SubscriptionUpdateRequest(BaseModel):
    tier: Literal["free", "starter", "growth", "enterprise"]
    custom_rate_limit_per_minute: Optional[int] = Field(default=None, ge=1)
    custom_rate_limit_per_hour: Optional[int] = Field(default=None, ge=1)
    custom_rate_limit_per_day: Optional[int] = Field(default=None, ge=1)


@router.put(
    "/tenants/{tenant_id}/subscription",
    response_model=SubscriptionResponse,
    summary="Set tenant tier and rate limit overrides",
)
async def put_subscription(
    tenant_id: str,
    payload: SubscriptionUpdateRequest,
    repo: SubscriptionRepository = Depends(get_subscription_repository),
) -> SubscriptionResponse:
    row = await repo.upsert(tenant_id, **payload.model_dump())
    limits = resolve_rate_limits(row)
    return SubscriptionResponse(
        tenant_id=row.tenant_id,
        tier=row.tier,
        custom_rate_limit_per_minute=row.custom_rate_limit_per_minute,
        custom_rate_limit_per_hour=row.custom_rate_limit_per_hour,
        custom_rate_limit_per_day=row.custom_rate_limit_per_day,
        effective=RateLimitsResponse(tenant_id=row.tenant_id, **asdict(limits)),
    )


@router.get("/tenants/{tenant_id}/usage", response_model=UsageStatsResponse, summary="Tenant API usage")
async def get_tenant_usage(
    tenant_id: str,
    request: Request,
    days: int = Query(30, ge=1),
    usage: UsageAggregator = Depends(get_usage_aggregator),
) -> UsageStatsResponse:
    days = min(days, request.app.state.settings.usage_stats_max_days)
    stats = await usage.get_usage_stats(tenant_id, days)
    return UsageStatsResponse(tenant_id=tenant_id, days=days, **asdict(stats))


@router.get(
    "/tenants/{tenant_id}/rate-limit-events",
    response_model=List[RateLimitEventItem],
    summary="Denied requests for a tenant",
)
async def list_rate_limit_events(
    tenant_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    limit_type: Optional[Literal["per_minute", "per_hour", "per_day"]] = Query(None),
    since: Optional[datetime] = Query(None, description="Only events at or after this time (ISO 8601)"),
    events: RateLimitEventLogger = Depends(get_event_logger),
) -> list[RateLimitEventItem]:
    records = await events.list_events(
        tenant_id, limit=limit, offset=offset, limit_type=limit_type, since=since
    )
    return [RateLimitEventItem(**asdict(rec)) for rec in records]
