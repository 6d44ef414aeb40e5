"""Tenant-scoped endpoints behind the rate limit middleware."""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Request

from hireflow_api.deps import (
    get_rate_limit_service,
    get_usage_aggregator,
    require_tenant,
)
from hireflow_api.schemas.rate_limit import RateLimitsResponse, UsageStatsResponse
from hireflow_api.services.rate_limit import RateLimitService
from hireflow_api.services.usage import UsageAggregator


router = APIRouter(prefix="/v1", tags=["tenant"])


@router.get("/rate-limits", response_model=RateLimitsResponse, summary="Effective rate limits")
async def get_rate_limits(
    tenant_id: str = Depends(require_tenant),
    service: RateLimitService = Depends(get_rate_limit_service),
) -> RateLimitsResponse:
    limits = await service.get_rate_limits(tenant_id)
    return RateLimitsResponse(tenant_id=tenant_id, **asdict(limits))


@router.get("/usage", response_model=UsageStatsResponse, summary="API usage over trailing days")
async def get_usage(
    request: Request,
    days: int = Query(30, ge=1),
    tenant_id: str = Depends(require_tenant),
    usage: UsageAggregator = Depends(get_usage_aggregator),
) -> UsageStatsResponse:
    days = min(days, request.app.state.settings.usage_stats_max_days)
    stats = await usage.get_usage_stats(tenant_id, days)
    return UsageStatsResponse(tenant_id=tenant_id, days=days, **asdict(stats))


@router.get("/public/status", summary="Anonymous status probe")
async def public_status(request: Request) -> dict:
    return {"status": "ok", "tenant_id": getattr(request.state, "tenant_id", None)}
