"""Pydantic response models for rate limit and usage endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class RateLimitsResponse(BaseModel):
    tenant_id: str
    per_minute: int
    per_hour: int
    per_day: int


class DailyUsageItem(BaseModel):
    date: str = Field(..., description="UTC day, YYYY-MM-DD")
    requests: int


class UsageStatsResponse(BaseModel):
    tenant_id: str
    days: int
    total_requests: int
    total_success: int
    total_errors: int
    total_rate_limited: int
    avg_response_time_ms: int
    daily_usage: List[DailyUsageItem] = Field(default_factory=list)


class ApiKeyItem(BaseModel):
    id: str
    tenant_id: str
    name: str
    prefix: str
    last_four: str
    environment: str
    is_active: bool
    created_at: str
    expires_at: Optional[str] = None
    last_used_at: Optional[str] = None


class ApiKeyCreateResponse(ApiKeyItem):
    api_key: str = Field(..., description="Full secret, returned only at creation")


class SubscriptionResponse(BaseModel):
    tenant_id: str
    tier: str
    custom_rate_limit_per_minute: Optional[int] = None
    custom_rate_limit_per_hour: Optional[int] = None
    custom_rate_limit_per_day: Optional[int] = None
    effective: RateLimitsResponse


class RateLimitEventItem(BaseModel):
    tenant_id: str
    api_key_id: Optional[str] = None
    user_id: Optional[str] = None
    endpoint: str
    method: str
    limit_type: str
    limit_value: int
    current_count: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str
