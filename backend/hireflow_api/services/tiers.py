"""Subscription tiers and effective rate limit resolution per tenant."""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from hireflow_api.db import models


@dataclass(frozen=True, slots=True)
class TierLimits:
    requests_per_minute: int
    requests_per_hour: int
    requests_per_day: int


@dataclass(frozen=True, slots=True)
class RateLimits:
    """Effective limits for one tenant."""

    per_minute: int
    per_hour: int
    per_day: int


DEFAULT_TIER = "free"

SUBSCRIPTION_TIERS: Mapping[str, TierLimits] = MappingProxyType(
    {
        "free": TierLimits(requests_per_minute=10, requests_per_hour=100, requests_per_day=500),
        "starter": TierLimits(requests_per_minute=60, requests_per_hour=1_000, requests_per_day=10_000),
        "growth": TierLimits(requests_per_minute=300, requests_per_hour=10_000, requests_per_day=100_000),
        "enterprise": TierLimits(
            requests_per_minute=1_000, requests_per_hour=50_000, requests_per_day=1_000_000
        ),
    }
)


def resolve_rate_limits(subscription: models.TenantSubscription | None) -> RateLimits:
    """Tier defaults, overridden field by field by non-null custom limits.

    A missing subscription or an unknown tier falls back to the free tier.
    """
    if subscription is None:
        tier = SUBSCRIPTION_TIERS[DEFAULT_TIER]
        return RateLimits(tier.requests_per_minute, tier.requests_per_hour, tier.requests_per_day)

    tier = SUBSCRIPTION_TIERS.get(subscription.tier) or SUBSCRIPTION_TIERS[DEFAULT_TIER]
    return RateLimits(
        per_minute=_override(subscription.custom_rate_limit_per_minute, tier.requests_per_minute),
        per_hour=_override(subscription.custom_rate_limit_per_hour, tier.requests_per_hour),
        per_day=_override(subscription.custom_rate_limit_per_day, tier.requests_per_day),
    )


def _override(custom: int | None, default: int) -> int:
    return default if custom is None else int(custom)


class TierResolver:
    """Read-only view over tenant subscriptions."""

    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def get_subscription(self, tenant_id: str) -> models.TenantSubscription | None:
        async with self._session_maker() as session:
            return (
                await session.execute(
                    select(models.TenantSubscription)
                    .where(models.TenantSubscription.tenant_id == tenant_id)
                    .limit(1)
                )
            ).scalar_one_or_none()

    async def get_rate_limits(self, tenant_id: str) -> RateLimits:
        return resolve_rate_limits(await self.get_subscription(tenant_id))


class SubscriptionRepository:
    """Write side used by plan changes (admin surface and seed scripts)."""

    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def upsert(
        self,
        tenant_id: str,
        *,
        tier: str,
        custom_rate_limit_per_minute: int | None = None,
        custom_rate_limit_per_hour: int | None = None,
        custom_rate_limit_per_day: int | None = None,
    ) -> models.TenantSubscription:
        if tier not in SUBSCRIPTION_TIERS:
            raise ValueError(f"unknown subscription tier: {tier}")
        async with self._session_maker() as session:
            row = await session.get(models.TenantSubscription, tenant_id)
            if row is None:
                row = models.TenantSubscription(tenant_id=tenant_id)
                session.add(row)
            row.tier = tier
            row.custom_rate_limit_per_minute = custom_rate_limit_per_minute
            row.custom_rate_limit_per_hour = custom_rate_limit_per_hour
            row.custom_rate_limit_per_day = custom_rate_limit_per_day
            await session.commit()
            await session.refresh(row)
            return row


__all__ = [
    "DEFAULT_TIER",
    "RateLimits",
    "SUBSCRIPTION_TIERS",
    "SubscriptionRepository",
    "TierLimits",
    "TierResolver",
    "resolve_rate_limits",
]
