"""Tests for tier defaults and per-tenant overrides."""
from __future__ import annotations

import pytest

from hireflow_api.db import models
from hireflow_api.db.session import create_tables, get_async_engine, get_session_maker
from hireflow_api.services.tiers import (
    SUBSCRIPTION_TIERS,
    RateLimits,
    SubscriptionRepository,
    TierResolver,
    resolve_rate_limits,
)


def test_missing_subscription_gets_free_tier() -> None:
    assert resolve_rate_limits(None) == RateLimits(per_minute=10, per_hour=100, per_day=500)


def test_tier_defaults_apply_without_overrides() -> None:
    sub = models.TenantSubscription(tenant_id="t1", tier="growth")
    growth = SUBSCRIPTION_TIERS["growth"]
    assert resolve_rate_limits(sub) == RateLimits(
        growth.requests_per_minute, growth.requests_per_hour, growth.requests_per_day
    )


def test_overrides_apply_per_field() -> None:
    sub = models.TenantSubscription(tenant_id="t1", tier="starter", custom_rate_limit_per_hour=5_000)
    limits = resolve_rate_limits(sub)
    assert limits.per_hour == 5_000
    assert limits.per_minute == SUBSCRIPTION_TIERS["starter"].requests_per_minute
    assert limits.per_day == SUBSCRIPTION_TIERS["starter"].requests_per_day


def test_unknown_tier_falls_back_to_free() -> None:
    sub = models.TenantSubscription(tenant_id="t1", tier="platinum", custom_rate_limit_per_day=42)
    assert resolve_rate_limits(sub) == RateLimits(per_minute=10, per_hour=100, per_day=42)


def test_tier_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        SUBSCRIPTION_TIERS["free"] = SUBSCRIPTION_TIERS["enterprise"]  # type: ignore[index]


@pytest.mark.anyio
async def test_resolver_reads_stored_subscription(settings) -> None:
    await create_tables(settings)
    session_maker = get_session_maker(settings)
    repo = SubscriptionRepository(session_maker)
    resolver = TierResolver(session_maker)

    assert await resolver.get_rate_limits("t1") == resolve_rate_limits(None)

    await repo.upsert("t1", tier="enterprise", custom_rate_limit_per_minute=7)
    limits = await resolver.get_rate_limits("t1")
    assert limits.per_minute == 7
    assert limits.per_hour == SUBSCRIPTION_TIERS["enterprise"].requests_per_hour

    await repo.upsert("t1", tier="starter")
    assert (await resolver.get_rate_limits("t1")).per_minute == SUBSCRIPTION_TIERS["starter"].requests_per_minute

    with pytest.raises(ValueError):
        await repo.upsert("t1", tier="platinum")
    await get_async_engine(settings).dispose()
