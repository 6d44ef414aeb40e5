"""Hourly API usage rollups.

Every tracked request increments one row keyed by
``(tenant_id, api_key_id, hour_timestamp, endpoint, method)``. The increment
is a single ``INSERT ... ON CONFLICT DO UPDATE`` so concurrent writers on the
same bucket never lose updates.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hireflow_api.db import models

_UUID_SEGMENT = re.compile(
    r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}(?=/|$)",
    re.IGNORECASE,
)


def normalize_endpoint(path: str) -> str:
    """Replace UUID path segments with ``:id`` so entity ids share one row."""
    return _UUID_SEGMENT.sub("/:id", path)


def hour_bucket(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def classify_status(status_code: int) -> tuple[int, int, int]:
    """Return (success, error, rate_limited) deltas for a status code."""
    success = 1 if 200 <= status_code < 400 else 0
    rate_limited = 1 if status_code == 429 else 0
    error = 1 if 400 <= status_code < 500 and not rate_limited else 0
    return success, error, rate_limited


@dataclass(slots=True)
class DailyUsage:
    date: str
    requests: int


@dataclass(slots=True)
class UsageStats:
    total_requests: int = 0
    total_success: int = 0
    total_errors: int = 0
    total_rate_limited: int = 0
    avg_response_time_ms: int = 0
    daily_usage: list[DailyUsage] = field(default_factory=list)


def _insert_for(dialect_name: str) -> Callable[..., Any]:
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"usage upsert is not supported on {dialect_name}")
    return insert


class UsageAggregator:
    def __init__(
        self,
        session_maker: async_sessionmaker,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._session_maker = session_maker
        self._clock = clock

    async def track_usage(
        self,
        *,
        tenant_id: str,
        endpoint: str,
        method: str,
        status_code: int,
        response_time_ms: float,
        api_key_id: str | None = None,
    ) -> None:
        success, error, rate_limited = classify_status(status_code)
        table = models.ApiUsageHourly.__table__
        async with self._session_maker() as session:
            insert = _insert_for(_dialect_name(session))
            stmt = insert(table).values(
                tenant_id=tenant_id,
                api_key_id=api_key_id or models.NO_API_KEY,
                hour_timestamp=hour_bucket(self._clock()),
                endpoint=normalize_endpoint(endpoint)[:512],
                method=method.upper(),
                request_count=1,
                success_count=success,
                error_count=error,
                rate_limited_count=rate_limited,
                total_response_time_ms=float(response_time_ms),
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[
                    table.c.tenant_id,
                    table.c.api_key_id,
                    table.c.hour_timestamp,
                    table.c.endpoint,
                    table.c.method,
                ],
                set_={
                    "request_count": table.c.request_count + 1,
                    "success_count": table.c.success_count + success,
                    "error_count": table.c.error_count + error,
                    "rate_limited_count": table.c.rate_limited_count + rate_limited,
                    "total_response_time_ms": table.c.total_response_time_ms + float(response_time_ms),
                },
            )
            await session.execute(stmt)
            await session.commit()

    async def get_usage_stats(self, tenant_id: str, days: int = 30) -> UsageStats:
        since = self._clock() - timedelta(days=days)
        filters = (
            models.ApiUsageHourly.tenant_id == tenant_id,
            models.ApiUsageHourly.hour_timestamp >= since,
        )
        day = func.date(models.ApiUsageHourly.hour_timestamp)
        totals_stmt = select(
            func.coalesce(func.sum(models.ApiUsageHourly.request_count), 0),
            func.coalesce(func.sum(models.ApiUsageHourly.success_count), 0),
            func.coalesce(func.sum(models.ApiUsageHourly.error_count), 0),
            func.coalesce(func.sum(models.ApiUsageHourly.rate_limited_count), 0),
            func.coalesce(func.sum(models.ApiUsageHourly.total_response_time_ms), 0),
        ).where(*filters)
        daily_stmt = (
            select(day.label("day"), func.sum(models.ApiUsageHourly.request_count))
            .where(*filters)
            .group_by(day)
            .order_by(day)
        )
        async with self._session_maker() as session:
            requests, success, errors, rate_limited, total_ms = (
                await session.execute(totals_stmt)
            ).one()
            daily_rows = (await session.execute(daily_stmt)).all()

        requests = int(requests or 0)
        return UsageStats(
            total_requests=requests,
            total_success=int(success or 0),
            total_errors=int(errors or 0),
            total_rate_limited=int(rate_limited or 0),
            avg_response_time_ms=round(float(total_ms or 0) / requests) if requests else 0,
            daily_usage=[
                DailyUsage(date=_date_str(value), requests=int(count or 0))
                for value, count in daily_rows
            ],
        )


def _dialect_name(session: AsyncSession) -> str:
    bind = session.bind
    if bind is None:
        raise RuntimeError("usage session is not bound to an engine")
    return bind.dialect.name


def _date_str(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)


__all__ = [
    "DailyUsage",
    "UsageAggregator",
    "UsageStats",
    "classify_status",
    "hour_bucket",
    "normalize_endpoint",
]
