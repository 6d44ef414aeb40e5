"""Append-only log of rate limit denials.

One row per denied request: who, where, which limit fired and client metadata.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from hireflow_api.db import models


@dataclass(slots=True)
class RateLimitEventRecord:
    tenant_id: str
    endpoint: str
    method: str
    limit_type: str
    limit_value: int
    current_count: int
    api_key_id: str | None = None
    user_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    # Filled in when read back
    created_at: str | None = None


class RateLimitEventLogger:
    def __init__(
        self,
        session_maker: async_sessionmaker,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._session_maker = session_maker
        self._clock = clock

    async def log(self, record: RateLimitEventRecord) -> None:
        async with self._session_maker() as session:
            session.add(
                models.RateLimitEvent(
                    tenant_id=record.tenant_id,
                    api_key_id=record.api_key_id,
                    user_id=record.user_id,
                    endpoint=record.endpoint,
                    method=record.method,
                    limit_type=record.limit_type,
                    limit_value=record.limit_value,
                    current_count=record.current_count,
                    ip_address=record.ip_address,
                    user_agent=record.user_agent[:256] if record.user_agent else None,
                    created_at=self._clock(),
                )
            )
            await session.commit()

    async def list_events(
        self,
        tenant_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        limit_type: str | None = None,
        since: datetime | None = None,
    ) -> list[RateLimitEventRecord]:
        filters = [models.RateLimitEvent.tenant_id == tenant_id]
        if limit_type:
            filters.append(models.RateLimitEvent.limit_type == limit_type)
        if since:
            filters.append(models.RateLimitEvent.created_at >= since)
        stmt: Select[models.RateLimitEvent] = (
            select(models.RateLimitEvent)
            .where(*filters)
            .order_by(models.RateLimitEvent.created_at.desc(), models.RateLimitEvent.id.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_maker() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [
            RateLimitEventRecord(
                tenant_id=row.tenant_id,
                endpoint=row.endpoint,
                method=row.method,
                limit_type=row.limit_type,
                limit_value=row.limit_value,
                current_count=row.current_count,
                api_key_id=row.api_key_id,
                user_id=row.user_id,
                ip_address=row.ip_address,
                user_agent=row.user_agent,
                created_at=row.created_at.isoformat(),
            )
            for row in rows
        ]


__all__ = ["RateLimitEventLogger", "RateLimitEventRecord"]
