"""In-memory fixed-window rate limiting keyed by tenant identity.

Each identity key (``tenant_id:api_key_id|user_id|anonymous``) owns three
independent windows: per minute, per hour and per day. State is process-local;
a multi-instance deployment enforces limits per instance.
"""
from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Callable

from hireflow_api.services.events import RateLimitEventLogger, RateLimitEventRecord
from hireflow_api.services.tiers import RateLimits, TierResolver

MINUTE_SECONDS = 60.0
HOUR_SECONDS = 3_600.0
DAY_SECONDS = 86_400.0

PER_MINUTE = "per_minute"
PER_HOUR = "per_hour"
PER_DAY = "per_day"


@dataclass(slots=True)
class RateLimitWindow:
    count: int
    reset_at: float


@dataclass(slots=True)
class WindowSet:
    per_minute: RateLimitWindow
    per_hour: RateLimitWindow
    per_day: RateLimitWindow


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limits: RateLimits
    limit_type: str | None = None
    limit: int | None = None
    current: int | None = None
    retry_after: int | None = None


class WindowStore:
    """Fixed windows per identity key with idle sweep and an LRU cap.

    Callers mutate windows only while holding ``lock``.
    """

    def __init__(
        self,
        *,
        max_keys: int = 100_000,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._windows: OrderedDict[str, WindowSet] = OrderedDict()
        self._max_keys = max(1, max_keys)
        self._sweep_interval = max(0.0, float(sweep_interval_seconds))
        self._clock = clock
        self._last_sweep = clock()
        self.lock = threading.RLock()

    @property
    def max_keys(self) -> int:
        return self._max_keys

    @property
    def sweep_interval_seconds(self) -> float:
        return self._sweep_interval

    def now(self) -> float:
        return self._clock()

    def get_or_create_windows(self, key: str) -> WindowSet:
        with self.lock:
            now = self._clock()
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            windows = self._windows.get(key)
            if windows is None:
                windows = WindowSet(
                    per_minute=RateLimitWindow(0, now + MINUTE_SECONDS),
                    per_hour=RateLimitWindow(0, now + HOUR_SECONDS),
                    per_day=RateLimitWindow(0, now + DAY_SECONDS),
                )
                self._windows[key] = windows
                while len(self._windows) > self._max_keys:
                    self._windows.popitem(last=False)
                return windows

            self._windows.move_to_end(key)
            if now >= windows.per_minute.reset_at:
                windows.per_minute = RateLimitWindow(0, now + MINUTE_SECONDS)
            if now >= windows.per_hour.reset_at:
                windows.per_hour = RateLimitWindow(0, now + HOUR_SECONDS)
            if now >= windows.per_day.reset_at:
                windows.per_day = RateLimitWindow(0, now + DAY_SECONDS)
            return windows

    def snapshot(self, key: str) -> WindowSet | None:
        """Copy of the current windows for ``key`` without advancing them."""
        with self.lock:
            windows = self._windows.get(key)
            if windows is None:
                return None
            return WindowSet(
                per_minute=replace(windows.per_minute),
                per_hour=replace(windows.per_hour),
                per_day=replace(windows.per_day),
            )

    def _sweep(self, now: float) -> None:
        # Once the day window has lapsed, every window of the entry has.
        idle = [key for key, windows in self._windows.items() if now >= windows.per_day.reset_at]
        for key in idle:
            del self._windows[key]
        self._last_sweep = now

    def __len__(self) -> int:
        return len(self._windows)


def identity_key(tenant_id: str, api_key_id: str | None = None, user_id: str | None = None) -> str:
    return f"{tenant_id}:{api_key_id or user_id or 'anonymous'}"


class RateLimitService:
    """Allow/deny decisions for tenant requests."""

    def __init__(
        self,
        tiers: TierResolver,
        windows: WindowStore | None = None,
        events: RateLimitEventLogger | None = None,
    ) -> None:
        self._tiers = tiers
        self._windows = windows if windows is not None else WindowStore()
        self._events = events

    @property
    def windows(self) -> WindowStore:
        return self._windows

    async def get_rate_limits(self, tenant_id: str) -> RateLimits:
        return await self._tiers.get_rate_limits(tenant_id)

    async def check_rate_limit(
        self,
        tenant_id: str,
        api_key_id: str | None = None,
        user_id: str | None = None,
    ) -> RateLimitDecision:
        limits = await self._tiers.get_rate_limits(tenant_id)
        # No await past this point: the window check and increment must not interleave.
        return self.consume(identity_key(tenant_id, api_key_id, user_id), limits)

    def consume(self, key: str, limits: RateLimits) -> RateLimitDecision:
        """Evaluate minute, hour, day in order; count the request only if all pass."""
        with self._windows.lock:
            windows = self._windows.get_or_create_windows(key)
            now = self._windows.now()
            checks = (
                (PER_MINUTE, windows.per_minute, limits.per_minute),
                (PER_HOUR, windows.per_hour, limits.per_hour),
                (PER_DAY, windows.per_day, limits.per_day),
            )
            for limit_type, window, limit in checks:
                if window.count >= limit:
                    return RateLimitDecision(
                        allowed=False,
                        limits=limits,
                        limit_type=limit_type,
                        limit=limit,
                        current=window.count,
                        retry_after=max(1, math.ceil(window.reset_at - now)),
                    )
            windows.per_minute.count += 1
            windows.per_hour.count += 1
            windows.per_day.count += 1
            return RateLimitDecision(allowed=True, limits=limits)

    async def log_rate_limit_event(self, record: RateLimitEventRecord) -> None:
        if self._events is None:
            return
        await self._events.log(record)


__all__ = [
    "PER_DAY",
    "PER_HOUR",
    "PER_MINUTE",
    "RateLimitDecision",
    "RateLimitService",
    "RateLimitWindow",
    "WindowSet",
    "WindowStore",
    "identity_key",
]
