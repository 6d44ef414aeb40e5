"""Rate limiting and usage tracking middleware for tenant-scoped routes."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask, BackgroundTasks

from hireflow_api.security import ApiKeyManager
from hireflow_api.services.events import RateLimitEventRecord
from hireflow_api.services.rate_limit import RateLimitDecision, RateLimitService
from hireflow_api.services.tiers import RateLimits
from hireflow_api.services.usage import UsageAggregator
from hireflow_api.services.users import UserDirectory

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

API_KEY_SCHEME = "Bearer sk_"


@dataclass(frozen=True, slots=True)
class RequestIdentity:
    tenant_id: str
    api_key_id: str | None = None
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class _Admitted:
    identity: RequestIdentity
    decision: RateLimitDecision


def limit_headers(limits: RateLimits) -> dict[str, str]:
    return {
        "X-RateLimit-Limit-Minute": str(limits.per_minute),
        "X-RateLimit-Limit-Hour": str(limits.per_hour),
        "X-RateLimit-Limit-Day": str(limits.per_day),
    }


class RateLimitMiddleware:
    """Identity resolution, rate limit enforcement and usage tracking.

    Registered with ``app.middleware("http")``. Only paths under
    ``path_prefix`` are guarded; paths under one of ``anonymous_paths`` may be
    called without credentials, in which case nothing is limited or tracked.
    Failures of the limiting pipeline itself let the request through.
    """

    def __init__(
        self,
        *,
        service: RateLimitService,
        api_keys: ApiKeyManager,
        users: UserDirectory,
        usage: UsageAggregator,
        path_prefix: str = "/api/v1",
        anonymous_paths: Iterable[str] = (),
    ) -> None:
        self._service = service
        self._api_keys = api_keys
        self._users = users
        self._usage = usage
        self._path_prefix = path_prefix.rstrip("/")
        self._anonymous_paths = tuple(p.rstrip("/") for p in anonymous_paths)

    def applies_to(self, path: str) -> bool:
        return _under(path, self._path_prefix)

    def allows_anonymous(self, path: str) -> bool:
        return any(_under(path, prefix) for prefix in self._anonymous_paths)

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        if not self.applies_to(request.url.path):
            return await call_next(request)

        started = time.perf_counter()
        try:
            outcome = await self._admit(request)
        except Exception:
            logger.exception("Rate limit middleware error", extra={"path": request.url.path})
            return await call_next(request)

        if isinstance(outcome, Response):
            return outcome
        if outcome is None:
            return await call_next(request)

        response = await call_next(request)
        response.headers.update(limit_headers(outcome.decision.limits))
        self._track_after_response(response, request, outcome.identity, started)
        return response

    async def _admit(self, request: Request) -> _Admitted | Response | None:
        authorization = request.headers.get("authorization") or ""
        identity: RequestIdentity | None = None

        if authorization.startswith(API_KEY_SCHEME):
            key = await self._api_keys.validate_api_key(
                authorization[len("Bearer "):].strip(), ip_address=_client_ip(request)
            )
            if key is None:
                logger.info("Rejected invalid API key", extra={"path": request.url.path})
                return JSONResponse(
                    status_code=401,
                    content={"error": "invalid_api_key", "message": "Invalid or revoked API key"},
                )
            request.state.api_key = key
            identity = RequestIdentity(tenant_id=key.tenant_id, api_key_id=key.id)
        else:
            user_id = getattr(request.state, "user_id", None)
            if user_id:
                user = await self._users.get_user(user_id)
                if user is not None and user.tenant_id:
                    identity = RequestIdentity(tenant_id=user.tenant_id, user_id=user.id)

        if identity is None:
            if self.allows_anonymous(request.url.path):
                return None
            return JSONResponse(
                status_code=401,
                content={"error": "unauthorized", "message": "Authentication required"},
            )

        # Visible downstream even when the decision below raises.
        request.state.tenant_id = identity.tenant_id
        decision = await self._service.check_rate_limit(
            identity.tenant_id, identity.api_key_id, identity.user_id
        )
        if not decision.allowed:
            return await self._deny(request, identity, decision)

        return _Admitted(identity=identity, decision=decision)

    async def _deny(
        self, request: Request, identity: RequestIdentity, decision: RateLimitDecision
    ) -> Response:
        logger.warning(
            "Rate limit exceeded",
            extra={
                "tenant_id": identity.tenant_id,
                "api_key_id": identity.api_key_id,
                "user_id": identity.user_id,
                "limit_type": decision.limit_type,
                "limit": decision.limit,
            },
        )
        try:
            await self._service.log_rate_limit_event(
                RateLimitEventRecord(
                    tenant_id=identity.tenant_id,
                    api_key_id=identity.api_key_id,
                    user_id=identity.user_id,
                    endpoint=request.url.path,
                    method=request.method,
                    limit_type=decision.limit_type or "",
                    limit_value=decision.limit or 0,
                    current_count=decision.current or 0,
                    ip_address=_client_ip(request),
                    user_agent=request.headers.get("user-agent"),
                )
            )
        except Exception:
            logger.warning("Failed to record rate limit event", exc_info=True)

        headers = limit_headers(decision.limits)
        headers["Retry-After"] = str(decision.retry_after)
        return JSONResponse(
            status_code=429,
            headers=headers,
            content={
                "error": "rate_limit_exceeded",
                "message": f"Rate limit exceeded. Retry after {decision.retry_after} seconds.",
                "limitType": decision.limit_type,
                "limit": decision.limit,
                "retryAfter": decision.retry_after,
            },
        )

    def _track_after_response(
        self, response: Response, request: Request, identity: RequestIdentity, started: float
    ) -> None:
        # Runs after the body is sent; skipped if sending never completes.
        task = BackgroundTask(
            self._track_usage,
            identity=identity,
            endpoint=request.url.path,
            method=request.method,
            status_code=response.status_code,
            started=started,
        )
        if response.background is None:
            response.background = task
        else:
            response.background = BackgroundTasks(tasks=[response.background, task])

    async def _track_usage(
        self,
        *,
        identity: RequestIdentity,
        endpoint: str,
        method: str,
        status_code: int,
        started: float,
    ) -> None:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        try:
            await self._usage.track_usage(
                tenant_id=identity.tenant_id,
                api_key_id=identity.api_key_id,
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                response_time_ms=elapsed_ms,
            )
        except Exception:
            logger.warning(
                "Failed to track API usage",
                exc_info=True,
                extra={"tenant_id": identity.tenant_id, "endpoint": endpoint},
            )


def _under(path: str, prefix: str) -> bool:
    if not prefix:
        return True
    return path == prefix or path.startswith(prefix + "/")


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


__all__ = ["RateLimitMiddleware", "RequestIdentity", "limit_headers"]
