"""Security utilities: admin Basic auth and tenant API keys.

Passwords use PBKDF2-HMAC; API keys are random ``sk_live_``/``sk_test_``
secrets of which only the SHA-256 digest is ever stored.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from hireflow_api.core.config import Settings
from hireflow_api.db import models
from hireflow_api.deps import get_app_settings

logger = logging.getLogger(__name__)


# ---------------------
# Basic auth (admin)
# ---------------------

_basic = HTTPBasic(auto_error=False)


def _pbkdf2(password: str, *, salt: bytes, rounds: int = 200_000) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"pbkdf2_sha256${rounds}${base64.b64encode(salt).decode()}${base64.b64encode(digest).decode()}"


def _verify_pbkdf2(password: str, encoded: str) -> bool:
    try:
        algo, rounds_s, salt_b64, hash_b64 = encoded.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        rounds = int(rounds_s)
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(hash_b64)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(digest, expected)


def _derive_hash_from_settings(settings: Settings) -> Optional[str]:
    if settings.auth_basic_password_hash:
        return settings.auth_basic_password_hash
    if settings.auth_basic_password_plain:
        # static salt; dev convenience only
        salt = hashlib.sha256(b"hireflow-basic-salt").digest()[:16]
        return _pbkdf2(settings.auth_basic_password_plain, salt=salt, rounds=20_000)
    return None


async def require_basic_user(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> dict:
    """Validate HTTP Basic credentials against the configured admin user."""
    if not credentials or not settings.auth_basic_username:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin authentication required")

    username = credentials.username or ""
    password = credentials.password or ""
    if not hmac.compare_digest(username, settings.auth_basic_username):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    encoded = _derive_hash_from_settings(settings)
    if not encoded or not _verify_pbkdf2(password, encoded):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    request.state.admin = username
    return {"username": username, "roles": ["admin"]}


# ---------------------
# API keys
# ---------------------

API_KEY_PREFIXES = {"live": "sk_live_", "test": "sk_test_"}
API_KEY_ENTROPY_BYTES = 24


@dataclass(frozen=True, slots=True)
class GeneratedApiKey:
    full_key: str
    prefix: str
    last_four: str


@dataclass(slots=True)
class ApiKeyRecord:
    id: str
    tenant_id: str
    name: str
    prefix: str
    last_four: str
    environment: str
    is_active: bool
    created_at: str
    expires_at: str | None = None
    last_used_at: str | None = None


def generate_api_key(environment: str = "live") -> GeneratedApiKey:
    """Create a new secret. The full key is returned once and never stored."""
    try:
        prefix = API_KEY_PREFIXES[environment]
    except KeyError:
        raise ValueError(f"unknown API key environment: {environment!r}") from None
    random_part = secrets.token_urlsafe(API_KEY_ENTROPY_BYTES)
    return GeneratedApiKey(
        full_key=f"{prefix}{random_part}",
        prefix=prefix,
        last_four=random_part[-4:],
    )


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_record(row: models.ApiKey) -> ApiKeyRecord:
    expires_at = _as_utc(row.expires_at)
    last_used_at = _as_utc(row.last_used_at)
    created_at = _as_utc(row.created_at) or datetime.now(timezone.utc)
    return ApiKeyRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        name=row.name,
        prefix=row.prefix,
        last_four=row.last_four,
        environment=row.environment,
        is_active=row.is_active,
        created_at=created_at.isoformat(),
        expires_at=expires_at.isoformat() if expires_at else None,
        last_used_at=last_used_at.isoformat() if last_used_at else None,
    )


class ApiKeyManager:
    """Issue, validate and revoke tenant API keys."""

    def __init__(
        self,
        session_maker: async_sessionmaker,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._session_maker = session_maker
        self._clock = clock

    generate_api_key = staticmethod(generate_api_key)
    hash_api_key = staticmethod(hash_api_key)

    async def issue_api_key(
        self,
        *,
        tenant_id: str,
        name: str,
        environment: str = "live",
        expires_at: datetime | None = None,
    ) -> tuple[ApiKeyRecord, str]:
        generated = generate_api_key(environment)
        row = models.ApiKey(
            id=os.urandom(8).hex(),
            tenant_id=tenant_id,
            name=name,
            key_hash=hash_api_key(generated.full_key),
            prefix=generated.prefix,
            last_four=generated.last_four,
            environment=environment,
            is_active=True,
            expires_at=_as_utc(expires_at),
            created_at=self._clock(),
        )
        async with self._session_maker() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
        return _to_record(row), generated.full_key

    async def validate_api_key(self, full_key: str, *, ip_address: str | None = None) -> ApiKeyRecord | None:
        """Return the active, unexpired key for ``full_key`` or ``None``."""
        key_hash = hash_api_key(full_key)
        async with self._session_maker() as session:
            row = (
                await session.execute(
                    select(models.ApiKey)
                    .where(
                        models.ApiKey.key_hash == key_hash,
                        models.ApiKey.is_active == True,  # noqa: E712
                    )
                    .limit(1)
                )
            ).scalar_one_or_none()
        if row is None or not hmac.compare_digest(row.key_hash, key_hash):
            return None

        now = self._clock()
        expires_at = _as_utc(row.expires_at)
        if expires_at is not None and expires_at < now:
            return None

        try:
            await self._touch_last_used(row.id, now, ip_address)
        except Exception:
            logger.warning("Failed to update API key last_used_at", exc_info=True, extra={"api_key_id": row.id})
        return _to_record(row)

    async def _touch_last_used(self, key_id: str, moment: datetime, ip_address: str | None) -> None:
        async with self._session_maker() as session:
            await session.execute(
                update(models.ApiKey)
                .where(models.ApiKey.id == key_id)
                .values(last_used_at=moment, last_used_ip=ip_address)
            )
            await session.commit()

    async def list_api_keys(self, tenant_id: str) -> list[ApiKeyRecord]:
        async with self._session_maker() as session:
            rows = (
                await session.execute(
                    select(models.ApiKey)
                    .where(models.ApiKey.tenant_id == tenant_id)
                    .order_by(models.ApiKey.created_at.desc())
                )
            ).scalars().all()
        return [_to_record(row) for row in rows]

    async def revoke_api_key(self, key_id: str) -> bool:
        async with self._session_maker() as session:
            res = await session.execute(
                update(models.ApiKey).where(models.ApiKey.id == key_id).values(is_active=False)
            )
            await session.commit()
            return (res.rowcount or 0) > 0


__all__ = [
    "API_KEY_PREFIXES",
    "ApiKeyManager",
    "ApiKeyRecord",
    "GeneratedApiKey",
    "generate_api_key",
    "hash_api_key",
    "require_basic_user",
]
