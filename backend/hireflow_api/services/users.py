"""Session user to tenant lookup."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import async_sessionmaker

from hireflow_api.db import models


@dataclass(frozen=True, slots=True)
class SessionUser:
    id: str
    tenant_id: str | None


class UserDirectory:
    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def get_user(self, user_id: str) -> SessionUser | None:
        async with self._session_maker() as session:
            row = await session.get(models.User, user_id)
        if row is None:
            return None
        return SessionUser(id=row.id, tenant_id=row.tenant_id)
