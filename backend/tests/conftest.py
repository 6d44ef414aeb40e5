from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from hireflow_api.core.config import Settings


@pytest.fixture
def anyio_backend() -> str:
    """Force anyio-based tests to run with asyncio backend only."""

    return "asyncio"


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., Settings]:
    """Settings backed by a sqlite file under ``tmp_path`` with an admin/secret user."""

    def _make(**overrides: object) -> Settings:
        values: dict[str, object] = {
            "database_url": "sqlite+aiosqlite:///" + str(tmp_path / "hireflow.db"),
            "auth_basic_username": "admin",
            "auth_basic_password_plain": "secret",
            "api_key_environment": "test",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()
