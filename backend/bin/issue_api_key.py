#!/usr/bin/env python3
"""Issue an API key for a tenant, optionally setting its subscription tier.

Reads DATABASE_URL from backend/.env or environment. Prints the full key once.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("tenant_id")
    parser.add_argument("--name", default="cli")
    parser.add_argument("--environment", choices=("live", "test"), default="test")
    parser.add_argument(
        "--tier", choices=("free", "starter", "growth", "enterprise"), default=None,
        help="Also create/update the tenant subscription",
    )
    return parser.parse_args(argv)


async def main(argv: list[str]) -> int:
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
    from hireflow_api.core.config import Settings
    from hireflow_api.db.session import create_tables, get_async_engine, get_session_maker
    from hireflow_api.security import ApiKeyManager
    from hireflow_api.services.tiers import SubscriptionRepository

    args = _parse_args(argv)
    settings = Settings(_env_file=Path(__file__).resolve().parents[1] / ".env")
    # Ensure tables exist (in case migrations were not run)
    await create_tables(settings)
    session_maker = get_session_maker(settings)
    if args.tier:
        await SubscriptionRepository(session_maker).upsert(args.tenant_id, tier=args.tier)
        print(f"Subscription set: {args.tenant_id} -> {args.tier}")
    rec, full_key = await ApiKeyManager(session_maker).issue_api_key(
        tenant_id=args.tenant_id, name=args.name, environment=args.environment
    )
    await get_async_engine(settings).dispose()
    print(f"Issued key {rec.id} ({rec.prefix}...{rec.last_four})")
    print(full_key)
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main(sys.argv[1:])))
