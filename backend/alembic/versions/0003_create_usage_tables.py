"""create hourly usage and rate limit event tables

Revision ID: 0003_create_usage_tables
Revises: 0002_create_api_keys_table
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0003_create_usage_tables"
down_revision = "0002_create_api_keys_table"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "api_usage_hourly",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("api_key_id", sa.String(length=32), nullable=False, server_default="-"),
        sa.Column("hour_timestamp", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("endpoint", sa.String(length=512), nullable=False),
        sa.Column("method", sa.String(length=8), nullable=False),
        sa.Column("request_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("success_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rate_limited_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_response_time_ms", sa.Float(), nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "tenant_id",
            "api_key_id",
            "hour_timestamp",
            "endpoint",
            "method",
            name="uq_api_usage_hourly_bucket",
        ),
    )
    op.create_table(
        "rate_limit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("api_key_id", sa.String(length=32), nullable=True),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("endpoint", sa.String(length=512), nullable=False),
        sa.Column("method", sa.String(length=8), nullable=False),
        sa.Column("limit_type", sa.String(length=16), nullable=False),
        sa.Column("limit_value", sa.Integer(), nullable=False),
        sa.Column("current_count", sa.Integer(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=256), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            index=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("rate_limit_events")
    op.drop_table("api_usage_hourly")
