"""create tenant subscription and user tables

Revision ID: 0001_create_tenancy_tables
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_create_tenancy_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tenant_subscriptions",
        sa.Column("tenant_id", sa.String(length=64), primary_key=True),
        sa.Column("tier", sa.String(length=32), nullable=False, server_default="free"),
        sa.Column("custom_rate_limit_per_minute", sa.Integer(), nullable=True),
        sa.Column("custom_rate_limit_per_hour", sa.Integer(), nullable=True),
        sa.Column("custom_rate_limit_per_day", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("tenant_id", sa.String(length=64), nullable=True, index=True),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("users")
    op.drop_table("tenant_subscriptions")
