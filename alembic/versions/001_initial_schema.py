"""initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One token set per browser session
    op.create_table(
        "marketplace_tokens",
        sa.Column("session_id", sa.String(128), primary_key=True),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refresh_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scopes", JSONB, nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # Outstanding OAuth round trips, correlated by state nonce
    op.create_table(
        "oauth_authorization_requests",
        sa.Column("session_id", sa.String(128), primary_key=True),
        sa.Column("state", sa.String(128), nullable=False),
        sa.Column("redirect_uri", sa.String(2048), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_oauth_authorization_requests_created_at",
        "oauth_authorization_requests",
        ["created_at"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_oauth_authorization_requests_created_at",
        table_name="oauth_authorization_requests",
    )
    op.drop_table("oauth_authorization_requests")
    op.drop_table("marketplace_tokens")
