"""Create OAuth2 client and token tables.

Revision ID: 001
Revises:
Create Date: 2025-07-14

1. oauth_clients - registered clients, one tenant (campground) each
2. oauth_tokens - issued token pairs, stored as SHA-256 hashes only

Authorization codes are short-lived and live in the code store
(process memory or Redis), not in the database.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create OAuth2 tables."""
    op.create_table(
        "oauth_clients",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_id", sa.String(64), nullable=False),
        sa.Column(
            "client_secret_hash",
            sa.Text(),
            nullable=True,
            comment="argon2 hash; NULL for public clients",
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "redirect_uris",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "scopes",
            postgresql.ARRAY(sa.String(64)),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "grant_types",
            postgresql.ARRAY(sa.String(32)),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("is_confidential", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tenant_id", sa.String(64), nullable=False, comment="Campground id"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_oauth_clients")),
        sa.UniqueConstraint("client_id", name=op.f("uq_oauth_clients_client_id")),
        sa.CheckConstraint(
            "is_confidential OR client_secret_hash IS NULL",
            name=op.f("ck_oauth_clients_public_without_secret"),
        ),
    )
    op.create_index(
        op.f("ix_oauth_clients_tenant_id"),
        "oauth_clients",
        ["tenant_id"],
        unique=False,
    )

    op.create_table(
        "oauth_tokens",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("client_db_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "user_id",
            sa.Text(),
            nullable=True,
            comment="Session subject; NULL for machine-to-machine tokens",
        ),
        sa.Column("access_token_hash", sa.String(64), nullable=False),
        sa.Column("refresh_token_hash", sa.String(64), nullable=True),
        sa.Column(
            "scopes",
            postgresql.ARRAY(sa.String(64)),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refresh_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(
            ["client_db_id"],
            ["oauth_clients.id"],
            name=op.f("fk_oauth_tokens_client_db_id_oauth_clients"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_oauth_tokens")),
        sa.UniqueConstraint(
            "access_token_hash", name=op.f("uq_oauth_tokens_access_token_hash")
        ),
        sa.UniqueConstraint(
            "refresh_token_hash", name=op.f("uq_oauth_tokens_refresh_token_hash")
        ),
        sa.CheckConstraint(
            "expires_at > created_at",
            name=op.f("ck_oauth_tokens_expires_after_created"),
        ),
    )
    op.create_index(
        op.f("ix_oauth_tokens_client_db_id"),
        "oauth_tokens",
        ["client_db_id"],
        unique=False,
    )
    # Secret rotation revokes every live token of a client
    op.create_index(
        "ix_oauth_tokens_client_db_id_live",
        "oauth_tokens",
        ["client_db_id"],
        unique=False,
        postgresql_where=sa.text("revoked_at IS NULL"),
    )


def downgrade() -> None:
    """Drop OAuth2 tables."""
    op.drop_index("ix_oauth_tokens_client_db_id_live", table_name="oauth_tokens")
    op.drop_index(op.f("ix_oauth_tokens_client_db_id"), table_name="oauth_tokens")
    op.drop_table("oauth_tokens")
    op.drop_index(op.f("ix_oauth_clients_tenant_id"), table_name="oauth_clients")
    op.drop_table("oauth_clients")
