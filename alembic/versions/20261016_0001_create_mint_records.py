"""Create mint_records table with its identity constraint and query indexes."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op as alembic_op  # type: ignore[import-untyped]

revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the mint_records table and supporting indexes."""

    alembic_op.create_table(
        "mint_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_address", sa.String(length=42), nullable=False),
        sa.Column("content_id", sa.String(length=64), nullable=False),
        sa.Column("metadata_locator", sa.String(length=80), nullable=False),
        sa.Column("token_id", sa.String(length=128), nullable=False),
        sa.Column("contract_address", sa.String(length=42), nullable=False),
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("event_name", sa.String(length=128), nullable=False),
        sa.Column("minted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("network_chain_id", sa.Integer(), nullable=False, server_default="8453"),
        sa.Column("image_url", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="confirmed"),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("caller_ip", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("transaction_hash", name="uq_mint_records_transaction_hash"),
    )

    alembic_op.create_index("ix_mint_records_owner_address", "mint_records", ["owner_address"])
    alembic_op.create_index(
        "ix_mint_records_owner_created", "mint_records", ["owner_address", "created_at"]
    )
    alembic_op.create_index(
        "ix_mint_records_event_created", "mint_records", ["event_name", "created_at"]
    )
    alembic_op.create_index(
        "ix_mint_records_network_chain_id", "mint_records", ["network_chain_id"]
    )
    alembic_op.create_index("ix_mint_records_status", "mint_records", ["status"])


def downgrade() -> None:
    """Drop mint_records table and related indexes."""

    alembic_op.drop_index("ix_mint_records_status", table_name="mint_records")
    alembic_op.drop_index("ix_mint_records_network_chain_id", table_name="mint_records")
    alembic_op.drop_index("ix_mint_records_event_created", table_name="mint_records")
    alembic_op.drop_index("ix_mint_records_owner_created", table_name="mint_records")
    alembic_op.drop_index("ix_mint_records_owner_address", table_name="mint_records")
    alembic_op.drop_table("mint_records")
