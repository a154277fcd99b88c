"""v1_0_0_initial

Revision ID: 3f1c2a9b7d40
Revises:
Create Date: 2026-09-28 10:12:44.518203

"""

from alembic import op
import sqlalchemy as sa


from app.database import get_db_schema

# revision identifiers, used by Alembic.
revision = "3f1c2a9b7d40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "bridge_event",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
        ),
        sa.Column("tx_id", sa.String(length=66), nullable=False),
        sa.Column("event_type", sa.String(length=20), nullable=False),
        sa.Column("source_chain", sa.BigInteger(), nullable=False),
        sa.Column("target_chain", sa.BigInteger(), nullable=False),
        sa.Column("user_address", sa.String(length=42), nullable=False),
        sa.Column("token_address", sa.String(length=42), nullable=False),
        sa.Column("amount", sa.String(length=78), nullable=False),
        sa.Column("fee", sa.String(length=78), nullable=True),
        sa.Column("target_address", sa.String(length=42), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("transaction_hash", sa.String(length=66), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("confirmations", sa.Integer(), nullable=False),
        sa.Column("settlement_tx_hash", sa.String(length=66), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created", sa.DateTime(), nullable=True),
        sa.Column("modified", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tx_id"),
        schema=get_db_schema(),
    )
    op.create_index(
        op.f("ix_bridge_event_status"),
        "bridge_event",
        ["status"],
        unique=False,
        schema=get_db_schema(),
    )
    op.create_index(
        "ix_bridge_event_source_chain_target_chain",
        "bridge_event",
        ["source_chain", "target_chain"],
        unique=False,
        schema=get_db_schema(),
    )
    op.create_table(
        "bridge_processed_block",
        sa.Column("chain_id", sa.BigInteger(), nullable=False),
        sa.Column("latest_block_number", sa.BigInteger(), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=True),
        sa.Column("modified", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("chain_id"),
        schema=get_db_schema(),
    )
    op.create_table(
        "bridge_daily_stats",
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("source_chain", sa.BigInteger(), nullable=False),
        sa.Column("target_chain", sa.BigInteger(), nullable=False),
        sa.Column("events_processed", sa.Integer(), nullable=False),
        sa.Column("successful_relays", sa.Integer(), nullable=False),
        sa.Column("failed_relays", sa.Integer(), nullable=False),
        sa.Column("total_volume", sa.String(length=100), nullable=False),
        sa.Column("created", sa.DateTime(), nullable=True),
        sa.Column("modified", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("date", "source_chain", "target_chain"),
        schema=get_db_schema(),
    )


def downgrade():
    op.drop_table("bridge_daily_stats", schema=get_db_schema())
    op.drop_table("bridge_processed_block", schema=get_db_schema())
    op.drop_index(
        "ix_bridge_event_source_chain_target_chain",
        table_name="bridge_event",
        schema=get_db_schema(),
    )
    op.drop_index(
        op.f("ix_bridge_event_status"),
        table_name="bridge_event",
        schema=get_db_schema(),
    )
    op.drop_table("bridge_event", schema=get_db_schema())
