"""Initial schema: catalog, collection, price reference and reconciliation tables

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- catalog (owned by the collection platform) ---
    op.create_table(
        "card_set",
        sa.Column("set_id", sa.INTEGER(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("year", sa.INTEGER(), nullable=True),
    )
    op.create_table(
        "series",
        sa.Column("series_id", sa.INTEGER(), primary_key=True),
        sa.Column("set_id", sa.INTEGER(), sa.ForeignKey("card_set.set_id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
    )
    op.create_index("ix_series_set_id", "series", ["set_id"])
    op.create_table(
        "player",
        sa.Column("player_id", sa.INTEGER(), primary_key=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
    )
    op.create_table(
        "card",
        sa.Column("card_id", sa.INTEGER(), primary_key=True),
        sa.Column("series_id", sa.INTEGER(), sa.ForeignKey("series.series_id"), nullable=False),
        sa.Column("card_number", sa.String(), nullable=True),
    )
    op.create_index("ix_card_series_id", "card", ["series_id"])
    op.create_table(
        "card_player",
        sa.Column("card_id", sa.INTEGER(), sa.ForeignKey("card.card_id"), nullable=False),
        sa.Column("player_id", sa.INTEGER(), sa.ForeignKey("player.player_id"), nullable=False),
        sa.Column("sort_order", sa.INTEGER(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("card_id", "player_id"),
    )

    # --- collection ownership ---
    op.create_table(
        "user_card",
        sa.Column("user_card_id", sa.INTEGER(), primary_key=True),
        sa.Column("user_id", sa.INTEGER(), nullable=False),
        sa.Column("card_id", sa.INTEGER(), sa.ForeignKey("card.card_id"), nullable=False),
        sa.Column("sold_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_user_card_user_id", "user_card", ["user_id"])
    op.create_index("ix_user_card_card_id", "user_card", ["card_id"])

    # --- price reference data ---
    op.create_table(
        "price_source",
        sa.Column("price_source_id", sa.INTEGER(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=True),
    )
    op.create_table(
        "price_type",
        sa.Column("price_type_id", sa.INTEGER(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=True),
    )

    # --- reconciliation output ---
    op.create_table(
        "card_external_id",
        sa.Column("card_external_id_id", sa.INTEGER(), primary_key=True),
        sa.Column("card_id", sa.INTEGER(), sa.ForeignKey("card.card_id"), nullable=False),
        sa.Column(
            "price_source_id",
            sa.INTEGER(),
            sa.ForeignKey("price_source.price_source_id"),
            nullable=False,
        ),
        sa.Column("external_id", sa.String(), nullable=False, comment="Remote product identifier"),
        sa.Column("external_name", sa.String(), nullable=True, comment="Remote display name"),
        sa.Column("match_method", sa.String(), nullable=False, server_default="auto"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("card_id", "price_source_id", name="uq_card_external_id_card_source"),
    )
    op.create_table(
        "card_price",
        sa.Column("card_price_id", sa.INTEGER(), primary_key=True),
        sa.Column("card_id", sa.INTEGER(), sa.ForeignKey("card.card_id"), nullable=False),
        sa.Column(
            "price_type_id",
            sa.INTEGER(),
            sa.ForeignKey("price_type.price_type_id"),
            nullable=False,
        ),
        sa.Column(
            "price_source_id",
            sa.INTEGER(),
            sa.ForeignKey("price_source.price_source_id"),
            nullable=False,
        ),
        sa.Column("price", sa.DECIMAL(10, 2), nullable=True, comment="NULL when unknown"),
        sa.Column(
            "last_updated",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "card_id", "price_type_id", "price_source_id", name="uq_card_price_card_type_source"
        ),
    )


def downgrade() -> None:
    op.drop_table("card_price")
    op.drop_table("card_external_id")
    op.drop_table("price_type")
    op.drop_table("price_source")
    op.drop_index("ix_user_card_card_id", table_name="user_card")
    op.drop_index("ix_user_card_user_id", table_name="user_card")
    op.drop_table("user_card")
    op.drop_table("card_player")
    op.drop_index("ix_card_series_id", table_name="card")
    op.drop_table("card")
    op.drop_table("player")
    op.drop_index("ix_series_set_id", table_name="series")
    op.drop_table("series")
    op.drop_table("card_set")
