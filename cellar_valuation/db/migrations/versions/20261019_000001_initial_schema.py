"""Initial schema for Cellar Valuation.

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Catalog tables (read-only for this service)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "producers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
    )
    op.create_index("ix_producers_user_id", "producers", ["user_id"])

    op.create_table(
        "wines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("producer_id", sa.Integer(), sa.ForeignKey("producers.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("color", sa.String(20), nullable=True),
    )
    op.create_index("ix_wines_user_id", "wines", ["user_id"])
    op.create_index("ix_wines_producer_id", "wines", ["producer_id"])

    op.create_table(
        "inventory_lots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wines.id"), nullable=False),
        sa.Column("vintage", sa.Integer(), nullable=True),
        sa.Column("quantity", sa.Integer(), default=0),
        sa.Column("purchase_price_per_bottle", sa.Float(), nullable=True),
    )
    op.create_index("ix_inventory_lots_user_id", "inventory_lots", ["user_id"])
    op.create_index("ix_inventory_lots_wine_id", "inventory_lots", ["wine_id"])

    # Valuations
    op.create_table(
        "wine_valuations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wines.id"), nullable=False),
        sa.Column("vintage", sa.Integer(), nullable=True),
        sa.Column("price_estimate", sa.Float(), nullable=True),
        sa.Column("price_low", sa.Float(), nullable=True),
        sa.Column("price_high", sa.Float(), nullable=True),
        sa.Column("source", sa.String(50), default=""),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("source_wine_id", sa.String(100), nullable=True),
        sa.Column("source_name", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), default="pending"),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("fetched_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("wine_id", "vintage", name="uq_wine_valuations_wine_vintage"),
    )
    op.create_index("ix_wine_valuations_wine_id", "wine_valuations", ["wine_id"])
    op.create_index("ix_wine_valuations_status", "wine_valuations", ["status"])
    op.create_index(
        "uq_wine_valuations_wine_nv",
        "wine_valuations",
        ["wine_id"],
        unique=True,
        sqlite_where=sa.text("vintage IS NULL"),
        postgresql_where=sa.text("vintage IS NULL"),
    )

    # Critic scores
    op.create_table(
        "wine_critic_scores",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("wine_id", sa.Integer(), sa.ForeignKey("wines.id"), nullable=False),
        sa.Column("vintage", sa.Integer(), nullable=True),
        sa.Column("critic", sa.String(50), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("source", sa.String(50), default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "wine_id", "vintage", "critic", name="uq_wine_critic_scores_wine_vintage_critic"
        ),
    )
    op.create_index("ix_wine_critic_scores_wine_id", "wine_critic_scores", ["wine_id"])
    op.create_index(
        "uq_wine_critic_scores_wine_nv_critic",
        "wine_critic_scores",
        ["wine_id", "critic"],
        unique=True,
        sqlite_where=sa.text("vintage IS NULL"),
        postgresql_where=sa.text("vintage IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_wine_critic_scores_wine_nv_critic", table_name="wine_critic_scores")
    op.drop_index("ix_wine_critic_scores_wine_id", table_name="wine_critic_scores")
    op.drop_table("wine_critic_scores")
    op.drop_index("uq_wine_valuations_wine_nv", table_name="wine_valuations")
    op.drop_index("ix_wine_valuations_status", table_name="wine_valuations")
    op.drop_index("ix_wine_valuations_wine_id", table_name="wine_valuations")
    op.drop_table("wine_valuations")
    op.drop_index("ix_inventory_lots_wine_id", table_name="inventory_lots")
    op.drop_index("ix_inventory_lots_user_id", table_name="inventory_lots")
    op.drop_table("inventory_lots")
    op.drop_index("ix_wines_producer_id", table_name="wines")
    op.drop_index("ix_wines_user_id", table_name="wines")
    op.drop_table("wines")
    op.drop_index("ix_producers_user_id", table_name="producers")
    op.drop_table("producers")
    op.drop_table("users")
