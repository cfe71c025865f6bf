"""Restaurants, recommendations and upvotes

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "restaurants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("cuisine", postgresql.JSONB(), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("price_level", sa.Integer(), nullable=True),
        sa.Column("google_place_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_restaurants"),
        sa.UniqueConstraint("google_place_id", name="uq_restaurants_google_place_id"),
    )

    op.create_table(
        "recommendations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("restaurant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", postgresql.JSONB(), nullable=True),
        sa.Column("cuisine", postgresql.JSONB(), nullable=True),
        sa.Column("personal_note", sa.Text(), nullable=False),
        sa.Column("photos", postgresql.JSONB(), nullable=True),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_recommendations"),
        sa.ForeignKeyConstraint(["restaurant_id"], ["restaurants.id"], name="fk_recommendations_restaurant_id_restaurants", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_recommendations_user_id_users", ondelete="CASCADE"),
    )
    op.create_index("ix_recommendations_restaurant_id", "recommendations", ["restaurant_id"])
    op.create_index("ix_recommendations_user_id", "recommendations", ["user_id"])

    op.create_table(
        "recommendation_upvotes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("recommendation_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_recommendation_upvotes"),
        sa.ForeignKeyConstraint(["recommendation_id"], ["recommendations.id"], name="fk_recommendation_upvotes_recommendation_id_recommendations", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_recommendation_upvotes_user_id_users", ondelete="CASCADE"),
        sa.UniqueConstraint("recommendation_id", "user_id", name="uq_recommendation_upvotes_pair"),
    )
    op.create_index("ix_recommendation_upvotes_recommendation_id", "recommendation_upvotes", ["recommendation_id"])
    op.create_index("ix_recommendation_upvotes_user_id", "recommendation_upvotes", ["user_id"])


def downgrade() -> None:
    op.drop_table("recommendation_upvotes")
    op.drop_table("recommendations")
    op.drop_table("restaurants")
