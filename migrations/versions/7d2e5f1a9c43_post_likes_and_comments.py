"""post likes and comments

Revision ID: 7d2e5f1a9c43
Revises: 4c1e9a7d2b10
Create Date: 2026-10-19 14:03:27.905114

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "7d2e5f1a9c43"
down_revision: Union[str, Sequence[str], None] = "4c1e9a7d2b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add per-user post likes and post comments."""
    # One row per (post, user); uniqueness is checked before insert.
    op.create_table(
        "post_like",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("post_id", sa.String(length=32), nullable=False),
        sa.Column("community_id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_like_post_id", "post_like", ["post_id"])
    op.create_index("ix_post_like_community_id", "post_like", ["community_id"])

    op.create_table(
        "post_comment",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("post_id", sa.String(length=32), nullable=False),
        sa.Column("community_id", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("user_photo", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_post_comment_post_id", "post_comment", ["post_id"])
    op.create_index("ix_post_comment_community_id", "post_comment", ["community_id"])


def downgrade() -> None:
    """Drop post likes and comments."""
    op.drop_index("ix_post_comment_community_id", table_name="post_comment")
    op.drop_index("ix_post_comment_post_id", table_name="post_comment")
    op.drop_table("post_comment")
    op.drop_index("ix_post_like_community_id", table_name="post_like")
    op.drop_index("ix_post_like_post_id", table_name="post_like")
    op.drop_table("post_like")
