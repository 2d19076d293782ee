"""create board posts table

Revision ID: 0003_board_posts
Revises: 0002_push_tables
Create Date: 2026-10-02
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_board_posts"
down_revision = "0002_push_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "board_posts",
        sa.Column("Id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("CoachId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=False),
        sa.Column("Title", sa.Unicode(length=200), nullable=True),
        sa.Column("Content", sa.Text(), nullable=True),
        sa.Column("TargetClientIdsJson", sa.Text(), nullable=True),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_board_posts_CoachId", "board_posts", ["CoachId"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_board_posts_CoachId", table_name="board_posts")
    op.drop_table("board_posts")
