"""create push subscription, alert preference and notification rule tables

Revision ID: 0002_push_tables
Revises: 0001_auth_coaching
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_push_tables"
down_revision = "0001_auth_coaching"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "notification_rules",
        sa.Column("Id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("CoachId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=False),
        sa.Column("ClientId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=True),
        sa.Column("ScheduledTime", sa.String(length=5), nullable=False),
        sa.Column("Message", sa.Unicode(length=500), nullable=False),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("UpdatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_notification_rules_scheduled_time", "notification_rules", ["ScheduledTime"], unique=False)
    op.create_index("ix_notification_rules_coach_client", "notification_rules", ["CoachId", "ClientId"], unique=False)

    op.create_table(
        "push_subscriptions",
        sa.Column("Id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("UserId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=False),
        sa.Column("Endpoint", sa.String(length=800), nullable=False),
        sa.Column("P256dhKey", sa.String(length=255), nullable=False),
        sa.Column("AuthKey", sa.String(length=255), nullable=False),
        sa.Column("UserAgent", sa.String(length=400), nullable=True),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("UpdatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_push_subscriptions_UserId", "push_subscriptions", ["UserId"], unique=False)
    op.create_index(
        "ix_push_subscriptions_user_endpoint",
        "push_subscriptions",
        ["UserId", "Endpoint"],
        unique=True,
    )

    op.create_table(
        "alert_settings",
        sa.Column("Id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("UserId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=False, unique=True),
        sa.Column("IsEnabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("AlertTimesJson", sa.Text(), nullable=True),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("UpdatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )


def downgrade() -> None:
    op.drop_table("alert_settings")
    op.drop_index("ix_push_subscriptions_user_endpoint", table_name="push_subscriptions")
    op.drop_index("ix_push_subscriptions_UserId", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")
    op.drop_index("ix_notification_rules_coach_client", table_name="notification_rules")
    op.drop_index("ix_notification_rules_scheduled_time", table_name="notification_rules")
    op.drop_table("notification_rules")
