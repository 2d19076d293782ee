"""create users and coach ownership tables

Revision ID: 0001_auth_coaching
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_auth_coaching"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("Id", sa.String(length=64), primary_key=True),
        sa.Column("Email", sa.String(length=254)),
        sa.Column("FullName", sa.String(length=200)),
        sa.Column("Role", sa.String(length=20), nullable=False),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "clients_info",
        sa.Column("Id", sa.String(length=64), sa.ForeignKey("users.Id"), primary_key=True),
        sa.Column("CoachId", sa.String(length=64), sa.ForeignKey("users.Id")),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_clients_info_CoachId", "clients_info", ["CoachId"], unique=False)

    op.create_table(
        "client_coaches",
        sa.Column("Id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ClientId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=False),
        sa.Column("CoachId", sa.String(length=64), sa.ForeignKey("users.Id"), nullable=False),
        sa.Column("CreatedAt", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_client_coaches_ClientId", "client_coaches", ["ClientId"], unique=False)
    op.create_index("ix_client_coaches_coach_client", "client_coaches", ["CoachId", "ClientId"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_client_coaches_coach_client", table_name="client_coaches")
    op.drop_index("ix_client_coaches_ClientId", table_name="client_coaches")
    op.drop_table("client_coaches")
    op.drop_index("ix_clients_info_CoachId", table_name="clients_info")
    op.drop_table("clients_info")
    op.drop_table("users")
