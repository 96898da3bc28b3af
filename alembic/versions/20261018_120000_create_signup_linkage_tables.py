"""Create players, app_users and linkage_audit_log tables

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-18 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "4f1c2a9d7e30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("email_address", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("phone_number", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("high_school_irn", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("high_school", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("linked_user_id", sa.String(length=128), nullable=True),
        sa.Column("linked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("middle_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("suffix", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("nickname", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("position", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("class_year", sa.Integer(), nullable=True),
        sa.Column("stars", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("id_number", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("dob", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("caption", sa.Text(), nullable=False, server_default=""),
        sa.Column("profile_files", sa.JSON(), nullable=False),
        sa.Column("created_from_signup", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_players_email", "players", ["email_address"])
    op.create_index("idx_players_name", "players", ["first_name", "last_name"])
    op.create_index("idx_players_last_name", "players", ["last_name"])

    op.create_table(
        "app_users",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=30), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("invitation_status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("linked_player_id", sa.Integer(), nullable=True),
        sa.Column("player_profile_created", sa.Boolean(), nullable=True),
        sa.Column("player_profile_linked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("player_profile_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("linked_by", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "linkage_audit_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=30), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("performed_by", sa.String(length=255), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_linkage_audit_user", "linkage_audit_log", ["user_id", "created_at"])
    op.create_index("idx_linkage_audit_player", "linkage_audit_log", ["player_id"])


def downgrade() -> None:
    op.drop_index("idx_linkage_audit_player", table_name="linkage_audit_log")
    op.drop_index("idx_linkage_audit_user", table_name="linkage_audit_log")
    op.drop_table("linkage_audit_log")
    op.drop_table("app_users")
    op.drop_index("idx_players_last_name", table_name="players")
    op.drop_index("idx_players_name", table_name="players")
    op.drop_index("idx_players_email", table_name="players")
    op.drop_table("players")
