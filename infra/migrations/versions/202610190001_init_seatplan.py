"""establishments, profiles and rooms

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("VIE_SCOLAIRE", "PROFESSEUR", "DELEGUE", "ECO_DELEGUE", name="userrole")
board_position = sa.Enum("TOP", "BOTTOM", "LEFT", "RIGHT", name="boardposition")


def upgrade() -> None:
    op.create_table(
        "establishments",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_establishments_code", "establishments", ["code"], unique=True)
    op.create_index("ix_establishments_created_at", "establishments", ["created_at"])

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("establishment_id", sa.String(), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("can_create_subrooms", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["establishment_id"], ["establishments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("establishment_id", "username", name="uq_profiles_establishment_username"),
    )
    op.create_index("ix_profiles_establishment_id", "profiles", ["establishment_id"])
    op.create_index("ix_profiles_username", "profiles", ["username"])
    op.create_index("ix_profiles_email", "profiles", ["email"])
    op.create_index("ix_profiles_created_at", "profiles", ["created_at"])

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("establishment_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("board_position", board_position, nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["establishment_id"], ["establishments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("establishment_id", "code", name="uq_rooms_establishment_code"),
    )
    op.create_index("ix_rooms_establishment_id", "rooms", ["establishment_id"])
    op.create_index("ix_rooms_name", "rooms", ["name"])
    op.create_index("ix_rooms_created_by", "rooms", ["created_by"])
    op.create_index("ix_rooms_created_at", "rooms", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_rooms_created_at", table_name="rooms")
    op.drop_index("ix_rooms_created_by", table_name="rooms")
    op.drop_index("ix_rooms_name", table_name="rooms")
    op.drop_index("ix_rooms_establishment_id", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("ix_profiles_created_at", table_name="profiles")
    op.drop_index("ix_profiles_email", table_name="profiles")
    op.drop_index("ix_profiles_username", table_name="profiles")
    op.drop_index("ix_profiles_establishment_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("ix_establishments_created_at", table_name="establishments")
    op.drop_index("ix_establishments_code", table_name="establishments")
    op.drop_table("establishments")
    board_position.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
