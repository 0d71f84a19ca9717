"""Create notes, shares, teams, folders and activities

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Initial Inkwell schema.
How:   Portable column types (sa.Uuid, JSON, timezone-aware DateTime) so the
       same migration runs on PostgreSQL and on a local SQLite file.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── teams / team_members ──────────────────────────────────────────────
    op.create_table(
        "teams",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_teams_owner_id", "teams", ["owner_id"])

    op.create_table(
        "team_members",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("team_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "role", sa.String(20), nullable=False, server_default=sa.text("'viewer'"),
            comment="owner, admin, editor or viewer",
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )
    op.create_index("ix_team_members_team_id", "team_members", ["team_id"])
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])

    # ── notes ─────────────────────────────────────────────────────────────
    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("folder", sa.String(100), nullable=True, comment="Folder name, not a foreign key"),
        sa.Column("starred", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("is_team_note", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("team_id", sa.Uuid(), nullable=True),
        sa.Column(
            "state", sa.String(20), nullable=False, server_default=sa.text("'active'"),
            comment="active or trashed; purged notes have no row",
        ),
        sa.Column(
            "deleted_at", sa.DateTime(timezone=True), nullable=True,
            comment="Start of the retention window; NULL unless trashed",
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("word_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("reading_time", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_owner_id", "notes", ["owner_id"])
    op.create_index("ix_notes_team_id", "notes", ["team_id"])
    op.create_index("idx_notes_owner_state_updated", "notes", ["owner_id", "state", "updated_at"])
    # Serves the expiry sweep: WHERE state = 'trashed' AND deleted_at < :cutoff
    op.create_index("idx_notes_state_deleted_at", "notes", ["state", "deleted_at"])
    op.create_index("idx_notes_team_state", "notes", ["team_id", "state"])

    op.create_table(
        "note_shares",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("note_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, comment="viewer or editor"),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("note_id", "user_id", name="uq_note_shares_note_user"),
    )
    op.create_index("ix_note_shares_user_id", "note_shares", ["user_id"])

    # ── folders ───────────────────────────────────────────────────────────
    op.create_table(
        "folders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("team_id", sa.Uuid(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_folders_owner_name", "folders", ["owner_id", "name"])
    op.create_index("idx_folders_team_name", "folders", ["team_id", "name"])

    # ── activities ────────────────────────────────────────────────────────
    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("team_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True, comment="NULL for system actions"),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=True),
        sa.Column("resource_type", sa.String(20), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_activities_team_created", "activities", ["team_id", sa.text("created_at DESC")]
    )


def downgrade() -> None:
    op.drop_index("idx_activities_team_created", table_name="activities")
    op.drop_table("activities")
    op.drop_index("idx_folders_team_name", table_name="folders")
    op.drop_index("idx_folders_owner_name", table_name="folders")
    op.drop_table("folders")
    op.drop_index("ix_note_shares_user_id", table_name="note_shares")
    op.drop_table("note_shares")
    op.drop_index("idx_notes_team_state", table_name="notes")
    op.drop_index("idx_notes_state_deleted_at", table_name="notes")
    op.drop_index("idx_notes_owner_state_updated", table_name="notes")
    op.drop_index("ix_notes_team_id", table_name="notes")
    op.drop_index("ix_notes_owner_id", table_name="notes")
    op.drop_table("notes")
    op.drop_index("ix_team_members_user_id", table_name="team_members")
    op.drop_index("ix_team_members_team_id", table_name="team_members")
    op.drop_table("team_members")
    op.drop_index("ix_teams_owner_id", table_name="teams")
    op.drop_table("teams")
