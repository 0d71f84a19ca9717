"""Archive teams; enforce unique folder names per scope

Revision ID: 002
Revises: 001
Create Date: 2026-10-17 12:00:00.000000+00:00

What:  Adds teams.archived_at and replaces the plain folder name indexes with
       partial unique indexes (personal scope and team scope).
How:   Fails if an existing scope already holds two folders with the same
       name; rename or delete one of them first.

Rollback: downgrade() restores the non-unique indexes and drops archived_at.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("teams") as batch:
        batch.add_column(sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True))

    op.drop_index("idx_folders_owner_name", table_name="folders")
    op.drop_index("idx_folders_team_name", table_name="folders")
    op.create_index(
        "uq_folders_owner_name",
        "folders",
        ["owner_id", "name"],
        unique=True,
        postgresql_where=sa.text("team_id IS NULL"),
        sqlite_where=sa.text("team_id IS NULL"),
    )
    op.create_index(
        "uq_folders_team_name",
        "folders",
        ["team_id", "name"],
        unique=True,
        postgresql_where=sa.text("team_id IS NOT NULL"),
        sqlite_where=sa.text("team_id IS NOT NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_folders_team_name", table_name="folders")
    op.drop_index("uq_folders_owner_name", table_name="folders")
    op.create_index("idx_folders_owner_name", "folders", ["owner_id", "name"])
    op.create_index("idx_folders_team_name", "folders", ["team_id", "name"])

    with op.batch_alter_table("teams") as batch:
        batch.drop_column("archived_at")
