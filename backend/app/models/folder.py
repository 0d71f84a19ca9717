"""
Inkwell Backend — Folder SQLAlchemy Model
==========================================

A folder is a named bucket, personal (owner_id set) or team-scoped (team_id
set). Notes reference folders by name, so note counts are always derived by
counting active notes whose `folder` matches; nothing is stored here.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.timeutils import utcnow


class Folder(Base):
    __tablename__ = "folders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Personal folders: owner_id set, team_id NULL
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    # Team folders: team_id set; created_by records who made it
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True
    )
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Names are unique per scope: one owner's personal folders, or one team
    __table_args__ = (
        Index(
            "uq_folders_owner_name",
            "owner_id",
            "name",
            unique=True,
            postgresql_where=text("team_id IS NULL"),
            sqlite_where=text("team_id IS NULL"),
        ),
        Index(
            "uq_folders_team_name",
            "team_id",
            "name",
            unique=True,
            postgresql_where=text("team_id IS NOT NULL"),
            sqlite_where=text("team_id IS NOT NULL"),
        ),
    )

    @property
    def is_team_folder(self) -> bool:
        return self.team_id is not None

    def __repr__(self) -> str:
        return f"<Folder(id={self.id}, name='{self.name}')>"
