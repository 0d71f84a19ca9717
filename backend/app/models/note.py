"""
Inkwell Backend — Note SQLAlchemy Models
=========================================

What:  ORM models for the `notes` and `note_shares` tables.
Why:   Maps notes and their direct shares to rows for type-safe queries.
Who:   Used by NoteService, NoteLifecycleService and FolderService; read by
       the permission resolver; Alembic reads this for migrations.

Table Design Rationale:
    - state: 'active' | 'trashed'. A permanently deleted note is a deleted
      row, never a flag, so "purged" needs no column.
    - deleted_at: stamped on trash, cleared on restore; the retention clock.
    - folder: the folder NAME, not a foreign key. Folder note counts are
      derived by matching names, and deleting a folder only clears this field.
    - tags: JSON list; portable between PostgreSQL and SQLite.
    - note_shares.position: keeps shared_with in the order shares were granted.

Indexes:
    (owner_id, state, updated_at) serves the dashboard and trash listings.
    (state, deleted_at) serves the expiry sweep.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import NoteState
from app.timeutils import utcnow


class Note(Base):
    """
    A personal or team note.

    Lifecycle:
        1. Created with state='active'
        2. soft delete → state='trashed', deleted_at=now
        3. restore → state='active', deleted_at=NULL
        4. purge (explicit, or sweep once deleted_at is older than the
           retention window) → row deleted together with its shares
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Creator; never reassigned
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    # Opaque markup from the client editor; only stripped for word counts
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    folder: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, default=None)
    starred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Team ownership ────────────────────────────────────────────────────
    is_team_note: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # ── Lifecycle ─────────────────────────────────────────────────────────
    state: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=NoteState.ACTIVE.value,
        server_default=text("'active'"),
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    # ── Derived metadata ──────────────────────────────────────────────────
    # version counts saves; it is informational and never checked on write
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reading_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # selectin: the resolver reads shares synchronously, and async sessions
    # cannot lazy-load on attribute access
    shares: Mapped[List["NoteShare"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="NoteShare.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_notes_owner_state_updated", "owner_id", "state", "updated_at"),
        Index("idx_notes_state_deleted_at", "state", "deleted_at"),
        Index("idx_notes_team_state", "team_id", "state"),
    )

    @property
    def is_trashed(self) -> bool:
        return self.state == NoteState.TRASHED.value

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, state='{self.state}', owner_id={self.owner_id})>"


class NoteShare(Base):
    """
    A direct grant of viewer/editor access on one note to one user.

    Ignored by the resolver once the note is a team note.
    """

    __tablename__ = "note_shares"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    note: Mapped[Note] = relationship(back_populates="shares")

    __table_args__ = (
        UniqueConstraint("note_id", "user_id", name="uq_note_shares_note_user"),
    )

    def __repr__(self) -> str:
        return f"<NoteShare(note_id={self.note_id}, user_id={self.user_id}, role='{self.role}')>"
