"""
Inkwell Backend — Note Request/Response Schemas
================================================

What:  Pydantic models defining the notes API contract.
Why:   Input parsing, response serialization and OpenAPI docs.
How:   Request models check types only. Business validation (title length,
       tag length, ...) happens in NoteService so that every problem can be
       reported at once in a single 400 instead of FastAPI's per-field 422.

Design Decision:
    Schemas are separate from SQLAlchemy models: the response adds computed
    fields (excerpt, days_left, the caller's effective role) and hides the
    share rows' internal ids.
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, StrictBool

from app.models.enums import AccessSource, NoteRole, NoteState, ShareRole
from app.text import excerpt
from app.timeutils import ensure_utc


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    """
    Body of POST /api/notes.

    A non-null team_id creates a team note; the caller must be a team member
    with create capability (owner, admin or editor).
    """
    title: str = Field(default="", description="Note title (required, max 200 chars)")
    content: str = Field(default="", description="Opaque rich-text markup")
    folder: Optional[str] = Field(default=None, description="Folder name, or null")
    tags: List[str] = Field(default_factory=list, description="Tags (max 50 chars each)")
    starred: bool = Field(default=False)
    team_id: Optional[uuid.UUID] = Field(default=None, description="Team for a team note")


class NoteUpdate(BaseModel):
    """
    Body of PUT /api/notes/{id}. Omitted or null fields are left unchanged,
    except `folder`, where null moves the note to the root.

    Concurrent saves are last-write-wins; `version` in the response only
    counts saves.
    """
    title: Optional[str] = None
    content: Optional[str] = None
    folder: Optional[str] = None
    tags: Optional[List[str]] = None
    starred: Optional[bool] = None


class StarRequest(BaseModel):
    starred: StrictBool = Field(description="Target star state")


class FolderMoveRequest(BaseModel):
    folder: Optional[str] = Field(default=None, description="Folder name; null moves to root")


class ShareRequest(BaseModel):
    user_id: uuid.UUID = Field(description="User receiving access")
    role: ShareRole = Field(default=ShareRole.VIEWER, description="viewer or editor")


class BulkNoteRequest(BaseModel):
    note_ids: List[uuid.UUID] = Field(min_length=1, max_length=100)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ShareEntry(BaseModel):
    user_id: uuid.UUID
    role: ShareRole

    model_config = {"from_attributes": True}


class EffectiveRoleResponse(BaseModel):
    """
    The caller's resolved access to a note.

    conflicting is true when the caller holds a direct share on a team note:
    the share is ignored and the team role decides.
    """
    role: NoteRole
    can_edit: bool
    source: AccessSource
    conflicting: bool = False

    @classmethod
    def from_effective(cls, effective: Any) -> "EffectiveRoleResponse":
        return cls(
            role=effective.role,
            can_edit=effective.can_edit,
            source=effective.source,
            conflicting=effective.conflicting,
        )


class NoteResponse(BaseModel):
    """Full representation of one note."""
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    content: str
    folder: Optional[str] = None
    starred: bool
    tags: List[str]
    is_team_note: bool
    team_id: Optional[uuid.UUID] = None
    state: NoteState
    deleted_at: Optional[datetime] = None
    version: int
    word_count: int
    reading_time: int
    created_at: datetime
    updated_at: datetime
    shared_with: List[ShareEntry] = Field(default_factory=list)
    permissions: Optional[EffectiveRoleResponse] = None

    @classmethod
    def from_note(cls, note: Any, effective: Any = None) -> "NoteResponse":
        return cls(
            id=note.id,
            owner_id=note.owner_id,
            title=note.title,
            content=note.content,
            folder=note.folder,
            starred=note.starred,
            tags=list(note.tags or []),
            is_team_note=note.is_team_note,
            team_id=note.team_id,
            state=note.state,
            deleted_at=ensure_utc(note.deleted_at),
            version=note.version,
            word_count=note.word_count,
            reading_time=note.reading_time,
            created_at=ensure_utc(note.created_at),
            updated_at=ensure_utc(note.updated_at),
            shared_with=[ShareEntry.model_validate(s) for s in note.shares],
            permissions=(
                EffectiveRoleResponse.from_effective(effective) if effective is not None else None
            ),
        )


class NoteListItem(BaseModel):
    """Compact note for list views: a plain-text excerpt instead of content."""
    id: uuid.UUID
    title: str
    excerpt: str
    folder: Optional[str] = None
    starred: bool
    tags: List[str]
    is_team_note: bool
    team_id: Optional[uuid.UUID] = None
    updated_at: datetime

    @classmethod
    def from_note(cls, note: Any) -> "NoteListItem":
        return cls(
            id=note.id,
            title=note.title,
            excerpt=excerpt(note.content),
            folder=note.folder,
            starred=note.starred,
            tags=list(note.tags or []),
            is_team_note=note.is_team_note,
            team_id=note.team_id,
            updated_at=ensure_utc(note.updated_at),
        )


class NoteListResponse(BaseModel):
    notes: List[NoteListItem]
    total_count: int


class TrashItem(NoteListItem):
    """
    A trashed note with its retention countdown.

    expires_today is true when days_left is 0; the next sweep may purge it.
    """
    deleted_at: datetime
    days_left: int
    expires_today: bool


class TrashListResponse(BaseModel):
    notes: List[TrashItem]
    count: int
    retention_days: int


class LifecycleResponse(BaseModel):
    """Outcome of a soft delete or restore."""
    message: str
    note_id: uuid.UUID
    state: NoteState
    deleted_at: Optional[datetime] = None


class PurgeResponse(BaseModel):
    message: str
    note_id: uuid.UUID


class EmptyTrashResponse(BaseModel):
    message: str
    deleted_count: int


class StarResponse(BaseModel):
    message: str
    note_id: uuid.UUID
    starred: bool


class FolderMoveResponse(BaseModel):
    message: str
    note_id: uuid.UUID
    folder: Optional[str] = None


class BulkItemResult(BaseModel):
    """Per-note outcome inside a bulk restore/purge."""
    note_id: uuid.UUID
    success: bool
    error: Optional[str] = Field(default=None, description="Machine-readable error code")
    message: Optional[str] = Field(default=None, description="Human-readable error")


class BulkOperationResponse(BaseModel):
    results: List[BulkItemResult]
    succeeded: int
    failed: int

    @classmethod
    def from_results(cls, results: List[BulkItemResult]) -> "BulkOperationResponse":
        succeeded = sum(1 for r in results if r.success)
        return cls(results=results, succeeded=succeeded, failed=len(results) - succeeded)


class TagResponse(BaseModel):
    name: str
    count: int = Field(description="Active notes carrying this tag")
    starred: int = Field(description="Of those, how many are starred")
    last_used: datetime


class TagListResponse(BaseModel):
    tags: List[TagResponse]
    total_tags: int = Field(description="Distinct tags in use, ignoring the search filter")
    search: Optional[str] = None
