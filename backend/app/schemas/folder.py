"""
Inkwell Backend — Folder Schemas
=================================
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from app.timeutils import ensure_utc


class FolderCreate(BaseModel):
    name: str = Field(description="Folder name (max 100 chars, unique per scope)")
    team_id: Optional[uuid.UUID] = Field(default=None, description="Team for a team folder")


class FolderUpdate(BaseModel):
    name: str = Field(description="New folder name; notes filed under the old name follow")


class FolderResponse(BaseModel):
    """A folder with counts derived from the active notes filed under its name."""
    id: uuid.UUID
    name: str
    owner_id: Optional[uuid.UUID] = None
    team_id: Optional[uuid.UUID] = None
    created_by: uuid.UUID
    created_at: datetime
    note_count: int = 0
    starred_count: int = 0

    @classmethod
    def from_folder(cls, folder: Any, note_count: int = 0, starred_count: int = 0) -> "FolderResponse":
        return cls(
            id=folder.id,
            name=folder.name,
            owner_id=folder.owner_id,
            team_id=folder.team_id,
            created_by=folder.created_by,
            created_at=ensure_utc(folder.created_at),
            note_count=note_count,
            starred_count=starred_count,
        )


class FolderListResponse(BaseModel):
    folders: List[FolderResponse]


class FolderDeleteResponse(BaseModel):
    message: str
    folder_id: uuid.UUID
    notes_moved: int
