"""
Inkwell Backend — Folder Route Handlers
========================================

What:  List, create, rename and delete personal or team folders.
Who:   Called by the web client's sidebar.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_actor
from app.schemas.actor import Actor
from app.schemas.common import ErrorResponse
from app.schemas.folder import (
    FolderCreate,
    FolderDeleteResponse,
    FolderListResponse,
    FolderResponse,
    FolderUpdate,
)
from app.services.folder_service import folder_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Folders"])


@router.get(
    "/folders",
    response_model=FolderListResponse,
    responses={
        401: {"description": "Missing or invalid X-User-ID", "model": ErrorResponse},
        403: {"description": "Not a member of this team", "model": ErrorResponse},
    },
    summary="List folders with note counts",
    description="Personal folders by default; pass team_id for a team's folders.",
)
async def list_folders(
    team_id: Optional[UUID] = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> FolderListResponse:
    summaries = await folder_service.list_folders(db, actor, team_id=team_id)
    return FolderListResponse(
        folders=[
            FolderResponse.from_folder(s.folder, s.note_count, s.starred_count)
            for s in summaries
        ]
    )


@router.post(
    "/folders",
    response_model=FolderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid or duplicate name", "model": ErrorResponse},
        403: {"description": "Cannot manage this team's folders", "model": ErrorResponse},
    },
    summary="Create a folder",
)
async def create_folder(
    body: FolderCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    folder = await folder_service.create_folder(db, actor, body.name, team_id=body.team_id)
    return FolderResponse.from_folder(folder)


@router.put(
    "/folders/{folder_id}",
    response_model=FolderResponse,
    responses={
        400: {"description": "Invalid or duplicate name", "model": ErrorResponse},
        403: {"description": "Not allowed to rename this folder", "model": ErrorResponse},
        404: {"description": "Folder not found", "model": ErrorResponse},
    },
    summary="Rename a folder; its notes follow the new name",
    description="Works for personal and team folders alike; team folders need owner/admin.",
)
async def rename_folder(
    folder_id: UUID,
    body: FolderUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    summary = await folder_service.rename_folder(db, folder_id, actor, body.name)
    return FolderResponse.from_folder(summary.folder, summary.note_count, summary.starred_count)


@router.delete(
    "/folders/{folder_id}",
    response_model=FolderDeleteResponse,
    responses={
        403: {"description": "Not allowed to delete this folder", "model": ErrorResponse},
        404: {"description": "Folder not found", "model": ErrorResponse},
    },
    summary="Delete a folder; its notes move to the root",
)
async def delete_folder(
    folder_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> FolderDeleteResponse:
    moved = await folder_service.delete_folder(db, folder_id, actor)
    return FolderDeleteResponse(message="Folder deleted", folder_id=folder_id, notes_moved=moved)
