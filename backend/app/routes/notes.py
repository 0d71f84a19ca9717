"""
Inkwell Backend — Notes Route Handlers
=======================================

What:  HTTP surface for notes: CRUD, trash lifecycle, star/folder writes,
       direct shares and the caller's effective permissions.
How:   Each handler resolves the Actor from headers, delegates to
       NoteService / NoteLifecycleService, and shapes the response.
Who:   Called by the web client's dashboard, editor and trash views.

Route Order:
    The /notes/trash routes are declared before /notes/{note_id} so that
    "trash" is never parsed as a note id.

Caching:
    Every response here is per-user; nothing is marked cacheable.
"""

import logging
from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_actor
from app.models.enums import NoteState
from app.schemas.actor import Actor
from app.schemas.common import ErrorResponse
from app.schemas.note import (
    BulkNoteRequest,
    BulkOperationResponse,
    EffectiveRoleResponse,
    EmptyTrashResponse,
    FolderMoveRequest,
    FolderMoveResponse,
    LifecycleResponse,
    NoteCreate,
    NoteListItem,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
    PurgeResponse,
    ShareRequest,
    StarRequest,
    StarResponse,
    TrashItem,
    TrashListResponse,
)
from app.services.lifecycle_service import lifecycle_service
from app.services.note_service import note_service
from app.timeutils import ensure_utc

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api", tags=["Notes"])

# Error responses shared by every endpoint that takes a note id
NOTE_ERRORS = {
    401: {"description": "Missing or invalid X-User-ID", "model": ErrorResponse},
    403: {"description": "Effective role does not allow this", "model": ErrorResponse},
    404: {"description": "Note not found", "model": ErrorResponse},
}


# ══════════════════════════════════════════════════════════════════════════
# Collection
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "/notes",
    response_model=NoteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid fields (all problems listed)", "model": ErrorResponse},
        401: NOTE_ERRORS[401],
        403: {"description": "Not allowed to create notes in this team", "model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    body: NoteCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.create_note(
        db,
        actor,
        title=body.title,
        content=body.content,
        folder=body.folder,
        tags=body.tags,
        starred=body.starred,
        team_id=body.team_id,
    )
    effective = await lifecycle_service.resolve(db, actor, note)
    return NoteResponse.from_note(note, effective)


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={401: NOTE_ERRORS[401]},
    summary="List active notes visible to the caller",
    description=(
        "Returns the caller's notes, their teams' notes and notes shared with "
        "them, most recently updated first. Trashed notes are never listed here."
    ),
)
async def list_notes(
    response: Response,
    folder: Optional[str] = Query(default=None, description="Only notes in this folder"),
    starred: Optional[bool] = Query(default=None, description="Only starred (or unstarred) notes"),
    search: Optional[str] = Query(default=None, max_length=200, description="Title/content text search"),
    team_id: Optional[UUID] = Query(default=None, description="Only notes of this team"),
    tag: Optional[str] = Query(default=None, max_length=50, description="Only notes carrying this tag"),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    notes, total = await note_service.list_notes(
        db,
        actor,
        folder=folder,
        starred=starred,
        search=search,
        team_id=team_id,
        tag=tag,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return NoteListResponse(
        notes=[NoteListItem.from_note(n) for n in notes],
        total_count=total,
    )


# ══════════════════════════════════════════════════════════════════════════
# Trash
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/notes/trash",
    response_model=TrashListResponse,
    responses={401: NOTE_ERRORS[401]},
    summary="List the caller's trash",
    description=(
        "Trashed notes owned by the caller, most recently deleted first, with "
        "days left before automatic purge. Expired notes are purged first."
    ),
)
async def list_trash(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TrashListResponse:
    entries = await lifecycle_service.list_trash(db, actor)
    items = [
        TrashItem(
            **NoteListItem.from_note(e.note).model_dump(),
            deleted_at=ensure_utc(e.note.deleted_at),
            days_left=e.days_left,
            expires_today=e.expires_today,
        )
        for e in entries
    ]
    return TrashListResponse(
        notes=items, count=len(items), retention_days=lifecycle_service.retention_days
    )


@router.delete(
    "/notes/trash",
    response_model=EmptyTrashResponse,
    responses={401: NOTE_ERRORS[401]},
    summary="Empty the caller's trash",
)
async def empty_trash(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> EmptyTrashResponse:
    deleted = await lifecycle_service.empty_trash(db, actor)
    return EmptyTrashResponse(
        message=f"{deleted} note(s) permanently deleted",
        deleted_count=deleted,
    )


@router.post(
    "/notes/trash/restore",
    response_model=BulkOperationResponse,
    responses={401: NOTE_ERRORS[401]},
    summary="Restore several notes",
    description="Each note succeeds or fails independently; see per-item results.",
)
async def bulk_restore(
    body: BulkNoteRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> BulkOperationResponse:
    results = await lifecycle_service.bulk_restore(db, body.note_ids, actor)
    return BulkOperationResponse.from_results(results)


@router.post(
    "/notes/trash/purge",
    response_model=BulkOperationResponse,
    responses={401: NOTE_ERRORS[401]},
    summary="Permanently delete several notes",
    description="Each note succeeds or fails independently; see per-item results.",
)
async def bulk_purge(
    body: BulkNoteRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> BulkOperationResponse:
    results = await lifecycle_service.bulk_purge(db, body.note_ids, actor)
    return BulkOperationResponse.from_results(results)


# ══════════════════════════════════════════════════════════════════════════
# Single Note
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses=NOTE_ERRORS,
    summary="Get a note with the caller's effective role",
)
async def get_note(
    note_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note, effective = await note_service.get_note(db, note_id, actor)
    return NoteResponse.from_note(note, effective)


@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={400: {"description": "Invalid fields", "model": ErrorResponse}, **NOTE_ERRORS},
    summary="Update a note",
    description=(
        "Partial update; omitted fields are unchanged. Saves are last-write-wins. "
        "Pass autosave=true for editor autosaves, which are not added to the "
        "team activity feed."
    ),
)
async def update_note(
    note_id: UUID,
    body: NoteUpdate,
    autosave: bool = Query(default=False),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.update_note(
        db, note_id, actor, body.model_dump(exclude_unset=True), manual=not autosave
    )
    effective = await lifecycle_service.resolve(db, actor, note)
    return NoteResponse.from_note(note, effective)


@router.delete(
    "/notes/{note_id}",
    response_model=Union[LifecycleResponse, PurgeResponse],
    responses={409: {"description": "Note changed concurrently", "model": ErrorResponse}, **NOTE_ERRORS},
    summary="Move a note to trash, or delete it permanently",
    description=(
        "Without `permanent`, the note is moved to trash (idempotent). With "
        "`permanent=true` it is removed for good: a trashed note by anyone who "
        "can edit it, an active note only by its owner."
    ),
)
async def delete_note(
    note_id: UUID,
    permanent: bool = Query(default=False, description="Skip the trash"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> Union[LifecycleResponse, PurgeResponse]:
    if permanent:
        await lifecycle_service.purge(db, note_id, actor)
        return PurgeResponse(message="Note permanently deleted", note_id=note_id)

    note = await lifecycle_service.soft_delete(db, note_id, actor)
    return LifecycleResponse(
        message="Note moved to trash",
        note_id=note.id,
        state=NoteState(note.state),
        deleted_at=ensure_utc(note.deleted_at),
    )


@router.put(
    "/notes/{note_id}/restore",
    response_model=LifecycleResponse,
    responses={409: {"description": "Note is not in trash", "model": ErrorResponse}, **NOTE_ERRORS},
    summary="Restore a note from trash",
)
async def restore_note(
    note_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> LifecycleResponse:
    note = await lifecycle_service.restore(db, note_id, actor)
    return LifecycleResponse(
        message="Note restored",
        note_id=note.id,
        state=NoteState(note.state),
        deleted_at=None,
    )


@router.post(
    "/notes/{note_id}/star",
    response_model=StarResponse,
    responses=NOTE_ERRORS,
    summary="Toggle a note's star",
)
async def toggle_star(
    note_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> StarResponse:
    note = await lifecycle_service.toggle_starred(db, note_id, actor)
    return StarResponse(
        message="Note starred" if note.starred else "Note unstarred",
        note_id=note.id,
        starred=note.starred,
    )


@router.put(
    "/notes/{note_id}/star",
    response_model=StarResponse,
    responses=NOTE_ERRORS,
    summary="Set a note's star",
)
async def set_star(
    note_id: UUID,
    body: StarRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> StarResponse:
    note = await lifecycle_service.set_starred(db, note_id, body.starred, actor)
    return StarResponse(
        message="Note starred" if note.starred else "Note unstarred",
        note_id=note.id,
        starred=note.starred,
    )


@router.patch(
    "/notes/{note_id}/folder",
    response_model=FolderMoveResponse,
    responses={400: {"description": "Folder name too long", "model": ErrorResponse}, **NOTE_ERRORS},
    summary="Move a note to a folder (null for root)",
)
async def move_note(
    note_id: UUID,
    body: FolderMoveRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> FolderMoveResponse:
    note = await lifecycle_service.set_folder(db, note_id, body.folder, actor)
    return FolderMoveResponse(
        message=f"Note moved to {note.folder}" if note.folder else "Note moved to root",
        note_id=note.id,
        folder=note.folder,
    )


@router.get(
    "/notes/{note_id}/permissions",
    response_model=EffectiveRoleResponse,
    responses=NOTE_ERRORS,
    summary="The caller's effective role on a note",
)
async def get_permissions(
    note_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> EffectiveRoleResponse:
    effective = await note_service.get_permissions(db, note_id, actor)
    return EffectiveRoleResponse.from_effective(effective)


# ── Direct Shares ─────────────────────────────────────────────────────────


@router.post(
    "/notes/{note_id}/shares",
    response_model=NoteResponse,
    responses={400: {"description": "Team note or owner", "model": ErrorResponse}, **NOTE_ERRORS},
    summary="Share a personal note with a user (owner only)",
)
async def share_note(
    note_id: UUID,
    body: ShareRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.share_note(db, note_id, actor, body.user_id, body.role)
    effective = await lifecycle_service.resolve(db, actor, note)
    return NoteResponse.from_note(note, effective)


@router.delete(
    "/notes/{note_id}/shares/{user_id}",
    response_model=NoteResponse,
    responses=NOTE_ERRORS,
    summary="Revoke a direct share (owner only)",
)
async def unshare_note(
    note_id: UUID,
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.unshare_note(db, note_id, actor, user_id)
    effective = await lifecycle_service.resolve(db, actor, note)
    return NoteResponse.from_note(note, effective)
