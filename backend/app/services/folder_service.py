"""
Inkwell Backend — Folder Service
=================================

What:  Personal and team folders, with note counts derived on read.
Why:   Notes reference folders by name only. Counts are recomputed from the
       notes table every time so they can never drift from the notes.
Who:   Called by the folder routes.

Rules:
    - Personal folders belong to their creator.
    - Team folders are created, renamed and deleted by team owners/admins.
    - Names are unique per scope (one owner's personal folders, or one team),
      backed by partial unique indexes so concurrent creates cannot both win.
    - Renaming a folder refiles its notes (active and trashed) under the new
      name; deleting it moves them to the root.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.models.enums import ActivityType, NoteState
from app.models.folder import Folder
from app.models.note import Note
from app.schemas.actor import Actor
from app.services.activity_service import activity_service
from app.services.permission_service import can_manage_team
from app.services.team_service import team_service

logger = logging.getLogger(__name__)

FOLDER_NAME_MAX = 100
DUPLICATE_NAME = "A folder with this name already exists"


@dataclass
class FolderSummary:
    folder: Folder
    note_count: int
    starred_count: int


def _check_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Folder name is required", field="name")
    if len(name) > FOLDER_NAME_MAX:
        raise ValidationError(
            f"Folder name cannot be more than {FOLDER_NAME_MAX} characters", field="name"
        )
    return name


def _notes_in_scope(folder_owner_id: Optional[UUID], team_id: Optional[UUID]):
    """Filter selecting the notes a folder scope can contain."""
    if team_id is not None:
        return Note.team_id == team_id
    return and_(Note.owner_id == folder_owner_id, Note.is_team_note.is_(False))


class FolderService:
    """Business logic for folders."""

    async def _require_team_manager(self, db: AsyncSession, team_id: UUID, actor: Actor) -> None:
        membership = await team_service.get_membership(db, team_id, actor.id)
        if not can_manage_team(membership):
            logger.warning("Folder management denied for %s in team %s", actor.id, team_id)
            raise PermissionDeniedError(action="manage folders in", resource="team")

    async def list_folders(
        self, db: AsyncSession, actor: Actor, team_id: Optional[UUID] = None
    ) -> List[FolderSummary]:
        """
        Folders in one scope with their active note counts, sorted by name.

        team_id=None lists the actor's personal folders.
        """
        if team_id is not None:
            membership = await team_service.get_membership(db, team_id, actor.id)
            if membership is None:
                raise PermissionDeniedError(action="view", resource="team")
            folder_filter = Folder.team_id == team_id
        else:
            folder_filter = and_(Folder.owner_id == actor.id, Folder.team_id.is_(None))

        result = await db.execute(select(Folder).where(folder_filter).order_by(Folder.name))
        folders = list(result.scalars().all())
        if not folders:
            return []

        counts = await db.execute(
            select(
                Note.folder,
                func.count(Note.id),
                func.sum(case((Note.starred.is_(True), 1), else_=0)),
            )
            .where(
                _notes_in_scope(actor.id, team_id),
                Note.state == NoteState.ACTIVE.value,
                Note.folder.in_([f.name for f in folders]),
            )
            .group_by(Note.folder)
        )
        by_name = {name: (int(total), int(starred or 0)) for name, total, starred in counts.all()}

        return [
            FolderSummary(
                folder=f,
                note_count=by_name.get(f.name, (0, 0))[0],
                starred_count=by_name.get(f.name, (0, 0))[1],
            )
            for f in folders
        ]

    async def _name_taken(
        self, db: AsyncSession, owner_id: Optional[UUID], team_id: Optional[UUID], name: str
    ) -> bool:
        if team_id is not None:
            scope = Folder.team_id == team_id
        else:
            scope = and_(Folder.owner_id == owner_id, Folder.team_id.is_(None))
        existing = await db.execute(select(Folder.id).where(scope, Folder.name == name))
        return existing.first() is not None

    async def _load_managed(
        self, db: AsyncSession, folder_id: UUID, actor: Actor, action: str
    ) -> Folder:
        """A folder the actor may rename or delete."""
        folder = await db.get(Folder, folder_id)
        if folder is None:
            raise NotFoundError(resource="folder", resource_id=str(folder_id))

        if folder.is_team_folder:
            await self._require_team_manager(db, folder.team_id, actor)
        elif folder.owner_id != actor.id:
            logger.warning("Folder %s %s denied for %s", folder.id, action, actor.id)
            raise PermissionDeniedError(action=action, resource="folder")
        return folder

    async def create_folder(
        self,
        db: AsyncSession,
        actor: Actor,
        name: str,
        team_id: Optional[UUID] = None,
    ) -> Folder:
        name = _check_name(name)

        if team_id is not None:
            await self._require_team_manager(db, team_id, actor)
        if await self._name_taken(db, actor.id, team_id, name):
            raise ValidationError(DUPLICATE_NAME, field="name")

        folder = Folder(
            name=name,
            owner_id=None if team_id is not None else actor.id,
            team_id=team_id,
            created_by=actor.id,
        )
        # A concurrent create of the same name loses at the unique index
        try:
            async with db.begin_nested():
                db.add(folder)
        except IntegrityError:
            logger.info("Folder name %r taken concurrently for %s", name, actor.id)
            raise ValidationError(DUPLICATE_NAME, field="name")
        logger.info("Folder %s (%s) created by %s", folder.id, name, actor.id)

        if team_id is not None:
            await activity_service.record(
                db,
                team_id=team_id,
                user_id=actor.id,
                activity_type=ActivityType.FOLDER_CREATED,
                description=f'Created folder "{name}"',
                resource_id=folder.id,
                resource_type="folder",
            )
        return folder

    async def rename_folder(
        self, db: AsyncSession, folder_id: UUID, actor: Actor, name: str
    ) -> FolderSummary:
        """
        Rename a folder and refile its notes under the new name.

        Notes are matched by the old name within the folder's scope, trashed
        ones included, so a restored note comes back into the renamed folder.
        """
        folder = await self._load_managed(db, folder_id, actor, "rename")
        name = _check_name(name)
        previous = folder.name

        if name != previous:
            if await self._name_taken(db, folder.owner_id, folder.team_id, name):
                raise ValidationError(DUPLICATE_NAME, field="name")
            try:
                async with db.begin_nested():
                    await db.execute(
                        update(Note)
                        .where(_notes_in_scope(folder.owner_id, folder.team_id), Note.folder == previous)
                        .values(folder=name)
                        .execution_options(synchronize_session=False)
                    )
                    folder.name = name
            except IntegrityError:
                logger.info("Folder name %r taken concurrently for %s", name, actor.id)
                raise ValidationError(DUPLICATE_NAME, field="name")
            logger.info("Folder %s renamed by %s", folder.id, actor.id)

            if folder.is_team_folder:
                await activity_service.record(
                    db,
                    team_id=folder.team_id,
                    user_id=actor.id,
                    activity_type=ActivityType.FOLDER_RENAMED,
                    description=f'Renamed folder "{previous}" to "{name}"',
                    resource_id=folder.id,
                    resource_type="folder",
                    details={"previous_name": previous},
                )

        # Counts as seen by the actor, like list_folders
        summaries = await self.list_folders(db, actor, team_id=folder.team_id)
        return next(
            (s for s in summaries if s.folder.id == folder.id),
            FolderSummary(folder=folder, note_count=0, starred_count=0),
        )

    async def delete_folder(self, db: AsyncSession, folder_id: UUID, actor: Actor) -> int:
        """
        Delete a folder and move its notes to the root.

        Returns:
            Number of notes that were moved out of the folder.
        """
        folder = await self._load_managed(db, folder_id, actor, "delete")

        moved = await db.execute(
            update(Note)
            .where(_notes_in_scope(folder.owner_id, folder.team_id), Note.folder == folder.name)
            .values(folder=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(folder)
        await db.flush()
        logger.info("Folder %s deleted by %s; %d note(s) moved to root", folder.id, actor.id, moved.rowcount)

        if folder.is_team_folder:
            await activity_service.record(
                db,
                team_id=folder.team_id,
                user_id=actor.id,
                activity_type=ActivityType.FOLDER_DELETED,
                description=f'Deleted folder "{folder.name}"',
                resource_id=folder.id,
                resource_type="folder",
                details={"notes_moved": moved.rowcount},
            )
        return moved.rowcount


folder_service = FolderService()
