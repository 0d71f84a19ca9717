"""
Inkwell Backend — Note Service (Business Logic Orchestrator)
=============================================================

What:  Creating, reading, editing, listing and sharing active notes.
Why:   Encapsulates note business rules in one place, independent of HTTP.
How:   Loads notes through the lifecycle service (which owns state checks),
       resolves the caller's effective role, validates input, and persists
       through the caller's session.
Who:   Called by the notes routes.

Validation:
    All problems with a create/update payload are collected and raised as a
    single ValidationError, e.g. "Title is required, Tag cannot be more than
    50 characters". Content is opaque markup and is only length-checked.

Concurrency:
    update_note() is last-write-wins. `version` is bumped on every save so
    clients can display it, but it is not compared on write.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.models.enums import ActivityType, NoteState, ShareRole
from app.models.note import Note, NoteShare
from app.schemas.actor import Actor
from app.services.activity_service import activity_service
from app.services.lifecycle_service import lifecycle_service
from app.services.permission_service import (
    EffectiveRole,
    can_create_team_notes,
    find_share,
)
from app.services.team_service import team_service
from app.text import count_words, reading_time_minutes
from app.timeutils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

TITLE_MAX = 200
CONTENT_MAX = 50_000
FOLDER_MAX = 100
TAG_MAX = 50


@dataclass
class TagUsage:
    """One tag across the actor's active notes."""
    name: str
    count: int
    starred: int
    last_used: datetime


def _clean_tags(tags: Optional[List[str]], errors: List[str]) -> List[str]:
    """Trim, drop blanks and de-duplicate tags, preserving first occurrence order."""
    cleaned: List[str] = []
    too_long = False
    for tag in tags or []:
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > TAG_MAX:
            too_long = True
            continue
        if tag not in cleaned:
            cleaned.append(tag)
    if too_long:
        errors.append(f"Tag cannot be more than {TAG_MAX} characters")
    return cleaned


def _check_title(title: Optional[str], errors: List[str]) -> str:
    title = (title or "").strip()
    if not title:
        errors.append("Title is required")
    elif len(title) > TITLE_MAX:
        errors.append(f"Title cannot be more than {TITLE_MAX} characters")
    return title


def _check_content(content: Optional[str], errors: List[str]) -> str:
    content = content or ""
    if len(content) > CONTENT_MAX:
        errors.append(f"Content cannot be more than {CONTENT_MAX} characters")
    return content


def _check_folder(folder: Optional[str], errors: List[str]) -> Optional[str]:
    folder = (folder or "").strip() or None
    if folder is not None and len(folder) > FOLDER_MAX:
        errors.append(f"Folder name cannot be more than {FOLDER_MAX} characters")
    return folder


class NoteService:
    """
    Business logic for active notes.

    Trash, restore, purge and the folder/star writes live in
    NoteLifecycleService; this service covers everything else.
    """

    async def create_note(
        self,
        db: AsyncSession,
        actor: Actor,
        title: str,
        content: str = "",
        folder: Optional[str] = None,
        tags: Optional[List[str]] = None,
        starred: bool = False,
        team_id: Optional[UUID] = None,
    ) -> Note:
        """
        Create an active note owned by the actor.

        Raises:
            ValidationError: One or more fields are invalid (all listed)
            PermissionDeniedError: team_id given but the actor cannot author
                                   notes in that team
        """
        errors: List[str] = []
        title = _check_title(title, errors)
        content = _check_content(content, errors)
        folder = _check_folder(folder, errors)
        tags = _clean_tags(tags, errors)
        if errors:
            raise ValidationError(errors=errors)

        if team_id is not None:
            membership = await team_service.get_membership(db, team_id, actor.id)
            if not can_create_team_notes(membership):
                logger.warning("User %s cannot create notes in team %s", actor.id, team_id)
                raise PermissionDeniedError(action="create notes in", resource="team")

        words = count_words(content)
        note = Note(
            owner_id=actor.id,
            title=title,
            content=content,
            folder=folder,
            tags=tags,
            starred=starred,
            is_team_note=team_id is not None,
            team_id=team_id,
            state=NoteState.ACTIVE.value,
            word_count=words,
            reading_time=reading_time_minutes(words),
            shares=[],
        )
        db.add(note)
        await db.flush()
        logger.info("Note %s created by %s", note.id, actor.id)

        await activity_service.record_note_event(
            db, note, actor.id, ActivityType.NOTE_CREATED, f'Created "{note.title}"',
        )
        return note

    async def get_note(
        self, db: AsyncSession, note_id: UUID, actor: Actor
    ) -> Tuple[Note, EffectiveRole]:
        """
        A note the actor can view, with the actor's effective role.

        Trashed notes are readable too (the trash view opens them read-only).
        """
        note = await lifecycle_service.load(db, note_id)
        effective = await lifecycle_service.resolve(db, actor, note)
        if not effective.can_view:
            logger.warning("Denied view of note %s for user %s", note.id, actor.id)
            raise PermissionDeniedError(
                action="view",
                context={"note_id": str(note.id), "source": effective.source.value},
            )
        return note, effective

    async def get_permissions(
        self, db: AsyncSession, note_id: UUID, actor: Actor
    ) -> EffectiveRole:
        """The actor's effective role, for a caller who can at least view the note."""
        note = await lifecycle_service.load(db, note_id)
        effective = await lifecycle_service.resolve(db, actor, note)
        if not effective.can_view:
            raise PermissionDeniedError(action="view", context={"note_id": str(note.id)})
        return effective

    async def update_note(
        self,
        db: AsyncSession,
        note_id: UUID,
        actor: Actor,
        changes: Dict[str, Any],
        manual: bool = True,
    ) -> Note:
        """
        Apply a partial update to an active note.

        Args:
            changes: Only the keys present are applied (title, content,
                     folder, tags, starred). A None value leaves the field
                     unchanged, except folder, where None means the root.
            manual: False for editor autosaves, which do not add an
                    activity entry.
        """
        note = await lifecycle_service.load_active(db, note_id)
        effective = await lifecycle_service.resolve(db, actor, note)
        if not effective.can_edit:
            logger.warning("Denied edit of note %s for user %s", note.id, actor.id)
            raise PermissionDeniedError(
                action="edit",
                context={"note_id": str(note.id), "source": effective.source.value},
            )

        errors: List[str] = []
        values: Dict[str, Any] = {}
        if changes.get("title") is not None:
            values["title"] = _check_title(changes["title"], errors)
        if changes.get("content") is not None:
            values["content"] = _check_content(changes["content"], errors)
        # folder=None moves the note to the root
        if "folder" in changes:
            values["folder"] = _check_folder(changes["folder"], errors)
        if changes.get("tags") is not None:
            values["tags"] = _clean_tags(changes["tags"], errors)
        if changes.get("starred") is not None:
            values["starred"] = bool(changes["starred"])
        if errors:
            raise ValidationError(errors=errors)

        for field, value in values.items():
            setattr(note, field, value)
        note.word_count = count_words(note.content)
        note.reading_time = reading_time_minutes(note.word_count)
        note.version = note.version + 1
        note.updated_at = utcnow()
        await lifecycle_service.flush(db, note.id)
        logger.info("Note %s updated by %s (version %d)", note.id, actor.id, note.version)

        if manual:
            await activity_service.record_note_event(
                db, note, actor.id, ActivityType.NOTE_EDITED, f'Edited "{note.title}"',
            )
        return note

    async def list_notes(
        self,
        db: AsyncSession,
        actor: Actor,
        folder: Optional[str] = None,
        starred: Optional[bool] = None,
        search: Optional[str] = None,
        team_id: Optional[UUID] = None,
        tag: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Note], int]:
        """
        Active notes visible to the actor: their own, those of their teams,
        and personal notes shared with them directly.

        Tags are a JSON list, so a tag filter is applied in Python over the
        SQL-filtered rows before paging.

        Returns:
            (page of notes ordered by updated_at DESC, total matching count)
        """
        team_ids = await team_service.list_team_ids(db, actor.id)
        shared_ids = select(NoteShare.note_id).where(NoteShare.user_id == actor.id)

        visibility = [
            Note.owner_id == actor.id,
            (Note.is_team_note.is_(False)) & (Note.id.in_(shared_ids)),
        ]
        if team_ids:
            visibility.append(Note.team_id.in_(team_ids))

        filters = [Note.state == NoteState.ACTIVE.value, or_(*visibility)]
        if team_id is not None:
            filters.append(Note.team_id == team_id)
        if folder is not None:
            filters.append(Note.folder == folder)
        if starred is not None:
            filters.append(Note.starred.is_(starred))
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(Note.title.ilike(pattern), Note.content.ilike(pattern)))

        query = select(Note).where(*filters).order_by(Note.updated_at.desc())

        tag = (tag or "").strip()
        if tag:
            result = await db.execute(query)
            matching = [n for n in result.scalars().all() if tag in (n.tags or [])]
            return matching[offset:offset + limit], len(matching)

        count_result = await db.execute(select(func.count(Note.id)).where(*filters))
        total = count_result.scalar() or 0

        result = await db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all()), total

    async def list_tags(
        self,
        db: AsyncSession,
        actor: Actor,
        search: Optional[str] = None,
        limit: int = 50,
    ) -> Tuple[List[TagUsage], int]:
        """
        Tags on the actor's own active notes, most used first.

        Returns:
            (up to `limit` tags matching `search`, number of distinct tags
            the actor uses regardless of `search`)
        """
        result = await db.execute(
            select(Note.tags, Note.starred, Note.updated_at).where(
                Note.owner_id == actor.id,
                Note.state == NoteState.ACTIVE.value,
            )
        )

        usage: Dict[str, TagUsage] = {}
        for tags, starred, updated_at in result.all():
            updated_at = ensure_utc(updated_at)
            for name in tags or []:
                entry = usage.get(name)
                if entry is None:
                    entry = TagUsage(name=name, count=0, starred=0, last_used=updated_at)
                    usage[name] = entry
                entry.count += 1
                entry.starred += 1 if starred else 0
                entry.last_used = max(entry.last_used, updated_at)

        needle = (search or "").strip().lower()
        matching = [t for t in usage.values() if needle in t.name.lower()]
        matching.sort(key=lambda t: (t.count, t.last_used), reverse=True)
        return matching[:limit], len(usage)

    # ── Direct Shares ─────────────────────────────────────────────────────

    async def _load_owned_personal(self, db: AsyncSession, note_id: UUID, actor: Actor) -> Note:
        note = await lifecycle_service.load_active(db, note_id)
        if note.owner_id != actor.id:
            logger.warning("Denied share change on note %s for user %s", note.id, actor.id)
            raise PermissionDeniedError(action="share", context={"note_id": str(note.id)})
        if note.is_team_note:
            raise ValidationError(
                "Team notes are shared through team membership", field="user_id"
            )
        return note

    async def share_note(
        self,
        db: AsyncSession,
        note_id: UUID,
        actor: Actor,
        user_id: UUID,
        role: ShareRole,
    ) -> Note:
        """
        Grant (or change) a direct share on a personal note. Owner only.

        Re-sharing with an existing user updates the role in place, keeping
        the entry's position in shared_with.
        """
        note = await self._load_owned_personal(db, note_id, actor)
        if user_id == note.owner_id:
            raise ValidationError("A note cannot be shared with its owner", field="user_id")

        existing = find_share(note.shares, user_id)
        if existing is not None:
            existing.role = role.value
        else:
            position = max((s.position for s in note.shares), default=-1) + 1
            note.shares.append(NoteShare(user_id=user_id, role=role.value, position=position))
        await lifecycle_service.flush(db, note.id)
        logger.info("Note %s shared with %s as %s", note.id, user_id, role.value)
        return note

    async def unshare_note(
        self, db: AsyncSession, note_id: UUID, actor: Actor, user_id: UUID
    ) -> Note:
        note = await self._load_owned_personal(db, note_id, actor)
        share = find_share(note.shares, user_id)
        if share is None:
            raise NotFoundError(resource="share", resource_id=str(user_id))
        note.shares.remove(share)
        await lifecycle_service.flush(db, note.id)
        logger.info("Share for %s removed from note %s", user_id, note.id)
        return note


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
