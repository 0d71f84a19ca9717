"""
Inkwell Backend — Note Lifecycle Manager
=========================================

What:  Owns note state transitions (active ⇄ trashed → purged) and the
       folder/star field writes, all gated by the caller's effective role.
Why:   Every path that trashes, restores or removes a note goes through one
       place, so permission checks and the retention policy cannot drift
       between the HTTP handlers and the background sweeper.
How:   Each operation loads the note, resolves the actor's effective role
       (see permission_service), checks it, then performs a single
       read-modify-write inside the caller's session.
Who:   Called by the notes routes, the trash sweeper, and the lazy sweep that
       runs before a trash listing.

State Machine:
    Active  --soft_delete (can_edit)-->               Trashed
    Trashed --restore (can_edit)-->                   Active
    Trashed --purge (can_edit) | purge_expired-->     row deleted
    Active  --purge (owner only, skip-trash)-->       row deleted

    viewer / none never transition anything (PermissionDeniedError).
    Permission is checked before state: a viewer restoring an active note
    gets 403, not 409.

Concurrency:
    Row removal is a conditional DELETE (`WHERE id = :id AND state = 'trashed'
    ...`), never load-then-delete. When the sweeper and a user race:
        - sweep first  → the user's restore flushes an UPDATE matching 0 rows
                         → NotFoundError
        - restore first → the sweep's DELETE no longer matches its criteria
                          → the note is skipped
    Neither side ever leaves a half-written note behind.

Retention:
    days_left = ceil((deleted_at + retention - now) / 1 day), floored at 0.
    A note becomes purgeable once now - deleted_at > retention, i.e. one day
    after it first shows "expires today".
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.exceptions import (
    InkwellError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.models.enums import ActivityType, NoteState
from app.models.note import Note, NoteShare
from app.schemas.actor import Actor
from app.schemas.note import BulkItemResult
from app.services.activity_service import activity_service
from app.services.permission_service import EffectiveRole, resolve_effective_role
from app.services.team_service import team_service
from app.timeutils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

FOLDER_NAME_MAX = 100
ONE_DAY = timedelta(days=1)


def days_left(deleted_at: datetime, now: datetime, retention_days: int) -> int:
    """Whole days until a trashed note becomes purgeable, floored at 0."""
    expires_at = ensure_utc(deleted_at) + timedelta(days=retention_days)
    return max(0, math.ceil((expires_at - ensure_utc(now)) / ONE_DAY))


@dataclass
class TrashEntry:
    note: Note
    days_left: int

    @property
    def expires_today(self) -> bool:
        return self.days_left == 0


class NoteLifecycleService:
    """
    Permission-gated lifecycle transitions for notes.

    Args:
        clock: Returns the current UTC time. Tests pass a fixed clock to
               simulate the retention window elapsing.
        retention_days: Overrides settings.trash_retention_days.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        retention_days: Optional[int] = None,
    ):
        self._clock = clock
        self._retention_days = retention_days

    @property
    def retention_days(self) -> int:
        if self._retention_days is not None:
            return self._retention_days
        return settings.trash_retention_days

    def now(self) -> datetime:
        return ensure_utc(self._clock())

    # ── Loading & Permission ─────────────────────────────────────────────

    async def load(self, db: AsyncSession, note_id: UUID) -> Note:
        """
        Fetch a note in any state, refreshing any copy already in the session.

        Raises:
            NotFoundError: No row with this id (never existed, or purged)
        """
        result = await db.execute(
            select(Note)
            .where(Note.id == note_id)
            .execution_options(populate_existing=True)
        )
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def load_active(self, db: AsyncSession, note_id: UUID) -> Note:
        """Like load(), but a trashed note is reported as not found."""
        note = await self.load(db, note_id)
        if note.is_trashed:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def resolve(self, db: AsyncSession, actor: Actor, note: Note) -> EffectiveRole:
        """Effective role of actor on note, fetching team membership when needed."""
        membership = None
        if note.is_team_note:
            membership = await team_service.get_membership(db, note.team_id, actor.id)
        return resolve_effective_role(actor, note, membership)

    def _require_edit(
        self, effective: EffectiveRole, note: Note, actor: Actor, action: str
    ) -> None:
        if effective.can_edit:
            return
        logger.warning(
            "Denied %s on note %s for user %s (role=%s, source=%s)",
            action, note.id, actor.id, effective.role.value, effective.source.value,
        )
        raise PermissionDeniedError(
            action=action,
            context={"note_id": str(note.id), "source": effective.source.value},
        )

    # ── Persistence Helpers ──────────────────────────────────────────────

    async def flush(self, db: AsyncSession, note_id: UUID) -> None:
        """Flush pending writes; a row that vanished meanwhile becomes NotFoundError."""
        try:
            await db.flush()
        except StaleDataError:
            logger.info("Note %s disappeared before the write was flushed", note_id)
            raise NotFoundError(resource="note", resource_id=str(note_id))

    async def _delete_note(self, db: AsyncSession, note: Note, *criteria) -> None:
        """
        Remove a note row (and its shares) only if `criteria` still hold.

        Raises:
            NotFoundError: The row is already gone
            InvalidStateError: The row exists but no longer matches criteria
        """
        note_id = note.id
        result = await db.execute(
            delete(Note)
            .where(Note.id == note_id, *criteria)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await db.execute(select(Note.state).where(Note.id == note_id))
            state = current.scalar_one_or_none()
            if state is None:
                db.expunge(note)
                raise NotFoundError(resource="note", resource_id=str(note_id))
            raise InvalidStateError(
                "The note changed before it could be deleted", current_state=state
            )

        await db.execute(
            delete(NoteShare)
            .where(NoteShare.note_id == note_id)
            .execution_options(synchronize_session=False)
        )
        # The row is gone; drop the instance (and its shares) from the session
        db.expunge(note)

    # ══════════════════════════════════════════════════════════════════════
    # State Transitions
    # ══════════════════════════════════════════════════════════════════════

    async def soft_delete(self, db: AsyncSession, note_id: UUID, actor: Actor) -> Note:
        """
        Move a note to the trash.

        Idempotent: a note that is already trashed is returned unchanged,
        keeping its original deleted_at so the retention clock is not reset.
        """
        note = await self.load(db, note_id)
        effective = await self.resolve(db, actor, note)
        self._require_edit(effective, note, actor, "delete")

        if note.is_trashed:
            logger.debug("Note %s already in trash", note.id)
            return note

        note.state = NoteState.TRASHED.value
        note.deleted_at = self.now()
        await self.flush(db, note.id)
        logger.info("Note %s moved to trash by %s", note.id, actor.id)

        await activity_service.record_note_event(
            db, note, actor.id, ActivityType.NOTE_DELETED,
            f'Moved "{note.title}" to trash',
        )
        return note

    async def restore(self, db: AsyncSession, note_id: UUID, actor: Actor) -> Note:
        """
        Bring a trashed note back to active.

        Raises:
            PermissionDeniedError: Caller cannot edit the note
            InvalidStateError: Note is not in the trash (nothing is changed)
            NotFoundError: Note does not exist or was purged concurrently
        """
        note = await self.load(db, note_id)
        effective = await self.resolve(db, actor, note)
        self._require_edit(effective, note, actor, "restore")

        if not note.is_trashed:
            raise InvalidStateError("Note is not in trash", current_state=note.state)

        note.state = NoteState.ACTIVE.value
        note.deleted_at = None
        await self.flush(db, note.id)
        logger.info("Note %s restored by %s", note.id, actor.id)

        await activity_service.record_note_event(
            db, note, actor.id, ActivityType.NOTE_RESTORED,
            f'Restored "{note.title}" from trash',
        )
        return note

    async def purge(self, db: AsyncSession, note_id: UUID, actor: Actor) -> None:
        """
        Permanently remove a note. Irreversible.

        A trashed note may be purged by anyone who can edit it. Purging an
        active note (skip-trash delete) is reserved to its owner.
        """
        note = await self.load(db, note_id)
        effective = await self.resolve(db, actor, note)

        if note.is_trashed:
            self._require_edit(effective, note, actor, "permanently delete")
            criteria = (Note.state == NoteState.TRASHED.value,)
        else:
            if not effective.is_owner:
                logger.warning(
                    "Denied skip-trash delete of note %s for user %s (role=%s)",
                    note.id, actor.id, effective.role.value,
                )
                raise PermissionDeniedError(
                    action="permanently delete",
                    context={"note_id": str(note.id), "source": effective.source.value},
                )
            criteria = ()

        await activity_service.record_note_event(
            db, note, actor.id, ActivityType.NOTE_PERMANENTLY_DELETED,
            f'Permanently deleted "{note.title}"',
        )
        await self._delete_note(db, note, *criteria)
        logger.info("Note %s permanently deleted by %s", note_id, actor.id)

    async def purge_expired(
        self,
        db: AsyncSession,
        retention_days: Optional[int] = None,
        owner_id: Optional[UUID] = None,
    ) -> int:
        """
        Purge every trashed note whose retention window has elapsed.

        Runs with no actor and no permission check. Each note is removed in
        its own SAVEPOINT with a conditional DELETE, so a note restored or
        purged by a user mid-sweep is skipped rather than failing the sweep.

        Args:
            retention_days: Defaults to the configured retention window.
            owner_id: Limit the sweep to one owner's notes (lazy sweep).

        Returns:
            Number of notes removed.
        """
        retention = self.retention_days if retention_days is None else retention_days
        cutoff = self.now() - timedelta(days=retention)

        query = select(Note).where(
            Note.state == NoteState.TRASHED.value,
            Note.deleted_at < cutoff,
        )
        if owner_id is not None:
            query = query.where(Note.owner_id == owner_id)
        result = await db.execute(query)
        candidates = list(result.scalars().all())

        purged = 0
        for note in candidates:
            note_id = note.id
            try:
                async with db.begin_nested():
                    await activity_service.record_note_event(
                        db, note, None, ActivityType.NOTE_PERMANENTLY_DELETED,
                        f'"{note.title}" was removed after {retention} days in trash',
                        reason="retention_expired",
                    )
                    await self._delete_note(
                        db,
                        note,
                        Note.state == NoteState.TRASHED.value,
                        Note.deleted_at < cutoff,
                    )
            except (NotFoundError, InvalidStateError):
                logger.info("Expired note %s changed during sweep; skipped", note_id)
                continue
            purged += 1

        if purged:
            logger.info("Expiry sweep purged %d note(s) (retention=%d days)", purged, retention)
        return purged

    async def empty_trash(self, db: AsyncSession, actor: Actor) -> int:
        """
        Purge all of the actor's trashed notes.

        Each note is purged independently; one failing note is logged and
        skipped without undoing the others. Returns the number removed.
        """
        result = await db.execute(
            select(Note.id).where(
                Note.owner_id == actor.id,
                Note.state == NoteState.TRASHED.value,
            )
        )
        note_ids = list(result.scalars().all())

        deleted = 0
        for note_id in note_ids:
            try:
                async with db.begin_nested():
                    await self.purge(db, note_id, actor)
            except (InkwellError, SQLAlchemyError) as e:
                logger.warning("Empty trash skipped note %s: %s", note_id, str(e))
                continue
            deleted += 1

        logger.info("Trash emptied for %s: %d note(s) deleted", actor.id, deleted)
        return deleted

    async def _bulk(
        self,
        db: AsyncSession,
        note_ids: Sequence[UUID],
        actor: Actor,
        operation: Callable,
    ) -> List[BulkItemResult]:
        results = []
        for note_id in note_ids:
            try:
                async with db.begin_nested():
                    await operation(db, note_id, actor)
            except InkwellError as e:
                results.append(BulkItemResult(
                    note_id=note_id, success=False, error=e.error_code, message=e.message,
                ))
                continue
            except SQLAlchemyError as e:
                logger.error("Bulk operation failed on note %s: %s", note_id, str(e))
                results.append(BulkItemResult(
                    note_id=note_id, success=False, error="server_error",
                    message="A database error occurred",
                ))
                continue
            results.append(BulkItemResult(note_id=note_id, success=True))
        return results

    async def bulk_restore(
        self, db: AsyncSession, note_ids: Sequence[UUID], actor: Actor
    ) -> List[BulkItemResult]:
        """Restore each note independently; failures are reported per item."""
        return await self._bulk(db, note_ids, actor, self.restore)

    async def bulk_purge(
        self, db: AsyncSession, note_ids: Sequence[UUID], actor: Actor
    ) -> List[BulkItemResult]:
        return await self._bulk(db, note_ids, actor, self.purge)

    # ══════════════════════════════════════════════════════════════════════
    # Folder / Star Writes
    # ══════════════════════════════════════════════════════════════════════

    async def set_folder(
        self, db: AsyncSession, note_id: UUID, folder: Optional[str], actor: Actor
    ) -> Note:
        """Move a note into a folder by name; None (or blank) moves it to the root."""
        folder = (folder or "").strip() or None
        if folder is not None and len(folder) > FOLDER_NAME_MAX:
            raise ValidationError(
                f"Folder name cannot be more than {FOLDER_NAME_MAX} characters",
                field="folder",
            )

        note = await self.load_active(db, note_id)
        effective = await self.resolve(db, actor, note)
        self._require_edit(effective, note, actor, "move")

        if note.folder == folder:
            return note

        previous = note.folder
        note.folder = folder
        await self.flush(db, note.id)
        logger.info("Note %s moved from %r to %r", note.id, previous, folder)

        await activity_service.record_note_event(
            db, note, actor.id, ActivityType.NOTE_MOVED,
            f'Moved "{note.title}" to {folder or "root"}',
            from_folder=previous, to_folder=folder,
        )
        return note

    async def set_starred(
        self, db: AsyncSession, note_id: UUID, starred: bool, actor: Actor
    ) -> Note:
        note = await self.load_active(db, note_id)
        effective = await self.resolve(db, actor, note)
        self._require_edit(effective, note, actor, "star")

        if note.starred == starred:
            return note

        note.starred = starred
        await self.flush(db, note.id)

        activity_type = ActivityType.NOTE_STARRED if starred else ActivityType.NOTE_UNSTARRED
        verb = "Starred" if starred else "Unstarred"
        await activity_service.record_note_event(
            db, note, actor.id, activity_type, f'{verb} "{note.title}"',
        )
        return note

    async def toggle_starred(self, db: AsyncSession, note_id: UUID, actor: Actor) -> Note:
        note = await self.load_active(db, note_id)
        return await self.set_starred(db, note_id, not note.starred, actor)

    # ══════════════════════════════════════════════════════════════════════
    # Trash Listing
    # ══════════════════════════════════════════════════════════════════════

    async def list_trash(self, db: AsyncSession, actor: Actor) -> List[TrashEntry]:
        """
        The actor's trashed notes, most recently deleted first.

        When TRASH_LAZY_SWEEP is on, the actor's expired notes are purged
        first so the listing never shows a note past its window.
        """
        if settings.trash_lazy_sweep:
            await self.purge_expired(db, owner_id=actor.id)

        result = await db.execute(
            select(Note)
            .where(
                Note.owner_id == actor.id,
                Note.state == NoteState.TRASHED.value,
            )
            .order_by(Note.deleted_at.desc())
        )
        now = self.now()
        return [
            TrashEntry(note=note, days_left=days_left(note.deleted_at, now, self.retention_days))
            for note in result.scalars().all()
        ]


# ── Singleton Instance ────────────────────────────────────────────────────
lifecycle_service = NoteLifecycleService()
