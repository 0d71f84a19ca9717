"""
Inkwell Backend — Note Lifecycle Tests
=======================================

What:  Tests for NoteLifecycleService against an in-memory SQLite database.
How:   Services under test get a fixed clock so the retention window can be
       "elapsed" without waiting; every assertion re-reads the note from the
       database through load().
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from app.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from app.models.activity import Activity
from app.models.enums import ActivityType, NoteState, ShareRole, TeamRole
from app.models.note import Note, NoteShare
from app.services.activity_service import activity_service
from app.services.lifecycle_service import NoteLifecycleService, days_left
from app.services.note_service import note_service
from app.timeutils import ensure_utc

T0 = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def at(moment):
    return NoteLifecycleService(clock=lambda: moment, retention_days=30)


async def count(db, model, *criteria):
    result = await db.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar()


class TestRetentionMath:

    def test_twenty_nine_days_in_trash(self):
        assert days_left(T0 - timedelta(days=29), T0, 30) == 1

    def test_thirty_days_in_trash_expires_today(self):
        assert days_left(T0 - timedelta(days=30), T0, 30) == 0

    def test_partial_days_round_up(self):
        assert days_left(T0 - timedelta(days=29, hours=23), T0, 30) == 1
        assert days_left(T0, T0, 30) == 30

    def test_never_negative(self):
        assert days_left(T0 - timedelta(days=45), T0, 30) == 0

    def test_naive_deleted_at_treated_as_utc(self):
        naive = (T0 - timedelta(days=29)).replace(tzinfo=None)
        assert days_left(naive, T0, 30) == 1


class TestSoftDelete:

    @pytest.mark.asyncio
    async def test_moves_note_to_trash(self, db, make_note, alice):
        note = await make_note(alice)

        await at(T0).soft_delete(db, note.id, alice)

        stored = await at(T0).load(db, note.id)
        assert stored.state == NoteState.TRASHED.value
        assert ensure_utc(stored.deleted_at) == T0

    @pytest.mark.asyncio
    async def test_second_call_keeps_first_deleted_at(self, db, make_note, alice):
        note = await make_note(alice)

        await at(T0).soft_delete(db, note.id, alice)
        again = await at(T0 + timedelta(days=5)).soft_delete(db, note.id, alice)

        assert again.state == NoteState.TRASHED.value
        assert ensure_utc(again.deleted_at) == T0

    @pytest.mark.asyncio
    async def test_team_editor_can_trash_team_note(self, db, make_note, make_team, alice, bob):
        team = await make_team(alice, {bob: TeamRole.EDITOR})
        note = await make_note(alice, team_id=team.id)

        trashed = await at(T0).soft_delete(db, note.id, bob)

        assert trashed.is_trashed
        activities = await count(
            db, Activity,
            Activity.team_id == team.id,
            Activity.type == ActivityType.NOTE_DELETED.value,
        )
        assert activities == 1

    @pytest.mark.asyncio
    async def test_missing_note(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).purge(db, note.id, alice)

        with pytest.raises(NotFoundError):
            await at(T0).soft_delete(db, note.id, alice)


class TestRestore:

    @pytest.mark.asyncio
    async def test_restores_trashed_note(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)

        await at(T0 + timedelta(days=3)).restore(db, note.id, alice)

        stored = await at(T0).load(db, note.id)
        assert stored.state == NoteState.ACTIVE.value
        assert stored.deleted_at is None

    @pytest.mark.asyncio
    async def test_active_note_is_invalid_state(self, db, make_note, alice):
        note = await make_note(alice)
        version = note.version

        with pytest.raises(InvalidStateError) as exc_info:
            await at(T0).restore(db, note.id, alice)

        assert exc_info.value.message == "Note is not in trash"
        stored = await at(T0).load(db, note.id)
        assert stored.state == NoteState.ACTIVE.value
        assert stored.deleted_at is None
        assert stored.version == version

    @pytest.mark.asyncio
    async def test_permission_checked_before_state(self, db, make_note, alice, bob):
        note = await make_note(alice)
        await note_service.share_note(db, note.id, alice, bob.id, ShareRole.VIEWER)

        with pytest.raises(PermissionDeniedError):
            await at(T0).restore(db, note.id, bob)


class TestViewerCannotMutate:

    @pytest.mark.asyncio
    async def test_viewer_share(self, db, make_note, alice, bob):
        note = await make_note(alice, folder="Work", starred=False)
        await note_service.share_note(db, note.id, alice, bob.id, ShareRole.VIEWER)
        svc = at(T0)

        with pytest.raises(PermissionDeniedError):
            await svc.set_folder(db, note.id, "Personal", bob)
        with pytest.raises(PermissionDeniedError):
            await svc.set_starred(db, note.id, True, bob)
        with pytest.raises(PermissionDeniedError):
            await svc.soft_delete(db, note.id, bob)

        stored = await svc.load(db, note.id)
        assert stored.folder == "Work"
        assert stored.starred is False
        assert stored.state == NoteState.ACTIVE.value

    @pytest.mark.asyncio
    async def test_team_viewer(self, db, make_note, make_team, alice, bob):
        team = await make_team(alice, {bob: TeamRole.VIEWER})
        note = await make_note(alice, team_id=team.id)

        with pytest.raises(PermissionDeniedError):
            await at(T0).soft_delete(db, note.id, bob)

        stored = await at(T0).load(db, note.id)
        assert stored.state == NoteState.ACTIVE.value

    @pytest.mark.asyncio
    async def test_denial_does_not_name_the_rule(self, db, make_note, make_team, alice, bob):
        team = await make_team(alice, {bob: TeamRole.VIEWER})
        team_note = await make_note(alice, team_id=team.id)
        personal = await make_note(alice, title="Personal")
        await note_service.share_note(db, personal.id, alice, bob.id, ShareRole.VIEWER)

        with pytest.raises(PermissionDeniedError) as via_team:
            await at(T0).soft_delete(db, team_note.id, bob)
        with pytest.raises(PermissionDeniedError) as via_share:
            await at(T0).soft_delete(db, personal.id, bob)

        assert via_team.value.message == via_share.value.message


class TestPurge:

    @pytest.mark.asyncio
    async def test_purges_trashed_note_and_shares(self, db, make_note, alice, bob):
        note = await make_note(alice)
        await note_service.share_note(db, note.id, alice, bob.id, ShareRole.EDITOR)
        await at(T0).soft_delete(db, note.id, bob)

        await at(T0).purge(db, note.id, bob)

        with pytest.raises(NotFoundError):
            await at(T0).load(db, note.id)
        assert await count(db, NoteShare, NoteShare.note_id == note.id) == 0

    @pytest.mark.asyncio
    async def test_owner_can_skip_trash(self, db, make_note, alice):
        note = await make_note(alice)

        await at(T0).purge(db, note.id, alice)

        assert await count(db, Note, Note.id == note.id) == 0

    @pytest.mark.asyncio
    async def test_editor_cannot_skip_trash(self, db, make_note, make_team, alice, bob):
        team = await make_team(alice, {bob: TeamRole.ADMIN})
        note = await make_note(alice, team_id=team.id)

        with pytest.raises(PermissionDeniedError):
            await at(T0).purge(db, note.id, bob)

        assert await count(db, Note, Note.id == note.id) == 1

    @pytest.mark.asyncio
    async def test_purge_of_team_note_is_recorded(self, db, make_note, make_team, alice):
        team = await make_team(alice)
        note = await make_note(alice, team_id=team.id)
        await at(T0).soft_delete(db, note.id, alice)

        await at(T0).purge(db, note.id, alice)

        recorded = await count(
            db, Activity,
            Activity.resource_id == note.id,
            Activity.type == ActivityType.NOTE_PERMANENTLY_DELETED.value,
        )
        assert recorded == 1


class TestPurgeExpired:

    @pytest.mark.asyncio
    async def test_boundaries(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)

        assert await at(T0 + timedelta(days=29)).purge_expired(db) == 0
        assert await at(T0 + timedelta(days=30)).purge_expired(db) == 0
        assert await count(db, Note, Note.id == note.id) == 1

        assert await at(T0 + timedelta(days=31)).purge_expired(db) == 1
        assert await count(db, Note, Note.id == note.id) == 0

    @pytest.mark.asyncio
    async def test_ignores_active_notes(self, db, make_note, alice):
        await make_note(alice)

        assert await at(T0 + timedelta(days=400)).purge_expired(db) == 0

    @pytest.mark.asyncio
    async def test_explicit_retention_overrides_default(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)

        purged = await at(T0 + timedelta(days=8)).purge_expired(db, retention_days=7)

        assert purged == 1

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, db, make_note, alice, bob):
        mine = await make_note(alice)
        theirs = await make_note(bob)
        await at(T0).soft_delete(db, mine.id, alice)
        await at(T0).soft_delete(db, theirs.id, bob)

        purged = await at(T0 + timedelta(days=31)).purge_expired(db, owner_id=alice.id)

        assert purged == 1
        assert await count(db, Note, Note.id == theirs.id) == 1

    @pytest.mark.asyncio
    async def test_system_purge_recorded_for_team_note(self, db, make_note, make_team, alice):
        team = await make_team(alice)
        note = await make_note(alice, team_id=team.id)
        await at(T0).soft_delete(db, note.id, alice)

        await at(T0 + timedelta(days=31)).purge_expired(db)

        result = await db.execute(
            select(Activity).where(
                Activity.resource_id == note.id,
                Activity.type == ActivityType.NOTE_PERMANENTLY_DELETED.value,
            )
        )
        activity = result.scalar_one()
        assert activity.user_id is None
        assert activity.details["reason"] == "retention_expired"

    @pytest.mark.asyncio
    async def test_note_restored_mid_sweep_is_skipped(self, db, make_note, alice, monkeypatch):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)

        async def restore_behind_sweep(session, target, *args, **kwargs):
            await session.execute(
                update(Note)
                .where(Note.id == target.id)
                .values(state=NoteState.ACTIVE.value, deleted_at=None)
                .execution_options(synchronize_session=False)
            )

        monkeypatch.setattr(activity_service, "record_note_event", restore_behind_sweep)

        purged = await at(T0 + timedelta(days=31)).purge_expired(db)

        assert purged == 0
        assert await count(db, Note, Note.id == note.id) == 1


class TestRaceWithSweep:

    @pytest.mark.asyncio
    async def test_restore_after_sweep_is_not_found(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)
        await at(T0 + timedelta(days=31)).purge_expired(db)

        with pytest.raises(NotFoundError):
            await at(T0 + timedelta(days=31)).restore(db, note.id, alice)

    @pytest.mark.asyncio
    async def test_sweep_after_restore_skips_note(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)
        await at(T0 + timedelta(days=30)).restore(db, note.id, alice)

        assert await at(T0 + timedelta(days=31)).purge_expired(db) == 0
        stored = await at(T0).load(db, note.id)
        assert stored.state == NoteState.ACTIVE.value


class TestEmptyTrash:

    @pytest.mark.asyncio
    async def test_removes_only_callers_trash(self, db, make_note, alice, bob):
        first = await make_note(alice, title="First")
        second = await make_note(alice, title="Second")
        kept = await make_note(alice, title="Kept")
        other = await make_note(bob, title="Bob's")
        for n, owner in ((first, alice), (second, alice), (other, bob)):
            await at(T0).soft_delete(db, n.id, owner)

        deleted = await at(T0).empty_trash(db, alice)

        assert deleted == 2
        assert await count(db, Note, Note.id == kept.id) == 1
        assert await count(db, Note, Note.id == other.id) == 1

    @pytest.mark.asyncio
    async def test_empty_trash_with_nothing_trashed(self, db, make_note, alice):
        await make_note(alice)

        assert await at(T0).empty_trash(db, alice) == 0

    @pytest.mark.asyncio
    async def test_one_failed_note_does_not_undo_the_rest(self, db, make_note, alice, monkeypatch):
        jammed = await make_note(alice, title="Jammed")
        freed = await make_note(alice, title="Freed")
        service = at(T0)
        for n in (jammed, freed):
            await service.soft_delete(db, n.id, alice)

        real_delete = service._delete_note

        async def flaky_delete(session, note, *criteria):
            if note.id == jammed.id:
                raise InvalidStateError("The note changed before it could be deleted")
            await real_delete(session, note, *criteria)

        monkeypatch.setattr(service, "_delete_note", flaky_delete)

        deleted = await service.empty_trash(db, alice)

        assert deleted == 1
        assert await count(db, Note, Note.id == freed.id) == 0
        assert await count(
            db, Note, Note.id == jammed.id, Note.state == NoteState.TRASHED.value
        ) == 1


class TestBulk:

    @pytest.mark.asyncio
    async def test_partial_failure_is_isolated(self, db, make_note, alice, bob):
        mine = await make_note(alice)
        theirs = await make_note(bob)
        await at(T0).soft_delete(db, mine.id, alice)
        await at(T0).soft_delete(db, theirs.id, bob)

        results = await at(T0).bulk_restore(db, [mine.id, theirs.id], alice)

        assert [r.success for r in results] == [True, False]
        assert results[1].error == "permission_denied"
        assert (await at(T0).load(db, mine.id)).state == NoteState.ACTIVE.value
        assert (await at(T0).load(db, theirs.id)).state == NoteState.TRASHED.value

    @pytest.mark.asyncio
    async def test_bulk_purge_reports_each_item(self, db, make_note, alice):
        trashed = await make_note(alice)
        await at(T0).soft_delete(db, trashed.id, alice)
        gone = await make_note(alice)
        await at(T0).purge(db, gone.id, alice)

        results = await at(T0).bulk_purge(db, [trashed.id, gone.id], alice)

        assert results[0].success is True
        assert results[1].success is False
        assert results[1].error == "not_found"


class TestFolderAndStar:

    @pytest.mark.asyncio
    async def test_set_folder_trims_and_moves(self, db, make_note, alice):
        note = await make_note(alice)

        moved = await at(T0).set_folder(db, note.id, "  Projects  ", alice)

        assert moved.folder == "Projects"

    @pytest.mark.asyncio
    async def test_blank_folder_moves_to_root(self, db, make_note, alice):
        note = await make_note(alice, folder="Projects")

        moved = await at(T0).set_folder(db, note.id, "   ", alice)

        assert moved.folder is None

    @pytest.mark.asyncio
    async def test_folder_on_trashed_note_is_not_found(self, db, make_note, alice):
        note = await make_note(alice)
        await at(T0).soft_delete(db, note.id, alice)

        with pytest.raises(NotFoundError):
            await at(T0).set_folder(db, note.id, "Projects", alice)

    @pytest.mark.asyncio
    async def test_toggle_star(self, db, make_note, alice):
        note = await make_note(alice)

        first = await at(T0).toggle_starred(db, note.id, alice)
        assert first.starred is True
        second = await at(T0).toggle_starred(db, note.id, alice)
        assert second.starred is False

    @pytest.mark.asyncio
    async def test_direct_editor_can_star(self, db, make_note, alice, bob):
        note = await make_note(alice)
        await note_service.share_note(db, note.id, alice, bob.id, ShareRole.EDITOR)

        starred = await at(T0).set_starred(db, note.id, True, bob)

        assert starred.starred is True


class TestListTrash:

    @pytest.mark.asyncio
    async def test_most_recent_first_with_days_left(self, db, make_note, alice):
        older = await make_note(alice, title="Older")
        newer = await make_note(alice, title="Newer")
        await at(T0).soft_delete(db, older.id, alice)
        await at(T0 + timedelta(days=2)).soft_delete(db, newer.id, alice)

        entries = await at(T0 + timedelta(days=29)).list_trash(db, alice)

        assert [e.note.id for e in entries] == [newer.id, older.id]
        assert [e.days_left for e in entries] == [3, 1]
        assert not entries[1].expires_today

    @pytest.mark.asyncio
    async def test_expired_notes_swept_before_listing(self, db, make_note, alice):
        expired = await make_note(alice, title="Expired")
        fresh = await make_note(alice, title="Fresh")
        await at(T0).soft_delete(db, expired.id, alice)
        await at(T0 + timedelta(days=20)).soft_delete(db, fresh.id, alice)

        entries = await at(T0 + timedelta(days=31)).list_trash(db, alice)

        assert [e.note.id for e in entries] == [fresh.id]
        assert await count(db, Note, Note.id == expired.id) == 0


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_share_trash_expire_restore(self, db, make_note, alice, bob):
        note = await make_note(alice)
        assert note.state == NoteState.ACTIVE.value
        await note_service.share_note(db, note.id, alice, bob.id, ShareRole.VIEWER)

        with pytest.raises(PermissionDeniedError):
            await at(T0).soft_delete(db, note.id, bob)

        trashed = await at(T0).soft_delete(db, note.id, alice)
        assert trashed.state == NoteState.TRASHED.value
        assert ensure_utc(trashed.deleted_at) == T0

        later = at(T0 + timedelta(days=31))
        assert await later.purge_expired(db, retention_days=30) == 1

        with pytest.raises(NotFoundError):
            await later.restore(db, note.id, alice)
