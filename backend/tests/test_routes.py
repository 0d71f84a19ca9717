"""
Inkwell Backend — API Endpoint Tests
=====================================

What:  Request/response tests for the notes, folders, teams and health routes.
How:   HTTPX AsyncClient over ASGITransport (no network); each request runs
       in its own committed session on the in-memory database.

What we test:
    ✅ Missing or malformed identity → 401
    ✅ Effective-role denials → 403 with a generic message
    ✅ Lifecycle state errors → 409, trashed notes → 404 for edits
    ✅ Trash listing with retention info, empty trash, bulk results
    ✅ Health check reports the disabled sweeper
"""

import uuid

import pytest

from app.schemas.actor import Actor


def auth(actor: Actor):
    """Headers the upstream gateway attaches for this caller."""
    return {"X-User-ID": str(actor.id), "X-User-Email": actor.email}


async def create_note(client, actor, **fields):
    body = {"title": "Meeting notes", **fields}
    response = await client.post("/api/notes", json=body, headers=auth(actor))
    assert response.status_code == 201, response.text
    return response.json()


async def share(client, owner, note_id, user, role):
    response = await client.post(
        f"/api/notes/{note_id}/shares",
        json={"user_id": str(user.id), "role": role},
        headers=auth(owner),
    )
    assert response.status_code == 200, response.text


class TestIdentity:

    @pytest.mark.asyncio
    async def test_missing_user_header(self, api_client):
        response = await api_client.get("/api/notes")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_malformed_user_header(self, api_client):
        response = await api_client.get("/api/notes", headers={"X-User-ID": "not-a-uuid"})

        assert response.status_code == 401


class TestNotesApi:

    @pytest.mark.asyncio
    async def test_create_returns_owner_permissions(self, api_client, alice):
        note = await create_note(api_client, alice, tags=["q3"])

        assert note["state"] == "active"
        assert note["owner_id"] == str(alice.id)
        assert note["permissions"] == {
            "role": "owner", "can_edit": True, "source": "owner", "conflicting": False,
        }

    @pytest.mark.asyncio
    async def test_create_lists_every_validation_problem(self, api_client, alice):
        response = await api_client.post(
            "/api/notes", json={"title": "", "tags": ["x" * 51]}, headers=auth(alice)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Title is required, Tag cannot be more than 50 characters"
        assert len(body["details"]["errors"]) == 2

    @pytest.mark.asyncio
    async def test_list_sets_total_header(self, api_client, alice, bob):
        await create_note(api_client, alice, title="One")
        await create_note(api_client, alice, title="Two")
        await create_note(api_client, bob, title="Not Alice's")

        response = await api_client.get("/api/notes?limit=1", headers=auth(alice))

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "2"
        assert response.json()["total_count"] == 2
        assert len(response.json()["notes"]) == 1

    @pytest.mark.asyncio
    async def test_viewer_gets_generic_403(self, api_client, alice, bob):
        note = await create_note(api_client, alice)
        await share(api_client, alice, note["id"], bob, "viewer")

        response = await api_client.delete(f"/api/notes/{note['id']}", headers=auth(bob))

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "permission_denied"
        assert "share" not in body["message"]
        assert "team" not in body["message"]

    @pytest.mark.asyncio
    async def test_stranger_cannot_read(self, api_client, alice, carol):
        note = await create_note(api_client, alice)

        response = await api_client.get(f"/api/notes/{note['id']}", headers=auth(carol))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_permissions_endpoint(self, api_client, alice, bob):
        note = await create_note(api_client, alice)
        await share(api_client, alice, note["id"], bob, "editor")

        response = await api_client.get(
            f"/api/notes/{note['id']}/permissions", headers=auth(bob)
        )

        assert response.json() == {
            "role": "editor", "can_edit": True, "source": "direct-share", "conflicting": False,
        }

    @pytest.mark.asyncio
    async def test_update_and_autosave(self, api_client, alice):
        note = await create_note(api_client, alice)

        response = await api_client.put(
            f"/api/notes/{note['id']}?autosave=true",
            json={"content": "<p>two words</p>"},
            headers=auth(alice),
        )

        assert response.status_code == 200
        assert response.json()["word_count"] == 2
        assert response.json()["version"] == 2

    @pytest.mark.asyncio
    async def test_null_fields_in_update_are_ignored(self, api_client, alice):
        note = await create_note(api_client, alice, content="<p>keep</p>", tags=["q3"])

        response = await api_client.put(
            f"/api/notes/{note['id']}",
            json={"content": None, "tags": None, "title": "Renamed"},
            headers=auth(alice),
        )

        assert response.status_code == 200
        assert response.json()["content"] == "<p>keep</p>"
        assert response.json()["tags"] == ["q3"]
        assert response.json()["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_tags_and_tag_filter(self, api_client, alice):
        await create_note(api_client, alice, title="One", tags=["q3", "work"])
        await create_note(api_client, alice, title="Two", tags=["q3"])

        tags = await api_client.get("/api/tags", headers=auth(alice))
        filtered = await api_client.get("/api/notes?tag=work", headers=auth(alice))

        assert tags.status_code == 200
        assert [(t["name"], t["count"]) for t in tags.json()["tags"]] == [("q3", 2), ("work", 1)]
        assert tags.json()["total_tags"] == 2
        assert [n["title"] for n in filtered.json()["notes"]] == ["One"]
        assert filtered.headers["X-Total-Count"] == "1"

    @pytest.mark.asyncio
    async def test_unknown_note(self, api_client, alice):
        response = await api_client.get(f"/api/notes/{uuid.uuid4()}", headers=auth(alice))

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestLifecycleApi:

    @pytest.mark.asyncio
    async def test_trash_and_restore(self, api_client, alice):
        note = await create_note(api_client, alice)
        url = f"/api/notes/{note['id']}"

        trashed = await api_client.delete(url, headers=auth(alice))
        assert trashed.status_code == 200
        assert trashed.json()["state"] == "trashed"
        assert trashed.json()["deleted_at"] is not None

        # Still readable, but not editable
        assert (await api_client.get(url, headers=auth(alice))).json()["state"] == "trashed"
        edit = await api_client.put(url, json={"title": "Edit"}, headers=auth(alice))
        assert edit.status_code == 404

        restored = await api_client.put(f"{url}/restore", headers=auth(alice))
        assert restored.status_code == 200
        assert restored.json()["state"] == "active"
        assert restored.json()["deleted_at"] is None

    @pytest.mark.asyncio
    async def test_restore_active_note_conflicts(self, api_client, alice):
        note = await create_note(api_client, alice)

        response = await api_client.put(f"/api/notes/{note['id']}/restore", headers=auth(alice))

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_state"
        assert response.json()["message"] == "Note is not in trash"

    @pytest.mark.asyncio
    async def test_soft_delete_twice(self, api_client, alice):
        note = await create_note(api_client, alice)
        url = f"/api/notes/{note['id']}"

        first = await api_client.delete(url, headers=auth(alice))
        second = await api_client.delete(url, headers=auth(alice))

        assert second.status_code == 200
        assert second.json()["deleted_at"] == first.json()["deleted_at"]

    @pytest.mark.asyncio
    async def test_trash_listing(self, api_client, alice):
        kept = await create_note(api_client, alice, title="Kept")
        gone = await create_note(api_client, alice, title="Gone")
        await api_client.delete(f"/api/notes/{gone['id']}", headers=auth(alice))

        response = await api_client.get("/api/notes/trash", headers=auth(alice))

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["retention_days"] == 30
        item = body["notes"][0]
        assert item["id"] == gone["id"]
        assert item["days_left"] == 30
        assert item["expires_today"] is False

        listed = await api_client.get("/api/notes", headers=auth(alice))
        assert [n["id"] for n in listed.json()["notes"]] == [kept["id"]]

    @pytest.mark.asyncio
    async def test_permanent_delete(self, api_client, alice):
        note = await create_note(api_client, alice)
        url = f"/api/notes/{note['id']}"

        response = await api_client.delete(f"{url}?permanent=true", headers=auth(alice))

        assert response.status_code == 200
        assert response.json()["note_id"] == note["id"]
        assert (await api_client.get(url, headers=auth(alice))).status_code == 404

    @pytest.mark.asyncio
    async def test_empty_trash(self, api_client, alice):
        for title in ("A", "B"):
            note = await create_note(api_client, alice, title=title)
            await api_client.delete(f"/api/notes/{note['id']}", headers=auth(alice))

        response = await api_client.delete("/api/notes/trash", headers=auth(alice))

        assert response.json()["deleted_count"] == 2
        trash = await api_client.get("/api/notes/trash", headers=auth(alice))
        assert trash.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_bulk_restore_reports_each_item(self, api_client, alice, bob):
        mine = await create_note(api_client, alice)
        theirs = await create_note(api_client, bob)
        await api_client.delete(f"/api/notes/{mine['id']}", headers=auth(alice))
        await api_client.delete(f"/api/notes/{theirs['id']}", headers=auth(bob))

        response = await api_client.post(
            "/api/notes/trash/restore",
            json={"note_ids": [mine["id"], theirs["id"]]},
            headers=auth(alice),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == 1
        assert body["failed"] == 1
        assert body["results"][1]["error"] == "permission_denied"
        bob_trash = await api_client.get("/api/notes/trash", headers=auth(bob))
        assert [n["id"] for n in bob_trash.json()["notes"]] == [theirs["id"]]

    @pytest.mark.asyncio
    async def test_star_and_move(self, api_client, alice):
        note = await create_note(api_client, alice)
        url = f"/api/notes/{note['id']}"

        toggled = await api_client.post(f"{url}/star", headers=auth(alice))
        assert toggled.json()["starred"] is True
        unset = await api_client.put(f"{url}/star", json={"starred": False}, headers=auth(alice))
        assert unset.json()["starred"] is False

        moved = await api_client.patch(f"{url}/folder", json={"folder": "Work"}, headers=auth(alice))
        assert moved.json()["folder"] == "Work"
        root = await api_client.patch(f"{url}/folder", json={"folder": None}, headers=auth(alice))
        assert root.json()["message"] == "Note moved to root"


class TestTeamsAndFolders:

    @pytest.mark.asyncio
    async def test_team_note_lifecycle_in_feed(self, api_client, alice, bob):
        team = (await api_client.post("/api/teams", json={"name": "Design"}, headers=auth(alice))).json()
        added = await api_client.post(
            f"/api/teams/{team['id']}/members",
            json={"user_id": str(bob.id), "role": "viewer"},
            headers=auth(alice),
        )
        assert added.status_code == 201
        note = await create_note(api_client, alice, team_id=team["id"])

        denied = await api_client.delete(f"/api/notes/{note['id']}", headers=auth(bob))
        assert denied.status_code == 403
        await api_client.delete(f"/api/notes/{note['id']}", headers=auth(alice))

        feed = await api_client.get(
            f"/api/teams/{team['id']}/activities?type=note_deleted", headers=auth(bob)
        )
        assert feed.status_code == 200
        activities = feed.json()["activities"]
        assert len(activities) == 1
        assert activities[0]["metadata"]["note_id"] == note["id"]

    @pytest.mark.asyncio
    async def test_leave_team(self, api_client, alice, bob):
        team = (await api_client.post("/api/teams", json={"name": "Design"}, headers=auth(alice))).json()
        await api_client.post(
            f"/api/teams/{team['id']}/members",
            json={"user_id": str(bob.id)},
            headers=auth(alice),
        )

        left = await api_client.delete(
            f"/api/teams/{team['id']}/members/{bob.id}", headers=auth(bob)
        )

        assert left.status_code == 204
        assert (await api_client.get(f"/api/teams/{team['id']}", headers=auth(bob))).status_code == 403

    @pytest.mark.asyncio
    async def test_list_rename_and_delete_team(self, api_client, alice, bob):
        team = (await api_client.post("/api/teams", json={"name": "Design"}, headers=auth(alice))).json()
        await api_client.post(
            f"/api/teams/{team['id']}/members",
            json={"user_id": str(bob.id), "role": "admin"},
            headers=auth(alice),
        )

        listed = await api_client.get("/api/teams", headers=auth(bob))
        assert listed.json()["total"] == 1
        summary = listed.json()["teams"][0]
        assert summary["user_role"] == "admin"
        assert summary["is_owner"] is False
        assert summary["member_count"] == 2

        renamed = await api_client.put(
            f"/api/teams/{team['id']}", json={"name": "Product"}, headers=auth(bob)
        )
        assert renamed.status_code == 200
        assert renamed.json()["name"] == "Product"

        denied = await api_client.delete(f"/api/teams/{team['id']}", headers=auth(bob))
        assert denied.status_code == 403
        deleted = await api_client.delete(f"/api/teams/{team['id']}", headers=auth(alice))
        assert deleted.status_code == 200
        assert (await api_client.get("/api/teams", headers=auth(alice))).json()["total"] == 0
        gone = await api_client.get(f"/api/teams/{team['id']}", headers=auth(alice))
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_folder_rename(self, api_client, alice):
        created = await api_client.post("/api/folders", json={"name": "Work"}, headers=auth(alice))
        await api_client.post("/api/folders", json={"name": "Home"}, headers=auth(alice))
        note = await create_note(api_client, alice, folder="Work")
        url = f"/api/folders/{created.json()['id']}"

        renamed = await api_client.put(url, json={"name": "Projects"}, headers=auth(alice))
        clash = await api_client.put(url, json={"name": "Home"}, headers=auth(alice))

        assert renamed.status_code == 200
        assert renamed.json()["name"] == "Projects"
        assert renamed.json()["note_count"] == 1
        assert clash.status_code == 400
        moved = await api_client.get(f"/api/notes/{note['id']}", headers=auth(alice))
        assert moved.json()["folder"] == "Projects"

    @pytest.mark.asyncio
    async def test_folder_counts_and_delete(self, api_client, alice):
        created = await api_client.post("/api/folders", json={"name": "Work"}, headers=auth(alice))
        assert created.status_code == 201
        await create_note(api_client, alice, folder="Work")

        listed = await api_client.get("/api/folders", headers=auth(alice))
        assert listed.json()["folders"][0]["note_count"] == 1

        deleted = await api_client.delete(
            f"/api/folders/{created.json()['id']}", headers=auth(alice)
        )
        assert deleted.json()["notes_moved"] == 1


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, api_client):
        response = await api_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["trash_sweeper"] == "disabled"
