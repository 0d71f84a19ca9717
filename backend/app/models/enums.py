"""
Inkwell Backend — Domain Enumerations
======================================

String-valued enums shared by the ORM models, the services and the API
schemas. Values are what is stored in the database and sent over the wire.
"""

from enum import Enum


class NoteState(str, Enum):
    """Persisted note states. A purged note has no row, so it has no value here."""
    ACTIVE = "active"
    TRASHED = "trashed"


class ShareRole(str, Enum):
    """Role granted by a direct per-note share."""
    VIEWER = "viewer"
    EDITOR = "editor"


class TeamRole(str, Enum):
    """A user's role within a team."""
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class NoteRole(str, Enum):
    """Effective access level on a single note after resolution."""
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    NONE = "none"


class AccessSource(str, Enum):
    """Which authority produced the effective role."""
    OWNER = "owner"
    TEAM = "team"
    DIRECT_SHARE = "direct-share"
    NONE = "none"


class ActivityType(str, Enum):
    NOTE_CREATED = "note_created"
    NOTE_EDITED = "note_edited"
    NOTE_DELETED = "note_deleted"
    NOTE_RESTORED = "note_restored"
    NOTE_PERMANENTLY_DELETED = "note_permanently_deleted"
    NOTE_STARRED = "note_starred"
    NOTE_UNSTARRED = "note_unstarred"
    NOTE_MOVED = "note_moved"
    MEMBER_ADDED = "member_added"
    MEMBER_ROLE_CHANGED = "member_role_changed"
    MEMBER_REMOVED = "member_removed"
    TEAM_CREATED = "team_created"
    TEAM_RENAMED = "team_renamed"
    TEAM_ARCHIVED = "team_archived"
    FOLDER_CREATED = "folder_created"
    FOLDER_RENAMED = "folder_renamed"
    FOLDER_DELETED = "folder_deleted"
