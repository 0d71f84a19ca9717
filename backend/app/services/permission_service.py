"""
Inkwell Backend — Permission Resolver
======================================

What:  Computes a user's effective role on a note.
Why:   Ownership, team roles and direct shares all grant access; the rule that
       merges them is defined here once so that every route and service asks
       the same question and gets the same answer.
How:   A pure function over data the caller already loaded (the note with its
       shares, and the actor's team membership if the note is a team note).
       No I/O, no side effects, never raises for missing data.

Resolution Order (first match wins):
    1. actor owns the note                  → owner  / can_edit / source=owner
    2. note is a team note:
         no membership                      → none   / read-only / source=none
         owner | admin | editor membership  → editor / can_edit / source=team
         viewer membership                  → viewer / read-only / source=team
       Direct shares are NOT consulted for team notes.
    3. personal note:
         actor in shared_with               → share role          / direct-share
         otherwise                          → none   / read-only / source=none

Conflicts:
    A user who holds a direct share on a team note AND is a member of that
    team is resolved purely by team role. The result still carries
    conflicting=True so a UI can warn that the share has no effect.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from app.models.enums import AccessSource, NoteRole, ShareRole, TeamRole

# ── Role Tables ───────────────────────────────────────────────────────────
# Team role → capability on team notes
TEAM_ROLE_TO_NOTE_ROLE = {
    TeamRole.OWNER.value: NoteRole.EDITOR,
    TeamRole.ADMIN.value: NoteRole.EDITOR,
    TeamRole.EDITOR.value: NoteRole.EDITOR,
    TeamRole.VIEWER.value: NoteRole.VIEWER,
}

# Team roles allowed to manage members and folders
TEAM_MANAGER_ROLES = frozenset({TeamRole.OWNER.value, TeamRole.ADMIN.value})

# Team roles allowed to create team notes
TEAM_AUTHOR_ROLES = frozenset(
    {TeamRole.OWNER.value, TeamRole.ADMIN.value, TeamRole.EDITOR.value}
)

EDITING_ROLES = frozenset({NoteRole.OWNER, NoteRole.EDITOR})


@dataclass(frozen=True)
class EffectiveRole:
    """The outcome of resolving one actor against one note."""

    role: NoteRole
    can_edit: bool
    source: AccessSource
    conflicting: bool = False

    @property
    def can_view(self) -> bool:
        return self.role != NoteRole.NONE

    @property
    def is_owner(self) -> bool:
        return self.role == NoteRole.OWNER


NO_ACCESS = EffectiveRole(role=NoteRole.NONE, can_edit=False, source=AccessSource.NONE)


def _value(role: Any) -> Optional[str]:
    """Accept either an enum member or its stored string."""
    if role is None:
        return None
    return getattr(role, "value", role)


def find_share(shares: Iterable[Any], user_id: Any) -> Optional[Any]:
    """First share entry for user_id in a note's shared_with list."""
    for share in shares or ():
        if share.user_id == user_id:
            return share
    return None


def resolve_effective_role(actor: Any, note: Any, membership: Any = None) -> EffectiveRole:
    """
    Resolve the effective role of `actor` on `note`.

    Args:
        actor: Anything with an `id` attribute (the caller).
        note: Anything with `owner_id`, `is_team_note` and `shares`
              (each share having `user_id` and `role`).
        membership: The actor's membership in `note.team_id` (anything with a
              `role` attribute), or None when absent or not applicable.

    Returns:
        EffectiveRole. Missing data collapses to NO_ACCESS.
    """
    if note.owner_id == actor.id:
        return EffectiveRole(role=NoteRole.OWNER, can_edit=True, source=AccessSource.OWNER)

    if note.is_team_note:
        share = find_share(note.shares, actor.id)
        if membership is None:
            return NO_ACCESS
        note_role = TEAM_ROLE_TO_NOTE_ROLE.get(_value(membership.role))
        if note_role is None:
            return NO_ACCESS
        return EffectiveRole(
            role=note_role,
            can_edit=note_role in EDITING_ROLES,
            source=AccessSource.TEAM,
            conflicting=share is not None,
        )

    share = find_share(note.shares, actor.id)
    if share is None:
        return NO_ACCESS

    share_role = _value(share.role)
    if share_role == ShareRole.EDITOR.value:
        return EffectiveRole(role=NoteRole.EDITOR, can_edit=True, source=AccessSource.DIRECT_SHARE)
    if share_role == ShareRole.VIEWER.value:
        return EffectiveRole(role=NoteRole.VIEWER, can_edit=False, source=AccessSource.DIRECT_SHARE)
    return NO_ACCESS


def can_manage_team(membership: Any) -> bool:
    """Owner and admin members manage members and team folders."""
    return membership is not None and _value(membership.role) in TEAM_MANAGER_ROLES


def can_create_team_notes(membership: Any) -> bool:
    return membership is not None and _value(membership.role) in TEAM_AUTHOR_ROLES
