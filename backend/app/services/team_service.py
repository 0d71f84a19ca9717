"""
Inkwell Backend — Team Service
===============================

What:  Team workspaces and their member roles.
Why:   Team membership is the authority for every team note; this service is
       the membership store the permission resolver is fed from.
Who:   Called by the team routes, and by the note, lifecycle and folder
       services through get_membership().

Rules:
    - The creator of a team becomes its single `owner` member.
    - Team names are unique among one owner's live teams.
    - Only owner/admin members rename a team; only the owner deletes it.
    - Deleting archives: the team and its notes are kept, but an archived
      team grants no access. Authors keep their own notes through ownership.
    - Only owner/admin members add, re-role or remove members.
    - The owner's membership cannot be re-roled or removed, and no one else
      can be made owner.
    - Any member may leave a team (remove themselves) except the owner.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.models.activity import Activity
from app.models.enums import ActivityType, TeamRole
from app.models.team import Team, TeamMember
from app.schemas.actor import Actor
from app.timeutils import utcnow
from app.services.activity_service import activity_service
from app.services.permission_service import can_manage_team

logger = logging.getLogger(__name__)

TEAM_NAME_MIN = 2
TEAM_NAME_MAX = 100


class TeamService:
    """Business logic for teams and memberships."""

    async def get_membership(
        self, db: AsyncSession, team_id: Optional[UUID], user_id: UUID
    ) -> Optional[TeamMember]:
        """The user's membership in team_id, or None. Archived teams grant nothing."""
        if team_id is None:
            return None
        result = await db.execute(
            select(TeamMember)
            .join(Team, Team.id == TeamMember.team_id)
            .where(
                TeamMember.team_id == team_id,
                TeamMember.user_id == user_id,
                Team.archived_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def list_team_ids(self, db: AsyncSession, user_id: UUID) -> List[UUID]:
        result = await db.execute(
            select(TeamMember.team_id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(TeamMember.user_id == user_id, Team.archived_at.is_(None))
        )
        return list(result.scalars().all())

    async def _load_team(self, db: AsyncSession, team_id: UUID) -> Team:
        team = await db.get(Team, team_id)
        if team is None or team.is_archived:
            raise NotFoundError(resource="team", resource_id=str(team_id))
        return team

    async def _check_name(
        self,
        db: AsyncSession,
        owner_id: UUID,
        name: Optional[str],
        exclude_id: Optional[UUID] = None,
    ) -> str:
        name = (name or "").strip()
        errors = []
        if len(name) < TEAM_NAME_MIN:
            errors.append(f"Team name must be at least {TEAM_NAME_MIN} characters")
        if len(name) > TEAM_NAME_MAX:
            errors.append(f"Team name cannot be more than {TEAM_NAME_MAX} characters")
        if errors:
            raise ValidationError(errors=errors, field="name")

        query = select(Team.id).where(
            Team.owner_id == owner_id,
            Team.name == name,
            Team.archived_at.is_(None),
        )
        if exclude_id is not None:
            query = query.where(Team.id != exclude_id)
        existing = await db.execute(query)
        if existing.first() is not None:
            raise ValidationError("You already have a team with this name", field="name")
        return name

    async def list_teams(
        self, db: AsyncSession, actor: Actor, include_archived: bool = False
    ) -> List[Team]:
        """Teams the actor belongs to, newest first."""
        query = (
            select(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == actor.id)
            .order_by(Team.created_at.desc())
        )
        if not include_archived:
            query = query.where(Team.archived_at.is_(None))
        result = await db.execute(query)
        return list(result.scalars().all())

    async def create_team(self, db: AsyncSession, actor: Actor, name: str) -> Team:
        name = await self._check_name(db, actor.id, name)

        team = Team(name=name, owner_id=actor.id)
        team.members.append(TeamMember(user_id=actor.id, role=TeamRole.OWNER.value))
        db.add(team)
        await db.flush()
        logger.info("Team %s created by %s", team.id, actor.id)

        await activity_service.record(
            db,
            team_id=team.id,
            user_id=actor.id,
            activity_type=ActivityType.TEAM_CREATED,
            description=f'Created team "{team.name}"',
            resource_id=team.id,
            resource_type="team",
        )
        return team

    async def get_team(self, db: AsyncSession, team_id: UUID, actor: Actor) -> Team:
        """A team the actor belongs to."""
        team = await self._load_team(db, team_id)
        if team.member(actor.id) is None:
            raise PermissionDeniedError(action="view", resource="team")
        return team

    def _require_manager(self, team: Team, actor: Actor) -> None:
        if not can_manage_team(team.member(actor.id)):
            logger.warning("Team management denied for %s on team %s", actor.id, team.id)
            raise PermissionDeniedError(action="manage", resource="team")

    async def rename_team(
        self, db: AsyncSession, team_id: UUID, actor: Actor, name: str
    ) -> Team:
        team = await self._load_team(db, team_id)
        self._require_manager(team, actor)
        name = await self._check_name(db, team.owner_id, name, exclude_id=team.id)
        if name == team.name:
            return team

        previous = team.name
        team.name = name
        await db.flush()
        logger.info("Team %s renamed by %s", team.id, actor.id)

        await activity_service.record(
            db,
            team_id=team.id,
            user_id=actor.id,
            activity_type=ActivityType.TEAM_RENAMED,
            description=f'Renamed team to "{name}"',
            resource_id=team.id,
            resource_type="team",
            details={"previous_name": previous},
        )
        return team

    async def archive_team(self, db: AsyncSession, team_id: UUID, actor: Actor) -> Team:
        """
        Delete a team on behalf of its owner.

        The team is archived rather than removed: its notes, folders and feed
        stay in the database, but membership in it no longer grants access.
        """
        team = await self._load_team(db, team_id)
        if team.owner_id != actor.id:
            logger.warning("Team %s delete denied for %s", team.id, actor.id)
            raise PermissionDeniedError(action="delete", resource="team")

        await activity_service.record(
            db,
            team_id=team.id,
            user_id=actor.id,
            activity_type=ActivityType.TEAM_ARCHIVED,
            description=f'Deleted team "{team.name}"',
            resource_id=team.id,
            resource_type="team",
        )
        team.archived_at = utcnow()
        await db.flush()
        logger.info("Team %s archived by %s", team.id, actor.id)
        return team

    async def add_member(
        self,
        db: AsyncSession,
        team_id: UUID,
        actor: Actor,
        user_id: UUID,
        role: TeamRole = TeamRole.VIEWER,
    ) -> TeamMember:
        team = await self._load_team(db, team_id)
        self._require_manager(team, actor)

        if role == TeamRole.OWNER:
            raise ValidationError("A team can only have one owner", field="role")
        if team.member(user_id) is not None:
            raise ValidationError("User is already a member of this team", field="user_id")

        member = TeamMember(user_id=user_id, role=role.value)
        team.members.append(member)
        await db.flush()
        logger.info("User %s added to team %s as %s", user_id, team.id, role.value)

        await activity_service.record(
            db,
            team_id=team.id,
            user_id=actor.id,
            activity_type=ActivityType.MEMBER_ADDED,
            description=f"Added a member as {role.value}",
            resource_id=user_id,
            resource_type="user",
            details={"role": role.value},
        )
        return member

    async def update_member_role(
        self,
        db: AsyncSession,
        team_id: UUID,
        actor: Actor,
        user_id: UUID,
        role: TeamRole,
    ) -> TeamMember:
        team = await self._load_team(db, team_id)
        self._require_manager(team, actor)

        member = team.member(user_id)
        if member is None:
            raise NotFoundError(resource="team member", resource_id=str(user_id))
        if user_id == team.owner_id:
            raise ValidationError("The team owner's role cannot be changed", field="role")
        if role == TeamRole.OWNER:
            raise ValidationError("A team can only have one owner", field="role")

        previous = member.role
        member.role = role.value
        await db.flush()
        logger.info("Team %s member %s role %s -> %s", team.id, user_id, previous, role.value)

        await activity_service.record(
            db,
            team_id=team.id,
            user_id=actor.id,
            activity_type=ActivityType.MEMBER_ROLE_CHANGED,
            description=f"Changed a member's role to {role.value}",
            resource_id=user_id,
            resource_type="user",
            details={"previous_role": previous, "new_role": role.value},
        )
        return member

    async def remove_member(
        self, db: AsyncSession, team_id: UUID, actor: Actor, user_id: UUID
    ) -> None:
        team = await self._load_team(db, team_id)
        if user_id != actor.id:
            self._require_manager(team, actor)

        member = team.member(user_id)
        if member is None:
            raise NotFoundError(resource="team member", resource_id=str(user_id))
        if user_id == team.owner_id:
            raise ValidationError("The team owner cannot be removed", field="user_id")

        team.members.remove(member)
        await db.flush()
        logger.info("User %s removed from team %s", user_id, team.id)

        await activity_service.record(
            db,
            team_id=team.id,
            user_id=actor.id,
            activity_type=ActivityType.MEMBER_REMOVED,
            description="Left the team" if user_id == actor.id else "Removed a member",
            resource_id=user_id,
            resource_type="user",
        )

    async def list_activities(
        self,
        db: AsyncSession,
        team_id: UUID,
        actor: Actor,
        limit: int = 20,
        activity_type: Optional[str] = None,
    ) -> List[Activity]:
        await self.get_team(db, team_id, actor)
        return await activity_service.list_for_team(
            db, team_id, limit=limit, activity_type=activity_type
        )


team_service = TeamService()
