"""
Inkwell Backend — Team Schemas
===============================

Request/response models for teams, memberships and the activity feed.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import TeamRole
from app.timeutils import ensure_utc


class TeamCreate(BaseModel):
    name: str = Field(description="Team name (2-100 chars)")


class TeamUpdate(BaseModel):
    name: str = Field(description="New team name (2-100 chars)")


class MemberAdd(BaseModel):
    user_id: uuid.UUID
    role: TeamRole = Field(default=TeamRole.VIEWER, description="admin, editor or viewer")


class MemberRoleUpdate(BaseModel):
    role: TeamRole


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    role: TeamRole
    joined_at: datetime

    @classmethod
    def from_member(cls, member: Any) -> "MemberResponse":
        return cls(
            user_id=member.user_id,
            role=member.role,
            joined_at=ensure_utc(member.joined_at),
        )


class TeamResponse(BaseModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    created_at: datetime
    members: List[MemberResponse]

    @classmethod
    def from_team(cls, team: Any) -> "TeamResponse":
        return cls(
            id=team.id,
            name=team.name,
            owner_id=team.owner_id,
            created_at=ensure_utc(team.created_at),
            members=[MemberResponse.from_member(m) for m in team.members],
        )


class TeamSummary(BaseModel):
    """A team as it appears in the caller's team list."""
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    is_owner: bool
    user_role: TeamRole
    member_count: int
    created_at: datetime
    archived_at: Optional[datetime] = None

    @classmethod
    def from_team(cls, team: Any, user_id: uuid.UUID) -> "TeamSummary":
        member = team.member(user_id)
        return cls(
            id=team.id,
            name=team.name,
            owner_id=team.owner_id,
            is_owner=team.owner_id == user_id,
            user_role=member.role if member is not None else TeamRole.VIEWER,
            member_count=len(team.members),
            created_at=ensure_utc(team.created_at),
            archived_at=ensure_utc(team.archived_at),
        )


class TeamListResponse(BaseModel):
    teams: List[TeamSummary]
    total: int


class ActivityResponse(BaseModel):
    """
    One feed entry. user_id is null for system actions such as the
    retention sweep.
    """
    id: uuid.UUID
    type: str
    description: str
    user_id: Optional[uuid.UUID] = None
    resource_id: Optional[uuid.UUID] = None
    resource_type: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_activity(cls, activity: Any) -> "ActivityResponse":
        return cls(
            id=activity.id,
            type=activity.type,
            description=activity.description,
            user_id=activity.user_id,
            resource_id=activity.resource_id,
            resource_type=activity.resource_type,
            metadata=dict(activity.details or {}),
            created_at=ensure_utc(activity.created_at),
        )


class ActivityListResponse(BaseModel):
    activities: List[ActivityResponse]


class TeamDeleteResponse(BaseModel):
    message: str
    team_id: uuid.UUID
