"""
Inkwell Backend — Team Route Handlers
======================================

What:  Team listing, creation, renaming and deletion, membership
       management and the activity feed.
Why:   Team roles are what the permission resolver reads for team notes;
       changing a member's role here changes what they can do to every
       note of the team on their very next request.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_actor
from app.schemas.actor import Actor
from app.schemas.common import ErrorResponse
from app.schemas.team import (
    ActivityListResponse,
    ActivityResponse,
    MemberAdd,
    MemberResponse,
    MemberRoleUpdate,
    TeamCreate,
    TeamDeleteResponse,
    TeamListResponse,
    TeamResponse,
    TeamSummary,
    TeamUpdate,
)
from app.services.team_service import team_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Teams"])

TEAM_ERRORS = {
    401: {"description": "Missing or invalid X-User-ID", "model": ErrorResponse},
    403: {"description": "Not a member, or cannot manage members", "model": ErrorResponse},
    404: {"description": "Team or member not found", "model": ErrorResponse},
}


@router.get(
    "/teams",
    response_model=TeamListResponse,
    responses={401: TEAM_ERRORS[401]},
    summary="List the caller's teams, newest first",
)
async def list_teams(
    include_archived: bool = Query(default=False, description="Include deleted (archived) teams"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TeamListResponse:
    teams = await team_service.list_teams(db, actor, include_archived=include_archived)
    return TeamListResponse(
        teams=[TeamSummary.from_team(t, actor.id) for t in teams],
        total=len(teams),
    )


@router.post(
    "/teams",
    response_model=TeamResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid name", "model": ErrorResponse}},
    summary="Create a team (caller becomes owner)",
)
async def create_team(
    body: TeamCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TeamResponse:
    team = await team_service.create_team(db, actor, body.name)
    return TeamResponse.from_team(team)


@router.get(
    "/teams/{team_id}",
    response_model=TeamResponse,
    responses=TEAM_ERRORS,
    summary="Get a team and its members",
)
async def get_team(
    team_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TeamResponse:
    team = await team_service.get_team(db, team_id, actor)
    return TeamResponse.from_team(team)


@router.put(
    "/teams/{team_id}",
    response_model=TeamResponse,
    responses={400: {"description": "Invalid or duplicate name", "model": ErrorResponse}, **TEAM_ERRORS},
    summary="Rename a team (owner/admin)",
)
async def rename_team(
    team_id: UUID,
    body: TeamUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TeamResponse:
    team = await team_service.rename_team(db, team_id, actor, body.name)
    return TeamResponse.from_team(team)


@router.delete(
    "/teams/{team_id}",
    response_model=TeamDeleteResponse,
    responses=TEAM_ERRORS,
    summary="Delete a team (owner only)",
    description=(
        "The team is archived: it disappears from team lists and its members "
        "lose team access, but notes are kept and stay with their authors."
    ),
)
async def delete_team(
    team_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TeamDeleteResponse:
    await team_service.archive_team(db, team_id, actor)
    return TeamDeleteResponse(message="Team deleted", team_id=team_id)


@router.post(
    "/teams/{team_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Already a member, or owner role", "model": ErrorResponse}, **TEAM_ERRORS},
    summary="Add a member (owner/admin)",
)
async def add_member(
    team_id: UUID,
    body: MemberAdd,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> MemberResponse:
    member = await team_service.add_member(db, team_id, actor, body.user_id, body.role)
    return MemberResponse.from_member(member)


@router.patch(
    "/teams/{team_id}/members/{user_id}",
    response_model=MemberResponse,
    responses={400: {"description": "Owner role cannot change", "model": ErrorResponse}, **TEAM_ERRORS},
    summary="Change a member's role (owner/admin)",
)
async def update_member_role(
    team_id: UUID,
    user_id: UUID,
    body: MemberRoleUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> MemberResponse:
    member = await team_service.update_member_role(db, team_id, actor, user_id, body.role)
    return MemberResponse.from_member(member)


@router.delete(
    "/teams/{team_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"description": "Owner cannot be removed", "model": ErrorResponse}, **TEAM_ERRORS},
    summary="Remove a member, or leave the team",
)
async def remove_member(
    team_id: UUID,
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await team_service.remove_member(db, team_id, actor, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/teams/{team_id}/activities",
    response_model=ActivityListResponse,
    responses=TEAM_ERRORS,
    summary="Recent team activity, newest first",
)
async def list_activities(
    team_id: UUID,
    limit: int = Query(default=20, ge=1, le=100),
    type: Optional[str] = Query(default=None, description="Filter by activity type"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> ActivityListResponse:
    activities = await team_service.list_activities(
        db, team_id, actor, limit=limit, activity_type=type
    )
    return ActivityListResponse(
        activities=[ActivityResponse.from_activity(a) for a in activities]
    )
