"""
Inkwell Backend — Team Activity Service
========================================

What:  Writes and reads the per-team activity feed.
Why:   Team members see who created, edited, trashed, restored or purged
       shared notes, and who changed membership.
How:   record() adds an Activity row inside its own SAVEPOINT. A failure to
       record is logged and does not fail the note operation that triggered
       it; the feed is informational and must never block a delete or restore.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import Activity
from app.models.enums import ActivityType

logger = logging.getLogger(__name__)


class ActivityService:
    """Team activity feed."""

    async def record(
        self,
        db: AsyncSession,
        team_id: UUID,
        user_id: Optional[UUID],
        activity_type: ActivityType,
        description: str,
        resource_id: Optional[UUID] = None,
        resource_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[Activity]:
        activity = Activity(
            team_id=team_id,
            user_id=user_id,
            type=activity_type.value,
            description=description,
            resource_id=resource_id,
            resource_type=resource_type,
            details=details or {},
        )
        try:
            async with db.begin_nested():
                db.add(activity)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to record %s activity for team %s: %s",
                activity_type.value, team_id, str(e),
            )
            return None
        return activity

    async def record_note_event(
        self,
        db: AsyncSession,
        note: Any,
        user_id: Optional[UUID],
        activity_type: ActivityType,
        description: str,
        **details: Any,
    ) -> Optional[Activity]:
        """Record an event about a team note; personal notes have no feed."""
        if not (note.is_team_note and note.team_id):
            return None
        payload = {"note_title": note.title, "note_id": str(note.id)}
        payload.update(details)
        return await self.record(
            db,
            team_id=note.team_id,
            user_id=user_id,
            activity_type=activity_type,
            description=description,
            resource_id=note.id,
            resource_type="note",
            details=payload,
        )

    async def list_for_team(
        self,
        db: AsyncSession,
        team_id: UUID,
        limit: int = 20,
        activity_type: Optional[str] = None,
    ) -> List[Activity]:
        """Most recent first."""
        query = select(Activity).where(Activity.team_id == team_id)
        if activity_type:
            query = query.where(Activity.type == activity_type)
        query = query.order_by(Activity.created_at.desc()).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())


activity_service = ActivityService()
