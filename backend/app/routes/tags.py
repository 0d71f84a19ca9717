"""
Inkwell Backend — Tag Route Handlers
=====================================

What:  The caller's tags with usage counts, for the sidebar tag cloud.
How:   Tags are free text on notes; nothing is stored per tag, so every
       count is derived from the caller's active notes on request.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_current_actor
from app.schemas.actor import Actor
from app.schemas.common import ErrorResponse
from app.schemas.note import TagListResponse, TagResponse
from app.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Tags"])


@router.get(
    "/tags",
    response_model=TagListResponse,
    responses={401: {"description": "Missing or invalid X-User-ID", "model": ErrorResponse}},
    summary="Tags on the caller's active notes, most used first",
)
async def list_tags(
    search: Optional[str] = Query(default=None, max_length=50, description="Case-insensitive substring"),
    limit: int = Query(default=50, ge=1, le=200),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_session),
) -> TagListResponse:
    tags, total = await note_service.list_tags(db, actor, search=search, limit=limit)
    return TagListResponse(
        tags=[
            TagResponse(name=t.name, count=t.count, starred=t.starred, last_used=t.last_used)
            for t in tags
        ],
        total_tags=total,
        search=search,
    )
