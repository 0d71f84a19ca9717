"""
Inkwell Backend — Team Activity Model
======================================

One row per notable event in a team: note lifecycle transitions, member
changes and folder changes. resource_id is deliberately not a foreign key;
activities outlive the notes they describe (a purge is itself an activity).
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.timeutils import utcnow


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    team_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    # None for system actions (the trash sweeper)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    resource_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    resource_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("idx_activities_team_created", "team_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Activity(team_id={self.team_id}, type='{self.type}')>"
