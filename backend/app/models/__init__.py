# Models package init
"""
Imports every model so that Base.metadata knows all tables (and the foreign
keys between them) as soon as any one model is imported.
"""

from app.models.activity import Activity
from app.models.folder import Folder
from app.models.note import Note, NoteShare
from app.models.team import Team, TeamMember

__all__ = ["Activity", "Folder", "Note", "NoteShare", "Team", "TeamMember"]
