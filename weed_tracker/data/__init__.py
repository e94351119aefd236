from .database import Database
from .models import AlternativesState, Entry, Goal, Settings
from .repository import Repository

__all__ = ["Database", "Entry", "Goal", "Settings", "AlternativesState", "Repository"]
