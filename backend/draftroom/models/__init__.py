"""SQLAlchemy ORM models package."""
from draftroom.models.user import User
from draftroom.models.project import Project
from draftroom.models.chapter import Chapter

__all__ = [
    "User",
    "Project",
    "Chapter",
]
