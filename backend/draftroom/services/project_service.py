"""Project lifecycle: create (with its first chapter), list, update, delete."""
from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from draftroom.database import atomic
from draftroom.errors import ForbiddenError, NotFoundError
from draftroom.models import Chapter, Project
from draftroom.schemas.project import ProjectCreate, ProjectUpdate
from draftroom.services.auth_service import Principal

logger = logging.getLogger(__name__)

FIRST_CHAPTER_TITLE = "Chapter 1"


class ProjectService:
    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    def _get_owned(self, project_id: str) -> Project:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        if project.owner_id != self.principal.id:
            raise ForbiddenError()
        return project

    def chapter_counts(self, project_ids: list[str]) -> dict[str, int]:
        if not project_ids:
            return {}
        return dict(
            self.db.query(Chapter.project_id, func.count(Chapter.id))
            .filter(Chapter.project_id.in_(project_ids))
            .group_by(Chapter.project_id)
            .all()
        )

    def list_projects(self) -> list[Project]:
        return (
            self.db.query(Project)
            .filter(Project.owner_id == self.principal.id)
            .order_by(Project.updated_at.desc())
            .all()
        )

    def get_project(self, project_id: str) -> Project:
        return self._get_owned(project_id)

    def create_project(self, payload: ProjectCreate) -> Project:
        """Create the project and its empty first chapter in one transaction."""
        with atomic(self.db):
            project = Project(
                owner_id=self.principal.id,
                title=payload.title,
                description=payload.description,
                genre=payload.genre,
                target_word_count=payload.target_word_count,
                status="draft",
                word_count=0,
            )
            self.db.add(project)
            self.db.flush()
            self.db.add(Chapter(
                project_id=project.id,
                title=FIRST_CHAPTER_TITLE,
                content="",
                word_count=0,
                order_index=0,
            ))
        logger.info("Created project %r (%s)", project.title, project.id[:8])
        return project

    def update_project(self, project_id: str, payload: ProjectUpdate) -> Project:
        with atomic(self.db):
            project = self._get_owned(project_id)
            for field, value in payload.model_dump(exclude_unset=True).items():
                setattr(project, field, value)
        return project

    def delete_project(self, project_id: str) -> None:
        with atomic(self.db):
            project = self._get_owned(project_id)
            self.db.delete(project)
        logger.info("Deleted project %s", project_id[:8])

    def load_for_export(self, project_id: str) -> Project:
        """Owned project with its chapters loaded in reading order."""
        project = self._get_owned(project_id)
        _ = project.chapters  # ordered by order_index on the relationship
        return project
