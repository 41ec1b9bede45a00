"""Project word-count aggregate.

The project total is always recomputed from the chapter rows rather than
adjusted by deltas, so a mutation path that forgets to report its change
cannot make the total drift. Callers must invoke ``recompute_project_word_count``
inside the same transaction as the chapter write, after flushing it.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from draftroom.models import Chapter, Project

logger = logging.getLogger(__name__)


def lock_project(db: Session, project_id: str) -> Project | None:
    """Load *project_id* with a row lock held until the transaction ends.

    Serialises chapter mutations of one project on backends that support
    ``SELECT … FOR UPDATE``; SQLite ignores the clause and relies on
    ``BEGIN IMMEDIATE`` instead (see ``Database``).
    """
    return (
        db.query(Project)
        .filter(Project.id == project_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def recompute_project_word_count(db: Session, project_id: str) -> int:
    """Sum the chapter counts of *project_id* and store the total on the project."""
    db.flush()
    total = (
        db.query(func.coalesce(func.sum(Chapter.word_count), 0))
        .filter(Chapter.project_id == project_id)
        .scalar()
    ) or 0
    db.execute(
        update(Project)
        .where(Project.id == project_id)
        .values(word_count=total)
        .execution_options(synchronize_session="fetch")
    )
    logger.debug("Project %s word count recomputed: %d", project_id[:8], total)
    return int(total)
