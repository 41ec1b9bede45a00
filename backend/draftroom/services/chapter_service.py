"""Chapter store: ownership-checked chapter CRUD, autosave, and ordering.

Every mutation runs as one transaction that (1) locks the parent project
row, (2) writes the chapter rows, (3) keeps ``order_index`` dense and
(4) recomputes the project word count. A reader therefore never observes
a gapped ordering or a total that disagrees with the chapters.

Usage:
    service = ChapterService(db, principal)
    chapter = service.create_chapter(project_id, "Chapter 2")
    result = service.autosave_chapter(chapter.id, "<p>Hello world</p>")
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, update
from sqlalchemy.orm import Session, load_only

from draftroom.database import atomic
from draftroom.errors import ForbiddenError, NotFoundError, ValidationFailedError
from draftroom.models import Chapter, Project
from draftroom.schemas.chapter import ChapterUpdate
from draftroom.services.aggregate import lock_project, recompute_project_word_count
from draftroom.services.auth_service import Principal
from draftroom.utils.word_count import count_words

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 255


class _Unset:
    """Marker for a patch field that was not supplied."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class ChapterPatch:
    """Partial chapter update. ``UNSET`` means "leave as is"; ``""`` clears content."""
    title: str | _Unset = UNSET
    content: str | None | _Unset = UNSET

    @classmethod
    def from_update(cls, payload: ChapterUpdate) -> "ChapterPatch":
        return cls(**payload.model_dump(exclude_unset=True))


@dataclass
class AutosaveResult:
    saved_at: datetime
    word_count: int
    skipped: bool = False
    stale: bool = False


def validate_title(title: str | None) -> str:
    if title is None or len(title) == 0:
        raise ValidationFailedError("Title is required", details={"title": ["Title is required"]})
    if len(title) > TITLE_MAX_LENGTH:
        message = f"Title must be at most {TITLE_MAX_LENGTH} characters"
        raise ValidationFailedError(message, details={"title": [message]})
    return title


class ChapterService:
    """Chapter operations on behalf of one authenticated principal."""

    def __init__(self, db: Session, principal: Principal):
        self.db = db
        self.principal = principal

    # ── Ownership ──────────────────────────────────────────────────────

    def _check_owner(self, project: Project) -> None:
        if project.owner_id != self.principal.id:
            raise ForbiddenError()

    def _get_owned_project(self, project_id: str, lock: bool = False) -> Project:
        project = lock_project(self.db, project_id) if lock else self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        self._check_owner(project)
        return project

    def _get_owned_chapter(self, chapter_id: str, lock: bool = False) -> Chapter:
        project_id = (
            self.db.query(Chapter.project_id).filter(Chapter.id == chapter_id).scalar()
        )
        if project_id is None:
            raise NotFoundError("Chapter not found")
        self._get_owned_project(project_id, lock=lock)
        # Re-read after taking the project lock so content comparisons see the latest row
        chapter = (
            self.db.query(Chapter)
            .filter(Chapter.id == chapter_id)
            .populate_existing()
            .first()
        )
        if chapter is None:
            raise NotFoundError("Chapter not found")
        return chapter

    # ── Queries ────────────────────────────────────────────────────────

    def get_chapter(self, chapter_id: str) -> Chapter:
        return self._get_owned_chapter(chapter_id)

    def list_chapters(self, project_id: str) -> list[Chapter]:
        self._get_owned_project(project_id)
        return (
            self.db.query(Chapter)
            .options(load_only(
                Chapter.id, Chapter.title, Chapter.word_count, Chapter.order_index, Chapter.updated_at,
            ))
            .filter(Chapter.project_id == project_id)
            .order_by(Chapter.order_index.asc())
            .all()
        )

    # ── Mutations ──────────────────────────────────────────────────────

    def create_chapter(self, project_id: str, title: str, content: str | None = None) -> Chapter:
        with atomic(self.db):
            self._get_owned_project(project_id, lock=True)
            validate_title(title)

            max_index = (
                self.db.query(func.max(Chapter.order_index))
                .filter(Chapter.project_id == project_id)
                .scalar()
            )
            chapter = Chapter(
                project_id=project_id,
                title=title,
                content=content or "",
                word_count=count_words(content),
                order_index=0 if max_index is None else max_index + 1,
            )
            self.db.add(chapter)
            recompute_project_word_count(self.db, project_id)
        logger.info("Created chapter %s at index %d in project %s",
                    chapter.id[:8], chapter.order_index, project_id[:8])
        return chapter

    def update_chapter(self, chapter_id: str, patch: ChapterPatch) -> Chapter:
        with atomic(self.db):
            chapter = self._get_owned_chapter(chapter_id, lock=True)
            if patch.title is not UNSET:
                chapter.title = validate_title(patch.title)
            if patch.content is not UNSET:
                new_content = patch.content or ""
                if new_content != (chapter.content or ""):
                    chapter.content = new_content
                    chapter.word_count = count_words(new_content)
                    recompute_project_word_count(self.db, chapter.project_id)
        return chapter

    def autosave_chapter(self, chapter_id: str, content: str, sequence: int | None = None) -> AutosaveResult:
        """Persist *content* unless it matches what is stored.

        With a *sequence*, writes that do not advance past the last applied
        sequence are treated as stale and ignored.
        """
        with atomic(self.db):
            chapter = self._get_owned_chapter(chapter_id, lock=True)
            if sequence is not None and sequence <= chapter.autosave_sequence:
                logger.debug("Ignoring stale autosave %d for chapter %s (last applied %d)",
                             sequence, chapter_id[:8], chapter.autosave_sequence)
                return AutosaveResult(chapter.updated_at, chapter.word_count, skipped=True, stale=True)
            if content == (chapter.content or ""):
                logger.debug("Autosave skipped for chapter %s: content unchanged", chapter_id[:8])
                return AutosaveResult(chapter.updated_at, chapter.word_count, skipped=True)

            chapter.content = content
            chapter.word_count = count_words(content)
            if sequence is not None:
                chapter.autosave_sequence = sequence
            recompute_project_word_count(self.db, chapter.project_id)
        return AutosaveResult(saved_at=chapter.updated_at, word_count=chapter.word_count)

    def delete_chapter(self, chapter_id: str) -> None:
        with atomic(self.db):
            chapter = self._get_owned_chapter(chapter_id, lock=True)
            project_id, removed_index = chapter.project_id, chapter.order_index
            self.db.delete(chapter)
            self.db.flush()
            self._close_gap(project_id, removed_index)
            recompute_project_word_count(self.db, project_id)
        logger.info("Deleted chapter %s (index %d) from project %s",
                    chapter_id[:8], removed_index, project_id[:8])

    def reorder_chapters(self, project_id: str, ordered_ids: list[str]) -> list[Chapter]:
        """Make ``ordered_ids[i]`` the chapter at index ``i``.

        *ordered_ids* must name every chapter of the project exactly once.
        """
        with atomic(self.db):
            self._get_owned_project(project_id, lock=True)
            existing = {
                row.id for row in self.db.query(Chapter.id).filter(Chapter.project_id == project_id)
            }
            if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != existing:
                raise ValidationFailedError(
                    "chapter_ids must list every chapter of the project exactly once"
                )
            # Park every row on a negative index first so no intermediate
            # assignment collides with the (project_id, order_index) constraint
            self.db.execute(
                update(Chapter)
                .where(Chapter.project_id == project_id)
                .values(order_index=-Chapter.order_index - 1, updated_at=Chapter.updated_at)
                .execution_options(synchronize_session=False)
            )
            for position, chapter_id in enumerate(ordered_ids):
                self.db.execute(
                    update(Chapter)
                    .where(Chapter.id == chapter_id)
                    .values(order_index=position, updated_at=Chapter.updated_at)
                    .execution_options(synchronize_session=False)
                )
        logger.info("Reordered %d chapters in project %s", len(ordered_ids), project_id[:8])
        return self.list_chapters(project_id)

    def _close_gap(self, project_id: str, removed_index: int) -> None:
        """Shift every chapter above *removed_index* down by one, in two passes."""
        self.db.execute(
            update(Chapter)
            .where(Chapter.project_id == project_id, Chapter.order_index > removed_index)
            .values(order_index=-Chapter.order_index, updated_at=Chapter.updated_at)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(
            update(Chapter)
            .where(Chapter.project_id == project_id, Chapter.order_index < 0)
            .values(order_index=-Chapter.order_index - 1, updated_at=Chapter.updated_at)
            .execution_options(synchronize_session=False)
        )

