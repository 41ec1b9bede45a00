"""Chapter endpoints — project-scoped list/create/reorder and per-chapter edits."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from draftroom.api.deps import get_app_settings, require_active_principal
from draftroom.config import Settings
from draftroom.database import get_db
from draftroom.models import Chapter
from draftroom.schemas.chapter import (
    AutosaveRequest,
    AutosaveResponse,
    ChapterCreate,
    ChapterListItem,
    ChapterReorder,
    ChapterResponse,
    ChapterUpdate,
)
from draftroom.schemas.common import MessageResponse
from draftroom.services.auth_service import Principal
from draftroom.services.chapter_service import ChapterPatch, ChapterService
from draftroom.utils.word_count import estimate_reading_time

router = APIRouter()


def _chapter_response(chapter: Chapter, settings: Settings) -> ChapterResponse:
    response = ChapterResponse.model_validate(chapter)  # includes the parent project ref
    response.reading_time_minutes = estimate_reading_time(
        chapter.word_count, settings.READING_WORDS_PER_MINUTE,
    )
    response.autosave_delay_seconds = settings.AUTOSAVE_DELAY_SECONDS
    return response


# ── Project-scoped ─────────────────────────────────────────────────────

@router.get("/projects/{project_id}/chapters", response_model=list[ChapterListItem])
def list_chapters(
    project_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    chapters = ChapterService(db, principal).list_chapters(project_id)
    return [ChapterListItem.model_validate(c) for c in chapters]


@router.post("/projects/{project_id}/chapters", response_model=ChapterResponse, status_code=201)
def create_chapter(
    project_id: str,
    payload: ChapterCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    principal: Principal = Depends(require_active_principal),
):
    chapter = ChapterService(db, principal).create_chapter(project_id, payload.title, payload.content)
    return _chapter_response(chapter, settings)


@router.put("/projects/{project_id}/chapters/order", response_model=list[ChapterListItem])
def reorder_chapters(
    project_id: str,
    payload: ChapterReorder,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    chapters = ChapterService(db, principal).reorder_chapters(project_id, payload.chapter_ids)
    return [ChapterListItem.model_validate(c) for c in chapters]


# ── Single chapter ─────────────────────────────────────────────────────

@router.get("/chapters/{chapter_id}", response_model=ChapterResponse)
def get_chapter(
    chapter_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    principal: Principal = Depends(require_active_principal),
):
    chapter = ChapterService(db, principal).get_chapter(chapter_id)
    return _chapter_response(chapter, settings)


@router.put("/chapters/{chapter_id}", response_model=ChapterResponse)
def update_chapter(
    chapter_id: str,
    payload: ChapterUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    principal: Principal = Depends(require_active_principal),
):
    chapter = ChapterService(db, principal).update_chapter(chapter_id, ChapterPatch.from_update(payload))
    return _chapter_response(chapter, settings)


@router.post("/chapters/{chapter_id}/autosave", response_model=AutosaveResponse)
def autosave_chapter(
    chapter_id: str,
    payload: AutosaveRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    result = ChapterService(db, principal).autosave_chapter(chapter_id, payload.content, payload.sequence)
    return AutosaveResponse(
        saved_at=result.saved_at,
        word_count=result.word_count,
        skipped=result.skipped,
        stale=result.stale,
    )


@router.delete("/chapters/{chapter_id}", response_model=MessageResponse)
def delete_chapter(
    chapter_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    ChapterService(db, principal).delete_chapter(chapter_id)
    return MessageResponse(message="Chapter deleted")
