"""Chapter schemas: CRUD payloads, list items, and the autosave contract."""
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class ChapterCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str | None = None


class ChapterUpdate(BaseModel):
    """Explicit save. Omitted fields are left untouched; see ``ChapterPatch``."""
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None

    @model_validator(mode="after")
    def _reject_null_title(self):
        if "title" in self.model_fields_set and self.title is None:
            raise ValueError("title cannot be null")
        return self


class ChapterReorder(BaseModel):
    chapter_ids: list[str] = Field(..., min_length=1)


class AutosaveRequest(BaseModel):
    content: str
    sequence: int | None = Field(None, ge=1)  # stored sequence starts at 0


class AutosaveResponse(BaseModel):
    saved_at: datetime
    word_count: int
    skipped: bool = False
    stale: bool = False  # a newer autosave was already applied


class ChapterProjectRef(BaseModel):
    id: str
    title: str

    model_config = {"from_attributes": True}


class ChapterResponse(BaseModel):
    id: str
    project_id: str
    title: str
    content: str | None
    word_count: int
    order_index: int
    created_at: datetime
    updated_at: datetime
    reading_time_minutes: int = 1
    autosave_delay_seconds: float | None = None  # quiescence window editors should debounce with
    project: ChapterProjectRef | None = None

    model_config = {"from_attributes": True}


class ChapterListItem(BaseModel):
    id: str
    title: str
    word_count: int
    order_index: int
    updated_at: datetime

    model_config = {"from_attributes": True}
