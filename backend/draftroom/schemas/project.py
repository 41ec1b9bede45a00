"""Project schemas for request/response validation."""
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    genre: str | None = Field(None, max_length=100)
    target_word_count: int | None = Field(None, ge=0)


class ProjectUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    genre: str | None = Field(None, max_length=100)
    status: str | None = Field(None, min_length=1, max_length=50)
    target_word_count: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def _reject_null_required_fields(self):
        for name in ("title", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ProjectResponse(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str | None
    genre: str | None
    status: str
    word_count: int
    target_word_count: int | None
    created_at: datetime
    updated_at: datetime
    # Computed (filled by the service layer)
    chapter_count: int = 0

    model_config = {"from_attributes": True}


class ProjectListItem(BaseModel):
    id: str
    title: str
    genre: str | None
    status: str
    word_count: int
    target_word_count: int | None
    created_at: datetime
    updated_at: datetime
    chapter_count: int = 0

    model_config = {"from_attributes": True}
