"""Shared / common schemas: pagination, enums, base models."""
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# ── Enums ──────────────────────────────────────────────────────────────

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ExportFormat(str, Enum):
    TXT = "txt"
    DOCX = "docx"

    @classmethod
    def _missing_(cls, value: object) -> "ExportFormat | None":
        """Accept the descriptive selector names used by editor clients."""
        aliases = {
            "plain-text": cls.TXT,
            "text": cls.TXT,
            "word-processor-document": cls.DOCX,
            "word": cls.DOCX,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


# ── Pagination ─────────────────────────────────────────────────────────

class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


# ── Common Responses ───────────────────────────────────────────────────

class MessageResponse(BaseModel):
    message: str
    detail: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
