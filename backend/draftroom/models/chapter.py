"""Chapter model — ordered unit of markup content inside a project.

``(project_id, order_index)`` is unique, so two concurrent appends that
read the same "current max" cannot both commit.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, Text, Integer, BigInteger, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from draftroom.database import Base


class Chapter(Base):
    __tablename__ = "chapters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True, default="")
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    autosave_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)  # highest applied autosave sequence
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    project = relationship("Project", back_populates="chapters")

    __table_args__ = (
        UniqueConstraint("project_id", "order_index", name="uq_chapters_project_order"),
        Index("ix_chapters_project_id", "project_id"),
        CheckConstraint("word_count >= 0", name="ck_chapters_word_count_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Chapter {self.title!r} #{self.order_index} ({self.id[:8]})>"
