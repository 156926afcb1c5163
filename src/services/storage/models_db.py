"""
SQLAlchemy ORM models for locally persisted transcriptions.

Tables: ``transcriptions``.
"""

from datetime import UTC, datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.services.storage.database import Base


class Transcription(Base):
    """A saved transcript with its optional translation, owned by one user."""

    __tablename__ = "transcriptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    source_text: Mapped[str] = mapped_column(Text, default="")
    translated_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    def __repr__(self) -> str:
        return f"<Transcription id={self.id} user={self.user_id!r}>"
