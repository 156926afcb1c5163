"""
Write repository for the ``transcriptions`` table.

``TranscriptionRepository`` receives an ``AsyncSession`` and calls
``flush()`` rather than ``commit()`` so that transaction boundaries are
controlled by the caller (typically :func:`get_session`).
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.services.storage.models_db import Transcription

logger = logging.getLogger(__name__)


class TranscriptionRepository:
    """Data-access layer for saved transcriptions.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_transcription(
        self,
        user_id: str,
        source_text: str,
        translated_text: str | None = None,
        created_at: datetime | None = None,
    ) -> Transcription:
        """Insert and return a new transcription row."""
        row = Transcription(
            user_id=user_id,
            source_text=source_text,
            translated_text=translated_text,
            created_at=created_at or datetime.now(UTC),
        )
        self._session.add(row)
        await self._session.flush()
        logger.debug("Stored transcription %s for user %s", row.id, user_id)
        return row
