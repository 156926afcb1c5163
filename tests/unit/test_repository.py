"""Tests for the TranscriptionRepository write layer.

All tests use an in-memory SQLite database provided by the ``repository`` fixture.
"""

from datetime import UTC, datetime

from sqlalchemy import select

from src.services.storage.models_db import Transcription
from src.services.storage.repository import TranscriptionRepository


class TestCreateTranscription:
    """Verify row creation with default and explicit arguments."""

    async def test_defaults(self, repository: TranscriptionRepository) -> None:
        """A row created without a translation keeps it NULL and stamps created_at."""
        row = await repository.create_transcription(user_id="user-1", source_text="ሰላም")
        assert row.id is not None
        assert row.translated_text is None
        assert row.created_at is not None

    async def test_with_translation_and_timestamp(self, repository: TranscriptionRepository) -> None:
        stamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
        row = await repository.create_transcription(
            user_id="user-1",
            source_text="ሰላም",
            translated_text="Hello",
            created_at=stamp,
        )
        assert row.translated_text == "Hello"
        assert row.created_at == stamp



class TestTransactionBoundary:
    """The repository flushes; the caller decides whether to commit."""

    async def test_row_visible_in_session(self, repository, db_session) -> None:
        created = await repository.create_transcription(user_id="user-1", source_text="ሰላም")

        fetched = await db_session.get(Transcription, created.id)

        assert fetched.source_text == "ሰላም"

    async def test_rollback_discards_row(self, repository, db_session) -> None:
        await repository.create_transcription(user_id="user-1", source_text="ሰላም")
        await db_session.rollback()

        result = await db_session.execute(select(Transcription))

        assert result.scalars().all() == []
