"""
Persistence stores for finished transcriptions.

``SQLPersistenceStore`` writes to the local async SQLAlchemy database;
``SupabasePersistenceStore`` inserts into a Supabase table through the
PostgREST API, authenticated as the signed-in user so row-level security
applies. Both attach the owner's user id and a client-side UTC timestamp.
"""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime

import httpx
from sqlalchemy.exc import SQLAlchemyError

from src.core.config import get_settings
from src.core.exceptions import PersistenceFailedError, UnauthenticatedError
from src.core.models import AuthSession, SaveRequest, TranscriptionRecord
from src.services.storage.database import get_session
from src.services.storage.repository import TranscriptionRepository

logger = logging.getLogger(__name__)


class BasePersistenceStore(ABC):
    """Interface that every persistence backend must implement."""

    async def save(
        self, request: SaveRequest, session: AuthSession | None
    ) -> TranscriptionRecord:
        """Persist a transcript for the signed-in user.

        Raises:
            UnauthenticatedError: If ``session`` is None.
            PersistenceFailedError: For any backend failure.
        """
        if session is None:
            raise UnauthenticatedError()
        return await self._insert(request, session, datetime.now(UTC))

    @abstractmethod
    async def _insert(
        self, request: SaveRequest, session: AuthSession, created_at: datetime
    ) -> TranscriptionRecord:
        """Write one row; raise PersistenceFailedError on failure."""

    async def close(self) -> None:
        """Release any resources held by the store."""


class SQLPersistenceStore(BasePersistenceStore):
    """Stores transcriptions in the local SQLite database."""

    async def _insert(
        self, request: SaveRequest, session: AuthSession, created_at: datetime
    ) -> TranscriptionRecord:
        try:
            async with get_session() as db:
                repo = TranscriptionRepository(db)
                row = await repo.create_transcription(
                    user_id=session.user_id,
                    source_text=request.transcript,
                    translated_text=request.translation,
                    created_at=created_at,
                )
        except SQLAlchemyError as exc:
            logger.exception("Failed to store transcription for user %s", session.user_id)
            raise PersistenceFailedError(f"Failed to save transcription: {exc}") from exc

        return TranscriptionRecord(
            id=row.id,
            user_id=row.user_id,
            source_text=row.source_text,
            translated_text=row.translated_text,
            created_at=row.created_at,
        )


class SupabasePersistenceStore(BasePersistenceStore):
    """Inserts transcriptions into a Supabase table.

    The table keeps the original column layout: ``amharic_text``,
    ``english_text``, ``user_id``, ``created_at``.

    Args:
        url: Supabase project URL (defaults to settings).
        anon_key: Publishable anon key (defaults to settings).
        table: Target table name (defaults to settings).
        client: Pre-built ``httpx.AsyncClient`` (used in tests).
    """

    def __init__(
        self,
        url: str | None = None,
        anon_key: str | None = None,
        table: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self._url = (url or settings.supabase_url).rstrip("/")
        self._anon_key = anon_key or settings.supabase_anon_key
        self._table = table or settings.supabase_table
        self._client = client or httpx.AsyncClient(base_url=self._url, timeout=30.0)

    async def _insert(
        self, request: SaveRequest, session: AuthSession, created_at: datetime
    ) -> TranscriptionRecord:
        row = {
            "amharic_text": request.transcript,
            "english_text": request.translation,
            "user_id": session.user_id,
            "created_at": created_at.isoformat(),
        }
        try:
            resp = await self._client.post(
                f"/rest/v1/{self._table}",
                json=[row],
                headers={
                    "apikey": self._anon_key,
                    "Authorization": f"Bearer {session.access_token}",
                    "Prefer": "return=representation",
                },
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            try:
                detail = exc.response.json().get("message", exc.response.text)
            except ValueError:
                detail = exc.response.text or str(exc)
            logger.warning("Supabase insert rejected (%s): %s", exc.response.status_code, detail)
            raise PersistenceFailedError(f"Failed to save to Supabase: {detail}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Supabase insert failed: %s", exc)
            raise PersistenceFailedError(f"Failed to save to Supabase: {exc}") from exc

        try:
            rows = resp.json() if resp.content else []
        except ValueError as exc:
            logger.warning("Supabase insert returned a non-JSON body: %r", resp.text[:200])
            raise PersistenceFailedError(
                "Failed to save to Supabase: invalid response from server"
            ) from exc
        # RLS policies may allow the insert but hide the returned row
        stored = rows[0] if rows else {}
        return TranscriptionRecord(
            id=stored.get("id", ""),
            user_id=stored.get("user_id", session.user_id),
            source_text=stored.get("amharic_text", request.transcript),
            translated_text=stored.get("english_text", request.translation),
            created_at=stored.get("created_at", created_at),
        )

    async def close(self) -> None:
        await self._client.aclose()


def create_store(provider: str, **kwargs) -> BasePersistenceStore:
    """Factory for the configured persistence backend ("sqlite" or "supabase").

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "sqlite":
        return SQLPersistenceStore()
    elif provider == "supabase":
        return SupabasePersistenceStore(**kwargs)
    else:
        raise ValueError(f"Unknown persistence provider: {provider}")
