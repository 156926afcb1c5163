"""
Storage module - Database, persistence stores, and local exports.
"""

from src.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
    reset_engine,
)
from src.services.storage.export import export_audio, export_text
from src.services.storage.models_db import Transcription
from src.services.storage.repository import TranscriptionRepository
from src.services.storage.store import (
    BasePersistenceStore,
    SQLPersistenceStore,
    SupabasePersistenceStore,
    create_store,
)

__all__ = [
    "Base",
    "BasePersistenceStore",
    "SQLPersistenceStore",
    "SupabasePersistenceStore",
    "Transcription",
    "TranscriptionRepository",
    "close_db",
    "create_store",
    "export_audio",
    "export_text",
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
]
