"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Amharic Voice application settings loaded from environment / `.env` file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        transcriber_provider: Speech-to-text backend ("gemini" or "whisper").
        llm_provider: Translation backend ("gemini" or "claude").
        persistence_provider: Where saved transcriptions go ("sqlite" or "supabase").
        database_url: Async SQLAlchemy connection string for SQLite.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Languages ---
    source_language: str = "Amharic"
    source_language_code: str = "am"  # ISO 639-1, passed to whisper
    target_language: str = "English"

    # --- Transcription ---
    # "gemini" sends audio inline to Gemini, "whisper" runs faster-whisper locally
    transcriber_provider: str = "gemini"
    whisper_model: str = "large-v3"  # Smaller models transcribe Amharic poorly
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"

    # --- Translation LLM ---
    llm_provider: str = "gemini"

    # Gemini (Google GenAI) settings
    gemini_api_key: str = ""  # Required when either provider is "gemini"
    gemini_model: str = "gemini-3-flash-preview"

    # Claude (Anthropic API) settings
    claude_api_key: str = ""  # Required when llm_provider="claude"
    claude_model: str = "claude-sonnet-4-20250514"

    # --- Supabase (auth + optional persistence) ---
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_table: str = "transcriptions"

    # --- Persistence ---
    persistence_provider: str = "sqlite"
    database_url: str = "sqlite+aiosqlite:///data/amharic_voice.db"

    # --- Audio capture ---
    capture_sample_rate: int = 16000
    capture_channels: int = 1
    capture_device: int | None = None  # None = system default input
    capture_mime_type: str = "audio/wav"
    audio_fallback_extension: str = "webm"

    # --- Export ---
    text_export_prefix: str = "amharic-transcription"
    audio_export_prefix: str = "amharic-audio"

    # --- Workflow ---
    save_status_seconds: float = 3.0  # How long save_succeeded stays true

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"  # Python logging level
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
