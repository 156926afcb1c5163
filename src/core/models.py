"""
Pydantic v2 domain and API models.

Domain: AudioObject, TranscriptionResult, AuthSession, TranscriptionRecord
API:    WorkflowSnapshot, auth requests/responses, result edits, Health
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class WorkflowState(StrEnum):
    """States of the transcription workflow. Exactly one is active at a time."""

    idle = "idle"
    capturing = "capturing"
    captured = "captured"
    transcribing = "transcribing"
    translating = "translating"
    completed = "completed"
    failed = "failed"


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------


class AudioObject(BaseModel):
    """An immutable binary audio payload tagged with its MIME type."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        """Payload length in bytes."""
        return len(self.data)


# ---------------------------------------------------------------------------
# Transcription result
# ---------------------------------------------------------------------------


class TranscriptionResult(BaseModel):
    """The editable transcript/translation pair produced by a transcription.

    ``text`` and ``translated_text`` are reassigned in place by edits;
    ``created_at`` and ``audio`` are fixed at construction.
    """

    model_config = ConfigDict(validate_assignment=True)

    text: str
    translated_text: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), frozen=True)
    audio: AudioObject = Field(frozen=True)


class ResultView(BaseModel):
    """Result fields exposed by the API (audio bytes are downloaded separately)."""

    text: str
    translated_text: str | None = None
    created_at: datetime
    audio_mime_type: str
    audio_size: int


class WorkflowSnapshot(BaseModel):
    """Read model of the workflow controller at one point in time."""

    state: WorkflowState
    pending_audio_mime_type: str | None = None
    pending_audio_size: int | None = None
    result: ResultView | None = None
    error: str | None = None
    error_code: str | None = None
    is_saving: bool = False
    save_succeeded: bool = False


class ResultUpdate(BaseModel):
    """PATCH /workflow/result request body."""

    text: str | None = None
    translated_text: str | None = None


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class ExportArtifact(BaseModel):
    """A downloadable file produced from the workflow."""

    filename: str
    media_type: str
    content: bytes


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class AuthSession(BaseModel):
    """Opaque identity token issued by the identity provider."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    user_id: str
    email: str | None = None


class SessionEvent(StrEnum):
    """Identity events delivered to ``on_session_change`` listeners."""

    signed_in = "SIGNED_IN"
    signed_out = "SIGNED_OUT"
    token_refreshed = "TOKEN_REFRESHED"


class AuthResult(BaseModel):
    """Outcome of a successful sign-in or sign-up."""

    session: AuthSession | None = None
    confirmation_required: bool = False
    message: str | None = None


class Credentials(BaseModel):
    """POST /auth/sign-in and /auth/sign-up request body."""

    email: str
    password: str


class SessionResponse(BaseModel):
    """GET /auth/session response; never exposes tokens."""

    authenticated: bool
    user_id: str | None = None
    email: str | None = None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class SaveRequest(BaseModel):
    """Payload handed to the persistence store."""

    transcript: str
    translation: str | None = None


class TranscriptionRecord(BaseModel):
    """A transcription row as stored by a persistence backend."""

    id: int | str
    user_id: str
    source_text: str
    translated_text: str | None = None
    created_at: datetime
