"""
Amharic Voice exception hierarchy.

All application-specific exceptions inherit from ScribeError, enabling
centralized error handling in the API middleware layer and a single
latest-error surface on the transcription workflow.
"""

from datetime import UTC, datetime


class ScribeError(Exception):
    """Base exception for all Amharic Voice errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "SCRIBE_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Audio acquisition
# ---------------------------------------------------------------------------


class DeviceUnavailableError(ScribeError):
    """Raised when the microphone is denied, absent, or fails mid-capture."""

    def __init__(self, detail: str = "Microphone access denied or not available.") -> None:
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE", status_code=503)


class InvalidMediaTypeError(ScribeError):
    """Raised when an uploaded file is not declared as audio."""

    def __init__(self, mime_type: str | None = None) -> None:
        super().__init__(
            detail="Please select a valid audio file.",
            code="INVALID_MEDIA_TYPE",
            status_code=415,
        )
        self.mime_type = mime_type


class EncodeError(ScribeError):
    """Raised when audio bytes cannot be converted to or from base64."""

    def __init__(self, detail: str = "Failed to encode audio for transcription.") -> None:
        super().__init__(detail=detail, code="ENCODE_ERROR", status_code=422)


# ---------------------------------------------------------------------------
# Transcription engine
# ---------------------------------------------------------------------------


class TranscriptionFailedError(ScribeError):
    """Raised when the speech-to-text provider fails."""

    def __init__(
        self,
        detail: str = "Failed to transcribe audio. Please check your connection or API key.",
    ) -> None:
        super().__init__(detail=detail, code="TRANSCRIPTION_FAILED", status_code=502)


class TranslationFailedError(ScribeError):
    """Raised when the translation provider fails."""

    def __init__(self, detail: str = "Failed to translate text.") -> None:
        super().__init__(detail=detail, code="TRANSLATION_FAILED", status_code=502)


# ---------------------------------------------------------------------------
# Identity & persistence
# ---------------------------------------------------------------------------


class AuthError(ScribeError):
    """Raised when sign-in, sign-up, sign-out, or token refresh fails."""

    def __init__(self, detail: str = "An authentication error occurred.") -> None:
        super().__init__(detail=detail, code="AUTH_ERROR", status_code=400)


class UnauthenticatedError(ScribeError):
    """Raised when an operation requires a signed-in user and there is none."""

    def __init__(self) -> None:
        super().__init__(
            detail="User must be logged in to save data.",
            code="UNAUTHENTICATED",
            status_code=401,
        )


class PersistenceFailedError(ScribeError):
    """Raised when the persistence store rejects or fails a save."""

    def __init__(self, detail: str = "Failed to save transcription") -> None:
        super().__init__(detail=detail, code="PERSISTENCE_FAILED", status_code=502)


# ---------------------------------------------------------------------------
# Workflow guards
# ---------------------------------------------------------------------------


class InvalidTransitionError(ScribeError):
    """Raised when a workflow event is not allowed in the current state."""

    def __init__(self, action: str, state: str) -> None:
        super().__init__(
            detail=f"Cannot {action} while workflow is {state}",
            code="INVALID_TRANSITION",
            status_code=409,
        )
        self.action = action
        self.state = state


class OperationInProgressError(ScribeError):
    """Raised when the same kind of remote call is already in flight."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            detail=f"A {operation} request is already in progress",
            code="OPERATION_IN_PROGRESS",
            status_code=409,
        )
        self.operation = operation
