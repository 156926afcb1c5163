"""Transcription workflow controller.

A finite-state machine that sequences audio capture, encoding, remote
transcription and translation, in-place result edits, persistence, and
local export. Remote calls are awaited; the state table itself is
synchronous. A singleton ``TranscriptionWorkflow`` backs the HTTP API.

Usage::

    from src.services import workflow

    wf = workflow.get_workflow()
    wf.upload_file(data, "audio/wav")
    await wf.transcribe()
    await wf.translate()
    await wf.save()
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from src.core.config import get_settings
from src.core.exceptions import (
    DeviceUnavailableError,
    EncodeError,
    InvalidMediaTypeError,
    InvalidTransitionError,
    OperationInProgressError,
    PersistenceFailedError,
    ScribeError,
    TranscriptionFailedError,
    TranslationFailedError,
    UnauthenticatedError,
)
from src.core.models import (
    AudioObject,
    AuthSession,
    ExportArtifact,
    ResultView,
    SaveRequest,
    TranscriptionRecord,
    TranscriptionResult,
    WorkflowSnapshot,
    WorkflowState,
)
from src.services.audio.capture import AudioCaptureAdapter, CaptureHandle
from src.services.audio.codec import AudioCodec
from src.services.engine import TranscriptionEngine, create_engine
from src.services.storage import export
from src.services.storage.store import BasePersistenceStore, create_store

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], Awaitable[AuthSession | None]]


class TranscriptionWorkflow:
    """Owns the workflow state, the pending audio, and the editable result.

    Workflow failures never raise: they set ``error`` / ``error_code`` and
    move the state as the transition table dictates. Events that are not
    allowed in the current state raise ``InvalidTransitionError``; a second
    call of a kind already in flight raises ``OperationInProgressError``.

    Args:
        engine: Transcription/translation engine.
        store: Persistence backend used by ``save``.
        session_provider: Coroutine function returning a usable identity
            session, or None when signed out.
        capture: Microphone and upload adapter.
        codec: Base64 / filename bridge.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        engine: TranscriptionEngine,
        store: BasePersistenceStore,
        session_provider: SessionProvider,
        capture: AudioCaptureAdapter | None = None,
        codec: AudioCodec | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._engine = engine
        self._store = store
        self._session_provider = session_provider
        self._capture = capture or AudioCaptureAdapter()
        self._codec = codec or AudioCodec(self._settings.audio_fallback_extension)

        self._state = WorkflowState.idle
        self._capture_handle: CaptureHandle | None = None
        self._pending_audio: AudioObject | None = None
        self._result: TranscriptionResult | None = None
        self._error: ScribeError | None = None
        self._is_saving = False
        # Monotonic time of the last successful save, shown for a short while
        self._saved_at: float | None = None

        self._in_flight: set[str] = set()
        # Serializes translate and save so a save never sees a half-applied translation
        self._result_lock = asyncio.Lock()
        # Bumped by reset(); calls that return after a reset drop their outcome
        self._generation = 0

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def pending_audio(self) -> AudioObject | None:
        return self._pending_audio

    @property
    def result(self) -> TranscriptionResult | None:
        return self._result

    @property
    def error(self) -> str | None:
        """Latest human-readable error message, or None."""
        return self._error.detail if self._error else None

    @property
    def error_code(self) -> str | None:
        return self._error.code if self._error else None

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    @property
    def save_succeeded(self) -> bool:
        """True for ``save_status_seconds`` after the last successful save."""
        if self._saved_at is None:
            return False
        return time.monotonic() - self._saved_at < self._settings.save_status_seconds

    def snapshot(self) -> WorkflowSnapshot:
        """Return a serializable view of the current workflow state."""
        result = None
        if self._result is not None:
            result = ResultView(
                text=self._result.text,
                translated_text=self._result.translated_text,
                created_at=self._result.created_at,
                audio_mime_type=self._result.audio.mime_type,
                audio_size=self._result.audio.size,
            )
        pending = self._pending_audio
        return WorkflowSnapshot(
            state=self._state,
            pending_audio_mime_type=pending.mime_type if pending else None,
            pending_audio_size=pending.size if pending else None,
            result=result,
            error=self.error,
            error_code=self.error_code,
            is_saving=self._is_saving,
            save_succeeded=self.save_succeeded,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, action: str, *states: WorkflowState) -> None:
        if self._state not in states:
            raise InvalidTransitionError(action, self._state.value)

    def _claim(self, operation: str) -> None:
        if operation in self._in_flight:
            raise OperationInProgressError(operation)
        self._in_flight.add(operation)

    def _release(self, operation: str, generation: int) -> None:
        if generation == self._generation:
            self._in_flight.discard(operation)

    def _fail(self, exc: ScribeError) -> None:
        """Record ``exc`` as the latest error, replacing any prior one."""
        self._error = exc
        logger.warning("Workflow error [%s]: %s", exc.code, exc.detail)

    def _transition(self, new_state: WorkflowState) -> None:
        if new_state != self._state:
            logger.info("Workflow %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def _start_attempt(self) -> None:
        """Clear the error and prior outputs at the start of a capture/upload."""
        self._error = None
        self._result = None
        self._pending_audio = None
        self._saved_at = None

    # ------------------------------------------------------------------
    # Capture & upload
    # ------------------------------------------------------------------

    def start_capture(self) -> None:
        """Idle -> Capturing. On device failure stays Idle with DEVICE_UNAVAILABLE."""
        self._require("start capture", WorkflowState.idle)
        self._start_attempt()
        try:
            handle = self._capture.begin_capture()
        except DeviceUnavailableError as exc:
            self._fail(exc)
            self._transition(WorkflowState.idle)
            return
        self._capture_handle = handle
        self._transition(WorkflowState.capturing)

    def stop_capture(self) -> None:
        """Capturing -> Captured with the finalized recording as pending audio."""
        self._require("stop capture", WorkflowState.capturing)
        handle, self._capture_handle = self._capture_handle, None
        try:
            audio = self._capture.end_capture(handle)
        except DeviceUnavailableError as exc:
            self._fail(exc)
            self._transition(WorkflowState.idle)
            return
        self._pending_audio = audio
        self._transition(WorkflowState.captured)

    def abort_capture(self, detail: str | None = None) -> None:
        """Capture error: release the device, discard audio, return to Idle."""
        self._require("abort capture", WorkflowState.capturing)
        handle, self._capture_handle = self._capture_handle, None
        if handle is not None:
            self._capture.abort_capture(handle)
        self._fail(DeviceUnavailableError(detail) if detail else DeviceUnavailableError())
        self._transition(WorkflowState.idle)

    def upload_file(self, data: bytes, mime_type: str | None, filename: str | None = None) -> None:
        """Idle -> Captured with the uploaded bytes; non-audio stays Idle with an error."""
        self._require("upload a file", WorkflowState.idle)
        self._start_attempt()
        try:
            audio = self._capture.accept_file(data, mime_type, filename)
        except InvalidMediaTypeError as exc:
            self._fail(exc)
            return
        self._pending_audio = audio
        logger.info("Accepted upload %r (%s, %d bytes)", filename, audio.mime_type, audio.size)
        self._transition(WorkflowState.captured)

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    async def transcribe(self) -> None:
        """Captured -> Transcribing -> Completed | Failed.

        A retry is allowed from Failed while the pending audio is still held.
        An encode failure leaves the workflow Captured with ENCODE_ERROR.
        """
        if "transcribe" in self._in_flight:
            raise OperationInProgressError("transcribe")
        self._require("transcribe", WorkflowState.captured, WorkflowState.failed)
        audio = self._pending_audio
        if audio is None or self._result is not None:
            raise InvalidTransitionError("transcribe", self._state.value)

        try:
            encoded = self._codec.encode(audio)
        except EncodeError as exc:
            self._fail(exc)
            self._transition(WorkflowState.captured)
            return

        generation = self._generation
        self._claim("transcribe")
        self._transition(WorkflowState.transcribing)
        try:
            text = await self._engine.transcribe(encoded, audio.mime_type)
        except TranscriptionFailedError as exc:
            if generation != self._generation:
                return
            self._fail(exc)
            self._transition(WorkflowState.failed)
            return
        finally:
            self._release("transcribe", generation)

        if generation != self._generation:
            logger.info("Discarding transcription that finished after a reset")
            return
        self._result = TranscriptionResult(text=text, audio=audio)
        self._pending_audio = None
        self._transition(WorkflowState.completed)

    async def translate(self) -> None:
        """Completed -> Translating -> Completed.

        Failure keeps the transcript and surfaces TRANSLATION_FAILED.
        """
        if "translate" in self._in_flight:
            raise OperationInProgressError("translate")
        self._require("translate", WorkflowState.completed, WorkflowState.failed)
        if self._result is None or not self._result.text:
            raise InvalidTransitionError("translate", self._state.value)

        generation = self._generation
        self._claim("translate")
        try:
            async with self._result_lock:
                if generation != self._generation or self._result is None:
                    return
                result = self._result
                self._transition(WorkflowState.translating)
                try:
                    translated = await self._engine.translate(result.text)
                except TranslationFailedError as exc:
                    if generation != self._generation:
                        return
                    self._fail(exc)
                    self._transition(WorkflowState.completed)
                    return

                if generation != self._generation:
                    logger.info("Discarding translation that finished after a reset")
                    return
                result.translated_text = translated
                self._transition(WorkflowState.completed)
        finally:
            self._release("translate", generation)

    async def save(self) -> TranscriptionRecord | None:
        """Persist the current result; the workflow state never changes.

        Returns:
            The stored record, or None on failure (see ``error_code``).
        """
        if "save" in self._in_flight:
            raise OperationInProgressError("save")
        if self._result is None:
            raise InvalidTransitionError("save", self._state.value)

        generation = self._generation
        self._claim("save")
        self._is_saving = True
        self._saved_at = None
        try:
            async with self._result_lock:
                if generation != self._generation or self._result is None:
                    return None
                request = SaveRequest(
                    transcript=self._result.text,
                    translation=self._result.translated_text,
                )
                try:
                    session = await self._session_provider()
                    record = await self._store.save(request, session)
                except (UnauthenticatedError, PersistenceFailedError) as exc:
                    if generation == self._generation:
                        self._fail(exc)
                    return None
        finally:
            if generation == self._generation:
                self._is_saving = False
            self._release("save", generation)

        if generation != self._generation:
            return None
        self._saved_at = time.monotonic()
        logger.info("Saved transcription %s", record.id)
        return record

    # ------------------------------------------------------------------
    # Editing & export
    # ------------------------------------------------------------------

    def set_text(self, value: str) -> bool:
        """Replace the transcript in place. Returns False when there is no result."""
        if value is None:
            raise ValueError("Transcript text cannot be None")
        if self._result is None:
            return False
        self._result.text = value
        return True

    def set_translated_text(self, value: str) -> bool:
        """Replace an existing translation in place.

        Returns False (and changes nothing) if no translation exists yet.
        """
        if value is None:
            raise ValueError("Translated text cannot be None")
        if self._result is None or self._result.translated_text is None:
            return False
        self._result.translated_text = value
        return True

    def export_text(self) -> ExportArtifact | None:
        """Plain-text download of the transcript and translation, or None."""
        return export.export_text(
            self._result,
            prefix=self._settings.text_export_prefix,
            source_language=self._engine.source_language,
            target_language=self._engine.target_language,
        )

    def export_audio(self) -> ExportArtifact | None:
        """Download of the result-attached or pending audio, or None."""
        audio = self._result.audio if self._result is not None else self._pending_audio
        return export.export_audio(audio, self._settings.audio_export_prefix, self._codec)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Any state -> Idle, discarding audio, result, error, and save status."""
        handle, self._capture_handle = self._capture_handle, None
        if handle is not None:
            self._capture.abort_capture(handle)
        self._generation += 1
        self._in_flight.clear()
        self._pending_audio = None
        self._result = None
        self._error = None
        self._is_saving = False
        self._saved_at = None
        self._transition(WorkflowState.idle)


# ---------------------------------------------------------------------------
# Module-level singleton management
# ---------------------------------------------------------------------------

_workflow: TranscriptionWorkflow | None = None


def get_workflow() -> TranscriptionWorkflow:
    """Return the process-wide workflow, building it from settings on first use."""
    global _workflow
    if _workflow is None:
        from src.services.auth import session as session_state

        settings = get_settings()
        _workflow = TranscriptionWorkflow(
            engine=create_engine(settings),
            store=create_store(settings.persistence_provider),
            session_provider=session_state.fresh_session,
            settings=settings,
        )
        logger.info("Created transcription workflow")
    return _workflow


def set_workflow(workflow: TranscriptionWorkflow | None) -> None:
    """Replace the process-wide workflow (used by tests)."""
    global _workflow
    _workflow = workflow


async def cleanup() -> None:
    """Release the microphone and store resources (called during app shutdown)."""
    global _workflow
    if _workflow is None:
        return
    workflow = _workflow
    _workflow = None
    workflow.reset()
    await workflow._store.close()
