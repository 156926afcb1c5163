"""Whisper STT implementation using faster-whisper.

Runs transcription locally on the decoded audio bytes. The WhisperModel is
loaded lazily and cached at module level to avoid repeated initialization
overhead.
"""

import asyncio
import base64
import binascii
import io
import logging

from faster_whisper import WhisperModel

from src.core.config import get_settings
from src.core.exceptions import TranscriptionFailedError
from src.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

_model_cache: WhisperModel | None = None


class WhisperSTT(BaseSTT):
    """Speech-to-text provider using faster-whisper (CTranslate2).

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        language: ISO 639-1 language code forced on the decoder.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        language: str | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type or self._settings.whisper_compute_type
        self._language = language or self._settings.source_language_code

    def _get_model(self) -> WhisperModel:
        """Return the cached WhisperModel, loading it on first use."""
        global _model_cache  # noqa: PLW0603
        if _model_cache is None:
            logger.info(
                "Loading Whisper model: %s (device=%s, compute=%s)",
                self._model_size,
                self._device,
                self._compute_type,
            )
            _model_cache = WhisperModel(
                self._model_size,
                device=self._device,
                compute_type=self._compute_type,
            )
        return _model_cache

    def _run_transcription(
        self,
        audio: io.BytesIO,
        language: str | None = None,
        beam_size: int = 5,
        vad_filter: bool = True,
    ) -> str:
        """Run synchronous transcription (CPU-bound).

        Must be called via asyncio.to_thread(). The segment iterator is
        materialized inside this function to avoid CTranslate2
        thread-safety issues.
        """
        model = self._get_model()
        segments_iter, _info = model.transcribe(
            audio,
            language=language,
            beam_size=beam_size,
            vad_filter=vad_filter,
        )
        return " ".join(seg.text.strip() for seg in segments_iter if seg.text.strip())

    async def transcribe(self, base64_audio: str, mime_type: str, **kwargs) -> str:
        """Decode base64 audio and transcribe it with the local model.

        Args:
            base64_audio: Base64 audio in any container ffmpeg can decode.
            mime_type: Only logged; the decoder sniffs the container itself.
            **kwargs: Optional keys: language, beam_size, vad_filter.

        Returns:
            The joined segment texts, empty if nothing was recognized.
        """
        try:
            audio_bytes = base64.b64decode(base64_audio, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise TranscriptionFailedError(f"Invalid base64 audio: {exc}") from exc

        logger.info("Whisper transcribing %d bytes of %s", len(audio_bytes), mime_type)
        try:
            return await asyncio.to_thread(
                self._run_transcription,
                io.BytesIO(audio_bytes),
                language=kwargs.get("language", self._language),
                beam_size=kwargs.get("beam_size", 5),
                vad_filter=kwargs.get("vad_filter", True),
            )
        except Exception as exc:
            raise TranscriptionFailedError(f"Whisper transcription failed: {exc}") from exc
