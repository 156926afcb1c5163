"""Transcription engine facade.

Composes one STT provider and one LLM into the ``transcribe`` /
``translate`` interface consumed by the workflow, applying the
empty-result sentinel policy and mapping every provider failure onto
``TranscriptionFailedError`` or ``TranslationFailedError``.
"""

import logging

from src.core.config import get_settings
from src.core.exceptions import TranscriptionFailedError, TranslationFailedError
from src.services.llm import BaseLLM, create_llm
from src.services.transcription import BaseSTT, create_stt

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPTION = "No transcription available."
EMPTY_TRANSLATION = "Translation failed."


class TranscriptionEngine:
    """Remote transcription and translation behind one interface.

    Args:
        stt: Speech-to-text provider.
        llm: Text generation provider used for translation.
        source_language: Human-readable language of the audio.
        target_language: Human-readable language translations are produced in.
    """

    def __init__(
        self,
        stt: BaseSTT,
        llm: BaseLLM,
        source_language: str = "Amharic",
        target_language: str = "English",
    ) -> None:
        self._stt = stt
        self._llm = llm
        self.source_language = source_language
        self.target_language = target_language

    async def transcribe(self, base64_audio: str, mime_type: str) -> str:
        """Transcribe base64 audio.

        Returns:
            The transcript, or ``EMPTY_TRANSCRIPTION`` if the provider
            returned no content.

        Raises:
            TranscriptionFailedError: On any provider error.
        """
        try:
            text = await self._stt.transcribe(base64_audio, mime_type)
        except TranscriptionFailedError:
            logger.exception("Transcription provider failed")
            raise
        except Exception as exc:
            logger.exception("Transcription provider failed")
            raise TranscriptionFailedError() from exc

        if not text or not text.strip():
            logger.info("Transcription returned no content")
            return EMPTY_TRANSCRIPTION
        return text

    async def translate(self, text: str) -> str:
        """Translate ``text`` into the target language.

        Returns:
            The translation, or ``EMPTY_TRANSLATION`` if the provider
            returned no content.

        Raises:
            TranslationFailedError: On any provider error.
        """
        try:
            translated = await self._llm.translate(
                text, source=self.source_language, target=self.target_language
            )
        except Exception as exc:
            logger.exception("Translation provider failed")
            raise TranslationFailedError() from exc

        if not translated or not translated.strip():
            logger.info("Translation returned no content")
            return EMPTY_TRANSLATION
        return translated


def create_engine(settings=None) -> TranscriptionEngine:
    """Build the engine from the configured STT and LLM providers."""
    settings = settings or get_settings()
    return TranscriptionEngine(
        stt=create_stt(provider=settings.transcriber_provider),
        llm=create_llm(provider=settings.llm_provider),
        source_language=settings.source_language,
        target_language=settings.target_language,
    )
