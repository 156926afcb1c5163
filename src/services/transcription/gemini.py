"""Gemini STT implementation using the Google GenAI SDK.

Sends the audio inline alongside a transcription prompt to a multimodal
Gemini model. Transient SDK failures are retried with exponential backoff.
"""

import base64
import binascii
import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings
from src.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = (
    "You are a professional {language} transcriber.\n"
    "Transcribe the provided audio content exactly into {language} text.\n"
    "Do not provide translations or summaries, only the verbatim transcription.\n"
    "If the audio is silent or unintelligible, state that clearly."
)


class GeminiSTT(BaseSTT):
    """Speech-to-text provider using a multimodal Gemini model.

    Args:
        api_key: Google GenAI API key (defaults to settings).
        model: Gemini model name (defaults to settings).
        language: Human-readable source language used in the prompt.
        client: Pre-built ``genai.Client`` (used in tests).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        language: str | None = None,
        client: genai.Client | None = None,
    ) -> None:
        settings = get_settings()
        self._model = model or settings.gemini_model
        self._language = language or settings.source_language
        self._client = client or genai.Client(api_key=api_key or settings.gemini_api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=16),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        reraise=True,
    )
    async def _call_api(self, audio_bytes: bytes, mime_type: str) -> str | None:
        """Send one generate_content request; map SDK errors to builtins."""
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Part.from_bytes(data=audio_bytes, mime_type=mime_type),
                    TRANSCRIBE_PROMPT.format(language=self._language),
                ],
                config=types.GenerateContentConfig(
                    temperature=0.2,
                    top_p=0.8,
                    top_k=40,
                ),
            )
            return response.text
        except httpx.TimeoutException as exc:
            logger.warning("Gemini request timed out: %s", exc)
            raise TimeoutError(f"Gemini request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning("Gemini connection error: %s", exc)
            raise ConnectionError(f"Failed to connect to Gemini: {exc}") from exc
        except genai_errors.ServerError as exc:
            logger.warning("Gemini server error during transcription: %s", exc)
            raise ConnectionError(f"Gemini server error: {exc}") from exc
        except genai_errors.ClientError as exc:
            if exc.code == 429:
                logger.warning("Gemini rate limit hit: %s", exc)
                raise ConnectionError(f"Gemini rate limit exceeded: {exc}") from exc
            logger.error("Gemini rejected transcription request: %s", exc)
            raise RuntimeError(f"Gemini API error: {exc}") from exc

    async def transcribe(self, base64_audio: str, mime_type: str, **kwargs) -> str:
        """Transcribe base64 audio with Gemini.

        Returns:
            The model's transcript, or an empty string if it returned no text.
        """
        try:
            audio_bytes = base64.b64decode(base64_audio, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid base64 audio: {exc}") from exc

        logger.info(
            "Transcribing %d bytes of %s with %s", len(audio_bytes), mime_type, self._model
        )
        text = await self._call_api(audio_bytes, mime_type)
        return text or ""
