"""Gemini LLM provider implementation."""

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
from src.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class GeminiLLM(BaseLLM):
    """Text generation through the Google GenAI async client."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.3,
        client: genai.Client | None = None,
    ) -> None:
        settings = get_settings()
        self._model = model or settings.gemini_model
        self._temperature = temperature
        self._client = client or genai.Client(api_key=api_key or settings.gemini_api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=16),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        reraise=True,
    )
    async def _call_api(self, prompt: str, temperature: float) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(temperature=temperature),
            )
            return response.text or ""
        except httpx.TimeoutException as exc:
            logger.warning("Gemini request timed out: %s", exc)
            raise TimeoutError(f"Gemini request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning("Gemini connection error: %s", exc)
            raise ConnectionError(f"Failed to connect to Gemini: {exc}") from exc
        except genai_errors.ServerError as exc:
            logger.warning("Gemini server error: %s", exc)
            raise ConnectionError(f"Gemini server error: {exc}") from exc
        except genai_errors.ClientError as exc:
            if exc.code == 429:
                logger.warning("Gemini rate limit hit: %s", exc)
                raise ConnectionError(f"Gemini rate limit exceeded: {exc}") from exc
            logger.error("Gemini rejected request: %s", exc)
            raise RuntimeError(f"Gemini API error: {exc}") from exc

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response."""
        temperature = kwargs.get("temperature")
        return await self._call_api(
            prompt, temperature if temperature is not None else self._temperature
        )
