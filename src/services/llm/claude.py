"""
Claude LLM provider implementation.

Uses ``anthropic.AsyncAnthropic``. Translation requests send the
translator instructions as the system prompt and only the transcript as
the user turn, so transcript text can never be read as instructions.
"""

import asyncio
import logging

from anthropic import (
    APIConnectionError,
    APITimeoutError,
    AsyncAnthropic,
    RateLimitError,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings
from src.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)

TRANSLATOR_SYSTEM = (
    "You are a professional translator. Translate the {source} text the user "
    "sends into clear, fluent {target}. Maintain the original meaning and tone. "
    "Reply with the translation only."
)


class ClaudeLLM(BaseLLM):
    """Claude API provider with a concurrency cap and retry on transient errors.

    Args:
        api_key: Anthropic API key (defaults to settings).
        model: Claude model name (defaults to settings).
        max_tokens: Upper bound on the reply length.
        temperature: Default sampling temperature.
        max_concurrent: Maximum simultaneous in-flight requests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        max_concurrent: int = 5,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.claude_api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._client = AsyncAnthropic(api_key=self._api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=16),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        reraise=True,
    )
    async def _call_api(
        self,
        user_prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send one Messages request and return the first text block.

        SDK exceptions become ``ConnectionError`` / ``TimeoutError`` (retried)
        or ``RuntimeError`` (not retried).
        """
        request: dict = {
            "model": self._model,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system:
            request["system"] = system

        async with self._semaphore:
            try:
                response = await self._client.messages.create(**request)
            except APITimeoutError as exc:
                logger.warning("Claude request timed out: %s", exc)
                raise TimeoutError(f"Claude API request timed out: {exc}") from exc
            except APIConnectionError as exc:
                logger.warning("Claude connection error: %s", exc)
                raise ConnectionError(f"Failed to connect to Claude API: {exc}") from exc
            except RateLimitError as exc:
                logger.warning("Claude rate limit hit: %s", exc)
                raise ConnectionError(f"Claude API rate limit exceeded: {exc}") from exc
            except Exception as exc:
                logger.error("Claude rejected request: %s", exc)
                raise RuntimeError(f"Claude API error: {exc}") from exc

        if not response.content:
            logger.info("Claude returned no content blocks")
            return ""
        return response.content[0].text

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response.

        Accepts ``system``, ``temperature`` and ``max_tokens`` keyword options.
        """
        return await self._call_api(
            user_prompt=prompt,
            system=kwargs.get("system"),
            temperature=kwargs.get("temperature"),
            max_tokens=kwargs.get("max_tokens"),
        )

    async def translate(self, text: str, source: str, target: str, **kwargs) -> str:
        """Translate with the instructions in the system prompt."""
        return await self._call_api(
            user_prompt=text,
            system=TRANSLATOR_SYSTEM.format(source=source, target=target),
            temperature=kwargs.get("temperature", 0.3),
        )
