"""
Abstract base class for LLM providers.

All LLM implementations (Gemini, Claude, etc.) must implement this interface,
enabling provider-agnostic translation in the engine layer.
"""

from abc import ABC, abstractmethod

TRANSLATE_PROMPT = (
    "You are a professional translator. Translate the following {source} text "
    "into clear, fluent {target}.\n"
    "Maintain the original meaning and tone.\n\n"
    "{source} Text:\n"
    "{text}"
)


class BaseLLM(ABC):
    """Interface that every LLM provider must implement."""

    @abstractmethod
    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response.

        Args:
            prompt: The user/system prompt to send to the model.
            **kwargs: Provider-specific options (temperature, max_tokens, etc.).

        Returns:
            The model's text response, empty if the model returned nothing.
        """

    async def translate(self, text: str, source: str, target: str, **kwargs) -> str:
        """Translate ``text`` from ``source`` to ``target`` language.

        Args:
            text: Text to translate.
            source: Human-readable source language name (e.g. "Amharic").
            target: Human-readable target language name (e.g. "English").
            **kwargs: Provider-specific options.

        Returns:
            The translated text, empty if the model returned nothing.
        """
        prompt = TRANSLATE_PROMPT.format(source=source, target=target, text=text)
        return await self.generate(prompt, temperature=kwargs.get("temperature", 0.3))
