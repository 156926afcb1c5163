"""
Abstract base class for Speech-to-Text providers.

All STT implementations (Gemini, local Whisper, etc.) must implement this
interface, enabling provider-agnostic transcription in the engine layer.
"""

from abc import ABC, abstractmethod


class BaseSTT(ABC):
    """Interface that every STT provider must implement."""

    @abstractmethod
    async def transcribe(self, base64_audio: str, mime_type: str, **kwargs) -> str:
        """Transcribe base64-encoded audio to text.

        Args:
            base64_audio: Standard base64 encoding of the audio payload.
            mime_type: MIME type of the encoded audio (e.g. ``audio/wav``).
            **kwargs: Provider-specific options (language, temperature, etc.).

        Returns:
            The verbatim transcript, possibly empty.
        """
