"""
Local download artifacts for transcripts and audio.

Text exports put the transcript and the optional translation under fixed
section headers; audio exports re-expose the stored AudioObject unmodified.
"""

import time

from src.core.models import AudioObject, ExportArtifact, TranscriptionResult
from src.services.audio.codec import AudioCodec

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def build_text_content(
    result: TranscriptionResult,
    source_language: str = "Amharic",
    target_language: str = "English",
) -> str:
    """Render the transcript and optional translation as plain text."""
    content = f"Original {source_language}:\n{result.text}"
    if result.translated_text:
        content += f"\n\n{target_language} Translation:\n{result.translated_text}"
    return content


def export_text(
    result: TranscriptionResult | None,
    prefix: str,
    source_language: str = "Amharic",
    target_language: str = "English",
    timestamp_ms: int | None = None,
) -> ExportArtifact | None:
    """Build the ``<prefix>-<epoch-millis>.txt`` download, or None without a result."""
    if result is None:
        return None
    stamp = timestamp_ms if timestamp_ms is not None else _epoch_ms()
    content = build_text_content(result, source_language, target_language)
    return ExportArtifact(
        filename=f"{prefix}-{stamp}.txt",
        media_type=TEXT_MEDIA_TYPE,
        content=content.encode("utf-8"),
    )


def export_audio(
    audio: AudioObject | None,
    prefix: str,
    codec: AudioCodec,
    timestamp_ms: int | None = None,
) -> ExportArtifact | None:
    """Build the audio download, or None when there is no audio."""
    if audio is None:
        return None
    return ExportArtifact(
        filename=codec.to_download_filename(audio, prefix, timestamp_ms),
        media_type=audio.mime_type,
        content=audio.data,
    )
