"""Audio codec bridge.

Converts ``AudioObject`` payloads to base64 for the transcription engine
and back, and derives playback URLs and download filenames.
"""

import base64
import binascii
import logging
import tempfile
import time
from pathlib import Path

from src.core.exceptions import EncodeError
from src.core.models import AudioObject

logger = logging.getLogger(__name__)


class PlaybackURL:
    """A ``file://`` URL backed by a temp file, valid until revoked.

    The caller owns it. Use as a context manager for scoped playback::

        with codec.to_playable_url(audio) as playback:
            player.load(playback.url)
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._revoked = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def url(self) -> str:
        if self._revoked:
            raise ValueError("Playback URL has been revoked")
        return self._path.as_uri()

    @property
    def revoked(self) -> bool:
        return self._revoked

    def revoke(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        if self._revoked:
            return
        self._revoked = True
        self._path.unlink(missing_ok=True)

    def __enter__(self) -> "PlaybackURL":
        return self

    def __exit__(self, *exc_info) -> None:
        self.revoke()


class AudioCodec:
    """Stateless conversions between AudioObjects and transport forms.

    Args:
        fallback_extension: File extension used when the MIME subtype is missing.
    """

    def __init__(self, fallback_extension: str = "webm") -> None:
        self.fallback_extension = fallback_extension

    def encode(self, audio: AudioObject) -> str:
        """Return the payload as standard base64 text.

        Raises:
            EncodeError: If the payload cannot be read as bytes.
        """
        try:
            return base64.b64encode(audio.data).decode("ascii")
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"Failed to encode audio: {exc}") from exc

    def decode(self, encoded: str, mime_type: str) -> AudioObject:
        """Rebuild an AudioObject from base64 text.

        Raises:
            EncodeError: If ``encoded`` is not valid base64.
        """
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise EncodeError(f"Invalid base64 audio payload: {exc}") from exc
        return AudioObject(data=data, mime_type=mime_type)

    def extension_for(self, mime_type: str | None) -> str:
        """Derive a file extension from a MIME subtype (``audio/webm;codecs=opus`` -> ``webm``)."""
        if not mime_type or "/" not in mime_type:
            return self.fallback_extension
        subtype = mime_type.split("/", 1)[1].split(";", 1)[0].strip()
        return subtype or self.fallback_extension

    def to_download_filename(
        self,
        audio: AudioObject,
        prefix: str,
        timestamp_ms: int | None = None,
    ) -> str:
        """Build ``<prefix>-<epoch-millis>.<ext>`` for an audio download."""
        stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
        return f"{prefix}-{stamp}.{self.extension_for(audio.mime_type)}"

    def to_playable_url(self, audio: AudioObject, directory: str | Path | None = None) -> PlaybackURL:
        """Write the payload to a temp file and return a revocable URL to it."""
        suffix = f".{self.extension_for(audio.mime_type)}"
        with tempfile.NamedTemporaryFile(
            prefix="playback-", suffix=suffix, dir=directory, delete=False
        ) as tmp:
            tmp.write(audio.data)
        logger.debug("Created playback file %s (%d bytes)", tmp.name, audio.size)
        return PlaybackURL(Path(tmp.name))
