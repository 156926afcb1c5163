"""Microphone capture and file intake.

Wraps a sounddevice ``InputStream`` that accumulates int16 PCM chunks from
its callback thread, and finalizes them into a single WAV ``AudioObject``.
Uploaded files are accepted as-is after a MIME check.
"""

import io
import logging
import threading
from collections.abc import Callable

import numpy as np
import soundfile as sf

from src.core.config import get_settings
from src.core.exceptions import DeviceUnavailableError, InvalidMediaTypeError
from src.core.models import AudioObject

logger = logging.getLogger(__name__)

StreamFactory = Callable[..., object]


def _open_input_stream(**kwargs):
    """Create a sounddevice input stream.

    Imported lazily: ``import sounddevice`` raises OSError on hosts without
    the PortAudio library, which must surface as a missing device.
    """
    import sounddevice as sd

    return sd.InputStream(**kwargs)


class CaptureHandle:
    """A live microphone capture owned by the workflow until ended or aborted.

    Chunks arrive on the PortAudio callback thread, so the buffer is guarded
    by a lock. ``release()`` is safe to call any number of times.
    """

    def __init__(self, sample_rate: int, channels: int) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self._stream = None
        self._chunks: list[np.ndarray] = []
        self._lock = threading.Lock()
        self._released = False
        self._audio: AudioObject | None = None

    @property
    def released(self) -> bool:
        return self._released

    def _on_audio(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        """sounddevice callback: copy the block, the driver reuses its buffer."""
        if status:
            logger.warning("Capture stream status: %s", status)
        if frames == 0 or self._released:
            return
        with self._lock:
            self._chunks.append(np.array(indata, dtype=np.int16, copy=True))

    def _attach(self, stream) -> None:
        self._stream = stream

    def release(self) -> None:
        """Stop and close the device stream. Always marks the handle released."""
        if self._released:
            return
        stream, self._stream = self._stream, None
        self._released = True
        if stream is None:
            return
        try:
            stream.stop()
        except Exception:
            logger.warning("Failed to stop capture stream cleanly", exc_info=True)
        finally:
            try:
                stream.close()
            except Exception:
                logger.warning("Failed to close capture stream", exc_info=True)

    def _drain(self) -> list[np.ndarray]:
        with self._lock:
            chunks, self._chunks = self._chunks, []
        return chunks


class AudioCaptureAdapter:
    """Stateless service that opens, finalizes, and validates audio sources.

    Args:
        sample_rate: Capture sample rate in Hz (defaults to settings).
        channels: Number of input channels (defaults to settings).
        device: sounddevice input device index, None for the system default.
        mime_type: Container MIME tag for captured audio.
        stream_factory: Callable returning an object with ``start/stop/close``;
            replaced in tests.
    """

    def __init__(
        self,
        sample_rate: int | None = None,
        channels: int | None = None,
        device: int | None = None,
        mime_type: str | None = None,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        settings = get_settings()
        self._sample_rate = sample_rate or settings.capture_sample_rate
        self._channels = channels or settings.capture_channels
        self._device = device if device is not None else settings.capture_device
        self._mime_type = mime_type or settings.capture_mime_type
        self._stream_factory = stream_factory or _open_input_stream

    def begin_capture(self) -> CaptureHandle:
        """Open the microphone and start accumulating audio.

        Raises:
            DeviceUnavailableError: If the device is denied, absent, or
                PortAudio itself is unavailable.
        """
        handle = CaptureHandle(self._sample_rate, self._channels)
        try:
            stream = self._stream_factory(
                samplerate=self._sample_rate,
                channels=self._channels,
                dtype="int16",
                device=self._device,
                callback=handle._on_audio,
            )
            handle._attach(stream)
            stream.start()
        except Exception as exc:
            handle.release()
            logger.warning("Microphone unavailable: %s", exc)
            raise DeviceUnavailableError() from exc

        logger.info(
            "Capture started (rate=%s, channels=%s, device=%s)",
            self._sample_rate,
            self._channels,
            self._device,
        )
        return handle

    def end_capture(self, handle: CaptureHandle) -> AudioObject:
        """Release the device and finalize the buffered chunks.

        Calling this twice on the same handle returns the object built by
        the first call.

        Raises:
            DeviceUnavailableError: If the buffered audio cannot be finalized.
        """
        handle.release()
        if handle._audio is not None:
            return handle._audio

        chunks = handle._drain()
        if not chunks:
            audio = AudioObject(data=b"", mime_type=self._mime_type)
        else:
            try:
                pcm = np.concatenate(chunks)
                buf = io.BytesIO()
                sf.write(buf, pcm, handle.sample_rate, format="WAV", subtype="PCM_16")
            except Exception as exc:
                logger.exception("Failed to finalize captured audio")
                raise DeviceUnavailableError("Recording could not be finalized.") from exc
            audio = AudioObject(data=buf.getvalue(), mime_type=self._mime_type)

        handle._audio = audio
        logger.info("Capture finalized: %d chunks, %d bytes", len(chunks), audio.size)
        return audio

    def abort_capture(self, handle: CaptureHandle) -> None:
        """Release the device and discard anything recorded."""
        handle.release()
        handle._drain()
        logger.info("Capture aborted")

    def accept_file(
        self,
        data: bytes,
        mime_type: str | None,
        filename: str | None = None,
    ) -> AudioObject:
        """Wrap uploaded bytes without re-encoding.

        Raises:
            InvalidMediaTypeError: If the declared MIME type is not ``audio/*``.
        """
        if not mime_type or not mime_type.lower().startswith("audio/"):
            logger.info("Rejected upload %r with type %r", filename, mime_type)
            raise InvalidMediaTypeError(mime_type)
        return AudioObject(data=data, mime_type=mime_type)
