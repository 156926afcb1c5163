"""
Audio module - Microphone capture, file intake, and base64 codec.
"""

from .capture import AudioCaptureAdapter, CaptureHandle
from .codec import AudioCodec, PlaybackURL

__all__ = ["AudioCaptureAdapter", "AudioCodec", "CaptureHandle", "PlaybackURL"]
