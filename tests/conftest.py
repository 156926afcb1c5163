"""Shared pytest fixtures for the Amharic Voice test suite.

Provides mock engine/LLM/STT providers, a fake microphone stream, audio
payloads, an in-memory database, and a fully wired workflow.
"""

import io
import math
import struct
from unittest.mock import AsyncMock

import numpy as np
import pytest

from src.core.models import AuthSession

# ---------------------------------------------------------------------------
# Provider Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm():
    """Create a mock LLM provider for unit testing.

    Returns:
        AsyncMock: A mock implementing the BaseLLM interface with a
        default translation.
    """
    from src.services.llm.base import BaseLLM

    llm = AsyncMock(spec=BaseLLM)
    llm.translate.return_value = "Hello"
    llm.generate.return_value = "Hello"
    return llm


@pytest.fixture
def mock_stt():
    """Create a mock STT provider returning a short Amharic greeting."""
    from src.services.transcription.base import BaseSTT

    stt = AsyncMock(spec=BaseSTT)
    stt.transcribe.return_value = "ሰላም"
    return stt


@pytest.fixture
def engine(mock_stt, mock_llm):
    """A real TranscriptionEngine over mocked providers."""
    from src.services.engine import TranscriptionEngine

    return TranscriptionEngine(stt=mock_stt, llm=mock_llm)


@pytest.fixture
def mock_engine():
    """An AsyncMock standing in for TranscriptionEngine."""
    from src.services.engine import TranscriptionEngine

    engine = AsyncMock(spec=TranscriptionEngine)
    engine.source_language = "Amharic"
    engine.target_language = "English"
    engine.transcribe.return_value = "ሰላም"
    engine.translate.return_value = "Hello"
    return engine


@pytest.fixture
def mock_store():
    """An AsyncMock standing in for a persistence store."""
    from src.services.storage.store import BasePersistenceStore

    return AsyncMock(spec=BasePersistenceStore)


@pytest.fixture
def auth_session():
    """A signed-in identity."""
    return AuthSession(access_token="token-abc", refresh_token="refresh-abc", user_id="user-1")


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


class FakeInputStream:
    """Stand-in for ``sounddevice.InputStream`` that records lifecycle calls."""

    def __init__(self, callback=None, **kwargs):
        self.callback = callback
        self.kwargs = kwargs
        self.started = False
        self.stopped = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True

    def feed(self, samples: np.ndarray) -> None:
        """Deliver one block to the callback as PortAudio would."""
        block = samples.reshape(-1, 1).astype(np.int16)
        self.callback(block, len(block), None, None)


@pytest.fixture
def fake_stream_factory():
    """Factory recording every FakeInputStream it creates in ``.streams``."""
    streams: list[FakeInputStream] = []

    def factory(**kwargs):
        stream = FakeInputStream(**kwargs)
        streams.append(stream)
        return stream

    factory.streams = streams
    return factory


@pytest.fixture
def capture_adapter(fake_stream_factory):
    """AudioCaptureAdapter wired to the fake microphone."""
    from src.services.audio.capture import AudioCaptureAdapter

    return AudioCaptureAdapter(
        sample_rate=16000,
        channels=1,
        mime_type="audio/wav",
        stream_factory=fake_stream_factory,
    )


@pytest.fixture
def sample_pcm_bytes():
    """Generate 1 second of 440Hz sine-wave PCM audio (16kHz, 16-bit, mono).

    Returns:
        bytes: Raw PCM audio data.
    """
    sample_rate = 16000
    duration = 1.0
    frequency = 440.0
    amplitude = 16000  # ~50% of max int16

    samples = []
    for i in range(int(sample_rate * duration)):
        value = int(amplitude * math.sin(2 * math.pi * frequency * i / sample_rate))
        samples.append(struct.pack("<h", value))
    return b"".join(samples)


@pytest.fixture
def sample_wav_bytes(sample_pcm_bytes):
    """The sine wave wrapped in a WAV container."""
    import wave

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(16000)
        wf.writeframes(sample_pcm_bytes)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Workflow Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session_holder():
    """Mutable holder whose ``get`` is used as the workflow session provider."""

    class Holder:
        session: AuthSession | None = None

        async def get(self) -> AuthSession | None:
            return self.session

    return Holder()


@pytest.fixture
def workflow(mock_engine, mock_store, session_holder, capture_adapter):
    """A TranscriptionWorkflow with mocked engine and store and a fake microphone."""
    from src.services.workflow import TranscriptionWorkflow

    return TranscriptionWorkflow(
        engine=mock_engine,
        store=mock_store,
        session_provider=session_holder.get,
        capture=capture_adapter,
    )


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from src.services.storage.database import Base, init_db

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    await init_db(engine)
    assert "transcriptions" in Base.metadata.tables
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """Return a TranscriptionRepository bound to the test session."""
    from src.services.storage.repository import TranscriptionRepository

    return TranscriptionRepository(db_session)
