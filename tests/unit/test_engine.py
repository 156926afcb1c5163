"""Unit tests for the TranscriptionEngine facade."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from src.core.exceptions import TranscriptionFailedError, TranslationFailedError
from src.services.engine import (
    EMPTY_TRANSCRIPTION,
    EMPTY_TRANSLATION,
    TranscriptionEngine,
    create_engine,
)


class TestTranscribe:
    """Tests for ``transcribe()``."""

    async def test_returns_provider_text(self, engine, mock_stt):
        assert await engine.transcribe("YWJj", "audio/wav") == "ሰላም"
        mock_stt.transcribe.assert_awaited_once_with("YWJj", "audio/wav")

    @pytest.mark.parametrize("empty", ["", "   ", None])
    async def test_empty_result_uses_sentinel(self, engine, mock_stt, empty):
        mock_stt.transcribe.return_value = empty

        assert await engine.transcribe("YWJj", "audio/wav") == EMPTY_TRANSCRIPTION

    async def test_provider_error_wrapped(self, engine, mock_stt):
        mock_stt.transcribe.side_effect = ConnectionError("network down")

        with pytest.raises(TranscriptionFailedError) as exc_info:
            await engine.transcribe("YWJj", "audio/wav")

        assert exc_info.value.code == "TRANSCRIPTION_FAILED"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    async def test_transcription_failure_passes_through(self, engine, mock_stt):
        original = TranscriptionFailedError("Whisper transcription failed: boom")
        mock_stt.transcribe.side_effect = original

        with pytest.raises(TranscriptionFailedError) as exc_info:
            await engine.transcribe("YWJj", "audio/wav")

        assert exc_info.value is original


class TestTranslate:
    """Tests for ``translate()``."""

    async def test_passes_languages(self, engine, mock_llm):
        assert await engine.translate("ሰላም") == "Hello"
        mock_llm.translate.assert_awaited_once_with("ሰላም", source="Amharic", target="English")

    async def test_empty_result_uses_sentinel(self, engine, mock_llm):
        mock_llm.translate.return_value = ""

        assert await engine.translate("ሰላም") == EMPTY_TRANSLATION

    async def test_provider_error_wrapped(self, engine, mock_llm):
        mock_llm.translate.side_effect = RuntimeError("Gemini API error: quota")

        with pytest.raises(TranslationFailedError, match="Failed to translate text."):
            await engine.translate("ሰላም")

    async def test_custom_languages(self, mock_stt, mock_llm):
        engine = TranscriptionEngine(
            stt=mock_stt, llm=mock_llm, source_language="Tigrinya", target_language="French"
        )

        await engine.translate("text")

        mock_llm.translate.assert_awaited_once_with("text", source="Tigrinya", target="French")


class TestCreateEngine:
    """Tests for the settings-driven factory."""

    def test_uses_configured_providers(self, mock_stt, mock_llm):
        settings = SimpleNamespace(
            transcriber_provider="whisper",
            llm_provider="claude",
            source_language="Amharic",
            target_language="English",
        )
        with patch("src.services.engine.create_stt", return_value=mock_stt) as stt_factory:
            with patch("src.services.engine.create_llm", return_value=mock_llm) as llm_factory:
                engine = create_engine(settings)

        stt_factory.assert_called_once_with(provider="whisper")
        llm_factory.assert_called_once_with(provider="claude")
        assert engine.source_language == "Amharic"
        assert engine.target_language == "English"

    def test_unknown_provider(self):
        from src.services.transcription import create_stt

        with pytest.raises(ValueError, match="Unknown STT provider"):
            create_stt("azure")
