"""Integration tests for REST API endpoints with real in-memory SQLite."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.core.exceptions import TranscriptionFailedError
from src.services.storage.models_db import Transcription

WAV_2MB = b"\x00" * (2 * 1024 * 1024)


async def _upload(client, data=b"RIFF....WAVE", mime="audio/wav", name="speech.wav"):
    return await client.post("/api/v1/workflow/upload", files={"file": (name, data, mime)})


async def _sign_in(client):
    resp = await client.post(
        "/api/v1/auth/sign-in", json={"email": "abebe@example.com", "password": "secret"}
    )
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


async def test_health_returns_200(async_client):
    """GET /health returns 200 with status, version, and timestamp."""
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert "timestamp" in body


async def test_cors_rejects_unknown_origin(async_client):
    """Origins not in the allow-list receive no CORS header."""
    resp = await async_client.options(
        "/health",
        headers={
            "Origin": "http://evil.example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert "access-control-allow-origin" not in resp.headers


# ---------------------------------------------------------------------------
# Full workflow
# ---------------------------------------------------------------------------


async def test_upload_transcribe_translate_unauthenticated_save(async_client):
    """2 MB upload → transcribe → translate → save while signed out."""
    resp = await _upload(async_client, data=WAV_2MB)
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "captured"
    assert body["pending_audio_size"] == 2 * 1024 * 1024

    resp = await async_client.post("/api/v1/workflow/transcribe")
    body = resp.json()
    assert body["state"] == "completed"
    assert body["result"]["text"] == "ሰላም"
    assert body["pending_audio_size"] is None

    resp = await async_client.post("/api/v1/workflow/translate")
    assert resp.json()["result"]["translated_text"] == "Hello"

    resp = await async_client.post("/api/v1/workflow/save")
    assert resp.status_code == 200
    body = resp.json()
    assert body["error_code"] == "UNAUTHENTICATED"
    assert body["error"] == "User must be logged in to save data."
    assert body["state"] == "completed"
    assert body["save_succeeded"] is False


async def test_signed_in_save_persists_row(async_client, db_engine):
    """A signed-in save writes the current (edited) texts to SQLite."""
    await _sign_in(async_client)
    await _upload(async_client)
    await async_client.post("/api/v1/workflow/transcribe")
    await async_client.post("/api/v1/workflow/translate")
    await async_client.patch("/api/v1/workflow/result", json={"translated_text": "Hello there"})

    resp = await async_client.post("/api/v1/workflow/save")
    body = resp.json()
    assert body["save_succeeded"] is True
    assert body["error"] is None

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        result = await session.execute(
            select(Transcription).where(Transcription.user_id == "user-abebe")
        )
        rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].source_text == "ሰላም"
    assert rows[0].translated_text == "Hello there"


async def test_transcription_failure_then_retry(async_client, mock_engine):
    mock_engine.transcribe.side_effect = [TranscriptionFailedError(), "ሰላም"]
    await _upload(async_client)

    resp = await async_client.post("/api/v1/workflow/transcribe")
    body = resp.json()
    assert body["state"] == "failed"
    assert body["error_code"] == "TRANSCRIPTION_FAILED"

    resp = await async_client.post("/api/v1/workflow/transcribe")
    assert resp.json()["state"] == "completed"


async def test_reset_returns_to_idle(async_client):
    await _upload(async_client)
    await async_client.post("/api/v1/workflow/transcribe")

    resp = await async_client.post("/api/v1/workflow/reset")
    body = resp.json()
    assert body["state"] == "idle"
    assert body["result"] is None
    assert body["error"] is None


# ---------------------------------------------------------------------------
# Capture
# ---------------------------------------------------------------------------


async def test_capture_start_stop(async_client, fake_stream_factory):
    resp = await async_client.post("/api/v1/workflow/capture/start")
    assert resp.json()["state"] == "capturing"

    resp = await async_client.post("/api/v1/workflow/capture/stop")
    body = resp.json()
    assert body["state"] == "captured"
    assert body["pending_audio_mime_type"] == "audio/wav"
    assert fake_stream_factory.streams[0].closed is True


async def test_capture_abort(async_client):
    await async_client.post("/api/v1/workflow/capture/start")

    resp = await async_client.post("/api/v1/workflow/capture/abort")
    body = resp.json()
    assert body["state"] == "idle"
    assert body["error_code"] == "DEVICE_UNAVAILABLE"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


async def test_non_audio_upload(async_client):
    resp = await _upload(async_client, data=b"%PDF", mime="application/pdf", name="doc.pdf")
    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "idle"
    assert body["error_code"] == "INVALID_MEDIA_TYPE"


async def test_invalid_transition_is_409(async_client):
    resp = await async_client.post("/api/v1/workflow/transcribe")
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "INVALID_TRANSITION"
    assert "timestamp" in body


async def test_upload_requires_file(async_client):
    resp = await async_client.post("/api/v1/workflow/upload")
    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["detail"] == "body.file: Field required"
    assert "timestamp" in body


async def test_validation_detail_lists_each_field(async_client):
    resp = await async_client.post("/api/v1/auth/sign-in", json={})

    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert "body.email: Field required" in detail
    assert "body.password: Field required" in detail


def test_describe_validation_errors_without_location():
    from src.api.middleware.error_handler import describe_validation_errors

    assert describe_validation_errors([{"loc": (), "msg": "bad"}]) == "bad"
    assert describe_validation_errors([]) == "Invalid request"


# ---------------------------------------------------------------------------
# Editing & export
# ---------------------------------------------------------------------------


async def test_edit_translation_before_translate_is_ignored(async_client):
    await _upload(async_client)
    await async_client.post("/api/v1/workflow/transcribe")

    resp = await async_client.patch(
        "/api/v1/workflow/result", json={"text": "አዲስ", "translated_text": "New"}
    )
    result = resp.json()["result"]
    assert result["text"] == "አዲስ"
    assert result["translated_text"] is None


async def test_export_text(async_client):
    await _upload(async_client)
    await async_client.post("/api/v1/workflow/transcribe")
    await async_client.post("/api/v1/workflow/translate")

    resp = await async_client.get("/api/v1/workflow/export/text")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    disposition = resp.headers["content-disposition"]
    assert 'filename="amharic-transcription-' in disposition
    assert resp.content.decode("utf-8") == (
        "Original Amharic:\nሰላም\n\nEnglish Translation:\nHello"
    )


async def test_export_audio(async_client):
    await _upload(async_client, data=b"ID3audio", mime="audio/mpeg", name="clip.mp3")

    resp = await async_client.get("/api/v1/workflow/export/audio")
    assert resp.status_code == 200
    assert resp.content == b"ID3audio"
    assert resp.headers["content-type"] == "audio/mpeg"
    assert resp.headers["content-disposition"].endswith('.mpeg"')


async def test_export_without_content_is_204(async_client):
    assert (await async_client.get("/api/v1/workflow/export/text")).status_code == 204
    assert (await async_client.get("/api/v1/workflow/export/audio")).status_code == 204


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


async def test_session_lifecycle(async_client):
    resp = await async_client.get("/api/v1/auth/session")
    assert resp.json() == {"authenticated": False, "user_id": None, "email": None}

    body = await _sign_in(async_client)
    assert body["authenticated"] is True
    assert body["user_id"] == "user-abebe"

    resp = await async_client.post("/api/v1/auth/sign-out")
    assert resp.json()["authenticated"] is False


async def test_sign_in_bad_password(async_client):
    resp = await async_client.post(
        "/api/v1/auth/sign-in", json={"email": "abebe@example.com", "password": "nope"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "AUTH_ERROR"
    assert resp.json()["detail"] == "Invalid login credentials"


async def test_sign_up_confirmation_message(async_client, identity_provider):
    identity_provider.confirm_sign_ups = True

    resp = await async_client.post(
        "/api/v1/auth/sign-up", json={"email": "new@example.com", "password": "pw"}
    )
    body = resp.json()
    assert resp.status_code == 200
    assert body["confirmation_required"] is True
    assert body["message"] == "Check your email for the confirmation link!"
    assert "session" not in body
