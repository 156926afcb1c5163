"""
Transcription workflow REST endpoints.

Every mutating endpoint returns the workflow snapshot; workflow failures
appear in its ``error`` / ``error_code`` fields, while disallowed events
come back as 409 through the error handler. All endpoints delegate to
``TranscriptionWorkflow``; there is no business logic here.
"""

import logging

from fastapi import APIRouter, Depends, File, Response, UploadFile

from src.core.models import ExportArtifact, ResultUpdate, WorkflowSnapshot
from src.services import workflow as workflow_service
from src.services.workflow import TranscriptionWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflow", tags=["workflow"])


def get_workflow() -> TranscriptionWorkflow:
    """Dependency returning the process-wide workflow."""
    return workflow_service.get_workflow()


def _download(artifact: ExportArtifact | None) -> Response:
    """Return an attachment response, or 204 when there is nothing to export."""
    if artifact is None:
        return Response(status_code=204)
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


@router.get("", response_model=WorkflowSnapshot)
async def get_snapshot(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Return the current workflow state."""
    return wf.snapshot()


@router.post("/capture/start", response_model=WorkflowSnapshot)
async def start_capture(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Open the microphone and start recording."""
    wf.start_capture()
    return wf.snapshot()


@router.post("/capture/stop", response_model=WorkflowSnapshot)
async def stop_capture(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Stop recording and keep the audio as pending."""
    wf.stop_capture()
    return wf.snapshot()


@router.post("/capture/abort", response_model=WorkflowSnapshot)
async def abort_capture(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Abandon the recording after a device problem."""
    wf.abort_capture()
    return wf.snapshot()


@router.post("/upload", response_model=WorkflowSnapshot)
async def upload_audio(
    file: UploadFile = File(...),
    wf: TranscriptionWorkflow = Depends(get_workflow),
):
    """Accept an audio file as the pending audio."""
    data = await file.read()
    wf.upload_file(data, file.content_type, file.filename)
    return wf.snapshot()


@router.post("/transcribe", response_model=WorkflowSnapshot)
async def transcribe(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Transcribe the pending audio."""
    await wf.transcribe()
    return wf.snapshot()


@router.post("/translate", response_model=WorkflowSnapshot)
async def translate(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Translate the current transcript."""
    await wf.translate()
    return wf.snapshot()


@router.post("/save", response_model=WorkflowSnapshot)
async def save(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Persist the current result for the signed-in user."""
    await wf.save()
    return wf.snapshot()


@router.post("/reset", response_model=WorkflowSnapshot)
async def reset(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Discard everything and return to idle."""
    wf.reset()
    return wf.snapshot()


@router.patch("/result", response_model=WorkflowSnapshot)
async def edit_result(body: ResultUpdate, wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Edit the transcript and/or an existing translation in place."""
    if body.text is not None:
        wf.set_text(body.text)
    if body.translated_text is not None:
        wf.set_translated_text(body.translated_text)
    return wf.snapshot()


@router.get("/export/text")
async def export_text(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Download the transcript (and translation) as a .txt file."""
    return _download(wf.export_text())


@router.get("/export/audio")
async def export_audio(wf: TranscriptionWorkflow = Depends(get_workflow)):
    """Download the original audio."""
    return _download(wf.export_audio())
