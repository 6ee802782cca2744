"""
Voice recording endpoints: upload, list, transcribe, delete, and
transcription edits
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    CurrentWorkspace,
    get_current_user,
    get_current_workspace,
    get_db,
    get_storage,
    get_transcriber,
)
from core.config import settings
from core.exceptions import ForbiddenError, IntegrationError, NotFoundError, StorageError
from core.permissions import has_permission
from integrations.assemblyai import AssemblyAIClient
from integrations.storage import LocalAudioStorage
from models.base import RecordingStatus
from models.transcription import Transcription
from models.user import User
from models.voice_recording import VoiceRecording
from schemas.content import (
    RecordingResponse,
    TranscribeRequest,
    TranscriptionResponse,
    TranscriptionUpdateRequest,
)
from services.voice import (
    TranscriptionService,
    delete_recording,
    get_transcription_for,
    get_user_recording,
    update_transcription_text,
    validate_audio,
)
from services.workspaces import require_role
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Voice"])


@router.post("/voice/upload", status_code=201)
async def upload_recording(
    request: Request,
    audio: UploadFile = File(...),
    duration: Optional[float] = Form(None),
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    storage: LocalAudioStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_db)
):
    """Store an uploaded voice note for later transcription."""
    request_id = getattr(request.state, "request_id", "-")

    if not has_permission(current.role, "create"):
        raise ForbiddenError("Insufficient permissions")

    # One byte past the limit is enough to reject an oversized upload
    data = await audio.read(settings.MAX_AUDIO_SIZE_BYTES + 1)
    extension = validate_audio(audio.content_type, len(data), duration)

    path = storage.save(storage.build_path(current.id, user.id, extension), data)
    recording = VoiceRecording(
        workspace_id=current.id,
        user_id=user.id,
        storage_path=path,
        file_size_bytes=len(data),
        mime_type=(audio.content_type or "").split(";")[0].strip().lower(),
        duration_seconds=duration,
        status=RecordingStatus.UPLOADED,
    )
    db.add(recording)
    await db.commit()

    logger.info(f"[{request_id}] Uploaded recording {recording.id} ({len(data)} bytes)")
    return {"recording": RecordingResponse.model_validate(recording)}


@router.get("/voice", response_model=List[RecordingResponse])
async def list_recordings(
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(VoiceRecording)
        .where(VoiceRecording.workspace_id == current.id, VoiceRecording.user_id == user.id)
        .order_by(VoiceRecording.created_at.desc())
    )
    return result.scalars().all()


@router.get("/voice/{recording_id}")
async def get_recording(
    recording_id: UUID,
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    recording = await get_user_recording(db, recording_id, user.id, workspace_id=current.id)
    transcription = await get_transcription_for(db, recording.id)
    return {
        "recording": RecordingResponse.model_validate(recording),
        "transcription": TranscriptionResponse.model_validate(transcription) if transcription else None,
    }


@router.delete("/voice/{recording_id}")
async def remove_recording(
    request: Request,
    recording_id: UUID,
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    storage: LocalAudioStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_db)
):
    """Delete a recording, its file and its transcription. Generated posts are kept."""
    request_id = getattr(request.state, "request_id", "-")
    recording = await get_user_recording(db, recording_id, user.id, workspace_id=current.id)

    storage_path = await delete_recording(db, recording)
    await db.commit()

    try:
        storage.delete(storage_path)
    except StorageError as e:
        logger.warning(f"[{request_id}] Recording {recording_id} deleted but file cleanup failed: {e.message}")

    logger.info(f"[{request_id}] Deleted recording {recording_id}")
    return {"success": True}


@router.post("/voice/transcribe")
async def transcribe_recording(
    request: Request,
    body: TranscribeRequest,
    user: User = Depends(get_current_user),
    transcriber: AssemblyAIClient = Depends(get_transcriber),
    storage: LocalAudioStorage = Depends(get_storage),
    db: AsyncSession = Depends(get_db)
):
    """
    Transcribe a recording. Already transcribed recordings return the
    existing transcription without charging again.
    """
    request_id = getattr(request.state, "request_id", "-")
    recording = await get_user_recording(db, body.recording_id, user.id)
    await require_role(db, recording.workspace_id, user.id, "create")

    service = TranscriptionService(db, transcriber, storage)
    try:
        transcription, existed = await service.transcribe(recording, user.id)
    except (IntegrationError, StorageError) as e:
        logger.error(f"[{request_id}] Transcription failed for recording {recording.id}: {e.message}")
        return JSONResponse(status_code=500, content={"error": f"Transcription failed: {e.message}"})

    return {
        "transcription": TranscriptionResponse.model_validate(transcription),
        "already_transcribed": existed,
    }


@router.patch("/transcriptions/{transcription_id}", response_model=TranscriptionResponse)
async def edit_transcription(
    transcription_id: UUID,
    body: TranscriptionUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    transcription = await db.get(Transcription, transcription_id)
    if transcription is None:
        raise NotFoundError("Transcription not found")
    await require_role(db, transcription.workspace_id, user.id, "edit")

    return await update_transcription_text(db, transcription, body.processed_text)
