"""
Voice recordings: upload validation, transcription and deletion.
"""

from typing import Optional, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import BadRequestError, NotFoundError, SuflateException
from integrations.assemblyai import MODEL_NAME, AssemblyAIClient
from integrations.storage import LocalAudioStorage
from models.amplification_job import AmplificationJob
from models.base import RecordingStatus
from models.carousel import Carousel
from models.post import Post, count_words
from models.transcription import Transcription
from models.voice_recording import VoiceRecording
from models.workspace import Workspace
from services import credits
import logging

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/mp4": "m4a",
}
MIN_DURATION_SECONDS = 1
MAX_DURATION_SECONDS = 180


def validate_audio(content_type: Optional[str], size: int, duration_seconds: Optional[float] = None) -> str:
    """
    Check an upload and return the file extension to store it under.

    Raises:
        BadRequestError: unsupported type, empty or oversized file, duration out of range
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime not in AUDIO_EXTENSIONS:
        raise BadRequestError("Invalid file type. Allowed: MP3, WAV, WebM, OGG, M4A")

    if size <= 0:
        raise BadRequestError("File is empty")

    if size > settings.MAX_AUDIO_SIZE_BYTES:
        limit_mb = settings.MAX_AUDIO_SIZE_BYTES // (1024 * 1024)
        raise BadRequestError(f"File too large. Maximum size is {limit_mb}MB")

    if duration_seconds is not None and not (MIN_DURATION_SECONDS <= duration_seconds <= MAX_DURATION_SECONDS):
        raise BadRequestError(
            f"Recording must be between {MIN_DURATION_SECONDS} and {MAX_DURATION_SECONDS} seconds"
        )

    return AUDIO_EXTENSIONS[mime]


async def get_user_recording(db: AsyncSession, recording_id, user_id, workspace_id=None) -> VoiceRecording:
    """The user's recording, optionally limited to one workspace."""
    recording = await db.get(VoiceRecording, recording_id)
    if (
        recording is None
        or recording.user_id != user_id
        or (workspace_id is not None and recording.workspace_id != workspace_id)
    ):
        raise NotFoundError("Recording not found", context={"recording_id": str(recording_id)})
    return recording


async def get_transcription_for(db: AsyncSession, recording_id) -> Optional[Transcription]:
    result = await db.execute(select(Transcription).where(Transcription.recording_id == recording_id))
    return result.scalar_one_or_none()


class TranscriptionService:
    """Runs a recording through speech-to-text and stores the result"""

    def __init__(self, db: AsyncSession, transcriber: AssemblyAIClient, storage: LocalAudioStorage):
        self.db = db
        self.transcriber = transcriber
        self.storage = storage

    async def transcribe(self, recording: VoiceRecording, user_id) -> Tuple[Transcription, bool]:
        """
        Transcribe a recording.

        Returns:
            (transcription, already_existed)

        Raises:
            InsufficientCreditsError: workspace cannot pay for the audio length
            SuflateException: transcription failed; the recording is marked failed
        """
        existing = await get_transcription_for(self.db, recording.id)
        if existing is not None:
            return existing, True

        workspace = await self.db.get(Workspace, recording.workspace_id)
        cost = credits.transcription_cost(recording.duration_seconds)
        credits.ensure_credits(workspace, cost)

        recording.status = RecordingStatus.TRANSCRIBING
        await self.db.commit()

        try:
            audio = self.storage.read(recording.storage_path)
            result = await self.transcriber.transcribe_audio(audio)
        except Exception as e:
            context = e.to_dict() if isinstance(e, SuflateException) else {"error": str(e)}
            logger.error(f"Transcription failed for recording {recording.id}: {e}", extra={"error_context": context})
            recording.status = RecordingStatus.FAILED
            await self.db.commit()
            raise

        text = result.text.strip()
        if result.audio_duration:
            # Bill the measured length, the upload duration is client-supplied
            recording.duration_seconds = result.audio_duration
            cost = credits.transcription_cost(result.audio_duration)
            if workspace.credits_remaining < cost:
                recording.status = RecordingStatus.FAILED
                await self.db.commit()
                credits.ensure_credits(workspace, cost)

        transcription = Transcription(
            recording_id=recording.id,
            workspace_id=recording.workspace_id,
            raw_text=text,
            processed_text=text,
            detected_language=result.language_code or "en",
            transcription_model=MODEL_NAME,
            confidence=result.confidence,
            word_count=count_words(text),
            character_count=len(text),
        )
        self.db.add(transcription)
        recording.status = RecordingStatus.TRANSCRIBED

        await credits.charge(
            self.db,
            workspace,
            credits.FEATURE_TRANSCRIPTION,
            cost,
            user_id=user_id,
            description=f"Transcription of recording {recording.id}",
        )
        await self.db.commit()
        logger.info(f"Transcribed recording {recording.id} ({transcription.word_count} words)")
        return transcription, False


async def update_transcription_text(db: AsyncSession, transcription: Transcription, processed_text) -> Transcription:
    if not isinstance(processed_text, str) or not processed_text.strip():
        raise BadRequestError("processed_text is required")
    text = processed_text.strip()
    transcription.processed_text = text
    transcription.word_count = count_words(text)
    transcription.character_count = len(text)
    await db.commit()
    return transcription


async def delete_recording(db: AsyncSession, recording: VoiceRecording) -> str:
    """
    Delete a recording with its transcription and amplification jobs. Posts
    and carousels made from it are kept. The caller commits and removes the file.
    """
    transcription = await get_transcription_for(db, recording.id)
    if transcription is not None:
        for model in (Post, Carousel):
            await db.execute(
                update(model)
                .where(model.transcription_id == transcription.id)
                .values(transcription_id=None)
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            update(Post)
            .where(Post.amplification_job_id.in_(
                select(AmplificationJob.id).where(AmplificationJob.transcription_id == transcription.id)
            ))
            .values(amplification_job_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(AmplificationJob)
            .where(AmplificationJob.transcription_id == transcription.id)
            .execution_options(synchronize_session=False)
        )

    storage_path = recording.storage_path
    await db.delete(recording)
    return storage_path
