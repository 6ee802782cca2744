"""
AssemblyAI speech-to-text client.

Flow: upload audio bytes -> submit transcript job -> poll until the job
reports ``completed`` or ``error``.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.config import settings
from core.exceptions import TranscriptionError
from integrations.base import HTTPIntegration
import logging

logger = logging.getLogger(__name__)

MODEL_NAME = "assemblyai"


@dataclass
class TranscriptResult:
    transcript_id: str
    text: str
    language_code: str = "en"
    confidence: Optional[float] = None
    audio_duration: Optional[float] = None
    words: List[Dict[str, Any]] = field(default_factory=list, repr=False)


class AssemblyAIClient(HTTPIntegration):
    """Upload, submit and poll transcription jobs"""

    service_name = "assemblyai"
    error_class = TranscriptionError

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
        **kwargs
    ):
        super().__init__(**kwargs)
        self.api_key = api_key or settings.ASSEMBLYAI_API_KEY
        self.base_url = (base_url or settings.ASSEMBLYAI_BASE_URL).rstrip("/")
        self.poll_interval = poll_interval if poll_interval is not None else settings.ASSEMBLYAI_POLL_INTERVAL_SECONDS
        self.max_polls = max_polls if max_polls is not None else settings.ASSEMBLYAI_MAX_POLLS

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise TranscriptionError("AssemblyAI API key not configured")
        # AssemblyAI expects the raw key, not a bearer token
        return {"Authorization": self.api_key}

    async def upload(self, audio: bytes) -> str:
        response = await self._request(
            "POST",
            f"{self.base_url}/upload",
            content=audio,
            headers={**self._headers(), "Content-Type": "application/octet-stream"},
        )
        upload_url = self._json(response).get("upload_url")
        if not upload_url:
            raise TranscriptionError("AssemblyAI upload returned no URL")
        return upload_url

    async def submit(self, audio_url: str) -> str:
        response = await self._request(
            "POST",
            f"{self.base_url}/transcript",
            json={"audio_url": audio_url, "punctuate": True, "format_text": True},
            headers=self._headers(),
        )
        transcript_id = self._json(response).get("id")
        if not transcript_id:
            raise TranscriptionError("AssemblyAI did not return a transcript id")
        logger.info(f"AssemblyAI transcript submitted: {transcript_id}")
        return transcript_id

    async def get_transcript(self, transcript_id: str) -> Dict[str, Any]:
        response = await self._request(
            "GET",
            f"{self.base_url}/transcript/{transcript_id}",
            headers=self._headers(),
        )
        return self._json(response)

    async def wait_for_completion(self, transcript_id: str) -> TranscriptResult:
        """
        Poll a transcript until it finishes.

        Raises:
            TranscriptionError: job reported ``error`` or did not finish in time
        """
        for attempt in range(self.max_polls):
            data = await self.get_transcript(transcript_id)
            status = data.get("status")

            if status == "completed":
                return TranscriptResult(
                    transcript_id=transcript_id,
                    text=data.get("text") or "",
                    language_code=data.get("language_code") or "en",
                    confidence=data.get("confidence"),
                    audio_duration=data.get("audio_duration"),
                    words=data.get("words") or [],
                )

            if status == "error":
                raise TranscriptionError(
                    data.get("error") or "Transcription failed",
                    context={"transcript_id": transcript_id, "status": status}
                )

            logger.debug(f"AssemblyAI transcript {transcript_id} status={status} (poll {attempt + 1}/{self.max_polls})")
            await asyncio.sleep(self.poll_interval)

        raise TranscriptionError(
            "Transcription timed out",
            context={"transcript_id": transcript_id, "polls": self.max_polls}
        )

    async def transcribe_audio(self, audio: bytes) -> TranscriptResult:
        audio_url = await self.upload(audio)
        transcript_id = await self.submit(audio_url)
        return await self.wait_for_completion(transcript_id)
