from sqlalchemy import Column, String, Integer, DateTime, Float, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base


class Transcription(Base):
    """
    Speech-to-text output for a recording.

    ``raw_text`` is what the transcriber returned; ``processed_text`` is the
    user-edited version that amplification reads first.
    """
    __tablename__ = "transcriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recording_id = Column(Uuid, ForeignKey("voice_recordings.id", ondelete="CASCADE"), nullable=False, unique=True)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)

    raw_text = Column(Text, nullable=False)
    processed_text = Column(Text, nullable=True)
    detected_language = Column(String(20), nullable=True, default="en")
    detected_content_type = Column(String(50), nullable=True)
    transcription_model = Column(String(100), nullable=True)
    confidence = Column(Float, nullable=True)
    word_count = Column(Integer, nullable=True)
    character_count = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    recording = relationship("VoiceRecording", back_populates="transcription")

    @property
    def source_text(self) -> str:
        return (self.processed_text or self.raw_text or "").strip()
