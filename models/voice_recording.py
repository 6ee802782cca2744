from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Float, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, RecordingStatus, enum_column_type


class VoiceRecording(Base):
    """
    Uploaded voice note.

    Lifecycle: uploaded -> transcribing -> transcribed | failed
    """
    __tablename__ = "voice_recordings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    storage_path = Column(String(1024), nullable=False)
    file_size_bytes = Column(BigInteger, nullable=True)
    mime_type = Column(String(100), nullable=True)
    duration_seconds = Column(Float, nullable=True)

    status = Column(enum_column_type(RecordingStatus), nullable=False, default=RecordingStatus.UPLOADED, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    transcription = relationship("Transcription", back_populates="recording", uselist=False, cascade="all, delete")

    __table_args__ = (
        Index("idx_recordings_workspace_user", "workspace_id", "user_id"),
    )
