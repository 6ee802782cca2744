from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Uuid
from datetime import datetime
import uuid
from models.base import Base, JSONType, AmplificationStatus, enum_column_type


class AmplificationJob(Base):
    """
    Tracks one LLM amplification of a transcription into post variations.
    """
    __tablename__ = "amplification_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    transcription_id = Column(Uuid, ForeignKey("transcriptions.id", ondelete="CASCADE"), nullable=False, index=True)
    recording_id = Column(Uuid, ForeignKey("voice_recordings.id", ondelete="CASCADE"), nullable=True)

    status = Column(enum_column_type(AmplificationStatus), nullable=False, default=AmplificationStatus.PROCESSING)
    variation_count = Column(Integer, nullable=False, default=5)
    completed_variations = Column(Integer, nullable=False, default=0)

    model_used = Column(String(100), nullable=True)
    usage_tokens = Column(JSONType, nullable=True)
    error_message = Column(Text, nullable=True)

    started_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
