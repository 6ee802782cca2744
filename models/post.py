from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, JSONType, PostStatus, SourceType, VariationType, enum_column_type


def count_words(text: str) -> int:
    return len((text or "").split())


class Post(Base):
    """
    A LinkedIn post draft.

    Posts come from amplification (``source_type=voice``) or are written
    manually. Status moves draft -> scheduled -> published; ``deleted`` is a
    soft delete.
    """
    __tablename__ = "posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    transcription_id = Column(Uuid, ForeignKey("transcriptions.id", ondelete="SET NULL"), nullable=True, index=True)
    amplification_job_id = Column(Uuid, ForeignKey("amplification_jobs.id", ondelete="SET NULL"), nullable=True)

    source_type = Column(enum_column_type(SourceType), nullable=False, default=SourceType.MANUAL)
    variation_type = Column(enum_column_type(VariationType), nullable=False, default=VariationType.PROFESSIONAL)

    content = Column(Text, nullable=False)
    title = Column(String(500), nullable=True)
    tags = Column(JSONType, nullable=True, default=list)
    status = Column(enum_column_type(PostStatus), nullable=False, default=PostStatus.DRAFT, index=True)

    word_count = Column(Integer, nullable=False, default=0)
    character_count = Column(Integer, nullable=False, default=0)

    scheduled_at = Column(DateTime, nullable=True)
    published_at = Column(DateTime, nullable=True)
    linkedin_post_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    transcription = relationship("Transcription")
    schedule = relationship("ScheduledPost", back_populates="post", uselist=False, cascade="all, delete")

    __table_args__ = (
        Index("idx_posts_workspace_status", "workspace_id", "status"),
        Index("idx_posts_user_created", "user_id", "created_at"),
    )

    def set_content(self, content: str):
        """Set content and recompute the derived counts."""
        self.content = content
        self.word_count = count_words(content)
        self.character_count = len(content)
