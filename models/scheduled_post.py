from sqlalchemy import Column, String, Integer, DateTime, Text, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, NotificationMethod, enum_column_type


class ScheduledPost(Base):
    """
    Publish-queue entry for a post.

    Exactly one row per post. The publisher picks rows with
    ``scheduled_for <= now``, ``posted = false`` and ``retry_count`` below
    the ceiling; each failed attempt increments ``retry_count``.
    """
    __tablename__ = "scheduled_posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id = Column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, unique=True)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    scheduled_for = Column(DateTime, nullable=False)
    notification_method = Column(enum_column_type(NotificationMethod), nullable=False, default=NotificationMethod.EMAIL)
    is_company_page = Column(Boolean, nullable=False, default=False)

    # Notification tracking
    notification_sent = Column(Boolean, nullable=False, default=False)
    notification_sent_at = Column(DateTime, nullable=True)

    # Posting outcome
    posted = Column(Boolean, nullable=False, default=False)
    posted_at = Column(DateTime, nullable=True)
    linkedin_post_id = Column(String(255), nullable=True)
    post_url = Column(String(2048), nullable=True)

    # Failure tracking
    error_message = Column(Text, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    post = relationship("Post", back_populates="schedule")
    user = relationship("User")
    workspace = relationship("Workspace")

    __table_args__ = (
        Index("idx_scheduled_posts_due", "posted", "retry_count", "scheduled_for"),
    )
