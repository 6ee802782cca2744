from sqlalchemy import Column, String, DateTime, Text, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, JSONType


def default_notification_preferences():
    return {"email": True, "push": False}


class User(Base):
    """
    Application user.

    Identity is established upstream; this row stores the profile data the
    backend needs, including the personal LinkedIn connection used for
    direct posting.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=True)

    # Personal LinkedIn connection
    linkedin_access_token = Column(Text, nullable=True)
    linkedin_profile_id = Column(String(100), nullable=True)
    linkedin_token_expires_at = Column(DateTime, nullable=True)

    notification_preferences = Column(JSONType, nullable=True, default=default_notification_preferences)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = relationship("WorkspaceMember", back_populates="user")

    @property
    def has_linkedin_connection(self) -> bool:
        return bool(self.linkedin_access_token and self.linkedin_profile_id)
