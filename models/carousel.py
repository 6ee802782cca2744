from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid
from datetime import datetime
import uuid
from models.base import Base, JSONType, CarouselStatus, CarouselTemplate, enum_column_type


class Carousel(Base):
    """
    Slide deck generated from a transcription.

    ``slide_data`` is a list of ``{slide_number, title, body, key_point}``.
    """
    __tablename__ = "carousels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    transcription_id = Column(Uuid, ForeignKey("transcriptions.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(500), nullable=True)
    slide_data = Column(JSONType, nullable=False, default=list)
    template_type = Column(enum_column_type(CarouselTemplate), nullable=False, default=CarouselTemplate.MINIMAL)
    custom_branding = Column(JSONType, nullable=True)
    status = Column(enum_column_type(CarouselStatus), nullable=False, default=CarouselStatus.DRAFT)
    credits_used = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
