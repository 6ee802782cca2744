"""
Pydantic schemas for recordings, transcriptions, amplification and carousels
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID
from models.base import (
    AmplificationStatus,
    CarouselStatus,
    CarouselTemplate,
    RecordingStatus,
    VariationType,
)


class RecordingResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID
    storage_path: str
    file_size_bytes: Optional[int] = None
    mime_type: Optional[str] = None
    duration_seconds: Optional[float] = None
    status: RecordingStatus
    created_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True


class TranscriptionResponse(BaseModel):
    id: UUID
    recording_id: UUID
    workspace_id: UUID
    raw_text: str
    processed_text: Optional[str] = None
    detected_language: Optional[str] = None
    transcription_model: Optional[str] = None
    confidence: Optional[float] = None
    word_count: Optional[int] = None
    character_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TranscribeRequest(BaseModel):
    recording_id: UUID


class TranscriptionUpdateRequest(BaseModel):
    processed_text: Optional[str] = None


class AmplifyRequest(BaseModel):
    transcription_id: UUID
    variation_type: Optional[VariationType] = None
    replace_existing: bool = True


class AmplificationJobResponse(BaseModel):
    id: UUID
    transcription_id: UUID
    status: AmplificationStatus
    variation_count: int
    completed_variations: int
    model_used: Optional[str] = None
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        use_enum_values = True


# ============================================================================
# Carousels
# ============================================================================

class Slide(BaseModel):
    slide_number: int = 0
    title: str = ""
    body: str = ""
    key_point: Optional[str] = None


class CarouselRequest(BaseModel):
    transcription_id: UUID
    template_type: CarouselTemplate = CarouselTemplate.MINIMAL
    slide_count: Optional[int] = Field(None, description="Clamped to 5-10, default 7")


class CarouselUpdateRequest(BaseModel):
    title: Optional[str] = None
    slide_data: Optional[List[Slide]] = None
    template_type: Optional[CarouselTemplate] = None
    custom_branding: Optional[Dict[str, Any]] = None
    status: Optional[CarouselStatus] = None

    @validator("slide_data")
    def renumber_slides(cls, v):
        if v is None:
            return v
        for index, slide in enumerate(v):
            slide.slide_number = index + 1
        return v


class CarouselResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID
    transcription_id: Optional[UUID] = None
    title: Optional[str] = None
    slide_data: List[Slide] = Field(default_factory=list)
    template_type: CarouselTemplate
    custom_branding: Optional[Dict[str, Any]] = None
    status: CarouselStatus
    credits_used: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True
