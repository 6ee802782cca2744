"""
Pydantic schemas shared across API routes
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime, timezone


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PaginationMetadata(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool


# ============================================================================
# Health Check Schemas
# ============================================================================

class PublishQueueInfo(BaseModel):
    """Publish queue counters for the health check"""
    due: int = 0
    exhausted: int = 0
    scheduled: int = 0


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    publish_queue: Optional[PublishQueueInfo] = None
    integrations: List[str] = Field(default_factory=list, description="Configured third-party integrations")
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"
        queue = values.get("publish_queue")
        if queue is not None and queue.exhausted > 0:
            return "degraded"
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "publish_queue": {"due": 0, "exhausted": 1, "scheduled": 12},
                "integrations": ["openrouter", "assemblyai", "linkedin", "resend"],
            }
        }
