from sqlalchemy import JSON, Enum
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (test runs use SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def enum_column_type(enum_cls) -> Enum:
    """Enum column storing the lowercase member values rather than names."""
    return Enum(
        enum_cls,
        name=enum_cls.__name__.lower(),
        values_callable=lambda members: [m.value for m in members],
    )


# ============================================================================
# ENUMS
# ============================================================================

class WorkspacePlan(str, enum.Enum):
    STARTER = "starter"
    CREATOR = "creator"
    AGENCY = "agency"
    ENTERPRISE = "enterprise"


class WorkspaceRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class RecordingStatus(str, enum.Enum):
    UPLOADED = "uploaded"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    FAILED = "failed"


class AmplificationStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    DELETED = "deleted"


class VariationType(str, enum.Enum):
    """Post variation styles, in display order"""
    PROFESSIONAL = "professional"
    PERSONAL = "personal"
    ACTIONABLE = "actionable"
    DISCUSSION = "discussion"
    BOLD = "bold"


class SourceType(str, enum.Enum):
    VOICE = "voice"
    REPURPOSE_BLOG = "repurpose_blog"
    REPURPOSE_TWEET = "repurpose_tweet"
    REPURPOSE_YOUTUBE = "repurpose_youtube"
    REPURPOSE_PDF = "repurpose_pdf"
    MANUAL = "manual"


class NotificationMethod(str, enum.Enum):
    EMAIL = "email"
    PUSH = "push"
    BOTH = "both"
    NONE = "none"


class CarouselTemplate(str, enum.Enum):
    MINIMAL = "minimal"
    BOLD = "bold"
    PROFESSIONAL = "professional"
    CREATIVE = "creative"
    STORY = "story"


class CarouselStatus(str, enum.Enum):
    DRAFT = "draft"
    READY = "ready"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


VARIATION_ORDER = [v.value for v in VariationType]
