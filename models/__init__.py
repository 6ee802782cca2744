"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative base, shared enums and portable column types
    user: Users and their personal LinkedIn connection
    workspace: Workspaces, memberships and the credit usage ledger
    voice_recording: Uploaded voice notes
    transcription: Speech-to-text output per recording
    amplification_job: LLM amplification runs
    post: Post drafts and published posts
    scheduled_post: Publish queue (one row per post)
    carousel: Carousel slide decks

Relationships:
    - Workspace -> WorkspaceMember <- User (many-to-many with role)
    - VoiceRecording -> Transcription (one-to-one)
    - Transcription -> AmplificationJob -> Post (one-to-many)
    - Post -> ScheduledPost (one-to-one)

Usage:
    from models import Post, ScheduledPost
    from models.base import PostStatus
"""

from models.base import Base
from models.user import User
from models.workspace import Workspace, WorkspaceMember, CreditUsage
from models.voice_recording import VoiceRecording
from models.transcription import Transcription
from models.amplification_job import AmplificationJob
from models.post import Post
from models.scheduled_post import ScheduledPost
from models.carousel import Carousel

__all__ = [
    "Base",
    "User",
    "Workspace",
    "WorkspaceMember",
    "CreditUsage",
    "VoiceRecording",
    "Transcription",
    "AmplificationJob",
    "Post",
    "ScheduledPost",
    "Carousel",
]
