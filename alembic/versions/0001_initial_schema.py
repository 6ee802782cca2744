"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-01-15 10:00:00
"""
from alembic import op
import sqlalchemy as sa

from models.base import (
    JSONType,
    AmplificationStatus,
    CarouselStatus,
    CarouselTemplate,
    NotificationMethod,
    PostStatus,
    RecordingStatus,
    SourceType,
    VariationType,
    WorkspacePlan,
    WorkspaceRole,
    enum_column_type,
)

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = (
    WorkspacePlan,
    WorkspaceRole,
    RecordingStatus,
    AmplificationStatus,
    PostStatus,
    VariationType,
    SourceType,
    NotificationMethod,
    CarouselTemplate,
    CarouselStatus,
)


def timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("linkedin_access_token", sa.Text(), nullable=True),
        sa.Column("linkedin_profile_id", sa.String(100), nullable=True),
        sa.Column("linkedin_token_expires_at", sa.DateTime(), nullable=True),
        sa.Column("notification_preferences", JSONType, nullable=True),
        *timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "workspaces",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("owner_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("plan", enum_column_type(WorkspacePlan), nullable=False),
        sa.Column("credits_total", sa.Integer(), nullable=False),
        sa.Column("credits_remaining", sa.Integer(), nullable=False),
        sa.Column("branding", JSONType, nullable=True),
        sa.Column("logo_url", sa.String(2048), nullable=True),
        sa.Column("posting_schedule", JSONType, nullable=True),
        sa.Column("linkedin_access_token", sa.Text(), nullable=True),
        sa.Column("linkedin_company_page_id", sa.String(100), nullable=True),
        *timestamps(),
    )
    op.create_index("ix_workspaces_owner_id", "workspaces", ["owner_id"])

    op.create_table(
        "workspace_members",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", enum_column_type(WorkspaceRole), nullable=False),
        *timestamps(),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"])
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"])

    op.create_table(
        "credit_usage",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("feature_type", sa.String(50), nullable=False),
        sa.Column("credits_used", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_credit_usage_workspace_created", "credit_usage", ["workspace_id", "created_at"])

    op.create_table(
        "voice_recordings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("storage_path", sa.String(1024), nullable=False),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("duration_seconds", sa.Float(), nullable=True),
        sa.Column("status", enum_column_type(RecordingStatus), nullable=False),
        *timestamps(),
    )
    op.create_index("ix_voice_recordings_status", "voice_recordings", ["status"])
    op.create_index("ix_voice_recordings_created_at", "voice_recordings", ["created_at"])
    op.create_index("idx_recordings_workspace_user", "voice_recordings", ["workspace_id", "user_id"])

    op.create_table(
        "transcriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "recording_id",
            sa.Uuid(),
            sa.ForeignKey("voice_recordings.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("raw_text", sa.Text(), nullable=False),
        sa.Column("processed_text", sa.Text(), nullable=True),
        sa.Column("detected_language", sa.String(20), nullable=True),
        sa.Column("detected_content_type", sa.String(50), nullable=True),
        sa.Column("transcription_model", sa.String(100), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
        sa.Column("character_count", sa.Integer(), nullable=True),
        *timestamps(),
    )
    op.create_index("ix_transcriptions_workspace_id", "transcriptions", ["workspace_id"])

    op.create_table(
        "amplification_jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "transcription_id",
            sa.Uuid(),
            sa.ForeignKey("transcriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("recording_id", sa.Uuid(), sa.ForeignKey("voice_recordings.id", ondelete="CASCADE"), nullable=True),
        sa.Column("status", enum_column_type(AmplificationStatus), nullable=False),
        sa.Column("variation_count", sa.Integer(), nullable=False),
        sa.Column("completed_variations", sa.Integer(), nullable=False),
        sa.Column("model_used", sa.String(100), nullable=True),
        sa.Column("usage_tokens", JSONType, nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_amplification_jobs_workspace_id", "amplification_jobs", ["workspace_id"])
    op.create_index("ix_amplification_jobs_transcription_id", "amplification_jobs", ["transcription_id"])

    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "transcription_id",
            sa.Uuid(),
            sa.ForeignKey("transcriptions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "amplification_job_id",
            sa.Uuid(),
            sa.ForeignKey("amplification_jobs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("source_type", enum_column_type(SourceType), nullable=False),
        sa.Column("variation_type", enum_column_type(VariationType), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("tags", JSONType, nullable=True),
        sa.Column("status", enum_column_type(PostStatus), nullable=False),
        sa.Column("word_count", sa.Integer(), nullable=False),
        sa.Column("character_count", sa.Integer(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("linkedin_post_id", sa.String(255), nullable=True),
        *timestamps(),
    )
    op.create_index("ix_posts_user_id", "posts", ["user_id"])
    op.create_index("ix_posts_transcription_id", "posts", ["transcription_id"])
    op.create_index("ix_posts_status", "posts", ["status"])
    op.create_index("ix_posts_created_at", "posts", ["created_at"])
    op.create_index("idx_posts_workspace_status", "posts", ["workspace_id", "status"])
    op.create_index("idx_posts_user_created", "posts", ["user_id", "created_at"])

    op.create_table(
        "scheduled_posts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "post_id",
            sa.Uuid(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(), nullable=False),
        sa.Column("notification_method", enum_column_type(NotificationMethod), nullable=False),
        sa.Column("is_company_page", sa.Boolean(), nullable=False),
        sa.Column("notification_sent", sa.Boolean(), nullable=False),
        sa.Column("notification_sent_at", sa.DateTime(), nullable=True),
        sa.Column("posted", sa.Boolean(), nullable=False),
        sa.Column("posted_at", sa.DateTime(), nullable=True),
        sa.Column("linkedin_post_id", sa.String(255), nullable=True),
        sa.Column("post_url", sa.String(2048), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        *timestamps(),
    )
    op.create_index("ix_scheduled_posts_workspace_id", "scheduled_posts", ["workspace_id"])
    op.create_index("idx_scheduled_posts_due", "scheduled_posts", ["posted", "retry_count", "scheduled_for"])

    op.create_table(
        "carousels",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("workspace_id", sa.Uuid(), sa.ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "transcription_id",
            sa.Uuid(),
            sa.ForeignKey("transcriptions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("slide_data", JSONType, nullable=False),
        sa.Column("template_type", enum_column_type(CarouselTemplate), nullable=False),
        sa.Column("custom_branding", JSONType, nullable=True),
        sa.Column("status", enum_column_type(CarouselStatus), nullable=False),
        sa.Column("credits_used", sa.Integer(), nullable=False),
        *timestamps(),
    )
    op.create_index("ix_carousels_workspace_id", "carousels", ["workspace_id"])
    op.create_index("ix_carousels_user_id", "carousels", ["user_id"])
    op.create_index("ix_carousels_created_at", "carousels", ["created_at"])


def downgrade():
    for table in (
        "carousels",
        "scheduled_posts",
        "posts",
        "amplification_jobs",
        "transcriptions",
        "voice_recordings",
        "credit_usage",
        "workspace_members",
        "workspaces",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_cls in ENUMS:
        enum_column_type(enum_cls).drop(bind, checkfirst=True)
