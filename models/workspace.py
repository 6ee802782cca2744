from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Index, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, JSONType, WorkspacePlan, WorkspaceRole, enum_column_type


class Workspace(Base):
    """
    Tenant boundary grouping members, content and credits.

    A workspace may also hold a LinkedIn company page connection, used when
    a scheduled post is flagged for the company page.
    """
    __tablename__ = "workspaces"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    plan = Column(enum_column_type(WorkspacePlan), nullable=False, default=WorkspacePlan.STARTER)
    credits_total = Column(Integer, nullable=False, default=100)
    credits_remaining = Column(Integer, nullable=False, default=100)

    branding = Column(JSONType, nullable=True)
    logo_url = Column(String(2048), nullable=True)
    posting_schedule = Column(JSONType, nullable=True)

    # Company page connection
    linkedin_access_token = Column(Text, nullable=True)
    linkedin_company_page_id = Column(String(100), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", foreign_keys=[owner_id])
    members = relationship("WorkspaceMember", back_populates="workspace")

    @property
    def has_company_page(self) -> bool:
        return bool(self.linkedin_access_token and self.linkedin_company_page_id)


class WorkspaceMember(Base):
    """Membership of a user in a workspace with a role"""
    __tablename__ = "workspace_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(enum_column_type(WorkspaceRole), nullable=False, default=WorkspaceRole.EDITOR)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    workspace = relationship("Workspace", back_populates="members")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )


class CreditUsage(Base):
    """Ledger of credits spent per workspace and feature"""
    __tablename__ = "credit_usage"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    feature_type = Column(String(50), nullable=False)
    credits_used = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_credit_usage_workspace_created", "workspace_id", "created_at"),
    )
