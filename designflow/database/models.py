"""
SQLAlchemy models for the portfolio store.

Schema includes:
- Projects (discovered on GitHub, added manually, or local)
- Plans parsed from planning documents in each repository
- Attention items surfaced in the inbox
- Pull request snapshots mirrored from GitHub
- Key/value settings
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import (
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
import enum
import uuid


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


# ==================== ENUMS ====================

class ProjectSourceEnum(str, enum.Enum):
    GITHUB_DISCOVERED = "github_discovered"
    GITHUB_MANUAL = "github_manual"
    LOCAL = "local"


class AttentionTypeEnum(str, enum.Enum):
    PR_NEEDS_REVIEW = "pr_needs_review"
    CHECKS_FAILING = "checks_failing"
    PR_MERGE_READY = "pr_merge_ready"
    PLAN_CHANGED = "plan_changed"
    PHASE_BLOCKED = "phase_blocked"
    NEW_PROJECT = "new_project"
    STALE_PROJECT = "stale_project"


class PullRequestStateEnum(str, enum.Enum):
    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"


# ==================== PROJECTS ====================

class ProjectDB(Base):
    """A tracked or discovered repository."""
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    github_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    local_path: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    source: Mapped[str] = mapped_column(String(30), nullable=False)  # github_discovered, github_manual, local
    is_tracked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Relationships
    plans: Mapped[List["PlanDB"]] = relationship(
        "PlanDB", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    attention_items: Mapped[List["AttentionItemDB"]] = relationship(
        "AttentionItemDB", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    pull_requests: Mapped[List["PullRequestDB"]] = relationship(
        "PullRequestDB", back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_projects_tracked", "is_tracked"),
        Index("idx_projects_github_url", "github_url"),
    )


# ==================== PLANS ====================

class PlanDB(Base):
    """One parsed planning document."""
    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    format: Mapped[str] = mapped_column(String(100), nullable=False)
    phases: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{name, status, tasks: [{text, done}]}]
    file_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    parsed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    project: Mapped["ProjectDB"] = relationship("ProjectDB", back_populates="plans")

    __table_args__ = (
        UniqueConstraint("project_id", "file_path", name="uq_plans_project_path"),
        Index("idx_plans_project", "project_id"),
    )


# ==================== ATTENTION ITEMS ====================

class AttentionItemDB(Base):
    """Actionable notification. Active while resolved_at is null."""
    __tablename__ = "attention_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("plans.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)  # 1 (lowest) - 5 (highest)
    source_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    project: Mapped["ProjectDB"] = relationship("ProjectDB", back_populates="attention_items")

    __table_args__ = (
        Index("idx_attention_project_type", "project_id", "type"),
        Index("idx_attention_resolved", "resolved_at"),
        Index("idx_attention_priority", "priority", "created_at"),
    )


# ==================== PULL REQUESTS ====================

class PullRequestDB(Base):
    """Mirrored snapshot of one GitHub pull request."""
    __tablename__ = "pull_requests"

    id: Mapped[str] = mapped_column(String(80), primary_key=True)  # "{project_id}:{number}"
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    branch_ref: Mapped[str] = mapped_column(String(255), nullable=False)
    spec_number: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    state: Mapped[str] = mapped_column(String(10), nullable=False)  # open, merged, closed
    merged_at: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)  # ISO timestamp from GitHub
    html_url: Mapped[str] = mapped_column(String(1000), nullable=False)

    project: Mapped["ProjectDB"] = relationship("ProjectDB", back_populates="pull_requests")

    __table_args__ = (
        Index("idx_prs_project", "project_id"),
        Index("idx_prs_state_spec", "state", "spec_number"),
    )


# ==================== SETTINGS ====================

class SettingDB(Base):
    """Flat key/value settings."""
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
