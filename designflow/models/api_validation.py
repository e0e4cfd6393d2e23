"""
Pydantic models for API input validation and responses.
"""

from datetime import datetime
from typing import Optional, List, Dict, Union
from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator

from ..database.models import ProjectSourceEnum, AttentionTypeEnum
from .plan import PlanPhase


# ============================================
# PROJECT OPERATIONS
# ============================================

def _validate_github_url(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    stripped = v.strip()
    if not stripped.startswith(("http://", "https://")):
        raise ValueError("github_url must be an http(s) URL")
    return stripped.rstrip("/")


class ProjectCreate(BaseModel):
    """Input validation for creating projects."""
    name: str = Field(..., min_length=1, max_length=255)
    github_url: Optional[str] = Field(None, max_length=500)
    local_path: Optional[str] = Field(None, min_length=1, max_length=1000)
    source: ProjectSourceEnum

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError("name cannot be empty after stripping whitespace")
        return stripped

    @field_validator("github_url")
    @classmethod
    def validate_github_url(cls, v):
        return _validate_github_url(v)

    @model_validator(mode="after")
    def require_location(self):
        if not self.github_url and not self.local_path:
            raise ValueError("At least one of github_url or local_path is required")
        return self


class ProjectUpdate(BaseModel):
    """Input validation for editing a project."""
    is_tracked: Optional[bool] = None
    local_path: Optional[str] = Field(None, min_length=1, max_length=1000)
    github_url: Optional[str] = Field(None, max_length=500)

    @field_validator("github_url")
    @classmethod
    def validate_github_url(cls, v):
        return _validate_github_url(v)


# ============================================
# ATTENTION QUERIES
# ============================================

class AttentionFilter(BaseModel):
    """Query filters for the inbox."""
    type: Optional[AttentionTypeEnum] = None
    project_id: Optional[str] = Field(None, max_length=36)
    resolved: Optional[bool] = None
    limit: int = Field(50, ge=1, le=500)


# ============================================
# SETTINGS
# ============================================

SettingValue = Union[bool, int, float, str]


class SettingsUpdate(RootModel[Dict[str, SettingValue]]):
    """Arbitrary key/value settings; values are stored as strings."""

    @field_validator("root")
    @classmethod
    def validate_keys(cls, v):
        for key in v:
            if not key or len(key) > 100:
                raise ValueError(f"Invalid setting key: {key!r}")
        return v


# ============================================
# RESPONSES
# ============================================

class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    github_url: Optional[str] = None
    local_path: Optional[str] = None
    source: str
    is_tracked: bool
    created_at: datetime
    last_synced_at: Optional[datetime] = None


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    file_path: str
    title: str
    format: str
    phases: List[PlanPhase]
    file_hash: str
    parsed_at: datetime


class AttentionItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    plan_id: Optional[str] = None
    type: str
    title: str
    detail: Optional[str] = None
    priority: int
    source_url: Optional[str] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None


class PullRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    number: int
    title: str
    branch_ref: str
    spec_number: Optional[str] = None
    state: str
    merged_at: Optional[str] = None
    html_url: str
