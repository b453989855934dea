"""Artifact Store record schemas.

These are the external shapes of persisted Documents, Pages and
Assessments. Timestamps are always timezone-aware UTC and serialize to
ISO-8601 through ``model_dump(mode="json")``.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DocumentRecord(BaseModel):
    """A persisted source document."""

    model_config = ConfigDict(from_attributes=True)

    document_id: str = Field(..., description="Globally unique, immutable identifier")
    owner_id: str = Field(..., description="Owner of the document")
    original_filename: str = Field(..., description="Filename as submitted")
    storage_path: str = Field(default="", description="Path of the stored original")
    page_count: int = Field(default=0, ge=0, description="Number of persisted pages")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    normalize_timestamps = field_validator("created_at", "updated_at")(_ensure_utc)


class PageRecord(BaseModel):
    """A persisted page of a segmented document."""

    model_config = ConfigDict(from_attributes=True)

    page_id: str
    document_id: str
    page_number: int = Field(..., ge=1)
    page_artifact_path: Optional[str] = None
    page_text: str = ""
    char_count: int = Field(default=0, ge=0)
    section_hint: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    normalize_timestamps = field_validator("created_at", "updated_at")(_ensure_utc)


class AssessmentRecord(BaseModel):
    """An immutable stage output."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    assessment_id: str
    document_id: str
    stage_id: str
    timestamp: datetime = Field(..., validation_alias="created_at")
    payload: Dict[str, Any] = Field(default_factory=dict)

    normalize_timestamp = field_validator("timestamp")(_ensure_utc)


class AssessmentFilter(BaseModel):
    """Filter for ``ArtifactStore.get_all_assessments``. Unset fields match anything."""

    document_id: Optional[str] = None
    stage_id: Optional[str] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: Optional[int] = Field(default=None, ge=1)
