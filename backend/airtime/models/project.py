"""Project model: one uploaded podcast episode and its generated artifacts."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from airtime.billing.plans import ArtifactKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class ProjectStatus(str, Enum):
    """Upload lifecycle. Artifact completeness is computed, never stored."""
    uploaded = "uploaded"


# ArtifactKind -> Project attribute holding that artifact.
ARTIFACT_FIELDS: Dict[ArtifactKind, str] = {
    ArtifactKind.summary: "summary",
    ArtifactKind.transcription: "transcription",
    ArtifactKind.social_posts: "social_posts",
    ArtifactKind.titles: "titles",
    ArtifactKind.hashtags: "hashtags",
    ArtifactKind.key_moments: "key_moments",
    ArtifactKind.youtube_timestamps: "youtube_timestamps",
}


class Project(SQLModel, table=True):
    __tablename__ = "project"

    id: str = Field(default_factory=_new_id, primary_key=True, index=True)
    user_id: str = Field(index=True, description="Identity-provider subject of the owner")

    name: str = Field(description="Display name; defaults to the uploaded file name")
    description: str = Field(default="")
    status: ProjectStatus = Field(default=ProjectStatus.uploaded)

    input_url: Optional[str] = Field(default=None, description="Blob storage URL of the source audio")
    file_name: Optional[str] = Field(default=None)
    file_size: int = Field(default=0)
    file_duration: Optional[float] = Field(default=None, description="Seconds, when the client could measure it")
    file_format: Optional[str] = Field(default=None)
    mime_type: Optional[str] = Field(default=None)

    # Populated asynchronously by generation workers.
    summary: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    transcription: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    social_posts: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    titles: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    hashtags: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    key_moments: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))
    youtube_timestamps: Optional[Any] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


def artifact_presence(project: Any) -> Dict[ArtifactKind, bool]:
    """Map each artifact kind to whether ``project`` has it populated.

    Accepts a ``Project`` or a plain mapping keyed by attribute or wire name.
    """
    presence: Dict[ArtifactKind, bool] = {}
    for kind, attr in ARTIFACT_FIELDS.items():
        if isinstance(project, dict):
            value = project.get(attr, project.get(kind.value))
        else:
            value = getattr(project, attr, None)
        presence[kind] = bool(value)
    return presence
