"""Outbound workflow events and the values used to build them.

Payload field names are the wire contract consumed by the generation
workers and stay camelCase.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from airtime.billing.plans import ArtifactKind, Tier, is_gated

PODCAST_UPLOADED = "podcast/uploaded"
PODCAST_RETRY_JOB = "podcast/retry-job"


class DispatchEvent(BaseModel):
    name: str
    data: Dict[str, Any] = Field(default_factory=dict)


class PodcastUploadedData(BaseModel):
    projectId: str
    userId: str
    plan: Tier
    fileUrl: str
    fileName: str
    fileSize: int
    fileDuration: Optional[float] = None
    fileFormat: str
    mimeType: str

    def to_event(self) -> DispatchEvent:
        # fileDuration is optional on the wire; omit it rather than send null.
        return DispatchEvent(name=PODCAST_UPLOADED, data=self.model_dump(mode="json", exclude_none=True))


class RetryJobData(BaseModel):
    projectId: str
    job: ArtifactKind
    userId: str
    originalPlan: Tier
    currentPlan: Tier


@dataclass(frozen=True)
class RetryableJob:
    """One tier-gated artifact to (re)generate for a project."""

    job: ArtifactKind
    project_id: str
    user_id: str
    original_plan: Tier
    current_plan: Tier

    def __post_init__(self):
        if not is_gated(self.job):
            raise ValueError(f"{self.job.value} is not a tier-gated job")

    def to_event(self) -> DispatchEvent:
        data = RetryJobData(
            projectId=self.project_id,
            job=self.job,
            userId=self.user_id,
            originalPlan=self.original_plan,
            currentPlan=self.current_plan,
        )
        return DispatchEvent(name=PODCAST_RETRY_JOB, data=data.model_dump(mode="json"))


@dataclass
class JobOutcome:
    job: ArtifactKind
    delivered: bool
    attempts: int
    event_ids: List[str]
    error: Optional[str] = None


@dataclass
class DispatchReport:
    """Per-job outcomes of one batch, in the order the jobs were given."""

    outcomes: List[JobOutcome]

    @property
    def delivered(self) -> List[ArtifactKind]:
        return [o.job for o in self.outcomes if o.delivered]

    @property
    def failed(self) -> List[ArtifactKind]:
        return [o.job for o in self.outcomes if not o.delivered]

    @property
    def ok(self) -> bool:
        return bool(self.outcomes) and not self.failed
