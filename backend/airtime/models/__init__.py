"""Aggregate exports for model convenience imports."""

from .project import ARTIFACT_FIELDS, Project, ProjectStatus, artifact_presence  # noqa: F401
from .events import (  # noqa: F401
    PODCAST_RETRY_JOB,
    PODCAST_UPLOADED,
    DispatchEvent,
    DispatchReport,
    JobOutcome,
    PodcastUploadedData,
    RetryableJob,
    RetryJobData,
)
