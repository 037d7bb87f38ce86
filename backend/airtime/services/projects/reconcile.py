"""Regenerate artifacts a project is entitled to but does not have.

Used after a plan upgrade (generate everything the new plan unlocks) and to
retry a single failed or previously locked artifact.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from airtime.billing.plans import ArtifactKind, Tier, is_entitled, is_gated, minimum_tier_for, parse_artifact
from airtime.core.auth import Identity
from airtime.core.errors import (
    DispatchFailedError,
    FeatureLockedError,
    InvalidInputError,
    NothingToGenerateError,
    ProjectNotFoundError,
)
from airtime.models.events import RetryableJob
from airtime.models.project import Project, artifact_presence
from airtime.services.dispatch import dispatch_jobs
from airtime.services.entitlements import require_identity, resolve_tier
from airtime.services.features import infer_original_tier, missing_features
from airtime.services.projects.store import ProjectStore
from airtime.services.results import ActionResult, ActionSuccess, server_action

log = logging.getLogger("airtime.reconcile")


def _load_project(store: ProjectStore, project_id: str, user_id: str) -> Project:
    project = store.get_project(project_id, user_id)
    if project is None:
        raise ProjectNotFoundError()
    return project


@server_action
def feature_status(store: ProjectStore, identity: Optional[Identity], project_id: str) -> ActionResult:
    """Current tier, inferred original tier and the missing artifacts."""
    identity = require_identity(identity)
    current = resolve_tier(identity)
    project = _load_project(store, project_id, identity.id)
    presence = artifact_presence(project)
    return ActionSuccess(data={
        "projectId": project_id,
        "currentPlan": current.value,
        "originalPlan": infer_original_tier(presence).value,
        "present": [k.value for k, v in presence.items() if v],
        "missing": [k.value for k in missing_features(current, presence)],
    })


def _dispatch(jobs: List[RetryableJob], original: Tier, current: Tier) -> ActionResult:
    report = dispatch_jobs(jobs)
    generated = [k.value for k in report.delivered]
    if not report.ok:
        failed = [k.value for k in report.failed]
        raise DispatchFailedError(
            f"Failed to start generation for: {', '.join(failed)}. Please try again.",
            details={"generated": generated, "failed": failed},
        )
    noun = "feature" if len(generated) == 1 else "features"
    return ActionSuccess(
        message=f"Generating {len(generated)} {noun}: {', '.join(generated)}",
        data={"generated": generated, "originalPlan": original.value, "currentPlan": current.value},
    )


@server_action
def generate_missing_features(store: ProjectStore, identity: Optional[Identity], project_id: str) -> ActionResult:
    identity = require_identity(identity, "Unauthorized, You Must Be Logged In To Generate Missing Features")
    current = resolve_tier(identity)
    project = _load_project(store, project_id, identity.id)

    presence = artifact_presence(project)
    original = infer_original_tier(presence)
    missing = missing_features(current, presence)
    if not missing:
        raise NothingToGenerateError()

    log.info(
        "event=reconcile.generate_missing.start project_id=%s user_id=%s original=%s current=%s missing=%s",
        project_id, identity.id, original.value, current.value, [k.value for k in missing],
    )
    jobs = [
        RetryableJob(job=kind, project_id=project_id, user_id=identity.id, original_plan=original, current_plan=current)
        for kind in missing
    ]
    return _dispatch(jobs, original, current)


@server_action
def retry_job(store: ProjectStore, identity: Optional[Identity], project_id: str, job: Any) -> ActionResult:
    """Regenerate one tier-gated artifact for a project."""
    identity = require_identity(identity, "Unauthorized, You Must Be Logged In To Retry A Job")
    kind: Optional[ArtifactKind] = parse_artifact(job)
    if kind is None or not is_gated(kind):
        raise InvalidInputError(f"Unknown or non-retryable job: {job}")

    current = resolve_tier(identity)
    if not is_entitled(current, kind):
        raise FeatureLockedError(
            f"{kind.value} requires the {minimum_tier_for(kind).value} plan",
            details={"job": kind.value, "currentPlan": current.value},
        )

    project = _load_project(store, project_id, identity.id)
    original = infer_original_tier(artifact_presence(project))
    retryable = RetryableJob(job=kind, project_id=project_id, user_id=identity.id, original_plan=original, current_plan=current)
    return _dispatch([retryable], original, current)
