"""Project lifecycle actions: validate upload, create, delete, rename.

Every action authenticates first, validates input, then mutates the store.
Create and delete each perform one outbound side effect after the store
mutation with no transaction spanning the two:

- create sends ``podcast/uploaded``; exhausted retries are reported as a
  failure carrying the project id (the project exists but is unprocessed).
- delete removes the stored audio; exhausted retries are logged as an
  orphaned blob and the delete still succeeds.
"""
from __future__ import annotations

import logging
from typing import Optional

from airtime.billing.plans import ALLOWED_AUDIO_TYPES
from airtime.core.auth import Identity
from airtime.core.config import settings
from airtime.core.errors import DispatchFailedError, InvalidInputError, ProjectNotFoundError
from airtime.core.retry import RetryExhaustedError, call_with_retry
from airtime.infrastructure import storage
from airtime.infrastructure.events_client import EventBusConfigError
from airtime.models.events import PodcastUploadedData
from airtime.services.dispatch import send_with_retry
from airtime.services.entitlements import require_identity, resolve_tier
from airtime.services.projects.schemas import CreateProjectInput
from airtime.services.projects.store import ProjectStore
from airtime.services.results import ActionResult, ActionSuccess, server_action

log = logging.getLogger("airtime.projects")

MAX_DISPLAY_NAME_LENGTH = 200


def check_upload_limits(file_size: Optional[int], mime_type: Optional[str] = None) -> None:
    """Plan-independent upload gate. Raises InvalidInputError."""
    size = file_size or 0
    if size <= 0:
        raise InvalidInputError("Invalid file size", details={"fileSize": size})
    if size > settings.MAX_FILE_SIZE_BYTES:
        raise InvalidInputError(
            f"File exceeds {settings.max_file_size_mb}MB plan limit. "
            "Upgrade your plan to upload larger files or more projects.",
            details={"fileSize": size, "limit": settings.MAX_FILE_SIZE_BYTES},
        )
    if mime_type and mime_type.strip().lower() not in ALLOWED_AUDIO_TYPES:
        raise InvalidInputError(f"Unsupported file type: {mime_type}", details={"mimeType": mime_type})


def file_format_from_name(file_name: str) -> str:
    if "." not in file_name:
        return "Unknown"
    return file_name.rsplit(".", 1)[-1] or "Unknown"


@server_action
def validate_upload(
    identity: Optional[Identity],
    file_size: Optional[int],
    duration: Optional[float] = None,
    mime_type: Optional[str] = None,
) -> ActionResult:
    """Pre-check an upload before the client starts transferring bytes."""
    identity = require_identity(identity)
    try:
        check_upload_limits(file_size, mime_type)
    except InvalidInputError as e:
        log.info("event=projects.validate_upload.rejected user_id=%s reason=%s", identity.id, e.message)
        raise
    log.info(
        "event=projects.validate_upload.ok user_id=%s file_size=%s duration=%s",
        identity.id, file_size, duration,
    )
    return ActionSuccess()


@server_action
def create_project(store: ProjectStore, identity: Optional[Identity], payload: CreateProjectInput) -> ActionResult:
    identity = require_identity(identity)
    if not payload.fileUrl or not payload.fileName:
        raise InvalidInputError("Missing required fields")

    plan = resolve_tier(identity)
    check_upload_limits(payload.fileSize, payload.mimeType)

    file_format = file_format_from_name(payload.fileName)
    file_size = payload.fileSize or 0
    project_id = store.create_project({
        "user_id": identity.id,
        "input_url": payload.fileUrl,
        "file_name": payload.fileName,
        "file_size": file_size,
        "file_duration": payload.fileDuration,
        "file_format": file_format,
        "mime_type": payload.mimeType,
    })

    event = PodcastUploadedData(
        projectId=project_id,
        userId=identity.id,
        plan=plan,
        fileUrl=payload.fileUrl,
        fileName=payload.fileName,
        fileSize=file_size,
        fileDuration=payload.fileDuration,
        fileFormat=file_format,
        mimeType=payload.mimeType,
    ).to_event()

    try:
        send_with_retry(event)
    except (RetryExhaustedError, EventBusConfigError) as e:
        cause = e.last_error if isinstance(e, RetryExhaustedError) else e
        log.error(
            "event=projects.create.dispatch_failed project_id=%s user_id=%s error=%s",
            project_id, identity.id, cause,
        )
        raise DispatchFailedError(
            "Project was created but processing could not be started. Please try again.",
            details={"projectId": project_id},
        ) from e

    log.info("event=projects.create.ok project_id=%s user_id=%s plan=%s", project_id, identity.id, plan.value)
    return ActionSuccess(data={"projectId": project_id})


def _cleanup_blob(project_id: str, user_id: str, input_url: str) -> bool:
    """Best-effort delete of the stored audio. Returns False when orphaned."""
    try:
        call_with_retry(
            storage.delete_blob_url,
            input_url,
            max_attempts=settings.DISPATCH_MAX_ATTEMPTS,
            base_delay=settings.BLOB_DELETE_BASE_DELAY_SECONDS,
            label="delete_blob",
        )
    except RetryExhaustedError as e:
        log.warning(
            "event=projects.delete.orphaned_blob project_id=%s user_id=%s input_url=%s error=%s",
            project_id, user_id, input_url, e.last_error,
        )
        return False
    return True


@server_action
def delete_project(store: ProjectStore, identity: Optional[Identity], project_id: str) -> ActionResult:
    identity = require_identity(identity, "Unauthorized, You Must Be Logged In To Delete A Project")
    result = store.delete_project(project_id, identity.id)
    if result is None:
        raise ProjectNotFoundError()

    input_url = result.get("input_url")
    blob_deleted = _cleanup_blob(project_id, identity.id, input_url) if input_url else True
    log.info("event=projects.delete.ok project_id=%s user_id=%s blob_deleted=%s", project_id, identity.id, blob_deleted)
    return ActionSuccess(data={"projectId": project_id, "blobDeleted": blob_deleted})


@server_action
def rename_project(
    store: ProjectStore,
    identity: Optional[Identity],
    project_id: str,
    display_name: Optional[str],
) -> ActionResult:
    identity = require_identity(identity, "Unauthorized, You Must Be Logged In To Update A Project Display Name")
    name = (display_name or "").strip()
    if not name:
        raise InvalidInputError("Display Name Cannot Be Empty, Please Provide A Valid Display Name To Continue")
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidInputError(
            f"Display Name Cannot Be Longer Than {MAX_DISPLAY_NAME_LENGTH} Characters, "
            "Please Provide A Shorter Display Name To Continue"
        )
    store.update_display_name(project_id, identity.id, name)
    return ActionSuccess(data={"projectId": project_id, "displayName": name})
