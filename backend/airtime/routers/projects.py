from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlmodel import Session

from airtime.core.auth import Identity, get_current_identity
from airtime.core.database import get_session
from airtime.core.errors import STATUS_BY_CODE
from airtime.services.projects import lifecycle, reconcile
from airtime.services.projects.schemas import CreateProjectInput, RenameProjectInput, ValidateUploadInput
from airtime.services.projects.store import ProjectStore, SqlProjectStore, ensure_store_contract
from airtime.services.results import ActionResult, ActionSuccess

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_store(session: Session = Depends(get_session)) -> ProjectStore:
    return ensure_store_contract(SqlProjectStore(session))


def _respond(result: ActionResult, success_status: int = 200) -> JSONResponse:
    if isinstance(result, ActionSuccess):
        status = success_status
    else:
        status = STATUS_BY_CODE.get(result.code, 500)
    return JSONResponse(result.model_dump(mode="json", exclude_none=True), status_code=status)


@router.post("/validate-upload")
def validate_upload(
    body: ValidateUploadInput,
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(lifecycle.validate_upload(identity, body.fileSize, body.duration, body.mimeType))


@router.post("")
def create_project(
    body: CreateProjectInput,
    store: ProjectStore = Depends(get_project_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(lifecycle.create_project(store, identity, body), success_status=201)


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    store: ProjectStore = Depends(get_project_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(lifecycle.delete_project(store, identity, project_id))


@router.patch("/{project_id}")
def rename_project(
    project_id: str,
    body: RenameProjectInput,
    store: ProjectStore = Depends(get_project_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(lifecycle.rename_project(store, identity, project_id, body.displayName))


@router.get("/{project_id}/features")
def feature_status(
    project_id: str,
    store: ProjectStore = Depends(get_project_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(reconcile.feature_status(store, identity, project_id))


@router.post("/{project_id}/features/generate-missing")
def generate_missing_features(
    project_id: str,
    store: ProjectStore = Depends(get_project_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(reconcile.generate_missing_features(store, identity, project_id), success_status=202)


@router.post("/{project_id}/features/{job}/retry")
def retry_job(
    project_id: str,
    job: str,
    store: ProjectStore = Depends(get_project_store),
    identity: Optional[Identity] = Depends(get_current_identity),
):
    return _respond(reconcile.retry_job(store, identity, project_id, job), success_status=202)
