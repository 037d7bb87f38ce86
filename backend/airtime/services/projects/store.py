"""Project store: the document-store surface the actions depend on."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from sqlmodel import Session

from airtime.core.errors import ProjectNotFoundError, StoreContractError
from airtime.models.project import Project, ProjectStatus

log = logging.getLogger(__name__)

REQUIRED_OPERATIONS = ("get_project", "create_project", "delete_project", "update_display_name")


@runtime_checkable
class ProjectStore(Protocol):
    def get_project(self, project_id: str, requesting_user_id: str) -> Optional[Project]:
        """Return the project, or None when missing or owned by someone else."""
        ...

    def create_project(self, fields: Dict[str, Any]) -> str:
        """Insert a project and return its id."""
        ...

    def delete_project(self, project_id: str, user_id: str) -> Optional[Dict[str, Optional[str]]]:
        """Delete and return ``{"input_url": ...}``, or None when not found/owned."""
        ...

    def update_display_name(self, project_id: str, user_id: str, name: str) -> None:
        """Rename; raises ProjectNotFoundError when not found/owned."""
        ...


def ensure_store_contract(store: Any) -> ProjectStore:
    """Precondition check run before a store is handed to any action."""
    missing = [name for name in REQUIRED_OPERATIONS if not callable(getattr(store, name, None))]
    if missing:
        raise StoreContractError(
            f"Project store {type(store).__name__} is missing: {', '.join(missing)}",
            details={"missing": missing},
        )
    return store


class SqlProjectStore:
    """ProjectStore backed by the ``project`` table."""

    def __init__(self, session: Session):
        self.session = session

    def _owned(self, project_id: str, user_id: str) -> Optional[Project]:
        project = self.session.get(Project, project_id)
        if project is None or project.user_id != user_id:
            return None
        return project

    def get_project(self, project_id: str, requesting_user_id: str) -> Optional[Project]:
        return self._owned(project_id, requesting_user_id)

    def create_project(self, fields: Dict[str, Any]) -> str:
        project = Project(
            user_id=fields["user_id"],
            name=fields.get("name") or fields["file_name"],
            description=fields.get("description", ""),
            status=ProjectStatus.uploaded,
            input_url=fields["input_url"],
            file_name=fields["file_name"],
            file_size=fields.get("file_size", 0),
            file_duration=fields.get("file_duration"),
            file_format=fields.get("file_format"),
            mime_type=fields.get("mime_type"),
        )
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        log.info("event=store.project.created project_id=%s user_id=%s", project.id, project.user_id)
        return project.id

    def delete_project(self, project_id: str, user_id: str) -> Optional[Dict[str, Optional[str]]]:
        project = self._owned(project_id, user_id)
        if project is None:
            return None
        input_url = project.input_url
        self.session.delete(project)
        self.session.commit()
        return {"input_url": input_url}

    def update_display_name(self, project_id: str, user_id: str, name: str) -> None:
        project = self._owned(project_id, user_id)
        if project is None:
            raise ProjectNotFoundError()
        project.name = name
        project.updated_at = datetime.now(timezone.utc)
        self.session.add(project)
        self.session.commit()
