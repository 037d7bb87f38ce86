from __future__ import annotations

import logging
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

# Ensure models are imported so SQLModel metadata is populated
from airtime.models import project as _project_models  # noqa: F401

from .config import settings

log = logging.getLogger(__name__)

_engine: Engine | None = None


def _build_engine(url: str) -> Engine:
    kwargs: dict = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = _build_engine(settings.DATABASE_URL)
        log.info("[db] Engine created for dialect=%s", _engine.dialect.name)
    return _engine


def create_db_and_tables(engine: Engine | None = None) -> None:
    SQLModel.metadata.create_all(engine or get_engine())


def get_session() -> Iterator[Session]:
    with Session(get_engine()) as session:
        yield session
