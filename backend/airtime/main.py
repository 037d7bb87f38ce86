"""FastAPI application factory.

Usage:
    uvicorn airtime.app:app --reload
"""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from airtime.core.config import settings
from airtime.core.database import create_db_and_tables
from airtime.core.errors import install_exception_handlers
from airtime.core.logging import configure_logging, get_logger, setup_sentry
from airtime.routers import api_router
from airtime.services.projects.store import SqlProjectStore, ensure_store_contract


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = rid
        response = await call_next(request)
        response.headers["x-request-id"] = rid
        return response


def create_app(*, init_db: bool = True) -> FastAPI:
    configure_logging()
    setup_sentry(environment=settings.APP_ENV, dsn=settings.SENTRY_DSN)
    log = get_logger("airtime.main")

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if init_db:
            create_db_and_tables()
            log.info("event=startup.db_ready")
        yield

    app = FastAPI(title="Airtime API", debug=settings.is_dev_mode, lifespan=lifespan)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
        allow_credentials=True,
    )
    ensure_store_contract(SqlProjectStore)
    install_exception_handlers(app)
    app.include_router(api_router)

    log.info(
        "event=startup.configured env=%s events_backend=%s storage_backend=%s",
        settings.APP_ENV, settings.EVENTS_BACKEND, settings.STORAGE_BACKEND,
    )
    return app


__all__ = ["create_app", "RequestIDMiddleware"]
