from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger("airtime.core.config")

# Load .env.local then .env into os.environ before Settings is instantiated.
# override=False so values already exported (CI, Cloud Run) take precedence.
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_LOCAL = _PROJECT_ROOT / ".env.local"
_ENV_FILE = _PROJECT_ROOT / ".env"

if _ENV_LOCAL.exists():
    load_dotenv(_ENV_LOCAL, override=False)
    log.info("[config] Loaded .env.local from %s", _ENV_LOCAL)
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE, override=False)
    log.info("[config] Loaded .env from %s", _ENV_FILE)

_PROD_ENVS = {"prod", "production", "stage", "staging"}
_DEV_ENVS = {"dev", "development", "local", "test", "testing"}

MB = 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    # --- Core ---
    APP_ENV: str = Field(
        default="dev",
        validation_alias=AliasChoices("APP_ENV", "ENV", "PYTHON_ENV"),
    )
    DATABASE_URL: str = "sqlite:///./airtime.db"
    CORS_ALLOWED_ORIGINS: str = "http://127.0.0.1:3000,http://localhost:3000"
    SENTRY_DSN: Optional[str] = None

    # --- Uploads ---
    MAX_FILE_SIZE_BYTES: int = Field(default=100 * MB, description="Plan-independent upload ceiling")

    # --- Identity provider (session JWT) ---
    AUTH_JWT_KEY: str = ""
    AUTH_JWT_ALGORITHMS: str = "RS256"
    AUTH_JWT_ISSUER: Optional[str] = None
    AUTH_JWT_AUDIENCE: Optional[str] = None
    AUTH_PLAN_CLAIM: str = "pla"

    # --- Event bus ---
    # dry_run | inngest | cloud_tasks
    EVENTS_BACKEND: str = "dry_run"
    INNGEST_BASE_URL: str = "https://inn.gs"
    INNGEST_EVENT_KEY: str = ""
    EVENTS_HTTP_TIMEOUT_SECONDS: float = 10.0
    GOOGLE_CLOUD_PROJECT: str = ""
    TASKS_LOCATION: str = ""
    TASKS_QUEUE: str = ""
    TASKS_URL_BASE: str = ""
    TASKS_EVENTS_PATH: str = "/api/events"
    TASKS_AUTH: str = ""

    # --- Retry policy ---
    DISPATCH_MAX_ATTEMPTS: int = 3
    DISPATCH_BASE_DELAY_SECONDS: float = 0.5
    DISPATCH_MAX_WORKERS: int = 5
    BLOB_DELETE_BASE_DELAY_SECONDS: float = 0.2

    # --- Blob storage ---
    # gcs | r2 | vercel
    STORAGE_BACKEND: str = "vercel"
    GCS_BUCKET: str = ""
    R2_BUCKET: str = ""
    R2_ACCOUNT_ID: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    BLOB_API_URL: str = "https://blob.vercel-storage.com"
    BLOB_READ_WRITE_TOKEN: str = ""

    @property
    def is_dev_mode(self) -> bool:
        env = (self.APP_ENV or "dev").strip().lower()
        return env in _DEV_ENVS

    @property
    def is_production(self) -> bool:
        return (self.APP_ENV or "").strip().lower() in _PROD_ENVS

    @property
    def max_file_size_mb(self) -> float:
        value = self.MAX_FILE_SIZE_BYTES / MB
        return int(value) if value.is_integer() else round(value, 2)

    @property
    def jwt_algorithms(self) -> list[str]:
        return [a.strip() for a in self.AUTH_JWT_ALGORITHMS.split(",") if a.strip()]

    @property
    def cors_allowed_origin_list(self) -> list[str]:
        raw = (self.CORS_ALLOWED_ORIGINS or "").replace(";", ",")
        seen: set[str] = set()
        merged: list[str] = []
        for origin in raw.split(","):
            cleaned = origin.strip().rstrip("/")
            if cleaned and cleaned not in seen:
                seen.add(cleaned)
                merged.append(cleaned)
        return merged

    @model_validator(mode="after")
    def _validate_and_warn(self):
        env = (self.APP_ENV or "dev").strip().lower()
        backend = (self.EVENTS_BACKEND or "").strip().lower()

        if env in _PROD_ENVS:
            if backend == "dry_run":
                raise ValueError("EVENTS_BACKEND=dry_run is not allowed in production")
            if not self.AUTH_JWT_KEY.strip():
                raise ValueError("AUTH_JWT_KEY is required in production")

        if self.DISPATCH_MAX_ATTEMPTS < 1:
            raise ValueError("DISPATCH_MAX_ATTEMPTS must be at least 1")

        if not self.AUTH_JWT_KEY.strip():
            log.warning("[config] AUTH_JWT_KEY is empty; every request will be treated as unauthenticated")
        if backend == "dry_run" and env not in _DEV_ENVS:
            log.warning("[config] EVENTS_BACKEND=dry_run outside dev; events will not be delivered")
        return self


settings = Settings()
