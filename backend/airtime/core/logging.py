from __future__ import annotations

import logging
import os
import re
import sys
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# (pattern, replacement) for secrets this service handles.
_SECRET_PATTERNS = (
    (re.compile(r"(/e/)[A-Za-z0-9_\-]{8,}"), r"\1<event-key>"),
    (re.compile(r"vercel_blob_rw_[A-Za-z0-9_]+"), "<blob-token>"),
    (re.compile(r"(?i)bearer\s+[A-Za-z0-9\-._~+/]+=*"), "Bearer <token>"),
    (re.compile(r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+"), "<jwt>"),
    (re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"), "<email>"),
)


def redact(text: str) -> str:
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactor(logging.Filter):
    """Rewrite the rendered message with secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg, record.args = masked, ()
        return True


class EventLineFormatter(logging.Formatter):
    """One record per line so ``event=`` lines stay greppable."""

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record).replace("\n", " | ")


def _is_ours(handler: logging.Handler) -> bool:
    return any(isinstance(f, SecretRedactor) for f in handler.filters)


def configure_logging(level: int = logging.INFO) -> None:
    """Install the stdout handler on the root logger. Safe to call repeatedly."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in [h for h in root.handlers if _is_ours(h)]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(EventLineFormatter(LOG_FORMAT))
    handler.addFilter(SecretRedactor())
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger()
    if not any(_is_ours(h) for h in root.handlers):
        configure_logging()
    return logging.getLogger(name or "airtime")


def setup_sentry(environment: str, dsn: str | None = None) -> bool:
    """Initialise Sentry error tracking.

    Skipped when no DSN is configured or when running in dev/test. Returns
    ``True`` when the SDK was initialised.
    """
    log = get_logger("airtime.core.logging")
    sentry_dsn = dsn or os.getenv("SENTRY_DSN")
    if not sentry_dsn or environment in ("dev", "development", "test", "testing", "local"):
        log.debug("[startup] Sentry disabled (missing DSN or dev/test env)")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    def before_send(event, hint):
        # 404s are the opaque "not found or access denied" path, not errors.
        if event.get("tags", {}).get("status_code") == 404:
            return None
        return event

    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.WARNING),
            ],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
            environment=environment,
            send_default_pii=False,
            before_send=before_send,
            max_breadcrumbs=100,
        )
    except Exception as se:
        log.warning("[startup] Sentry init failed: %s", se)
        return False
    log.info("[startup] Sentry initialized for env=%s", environment)
    return True
