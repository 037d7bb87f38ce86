"""Workflow event bus client.

``send_event`` is the only entry point for emitting workflow events. The
backend is chosen by ``EVENTS_BACKEND``:

- ``dry_run``: log the event and return a synthetic id (dev/test only).
- ``inngest``: POST ``{name, data}`` to the Inngest event API.
- ``cloud_tasks``: enqueue a Cloud Tasks HTTP task that POSTs the event to
  ``TASKS_URL_BASE + TASKS_EVENTS_PATH``.

No silent fallbacks: missing configuration raises ``EventBusConfigError``,
delivery failures raise ``EventDeliveryError``. Retry is the caller's
concern (see ``airtime.services.dispatch``).
"""
import json
import logging
from datetime import datetime, timezone
from uuid import uuid4

import httpx

from airtime.core.config import settings
from airtime.models.events import DispatchEvent

log = logging.getLogger("events.client")

_BACKENDS = {"dry_run", "inngest", "cloud_tasks"}


class EventBusConfigError(ValueError):
    """The event bus is not configured for the selected backend."""


class EventDeliveryError(RuntimeError):
    """The bus did not accept the event. Safe to retry."""


def _backend() -> str:
    backend = (settings.EVENTS_BACKEND or "").strip().lower()
    if backend not in _BACKENDS:
        raise EventBusConfigError(f"Unknown EVENTS_BACKEND '{backend}'; expected one of {sorted(_BACKENDS)}")
    return backend


def _send_dry_run(event: DispatchEvent) -> dict:
    event_id = f"dry-run-{datetime.now(timezone.utc).isoformat()}-{uuid4().hex[:8]}"
    log.info("event=events.dry_run name=%s event_id=%s data_keys=%s", event.name, event_id, sorted(event.data))
    return {"ids": [event_id]}


def _send_inngest(event: DispatchEvent) -> dict:
    key = settings.INNGEST_EVENT_KEY.strip()
    if not key:
        raise EventBusConfigError("Missing required event bus configuration: INNGEST_EVENT_KEY")
    url = f"{settings.INNGEST_BASE_URL.rstrip('/')}/e/{key}"
    payload = event.model_dump(mode="json")
    try:
        with httpx.Client(timeout=settings.EVENTS_HTTP_TIMEOUT_SECONDS) as client:
            r = client.post(url, json=payload)
    except httpx.HTTPError as e:
        log.warning("event=events.inngest.transport_error name=%s error=%s", event.name, e)
        raise EventDeliveryError(f"Event API request failed: {e}") from e

    if not 200 <= r.status_code < 300:
        log.warning("event=events.inngest.non_2xx name=%s status=%s response=%s", event.name, r.status_code, r.text[:200])
        raise EventDeliveryError(f"Event API returned status {r.status_code}")

    # 2xx means accepted; an unreadable body must not trigger a resend.
    try:
        body = r.json() if r.content else {}
    except ValueError:
        log.warning("event=events.inngest.unparsed_body name=%s body=%s", event.name, r.text[:200])
        body = {}
    ids = [str(i) for i in (body.get("ids") or [])] if isinstance(body, dict) else []
    log.info("event=events.inngest.sent name=%s ids=%s", event.name, ids)
    return {"ids": ids}


def _send_cloud_tasks(event: DispatchEvent) -> dict:
    from google.cloud import tasks_v2

    required = {
        "GOOGLE_CLOUD_PROJECT": settings.GOOGLE_CLOUD_PROJECT,
        "TASKS_LOCATION": settings.TASKS_LOCATION,
        "TASKS_QUEUE": settings.TASKS_QUEUE,
        "TASKS_URL_BASE": settings.TASKS_URL_BASE,
    }
    missing = [name for name, value in required.items() if not (value and value.strip())]
    if missing:
        log.error("event=events.cloud_tasks.config_missing missing=%s", missing)
        raise EventBusConfigError(f"Missing required Cloud Tasks configuration: {', '.join(missing)}")

    if not settings.TASKS_AUTH:
        log.warning("event=events.cloud_tasks.tasks_auth_missing name=%s", event.name)

    url = f"{settings.TASKS_URL_BASE.rstrip('/')}{settings.TASKS_EVENTS_PATH}"
    try:
        client = tasks_v2.CloudTasksClient()
        parent = client.queue_path(settings.GOOGLE_CLOUD_PROJECT, settings.TASKS_LOCATION, settings.TASKS_QUEUE)
        task = tasks_v2.Task(
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=url,
                headers={"Content-Type": "application/json", "X-Tasks-Auth": settings.TASKS_AUTH or ""},
                body=json.dumps(event.model_dump(mode="json")).encode(),
            )
        )
        created = client.create_task(request={"parent": parent, "task": task})
    except Exception as e:
        log.warning("event=events.cloud_tasks.create_task_failed name=%s url=%s error=%s", event.name, url, e)
        raise EventDeliveryError(f"Failed to create Cloud Task: {e}") from e

    log.info("event=events.cloud_tasks.enqueued name=%s task_name=%s", event.name, created.name)
    return {"ids": [created.name]}


def send_event(event: DispatchEvent) -> dict:
    """Emit one event. Returns ``{"ids": [...]}`` on acceptance."""
    backend = _backend()
    log.info("event=events.send.start name=%s backend=%s", event.name, backend)
    if backend == "dry_run":
        return _send_dry_run(event)
    if backend == "inngest":
        return _send_inngest(event)
    return _send_cloud_tasks(event)
