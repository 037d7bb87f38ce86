"""Send workflow events with bounded retry, singly or as a concurrent batch."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from airtime.core.config import settings
from airtime.core.retry import RetryExhaustedError, call_with_retry
from airtime.infrastructure import events_client
from airtime.infrastructure.events_client import EventBusConfigError
from airtime.models.events import DispatchEvent, DispatchReport, JobOutcome, RetryableJob

log = logging.getLogger("airtime.dispatch")


def send_with_retry(
    event: DispatchEvent,
    *,
    send: Optional[Callable[[DispatchEvent], dict]] = None,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> dict:
    """Send ``event``, retrying transient failures with exponential backoff.

    ``send`` defaults to ``events_client.send_event``.

    Raises ``RetryExhaustedError`` when every attempt failed and
    ``EventBusConfigError`` immediately for configuration problems.
    """
    return call_with_retry(
        send or events_client.send_event,
        event,
        max_attempts=max_attempts or settings.DISPATCH_MAX_ATTEMPTS,
        base_delay=settings.DISPATCH_BASE_DELAY_SECONDS if base_delay is None else base_delay,
        no_retry_on=(EventBusConfigError,),
        label=f"send_event:{event.name}",
    )


def _dispatch_one(job: RetryableJob) -> JobOutcome:
    attempts = 0

    def _send(event: DispatchEvent) -> dict:
        nonlocal attempts
        attempts += 1
        return events_client.send_event(event)

    try:
        result = send_with_retry(job.to_event(), send=_send)
    except RetryExhaustedError as e:
        log.error(
            "event=dispatch.job.failed project_id=%s job=%s attempts=%d error=%s",
            job.project_id, job.job.value, e.attempts, e.last_error,
        )
        return JobOutcome(job=job.job, delivered=False, attempts=e.attempts, event_ids=[], error=str(e.last_error))
    except EventBusConfigError as e:
        log.error("event=dispatch.job.misconfigured project_id=%s job=%s error=%s", job.project_id, job.job.value, e)
        return JobOutcome(job=job.job, delivered=False, attempts=attempts, event_ids=[], error=str(e))

    ids = [str(i) for i in (result or {}).get("ids", [])]
    log.info(
        "event=dispatch.job.sent project_id=%s job=%s attempts=%d ids=%s",
        job.project_id, job.job.value, attempts, ids,
    )
    return JobOutcome(job=job.job, delivered=True, attempts=attempts, event_ids=ids)


def dispatch_jobs(jobs: Sequence[RetryableJob]) -> DispatchReport:
    """Send one ``podcast/retry-job`` event per job, concurrently.

    Jobs are independent: a failed send does not affect or roll back the
    others. The report lists one outcome per job in input order so callers
    can re-trigger exactly the failed subset.
    """
    if not jobs:
        raise ValueError("dispatch_jobs requires at least one job")

    workers = max(1, min(len(jobs), settings.DISPATCH_MAX_WORKERS))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dispatch") as pool:
        outcomes = list(pool.map(_dispatch_one, jobs))

    report = DispatchReport(outcomes=outcomes)
    log.info(
        "event=dispatch.batch.done total=%d delivered=%s failed=%s",
        len(outcomes), [k.value for k in report.delivered], [k.value for k in report.failed],
    )
    return report
