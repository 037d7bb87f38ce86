"""Discriminated success/failure results returned by every server action."""
from __future__ import annotations

import functools
import logging
import uuid
from typing import Any, Callable, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from airtime.core.errors import AirtimeError

log = logging.getLogger("airtime.actions")


class ActionSuccess(BaseModel):
    success: Literal[True] = True
    message: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class ActionFailure(BaseModel):
    success: Literal[False] = False
    code: str
    error: str
    details: Optional[Dict[str, Any]] = None


ActionResult = Union[ActionSuccess, ActionFailure]


def failure_from(exc: AirtimeError) -> ActionFailure:
    return ActionFailure(code=exc.code, error=exc.message, details=exc.details)


def server_action(func: Callable[..., ActionResult]) -> Callable[..., ActionResult]:
    """Keep exceptions from crossing the action boundary.

    ``AirtimeError`` becomes its failure result. Anything else is logged
    with an error id and reported as a generic ``internal_error``.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> ActionResult:
        try:
            return func(*args, **kwargs)
        except AirtimeError as e:
            log.info("event=action.failed action=%s code=%s error=%s", func.__name__, e.code, e.message)
            return failure_from(e)
        except Exception:
            error_id = uuid.uuid4().hex
            log.exception("event=action.crashed action=%s error_id=%s", func.__name__, error_id)
            return ActionFailure(
                code="internal_error",
                error="Something went wrong. Please try again later.",
                details={"error_id": error_id},
            )

    return wrapper
