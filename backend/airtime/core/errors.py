from __future__ import annotations

import traceback
import uuid
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from airtime.core.logging import get_logger


class AirtimeError(Exception):
    """Base class for failures an action reports back to its caller."""

    code = "internal_error"
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, *, details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AirtimeError):
    code = "unauthenticated"
    default_message = "Unauthorized"


class ProjectNotFoundError(AirtimeError):
    # Same code for missing and not-owned projects.
    code = "not_found"
    default_message = "Project not found or access denied"


class InvalidInputError(AirtimeError):
    code = "validation_error"
    default_message = "Invalid input"


class FeatureLockedError(AirtimeError):
    code = "feature_locked"
    default_message = "This feature is not available on your current plan"


class NothingToGenerateError(AirtimeError):
    code = "nothing_to_generate"
    default_message = "No missing features to generate. All features for your plan are already available."


class DispatchFailedError(AirtimeError):
    code = "dispatch_failed"
    default_message = "Failed to trigger processing. Please try again."


class EntitlementUnavailableError(AirtimeError):
    code = "entitlement_unavailable"
    default_message = "Could not determine your plan. Please try again."


class StoreContractError(AirtimeError):
    code = "store_contract"
    default_message = "Project store does not implement the required operations"


# Failure code -> HTTP status used by the routers.
STATUS_BY_CODE: dict[str, int] = {
    "unauthenticated": 401,
    "not_found": 404,
    "validation_error": 400,
    "feature_locked": 403,
    "nothing_to_generate": 409,
    "dispatch_failed": 502,
    "entitlement_unavailable": 503,
    "store_contract": 500,
    "internal_error": 500,
}

_RETRYABLE_CODES = {"internal_error", "dispatch_failed", "entitlement_unavailable", "service_unavailable"}

_USER_FRIENDLY_MESSAGES = {
    "internal_error": "We're experiencing technical difficulties. Please try again in a moment.",
    "validation_error": "Please check your input and try again.",
}


def error_payload(
    code: str,
    message: str,
    details=None,
    request: Request | None = None,
    error_id: str | None = None,
):
    user_message = _USER_FRIENDLY_MESSAGES.get(code, message)
    out = {
        "error": {
            "code": code,
            "message": user_message,
            "technical_message": message if user_message != message else None,
            "details": details,
            "retryable": code in _RETRYABLE_CODES,
        }
    }
    rid = getattr(getattr(request, "state", None), "request_id", None)
    if rid:
        out["error"]["request_id"] = rid
    if error_id:
        out["error"]["error_id"] = error_id
    return out


def install_exception_handlers(app):
    log = get_logger("airtime.errors")

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        log.warning("HTTPException %s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
        return JSONResponse(
            error_payload("http_error", str(exc.detail), {"status_code": exc.status_code}, request),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        log.info("RequestValidationError %s %s", request.method, request.url.path)
        return JSONResponse(
            error_payload("validation_error", "Validation failed", jsonable_errors(exc), request),
            status_code=422,
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        err_id = str(uuid.uuid4())
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        log.error("Unhandled exception [%s] %s %s\nTraceback:\n%s", err_id, request.method, request.url.path, tb)
        return JSONResponse(
            error_payload("internal_error", "Something went wrong", None, request, error_id=err_id),
            status_code=500,
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    out = []
    for err in exc.errors():
        out.append({"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")})
    return out
