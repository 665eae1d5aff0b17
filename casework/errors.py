"""
Error taxonomy and the FastAPI handlers that render it.

Every failure leaves the service as a JSON envelope of the form
``{"error": <message>}`` with an optional ``details`` member carrying the
backend's own message. Client-side problems map onto 4xx codes; backend
failures and unexpected exceptions map onto 500.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CaseworkError(Exception):
    """Base class for errors that carry an HTTP status and a public message."""

    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InvalidRequest(CaseworkError):
    status_code = 400


class Unauthorized(CaseworkError):
    status_code = 401


class Forbidden(CaseworkError):
    status_code = 403


class NotFound(CaseworkError):
    status_code = 404


class UpstreamFailure(CaseworkError):
    """The database, identity provider or storage reported an error."""

    status_code = 500


class InternalFault(CaseworkError):
    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Any = None):
        super().__init__(message, details)


class BackendError(Exception):
    """Raised by a database client when the backend rejects an operation."""


def upstream(message: str, exc: Exception) -> UpstreamFailure:
    """Wrap a client-level exception, keeping the backend message as details."""
    return UpstreamFailure(message, details=str(exc))


async def _casework_error_handler(request: Request, exc: CaseworkError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s (%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.details,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content={"error": "Invalid request", "details": details}
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=InternalFault().to_payload())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CaseworkError, _casework_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

