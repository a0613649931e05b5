from __future__ import annotations
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Base error rendered to callers as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(RelayError):
    """Request rejected before anything is sent upstream."""

    status_code = 400


class UpstreamError(RelayError):
    """The inference server failed: transport error, bad status or empty body."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


class UpstreamPayloadError(UpstreamError):
    """A buffered upstream body could not be decoded."""

    status_code = 500


class StreamInterrupted(Exception):
    """The upstream failed after the streamed response started.

    Not a ``RelayError``: no JSON body can follow a started response, so
    it propagates to the server, which aborts the connection.
    """


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RelayError)
    async def _relay_error(request: Request, exc: RelayError) -> JSONResponse:
        if isinstance(exc, UpstreamError):
            logger.error(
                "%s %s failed: %s status=%s detail=%s",
                request.method, request.url.path, exc.message, exc.status, exc.detail,
            )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request body")
        if location:
            message = f"{location}: {message}"
        logger.info("%s %s rejected: %s", request.method, request.url.path, message)
        return JSONResponse({"error": message}, status_code=400)
