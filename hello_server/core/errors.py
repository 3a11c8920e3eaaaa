"""
Error rendering for every stage of the request pipeline.

Exception handlers registered on the application and middleware that answers
early both go through ``render_error`` so error bodies look the same wherever
they come from. Development mode shows the stack trace. Every other mode answers
``Server Error`` whatever the status.
"""

import logging
import traceback
from typing import Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Server Error"


def _wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def render_error(
    request: Request,
    status_code: int,
    *,
    exc: Optional[BaseException] = None,
    message: Optional[str] = None,
    detail: Optional[str] = None,
    debug: bool = False,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Build the error response for ``status_code``.

    Args:
        request: The failing request
        status_code: HTTP status to send
        exc: The exception being rendered, if any
        message: Message shown in every mode, replacing the generic one
        detail: Description shown only in development mode
        debug: Include the stack trace of ``exc``
        headers: Extra response headers (Allow, Retry-After, ...)
    """
    text = message or (detail if debug and detail else GENERIC_SERVER_ERROR)

    if debug and exc is not None:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        if _wants_json(request):
            return JSONResponse(
                {"error": {"status": status_code, "message": str(exc) or text, "stack": stack}},
                status_code=status_code,
                headers=dict(headers or {}),
            )
        return PlainTextResponse(
            f"{type(exc).__name__}: {str(exc) or text}\n\n{stack}",
            status_code=status_code,
            headers=dict(headers or {}),
        )

    if _wants_json(request):
        return JSONResponse({"error": text}, status_code=status_code, headers=dict(headers or {}))
    return PlainTextResponse(text, status_code=status_code, headers=dict(headers or {}))


def register_error_handlers(app: FastAPI, debug: bool) -> None:
    """Install the not-found and server error handlers on ``app``."""

    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        logger.info("%s %s -> %d", request.method, request.url.path, exc.status_code)
        return render_error(
            request,
            exc.status_code,
            exc=exc,
            debug=debug,
            headers=getattr(exc, "headers", None),
        )

    async def server_error_handler(request: Request, exc: Exception) -> Response:
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        return render_error(request, 500, exc=exc, debug=debug)

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, server_error_handler)
