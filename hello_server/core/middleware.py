"""
Request pipeline middleware: access logging, body parsing, rate limiting and
static assets.

Session, authentication and flash stages live in their own modules.
"""

import json
import logging
import os
import stat
import time
import uuid
from contextlib import aclosing

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers, MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hello_server.core.errors import render_error
from hello_server.core.limiter import RateLimiter
from hello_server.core.logging_config import correlation_id_ctx

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("hello_server.access")

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive channel that hands ``body`` out once, then defers to ``receive``."""
    pending = True

    async def replay() -> Message:
        nonlocal pending
        if pending:
            pending = False
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class RequestLoggingMiddleware:
    """
    One access log line per request: method, path, status, time, size.

    Also binds the correlation id used by the structured log formatter,
    taken from ``X-Request-ID`` when the client sends one.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get("x-request-id") or str(uuid.uuid4())
        token = correlation_id_ctx.set(request_id)
        started = time.perf_counter()
        status_code = 500
        size = "-"

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code, size
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
                size = headers.get("content-length", "-")
            await send(message)

        try:
            try:
                await self.app(scope, receive, send_with_request_id)
            except Exception:
                elapsed = (time.perf_counter() - started) * 1000
                access_logger.error("%s %s 500 %.3f ms - -", scope["method"], scope["path"], elapsed)
                raise

            elapsed = (time.perf_counter() - started) * 1000
            access_logger.info(
                "%s %s %d %.3f ms - %s", scope["method"], scope["path"], status_code, elapsed, size
            )
        finally:
            correlation_id_ctx.reset(token)


class BodyParsingMiddleware:
    """
    Parse JSON and URL-encoded request bodies into ``request.state.body``.

    Bodies larger than ``limit`` bytes are rejected with 413 as soon as the
    limit is crossed, malformed JSON and JSON whose top level is not an
    object or array with 400. The raw body stays readable downstream.
    """

    def __init__(self, app: ASGIApp, limit: int = 100 * 1024, debug: bool = False):
        self.app = app
        self.limit = limit
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in (JSON_CONTENT_TYPE, FORM_CONTENT_TYPE):
            await self.app(scope, receive, send)
            return

        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.limit:
            await self._reject(request, 413, "request entity too large")(scope, receive, send)
            return

        chunks = []
        received = 0
        async with aclosing(request.stream()) as stream:
            async for chunk in stream:
                received += len(chunk)
                if received > self.limit:
                    logger.debug("Rejected request body over %d bytes", self.limit)
                    await self._reject(request, 413, "request entity too large")(scope, receive, send)
                    return
                chunks.append(chunk)
        body = b"".join(chunks)

        if content_type == JSON_CONTENT_TYPE:
            if not body.strip():
                parsed = {}
            else:
                try:
                    parsed = json.loads(body)
                except ValueError as exc:
                    logger.debug("Rejected malformed JSON body")
                    response = render_error(request, 400, exc=exc, detail="invalid JSON body", debug=self.debug)
                    await response(scope, receive, send)
                    return
                if not isinstance(parsed, (dict, list)):
                    await self._reject(request, 400, "JSON body must be an object or array")(scope, receive, send)
                    return
        else:
            try:
                form = await Request(scope, _replay(body, receive)).form()
            except (StarletteHTTPException, MultiPartException):
                await self._reject(request, 400, "malformed form body")(scope, receive, send)
                return
            parsed = {}
            for key, value in form.multi_items():
                if key in parsed:
                    existing = parsed[key]
                    parsed[key] = existing + [value] if isinstance(existing, list) else [existing, value]
                else:
                    parsed[key] = value

        request.state.body = parsed
        await self.app(scope, _replay(body, receive), send)

    def _reject(self, request: Request, status_code: int, detail: str) -> Response:
        return render_error(request, status_code, detail=detail, debug=self.debug)


class RateLimitMiddleware:
    """Global fixed-window request ceiling per client address."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter):
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        key = self.limiter.key_for(request)
        allowed = await run_in_threadpool(self.limiter.hit, key)
        headers = {
            "X-RateLimit-Limit": str(self.limiter.max_requests),
            "X-RateLimit-Remaining": str(await run_in_threadpool(self.limiter.remaining, key)),
        }

        if not allowed:
            logger.warning("Rate limit exceeded for %s", key)
            headers["Retry-After"] = str(await run_in_threadpool(self.limiter.retry_after, key))
            response = render_error(request, 429, message=RATE_LIMIT_MESSAGE, headers=headers)
            await response(scope, receive, send)
            return

        async def send_with_limits(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).update(headers)
            await send(message)

        await self.app(scope, receive, send_with_limits)


class StaticFilesMiddleware:
    """
    Serve files from ``directory`` and fall through to the next stage on a miss.

    Only regular files are served: no directory index, no dotfiles.
    """

    def __init__(self, app: ASGIApp, directory: str, max_age: int = 31557600):
        self.app = app
        self.directory = directory
        self.max_age = max_age
        self.files = StaticFiles(directory=directory, check_dir=False)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] not in ("GET", "HEAD"):
            await self.app(scope, receive, send)
            return

        path = self.files.get_path(scope)
        if any(part.startswith(".") for part in path.split(os.sep) if part not in ("", ".")):
            await self.app(scope, receive, send)
            return

        try:
            full_path, stat_result = await run_in_threadpool(self.files.lookup_path, path)
        except OSError as exc:
            logger.debug("Static lookup failed for %s: %s", path, exc)
            stat_result = None

        if stat_result is None or not stat.S_ISREG(stat_result.st_mode):
            await self.app(scope, receive, send)
            return

        response = self.files.file_response(full_path, stat_result, scope)
        response.headers["Cache-Control"] = f"public, max-age={self.max_age}"
        await response(scope, receive, send)
