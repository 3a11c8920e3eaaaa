"""
Middleware composition for the request pipeline.

Stages are listed outermost first: each one sees the request before the
stages after it and may answer on its own without calling them.
"""

import logging
from typing import List

from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.gzip import GZipMiddleware

from hello_server.core.auth import SessionAuthBackend
from hello_server.core.config import Settings
from hello_server.core.flash import FlashMiddleware
from hello_server.core.limiter import RateLimiter
from hello_server.core.middleware import (
    BodyParsingMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    StaticFilesMiddleware,
)
from hello_server.core.security import resolve_session_secret
from hello_server.core.sessions import DatabaseSessionMiddleware
from hello_server.core.utils.session_store import SessionStore

logger = logging.getLogger(__name__)


def build_middleware(settings: Settings, limiter: RateLimiter, store: SessionStore) -> List[Middleware]:
    """
    Build the ordered middleware stack.

    Order: compression, request logging, body parsing, rate limiting, static
    assets, sessions, authentication, flash messages. Routing, the 404 and
    error rendering follow inside the application itself.
    """
    stages = [
        Middleware(GZipMiddleware, minimum_size=settings.compression_minimum_size),
        Middleware(RequestLoggingMiddleware),
        Middleware(BodyParsingMiddleware, limit=settings.body_limit, debug=settings.is_development),
        Middleware(RateLimitMiddleware, limiter=limiter),
        Middleware(StaticFilesMiddleware, directory=settings.static_dir, max_age=settings.static_max_age),
        Middleware(
            DatabaseSessionMiddleware,
            store=store,
            secret_key=resolve_session_secret(settings),
            session_cookie=settings.session_cookie,
            max_age=settings.session_max_age,
            https_only=settings.session_cookie_secure,
            resave=settings.session_resave,
            save_uninitialized=settings.session_save_uninitialized,
        ),
        Middleware(AuthenticationMiddleware, backend=SessionAuthBackend()),
        Middleware(FlashMiddleware),
    ]
    logger.debug("Request pipeline: %s", ", ".join(stage.cls.__name__ for stage in stages))
    return stages
