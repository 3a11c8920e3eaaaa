"""
Database-backed session middleware.

The cookie only carries the signed session id; the data is kept in the
session store. ``request.session`` behaves like Starlette's cookie sessions,
so anything written for ``SessionMiddleware`` works unchanged.
"""

import copy
import logging
from typing import Any, Optional

from itsdangerous import BadSignature, TimestampSigner
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.requests import HTTPConnection, Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from hello_server.core.utils.session_store import SessionStore

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "session_id"
ROTATE_KEY = "session_rotate"


def get_session_id(request: Request) -> Optional[str]:
    """Id of the session attached to ``request``."""
    return request.scope.get(SESSION_ID_KEY)


def rotate_session(request: Request) -> None:
    """Issue a new session id for the current data when the response is sent."""
    request.scope[ROTATE_KEY] = True


class DatabaseSessionMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        store: SessionStore,
        secret_key: str,
        session_cookie: str = "sid",
        max_age: int = 14 * 24 * 60 * 60,
        path: str = "/",
        same_site: str = "lax",
        https_only: bool = False,
        resave: bool = True,
        save_uninitialized: bool = True,
    ):
        self.app = app
        self.store = store
        self.signer = TimestampSigner(secret_key, salt="hello_server.session")
        self.session_cookie = session_cookie
        self.max_age = max_age
        self.path = path
        self.resave = resave
        self.save_uninitialized = save_uninitialized
        self.security_flags = "httponly; samesite=" + same_site
        if https_only:
            self.security_flags += "; secure"

    def _unsign(self, value: str) -> Optional[str]:
        try:
            return self.signer.unsign(value.encode("utf-8"), max_age=self.max_age).decode("utf-8")
        except BadSignature:
            logger.debug("Ignoring session cookie with an invalid signature")
            return None

    def _cookie_header(self, sid: str) -> str:
        signed = self.signer.sign(sid.encode("utf-8")).decode("utf-8")
        return "%s=%s; path=%s; Max-Age=%d; %s" % (
            self.session_cookie,
            signed,
            self.path,
            self.max_age,
            self.security_flags,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        connection = HTTPConnection(scope)
        data: Optional[dict[str, Any]] = None
        sid: Optional[str] = None

        cookie = connection.cookies.get(self.session_cookie)
        if cookie:
            sid = self._unsign(cookie)
            if sid is not None:
                data = await run_in_threadpool(self.store.load, sid)

        is_new = data is None
        if is_new:
            sid = self.store.generate_id()
            data = {}

        scope["session"] = data
        scope[SESSION_ID_KEY] = sid
        initial = copy.deepcopy(data)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                await self._commit(scope, message, is_new, initial)
            await send(message)

        await self.app(scope, receive, send_wrapper)

    async def _commit(self, scope: Scope, message: Message, is_new: bool, initial: dict) -> None:
        sid = scope[SESSION_ID_KEY]
        data = scope["session"]
        modified = data != initial

        if scope.get(ROTATE_KEY):
            if not is_new:
                await run_in_threadpool(self.store.destroy, sid)
            sid = self.store.generate_id()
            scope[SESSION_ID_KEY] = sid
            is_new = True
            modified = True

        if is_new and not (self.save_uninitialized or modified):
            return
        if not (is_new or self.resave or modified):
            return

        await run_in_threadpool(self.store.save, sid, data)

        if is_new or modified:
            headers = MutableHeaders(scope=message)
            headers.append("Set-Cookie", self._cookie_header(sid))
