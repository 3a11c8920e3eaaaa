"""Session-based authentication.

The authentication stage reads the logged-in identity from the session and
exposes it as ``request.user``. ``login_user`` / ``logout_user`` are the only
ways the identity gets into or out of the session.
"""

import logging
from typing import Optional, Tuple

from starlette.authentication import AuthCredentials, AuthenticationBackend, BaseUser, SimpleUser
from starlette.requests import HTTPConnection, Request

from hello_server.core.sessions import rotate_session

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "_auth_user_id"


class SessionAuthBackend(AuthenticationBackend):
    async def authenticate(self, conn: HTTPConnection) -> Optional[Tuple[AuthCredentials, BaseUser]]:
        if "session" not in conn.scope:
            return None
        user_id = conn.session.get(SESSION_USER_KEY)
        if user_id is None:
            return None
        return AuthCredentials(["authenticated"]), SimpleUser(str(user_id))


def login_user(request: Request, user_id: str) -> None:
    """
    Record ``user_id`` as the logged-in identity of this session.

    The session id is rotated so that an id issued before login cannot be
    reused afterwards.
    """
    request.session[SESSION_USER_KEY] = str(user_id)
    rotate_session(request)
    logger.info("User logged in", extra={"user_id": str(user_id)})


def logout_user(request: Request) -> None:
    user_id = request.session.pop(SESSION_USER_KEY, None)
    rotate_session(request)
    if user_id is not None:
        logger.info("User logged out", extra={"user_id": user_id})
