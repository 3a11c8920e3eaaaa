"""
Flash messages: one-shot notifications stored in the session.

A message flashed while handling one request is returned, once, by the next
call to ``get_flashed_messages``, typically after a redirect.
"""

from typing import Any, List, Tuple, Union

from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

FLASH_SESSION_KEY = "_flashes"
FLASH_STATE_KEY = "flashes"


class FlashMessages:
    """Flash queue bound to one session mapping."""

    def __init__(self, session: dict):
        self.session = session

    def add(self, message: str, category: str = "info") -> None:
        # Reassign rather than mutate so the session store sees a change
        self.session[FLASH_SESSION_KEY] = self.session.get(FLASH_SESSION_KEY, []) + [[category, message]]

    def consume(self, with_categories: bool = False) -> List[Union[str, Tuple[str, str]]]:
        entries = self.session.pop(FLASH_SESSION_KEY, [])
        if with_categories:
            return [(category, message) for category, message in entries]
        return [message for _, message in entries]


class FlashMiddleware:
    """Attach a ``FlashMessages`` queue to ``request.state.flashes``."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            if "session" not in scope:
                raise RuntimeError("FlashMiddleware requires the session middleware to run first")
            state: Any = scope.setdefault("state", {})
            state[FLASH_STATE_KEY] = FlashMessages(scope["session"])
        await self.app(scope, receive, send)


def _flashes(request: Request) -> FlashMessages:
    flashes = getattr(request.state, FLASH_STATE_KEY, None)
    if flashes is None:
        raise RuntimeError("flash messages require FlashMiddleware")
    return flashes


def flash(request: Request, message: str, category: str = "info") -> None:
    _flashes(request).add(message, category)


def get_flashed_messages(request: Request, with_categories: bool = False) -> List[Union[str, Tuple[str, str]]]:
    """Return and clear the messages flashed so far for this session."""
    return _flashes(request).consume(with_categories=with_categories)
