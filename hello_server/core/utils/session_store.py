"""Server-side session storage.

Session data lives in the `sessions` table keyed by the session id carried in
the signed cookie. Expired rows are treated as missing and removed when read;
`purge_expired()` sweeps the rest.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import delete, select, update

from hello_server.db.models.session_store import SessionRecord
from hello_server.db.session import Database

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SessionStore:
    def __init__(self, database: Database, max_age: int):
        self.database = database
        self.max_age = max_age

    @staticmethod
    def generate_id() -> str:
        return secrets.token_urlsafe(24)

    def expiry(self) -> datetime:
        return utcnow() + timedelta(seconds=self.max_age)

    def load(self, sid: str) -> Optional[dict[str, Any]]:
        """Return the session data for ``sid``, or None if unknown or expired."""
        with self.database.session() as db:
            row = db.scalar(select(SessionRecord).where(SessionRecord.sid == sid))
            if row is None:
                return None
            if row.expires_at <= utcnow():
                logger.debug("Discarding expired session")
                db.delete(row)
                db.commit()
                return None
            return dict(row.data or {})

    def save(self, sid: str, data: dict[str, Any]) -> None:
        """
        Store ``data`` under ``sid`` and push the expiry forward.

        Args:
            sid: The session id
            data: JSON-serialisable session data
        """
        expires_at = self.expiry()
        with self.database.session() as db:
            try:
                result = db.execute(
                    update(SessionRecord)
                    .where(SessionRecord.sid == sid)
                    .values(data=data, expires_at=expires_at)
                )
                if result.rowcount == 0:
                    db.add(SessionRecord(sid=sid, data=data, expires_at=expires_at))
                db.commit()
            except Exception:
                db.rollback()
                logger.error("Failed to save session", exc_info=True)
                raise

    def destroy(self, sid: str) -> None:
        """Remove the session for ``sid``."""
        with self.database.session() as db:
            db.execute(delete(SessionRecord).where(SessionRecord.sid == sid))
            db.commit()

    def purge_expired(self) -> int:
        """Delete every expired session; returns the number removed."""
        with self.database.session() as db:
            result = db.execute(delete(SessionRecord).where(SessionRecord.expires_at <= utcnow()))
            db.commit()
            return result.rowcount or 0
