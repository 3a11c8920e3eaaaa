from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from hello_server.db.base import Base


class SessionRecord(Base):
    """Server-side session keyed by the id carried in the session cookie."""

    __tablename__ = "sessions"

    # Base provides: id, created_at, updated_at
    sid: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<SessionRecord(sid={self.sid!r}, expires_at={self.expires_at!r})>"
