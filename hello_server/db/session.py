import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hello_server.db.base import Base

logger = logging.getLogger(__name__)


class DatabaseConnectionError(RuntimeError):
    """Raised when the database cannot be reached at startup."""


def get_connect_args(database_url: str) -> Dict[str, Any]:
    """Get database-specific connection arguments"""
    if database_url.startswith("sqlite"):
        # SQLite connections are used from the thread pool
        return {"check_same_thread": False}
    return {}


class Database:
    """
    Owns the SQLAlchemy engine and session factory for one application.

    The engine is created on first use so that building the application does
    not touch the network; ``connect()`` is the single startup check.
    """

    def __init__(self, database_url: Optional[str]):
        self.database_url = database_url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if not self.database_url:
                raise DatabaseConnectionError(
                    "No database configured. Set DATABASE_URL (or MONGODB_URI)."
                )
            self._engine = create_engine(
                self.database_url,
                connect_args=get_connect_args(self.database_url),
                pool_pre_ping=True,
            )
            self._session_factory = sessionmaker(
                autocommit=False, autoflush=False, expire_on_commit=False, bind=self._engine
            )
        return self._engine

    def verify_connection(self) -> None:
        """
        Open one connection and run a trivial query.

        Raises:
            DatabaseConnectionError: If the URL is missing or invalid, the
                driver is not installed, or the server is unreachable.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except DatabaseConnectionError:
            raise
        except (SQLAlchemyError, ImportError) as e:
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e

    def connect(self) -> None:
        """Verify connectivity and create missing tables."""
        self.verify_connection()
        # Register models before create_all
        from hello_server.db import models  # noqa: F401

        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Could not create database tables: {e}") from e
        logger.info(
            "Database connected",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a DB session with proper resource management"""
        if self._session_factory is None:
            self.engine  # builds the session factory
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
