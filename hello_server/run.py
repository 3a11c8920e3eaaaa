#!/usr/bin/env python3
"""Run the Hello Server application"""
import logging
import sys
from typing import Optional

import uvicorn

from hello_server.core.config import Settings, settings as default_settings
from hello_server.core.logging_config import init_application_logging
from hello_server.db.session import Database, DatabaseConnectionError

logger = logging.getLogger("hello_server.run")


def check_database(settings: Settings) -> None:
    """Exit the process when the database cannot be reached."""
    database = Database(settings.database_url)
    try:
        database.verify_connection()
    except DatabaseConnectionError as e:
        logger.error("%s", e)
        logger.error("Database connection error. Make sure the database is running.")
        sys.exit(1)
    finally:
        database.dispose()


def main(settings: Optional[Settings] = None) -> None:
    settings = settings or default_settings
    init_application_logging(settings)

    # Fail before a socket is bound
    check_database(settings)

    from hello_server.main import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.is_development else "info",
    )


if __name__ == "__main__":
    main()
