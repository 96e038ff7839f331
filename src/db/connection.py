"""SQLAlchemy engine for the SQL Server catalog source.

Single shared engine with connection pooling.  Unlike a hard dependency,
the catalog database is optional: when the SQLSERVER_* settings are
incomplete, or the engine cannot be built (missing ODBC driver, bad URL),
`get_engine` returns None and callers degrade to the demo schema.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine

from src.core.config import get_settings
from src.core.logging import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def _query_timeout_listener(seconds: int):
    """Build a pool ``connect`` listener that caps every statement at *seconds*.

    pyodbc's ``timeout`` connection attribute is the per-query timeout;
    the ``timeout`` connect argument only bounds the login.
    """
    def set_query_timeout(dbapi_connection, connection_record) -> None:
        dbapi_connection.timeout = seconds

    return set_query_timeout


def get_engine() -> Engine | None:
    """Return the shared SQLAlchemy engine, or None if no database is available."""
    global _engine
    if _engine is None:
        settings = get_settings()
        if not settings.is_database_configured:
            logger.warning("SQL Server environment variables are not fully configured")
            return None
        try:
            _engine = create_engine(
                settings.database_url,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                connect_args={"timeout": settings.catalog_query_timeout_s},  # login
                echo=False,
            )
        except Exception:
            logger.exception("Failed to create SQL Server engine")
            return None
        event.listen(_engine, "connect", _query_timeout_listener(settings.catalog_query_timeout_s))
        logger.info(
            "DB engine created  host=%s  db=%s",
            settings.sqlserver_host, settings.sqlserver_database,
        )
    return _engine


def reset_engine() -> None:
    """Dispose the cached engine (settings changed, tests)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


@contextmanager
def catalog_connection(engine: Engine) -> Generator[Connection, None, None]:
    """Yield a pooled connection for catalog reads.

    The connection is returned to the pool on exit; no transaction is
    committed because catalog reads never write.
    """
    conn = engine.connect()
    try:
        yield conn
    finally:
        conn.close()
