"""
Catalog reader -- runs INFORMATION_SCHEMA / sys queries and returns rows.

All schema-discovery SQL goes through `fetch_rows`, which:
  1. Takes its own pooled connection (safe to call from worker threads)
  2. Wraps the query in text()
  3. Returns rows as plain dicts keyed by column label
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine

from src.db.connection import catalog_connection, get_engine
from src.core.logging import get_logger

logger = get_logger(__name__)

_DATABASES_SQL = "SELECT name FROM sys.databases WHERE database_id > 4 ORDER BY name"


def fetch_rows(engine: Engine, sql: str, params: dict | None = None) -> list[dict[str, Any]]:
    """Execute a catalog query and return its rows as dicts.

    Raises whatever the driver raises; discovery decides how to recover.
    """
    with catalog_connection(engine) as conn:
        result = conn.execute(text(sql), params or {})
        rows = [dict(row._mapping) for row in result]
    logger.debug("Catalog query returned %d rows", len(rows))
    return rows


def list_databases(engine: Engine | None = None) -> list[str]:
    """Return user database names on the server (system databases excluded).

    Returns an empty list when no connection is available or the query fails.
    """
    if engine is None:
        engine = get_engine()
    if engine is None:
        return []
    try:
        rows = fetch_rows(engine, _DATABASES_SQL)
    except Exception:
        logger.exception("Failed to fetch databases")
        return []
    return [row["name"] for row in rows]
