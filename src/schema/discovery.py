"""
Schema discovery -- reads INFORMATION_SCHEMA of one SQL Server database.

Pipeline:
  1. Validate the database name (``^[\\w-]+$``) and bracket-quote it
  2. Run the four catalog queries (tables, columns, primary keys,
     foreign keys), concurrently by default
  3. Assemble a `DatabaseSchema` from the row sets

Any failure after step 1 -- no configured connection, driver error,
timeout -- is logged and answered with the built-in demo schema,
tagged ``source="fallback"`` so callers can tell it apart from the real
database.  Nothing is cached between calls.
"""
from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from sqlalchemy.engine import Engine

from src.core.config import get_settings
from src.core.errors import CatalogUnavailable, InvalidIdentifier
from src.core.logging import get_logger
from src.core.utils import timer
from src.db.catalog import fetch_rows
from src.db.connection import get_engine
from src.schema.demo_schema import load_demo_schema
from src.schema.models import DatabaseSchema, DiscoveryResult, TableColumn, TableRelationship

logger = get_logger(__name__)

_IDENTIFIER_RE = re.compile(r"[\w-]+", re.ASCII)

Row = dict[str, Any]


# ── Identifier handling ─────────────────────────────────


def validate_identifier(value: str) -> str:
    """Return *value* unchanged if it is a safe database name.

    Raises
    ------
    InvalidIdentifier
        If the name is empty or contains anything other than letters,
        digits, ``_`` and ``-``.
    """
    if not value:
        raise InvalidIdentifier(value, "Database name is required")
    if not _IDENTIFIER_RE.fullmatch(value):
        raise InvalidIdentifier(value)
    return value


def quote_identifier(value: str) -> str:
    """Validate and bracket-quote a database name for T-SQL."""
    validate_identifier(value)
    return "[" + value.replace("]", "]]") + "]"


# ── Catalog queries ─────────────────────────────────────


def build_catalog_queries(database_name: str) -> dict[str, str]:
    """Return the four catalog queries keyed by result set name."""
    db = quote_identifier(database_name)
    return {
        "tables": f"""
            SELECT TABLE_SCHEMA, TABLE_NAME
            FROM {db}.INFORMATION_SCHEMA.TABLES
            WHERE TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_SCHEMA, TABLE_NAME
        """,
        "columns": f"""
            SELECT
                c.TABLE_SCHEMA,
                c.TABLE_NAME,
                c.COLUMN_NAME,
                c.DATA_TYPE,
                c.IS_NULLABLE,
                c.CHARACTER_MAXIMUM_LENGTH
            FROM {db}.INFORMATION_SCHEMA.COLUMNS c
            ORDER BY c.TABLE_SCHEMA, c.TABLE_NAME, c.ORDINAL_POSITION
        """,
        "primary_keys": f"""
            SELECT
                ku.TABLE_SCHEMA,
                ku.TABLE_NAME,
                ku.COLUMN_NAME
            FROM {db}.INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
            JOIN {db}.INFORMATION_SCHEMA.KEY_COLUMN_USAGE ku
              ON tc.CONSTRAINT_NAME = ku.CONSTRAINT_NAME
            WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
        """,
        "foreign_keys": f"""
            SELECT
                fk.TABLE_SCHEMA AS FK_SCHEMA,
                fk.TABLE_NAME AS FK_TABLE,
                fk.COLUMN_NAME AS FK_COLUMN,
                pk.TABLE_SCHEMA AS PK_SCHEMA,
                pk.TABLE_NAME AS PK_TABLE,
                pk.COLUMN_NAME AS PK_COLUMN
            FROM {db}.INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
            JOIN {db}.INFORMATION_SCHEMA.KEY_COLUMN_USAGE fk
              ON rc.CONSTRAINT_NAME = fk.CONSTRAINT_NAME
            JOIN {db}.INFORMATION_SCHEMA.KEY_COLUMN_USAGE pk
              ON rc.UNIQUE_CONSTRAINT_NAME = pk.CONSTRAINT_NAME
             AND fk.ORDINAL_POSITION = pk.ORDINAL_POSITION
        """,
    }


def _run_queries(engine: Engine, queries: dict[str, str], parallel: bool) -> dict[str, list[Row]]:
    if not parallel:
        return {name: fetch_rows(engine, sql) for name, sql in queries.items()}

    # One pooled connection per query; all must finish before assembly.
    with ThreadPoolExecutor(max_workers=len(queries), thread_name_prefix="catalog") as pool:
        futures = {name: pool.submit(fetch_rows, engine, sql) for name, sql in queries.items()}
        return {name: future.result() for name, future in futures.items()}


# ── Assembly ────────────────────────────────────────────


def format_data_type(data_type: str, max_length: int | None) -> str:
    """Fold the character length into the type: ``nvarchar(50)``, ``nvarchar(max)``."""
    if max_length is None:
        return data_type
    if max_length == -1:
        return f"{data_type}(max)"
    if max_length > 0:
        return f"{data_type}({max_length})"
    return data_type


def _key(schema: str, table: str, column: str) -> str:
    return f"{schema}.{table}.{column}"


def assemble_schema(
    tables: list[Row],
    columns: list[Row],
    primary_keys: list[Row],
    foreign_keys: list[Row],
) -> DatabaseSchema:
    """Build a `DatabaseSchema` from the four catalog result sets.

    Table names are schema-qualified (``dbo.Orders``).  A column is a
    primary key iff its ``schema.table.column`` key appears in the PK set;
    foreign-key columns carry the table and column they reference.
    """
    pk_set = {
        _key(r["TABLE_SCHEMA"], r["TABLE_NAME"], r["COLUMN_NAME"])
        for r in primary_keys
    }

    fk_map: dict[str, tuple[str, str]] = {}
    relationships: list[TableRelationship] = []
    for r in foreign_keys:
        referenced_table = f"{r['PK_SCHEMA']}.{r['PK_TABLE']}"
        fk_map[_key(r["FK_SCHEMA"], r["FK_TABLE"], r["FK_COLUMN"])] = (
            referenced_table, r["PK_COLUMN"],
        )
        relationships.append(TableRelationship(
            from_table=f"{r['FK_SCHEMA']}.{r['FK_TABLE']}",
            from_column=r["FK_COLUMN"],
            to_table=referenced_table,
            to_column=r["PK_COLUMN"],
        ))

    table_columns: list[TableColumn] = []
    for r in columns:
        key = _key(r["TABLE_SCHEMA"], r["TABLE_NAME"], r["COLUMN_NAME"])
        fk_info = fk_map.get(key)
        table_columns.append(TableColumn(
            table_name=f"{r['TABLE_SCHEMA']}.{r['TABLE_NAME']}",
            column_name=r["COLUMN_NAME"],
            data_type=format_data_type(r["DATA_TYPE"], r.get("CHARACTER_MAXIMUM_LENGTH")),
            is_nullable=r["IS_NULLABLE"] == "YES",
            is_primary_key=key in pk_set,
            is_foreign_key=fk_info is not None,
            referenced_table=fk_info[0] if fk_info else None,
            referenced_column=fk_info[1] if fk_info else None,
        ))

    table_names = list(dict.fromkeys(f"{r['TABLE_SCHEMA']}.{r['TABLE_NAME']}" for r in tables))

    return DatabaseSchema(
        tables=table_names,
        columns=table_columns,
        relationships=relationships,
    )


# ── Public API ──────────────────────────────────────────


def _read_schema(
    database_name: str,
    engine: Engine,
    queries: dict[str, str],
    parallel: bool,
) -> DatabaseSchema:
    try:
        results = _run_queries(engine, queries, parallel)
        return assemble_schema(
            results["tables"],
            results["columns"],
            results["primary_keys"],
            results["foreign_keys"],
        )
    except Exception as exc:
        raise CatalogUnavailable(database_name, f"Error discovering schema: {exc}") from exc


def _fallback(database_name: str, reason: str, elapsed_ms: int = 0) -> DiscoveryResult:
    return DiscoveryResult(
        schema=load_demo_schema(),
        database_name=database_name,
        source="fallback",
        reason=reason,
        elapsed_ms=elapsed_ms,
    )


def discover_schema(
    database_name: str,
    engine: Engine | None = None,
    parallel: bool | None = None,
) -> DiscoveryResult:
    """Discover tables, columns and keys of *database_name*.

    Parameters
    ----------
    database_name : str
        Name of the database on the configured server.
    engine : Engine, optional
        Engine to read the catalog through; defaults to the shared engine.
    parallel : bool, optional
        Run the catalog queries concurrently.  Defaults to the
        ``catalog_parallel_queries`` setting.

    Returns
    -------
    DiscoveryResult
        Never None.  ``source="fallback"`` carries the demo schema.

    Raises
    ------
    InvalidIdentifier
        If *database_name* is not a safe identifier.  No query is issued.
    """
    queries = build_catalog_queries(database_name)
    if parallel is None:
        parallel = get_settings().catalog_parallel_queries

    if engine is None:
        engine = get_engine()
    if engine is None:
        logger.info("No database connection available, using demo schema for %s", database_name)
        return _fallback(database_name, "No database connection available")

    failure: CatalogUnavailable | None = None
    with timer() as t:
        try:
            schema = _read_schema(database_name, engine, queries, parallel)
        except CatalogUnavailable as exc:
            logger.exception("Schema discovery failed for %s -- using demo schema", database_name)
            failure = exc

    if failure is not None:
        return _fallback(database_name, failure.message, t["elapsed_ms"])

    logger.info(
        "Discovered schema for %s: %d tables, %d columns, %d relationships (%d ms)",
        database_name, len(schema.tables), len(schema.columns),
        len(schema.relationships), t["elapsed_ms"],
    )
    return DiscoveryResult(
        schema=schema,
        database_name=database_name,
        source="live",
        elapsed_ms=t["elapsed_ms"],
    )
