"""
Loads the built-in demo schema used when the target database is unreachable.

The schema lives in ``semantic_layer/demo_schema.yml``.  Relationships are
not stored in the file; they are projected from the foreign-key columns,
in column order, exactly as discovery does for a live database.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from src.schema.models import DatabaseSchema, TableColumn, TableRelationship

_DEMO_SCHEMA_PATH = Path(__file__).resolve().parents[2] / "semantic_layer" / "demo_schema.yml"


def _parse_column(table: str, raw: dict[str, Any]) -> TableColumn:
    ref_table = ref_column = None
    if raw.get("references"):
        ref_table, _, ref_column = str(raw["references"]).rpartition(".")
    return TableColumn(
        table_name=table,
        column_name=str(raw["name"]),
        data_type=str(raw["type"]),
        is_nullable=bool(raw.get("nullable", True)),
        is_primary_key=bool(raw.get("primary_key", False)),
        is_foreign_key=ref_table is not None,
        referenced_table=ref_table,
        referenced_column=ref_column,
    )


def relationships_from_columns(columns: list[TableColumn] | tuple[TableColumn, ...]) -> list[TableRelationship]:
    return [
        TableRelationship(
            from_table=c.table_name,
            from_column=c.column_name,
            to_table=c.referenced_table,
            to_column=c.referenced_column,
        )
        for c in columns
        if c.is_foreign_key
    ]


def _parse_schema(raw: dict[str, Any]) -> DatabaseSchema:
    tables = [str(t) for t in raw.get("tables", [])]
    raw_columns = raw.get("columns") or {}
    columns = [
        _parse_column(table, col)
        for table in tables
        for col in raw_columns.get(table, [])
    ]
    return DatabaseSchema(
        tables=tables,
        columns=columns,
        relationships=relationships_from_columns(columns),
    )


@lru_cache
def load_demo_schema() -> DatabaseSchema:
    """Load and cache the purchase-order / inventory demo schema."""
    with open(_DEMO_SCHEMA_PATH) as f:
        raw = yaml.safe_load(f)
    return _parse_schema(raw)
