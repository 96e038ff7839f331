"""
Compact, text and dict views of a discovered schema.

`summarize_schema` produces the schema context handed to the upstream
inference step; `schema_payload` is the structure embedded in SQL
generation requests; `field_metadata` backs the field picker.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from src.schema.models import DatabaseSchema, TableColumn

MAX_SUMMARY_TABLES = 12
MAX_SUMMARY_COLUMNS = 6


class FieldMetadata(BaseModel):
    name: str
    type: str
    description: str | None = None


def _describe_column(col: TableColumn) -> str:
    decorators = [d for d in ("PK" if col.is_primary_key else None, "FK" if col.is_foreign_key else None) if d]
    suffix = f" {'/'.join(decorators)}" if decorators else ""
    return f"{col.column_name} ({col.data_type}){suffix}"


def summarize_schema(database_name: str, schema: DatabaseSchema | None) -> str:
    """Render up to 12 tables with up to 6 columns each as plain text."""
    if schema is None:
        return f"Schema information for {database_name} is unavailable."

    grouped: dict[str, list[TableColumn]] = {}
    for col in schema.columns:
        grouped.setdefault(col.table_name, []).append(col)

    lines: list[str] = []
    described = schema.tables[:MAX_SUMMARY_TABLES]
    for table in described:
        columns = ", ".join(_describe_column(c) for c in grouped.get(table, [])[:MAX_SUMMARY_COLUMNS])
        lines.append(f"{table}: {columns or 'columns not available'}")

    remaining = len(schema.tables) - len(described)
    if remaining > 0:
        lines.append(f"...and {remaining} more tables")

    return f"Database: {database_name}\n" + "\n".join(lines)


def field_metadata(schema: DatabaseSchema | None) -> list[FieldMetadata]:
    """One entry per column, described by its key role."""
    if schema is None:
        return []
    result = []
    for col in schema.columns:
        if col.is_foreign_key:
            description = f"References {col.referenced_table}.{col.referenced_column}"
        elif col.is_primary_key:
            description = "Primary key"
        else:
            description = None
        result.append(FieldMetadata(name=col.qualified_name, type=col.data_type, description=description))
    return result


def schema_payload(schema: DatabaseSchema | None) -> dict[str, Any]:
    if schema is None:
        return {}
    return {
        "tables": list(schema.tables),
        "columns": [
            {
                "table": c.table_name,
                "column": c.column_name,
                "data_type": c.data_type,
                "is_nullable": c.is_nullable,
            }
            for c in schema.columns
        ],
        "relationships": [
            {
                "from_table": r.from_table,
                "from_column": r.from_column,
                "to_table": r.to_table,
                "to_column": r.to_column,
            }
            for r in schema.relationships
        ],
    }
