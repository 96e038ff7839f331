"""
Typed schema objects produced by discovery.

Everything here is frozen: a `DatabaseSchema` is a snapshot owned by the
call that produced it and may be discarded or cached briefly, never
mutated.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class TableColumn:
    table_name: str
    column_name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False
    is_foreign_key: bool = False
    referenced_table: str | None = None
    referenced_column: str | None = None

    def __post_init__(self) -> None:
        if not self.table_name or not self.column_name:
            raise ValueError("TableColumn requires a table name and a column name")
        if self.is_foreign_key and not (self.referenced_table and self.referenced_column):
            raise ValueError(
                f"Foreign key {self.table_name}.{self.column_name} "
                "must name its referenced table and column"
            )

    @property
    def qualified_name(self) -> str:
        return f"{self.table_name}.{self.column_name}"


@dataclass(frozen=True)
class TableRelationship:
    from_table: str
    from_column: str
    to_table: str
    to_column: str


@dataclass(frozen=True)
class DatabaseSchema:
    """Tables, columns and FK edges of one database."""

    tables: tuple[str, ...] = ()
    columns: tuple[TableColumn, ...] = ()
    relationships: tuple[TableRelationship, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the snapshot stays immutable.
        object.__setattr__(self, "tables", tuple(self.tables))
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "relationships", tuple(self.relationships))

    def columns_for(self, table_name: str) -> list[TableColumn]:
        return [c for c in self.columns if c.table_name == table_name]

    def column_names(self) -> list[str]:
        return [c.qualified_name for c in self.columns]


DiscoverySource = Literal["live", "fallback"]


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of schema discovery, tagged with where the schema came from.

    ``source == "fallback"`` means `schema` is the built-in demo schema,
    not the target database; `reason` says why.
    """

    schema: DatabaseSchema
    database_name: str
    source: DiscoverySource = "live"
    reason: str | None = None
    elapsed_ms: int = field(default=0, compare=False)

    @property
    def is_live(self) -> bool:
        return self.source == "live"

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"
