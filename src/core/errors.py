"""
Exception hierarchy for schema discovery.

Only identifier validation escapes to callers.  Catalog failures are
wrapped in `CatalogUnavailable` and absorbed by discovery, which falls
back to the demo schema.  Field matching has no error type at all: a
field that matches nothing is reported as data.
"""
from __future__ import annotations

from typing import Any


class SchemaCoreError(Exception):
    """Base class for schema-core errors."""

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidIdentifier(SchemaCoreError, ValueError):
    """Database name failed the identifier-safety pattern."""

    def __init__(self, identifier: str, message: str | None = None):
        super().__init__(
            message=message or f"Invalid database name: {identifier!r}",
            code="INVALID_IDENTIFIER",
            details={"identifier": identifier},
        )
        self.identifier = identifier


class CatalogUnavailable(SchemaCoreError):
    """The catalog could not be read (no connection, query error, timeout)."""

    def __init__(self, database_name: str, message: str):
        super().__init__(
            message=message,
            code="CATALOG_UNAVAILABLE",
            details={"database": database_name},
        )
        self.database_name = database_name
