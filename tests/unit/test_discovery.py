"""
Unit tests -- schema discovery: identifier safety, assembly, fallback.

The catalog is faked by patching `fetch_rows`, so no database is needed.
"""
import threading

import pytest
from src.core.errors import CatalogUnavailable, InvalidIdentifier
from src.schema import discovery
from src.schema.discovery import (
    assemble_schema,
    build_catalog_queries,
    discover_schema,
    format_data_type,
    quote_identifier,
    validate_identifier,
)
from src.schema.demo_schema import load_demo_schema
from src.schema.models import DatabaseSchema, DiscoveryResult, TableRelationship


TABLE_ROWS = [
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Customers"},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "OrderLines"},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Orders"},
]

COLUMN_ROWS = [
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Customers", "COLUMN_NAME": "CustomerId",
     "DATA_TYPE": "int", "IS_NULLABLE": "NO", "CHARACTER_MAXIMUM_LENGTH": None},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Customers", "COLUMN_NAME": "Name",
     "DATA_TYPE": "nvarchar", "IS_NULLABLE": "NO", "CHARACTER_MAXIMUM_LENGTH": 50},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Customers", "COLUMN_NAME": "Notes",
     "DATA_TYPE": "nvarchar", "IS_NULLABLE": "YES", "CHARACTER_MAXIMUM_LENGTH": -1},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "OrderLines", "COLUMN_NAME": "OrderId",
     "DATA_TYPE": "int", "IS_NULLABLE": "NO", "CHARACTER_MAXIMUM_LENGTH": None},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "OrderLines", "COLUMN_NAME": "LineNo",
     "DATA_TYPE": "int", "IS_NULLABLE": "NO", "CHARACTER_MAXIMUM_LENGTH": None},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Orders", "COLUMN_NAME": "OrderId",
     "DATA_TYPE": "int", "IS_NULLABLE": "NO", "CHARACTER_MAXIMUM_LENGTH": None},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Orders", "COLUMN_NAME": "CustomerId",
     "DATA_TYPE": "int", "IS_NULLABLE": "YES", "CHARACTER_MAXIMUM_LENGTH": None},
]

PK_ROWS = [
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Customers", "COLUMN_NAME": "CustomerId"},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "Orders", "COLUMN_NAME": "OrderId"},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "OrderLines", "COLUMN_NAME": "OrderId"},
    {"TABLE_SCHEMA": "dbo", "TABLE_NAME": "OrderLines", "COLUMN_NAME": "LineNo"},
]

FK_ROWS = [
    {"FK_SCHEMA": "dbo", "FK_TABLE": "Orders", "FK_COLUMN": "CustomerId",
     "PK_SCHEMA": "dbo", "PK_TABLE": "Customers", "PK_COLUMN": "CustomerId"},
    {"FK_SCHEMA": "dbo", "FK_TABLE": "OrderLines", "FK_COLUMN": "OrderId",
     "PK_SCHEMA": "dbo", "PK_TABLE": "Orders", "PK_COLUMN": "OrderId"},
]


class FakeCatalog:
    """Stands in for `fetch_rows`, answering each catalog query by its shape."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.threads: set[str] = set()
        self._lock = threading.Lock()

    def _kind(self, sql: str) -> str:
        if "REFERENTIAL_CONSTRAINTS" in sql:
            return "foreign_keys"
        if "PRIMARY KEY" in sql:
            return "primary_keys"
        if "INFORMATION_SCHEMA.COLUMNS" in sql:
            return "columns"
        return "tables"

    def __call__(self, engine, sql, params=None):
        kind = self._kind(sql)
        with self._lock:
            self.calls.append(kind)
            self.threads.add(threading.current_thread().name)
        if kind == self.fail_on:
            raise RuntimeError(f"{kind} query failed: connection reset")
        return {
            "tables": TABLE_ROWS,
            "columns": COLUMN_ROWS,
            "primary_keys": PK_ROWS,
            "foreign_keys": FK_ROWS,
        }[kind]


@pytest.fixture
def fake_catalog(monkeypatch):
    catalog = FakeCatalog()
    monkeypatch.setattr(discovery, "fetch_rows", catalog)
    return catalog


# ── Identifier safety ───────────────────────────────────


@pytest.mark.parametrize("name", ["SampleInventory", "cust_01", "tenant-42", "A"])
def test_valid_identifiers(name):
    assert validate_identifier(name) == name


@pytest.mark.parametrize("name", ["bad;name", "db name", "db]", "a.b", "x'--", "", "Inventário", "name\n", "SampleInventory\n"])
def test_invalid_identifiers(name):
    with pytest.raises(InvalidIdentifier):
        validate_identifier(name)


def test_invalid_identifier_is_a_value_error():
    with pytest.raises(ValueError):
        validate_identifier("bad;name")


def test_empty_identifier_message():
    with pytest.raises(InvalidIdentifier, match="required"):
        validate_identifier("")


def test_quote_identifier_brackets():
    assert quote_identifier("SampleInventory") == "[SampleInventory]"


def test_queries_scoped_to_database():
    queries = build_catalog_queries("Tenant_7")
    assert set(queries) == {"tables", "columns", "primary_keys", "foreign_keys"}
    for sql in queries.values():
        assert "[Tenant_7].INFORMATION_SCHEMA." in sql


def test_invalid_identifier_issues_no_query(fake_catalog, monkeypatch):
    engine_requested = []
    monkeypatch.setattr(discovery, "get_engine", lambda: engine_requested.append(True))
    with pytest.raises(InvalidIdentifier):
        discover_schema("bad;name")
    assert fake_catalog.calls == []
    assert engine_requested == []


def test_trailing_newline_rejected_before_querying(fake_catalog):
    with pytest.raises(InvalidIdentifier):
        discover_schema("SampleInventory\n", engine=object(), parallel=False)
    assert fake_catalog.calls == []


def test_invalid_identifier_to_dict():
    err = InvalidIdentifier("bad;name")
    assert err.to_dict()["code"] == "INVALID_IDENTIFIER"
    assert err.to_dict()["details"] == {"identifier": "bad;name"}


# ── Type formatting ─────────────────────────────────────


@pytest.mark.parametrize("dtype, length, expected", [
    ("int", None, "int"),
    ("nvarchar", 50, "nvarchar(50)"),
    ("nvarchar", -1, "nvarchar(max)"),
    ("varbinary", -1, "varbinary(max)"),
    ("char", 0, "char"),
])
def test_format_data_type(dtype, length, expected):
    assert format_data_type(dtype, length) == expected


# ── Assembly ────────────────────────────────────────────


@pytest.fixture
def assembled() -> DatabaseSchema:
    return assemble_schema(TABLE_ROWS, COLUMN_ROWS, PK_ROWS, FK_ROWS)


def test_tables_schema_qualified_in_catalog_order(assembled):
    assert assembled.tables == ("dbo.Customers", "dbo.OrderLines", "dbo.Orders")


def test_columns_keep_catalog_order(assembled):
    assert assembled.column_names() == [
        "dbo.Customers.CustomerId",
        "dbo.Customers.Name",
        "dbo.Customers.Notes",
        "dbo.OrderLines.OrderId",
        "dbo.OrderLines.LineNo",
        "dbo.Orders.OrderId",
        "dbo.Orders.CustomerId",
    ]


def test_column_types_and_nullability(assembled):
    name, notes = assembled.columns[1], assembled.columns[2]
    assert name.data_type == "nvarchar(50)"
    assert name.is_nullable is False
    assert notes.data_type == "nvarchar(max)"
    assert notes.is_nullable is True


def test_primary_keys_detected(assembled):
    pks = [c.qualified_name for c in assembled.columns if c.is_primary_key]
    assert pks == [
        "dbo.Customers.CustomerId",
        "dbo.OrderLines.OrderId",
        "dbo.OrderLines.LineNo",
        "dbo.Orders.OrderId",
    ]


def test_foreign_keys_detected(assembled):
    fk = next(c for c in assembled.columns if c.qualified_name == "dbo.Orders.CustomerId")
    assert fk.is_foreign_key is True
    assert fk.referenced_table == "dbo.Customers"
    assert fk.referenced_column == "CustomerId"
    assert fk.is_primary_key is False


def test_column_can_be_both_pk_and_fk(assembled):
    col = next(c for c in assembled.columns if c.qualified_name == "dbo.OrderLines.OrderId")
    assert col.is_primary_key is True
    assert col.is_foreign_key is True
    assert col.referenced_table == "dbo.Orders"


def test_relationships_follow_fk_rows(assembled):
    assert list(assembled.relationships) == [
        TableRelationship("dbo.Orders", "CustomerId", "dbo.Customers", "CustomerId"),
        TableRelationship("dbo.OrderLines", "OrderId", "dbo.Orders", "OrderId"),
    ]


def test_empty_catalog_assembles_empty_schema():
    schema = assemble_schema([], [], [], [])
    assert schema == DatabaseSchema()


# ── discover_schema ─────────────────────────────────────


def test_live_discovery(fake_catalog):
    result = discover_schema("Sales", engine=object(), parallel=False)
    assert isinstance(result, DiscoveryResult)
    assert result.is_live
    assert result.source == "live"
    assert result.reason is None
    assert result.database_name == "Sales"
    assert result.schema == assemble_schema(TABLE_ROWS, COLUMN_ROWS, PK_ROWS, FK_ROWS)
    assert sorted(fake_catalog.calls) == ["columns", "foreign_keys", "primary_keys", "tables"]


def test_parallel_and_sequential_agree(fake_catalog):
    sequential = discover_schema("Sales", engine=object(), parallel=False)
    parallel = discover_schema("Sales", engine=object(), parallel=True)
    assert sequential.schema == parallel.schema
    assert any(name.startswith("catalog") for name in fake_catalog.threads)


def test_no_connection_falls_back(fake_catalog, monkeypatch):
    monkeypatch.setattr(discovery, "get_engine", lambda: None)
    result = discover_schema("SampleInventory")
    assert result.is_fallback
    assert result.schema == load_demo_schema()
    assert "No database connection" in result.reason
    assert fake_catalog.calls == []


@pytest.mark.parametrize("failing", ["tables", "columns", "primary_keys", "foreign_keys"])
def test_query_failure_falls_back(monkeypatch, failing):
    monkeypatch.setattr(discovery, "fetch_rows", FakeCatalog(fail_on=failing))
    result = discover_schema("Sales", engine=object())
    assert result.is_fallback
    assert result.schema == load_demo_schema()
    assert "connection reset" in result.reason


def test_failure_is_logged(monkeypatch, caplog):
    monkeypatch.setattr(discovery, "fetch_rows", FakeCatalog(fail_on="columns"))
    with caplog.at_level("ERROR"):
        discover_schema("Sales", engine=object(), parallel=False)
    assert "Schema discovery failed for Sales" in caplog.text


def test_malformed_rows_fall_back(monkeypatch):
    monkeypatch.setattr(discovery, "fetch_rows", lambda engine, sql, params=None: [{"unexpected": 1}])
    result = discover_schema("Sales", engine=object(), parallel=False)
    assert result.is_fallback


def test_catalog_unavailable_carries_database():
    err = CatalogUnavailable("Sales", "timeout")
    assert err.database_name == "Sales"
    assert err.to_dict() == {"code": "CATALOG_UNAVAILABLE", "message": "timeout", "details": {"database": "Sales"}}


@pytest.mark.parametrize("name", ["SampleInventory", "a", "tenant-1", "x_y_z"])
def test_valid_names_always_return_a_schema(monkeypatch, name):
    monkeypatch.setattr(discovery, "get_engine", lambda: None)
    result = discover_schema(name)
    assert result is not None
    assert result.schema is not None
