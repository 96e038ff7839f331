"""
Unit tests -- schema summary, field metadata and payload views.
"""
from src.schema.demo_schema import load_demo_schema
from src.schema.models import DatabaseSchema, TableColumn
from src.schema.summary import FieldMetadata, field_metadata, schema_payload, summarize_schema


def test_summary_header_and_first_table():
    text = summarize_schema("SampleInventory", load_demo_schema())
    lines = text.splitlines()
    assert lines[0] == "Database: SampleInventory"
    assert lines[1].startswith("PurchaseOrders: OrderId (int) PK, Date (date), OrderNumber (nvarchar)")


def test_summary_limits_columns_per_table():
    text = summarize_schema("SampleInventory", load_demo_schema())
    po_line = text.splitlines()[1]
    assert po_line.count("(") == 6
    assert "SuggestedQuantity (decimal)" in po_line
    assert "ActualOrderQuantity" not in po_line


def test_summary_marks_foreign_keys():
    text = summarize_schema("SampleInventory", load_demo_schema())
    assert "LocationId (int) FK" in text


def test_summary_pk_and_fk_together():
    schema = DatabaseSchema(
        tables=["dbo.Lines"],
        columns=[TableColumn("dbo.Lines", "OrderId", "int", is_primary_key=True,
                             is_foreign_key=True, referenced_table="dbo.Orders", referenced_column="OrderId")],
    )
    assert "OrderId (int) PK/FK" in summarize_schema("X", schema)


def test_summary_truncates_tables():
    tables = [f"dbo.T{i:02d}" for i in range(15)]
    schema = DatabaseSchema(tables=tables, columns=[TableColumn(t, "Id", "int") for t in tables])
    lines = summarize_schema("Big", schema).splitlines()
    assert len(lines) == 1 + 12 + 1
    assert lines[-1] == "...and 3 more tables"


def test_summary_table_without_columns():
    schema = DatabaseSchema(tables=["dbo.Empty"])
    assert "dbo.Empty: columns not available" in summarize_schema("X", schema)


def test_summary_without_schema():
    assert summarize_schema("Gone", None) == "Schema information for Gone is unavailable."


def test_field_metadata_descriptions():
    meta = {m.name: m for m in field_metadata(load_demo_schema())}
    assert meta["PurchaseOrders.OrderId"].description == "Primary key"
    assert meta["PurchaseOrders.LocationId"].description == "References Locations.LocationId"
    assert meta["PurchaseOrders.Date"].description is None
    assert meta["PurchaseOrders.Date"].type == "date"
    assert len(meta) == 33


def test_field_metadata_without_schema():
    assert field_metadata(None) == []


def test_field_metadata_model():
    m = FieldMetadata(name="T.C", type="int")
    assert m.model_dump() == {"name": "T.C", "type": "int", "description": None}


def test_schema_payload_shape():
    payload = schema_payload(load_demo_schema())
    assert payload["tables"][0] == "PurchaseOrders"
    assert payload["columns"][0] == {
        "table": "PurchaseOrders", "column": "OrderId", "data_type": "int", "is_nullable": False,
    }
    assert payload["relationships"][0] == {
        "from_table": "PurchaseOrders", "from_column": "LocationId",
        "to_table": "Locations", "to_column": "LocationId",
    }


def test_schema_payload_without_schema():
    assert schema_payload(None) == {}
