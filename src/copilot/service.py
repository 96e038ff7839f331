"""
Report-request service -- discover schema, evaluate coverage, decide.

Sits between the inference step (natural language -> InferenceResult)
and SQL generation:

  1. Discover the target database schema (demo schema on failure)
  2. Evaluate how many inferred fields map to real columns
  3. Render the schema context for prompts
  4. Allow SQL generation only when no field is missing
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, computed_field
from sqlalchemy.engine import Engine

from src.copilot.inference import InferenceResult, coverage_fields
from src.db.catalog import list_databases
from src.matching.coverage import CoverageReport, evaluate_coverage
from src.schema.discovery import discover_schema
from src.schema.models import DiscoverySource
from src.schema.summary import summarize_schema
from src.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DATABASES = ["SampleInventory"]


class SchemaInsights(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_name: str
    discovery_source: DiscoverySource
    fallback_reason: str | None = None
    coverage: CoverageReport
    schema_context: str

    @computed_field
    @property
    def can_generate_sql(self) -> bool:
        return not self.coverage.has_gaps


def available_databases(engine: Engine | None = None) -> list[str]:
    """Databases a report can target; a sample name when none are visible."""
    databases = list_databases(engine)
    return databases or list(DEFAULT_DATABASES)


def assess_request(
    database_name: str,
    inference: InferenceResult,
    engine: Engine | None = None,
) -> SchemaInsights:
    """Check an inferred report request against the target database.

    Raises
    ------
    InvalidIdentifier
        If *database_name* is not a safe identifier.
    """
    logger.info("Assessing report request | database=%s", database_name)

    discovery = discover_schema(database_name, engine=engine)
    if discovery.is_fallback:
        logger.warning(
            "Coverage for %s evaluated against demo schema: %s",
            database_name, discovery.reason,
        )

    report = evaluate_coverage(discovery.schema, coverage_fields(inference))
    if report.has_gaps:
        logger.warning(
            "Missing schema fields detected: %s",
            ", ".join(f.name for f in report.missing_fields),
        )

    return SchemaInsights(
        database_name=database_name,
        discovery_source=discovery.source,
        fallback_reason=discovery.reason,
        coverage=report,
        schema_context=summarize_schema(database_name, discovery.schema),
    )
