"""
Field profiling for the report schema review.

Guesses, from a column's name and SQL type alone, how a report should
treat it:
  - semantic role   (measure / dimension / time) with a confidence
  - display format  (currency, number, percentage, date, datetime, text)
  - aggregation     (SUM / AVG / NONE)
  - friendly display name and description
  - data-quality badges from null percentage and cardinality

Pure keyword heuristics; no database access.
"""
from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field

from src.schema.models import DatabaseSchema

SemanticRole = Literal["measure", "dimension", "time"]
AggregationType = Literal["SUM", "AVG", "COUNT", "MIN", "MAX", "NONE"]
DataFormat = Literal["currency", "number", "percentage", "date", "datetime", "text"]
BadgeType = Literal["warning", "info", "error"]

_TIME_PART_RE = re.compile(r"\b(year|month|day|quarter)\b")
_PREFIX_RE = re.compile(r"^(tbl_|fld_|col_)", re.IGNORECASE)
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")

_TEXT_TYPES = ("varchar", "char", "text", "string")
_MEASURE_TYPES = ("money", "decimal", "numeric", "float", "double")
_MEASURE_NAMES = ("amount", "total", "sum", "count", "quantity", "price", "cost", "revenue", "sales")
_CURRENCY_NAMES = ("price", "cost", "amount", "revenue", "sales")


class FieldSample(BaseModel):
    value: str
    count: int | None = None


class ValidationBadge(BaseModel):
    type: BadgeType
    message: str
    metric: str | None = None


class SchemaField(BaseModel):
    """One column as presented in the schema review."""

    technical_name: str
    display_name: str
    source: str
    included: bool = True
    description: str
    semantic_role: SemanticRole
    data_type: str
    data_format: DataFormat
    aggregation: AggregationType
    samples: list[FieldSample] = Field(default_factory=list)
    null_percentage: float = 0.0
    cardinality: int | None = None
    validation_badges: list[ValidationBadge] = Field(default_factory=list)
    is_detected: bool = True
    detection_confidence: float | None = None


def _any_in(haystack: str, needles: tuple[str, ...]) -> bool:
    return any(n in haystack for n in needles)


def detect_semantic_role(
    field_name: str,
    data_type: str,
    cardinality: int | None = None,
) -> tuple[SemanticRole, float]:
    """Return ``(role, confidence)`` for a column."""
    name = field_name.lower()
    dtype = data_type.lower()

    if (
        _any_in(dtype, ("date", "time", "timestamp"))
        or _any_in(name, ("date", "time"))
        or _TIME_PART_RE.search(name)
    ):
        return "time", 0.95

    if _any_in(dtype, _MEASURE_TYPES) or ("int" in dtype and _any_in(name, _MEASURE_NAMES)):
        return "measure", 0.9

    is_text = _any_in(dtype, _TEXT_TYPES)
    if cardinality is not None and cardinality < 1000 and is_text:
        return "dimension", 0.85
    if is_text:
        return "dimension", 0.7

    if _any_in(dtype, ("int", "decimal", "numeric")):
        return "measure", 0.6

    return "dimension", 0.5


def detect_data_format(field_name: str, data_type: str, semantic_role: SemanticRole) -> DataFormat:
    name = field_name.lower()
    dtype = data_type.lower()

    if semantic_role == "time":
        return "date" if "date" in dtype and "time" not in dtype else "datetime"
    if "money" in dtype or _any_in(name, _CURRENCY_NAMES):
        return "currency"
    if _any_in(name, ("percent", "rate", "ratio")):
        return "percentage"
    if _any_in(dtype, ("int", "decimal", "numeric", "float")):
        return "number"
    return "text"


def suggest_aggregation(semantic_role: SemanticRole, data_format: DataFormat, field_name: str) -> AggregationType:
    """Measures are summed unless their name says average; others are not aggregated."""
    if semantic_role != "measure":
        return "NONE"
    name = field_name.lower()
    if _any_in(name, ("count", "quantity", "number")):
        return "SUM"
    if _any_in(name, ("average", "avg", "mean", "rate")):
        return "AVG"
    return "SUM"


def generate_display_name(technical_name: str) -> str:
    """``tbl_order_total`` -> ``Order Total``, ``SuggestedQuantity`` -> ``Suggested Quantity``."""
    name = _PREFIX_RE.sub("", technical_name)
    name = _CAMEL_RE.sub(r"\1 \2", name.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))


def generate_description(
    display_name: str,
    semantic_role: SemanticRole,
    aggregation: AggregationType,
    data_format: DataFormat,
) -> str:
    if semantic_role == "measure":
        agg_text = "" if aggregation == "NONE" else f"{aggregation} of "
        format_text = "in currency" if data_format == "currency" else ""
        return f"{agg_text}{display_name.lower()} {format_text}".strip()
    if semantic_role == "time":
        return f"Time dimension: {display_name.lower()}"
    return f"Categorical dimension: {display_name.lower()}"


def create_validation_badges(
    null_percentage: float,
    cardinality: int | None = None,
    semantic_role: SemanticRole | None = None,
) -> list[ValidationBadge]:
    badges: list[ValidationBadge] = []

    if null_percentage > 50:
        badges.append(ValidationBadge(
            type="error", message="High null percentage", metric=f"{null_percentage:.0f}% null",
        ))
    elif null_percentage > 20:
        badges.append(ValidationBadge(
            type="warning", message="Moderate null percentage", metric=f"{null_percentage:.0f}% null",
        ))

    if cardinality is not None and semantic_role == "dimension":
        if cardinality > 10000:
            badges.append(ValidationBadge(
                type="warning", message="Very high cardinality", metric=f"{cardinality / 1000:.1f}k+ values",
            ))
        elif cardinality > 1000:
            badges.append(ValidationBadge(
                type="info", message="High cardinality", metric=f"{cardinality} distinct values",
            ))

    if cardinality is not None and cardinality <= 2 and semantic_role == "measure":
        badges.append(ValidationBadge(
            type="info", message="Low cardinality for measure", metric="Consider as dimension",
        ))

    return badges


def create_schema_field(
    technical_name: str,
    data_type: str,
    source: str,
    samples: list[FieldSample] | None = None,
    null_percentage: float = 0.0,
    cardinality: int | None = None,
) -> SchemaField:
    """Build a fully-detected `SchemaField` for one column."""
    display_name = generate_display_name(technical_name)
    role, confidence = detect_semantic_role(technical_name, data_type, cardinality)
    data_format = detect_data_format(technical_name, data_type, role)
    aggregation = suggest_aggregation(role, data_format, technical_name)
    return SchemaField(
        technical_name=technical_name,
        display_name=display_name,
        source=source,
        description=generate_description(display_name, role, aggregation, data_format),
        semantic_role=role,
        data_type=data_type,
        data_format=data_format,
        aggregation=aggregation,
        samples=samples or [],
        null_percentage=null_percentage,
        cardinality=cardinality,
        validation_badges=create_validation_badges(null_percentage, cardinality, role),
        is_detected=True,
        detection_confidence=confidence,
    )


def profile_schema(schema: DatabaseSchema) -> list[SchemaField]:
    """Detect a `SchemaField` for every column of *schema*."""
    return [
        create_schema_field(col.column_name, col.data_type, source=col.qualified_name)
        for col in schema.columns
    ]
