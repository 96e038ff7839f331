"""
Coverage evaluator -- how many requested fields the schema can answer.

Each unique requested field lands in exactly one of:
  matched_fields  best column scored >= MATCH_THRESHOLD
  missing_fields  otherwise, with up to three suggested columns

A missing field is ordinary output, not an error.  Callers block SQL
generation while `CoverageReport.has_gaps` is true.
"""
from __future__ import annotations

from pydantic import BaseModel, Field, computed_field

from src.core.logging import get_logger
from src.core.utils import round_half_up
from src.matching.matcher import DEFAULT_TOP_K, MATCH_THRESHOLD, load_match_rules, top_matches
from src.schema.models import DatabaseSchema

logger = get_logger(__name__)


class MatchedField(BaseModel):
    name: str = Field(..., description="Requested field name, trimmed")
    column: str = Field(..., description="Resolved column as 'table.column'")
    confidence: float = Field(..., description="Match score x 100, one decimal")


class MissingField(BaseModel):
    name: str = Field(..., description="Requested field name, trimmed")
    suggestions: list[str] = Field(default_factory=list, description="Best candidate columns, best first")


class CoverageReport(BaseModel):
    """Result of matching a batch of requested fields against a schema."""

    coverage_percent: int = Field(100, ge=0, le=100)
    matched_fields: list[MatchedField] = Field(default_factory=list)
    missing_fields: list[MissingField] = Field(default_factory=list)

    @computed_field
    @property
    def has_gaps(self) -> bool:
        return bool(self.missing_fields)


def unique_fields(field_names: list[str]) -> list[str]:
    """Trim, drop blanks and de-duplicate (case-sensitive), keeping first-seen order."""
    return list(dict.fromkeys(
        name.strip() for name in field_names
        if isinstance(name, str) and name.strip()
    ))


def _percent(matched: int, total: int) -> int:
    if total == 0:
        return 100
    return int(round_half_up(matched / total * 100))


def _empty_report(fields: list[str]) -> CoverageReport:
    # Every field is still accounted for, just with nothing to suggest.
    return CoverageReport(
        coverage_percent=0 if fields else 100,
        missing_fields=[MissingField(name=name) for name in fields],
    )


def evaluate_coverage(schema: DatabaseSchema | None, field_names: list[str]) -> CoverageReport:
    """Match every unique requested field against *schema*.

    Never raises.  Without a schema, coverage is 0 when fields were
    requested and 100 when none were; every field is reported missing
    with no suggestions.
    """
    fields = unique_fields(field_names or [])
    if schema is None:
        return _empty_report(fields)

    matched: list[MatchedField] = []
    missing: list[MissingField] = []
    try:
        rules = load_match_rules()
        for name in fields:
            candidates = top_matches(name, schema, limit=DEFAULT_TOP_K, rules=rules)
            best = candidates[0] if candidates else None
            if best is not None and best.score >= MATCH_THRESHOLD:
                matched.append(MatchedField(
                    name=name,
                    column=best.qualified_name,
                    confidence=round_half_up(best.score * 100, 1),
                ))
            else:
                missing.append(MissingField(
                    name=name,
                    suggestions=[c.qualified_name for c in candidates],
                ))
    except Exception:
        logger.exception("Coverage evaluation failed -- reporting as if no schema were available")
        return _empty_report(fields)

    report = CoverageReport(
        coverage_percent=_percent(len(matched), len(fields)),
        matched_fields=matched,
        missing_fields=missing,
    )
    logger.debug(
        "Coverage %d%%: %d matched, %d missing",
        report.coverage_percent, len(matched), len(missing),
    )
    return report
