"""
Column matcher -- scores schema columns against a requested field name.

Scoring (higher is better, not clamped to 1.0):
  - exact match of normalised names                  -> 1.0, final
  - column contains field                            -> len(field) / len(column)
  - field contains column                            -> len(column) / len(field) * 0.8
  - either containment                               -> +0.3
  - each synonym rule whose substrings both appear   -> +weight

Scores rank candidates; only `MATCH_THRESHOLD` gives them absolute
meaning.  The threshold and weights are tuned constants.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from src.matching.normalizer import normalize
from src.schema.models import DatabaseSchema, TableColumn

_RULES_PATH = Path(__file__).resolve().parents[2] / "semantic_layer" / "match_rules.yml"

MATCH_THRESHOLD = 0.35
CONTAINMENT_BOOST = 0.3
REVERSE_CONTAINMENT_PENALTY = 0.8
DEFAULT_TOP_K = 3


# ── Data classes ────────────────────────────────────────


@dataclass(frozen=True)
class SynonymBoost:
    """Adds `weight` when the field contains `field_token` and the column `column_token`."""
    field_token: str
    column_token: str
    weight: float

    def applies(self, normalized_field: str, normalized_column: str) -> bool:
        return self.field_token in normalized_field and self.column_token in normalized_column


@dataclass(frozen=True)
class ColumnMatch:
    """A candidate column and its score for one requested field."""
    column: TableColumn
    score: float

    @property
    def qualified_name(self) -> str:
        return self.column.qualified_name

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.qualified_name, "score": round(self.score, 3)}


# ── Rule table ──────────────────────────────────────────


def _parse_rule(raw: dict[str, Any]) -> SynonymBoost:
    return SynonymBoost(
        field_token=normalize(str(raw["field"])),
        column_token=normalize(str(raw["column"])),
        weight=float(raw["weight"]),
    )


@lru_cache
def load_match_rules() -> tuple[SynonymBoost, ...]:
    """Load and cache the synonym boost table from YAML."""
    with open(_RULES_PATH) as f:
        raw = yaml.safe_load(f) or {}
    return tuple(_parse_rule(r) for r in raw.get("synonyms", []))


# ── Scoring ─────────────────────────────────────────────


def score(
    normalized_field: str,
    column: TableColumn,
    rules: tuple[SynonymBoost, ...] | list[SynonymBoost] | None = None,
) -> float:
    """Score *column* against an already-normalised field name.

    Never raises; returns 0.0 when nothing relates the two names.
    """
    normalized_column = normalize(column.column_name)
    if normalized_column == normalized_field:
        return 1.0

    if rules is None:
        rules = load_match_rules()

    column_contains_field = normalized_field in normalized_column
    field_contains_column = normalized_column in normalized_field

    result = 0.0
    if column_contains_field:
        result = len(normalized_field) / len(normalized_column)
    elif field_contains_column:
        result = len(normalized_column) / len(normalized_field) * REVERSE_CONTAINMENT_PENALTY

    if column_contains_field or field_contains_column:
        result += CONTAINMENT_BOOST

    for rule in rules:
        if rule.applies(normalized_field, normalized_column):
            result += rule.weight

    return result


def top_matches(
    field_name: str,
    schema: DatabaseSchema,
    limit: int = DEFAULT_TOP_K,
    rules: tuple[SynonymBoost, ...] | list[SynonymBoost] | None = None,
) -> list[ColumnMatch]:
    """Return the *limit* best-scoring columns for *field_name*.

    Sorted by score descending; equal scores keep schema column order.
    Zero-score columns are kept so there is always something to suggest.
    """
    if rules is None:
        rules = load_match_rules()
    normalized_field = normalize(field_name)
    scored = [ColumnMatch(column=col, score=score(normalized_field, col, rules)) for col in schema.columns]
    scored.sort(key=lambda m: m.score, reverse=True)
    return scored[:limit]


def find_match(
    field_name: str,
    schema: DatabaseSchema,
    threshold: float = MATCH_THRESHOLD,
) -> ColumnMatch | None:
    """Return the best column for *field_name* if it clears *threshold*."""
    best = top_matches(field_name, schema, limit=1)
    if best and best[0].score >= threshold:
        return best[0]
    return None
