"""
InferenceResult -- the structured output of the natural-language step.

The inference step itself (prompting an LLM) lives outside this package;
this model is the contract its output must satisfy before coverage is
evaluated.
"""
from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, Field

_FENCE_START_RE = re.compile(r"^```(?:json)?\s*")
_FENCE_END_RE = re.compile(r"\s*```$")


class FilterCondition(BaseModel):
    field: str = Field(..., description="Field the condition applies to")
    operator: str = Field(..., description="e.g. 'equals', 'greater_than'")
    value: str


class InferenceResult(BaseModel):
    """Metrics, dimensions and filters inferred from a report request."""

    metrics: list[str] = Field(default_factory=list, description="Measures to calculate")
    dimensions: list[str] = Field(default_factory=list, description="Grouping fields")
    filters: list[FilterCondition] = Field(default_factory=list, description="Filter conditions")

    @classmethod
    def from_llm_content(cls, content: str | dict[str, Any]) -> "InferenceResult":
        """Parse an LLM message body (JSON text, optionally fenced, or a dict).

        Raises
        ------
        ValueError
            If the text is not valid JSON or does not fit the model.
        """
        if isinstance(content, dict):
            return cls.model_validate(content)

        text = content.strip()
        if text.startswith("```"):
            text = _FENCE_END_RE.sub("", _FENCE_START_RE.sub("", text))
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Inference response is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("Inference response must be a JSON object")
        return cls.model_validate(data)


def coverage_fields(inference: InferenceResult) -> list[str]:
    """All field names the report refers to: metrics, then dimensions, then filter fields."""
    return [
        *inference.metrics,
        *inference.dimensions,
        *(f.field for f in inference.filters),
    ]
