"""Decoder for the agent coordinator's pipe-delimited response protocol.

A coordinator reply looks like::

    [SQL] Query: how many customers | SQL: SELECT COUNT(*) FROM customers |
    Results: [{'count': 42}] | [RAG] Answer: ... | Confidence: 0.82

Segments are split on ``" | "``, trimmed, and matched against ``SEGMENT_RULES``
in order. The first rule whose prefix matches consumes the segment; anything
unmatched is kept verbatim in ``raw_parts``.
"""

from typing import Any, NamedTuple

from pydantic import BaseModel, Field

from src.normalize.literal import parse_literal_results

SEGMENT_DELIMITER = " | "

RAW_PARTS_FIELD = "raw_parts"
RESULTS_RAW_FIELD = "sql_results_raw"


class RawPart(BaseModel):
    kind: str
    content: str


class DecodedResult(BaseModel):
    """Structured view of one coordinator response. Unmatched fields stay None."""

    sql_query: str | None = None
    sql_results_raw: str | None = None
    sql_results_data: list[dict[str, Any]] = Field(default_factory=list)
    rag_answer: str | None = None
    rag_confidence: str | None = None
    forecast_model: str | None = None
    forecast_summary: str | None = None
    forecast_metrics: str | None = None
    raw_parts: list[RawPart] = Field(default_factory=list)


class SegmentRule(NamedTuple):
    prefix: str
    field: str
    kind: str | None = None  # raw_parts kind, only for rules targeting raw_parts


# Order matters: "[SQL] Query:" must be tried before "SQL:".
SEGMENT_RULES: tuple[SegmentRule, ...] = (
    SegmentRule("[SQL] Query:", RAW_PARTS_FIELD, "sql-query"),
    SegmentRule("SQL:", "sql_query"),
    SegmentRule("Results:", RESULTS_RAW_FIELD),
    SegmentRule("[RAG] Answer:", "rag_answer"),
    SegmentRule("Confidence:", "rag_confidence"),
    SegmentRule("[Forecast] Best Model:", "forecast_model"),
    SegmentRule("Summary:", "forecast_summary"),
    SegmentRule("Metrics:", "forecast_metrics"),
)

UNMATCHED_KIND = "other"


def split_segments(response: str) -> list[str]:
    """Split a response into trimmed, non-empty segments."""
    return [s for s in (part.strip() for part in response.split(SEGMENT_DELIMITER)) if s]


def match_rule(segment: str, rules: tuple[SegmentRule, ...] = SEGMENT_RULES) -> SegmentRule | None:
    """Return the first rule whose prefix the segment starts with."""
    for rule in rules:
        if segment.startswith(rule.prefix):
            return rule
    return None


def decode_response(response: str | None) -> DecodedResult:
    """Decode a coordinator response string. Total: never raises.

    A later segment for the same field overwrites an earlier one.
    """
    if not response:
        return DecodedResult()

    fields: dict[str, Any] = {}
    raw_parts: list[RawPart] = []

    for segment in split_segments(response):
        rule = match_rule(segment)
        if rule is None:
            raw_parts.append(RawPart(kind=UNMATCHED_KIND, content=segment))
            continue

        value = segment[len(rule.prefix) :].strip()
        if rule.field == RAW_PARTS_FIELD:
            raw_parts.append(RawPart(kind=rule.kind or UNMATCHED_KIND, content=value))
        else:
            fields[rule.field] = value

    if RESULTS_RAW_FIELD in fields:
        fields["sql_results_data"] = parse_literal_results(fields[RESULTS_RAW_FIELD])

    return DecodedResult(**fields, raw_parts=raw_parts)
