"""Tolerant parser for Python-literal-styled result rows.

The orchestrator embeds SQL results as ``str(list_of_dicts)`` output, e.g.
``[{'region': 'Punjab', 'price': 41.5, 'note': None}]``. That is close to JSON
but not JSON. The conversion here is purely textual:

* every ``'`` becomes ``"`` (no escaping awareness)
* whole-word ``None`` / ``True`` / ``False`` become ``null`` / ``true`` / ``false``

Known limitation: a string value containing an apostrophe (``O'Brien``) gains an
unbalanced quote and the whole payload fails to parse, yielding no rows. This is
kept deliberately so rows match what the orchestrator's own consumers see.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from src.errors import ParseError

logger = logging.getLogger(__name__)

_LITERAL_REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bNone\b"), "null"),
    (re.compile(r"\bTrue\b"), "true"),
    (re.compile(r"\bFalse\b"), "false"),
)


@dataclass(frozen=True)
class ParseSuccess:
    rows: list[dict[str, Any]]


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseOutcome = ParseSuccess | ParseFailure


def _reject_constant(name: str) -> float:
    raise ParseError(f"non-finite number {name!r} is not valid JSON")


def to_json_text(raw: str) -> str:
    """Apply the quote and keyword substitutions to a literal string."""
    text = raw.replace("'", '"')
    for pattern, replacement in _LITERAL_REPLACEMENTS:
        text = pattern.sub(replacement, text)
    return text


def parse_literal(raw: str | None) -> ParseOutcome:
    """Parse a literal rows string, keeping the failure reason."""
    if not raw:
        return ParseSuccess(rows=[])

    try:
        data: object = json.loads(to_json_text(raw), parse_constant=_reject_constant)
    except (ValueError, RecursionError, ParseError) as e:
        return ParseFailure(reason=str(e))

    if not isinstance(data, list):
        return ParseFailure(reason=f"expected a list of rows, got {type(data).__name__}")
    rows: list[dict[str, Any]] = []
    for item in data:  # pyright: ignore[reportUnknownVariableType]
        if not isinstance(item, dict):
            return ParseFailure(reason=f"expected row mappings, got {type(item).__name__}")  # pyright: ignore[reportUnknownArgumentType]
        rows.append(item)  # pyright: ignore[reportUnknownArgumentType]
    return ParseSuccess(rows=rows)


def parse_literal_results(raw: str | None) -> list[dict[str, Any]]:
    """Convert a literal rows string into row mappings. Never raises.

    Returns an empty list for empty input and for anything that fails to parse.
    """
    outcome = parse_literal(raw)
    if isinstance(outcome, ParseFailure):
        logger.debug("Failed to parse SQL results (%s): %.200s", outcome.reason, raw)
        return []
    return outcome.rows
