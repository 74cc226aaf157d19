"""Plain-text rendering of query results for the CLI."""

from typing import Any

from src.normalize.decoder import DecodedResult
from src.query.client import DirectQueryResult, OrchestratedQueryResult

MAX_ROWS = 50


def format_rows(rows: list[dict[str, Any]]) -> str:
    """Render rows as a pipe-separated table using the first row's columns."""
    if not rows:
        return "No data returned."

    keys = list(rows[0].keys())
    lines: list[str] = [" | ".join(keys), "-+-".join("-" * len(k) for k in keys)]
    for row in rows[:MAX_ROWS]:
        lines.append(" | ".join("" if row.get(k) is None else str(row.get(k)) for k in keys))
    if len(rows) > MAX_ROWS:
        lines.append(f"(showing first {MAX_ROWS} of {len(rows)} rows)")
    return "\n".join(lines)


def _format_decoded(decoded: DecodedResult, agents_used: list[str]) -> list[str]:
    lines: list[str] = []

    if "sql_agent" in agents_used and decoded.sql_query:
        lines.append(f"Generated SQL: {decoded.sql_query}")
    if decoded.sql_results_data:
        lines.append(f"Results ({len(decoded.sql_results_data)} rows):")
        lines.append(format_rows(decoded.sql_results_data))

    if "rag_agent" in agents_used and decoded.rag_answer:
        lines.append(f"RAG Answer: {decoded.rag_answer}")
        if decoded.rag_confidence:
            lines.append(f"  Confidence: {decoded.rag_confidence}")

    if "forecast_agent" in agents_used and decoded.forecast_model:
        lines.append(f"Forecast best model: {decoded.forecast_model}")
        if decoded.forecast_summary:
            lines.append(f"  Summary: {decoded.forecast_summary}")
        if decoded.forecast_metrics:
            lines.append(f"  Metrics: {decoded.forecast_metrics}")

    lines.extend(part.content for part in decoded.raw_parts)
    return lines


def format_query_result(result: DirectQueryResult | OrchestratedQueryResult) -> str:
    """Format a query result the way the dashboard lays it out."""
    if isinstance(result, DirectQueryResult):
        return "\n".join(
            [
                f"Query Results ({result.row_count} rows)",
                f"Generated SQL: {result.sql_query}",
                format_rows(result.rows) if result.rows else "No data returned for this query.",
            ]
        )

    lines = ["Multi-Agent Results"]
    if result.agents_used:
        lines.append(f"Agents Used: {', '.join(result.agents_used)}")
    lines.extend(_format_decoded(result.decoded, result.agents_used))
    return "\n".join(lines)
