"""Client for the NL-SQL service (natural language question -> SQL -> rows)."""

import logging
from typing import Any, TypedDict, cast

from src.clients.http import service_request
from src.config import get_settings

logger = logging.getLogger(__name__)


class NlSqlResponse(TypedDict, total=False):
    success: bool
    question: str
    sql_query: str
    results: list[dict[str, Any]]
    row_count: int


async def execute_nl_query(question: str) -> NlSqlResponse:
    """Send a natural language question; returns the raw service payload."""
    url = f"{get_settings().nl_sql_url}/query"
    logger.info("NL-SQL query: %.200s", question)
    data = await service_request("POST", url, json={"question": question}, failure_message="NL-SQL query failed")
    return cast(NlSqlResponse, data if isinstance(data, dict) else {})
