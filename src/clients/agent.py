"""Client for the agent coordinator, which fans a query out to SQL, RAG and forecast agents."""

import logging
from collections.abc import Mapping
from typing import Any, TypedDict, cast

from src.clients.http import service_request
from src.config import get_settings

logger = logging.getLogger(__name__)


class AgentResponse(TypedDict, total=False):
    response: str
    agents_used: list[str]
    success: bool


async def execute_query(query: str, context: Mapping[str, Any] | None = None) -> AgentResponse:
    """Run a query through the coordinator; returns the raw service payload."""
    url = f"{get_settings().agent_url}/execute"
    logger.info("Agent query: %.200s", query)
    data = await service_request(
        "POST",
        url,
        json={"query": query, "context": dict(context or {})},
        failure_message="Failed to execute query",
    )
    return cast(AgentResponse, data if isinstance(data, dict) else {})


async def execute_mission_v4(mission: str, session_id: str, context: Mapping[str, Any] | None = None) -> Any:
    """Run a self-evolving (level 4) mission within ``session_id``."""
    url = f"{get_settings().agent_url}/mission/execute-v4"
    logger.info("Agent mission (session %s): %.200s", session_id, mission)
    return await service_request(
        "POST",
        url,
        json={"mission": mission, "session_id": session_id, "context": dict(context or {})},
        failure_message="Failed to execute mission",
    )


async def get_agents() -> Any:
    """List the agents registered with the coordinator."""
    return await service_request("GET", f"{get_settings().agent_url}/agents", failure_message="Failed to get agents")


async def get_status() -> Any:
    return await service_request("GET", f"{get_settings().agent_url}/status", failure_message="Failed to get status")
