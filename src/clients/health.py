"""Per-service health probes and the tri-state gate used to enable submissions.

``check_health`` is fail-soft: every failure maps to ``offline`` and nothing is
retried. The NL-SQL and agent services require a bearer token on ``/health``;
the RAG and forecast services are probed without one.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

import httpx
from pydantic import BaseModel

from src.clients.http import auth_headers
from src.config import get_settings
from src.observability.metrics import SERVICE_HEALTHY

logger = logging.getLogger(__name__)


class ServiceState(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"
    CHECKING = "checking"


class ServiceName(StrEnum):
    NL_SQL = "nl_sql"
    RAG = "rag"
    FORECAST = "forecast"
    AGENT = "agent"


SERVICE_LABELS: dict[ServiceName, str] = {
    ServiceName.NL_SQL: "NL-SQL Service",
    ServiceName.RAG: "RAG Service",
    ServiceName.FORECAST: "Forecast Service",
    ServiceName.AGENT: "Agent Coordinator",
}


class ServiceHealth(BaseModel):
    name: ServiceName
    state: ServiceState


@dataclass(frozen=True)
class ServiceEndpoint:
    name: ServiceName
    base_url: str
    authenticated: bool


def default_endpoints() -> list[ServiceEndpoint]:
    """Build the four service endpoints from settings."""
    settings = get_settings()
    return [
        ServiceEndpoint(ServiceName.NL_SQL, settings.nl_sql_url, authenticated=True),
        ServiceEndpoint(ServiceName.RAG, settings.rag_url, authenticated=False),
        ServiceEndpoint(ServiceName.FORECAST, settings.forecast_url, authenticated=False),
        ServiceEndpoint(ServiceName.AGENT, settings.agent_url, authenticated=True),
    ]


async def check_health(service_url: str, *, authenticate: bool = False) -> ServiceState:
    """Probe ``{service_url}/health`` once. Never raises."""
    try:
        headers = auth_headers() if authenticate else {}
        async with httpx.AsyncClient(timeout=get_settings().health_timeout_seconds) as client:
            resp = await client.get(f"{service_url}/health", headers=headers)
            body: object = resp.json()
    except Exception as exc:
        logger.warning("Health check for %s failed: %s", service_url, exc)
        return ServiceState.OFFLINE

    if isinstance(body, dict) and body.get("status") == "healthy":  # pyright: ignore[reportUnknownMemberType]
        return ServiceState.ONLINE
    logger.info("Health check for %s reported %.200s", service_url, body)
    return ServiceState.OFFLINE


class HealthGate:
    """Holds the latest tri-state status per service.

    Every service starts in ``checking``. Submission is blocked only while a
    service is ``offline``; a probe that is still in flight does not block.
    """

    def __init__(self, endpoints: list[ServiceEndpoint] | None = None) -> None:
        self._endpoints = {e.name: e for e in (endpoints if endpoints is not None else default_endpoints())}
        self._states: dict[ServiceName, ServiceState] = {name: ServiceState.CHECKING for name in self._endpoints}

    def status(self, name: ServiceName) -> ServiceState:
        return self._states.get(name, ServiceState.CHECKING)

    def can_submit(self, name: ServiceName) -> bool:
        return self.status(name) != ServiceState.OFFLINE

    def snapshot(self) -> list[ServiceHealth]:
        return [ServiceHealth(name=name, state=state) for name, state in self._states.items()]

    async def poll(self, name: ServiceName) -> ServiceState:
        """Probe one service and record the result."""
        endpoint = self._endpoints[name]
        self._states[name] = ServiceState.CHECKING
        state = await check_health(endpoint.base_url, authenticate=endpoint.authenticated)
        self._states[name] = state
        SERVICE_HEALTHY.labels(service=name.value).set(1.0 if state == ServiceState.ONLINE else 0.0)
        return state

    async def poll_all(self) -> list[ServiceHealth]:
        """Probe every service concurrently."""
        _ = await asyncio.gather(*(self.poll(name) for name in self._endpoints))
        return self.snapshot()
