"""End-to-end checks against the live backend services.

Skipped unless ``--run-e2e`` is passed. Reads service URLs and JWT_SECRET from .env.
"""

import pytest

from src.clients.health import HealthGate, ServiceState
from src.query.client import DirectQueryResult, QueryClient, QueryMode


@pytest.mark.e2e
class TestLiveServices:
    async def test_every_service_reports_healthy(self) -> None:
        snapshot = await HealthGate().poll_all()
        offline = [s.name.value for s in snapshot if s.state != ServiceState.ONLINE]
        assert not offline, f"offline services: {offline}"

    async def test_direct_query_round_trip(self) -> None:
        result = await QueryClient().submit("How many customers are in the database?", QueryMode.DIRECT)
        assert isinstance(result, DirectQueryResult)
        assert result.sql_query
