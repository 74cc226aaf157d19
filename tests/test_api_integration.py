"""Integration tests for the FastAPI backend.

Uses TestClient with mocked backend services, no real services needed.
"""

from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from src.clients.dashboard import DashboardStats
from src.errors import NetworkError

NL_SQL_URL = "http://nl-sql.test:8001"
RAG_URL = "http://rag.test:8002"
FORECAST_URL = "http://forecast.test:8003"
AGENT_URL = "http://agent.test:8000"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client(mock_settings: object) -> Generator[TestClient]:  # noqa: ARG001 - mock_settings activates patches
    """Create a TestClient; the lifespan builds a fresh cache and health gate."""
    from src.api.main import app

    with TestClient(app) as tc:
        yield tc


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestHealthEndpoint:
    @respx.mock
    def test_all_healthy(self, client: TestClient) -> None:
        for url in (NL_SQL_URL, RAG_URL, FORECAST_URL, AGENT_URL):
            respx.get(f"{url}/health").mock(return_value=httpx.Response(200, json={"status": "healthy"}))

        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert {s["name"]: s["state"] for s in body["services"]} == {
            "nl_sql": "online",
            "rag": "online",
            "forecast": "online",
            "agent": "online",
        }

    @respx.mock
    def test_degraded(self, client: TestClient) -> None:
        for url in (NL_SQL_URL, RAG_URL, AGENT_URL):
            respx.get(f"{url}/health").mock(return_value=httpx.Response(200, json={"status": "healthy"}))
        respx.get(f"{FORECAST_URL}/health").mock(side_effect=httpx.ConnectError("Connection refused"))

        body = client.get("/health").json()

        assert body["status"] == "degraded"

    @respx.mock
    def test_unhealthy(self, client: TestClient) -> None:
        for url in (NL_SQL_URL, RAG_URL, FORECAST_URL, AGENT_URL):
            respx.get(f"{url}/health").mock(side_effect=httpx.ConnectError("Connection refused"))

        assert client.get("/health").json()["status"] == "unhealthy"


# ---------------------------------------------------------------------------
# POST /query
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestQueryEndpoint:
    @respx.mock
    def test_direct_query(self, client: TestClient) -> None:
        respx.post(f"{NL_SQL_URL}/query").mock(
            return_value=httpx.Response(
                200,
                json={"success": True, "sql_query": "SELECT 1", "results": [{"x": 1}], "row_count": 1},
            )
        )

        resp = client.post("/query", json={"question": "one?", "mode": "direct"})

        assert resp.status_code == 200
        assert resp.json() == {"mode": "direct", "sql_query": "SELECT 1", "rows": [{"x": 1}], "row_count": 1}

    @respx.mock
    def test_orchestrated_query(self, client: TestClient) -> None:
        respx.post(f"{AGENT_URL}/execute").mock(
            return_value=httpx.Response(
                200,
                json={
                    "response": "[Forecast] Best Model: arima | Summary: up",
                    "agents_used": ["forecast_agent"],
                    "success": True,
                },
            )
        )

        resp = client.post("/query", json={"question": "forecast", "mode": "orchestrated"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["mode"] == "orchestrated"
        assert body["decoded"]["forecast_model"] == "arima"
        assert body["decoded"]["forecast_summary"] == "up"
        assert body["agents_used"] == ["forecast_agent"]

    def test_blank_question_returns_422(self, client: TestClient) -> None:
        resp = client.post("/query", json={"question": "   "})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Please enter a query"

    def test_missing_question_returns_422(self, client: TestClient) -> None:
        assert client.post("/query", json={}).status_code == 422

    @respx.mock
    def test_query_error_returns_502(self, client: TestClient) -> None:
        respx.post(f"{NL_SQL_URL}/query").mock(return_value=httpx.Response(200, json={"success": False}))

        resp = client.post("/query", json={"question": "nonsense"})

        assert resp.status_code == 502
        assert resp.json()["detail"] == "Query failed. Please try a different question."

    @respx.mock
    def test_malformed_payload_returns_502(self, client: TestClient) -> None:
        respx.post(f"{NL_SQL_URL}/query").mock(
            return_value=httpx.Response(200, json={"success": True, "results": [], "row_count": "n/a"})
        )

        resp = client.post("/query", json={"question": "q"})

        assert resp.status_code == 502
        assert resp.json()["detail"] == "NL-SQL returned a malformed response"

    @respx.mock
    def test_service_status_passed_through(self, client: TestClient) -> None:
        respx.post(f"{NL_SQL_URL}/query").mock(return_value=httpx.Response(401, json={"detail": "Invalid token"}))

        resp = client.post("/query", json={"question": "q"})

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token"

    @respx.mock
    def test_network_error_returns_503(self, client: TestClient) -> None:
        respx.post(f"{NL_SQL_URL}/query").mock(side_effect=httpx.ConnectError("Connection refused"))

        resp = client.post("/query", json={"question": "q"})

        assert resp.status_code == 503
        assert "Cannot connect" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# GET /dashboard/stats
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestDashboardStatsEndpoint:
    def test_cached_between_requests(self, client: TestClient) -> None:
        stats = DashboardStats(current_price=41.5, active_suppliers=18, last_updated="2025-11-15 10:00:00 UTC")
        with patch("src.api.main.get_dashboard_stats", new_callable=AsyncMock, return_value=stats) as fetch:
            first = client.get("/dashboard/stats")
            second = client.get("/dashboard/stats")

        assert first.status_code == 200
        assert first.json()["stats"]["current_price"] == 41.5
        assert first.json()["stale"] is False
        assert second.json() == first.json()
        fetch.assert_awaited_once()

    def test_stale_served_when_refresh_fails(self, client: TestClient, mock_settings: Any) -> None:
        mock_settings.dashboard_cache_ttl_seconds = 0
        stats = DashboardStats(current_price=41.5)
        with patch("src.api.main.get_dashboard_stats", new_callable=AsyncMock, return_value=stats):
            assert client.get("/dashboard/stats").json()["stale"] is True

        with patch(
            "src.api.main.get_dashboard_stats",
            new_callable=AsyncMock,
            side_effect=NetworkError("Cannot connect to nl-sql"),
        ):
            resp = client.get("/dashboard/stats")

        assert resp.status_code == 200
        assert resp.json()["stats"]["current_price"] == 41.5
        assert resp.json()["stale"] is True

    def test_failure_without_cache_returns_503(self, client: TestClient) -> None:
        with patch(
            "src.api.main.get_dashboard_stats",
            new_callable=AsyncMock,
            side_effect=NetworkError("Cannot connect to nl-sql"),
        ):
            resp = client.get("/dashboard/stats")

        assert resp.status_code == 503


# ---------------------------------------------------------------------------
# Forecast endpoints
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestForecastEndpoints:
    @respx.mock
    def test_forecast_view(self, client: TestClient) -> None:
        respx.post(f"{FORECAST_URL}/forecast/compare-all").mock(
            return_value=httpx.Response(
                200,
                json={"best_model": "prophet", "detailed_results": {"predictions": [42.0]}},
            )
        )

        resp = client.post("/forecast", json={"data": [40.0, 41.5], "horizon": 2, "frequency": "M"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["current_price"] == 41.5
        assert body["best_model"] == "prophet"
        assert [p["price"] for p in body["predictions"]] == [42.0, None]

    def test_invalid_frequency_returns_422(self, client: TestClient) -> None:
        resp = client.post("/forecast", json={"data": [40.0], "frequency": "Q"})
        assert resp.status_code == 422
        assert "Unsupported frequency" in resp.json()["detail"]

    @respx.mock
    def test_models(self, client: TestClient) -> None:
        respx.get(f"{FORECAST_URL}/models").mock(return_value=httpx.Response(200, json={"models": ["arima"]}))
        assert client.get("/forecast/models").json() == {"models": ["arima"]}

    @respx.mock
    def test_last_comparison_unavailable(self, client: TestClient) -> None:
        respx.get(f"{FORECAST_URL}/last-comparison").mock(
            return_value=httpx.Response(404, json={"detail": "No comparison has been run"})
        )

        resp = client.get("/forecast/last-comparison")

        assert resp.status_code == 404
        assert resp.json()["detail"] == "No comparison has been run"


# ---------------------------------------------------------------------------
# Agent coordinator endpoints
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestAgentEndpoints:
    @respx.mock
    def test_agents_and_status(self, client: TestClient) -> None:
        respx.get(f"{AGENT_URL}/agents").mock(return_value=httpx.Response(200, json={"agents": ["sql_agent"]}))
        respx.get(f"{AGENT_URL}/status").mock(return_value=httpx.Response(200, json={"status": "running"}))

        assert client.get("/agents").json() == {"agents": ["sql_agent"]}
        assert client.get("/agents/status").json() == {"status": "running"}

    @respx.mock
    def test_agents_unreachable_returns_503(self, client: TestClient) -> None:
        respx.get(f"{AGENT_URL}/agents").mock(side_effect=httpx.ConnectError("Connection refused"))

        assert client.get("/agents").status_code == 503

    @respx.mock
    def test_mission(self, client: TestClient) -> None:
        route = respx.post(f"{AGENT_URL}/mission/execute-v4").mock(
            return_value=httpx.Response(200, json={"success": True, "result": "done"})
        )

        resp = client.post("/agents/mission", json={"mission": "plan", "session_id": "s-1"})

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "result": "done"}
        assert route.called

    def test_blank_mission_returns_422(self, client: TestClient) -> None:
        resp = client.post("/agents/mission", json={"mission": " ", "session_id": "s-1"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Document endpoints
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestDocumentEndpoints:
    @respx.mock
    def test_search(self, client: TestClient) -> None:
        respx.post(f"{RAG_URL}/rag/query").mock(
            return_value=httpx.Response(
                200,
                json={
                    "answer": "Late monsoon.",
                    "retrieved_documents": [{"metadata": {"source": "a.md", "content": "text"}, "score": 0.9}],
                    "confidence": 0.75,
                },
            )
        )

        resp = client.post("/documents/search", json={"query": "why?"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["answer"] == "Late monsoon."
        assert body["sources"] == [{"source": "a.md", "content": "text", "score": 0.9}]

    def test_blank_search_returns_422(self, client: TestClient) -> None:
        assert client.post("/documents/search", json={"query": "  "}).status_code == 422

    @respx.mock
    def test_upload(self, client: TestClient) -> None:
        respx.post(f"{RAG_URL}/rag/upload").mock(
            return_value=httpx.Response(200, json={"success": True, "chunks_indexed": 3})
        )

        resp = client.post("/documents/upload", files={"file": ("notes.md", b"# Notes", "text/markdown")})

        assert resp.status_code == 200
        assert resp.json() == {"filename": "notes.md", "status": "ready", "chunks_indexed": 3}

    def test_unsupported_upload_returns_422(self, client: TestClient) -> None:
        resp = client.post("/documents/upload", files={"file": ("photo.png", b"\x89PNG", "image/png")})
        assert resp.status_code == 422

    @respx.mock
    def test_list_stats_and_delete(self, client: TestClient) -> None:
        respx.get(f"{RAG_URL}/rag/documents").mock(
            return_value=httpx.Response(200, json={"sources": ["a.md"], "count": 1})
        )
        respx.get(f"{RAG_URL}/rag/stats").mock(return_value=httpx.Response(200, json={"chunks": 4}))
        respx.delete(f"{RAG_URL}/rag/documents/a.md").mock(return_value=httpx.Response(200, json={"deleted": "a.md"}))
        respx.delete(f"{RAG_URL}/rag/documents").mock(return_value=httpx.Response(200, json={"deleted": 1}))

        assert client.get("/documents").json() == {"sources": ["a.md"], "count": 1}
        assert client.get("/documents/stats").json() == {"chunks": 4}
        assert client.delete("/documents/a.md").json() == {"deleted": "a.md"}
        assert client.delete("/documents").json() == {"deleted": 1}


# ---------------------------------------------------------------------------
# GET /metrics
# ---------------------------------------------------------------------------


@pytest.mark.integration
class TestMetricsEndpoint:
    def test_exposition_format(self, client: TestClient) -> None:
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "rice_dashboard_requests_total" in resp.text

    def test_request_metrics_recorded(self, client: TestClient) -> None:
        client.post("/query", json={"question": "  "})
        text = client.get("/metrics").text
        assert 'rice_dashboard_requests_total{endpoint="/query",status="error"}' in text