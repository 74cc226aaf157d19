"""FastAPI backend for the rice market dashboard.

Serves normalized view models to the Streamlit UI. The health gate, query
client and dashboard cache are built once at startup and shared across
requests.
"""

import logging
import time
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Response, UploadFile
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from src.cache.freshness import FreshnessCache, ttl_from_seconds
from src.cache.storage import CacheStorage, InMemoryStorage, SqliteStorage
from src.clients import agent, forecast, rag
from src.clients.dashboard import DASHBOARD_STATS_KEY, DashboardStats, get_dashboard_stats
from src.clients.health import HealthGate, ServiceHealth, ServiceState
from src.config import get_settings
from src.errors import DashboardError, NetworkError, ServiceError, ValidationError
from src.normalize.views import (
    ForecastView,
    SearchView,
    UploadView,
    build_forecast_view,
    build_search_view,
    build_upload_view,
)
from src.observability.metrics import (
    APP_INFO,
    REQUEST_DURATION,
    REQUESTS_IN_PROGRESS,
    REQUESTS_TOTAL,
)
from src.query.client import QueryClient, QueryMode, QueryResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class QueryRequest(BaseModel):
    """Request body for POST /query."""

    question: str
    mode: QueryMode = QueryMode.DIRECT
    context: dict[str, Any] = Field(default_factory=dict)


class ForecastRequest(BaseModel):
    """Request body for POST /forecast."""

    data: list[float]
    horizon: int = forecast.DEFAULT_HORIZON
    frequency: str = "D"


class SearchRequest(BaseModel):
    """Request body for POST /documents/search."""

    query: str
    max_results: int = rag.DEFAULT_MAX_RESULTS


class MissionRequest(BaseModel):
    """Request body for POST /agents/mission."""

    mission: str
    session_id: str
    context: dict[str, Any] = Field(default_factory=dict)


class DashboardStatsResponse(BaseModel):
    """Response body for GET /dashboard/stats."""

    stats: DashboardStats
    stored_at: int | None
    stale: bool


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    services: list[ServiceHealth]


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


def _build_cache_storage() -> CacheStorage:
    db_path = get_settings().dashboard_cache_db_path
    if db_path:
        logger.info("Dashboard cache persisted at %s", db_path)
        return SqliteStorage.open(db_path)
    return InMemoryStorage()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared clients once at startup, tear down on shutdown."""
    APP_INFO.info({"version": "0.1.0"})

    gate = HealthGate()
    storage = _build_cache_storage()
    app.state.health_gate = gate
    app.state.query_client = QueryClient(health_gate=gate)
    app.state.cache = FreshnessCache(storage)
    logger.info("Dashboard API ready")

    yield

    if isinstance(storage, SqliteStorage):
        storage.close()
    logger.info("Shutting down dashboard API")


app = FastAPI(title="Rice Market Dashboard", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _instrumented(endpoint: str) -> Iterator[None]:
    """Record in-progress, duration and outcome metrics for one request."""
    REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).inc()
    start = time.monotonic()
    status = "error"
    try:
        yield
        status = "success"
    finally:
        REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).dec()
        REQUEST_DURATION.labels(endpoint=endpoint).observe(time.monotonic() - start)
        REQUESTS_TOTAL.labels(endpoint=endpoint, status=status).inc()


def _http_error(exc: DashboardError) -> HTTPException:
    """Map the dashboard error taxonomy onto HTTP status codes."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, NetworkError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, ServiceError) and exc.status_code is not None and exc.status_code >= 400:
        return HTTPException(status_code=exc.status_code, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Probe every backend service and summarize."""
    gate: HealthGate = app.state.health_gate
    services = await gate.poll_all()

    online_count = sum(1 for s in services if s.state == ServiceState.ONLINE)
    if online_count == len(services):
        overall = "healthy"
    elif online_count == 0:
        overall = "unhealthy"
    else:
        overall = "degraded"

    return HealthResponse(status=overall, services=services)


@app.post("/query", response_model=QueryResult)
async def query(request: QueryRequest) -> Any:
    """Run a query in direct or orchestrated mode."""
    client: QueryClient = app.state.query_client
    with _instrumented("/query"):
        try:
            return await client.submit(request.question, request.mode, request.context)
        except DashboardError as exc:
            raise _http_error(exc) from exc


@app.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def dashboard_stats() -> DashboardStatsResponse:
    """Market overview figures, served from cache while fresh."""
    cache: FreshnessCache = app.state.cache
    ttl = ttl_from_seconds(get_settings().dashboard_cache_ttl_seconds)

    async def _produce() -> dict[str, Any]:
        stats = await get_dashboard_stats()
        return stats.model_dump()

    with _instrumented("/dashboard/stats"):
        try:
            value: dict[str, Any] = await cache.get_or_refresh(DASHBOARD_STATS_KEY, ttl, _produce)
        except DashboardError as exc:
            logger.warning("Dashboard stats unavailable and nothing cached: %s", exc)
            raise _http_error(exc) from exc

    entry = cache.peek(DASHBOARD_STATS_KEY)
    return DashboardStatsResponse(
        stats=DashboardStats.model_validate(value),
        stored_at=entry.stored_at if entry else None,
        stale=entry is None or not cache.is_fresh(entry, ttl),
    )


@app.post("/forecast", response_model=ForecastView)
async def run_forecast(request: ForecastRequest) -> ForecastView:
    """Compare forecast models and lay predictions out month by month."""
    with _instrumented("/forecast"):
        try:
            response = await forecast.get_forecast(request.data, request.horizon, request.frequency)
        except DashboardError as exc:
            raise _http_error(exc) from exc
    return build_forecast_view(response, request.data, request.horizon, datetime.now(UTC).date())


@app.get("/forecast/models")
async def forecast_models() -> Any:
    try:
        return await forecast.get_models()
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.get("/forecast/last-comparison")
async def forecast_last_comparison() -> Any:
    try:
        return await forecast.get_last_comparison()
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.get("/agents")
async def list_agents() -> Any:
    try:
        return await agent.get_agents()
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.get("/agents/status")
async def agent_status() -> Any:
    try:
        return await agent.get_status()
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.post("/agents/mission")
async def run_mission(request: MissionRequest) -> Any:
    """Run a level 4 mission through the agent coordinator."""
    if not request.mission.strip():
        raise HTTPException(status_code=422, detail="Please enter a mission")
    with _instrumented("/agents/mission"):
        try:
            return await agent.execute_mission_v4(request.mission, request.session_id, request.context)
        except DashboardError as exc:
            raise _http_error(exc) from exc


@app.post("/documents/search", response_model=SearchView)
async def search_documents(request: SearchRequest) -> SearchView:
    """Answer a question from the indexed documents."""
    if not request.query.strip():
        raise HTTPException(status_code=422, detail="Please enter a search query")
    with _instrumented("/documents/search"):
        try:
            response = await rag.query_rag(request.query, request.max_results)
        except DashboardError as exc:
            raise _http_error(exc) from exc
    return build_search_view(response)


@app.post("/documents/upload", response_model=UploadView)
async def upload_document(file: UploadFile) -> UploadView:
    """Index one uploaded document."""
    filename = file.filename or "upload"
    if not rag.is_supported_document(filename, file.content_type):
        raise HTTPException(status_code=422, detail=f"Unsupported file type: {filename}")

    content = await file.read()
    with _instrumented("/documents/upload"):
        try:
            response = await rag.upload_document(filename, content, file.content_type)
        except DashboardError as exc:
            raise _http_error(exc) from exc

    view = build_upload_view(filename, response)
    if view.status == "failed":
        logger.warning("RAG service did not index %s", filename)
    return view


@app.get("/documents")
async def list_documents() -> Any:
    try:
        return await rag.get_documents()
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.get("/documents/stats")
async def document_stats() -> Any:
    try:
        return await rag.get_stats()
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.delete("/documents/{filename}")
async def delete_document(filename: str) -> Any:
    try:
        return await rag.delete_document(filename)
    except DashboardError as exc:
        raise _http_error(exc) from exc


@app.delete("/documents")
async def delete_all_documents() -> Any:
    try:
        return await rag.delete_all_documents()
    except DashboardError as exc:
        raise _http_error(exc) from exc
