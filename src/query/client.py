"""Single query submission in direct (NL-SQL) or orchestrated (agent coordinator) mode.

``QueryClient.submit`` produces one ``QueryResult``. ``QueryView`` is the state a
UI keeps across submissions: results are applied in completion order, so the
most recently *completed* call wins even if an earlier call is still pending.
Nothing is cancelled when superseded.
"""

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as ModelValidationError

from src.clients.agent import execute_query
from src.clients.health import SERVICE_LABELS, HealthGate, ServiceName
from src.clients.nl_sql import execute_nl_query
from src.errors import DashboardError, QueryError, ServiceError, ValidationError
from src.normalize.decoder import DecodedResult, decode_response
from src.observability.metrics import QUERY_SUBMISSIONS_TOTAL

logger = logging.getLogger(__name__)

QUERY_FAILED_MESSAGE = "Query failed. Please try a different question."
PARTIAL_RESULT_WARNING = "The agents reported a partial failure; showing whatever they returned."


class QueryMode(StrEnum):
    DIRECT = "direct"
    ORCHESTRATED = "orchestrated"


MODE_SERVICES: dict[QueryMode, ServiceName] = {
    QueryMode.DIRECT: ServiceName.NL_SQL,
    QueryMode.ORCHESTRATED: ServiceName.AGENT,
}


class DirectQueryResult(BaseModel):
    mode: Literal["direct"] = "direct"
    sql_query: str
    rows: list[dict[str, Any]]
    row_count: int


class OrchestratedQueryResult(BaseModel):
    mode: Literal["orchestrated"] = "orchestrated"
    decoded: DecodedResult
    agents_used: list[str]
    success: bool
    response: str | None = None


QueryResult = Annotated[DirectQueryResult | OrchestratedQueryResult, Field(discriminator="mode")]
QUERY_RESULT_ADAPTER: TypeAdapter[DirectQueryResult | OrchestratedQueryResult] = TypeAdapter(QueryResult)


def _agent_names(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(name) for name in value]  # pyright: ignore[reportUnknownVariableType]


class QueryClient:
    """Validate, gate and dispatch one query, normalizing the response."""

    def __init__(self, health_gate: HealthGate | None = None) -> None:
        self._health_gate = health_gate

    def _check_gate(self, mode: QueryMode) -> None:
        if self._health_gate is None:
            return
        service = MODE_SERVICES[mode]
        if not self._health_gate.can_submit(service):
            raise ServiceError(f"{SERVICE_LABELS[service]} is offline", status_code=503)

    async def submit(
        self,
        input_text: str,
        mode: QueryMode | str,
        context: Mapping[str, Any] | None = None,
    ) -> DirectQueryResult | OrchestratedQueryResult:
        """Submit a query and return its normalized result.

        Raises:
            ValidationError: empty input; nothing is sent.
            ServiceError: target service offline, HTTP error, or (direct mode) ``success: false``.
            NetworkError: transport failure.
        """
        if not input_text.strip():
            raise ValidationError("Please enter a query")
        try:
            mode = QueryMode(mode)
        except ValueError as e:
            raise ValidationError(f"Unknown query mode {mode!r}") from e
        self._check_gate(mode)

        try:
            if mode == QueryMode.DIRECT:
                result: DirectQueryResult | OrchestratedQueryResult = await self._submit_direct(input_text)
            else:
                result = await self._submit_orchestrated(input_text, context)
        except DashboardError:
            QUERY_SUBMISSIONS_TOTAL.labels(mode=mode.value, status="error").inc()
            raise

        QUERY_SUBMISSIONS_TOTAL.labels(mode=mode.value, status="success").inc()
        return result

    async def _submit_direct(self, question: str) -> DirectQueryResult:
        response = await execute_nl_query(question)
        if not response.get("success"):
            raise QueryError(QUERY_FAILED_MESSAGE)
        rows = [row for row in response.get("results") or [] if isinstance(row, dict)]
        try:
            return DirectQueryResult(
                sql_query=response.get("sql_query") or "",
                rows=rows,
                row_count=response.get("row_count") or 0,
            )
        except ModelValidationError as e:
            logger.warning("NL-SQL returned a malformed response: %s", e)
            raise ServiceError("NL-SQL returned a malformed response") from e

    async def _submit_orchestrated(self, question: str, context: Mapping[str, Any] | None) -> OrchestratedQueryResult:
        response = await execute_query(question, context)
        text = response.get("response")
        text = text if isinstance(text, str) else None
        success = bool(response.get("success"))
        if not success:
            logger.warning("Agent coordinator reported success=false for query: %.200s", question)
        return OrchestratedQueryResult(
            decoded=decode_response(text),
            agents_used=_agent_names(response.get("agents_used")),
            success=success,
            response=text,
        )


class QueryView:
    """Submission state owned by a UI session.

    A successful result replaces the previous one wholesale. A failure records
    its message and leaves the previous result untouched.
    """

    def __init__(self) -> None:
        self.result: DirectQueryResult | OrchestratedQueryResult | None = None
        self.error: str | None = None
        self.warning: str | None = None
        self.pending = 0

    def record_result(self, result: DirectQueryResult | OrchestratedQueryResult) -> None:
        self.result = result
        self.error = None
        if isinstance(result, OrchestratedQueryResult) and not result.success:
            self.warning = PARTIAL_RESULT_WARNING
        else:
            self.warning = None

    def record_error(self, message: str) -> None:
        self.error = message

    async def run(
        self,
        client: QueryClient,
        input_text: str,
        mode: QueryMode | str,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        """Submit through ``client`` and apply the outcome when it completes."""
        self.pending += 1
        try:
            result = await client.submit(input_text, mode, context)
        except DashboardError as exc:
            logger.info("Query submission failed: %s", exc)
            self.record_error(str(exc) or QUERY_FAILED_MESSAGE)
        else:
            self.record_result(result)
        finally:
            self.pending -= 1
