"""View models for the forecast, document search and upload screens.

These map the forecast and RAG services' raw payloads into the shapes the UI
renders, and turn forecasts into chart series.
"""

import math
from collections.abc import Sequence
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.clients.forecast import ForecastResponse
from src.clients.rag import RagResponse, UploadResponse
from src.normalize.charts import ChartPoint

DEFAULT_BEST_MODEL = "ensemble"
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Confidence decays 5 points per step ahead, floored at 50%.
CONFIDENCE_START = 0.95
CONFIDENCE_STEP = 0.05
CONFIDENCE_FLOOR = 0.5


class ForecastPrediction(BaseModel):
    month: str  # "Mon YYYY"
    price: float | None
    confidence: float


class ForecastView(BaseModel):
    current_price: float | None
    best_model: str
    predictions: list[ForecastPrediction]
    comparison_table: Any = None
    metrics: dict[str, Any] = Field(default_factory=dict)


class SourceDocument(BaseModel):
    source: str
    content: str
    score: float | None = None


class SearchView(BaseModel):
    answer: str
    sources: list[SourceDocument]
    confidence: float
    query_type: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UploadView(BaseModel):
    filename: str
    status: Literal["ready", "failed"]
    chunks_indexed: int | None = None


def _month_label(today: date, steps_ahead: int) -> str:
    offset = today.month - 1 + steps_ahead
    return f"{MONTH_NAMES[offset % 12]} {today.year + offset // 12}"


def _number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def build_forecast_view(
    response: ForecastResponse,
    historical: Sequence[float],
    horizon: int,
    today: date,
) -> ForecastView:
    """Lay the service's predictions out month by month, starting the month after ``today``.

    A month the service returned no prediction for keeps ``price=None``.
    """
    detailed = response.get("detailed_results") or {}
    raw_predictions = detailed.get("predictions") if isinstance(detailed, dict) else None
    values: list[object] = list(raw_predictions) if isinstance(raw_predictions, list) else []

    predictions = [
        ForecastPrediction(
            month=_month_label(today, i + 1),
            price=_number(values[i]) if i < len(values) else None,
            confidence=max(CONFIDENCE_FLOOR, CONFIDENCE_START - i * CONFIDENCE_STEP),
        )
        for i in range(horizon)
    ]
    metrics = response.get("metrics")
    return ForecastView(
        current_price=historical[-1] if historical else None,
        best_model=response.get("best_model") or DEFAULT_BEST_MODEL,
        predictions=predictions,
        comparison_table=response.get("comparison_table"),
        metrics=metrics if isinstance(metrics, dict) else {},
    )


def price_series(view: ForecastView) -> list[ChartPoint]:
    return [ChartPoint(label=p.month[:3], value=p.price) for p in view.predictions if p.price is not None]


def confidence_series(view: ForecastView) -> list[ChartPoint]:
    return [ChartPoint(label=p.month[:3], value=round(p.confidence * 100)) for p in view.predictions]


def build_search_view(response: RagResponse) -> SearchView:
    """Flatten retrieved documents into (source, content, score) rows."""
    sources: list[SourceDocument] = []
    for doc in response.get("retrieved_documents") or []:
        if not isinstance(doc, dict):
            continue
        doc_meta = doc.get("metadata")
        if not isinstance(doc_meta, dict):
            doc_meta = {}
        sources.append(
            SourceDocument(
                source=str(doc_meta.get("source") or "unknown"),
                content=str(doc_meta.get("content") or ""),
                score=_number(doc.get("score")),
            )
        )
    query_type = response.get("query_type")
    metadata = response.get("metadata")
    return SearchView(
        answer=str(response.get("answer") or ""),
        sources=sources,
        confidence=_number(response.get("confidence")) or 0.0,
        query_type=str(query_type) if query_type is not None else None,
        metadata=metadata if isinstance(metadata, dict) else {},
    )


def build_upload_view(filename: str, response: UploadResponse) -> UploadView:
    if response.get("success"):
        return UploadView(filename=filename, status="ready", chunks_indexed=response.get("chunks_indexed"))
    return UploadView(filename=filename, status="failed")
