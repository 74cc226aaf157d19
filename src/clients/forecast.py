"""Client for the time-series forecasting service."""

import logging
from collections.abc import Sequence
from typing import Any, Literal, TypedDict, cast, get_args

from src.clients.http import service_request
from src.config import get_settings
from src.errors import ValidationError

logger = logging.getLogger(__name__)

Frequency = Literal["D", "W", "M"]
FREQUENCIES: tuple[str, ...] = get_args(Frequency)

DEFAULT_HORIZON = 30


class DetailedResults(TypedDict, total=False):
    predictions: list[float]


class ForecastResponse(TypedDict, total=False):
    best_model: str
    comparison_table: Any
    detailed_results: DetailedResults
    metrics: dict[str, Any]


async def get_forecast(
    data: Sequence[float],
    horizon: int = DEFAULT_HORIZON,
    frequency: str = "D",
) -> ForecastResponse:
    """Compare all forecast models on ``data`` and return the raw comparison."""
    if frequency not in FREQUENCIES:
        raise ValidationError(f"Unsupported frequency {frequency!r}; expected one of {', '.join(FREQUENCIES)}")
    if horizon < 1:
        raise ValidationError("Forecast horizon must be at least 1")
    if not data:
        raise ValidationError("Forecasting needs at least one historical value")

    url = f"{get_settings().forecast_url}/forecast/compare-all"
    logger.info("Forecast request (points=%d, horizon=%d, frequency=%s)", len(data), horizon, frequency)
    body = await service_request(
        "POST",
        url,
        json={"data": list(data), "horizon": horizon, "frequency": frequency},
        failure_message="Forecast failed",
    )
    return cast(ForecastResponse, body if isinstance(body, dict) else {})


async def get_models() -> Any:
    """List the forecast models the service can compare."""
    return await service_request("GET", f"{get_settings().forecast_url}/models")


async def get_last_comparison() -> Any:
    """Return the most recent comparison the service ran."""
    return await service_request("GET", f"{get_settings().forecast_url}/last-comparison")
