"""Pure numeric-to-geometry transforms for the bar and line charts.

Geometry is recomputed on every render; all models are frozen.
"""

import math
from collections.abc import Sequence
from typing import ClassVar

from pydantic import BaseModel, ConfigDict

LINE_WIDTH = 600
LINE_HEIGHT = 300
LINE_PADDING = 40
GRIDLINE_PERCENTS = (0, 25, 50, 75, 100)

NO_DATA_MESSAGE = "No data available for visualization"


class _Frozen(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class ChartPoint(_Frozen):
    label: str
    value: float


class EmptyChart(_Frozen):
    """Marker returned instead of geometry when the series has no points."""

    message: str = NO_DATA_MESSAGE


class Bar(_Frozen):
    label: str
    value: float
    height_percent: float


class BarChart(_Frozen):
    max_value: float
    bars: tuple[Bar, ...]


class LinePoint(_Frozen):
    label: str
    value: float
    x: float
    y: float


class Gridline(_Frozen):
    percent: int
    y: float
    label: int


class LineChart(_Frozen):
    width: int = LINE_WIDTH
    height: int = LINE_HEIGHT
    padding: int = LINE_PADDING
    max_value: float
    points: tuple[LinePoint, ...]
    gridlines: tuple[Gridline, ...]


def round_half_up(value: float) -> int:
    """Round .5 away from zero on the positive side, like a browser's Math.round."""
    return math.floor(value + 0.5)


def _series_max(series: Sequence[ChartPoint]) -> float:
    return max((p.value for p in series), default=0.0)


def bar_chart(series: Sequence[ChartPoint]) -> BarChart | EmptyChart:
    """Scale each bar against the series maximum (0-100%)."""
    if not series:
        return EmptyChart()

    top = _series_max(series)
    bars = tuple(
        Bar(
            label=p.label,
            value=p.value,
            height_percent=(p.value / top) * 100 if top > 0 else 0.0,
        )
        for p in series
    )
    return BarChart(max_value=top, bars=bars)


def line_chart(series: Sequence[ChartPoint]) -> LineChart | EmptyChart:
    """Lay out a polyline on the fixed 600x300 canvas with 40px padding.

    A single point sits on the left edge. With a non-positive maximum every
    point sits on the baseline.
    """
    if not series:
        return EmptyChart()

    chart_width = LINE_WIDTH - 2 * LINE_PADDING
    chart_height = LINE_HEIGHT - 2 * LINE_PADDING
    baseline = LINE_HEIGHT - LINE_PADDING
    top = _series_max(series)
    n = len(series)

    points: list[LinePoint] = []
    for i, p in enumerate(series):
        x = (i / (n - 1)) * chart_width + LINE_PADDING if n > 1 else float(LINE_PADDING)
        y = baseline - (p.value / top) * chart_height if top > 0 else float(baseline)
        points.append(LinePoint(label=p.label, value=p.value, x=x, y=y))

    gridlines = tuple(
        Gridline(
            percent=percent,
            y=LINE_PADDING + (chart_height * (100 - percent)) / 100,
            label=round_half_up(top * percent / 100),
        )
        for percent in GRIDLINE_PERCENTS
    )
    return LineChart(max_value=top, points=tuple(points), gridlines=gridlines)
