"""HTML/SVG rendering of chart geometry for the Streamlit pages."""

from html import escape

from src.normalize.charts import BarChart, EmptyChart, LineChart

LINE_COLOR = "#667eea"
GRID_COLOR = "#e2e8f0"
TEXT_COLOR = "#666"


def render_empty(chart: EmptyChart) -> str:
    return f'<p class="no-data">{escape(chart.message)}</p>'


def render_bar_chart(chart: BarChart | EmptyChart) -> str:
    """Render bars as flex columns whose heights are the computed percentages."""
    if isinstance(chart, EmptyChart):
        return render_empty(chart)

    columns = "".join(
        '<div style="flex:1;display:flex;flex-direction:column;justify-content:flex-end;align-items:center;">'
        f'<div title="{escape(bar.label)}: {bar.value:g}" '
        f'style="width:70%;height:{bar.height_percent:.2f}%;background:{LINE_COLOR};"></div>'
        f'<div style="font-size:11px;color:{TEXT_COLOR};">{escape(bar.label)}</div>'
        "</div>"
        for bar in chart.bars
    )
    return f'<div class="bar-chart" style="display:flex;gap:4px;height:240px;">{columns}</div>'


def render_line_chart(chart: LineChart | EmptyChart) -> str:
    """Render gridlines, polyline and labelled points as inline SVG."""
    if isinstance(chart, EmptyChart):
        return render_empty(chart)

    parts: list[str] = [f'<svg width="{chart.width}" height="{chart.height}" class="line-chart">']
    for grid in chart.gridlines:
        parts.append(
            f'<line x1="{chart.padding}" y1="{grid.y:.2f}" x2="{chart.width - chart.padding}" y2="{grid.y:.2f}" '
            f'stroke="{GRID_COLOR}" stroke-width="1"/>'
            f'<text x="{chart.padding - 10}" y="{grid.y + 5:.2f}" text-anchor="end" font-size="12" '
            f'fill="{TEXT_COLOR}">{grid.label}</text>'
        )

    points = " ".join(f"{p.x:.2f},{p.y:.2f}" for p in chart.points)
    parts.append(f'<polyline points="{points}" fill="none" stroke="{LINE_COLOR}" stroke-width="2"/>')

    for p in chart.points:
        parts.append(
            f'<circle cx="{p.x:.2f}" cy="{p.y:.2f}" r="4" fill="{LINE_COLOR}"/>'
            f'<text x="{p.x:.2f}" y="{chart.height - 10}" text-anchor="middle" font-size="11" '
            f'fill="{TEXT_COLOR}">{escape(p.label)}</text>'
        )
    parts.append("</svg>")
    return "".join(parts)
