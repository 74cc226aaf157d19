"""Unit tests for HTML/SVG chart rendering."""

from src.normalize.charts import NO_DATA_MESSAGE, ChartPoint, bar_chart, line_chart
from src.ui.charts import render_bar_chart, render_line_chart


class TestRenderBarChart:
    def test_empty_renders_message(self) -> None:
        assert NO_DATA_MESSAGE in render_bar_chart(bar_chart([]))

    def test_bar_heights_rendered(self) -> None:
        html = render_bar_chart(bar_chart([ChartPoint(label="Jan", value=10), ChartPoint(label="Feb", value=5)]))
        assert "height:100.00%" in html
        assert "height:50.00%" in html
        assert ">Jan<" in html

    def test_labels_escaped(self) -> None:
        html = render_bar_chart(bar_chart([ChartPoint(label="<b>", value=1)]))
        assert "&lt;b&gt;" in html
        assert "<b>" not in html


class TestRenderLineChart:
    def test_empty_renders_message(self) -> None:
        assert NO_DATA_MESSAGE in render_line_chart(line_chart([]))

    def test_svg_contains_polyline_and_gridlines(self) -> None:
        svg = render_line_chart(line_chart([ChartPoint(label="Dec", value=50), ChartPoint(label="Jan", value=100)]))
        assert svg.startswith('<svg width="600" height="300"')
        assert '<polyline points="40.00,150.00 560.00,40.00"' in svg
        assert svg.count("<line ") == 5
        assert svg.count("<circle ") == 2
        assert ">100</text>" in svg
