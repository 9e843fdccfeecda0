from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import plotly.graph_objects as go
import plotly.io as pio

from sheet_chart_studio.core.errors import ColumnNotFound, MissingAxis, NoNumericData
from sheet_chart_studio.core.state import CHART_TYPES, AxisSelection
from sheet_chart_studio.core.table import TabularDataStore
from sheet_chart_studio.utils.sortkeys import coerce_number

# chart types that need at least one numeric Y value
NUMERIC_Y_TYPES = ("bar", "line", "scatter", "bar3d", "scatter3d")
COLOR_SCALE = "Viridis"
PIE_COLORS = (
    "rgba(59, 130, 246, 0.8)",
    "rgba(34, 197, 94, 0.8)",
    "rgba(168, 85, 247, 0.8)",
    "rgba(251, 191, 36, 0.8)",
    "rgba(239, 68, 68, 0.8)",
)
EXPORT_WIDTH = 1200
EXPORT_HEIGHT = 800


@dataclass(frozen=True)
class LayoutDescriptor:
    title: str
    x_axis_title: Optional[str] = None
    y_axis_title: Optional[str] = None


@dataclass
class ChartSpec:
    chart_type: str
    traces: list[dict[str, Any]] = field(default_factory=list)
    layout: LayoutDescriptor = field(default_factory=lambda: LayoutDescriptor(title=""))


def default_axis_selection(headers: Sequence[str]) -> AxisSelection:
    """First column on X, second on Y; nothing when the sheet has fewer than two columns."""
    if len(headers) >= 2:
        return AxisSelection(headers[0], headers[1])
    return AxisSelection()


def revalidate_axis_selection(selection: AxisSelection, store: TabularDataStore) -> AxisSelection:
    """Keep a selection whose columns survive in ``store``, otherwise fall back to the default."""
    if selection.is_complete() and store.has_column(selection.x_column) and store.has_column(selection.y_column):
        return selection
    return default_axis_selection(store.headers)


def numeric_values(values: Sequence[Any]) -> list[Any]:
    return [coerce_number(v) for v in values]


def _resolve_columns(store: TabularDataStore, selection: AxisSelection) -> tuple[list[Any], list[Any]]:
    if not selection.x_column or not selection.y_column:
        raise MissingAxis()
    for name in (selection.x_column, selection.y_column):
        if not store.has_column(name):
            raise ColumnNotFound(name)
    return store.column_values(selection.x_column), store.column_values(selection.y_column)


def _trace_for(chart_type: str, name: str, x: list[Any], y: list[Any]) -> dict[str, Any]:
    if chart_type == "bar":
        return {
            "type": "bar",
            "x": x,
            "y": y,
            "name": name,
            "marker": {
                "color": "rgba(59, 130, 246, 0.8)",
                "line": {"color": "rgba(59, 130, 246, 1)", "width": 1},
            },
        }
    if chart_type == "line":
        return {
            "type": "scatter",
            "mode": "lines+markers",
            "x": x,
            "y": y,
            "name": name,
            "line": {"color": "rgba(34, 197, 94, 0.8)", "width": 3},
            "marker": {"color": "rgba(34, 197, 94, 1)", "size": 6},
        }
    if chart_type == "scatter":
        return {
            "type": "scatter",
            "mode": "markers",
            "x": x,
            "y": y,
            "name": name,
            "marker": {
                "color": "rgba(168, 85, 247, 0.8)",
                "size": 8,
                "line": {"color": "rgba(168, 85, 247, 1)", "width": 1},
            },
        }
    if chart_type == "pie":
        return {
            "type": "pie",
            "labels": x,
            "values": y,
            "name": name,
            "hole": 0.3,
            "marker": {"colors": list(PIE_COLORS)},
        }
    # bar3d / scatter3d: the y values also drive a colour scale, there is no third axis
    marker = {"color": list(y), "colorscale": COLOR_SCALE, "showscale": True}
    if chart_type == "bar3d":
        return {"type": "bar", "x": x, "y": y, "name": name, "marker": marker}
    marker["size"] = 5
    return {"type": "scatter", "mode": "markers", "x": x, "y": y, "name": name, "marker": marker}


def build_chart(store: TabularDataStore, selection: AxisSelection, chart_type: str) -> ChartSpec:
    """
    Map (store, axis selection, chart type) to Plotly traces plus a layout descriptor.

    Raises MissingAxis, ColumnNotFound or NoNumericData (ValueError for an
    unknown chart type). Equal inputs always give equal, freshly built outputs.
    """
    chart_type = str(chart_type)
    if chart_type not in CHART_TYPES:
        raise ValueError(f"Unknown chart type: {chart_type}")

    x_values, y_values = _resolve_columns(store, selection)
    y_numeric = numeric_values(y_values)
    if chart_type in NUMERIC_Y_TYPES and all(v is None for v in y_numeric):
        raise NoNumericData()

    title = f"{selection.y_column} vs {selection.x_column}"
    trace = _trace_for(chart_type, title, list(x_values), y_numeric)
    if chart_type == "pie":
        layout = LayoutDescriptor(title=title)
    else:
        layout = LayoutDescriptor(title=title, x_axis_title=selection.x_column, y_axis_title=selection.y_column)
    return ChartSpec(chart_type=chart_type, traces=[trace], layout=layout)


def layout_to_plotly(layout: LayoutDescriptor) -> dict[str, Any]:
    out: dict[str, Any] = {
        "title": {"text": layout.title, "font": {"size": 18, "color": "#374151"}},
        "paper_bgcolor": "rgba(0,0,0,0)",
        "plot_bgcolor": "rgba(0,0,0,0)",
        "margin": {"t": 50, "l": 50, "r": 50, "b": 50},
        "font": {"color": "#374151"},
    }
    if layout.x_axis_title is not None:
        out["xaxis"] = {"title": {"text": layout.x_axis_title}}
    if layout.y_axis_title is not None:
        out["yaxis"] = {"title": {"text": layout.y_axis_title}}
    return out


def _plotly_trace(trace: dict[str, Any]) -> dict[str, Any]:
    out = dict(trace)
    marker = out.get("marker")
    if isinstance(marker, dict) and isinstance(marker.get("color"), list):
        # plotly rejects None inside a colour array
        out["marker"] = {**marker, "color": [float("nan") if v is None else v for v in marker["color"]]}
    return out


def to_figure(spec: ChartSpec) -> go.Figure:
    return go.Figure(data=[_plotly_trace(t) for t in spec.traces], layout=layout_to_plotly(spec.layout))


def export_chart_html(spec: ChartSpec, path: str, include_plotlyjs: str = "cdn") -> str:
    """Write an interactive HTML copy of the chart; the browser toolbar offers a 1200x800 PNG."""
    fig = to_figure(spec)
    pio.write_html(
        fig,
        file=path,
        auto_open=False,
        include_plotlyjs=include_plotlyjs,
        config={
            "displaylogo": False,
            "modeBarButtonsToRemove": ["pan2d", "lasso2d"],
            "toImageButtonOptions": {"format": "png", "width": EXPORT_WIDTH, "height": EXPORT_HEIGHT},
        },
    )
    return path
