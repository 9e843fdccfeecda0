from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sheet_chart_studio.core.history import UploadRecord
from sheet_chart_studio.core.table import TabularDataStore
from sheet_chart_studio.core.view import DataViewState

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME_TYPE = "application/vnd.ms-excel"

CHART_TYPES = ("bar", "line", "scatter", "pie", "bar3d", "scatter3d")
DEFAULT_CHART_TYPE = "bar"


@dataclass(frozen=True)
class PipelineSettings:
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_mime_types: tuple[str, ...] = (XLSX_MIME_TYPE, XLS_MIME_TYPE)
    preview_rows: int = 10
    history_limit: int = 5


@dataclass(frozen=True)
class AxisSelection:
    x_column: str = ""
    y_column: str = ""

    def is_complete(self) -> bool:
        return bool(self.x_column) and bool(self.y_column)


@dataclass
class ChartSettings:
    selection: AxisSelection = field(default_factory=AxisSelection)
    chart_type: str = DEFAULT_CHART_TYPE


@dataclass
class SessionState:
    """Everything the application shell holds for the one active upload."""

    store: Optional[TabularDataStore] = None
    file_name: str = ""
    chart: ChartSettings = field(default_factory=ChartSettings)
    view: DataViewState = field(default_factory=DataViewState)
    history: list[UploadRecord] = field(default_factory=list)

    def clear(self) -> None:
        """Drop the data and everything derived from it; the upload history survives."""
        self.store = None
        self.file_name = ""
        self.chart = ChartSettings()
        self.view = DataViewState()


def set_chart_type(state: SessionState, chart_type: str) -> None:
    chart_type = str(chart_type)
    if chart_type not in CHART_TYPES:
        raise ValueError(f"Unknown chart type: {chart_type}")
    state.chart.chart_type = chart_type


def set_axes(state: SessionState, x_column: str, y_column: str) -> None:
    state.chart.selection = AxisSelection(str(x_column or ""), str(y_column or ""))


def reset_chart_settings(state: SessionState) -> None:
    state.chart = ChartSettings()
