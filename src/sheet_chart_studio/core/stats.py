from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from sheet_chart_studio.core.state import SessionState
from sheet_chart_studio.core.table import TabularDataStore
from sheet_chart_studio.utils.sortkeys import coerce_number, is_empty_cell

# rough bytes-per-cell used by the dashboard's size estimate
BYTES_PER_CELL_ESTIMATE = 0.1


@dataclass
class DashboardStats:
    total_uploads: int = 0
    charts_generated: int = 0
    data_points: int = 0
    estimated_size_kb: int = 0
    active: bool = False


@dataclass
class ColumnSummary:
    name: str
    non_empty: int
    numeric: int
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    mean: Optional[float] = None


@dataclass
class TableSummary:
    columns: list[ColumnSummary] = field(default_factory=list)

    @property
    def numeric_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.numeric > 0]


def compute_dashboard_stats(state: SessionState) -> DashboardStats:
    store = state.store
    if store is None:
        return DashboardStats(total_uploads=len(state.history))
    points = store.data_points
    return DashboardStats(
        total_uploads=len(state.history),
        charts_generated=1,
        data_points=points,
        estimated_size_kb=int(round(points * BYTES_PER_CELL_ESTIMATE / 1024)),
        active=True,
    )


def table_to_frame(store: TabularDataStore) -> pd.DataFrame:
    """Positional frame (duplicate headers allowed) with object cells."""
    return pd.DataFrame(list(store.rows), columns=range(store.column_count), dtype=object)


def summarize_table(store: TabularDataStore) -> TableSummary:
    df = table_to_frame(store)
    out = TableSummary()
    for idx, name in enumerate(store.headers):
        col = df[idx]
        non_empty = int(sum(0 if is_empty_cell(v) else 1 for v in col))
        values = np.array(
            [n for n in (coerce_number(v) for v in col) if n is not None],
            dtype=float,
        )
        summary = ColumnSummary(name=name, non_empty=non_empty, numeric=int(values.size))
        if values.size:
            summary.minimum = float(np.min(values))
            summary.maximum = float(np.max(values))
            summary.mean = float(np.mean(values))
        out.columns.append(summary)
    return out
