from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from sheet_chart_studio.core.table import Cell, TabularDataStore
from sheet_chart_studio.utils.sortkeys import cell_sort_key, cell_text, is_empty_cell

PREVIEW_ROWS = 10
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class DataViewState:
    search_term: str = ""
    sort_column: Optional[str] = None
    sort_direction: str = "asc"
    show_all: bool = False

    def __post_init__(self) -> None:
        if self.sort_direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {self.sort_direction}")


@dataclass(frozen=True)
class ViewResult:
    visible_rows: list[tuple[Cell, ...]] = field(default_factory=list)
    total_matched: int = 0
    is_truncated: bool = False


def row_matches(row: tuple[Cell, ...], needle: str) -> bool:
    if not needle:
        return True
    return any(needle in cell_text(cell).casefold() for cell in row)


def filter_rows(store: TabularDataStore, search_term: str) -> list[tuple[Cell, ...]]:
    needle = str(search_term or "").casefold()
    if not needle:
        return list(store.rows)
    return [row for row in store.rows if row_matches(row, needle)]


def sort_rows(
    rows: list[tuple[Cell, ...]],
    column_index: int,
    direction: str = "asc",
) -> list[tuple[Cell, ...]]:
    """Stable sort on one column; equal cells keep their relative order in both directions."""
    return sorted(rows, key=lambda row: cell_sort_key(row[column_index]), reverse=direction == "desc")


def apply_view(
    store: TabularDataStore,
    state: DataViewState,
    preview_rows: int = PREVIEW_ROWS,
) -> ViewResult:
    """Search, then sort, then page. The store is never modified."""
    matched = filter_rows(store, state.search_term)
    if state.sort_column is not None:
        if not store.has_column(state.sort_column):
            raise KeyError(f"Sort column '{state.sort_column}' not found.")
        matched = sort_rows(matched, store.column_index(state.sort_column), state.sort_direction)

    total = len(matched)
    if state.show_all:
        return ViewResult(visible_rows=matched, total_matched=total, is_truncated=False)
    return ViewResult(
        visible_rows=matched[:preview_rows],
        total_matched=total,
        is_truncated=total > preview_rows,
    )


def toggle_sort(state: DataViewState, column: str) -> DataViewState:
    if state.sort_column == column:
        flipped = "desc" if state.sort_direction == "asc" else "asc"
        return replace(state, sort_direction=flipped)
    return replace(state, sort_column=column, sort_direction="asc")


def set_search_term(state: DataViewState, search_term: str) -> DataViewState:
    return replace(state, search_term=str(search_term or ""))


def toggle_show_all(state: DataViewState) -> DataViewState:
    return replace(state, show_all=not state.show_all)


def reset_view_state() -> DataViewState:
    return DataViewState()


def revalidate_view_state(state: DataViewState, store: TabularDataStore) -> DataViewState:
    """Drop a sort column the new store no longer has; the search term carries over."""
    if state.sort_column is not None and not store.has_column(state.sort_column):
        return replace(state, sort_column=None, sort_direction="asc")
    return state


def format_cell(cell: Cell) -> str:
    return "-" if is_empty_cell(cell) else cell_text(cell)


def preview_caption(
    result: ViewResult,
    store: TabularDataStore,
    state: DataViewState,
    preview_rows: int = PREVIEW_ROWS,
) -> str:
    suffix = f" (filtered from {store.row_count} total)" if state.search_term else ""
    if state.show_all:
        return f"Showing all {result.total_matched} rows{suffix}"
    if result.is_truncated:
        return f"Showing {preview_rows} of {result.total_matched} rows{suffix}"
    return ""
