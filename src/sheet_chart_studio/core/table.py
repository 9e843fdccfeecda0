from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

Cell = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class TabularDataStore:
    """Immutable snapshot of the first sheet: a header row plus rectangular data rows."""

    headers: tuple[str, ...]
    rows: tuple[tuple[Cell, ...], ...]
    sheet_names: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.headers:
            raise ValueError("headers must not be empty.")
        if not self.rows:
            raise ValueError("rows must not be empty.")
        width = len(self.headers)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"Row {i} has {len(row)} cells; expected {width}.")

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def data_points(self) -> int:
        return self.row_count * self.column_count

    def has_column(self, name: str) -> bool:
        return name in self.headers

    def column_index(self, name: str) -> int:
        """Position of the first header called ``name``; KeyError when absent."""
        try:
            return self.headers.index(name)
        except ValueError:
            raise KeyError(name) from None

    def column_values(self, name: str) -> list[Any]:
        idx = self.column_index(name)
        return [row[idx] for row in self.rows]
