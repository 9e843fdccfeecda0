import re
from typing import Any, Optional, Union

import numpy as np

Number = Union[int, float]

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def is_empty_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (float, np.floating)) and not np.isfinite(value):
        return True
    return isinstance(value, str) and value == ""


def coerce_number(value: Any) -> Optional[Number]:
    """Finite number for numeric cells and fully numeric strings; None otherwise.

    Booleans are not numbers here. Strings must be a plain decimal or exponent
    literal after stripping whitespace ("1_000", "0x1f" and "inf" do not count).
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return float(value) if np.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.match(text):
            return None
        out = float(text)
        if not np.isfinite(out):
            return None
        if out.is_integer() and re.fullmatch(r"[+-]?\d+", text):
            return int(text)
        return out
    return None


def cell_text(value: Any) -> str:
    """Display text of a cell: "" for empty, true/false for booleans, 10 rather than 10.0."""
    if is_empty_cell(value):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def cell_sort_key(value: Any):
    """Total order over mixed cells: numbers (booleans as 0/1), then text, then empty."""
    if is_empty_cell(value):
        return (2,)
    if isinstance(value, (bool, np.bool_)):
        return (0, float(bool(value)))
    if isinstance(value, (int, float, np.integer, np.floating)):
        return (0, float(value))
    text = cell_text(value)
    return (1, text.casefold(), text)
