import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOG_PATH = Path.home() / "SheetChartStudio_error.log"

_log_path: Path = DEFAULT_LOG_PATH


def set_log_path(path: Optional[Path]) -> Path:
    """Redirect diagnostics to another file (``None`` restores the default). Returns the previous path."""
    global _log_path
    previous = _log_path
    _log_path = Path(path) if path is not None else DEFAULT_LOG_PATH
    return previous


def current_log_path() -> Path:
    return _log_path


def _one_line(value: Any, max_len: int = 800) -> str:
    try:
        text = str(value)
    except Exception:
        text = repr(value)
    text = text.replace("\r", "\\r").replace("\n", "\\n")
    return text if len(text) <= max_len else text[: max_len - 3] + "..."


def log_event(context: str, message: str, log_path: Optional[Path] = None) -> None:
    """Append one ``timestamp | context | message`` line (phase changes, rejected submits)."""
    line = f"{datetime.now().isoformat()}  |  {context}  |  {_one_line(message)}\n"
    try:
        with open(log_path or _log_path, "a", encoding="utf-8") as f:
            f.write(line)
    except OSError:
        pass


def log_failure(context: str, exc: BaseException, log_path: Optional[Path] = None) -> None:
    """Expected, user-facing failures get a single line naming their kind."""
    kind = getattr(exc, "kind", type(exc).__name__)
    log_event(context, f"{kind}: {exc}", log_path=log_path)


def log_exception(context: str, log_path: Optional[Path] = None) -> None:
    """Unexpected failures (codec errors, export I/O) get the full traceback of the exception being handled."""
    try:
        with open(log_path or _log_path, "a", encoding="utf-8") as f:
            f.write(f"\n{'=' * 80}\n{datetime.now().isoformat()}  |  {context}\n")
            traceback.print_exc(file=f)
    except OSError:
        # diagnostics must not take the pipeline down with them
        pass
