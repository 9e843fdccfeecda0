"""Upload pipeline: validate -> decode -> install, plus the view/chart recomputation hooks.

The controller owns the one active TabularDataStore and the shell-side state
(axis selection, chart type, data view state). DataView and the chart builder
are pure; the controller decides when to call them.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from typing import Awaitable, Callable, Optional

from sheet_chart_studio.core.errors import ChartError, CodecError, PipelineBusyError, UploadError
from sheet_chart_studio.core.history import add_upload_record, new_upload_record
from sheet_chart_studio.core.plotting import (
    ChartSpec,
    build_chart,
    export_chart_html,
    revalidate_axis_selection,
)
from sheet_chart_studio.core.state import (
    PipelineSettings,
    SessionState,
    reset_chart_settings,
    set_axes,
    set_chart_type,
)
from sheet_chart_studio.core.table import TabularDataStore
from sheet_chart_studio.core.validation import guess_mime_type, validate_upload
from sheet_chart_studio.core.view import (
    DataViewState,
    ViewResult,
    apply_view,
    preview_caption,
    revalidate_view_state,
    set_search_term,
    toggle_show_all,
    toggle_sort,
)
from sheet_chart_studio.data.loaders import decode_workbook
from sheet_chart_studio.utils.log import log_event, log_exception, log_failure


class PipelinePhase(str, Enum):
    EMPTY = "empty"
    VALIDATING = "validating"
    DECODING = "decoding"
    READY = "ready"
    FAILED = "failed"


BUSY_PHASES = (PipelinePhase.VALIDATING, PipelinePhase.DECODING)


@dataclass
class UploadedFile:
    """A file handed over by the file-selection layer: declared metadata plus a byte source."""

    file_name: str
    size_bytes: int
    mime_type: str
    content: bytes = b""
    reader: Optional[Callable[[], Awaitable[bytes]]] = None

    async def read(self) -> bytes:
        if self.reader is not None:
            return await self.reader()
        return self.content

    @classmethod
    def from_path(cls, path: str) -> "UploadedFile":
        with open(path, "rb") as f:
            content = f.read()
        name = os.path.basename(path)
        return cls(file_name=name, size_bytes=len(content), mime_type=guess_mime_type(name), content=content)


@dataclass(frozen=True)
class Notification:
    kind: str  # "success" | "error"
    title: str
    description: str


@dataclass
class ChartOutcome:
    spec: Optional[ChartSpec] = None
    error: Optional[ChartError] = None

    @property
    def ok(self) -> bool:
        return self.spec is not None


Notifier = Callable[[Notification], None]


class PipelineController:
    def __init__(self, settings: Optional[PipelineSettings] = None, notify: Optional[Notifier] = None) -> None:
        self.settings = settings or PipelineSettings()
        self.state = SessionState()
        self.phase = PipelinePhase.EMPTY
        self.error: Optional[UploadError] = None
        self._notify = notify
        self._generation = 0

    # ---------------- Upload ----------------
    @property
    def store(self) -> Optional[TabularDataStore]:
        return self.state.store

    @property
    def is_busy(self) -> bool:
        return self.phase in BUSY_PHASES

    async def submit(self, upload: UploadedFile) -> PipelinePhase:
        """Run one file through validation and decoding.

        Raises PipelineBusyError when another file is still in flight. Upload
        failures do not raise: they move the controller to FAILED.
        """
        if self.is_busy:
            log_event("submit", f"Rejected {upload.file_name!r}: {self.phase.value} in progress")
            raise PipelineBusyError()

        self._generation += 1
        generation = self._generation
        previous = self.phase
        self._enter(PipelinePhase.VALIDATING)
        try:
            try:
                validate_upload(upload.size_bytes, upload.mime_type, self.settings)
                self._enter(PipelinePhase.DECODING)
                content = await upload.read()
                if generation != self._generation:
                    return self._discard(upload)
                store = decode_workbook(content)
            except UploadError as exc:
                if generation != self._generation:
                    return self._discard(upload)
                return self._fail(exc)
            except Exception as exc:
                # reader or metadata failures outside the taxonomy
                if generation != self._generation:
                    return self._discard(upload)
                codec = CodecError()
                codec.__cause__ = exc
                return self._fail(codec)
        finally:
            # cancelled while in flight: give the phase back so later submissions are accepted
            if generation == self._generation and self.phase in BUSY_PHASES:
                log_event("submit", f"Abandoned {upload.file_name!r} during {self.phase.value}")
                self.phase = previous

        self._install(store, upload.file_name)
        return self.phase

    def reset(self) -> None:
        """Back to EMPTY: drops the store, the axis selection and the view state."""
        self._generation += 1
        self.state.clear()
        self.error = None
        self._enter(PipelinePhase.EMPTY)
        self._emit("success", "Data cleared", "Ready for a new file upload")

    def _enter(self, phase: PipelinePhase) -> None:
        log_event("phase", f"{self.phase.value} -> {phase.value}")
        self.phase = phase

    def _discard(self, upload: UploadedFile) -> PipelinePhase:
        log_event("submit", f"Discarded stale result for {upload.file_name!r}")
        return self.phase

    def _fail(self, exc: UploadError) -> PipelinePhase:
        if isinstance(exc, CodecError):
            log_exception("decode")
        else:
            log_failure("upload", exc)
        self.error = exc
        self._enter(PipelinePhase.FAILED)
        self._emit("error", "Upload failed", exc.user_message)
        return self.phase

    def _install(self, store: TabularDataStore, file_name: str) -> None:
        state = self.state
        state.store = store
        state.chart.selection = revalidate_axis_selection(state.chart.selection, store)
        state.view = revalidate_view_state(state.view, store)
        record = new_upload_record(file_name, store.row_count, store.column_count)
        state.file_name = record.file_name
        state.history = add_upload_record(state.history, record, self.settings.history_limit)
        self.error = None
        self._enter(PipelinePhase.READY)
        self._emit(
            "success",
            "File uploaded successfully",
            f"Processed {store.row_count} rows with {store.column_count} columns",
        )

    def _emit(self, kind: str, title: str, description: str) -> None:
        if self._notify is not None:
            self._notify(Notification(kind=kind, title=title, description=description))

    # ---------------- Data view ----------------
    def update_view(self, view: DataViewState) -> Optional[ViewResult]:
        """Apply ``view`` and keep it only when it applies cleanly (KeyError for an unknown sort column)."""
        if self.state.store is None:
            self.state.view = view
            return None
        result = apply_view(self.state.store, view, self.settings.preview_rows)
        self.state.view = view
        return result

    def search(self, term: str) -> Optional[ViewResult]:
        return self.update_view(set_search_term(self.state.view, term))

    def sort_by(self, column: str) -> Optional[ViewResult]:
        return self.update_view(toggle_sort(self.state.view, column))

    def toggle_show_all(self) -> Optional[ViewResult]:
        return self.update_view(toggle_show_all(self.state.view))

    def current_view(self) -> Optional[ViewResult]:
        if self.state.store is None:
            return None
        return apply_view(self.state.store, self.state.view, self.settings.preview_rows)

    def current_caption(self) -> str:
        result = self.current_view()
        if result is None or self.state.store is None:
            return ""
        return preview_caption(result, self.state.store, self.state.view, self.settings.preview_rows)

    # ---------------- Chart ----------------
    def select_axes(self, x_column: str, y_column: str) -> ChartOutcome:
        set_axes(self.state, x_column, y_column)
        return self.build_current_chart()

    def set_chart_type(self, chart_type: str) -> ChartOutcome:
        set_chart_type(self.state, chart_type)
        return self.build_current_chart()

    def reset_chart(self) -> None:
        reset_chart_settings(self.state)
        self._emit("success", "Chart reset", "Chart settings have been cleared")

    def build_current_chart(self) -> ChartOutcome:
        """Chart for the current store and settings; failures come back in ``error``."""
        store = self.state.store
        if store is None:
            return ChartOutcome()
        chart = self.state.chart
        try:
            spec = build_chart(store, chart.selection, chart.chart_type)
        except ChartError as exc:
            log_failure("chart", exc)
            self._emit("error", "Chart error", exc.user_message)
            return ChartOutcome(error=exc)
        return ChartOutcome(spec=spec)

    def export_chart(self, path: str) -> Optional[str]:
        outcome = self.build_current_chart()
        if outcome.spec is None:
            return None
        try:
            export_chart_html(outcome.spec, path)
        except OSError:
            log_exception("export_chart")
            self._emit("error", "Download failed", "Unable to download chart. Please try again.")
            return None
        self._emit("success", "Chart downloaded", f"Your chart has been saved to {path}")
        return path
