from __future__ import annotations

import argparse
import asyncio
import sys
import tempfile
import webbrowser

import pandas as pd

from sheet_chart_studio.core.pipeline import Notification, PipelineController, PipelinePhase, UploadedFile
from sheet_chart_studio.core.state import CHART_TYPES, set_axes
from sheet_chart_studio.core.stats import TableSummary, summarize_table
from sheet_chart_studio.core.view import DataViewState, ViewResult, format_cell
from sheet_chart_studio.version import APP_TITLE, BUILD_VERSION


def _print_notification(note: Notification) -> None:
    stream = sys.stderr if note.kind == "error" else sys.stdout
    print(f"[{note.title}] {note.description}", file=stream)


def render_preview(headers: tuple[str, ...], result: ViewResult) -> str:
    if not result.visible_rows:
        return "(no matching rows)"
    frame = pd.DataFrame(
        [[format_cell(c) for c in row] for row in result.visible_rows],
        columns=list(headers),
    )
    return frame.to_string(index=False)


def render_summary(summary: TableSummary) -> str:
    frame = pd.DataFrame(
        [(c.name, c.non_empty, c.numeric, c.minimum, c.maximum, c.mean) for c in summary.columns],
        columns=["column", "non_empty", "numeric", "min", "max", "mean"],
    )
    return frame.to_string(index=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sheet-chart-studio", description=f"{APP_TITLE} {BUILD_VERSION}")
    parser.add_argument("path", help="Excel workbook (.xlsx or .xls)")
    parser.add_argument("--x", default="", help="X-axis column (default: first column)")
    parser.add_argument("--y", default="", help="Y-axis column (default: second column)")
    parser.add_argument("--type", default="bar", choices=CHART_TYPES, dest="chart_type")
    parser.add_argument("--search", default="")
    parser.add_argument("--sort", default=None, help="Column to sort the preview by")
    parser.add_argument("--desc", action="store_true", help="Sort descending")
    parser.add_argument("--all", action="store_true", dest="show_all", help="Show every matching row")
    parser.add_argument("--html", default="", help="Write the chart to this HTML file")
    parser.add_argument("--open", action="store_true", help="Open the chart in a browser")
    parser.add_argument("--summary", action="store_true", help="Print per-column counts and numeric ranges")
    return parser


def main(argv: list[str] | None = None) -> int:
    ns = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    controller = PipelineController(notify=_print_notification)

    try:
        upload = UploadedFile.from_path(ns.path)
    except OSError as exc:
        print(f"Cannot read {ns.path}: {exc}", file=sys.stderr)
        return 1

    phase = asyncio.run(controller.submit(upload))
    if phase != PipelinePhase.READY or controller.store is None:
        return 1
    store = controller.store

    try:
        result = controller.update_view(
            DataViewState(
                search_term=ns.search,
                sort_column=ns.sort,
                sort_direction="desc" if ns.desc else "asc",
                show_all=ns.show_all,
            )
        )
    except KeyError as exc:
        print(exc.args[0], file=sys.stderr)
        return 1
    print(f"{upload.file_name}: {store.row_count} rows x {store.column_count} columns")
    print(render_preview(store.headers, result))
    caption = controller.current_caption()
    if caption:
        print(caption)
    if ns.summary:
        print(render_summary(summarize_table(store)))

    if ns.x or ns.y:
        selection = controller.state.chart.selection
        set_axes(controller.state, ns.x or selection.x_column, ns.y or selection.y_column)
    outcome = controller.set_chart_type(ns.chart_type)
    if not outcome.ok:
        return 1

    out_path = ns.html
    if not out_path and ns.open:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".html") as handle:
            out_path = handle.name
    if out_path:
        if controller.export_chart(out_path) is None:
            return 1
        if ns.open:
            webbrowser.open(f"file://{out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
