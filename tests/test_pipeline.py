"""
Unit tests for the pipeline controller state machine.
"""
import asyncio

import pytest

from sheet_chart_studio.core.errors import (
    CodecError,
    MissingAxis,
    NoDataRows,
    NoNumericData,
    PipelineBusyError,
    SizeExceeded,
    UnsupportedType,
)
from sheet_chart_studio.core.pipeline import PipelineController, PipelinePhase, UploadedFile
from sheet_chart_studio.core.state import XLSX_MIME_TYPE, AxisSelection, PipelineSettings
from sheet_chart_studio.core.view import DataViewState

MIB = 1024 * 1024


def xlsx_upload(content, name="data.xlsx"):
    return UploadedFile(file_name=name, size_bytes=len(content), mime_type=XLSX_MIME_TYPE, content=content)


@pytest.fixture
def notes():
    return []


@pytest.fixture
def controller(notes):
    return PipelineController(notify=notes.append)


@pytest.fixture
def sales_bytes(make_xlsx):
    return make_xlsx([["Name", "Sales"], ["Alice", 10], ["Bob", 20]])


class TestSubmit:

    def test_starts_empty(self, controller):
        assert controller.phase == PipelinePhase.EMPTY
        assert controller.store is None
        assert controller.current_view() is None
        assert not controller.build_current_chart().ok

    def test_successful_upload(self, controller, notes, sales_bytes):
        phase = asyncio.run(controller.submit(xlsx_upload(sales_bytes, "sales.xlsx")))

        assert phase == PipelinePhase.READY
        assert controller.store.headers == ("Name", "Sales")
        assert controller.error is None
        assert controller.state.file_name == "sales.xlsx"
        assert [r.file_name for r in controller.state.history] == ["sales.xlsx"]
        assert notes[-1].kind == "success"
        assert notes[-1].title == "File uploaded successfully"
        assert notes[-1].description == "Processed 2 rows with 2 columns"

    def test_default_axes_after_upload(self, controller, sales_bytes):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        assert controller.state.chart.selection == AxisSelection("Name", "Sales")

        outcome = controller.build_current_chart()
        assert outcome.ok
        assert outcome.spec.traces[0]["x"] == ["Alice", "Bob"]
        assert outcome.spec.traces[0]["y"] == [10, 20]

    def test_oversized_file_never_read(self, controller, notes):
        reads = []

        async def reader():
            reads.append(1)
            return b""

        upload = UploadedFile("big.xlsx", 11 * MIB, XLSX_MIME_TYPE, reader=reader)
        phase = asyncio.run(controller.submit(upload))

        assert phase == PipelinePhase.FAILED
        assert isinstance(controller.error, SizeExceeded)
        assert reads == []
        assert notes[-1].kind == "error"
        assert notes[-1].description == "File size exceeds 10MB limit"

    def test_wrong_type(self, controller, sales_bytes):
        upload = UploadedFile("data.csv", len(sales_bytes), "text/csv", content=sales_bytes)
        asyncio.run(controller.submit(upload))
        assert isinstance(controller.error, UnsupportedType)

    def test_header_only_workbook(self, controller, make_xlsx):
        asyncio.run(controller.submit(xlsx_upload(make_xlsx([["A", "B"]]))))
        assert controller.phase == PipelinePhase.FAILED
        assert isinstance(controller.error, NoDataRows)

    def test_corrupt_bytes(self, controller, temp_log_path):
        asyncio.run(controller.submit(xlsx_upload(b"garbage")))
        assert isinstance(controller.error, CodecError)
        assert "decode" in temp_log_path.read_text(encoding="utf-8")

    def test_read_error_is_codec_error(self, controller):
        async def reader():
            raise OSError("disk gone")

        asyncio.run(controller.submit(UploadedFile("a.xlsx", 10, XLSX_MIME_TYPE, reader=reader)))
        assert isinstance(controller.error, CodecError)

    def test_failed_then_retry(self, controller, sales_bytes):
        asyncio.run(controller.submit(xlsx_upload(b"garbage")))
        assert controller.phase == PipelinePhase.FAILED
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        assert controller.phase == PipelinePhase.READY
        assert controller.error is None

    def test_failed_upload_keeps_previous_store(self, controller, sales_bytes):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        store = controller.store
        asyncio.run(controller.submit(xlsx_upload(b"garbage")))
        assert controller.phase == PipelinePhase.FAILED
        assert controller.store is store

    def test_custom_history_limit(self, sales_bytes):
        controller = PipelineController(settings=PipelineSettings(history_limit=2))
        for name in ("a.xlsx", "b.xlsx", "c.xlsx"):
            asyncio.run(controller.submit(xlsx_upload(sales_bytes, name)))
        assert [r.file_name for r in controller.state.history] == ["c.xlsx", "b.xlsx"]


class TestConcurrency:

    def test_second_submission_rejected_while_decoding(self, controller, sales_bytes):
        async def scenario():
            gate = asyncio.Event()

            async def slow_reader():
                await gate.wait()
                return sales_bytes

            first = asyncio.ensure_future(
                controller.submit(UploadedFile("slow.xlsx", len(sales_bytes), XLSX_MIME_TYPE, reader=slow_reader))
            )
            await asyncio.sleep(0)
            assert controller.phase == PipelinePhase.DECODING
            with pytest.raises(PipelineBusyError):
                await controller.submit(xlsx_upload(sales_bytes, "other.xlsx"))
            gate.set()
            return await first

        assert asyncio.run(scenario()) == PipelinePhase.READY
        assert [r.file_name for r in controller.state.history] == ["slow.xlsx"]

    def test_reset_during_decode_discards_result(self, controller, sales_bytes):
        async def scenario():
            gate = asyncio.Event()

            async def slow_reader():
                await gate.wait()
                return sales_bytes

            pending = asyncio.ensure_future(
                controller.submit(UploadedFile("slow.xlsx", len(sales_bytes), XLSX_MIME_TYPE, reader=slow_reader))
            )
            await asyncio.sleep(0)
            controller.reset()
            gate.set()
            return await pending

        assert asyncio.run(scenario()) == PipelinePhase.EMPTY
        assert controller.store is None
        assert controller.state.history == []

    def test_reader_value_error_fails_and_allows_retry(self, controller, notes, sales_bytes, temp_log_path):
        async def aborted_reader():
            raise ValueError("browser read aborted")

        upload = UploadedFile("a.xlsx", 10, XLSX_MIME_TYPE, reader=aborted_reader)
        assert asyncio.run(controller.submit(upload)) == PipelinePhase.FAILED
        assert isinstance(controller.error, CodecError)
        assert isinstance(controller.error.__cause__, ValueError)
        assert notes[-1].title == "Upload failed"
        assert "browser read aborted" in temp_log_path.read_text(encoding="utf-8")

        assert asyncio.run(controller.submit(xlsx_upload(sales_bytes))) == PipelinePhase.READY

    def test_malformed_size_fails_instead_of_sticking(self, controller, sales_bytes):
        upload = UploadedFile("big.xlsx", "big", XLSX_MIME_TYPE, content=sales_bytes)
        assert asyncio.run(controller.submit(upload)) == PipelinePhase.FAILED
        assert not controller.is_busy

        assert asyncio.run(controller.submit(xlsx_upload(sales_bytes))) == PipelinePhase.READY

    def test_cancelled_submit_restores_phase(self, controller, sales_bytes):
        async def scenario():
            gate = asyncio.Event()

            async def never_reader():
                await gate.wait()
                return sales_bytes

            pending = asyncio.ensure_future(
                controller.submit(UploadedFile("slow.xlsx", len(sales_bytes), XLSX_MIME_TYPE, reader=never_reader))
            )
            await asyncio.sleep(0)
            assert controller.phase == PipelinePhase.DECODING
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending
            assert controller.phase == PipelinePhase.EMPTY
            return await controller.submit(xlsx_upload(sales_bytes, "next.xlsx"))

        assert asyncio.run(scenario()) == PipelinePhase.READY
        assert [r.file_name for r in controller.state.history] == ["next.xlsx"]

    def test_cancelled_submit_keeps_previous_ready_store(self, controller, sales_bytes):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes, "first.xlsx")))
        store = controller.store

        async def scenario():
            gate = asyncio.Event()

            async def never_reader():
                await gate.wait()
                return sales_bytes

            pending = asyncio.ensure_future(
                controller.submit(UploadedFile("slow.xlsx", len(sales_bytes), XLSX_MIME_TYPE, reader=never_reader))
            )
            await asyncio.sleep(0)
            pending.cancel()
            with pytest.raises(asyncio.CancelledError):
                await pending

        asyncio.run(scenario())
        assert controller.phase == PipelinePhase.READY
        assert controller.store is store

    def test_reader_error_after_reset_is_discarded(self, controller, notes, sales_bytes):
        async def scenario():
            gate = asyncio.Event()

            async def failing_reader():
                await gate.wait()
                raise ValueError("browser read aborted")

            pending = asyncio.ensure_future(
                controller.submit(UploadedFile("slow.xlsx", len(sales_bytes), XLSX_MIME_TYPE, reader=failing_reader))
            )
            await asyncio.sleep(0)
            controller.reset()
            gate.set()
            return await pending

        assert asyncio.run(scenario()) == PipelinePhase.EMPTY
        assert controller.error is None
        assert notes[-1].title == "Data cleared"


class TestStoreReplacement:

    def test_stale_axes_re_resolved(self, controller, sales_bytes, make_xlsx):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        controller.select_axes("Sales", "Name")
        asyncio.run(controller.submit(xlsx_upload(make_xlsx([["City", "Temp"], ["Oslo", 3]]))))

        selection = controller.state.chart.selection
        assert selection == AxisSelection("City", "Temp")

    def test_surviving_axes_kept(self, controller, make_xlsx):
        asyncio.run(controller.submit(xlsx_upload(make_xlsx([["A", "B", "C"], [1, 2, 3]]))))
        controller.select_axes("C", "A")
        asyncio.run(controller.submit(xlsx_upload(make_xlsx([["C", "A"], [5, 6]]))))
        assert controller.state.chart.selection == AxisSelection("C", "A")

    def test_single_column_store_clears_axes(self, controller, sales_bytes, make_xlsx):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        asyncio.run(controller.submit(xlsx_upload(make_xlsx([["Only"], [1]]))))
        assert controller.state.chart.selection == AxisSelection()
        assert isinstance(controller.build_current_chart().error, MissingAxis)

    def test_stale_sort_column_dropped(self, controller, sales_bytes, make_xlsx):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        controller.sort_by("Sales")
        asyncio.run(controller.submit(xlsx_upload(make_xlsx([["City", "Temp"], ["Oslo", 3]]))))
        assert controller.state.view.sort_column is None
        assert controller.current_view().total_matched == 1


class TestReset:

    def test_reset_clears_everything_but_history(self, controller, notes, sales_bytes):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        controller.search("bob")
        controller.set_chart_type("pie")
        controller.reset()

        assert controller.phase == PipelinePhase.EMPTY
        assert controller.store is None
        assert controller.state.chart.selection == AxisSelection()
        assert controller.state.chart.chart_type == "bar"
        assert controller.state.view == DataViewState()
        assert len(controller.state.history) == 1
        assert notes[-1].title == "Data cleared"


class TestViewAndChart:

    @pytest.fixture
    def ready(self, controller, sales_bytes):
        asyncio.run(controller.submit(xlsx_upload(sales_bytes)))
        return controller

    def test_search(self, ready):
        result = ready.search("bob")
        assert result.visible_rows == [("Bob", 20)]

    def test_sort_toggle(self, ready):
        assert ready.sort_by("Sales").visible_rows[0] == ("Alice", 10)
        assert ready.sort_by("Sales").visible_rows[0] == ("Bob", 20)
        assert ready.state.view.sort_direction == "desc"

    def test_unknown_sort_column_leaves_view_usable(self, ready):
        ready.search("o")
        with pytest.raises(KeyError):
            ready.sort_by("Nope")

        assert ready.state.view == DataViewState(search_term="o")
        assert ready.search("1").visible_rows == [("Alice", 10)]
        assert ready.toggle_show_all().total_matched == 1
        assert isinstance(ready.current_caption(), str)

    def test_show_all(self, ready):
        ready.toggle_show_all()
        assert ready.state.view.show_all
        assert ready.current_caption() == "Showing all 2 rows"

    def test_chart_type_change(self, ready):
        outcome = ready.set_chart_type("pie")
        assert outcome.spec.traces[0]["type"] == "pie"

    def test_chart_error_reported_inline(self, ready, notes, make_xlsx):
        ready.select_axes("Sales", "Name")
        outcome = ready.build_current_chart()
        assert not outcome.ok
        assert isinstance(outcome.error, NoNumericData)
        assert notes[-1].title == "Chart error"
        assert ready.phase == PipelinePhase.READY

    def test_reset_chart(self, ready, notes):
        ready.set_chart_type("line")
        ready.reset_chart()
        assert ready.state.chart.chart_type == "bar"
        assert ready.state.chart.selection == AxisSelection()
        assert notes[-1].title == "Chart reset"

    def test_unknown_chart_type(self, ready):
        with pytest.raises(ValueError):
            ready.set_chart_type("radar")

    def test_export_chart(self, ready, notes, tmp_path):
        out = tmp_path / "chart.html"
        assert ready.export_chart(str(out)) == str(out)
        assert out.exists()
        assert notes[-1].title == "Chart downloaded"

    def test_export_to_missing_directory(self, ready, notes, tmp_path):
        assert ready.export_chart(str(tmp_path / "nope" / "chart.html")) is None
        assert notes[-1].title == "Download failed"


class TestUploadedFile:

    def test_from_path(self, tmp_path, sales_bytes):
        path = tmp_path / "sales.xlsx"
        path.write_bytes(sales_bytes)
        upload = UploadedFile.from_path(str(path))
        assert upload.file_name == "sales.xlsx"
        assert upload.size_bytes == len(sales_bytes)
        assert upload.mime_type == XLSX_MIME_TYPE
        assert asyncio.run(upload.read()) == sales_bytes
