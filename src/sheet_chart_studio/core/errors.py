"""Failure kinds raised by the upload pipeline and the chart builder.

Every kind maps to exactly one user-facing message (``str(exc)``). Library
code raises these; the controller and the command-line shell catch them and
turn them into notifications.
"""
from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    kind = "PipelineError"
    message = "Something went wrong"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)

    @property
    def user_message(self) -> str:
        return str(self)


class UploadError(PipelineError):
    """Validator and decoder failures; they halt the current submission."""


class SizeExceeded(UploadError):
    kind = "SizeExceeded"
    message = "File size exceeds 10MB limit"


class UnsupportedType(UploadError):
    kind = "UnsupportedType"
    message = "Please upload a valid Excel file (.xlsx or .xls)"


class EmptyWorkbook(UploadError):
    kind = "EmptyWorkbook"
    message = "The Excel file appears to be empty"


class NoHeaders(UploadError):
    kind = "NoHeaders"
    message = "No headers found in the Excel file"


class NoDataRows(UploadError):
    kind = "NoDataRows"
    message = "No data rows found in the Excel file"


class CodecError(UploadError):
    kind = "CodecError"
    message = "Failed to process the Excel file"


class ChartError(PipelineError):
    """Chart configuration failures; shown next to the chart controls."""


class MissingAxis(ChartError):
    kind = "MissingAxis"
    message = "Select both an X-axis and a Y-axis column"


class ColumnNotFound(ChartError):
    kind = "ColumnNotFound"

    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"Column '{column}' not found")


class NoNumericData(ChartError):
    kind = "NoNumericData"
    message = "Selected Y-axis column contains no numeric data"


class PipelineBusyError(RuntimeError):
    """Raised when a file is submitted while another one is still being processed."""

    def __init__(self, message: str = "A file is already being processed") -> None:
        super().__init__(message)
