from __future__ import annotations

import mimetypes
import os
from typing import Optional

from sheet_chart_studio.core.errors import SizeExceeded, UnsupportedType
from sheet_chart_studio.core.state import XLS_MIME_TYPE, XLSX_MIME_TYPE, PipelineSettings

_EXTENSION_TYPES = {
    ".xlsx": XLSX_MIME_TYPE,
    ".xls": XLS_MIME_TYPE,
}


def validate_upload(size_bytes: int, mime_type: str, settings: Optional[PipelineSettings] = None) -> None:
    """Check the declared size, then the declared type, before any parsing.

    Raises SizeExceeded or UnsupportedType; only the first failure is reported.
    """
    settings = settings or PipelineSettings()
    if int(size_bytes) > settings.max_upload_bytes:
        raise SizeExceeded()
    if str(mime_type or "") not in settings.allowed_mime_types:
        raise UnsupportedType()


def guess_mime_type(file_name: str) -> str:
    """Declared type for a file on disk, as a browser would report it."""
    ext = os.path.splitext(str(file_name))[1].lower()
    if ext in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[ext]
    guessed, _encoding = mimetypes.guess_type(str(file_name))
    return guessed or ""
