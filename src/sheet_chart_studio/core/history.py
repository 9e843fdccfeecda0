from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import uuid

HISTORY_LIMIT = 5
DEFAULT_FILE_NAME = "excel-file.xlsx"


@dataclass(frozen=True)
class UploadRecord:
    id: str
    file_name: str
    upload_date: datetime
    row_count: int
    column_count: int


def new_upload_record(
    file_name: str,
    row_count: int,
    column_count: int,
    upload_date: Optional[datetime] = None,
) -> UploadRecord:
    return UploadRecord(
        id=uuid.uuid4().hex,
        file_name=str(file_name).strip() or DEFAULT_FILE_NAME,
        upload_date=upload_date or datetime.now(),
        row_count=int(row_count),
        column_count=int(column_count),
    )


def add_upload_record(
    history: list[UploadRecord],
    record: UploadRecord,
    limit: int = HISTORY_LIMIT,
) -> list[UploadRecord]:
    """Return a new history with ``record`` first; the oldest entries fall off past ``limit``."""
    if limit < 1:
        raise ValueError("History limit must be at least 1.")
    return [record, *history[: limit - 1]]
