from __future__ import annotations

import re
from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from bom_enricher.models.error_record import ErrorRecord

"""Fetch error log buffering.

Failed lookups of a fetch pass are buffered as ErrorRecords and written in one
flush at the end of the pass, as JSON Lines with a fixed key set.

File name: ``errors-YYYYMMDD-HHMMSS.log`` (UTC), or
``errors-<bom>-YYYYMMDD-HHMMSS.log`` when the BOM name is known. One file per
buffer; retry passes append to it.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ErrorLogBuffer:
    """In-memory buffer of ErrorRecords for one enrichment session.

    Not thread safe (single event loop).
    """

    def __init__(self, logs_dir: Path | None = None, *, source_name: str | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._source = _UNSAFE_NAME_CHARS.sub("_", Path(source_name).stem) if source_name else None
        self._file_path: Path | None = None
        self.written = 0

    @property
    def file_path(self) -> Path:
        """Log path, fixed (and its directory created) on first access."""
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            prefix = f"errors-{self._source}" if self._source else "errors"
            self._file_path = self._logs_dir / f"{prefix}-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def counts_by_type(self) -> dict[str, int]:
        """Buffered records per error_type, most frequent first."""
        return dict(Counter(r.error_type for r in self._records).most_common())

    def flush(self) -> Path | None:
        """Append buffered records to the log file and empty the buffer.

        Returns:
            The log path, or None when nothing was buffered
        """
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self.written += len(self._records)
        self._records.clear()
        return fp
