from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the fetch error log.

One record per failed part number per fetch run. Serialized as JSON Lines with
a fixed key set: timestamp, part_number, rows, error_type, status_code, message.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        part_number: Part number whose lookup failed
        rows: Number of BOM rows sharing that part number
        error_type: FetchErrorKind name (NOT_FOUND, UPSTREAM, NETWORK)
        status_code: Upstream status code, None when not applicable
        message: Error message shown on the row
    """
    timestamp: str  # ISO8601 UTC
    part_number: str
    rows: int
    error_type: str  # UPPER_SNAKE
    status_code: int | None
    message: str

    @staticmethod
    def create(
        part_number: str,
        rows: int,
        error_type: str,
        message: str,
        status_code: int | None = None,
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            part_number=part_number,
            rows=rows,
            error_type=error_type,
            status_code=status_code,
            message=message,
        )

    def to_json_line(self) -> str:
        # asdict keeps the key set fixed to the dataclass fields
        return json.dumps(asdict(self), ensure_ascii=False)
