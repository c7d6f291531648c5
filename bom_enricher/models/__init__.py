"""Domain models for the BOM enricher.

Rows and their enrichment state, normalized catalog records, fetch run
results and error log records.
"""

from .bom_row import BomRow, BomRowInput, FetchStatus, is_fetchable_part_number
from .error_record import ErrorRecord
from .fetch_result import FetchProgress, FetchRunResult, RunOutcome
from .part_info import PartInfo, PriceTier

__all__ = [
    # Rows
    "BomRow",
    "BomRowInput",
    "FetchStatus",
    "is_fetchable_part_number",
    # Catalog records
    "PartInfo",
    "PriceTier",
    # Fetch runs
    "FetchProgress",
    "FetchRunResult",
    "RunOutcome",
    "ErrorRecord",
]
