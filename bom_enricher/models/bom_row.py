from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .part_info import PartInfo

"""BOM row domain models and FetchStatus enum.

BomRowInput is a raw line as parsed from the BOM file. BomRow is the same line
plus its enrichment state, owned by RowStore. BomRow is frozen: every change
replaces the whole row, so a reader never sees a half-updated row.
"""

__all__ = [
    "PART_NUMBER_PATTERN",
    "FetchStatus",
    "BomRowInput",
    "BomRow",
    "is_fetchable_part_number",
    "initial_status",
]

# LCSC / JLCPCB part code: "C" followed by digits
PART_NUMBER_PATTERN = re.compile(r"C[0-9]+")


class FetchStatus(Enum):
    """Enrichment state of a BOM row.

    State transitions: pending → loading → (success | error)

    - PENDING: Fetchable, waiting for the next fetch run
    - LOADING: Part number is part of the current run
    - SUCCESS: Part info attached
    - ERROR: Last fetch failed (error_message set)
    - SKIPPED: Part number missing or malformed, never fetched
    """
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


def is_fetchable_part_number(part_number: str | None) -> bool:
    """Return True when the part number is eligible for a catalog lookup."""
    if not part_number:
        return False
    return PART_NUMBER_PATTERN.fullmatch(part_number) is not None


def initial_status(part_number: str | None) -> FetchStatus:
    return FetchStatus.PENDING if is_fetchable_part_number(part_number) else FetchStatus.SKIPPED


@dataclass(frozen=True)
class BomRowInput:
    """One BOM line as read from the design tool export."""
    comment: str  # Value, e.g. "100nF/16V/0603"
    designator: str  # e.g. "R201,R202"
    footprint: str  # e.g. "R_0402_1005Metric"
    part_number: str  # LCSC code, "" when absent
    quantity: int


@dataclass(frozen=True)
class BomRow:
    """A BOM line with its enrichment state.

    part_info is present iff status is SUCCESS. unit_price / total_price are
    present only when part_info priced the row's quantity. error_message is
    present only when status is ERROR.
    """
    id: str
    comment: str
    designator: str
    footprint: str
    part_number: str
    quantity: int
    status: FetchStatus
    part_info: PartInfo | None = None
    error_message: str | None = None
    unit_price: float | None = None
    total_price: float | None = None

    @property
    def fetchable(self) -> bool:
        return is_fetchable_part_number(self.part_number)

    @staticmethod
    def from_input(row_id: str, row: BomRowInput) -> BomRow:
        return BomRow(
            id=row_id,
            comment=row.comment,
            designator=row.designator,
            footprint=row.footprint,
            part_number=row.part_number,
            quantity=row.quantity,
            status=initial_status(row.part_number),
        )
