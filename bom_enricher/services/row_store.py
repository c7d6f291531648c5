from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from ..models.bom_row import BomRow, BomRowInput, FetchStatus, initial_status
from ..models.part_info import PartInfo
from .pricing import price_row

"""In-memory store of BOM rows and their enrichment state.

RowStore is the only writer of row state. Each public mutator is synchronous
and replaces the affected BomRow objects wholesale, so on the event loop every
call is one indivisible update. Operations keyed by part number fan out to
every row sharing it (linear scan; BOMs are tens to low thousands of rows).

Listeners registered with ``add_listener`` receive the tuple of rows changed
by each operation.
"""

__all__ = [
    "RowNotFoundError",
    "RowStore",
]

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"comment", "designator", "footprint", "part_number", "quantity"})

RowListener = Callable[[tuple[BomRow, ...]], None]


class RowNotFoundError(KeyError):
    """No row with the given id."""


class RowStore:
    def __init__(self) -> None:
        self._rows: list[BomRow] = []
        self._listeners: list[RowListener] = []
        self.source_name: str | None = None

    # ---- queries -------------------------------------------------------

    @property
    def rows(self) -> tuple[BomRow, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def get(self, row_id: str) -> BomRow:
        return self._rows[self._index_of(row_id)]

    def unique_part_numbers(self) -> list[str]:
        """Fetchable part numbers, deduplicated in first-occurrence order."""
        return self._dedupe(r.part_number for r in self._rows if r.fetchable)

    def pending_part_numbers(self) -> list[str]:
        """Fetchable part numbers with at least one PENDING row."""
        return self._dedupe(
            r.part_number for r in self._rows if r.status is FetchStatus.PENDING and r.fetchable
        )

    def rows_for(self, part_number: str) -> tuple[BomRow, ...]:
        return tuple(r for r in self._rows if r.part_number == part_number)

    def total_cost(self) -> float:
        return sum((r.total_price or 0.0) for r in self._rows)

    def status_counts(self) -> dict[FetchStatus, int]:
        counts = {s: 0 for s in FetchStatus}
        for r in self._rows:
            counts[r.status] += 1
        return counts

    # ---- mutators ------------------------------------------------------

    def load(self, rows: Iterable[BomRowInput], source_name: str | None = None) -> tuple[BomRow, ...]:
        """Replace the whole collection with fresh rows.

        Prior enrichment and fetch state is discarded. Each row's status is
        PENDING when its part number is fetchable, SKIPPED otherwise.
        """
        batch = uuid.uuid4().hex[:8]
        self._rows = [BomRow.from_input(f"bom-{i}-{batch}", r) for i, r in enumerate(rows)]
        self.source_name = source_name
        logger.debug(f"rows loaded: count={len(self._rows)} source={source_name}")
        self._notify(self._rows)
        return self.rows

    def clear(self) -> None:
        self._rows = []
        self.source_name = None
        self._notify([])

    def update(self, row_id: str, **changes: Any) -> BomRow:
        """Apply a partial update to one row.

        Changing part_number resets enrichment, prices and error and recomputes
        the status. Changing quantity re-prices the row from its part info.

        Raises:
            RowNotFoundError: Unknown row id
            ValueError: Unknown field or negative quantity
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"fields not editable: {sorted(unknown)}")
        if "quantity" in changes:
            changes["quantity"] = int(changes["quantity"])
            if changes["quantity"] < 0:
                raise ValueError(f"quantity must be >= 0: {changes['quantity']}")

        index = self._index_of(row_id)
        row = replace(self._rows[index], **changes)
        if "part_number" in changes:
            row = replace(
                row,
                status=initial_status(row.part_number),
                part_info=None,
                error_message=None,
                unit_price=None,
                total_price=None,
            )
        elif "quantity" in changes and row.part_info is not None:
            unit, total = price_row(row.part_info.prices, row.quantity)
            row = replace(row, unit_price=unit, total_price=total)
        self._rows[index] = row
        self._notify([row])
        return row

    def remove(self, row_id: str) -> BomRow:
        """Delete one row permanently."""
        row = self._rows.pop(self._index_of(row_id))
        self._notify([row])
        return row

    def apply_enrichment(self, part_number: str, info: PartInfo) -> tuple[BomRow, ...]:
        """Attach ``info`` to every row with ``part_number`` and price each row.

        Each row is priced against its own quantity. Idempotent.
        """
        changed = []
        for i, row in enumerate(self._rows):
            if row.part_number != part_number or not row.fetchable:
                continue
            unit, total = price_row(info.prices, row.quantity)
            self._rows[i] = replace(
                row,
                part_info=info,
                status=FetchStatus.SUCCESS,
                error_message=None,
                unit_price=unit,
                total_price=total,
            )
            changed.append(self._rows[i])
        self._notify(changed)
        return tuple(changed)

    def set_status(
        self, part_number: str, status: FetchStatus, message: str | None = None
    ) -> tuple[BomRow, ...]:
        """Set ``status`` on every row with ``part_number``.

        ERROR keeps ``message`` as the row's error message; any other status
        clears it. Part info and prices are dropped since only SUCCESS rows
        carry them.

        Raises:
            ValueError: status is SUCCESS (use apply_enrichment)
        """
        if status is FetchStatus.SUCCESS:
            raise ValueError("SUCCESS requires part info; use apply_enrichment()")
        changed = []
        for i, row in enumerate(self._rows):
            if row.part_number != part_number or not row.fetchable:
                continue
            if status is FetchStatus.ERROR:
                error_message = message or row.error_message or "Failed to fetch"
            else:
                error_message = None
            self._rows[i] = replace(
                row,
                status=status,
                error_message=error_message,
                part_info=None,
                unit_price=None,
                total_price=None,
            )
            changed.append(self._rows[i])
        self._notify(changed)
        return tuple(changed)

    def reset_errors(self) -> int:
        """Move every ERROR row back to PENDING. Returns the number moved."""
        changed = []
        for i, row in enumerate(self._rows):
            if row.status is FetchStatus.ERROR:
                self._rows[i] = replace(row, status=FetchStatus.PENDING, error_message=None)
                changed.append(self._rows[i])
        self._notify(changed)
        return len(changed)

    # ---- listeners -----------------------------------------------------

    def add_listener(self, listener: RowListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: RowListener) -> None:
        self._listeners.remove(listener)

    def _notify(self, rows: Iterable[BomRow]) -> None:
        snapshot = tuple(rows)
        for listener in list(self._listeners):
            listener(snapshot)

    def _index_of(self, row_id: str) -> int:
        for i, row in enumerate(self._rows):
            if row.id == row_id:
                return i
        raise RowNotFoundError(row_id)

    @staticmethod
    def _dedupe(part_numbers: Iterable[str]) -> list[str]:
        return list(dict.fromkeys(part_numbers))

