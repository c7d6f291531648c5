from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.bom_row import BomRow

"""Export of enriched BOM rows to Excel or CSV.

Stateless: the export table is built from the rows as given. Missing
enrichment values are written as empty cells.
"""

__all__ = [
    "EXPORT_COLUMNS",
    "to_export_frame",
    "export_excel",
    "export_csv",
    "export_rows",
]

logger = logging.getLogger(__name__)

# column -> Excel width (characters)
EXPORT_COLUMNS: dict[str, int] = {
    "Comment": 20,
    "Designator": 30,
    "Footprint": 20,
    "LCSC": 10,
    "Quantity": 8,
    "Manufacturer": 15,
    "MPN": 20,
    "Description": 40,
    "Package": 12,
    "Stock": 10,
    "Unit Price (USD)": 15,
    "Total Price (USD)": 15,
    "Datasheet": 50,
}


def _export_record(row: BomRow) -> dict[str, Any]:
    info = row.part_info
    return {
        "Comment": row.comment,
        "Designator": row.designator,
        "Footprint": row.footprint,
        "LCSC": row.part_number,
        "Quantity": row.quantity,
        "Manufacturer": info.manufacturer if info else "",
        "MPN": info.mpn if info else "",
        "Description": info.description if info else "",
        "Package": info.package if info else "",
        "Stock": info.stock if info else "",
        "Unit Price (USD)": row.unit_price if row.unit_price is not None else "",
        "Total Price (USD)": row.total_price if row.total_price is not None else "",
        "Datasheet": info.datasheet if info else "",
    }


def to_export_frame(rows: Iterable[BomRow]) -> pd.DataFrame:
    return pd.DataFrame([_export_record(r) for r in rows], columns=list(EXPORT_COLUMNS))


def export_excel(rows: Iterable[BomRow], path: Path, sheet_name: str = "BOM") -> Path:
    df = to_export_frame(rows)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        sheet = writer.sheets[sheet_name]
        for idx, width in enumerate(EXPORT_COLUMNS.values(), start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = width
    logger.info(f"exported {len(df)} row(s) to {path}")
    return path


def export_csv(rows: Iterable[BomRow], path: Path) -> Path:
    df = to_export_frame(rows)
    df.to_csv(path, index=False, encoding="utf-8")
    logger.info(f"exported {len(df)} row(s) to {path}")
    return path


def export_rows(rows: Iterable[BomRow], path: Path, fmt: str, sheet_name: str = "BOM") -> Path:
    """Export in ``fmt`` ("xlsx" or "csv")."""
    if fmt == "xlsx":
        return export_excel(rows, path, sheet_name=sheet_name)
    if fmt == "csv":
        return export_csv(rows, path)
    raise ValueError(f"unsupported export format: {fmt}")
