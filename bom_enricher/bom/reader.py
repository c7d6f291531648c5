from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.bom_row import BomRowInput, is_fetchable_part_number

"""BOM file reader.

Reads the CSV (or Excel) BOM exported by the design tool into BomRowInput
rows. Headers are matched case-insensitively after trimming. Expected columns:
Comment, Designator, Footprint, LCSC (or an alias) and Quantity. Lines with
neither designator nor comment are dropped; a non-numeric quantity reads as 0.

``validate_bom`` reports problems as warning strings and never blocks loading.
"""

__all__ = [
    "BomReadError",
    "read_bom",
    "parse_bom_text",
    "rows_from_frame",
    "validate_bom_row",
    "validate_bom",
]

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ["utf-8-sig", "cp1252", "latin1"]
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}

PART_NUMBER_COLUMNS = ["lcsc", "lcsc part #", "lcsc part", "lcsc part number", "jlcpcb part #"]


class BomReadError(Exception):
    """Raised when the BOM file cannot be read or parsed."""


def _read_csv(source: Any, **kwargs: Any) -> pd.DataFrame:
    # everything as text: part numbers and designators must not be coerced
    return pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True, **kwargs)


def _read_frame(path: Path) -> pd.DataFrame:
    if path.suffix.lower() in EXCEL_SUFFIXES:
        return pd.read_excel(path, dtype=str, keep_default_na=False)
    for enc in CSV_ENCODINGS:
        try:
            return _read_csv(path, encoding=enc)
        except UnicodeDecodeError:
            logger.debug(f"bom decode failed with {enc}, trying next encoding")
            continue
    raise BomReadError(f"cannot decode {path.name} with any of: {', '.join(CSV_ENCODINGS)}")


def _cell(row: pd.Series, candidates: list[str]) -> str:
    for c in candidates:
        if c in row.index:
            v = row[c]
            if pd.notna(v):
                s = str(v).strip()
                if s:
                    return s
    return ""


def _parse_quantity(raw: str) -> int:
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return 0


def rows_from_frame(df: pd.DataFrame) -> list[BomRowInput]:
    """Map a raw BOM DataFrame to BomRowInput rows."""
    df = df.rename(columns=lambda c: str(c).strip().lower())
    rows: list[BomRowInput] = []
    for _, row in df.iterrows():
        comment = _cell(row, ["comment"])
        designator = _cell(row, ["designator"])
        if not comment and not designator:
            continue
        rows.append(
            BomRowInput(
                comment=comment,
                designator=designator,
                footprint=_cell(row, ["footprint"]),
                part_number=_cell(row, PART_NUMBER_COLUMNS),
                quantity=_parse_quantity(_cell(row, ["quantity", "qty"])),
            )
        )
    return rows


def read_bom(path: Path) -> list[BomRowInput]:
    """Read a BOM file (CSV or Excel).

    Raises:
        BomReadError: File missing, unreadable or not a table
    """
    if not path.exists():
        raise BomReadError(f"BOM file not found: {path}")
    try:
        df = _read_frame(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError, OSError) as e:
        raise BomReadError(f"BOM parsing error in {path.name}: {e}") from e
    rows = rows_from_frame(df)
    logger.debug(f"bom read: file={path.name} lines={len(df)} rows={len(rows)}")
    return rows


def parse_bom_text(text: str) -> list[BomRowInput]:
    """Parse in-memory CSV BOM text."""
    try:
        df = _read_csv(io.StringIO(text))
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise BomReadError(f"BOM parsing error: {e}") from e
    return rows_from_frame(df)


def validate_bom_row(row: BomRowInput) -> list[str]:
    errors: list[str] = []
    if not row.designator:
        errors.append("Designator is required")
    if not row.comment:
        errors.append("Comment is required")
    if row.quantity <= 0:
        errors.append("Quantity must be positive")
    if row.part_number and not is_fetchable_part_number(row.part_number):
        errors.append("Invalid LCSC part number format (should be C followed by numbers)")
    return errors


def validate_bom(rows: list[BomRowInput]) -> list[str]:
    """Return ``Row N: message`` warnings (1-based) for every invalid row."""
    warnings: list[str] = []
    for index, row in enumerate(rows, start=1):
        for error in validate_bom_row(row):
            warnings.append(f"Row {index}: {error}")
    return warnings
