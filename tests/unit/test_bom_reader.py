from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from bom_enricher.bom import reader
from bom_enricher.bom.reader import (
    BomReadError,
    parse_bom_text,
    read_bom,
    validate_bom,
    validate_bom_row,
)
from bom_enricher.models.bom_row import BomRowInput


def test_read_bom_csv(sample_bom_csv: Path):
    rows = read_bom(sample_bom_csv)

    assert len(rows) == 5
    assert rows[0] == BomRowInput("100nF", "C1,C2,C3,C4,C5", "C_0402", "C1000", 5)
    assert rows[4].part_number == ""


def test_headers_are_case_insensitive_and_aliased():
    rows = parse_bom_text(
        " comment ,DESIGNATOR,Footprint,LCSC Part #,Qty\n"
        "10k,R1,R_0402,C25744,2\n"
    )
    assert rows == [BomRowInput("10k", "R1", "R_0402", "C25744", 2)]


def test_part_numbers_keep_text_form():
    rows = parse_bom_text("Comment,Designator,LCSC,Quantity\n0R,R9,C0017,1\n")
    assert rows[0].part_number == "C0017"


def test_quantity_parsing():
    rows = parse_bom_text(
        "Comment,Designator,LCSC,Quantity\n"
        "a,R1,C1,3.0\n"
        "b,R2,C2,many\n"
        "c,R3,C3,\n"
    )
    assert [r.quantity for r in rows] == [3, 0, 0]


def test_lines_without_comment_and_designator_dropped():
    rows = parse_bom_text(
        "Comment,Designator,LCSC,Quantity\n"
        ",,C1,1\n"
        "10k,,C2,1\n"
        ",R3,C3,1\n"
    )
    assert [r.part_number for r in rows] == ["C2", "C3"]


def test_read_bom_cp1252_fallback(temp_workdir: Path):
    bom = temp_workdir / "data" / "legacy.csv"
    bom.write_bytes("Comment,Designator,LCSC,Quantity\n10µF,C1,C15850,1\n".encode("cp1252"))

    rows = read_bom(bom)
    assert rows[0].comment == "10µF"


def test_read_bom_xlsx(temp_workdir: Path):
    bom = temp_workdir / "data" / "board.xlsx"
    pd.DataFrame(
        [{"Comment": "10k", "Designator": "R1", "Footprint": "R_0402", "LCSC": "C25744", "Quantity": 4}]
    ).to_excel(bom, index=False, engine="openpyxl")

    rows = read_bom(bom)
    assert rows == [BomRowInput("10k", "R1", "R_0402", "C25744", 4)]


def test_read_bom_missing_file(temp_workdir: Path):
    with pytest.raises(BomReadError, match="not found"):
        read_bom(temp_workdir / "data" / "missing.csv")


def test_read_bom_empty_file(temp_workdir: Path):
    bom = temp_workdir / "data" / "empty.csv"
    bom.write_text("", encoding="utf-8")

    with pytest.raises(BomReadError):
        read_bom(bom)


def test_validate_bom_row_messages():
    row = BomRowInput(comment="", designator="", footprint="", part_number="X123", quantity=0)
    assert validate_bom_row(row) == [
        "Designator is required",
        "Comment is required",
        "Quantity must be positive",
        "Invalid LCSC part number format (should be C followed by numbers)",
    ]


def test_validate_bom_numbers_rows_from_one():
    rows = [
        BomRowInput("10k", "R1", "R_0402", "C1", 1),
        BomRowInput("10k", "R2", "R_0402", "", 0),
    ]
    assert validate_bom(rows) == ["Row 2: Quantity must be positive"]


def test_read_bom_undecodable_csv(temp_workdir: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(reader, "CSV_ENCODINGS", ["utf-8"])
    bom = temp_workdir / "data" / "legacy.csv"
    bom.write_bytes("Comment,Designator,LCSC,Quantity\n10µF,C1,C15850,1\n".encode("cp1252"))

    with pytest.raises(BomReadError, match="cannot decode legacy.csv"):
        read_bom(bom)
