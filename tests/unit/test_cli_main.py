from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from bom_enricher.cli import main as cli_main
from bom_enricher.config.loader import default_config


def test_parse_args_defaults():
    args = cli_main._parse_args(["board.csv"])

    assert args.bom == "board.csv"
    assert args.output is None
    assert args.format is None
    assert args.retry_errors == 0
    assert args.debug is False
    assert args.inspect_data is False


def test_parse_args_rejects_unknown_format():
    with pytest.raises(SystemExit):
        cli_main._parse_args(["board.csv", "--format", "json"])


@pytest.mark.parametrize(
    "output,fmt,expected_path,expected_fmt",
    [
        (None, None, "data/board_enriched.xlsx", "xlsx"),
        (None, "csv", "data/board_enriched.csv", "csv"),
        ("out.csv", None, "out.csv", "csv"),
        ("out.dat", None, "out.dat", "xlsx"),
        ("out.dat", "csv", "out.dat", "csv"),
    ],
)
def test_resolve_output(output, fmt, expected_path, expected_fmt):
    path, resolved = cli_main._resolve_output(Path("data/board.csv"), output, fmt, default_config())

    assert path == Path(expected_path)
    assert resolved == expected_fmt


def test_resolve_config_without_file_uses_defaults(temp_workdir: Path, monkeypatch):
    monkeypatch.delenv("BOM_ENRICHER_DELAY_MS", raising=False)
    monkeypatch.delenv("BOM_ENRICHER_MAX_CONCURRENT", raising=False)

    cfg = cli_main._resolve_config(None)

    assert cfg.rate_limit.delay_ms == 500


def test_resolve_config_reads_default_path(write_config: Path):
    cfg = cli_main._resolve_config(None)

    assert cfg.catalog.base_url == "https://catalog.test/search"


def test_env_file_loaded(write_config: Path, temp_workdir: Path):
    (temp_workdir / ".env").write_text("BOM_ENRICHER_MAX_CONCURRENT=3\n", encoding="utf-8")

    with patch.dict(os.environ):
        os.environ.pop("BOM_ENRICHER_MAX_CONCURRENT", None)
        cli_main._load_env_file(temp_workdir / ".env")

        assert cli_main._resolve_config(None).rate_limit.max_concurrent == 3


def test_debug_flag_enables_debug_output(
    write_config: Path, sample_bom_csv: Path, capsys
):
    assert cli_main.main([str(sample_bom_csv), "--debug", "--inspect-data"]) == 0

    assert "DEBUG debug mode enabled" in capsys.readouterr().out
