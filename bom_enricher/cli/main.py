from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from bom_enricher.bom.exporter import export_rows
from bom_enricher.bom.reader import BomReadError, read_bom, validate_bom
from bom_enricher.catalog.jlcpcb import JlcpcbCatalog
from bom_enricher.config.loader import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    EnricherConfig,
    apply_env_overrides,
    default_config,
    load_config,
)
from bom_enricher.logging.error_log import ErrorLogBuffer
from bom_enricher.logging.init import log_summary, set_debug, setup_logging
from bom_enricher.models.bom_row import BomRowInput, FetchStatus
from bom_enricher.models.fetch_result import FetchRunResult
from bom_enricher.services.orchestrator import FetchOrchestrator
from bom_enricher.services.part_client import PartInfoClient
from bom_enricher.services.rate_limiter import RateLimiter
from bom_enricher.services.row_store import RowStore
from bom_enricher.services.summary import render_summary_line

"""CLI entrypoint.

Flow: load .env and config → read + validate BOM → fetch pass (plus optional
retry passes over error rows) → export → SUMMARY line.

Exit codes:
- 0: every fetchable row enriched
- 2: some rows failed or were left pending (run interrupted)
- 1: fatal (config, BOM read or export error)
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env using python-dotenv. Process environment wins unless override=True."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Enrich a BOM with LCSC/JLCPCB pricing and stock")
    p.add_argument("bom", help="BOM file (.csv, .xlsx)")
    p.add_argument("-o", "--output", help="Output file (default: <bom>_enriched.<format>)")
    p.add_argument("--format", choices=["xlsx", "csv"], help="Export format (default: from config)")
    p.add_argument("--config", help=f"Config file (default: {DEFAULT_CONFIG_PATH} if present)")
    p.add_argument(
        "--retry-errors",
        type=int,
        default=0,
        metavar="N",
        help="Retry rows left in error up to N more passes",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print parsed BOM rows then exit")
    return p.parse_args(argv)


def _resolve_config(config_arg: str | None) -> EnricherConfig:
    if config_arg is not None:
        cfg = load_config(Path(config_arg))
    elif DEFAULT_CONFIG_PATH.exists():
        cfg = load_config(DEFAULT_CONFIG_PATH)
    else:
        cfg = default_config()
    return apply_env_overrides(cfg)


def _resolve_output(bom_path: Path, output: str | None, fmt: str | None, cfg: EnricherConfig) -> tuple[Path, str]:
    if output is not None:
        out = Path(output)
        if fmt is None:
            suffix = out.suffix.lower().lstrip(".")
            fmt = suffix if suffix in ("xlsx", "csv") else cfg.export.format
        return out, fmt
    fmt = fmt or cfg.export.format
    return bom_path.with_name(f"{bom_path.stem}_enriched.{fmt}"), fmt


def _build_catalog(cfg: EnricherConfig) -> JlcpcbCatalog:
    return JlcpcbCatalog(
        cfg.catalog.base_url,
        timeout_seconds=cfg.catalog.timeout_seconds,
        user_agent=cfg.catalog.user_agent,
    )


def _install_interrupt_handler(orchestrator: FetchOrchestrator) -> bool:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, orchestrator.stop)
    except (NotImplementedError, RuntimeError):  # pragma: no cover - Windows / non-main thread
        return False
    return True


async def _enrich(store: RowStore, cfg: EnricherConfig, retries: int) -> list[FetchRunResult]:
    limiter = RateLimiter(cfg.rate_limit.max_concurrent, cfg.rate_limit.delay_ms)
    results: list[FetchRunResult] = []
    async with _build_catalog(cfg) as catalog:
        client = PartInfoClient(catalog, limiter)
        orchestrator = FetchOrchestrator(
            store,
            client,
            limiter,
            error_log=ErrorLogBuffer(
                Path(cfg.logs_directory), source_name=store.source_name
            ),
        )
        handler_installed = _install_interrupt_handler(orchestrator)
        try:
            result = await orchestrator.start()
            if result is not None:
                results.append(result)
            attempts = 0
            while (
                attempts < retries
                and result is not None
                and not result.cancelled
                and store.status_counts()[FetchStatus.ERROR] > 0
            ):
                attempts += 1
                orchestrator.retry_errors()
                result = await orchestrator.start()
                if result is not None:
                    results.append(result)
        finally:
            if handler_installed:
                asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
            await limiter.join()
    return results


def _inspect_data(rows: list[BomRowInput]) -> int:
    for i, r in enumerate(rows, start=1):
        print(
            f"{i:>4} {r.part_number or '-':<10} qty={r.quantity:<5} "
            f"{r.designator} | {r.comment} | {r.footprint}"
        )
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # read sys.argv only when argv is None (tests pass an explicit list)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    try:
        cfg = _resolve_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    bom_path = Path(args.bom)
    try:
        rows = read_bom(bom_path)
    except BomReadError as e:
        logger.error(f"bom: {e}")
        return EXIT_FATAL

    for warning in validate_bom(rows):
        logger.warning(f"bom: {warning}")

    if args.inspect_data:
        return _inspect_data(rows)

    store = RowStore()
    store.load(rows, source_name=bom_path.name)
    logger.info(f"loaded {len(store)} row(s) from {bom_path.name}")

    results = asyncio.run(_enrich(store, cfg, max(0, args.retry_errors)))

    out_path, fmt = _resolve_output(bom_path, args.output, args.format, cfg)
    try:
        export_rows(store.rows, out_path, fmt, sheet_name=cfg.export.sheet_name)
    except (OSError, ValueError) as e:
        logger.error(f"export: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(store, results)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    counts = store.status_counts()
    unfinished = counts[FetchStatus.ERROR] + counts[FetchStatus.PENDING] + counts[FetchStatus.LOADING]
    if unfinished > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL
