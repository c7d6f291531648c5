from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from ..logging.error_log import ErrorLogBuffer
from ..models.bom_row import FetchStatus
from ..models.error_record import ErrorRecord
from ..models.fetch_result import FetchProgress, FetchRunResult, RunOutcome
from .part_client import FetchErrorKind, PartFetchError, PartInfoClient
from .progress import ProgressTracker
from .rate_limiter import RateLimiter
from .row_store import RowStore

"""Fetch orchestration: one enrichment pass over the pending part numbers.

A run snapshots the unique pending part numbers, marks their rows LOADING and
fetches them one at a time through PartInfoClient. Each result is fanned out
to every row sharing the part number; each failure becomes an ERROR status on
those rows and the batch moves on.

Cancellation is cooperative. ``stop()`` cancels the run's token and clears
the rate limiter queue. The token is checked before each dispatch; the rows
of every part not yet dispatched go back to PENDING. A lookup already running
upstream is not aborted and its result is still applied, even if it lands
after ``stop()`` returned.
"""

__all__ = [
    "RunState",
    "CancellationToken",
    "FetchOrchestrator",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[FetchProgress], None]


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class CancellationToken:
    """Cooperative cancellation flag checked at loop iteration boundaries."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class FetchOrchestrator:
    """Drives fetch runs over a RowStore.

    The limiter passed here must be the one the client submits to, so that
    ``stop()`` can discard the client's queued lookups.
    """

    def __init__(
        self,
        store: RowStore,
        client: PartInfoClient,
        limiter: RateLimiter,
        *,
        on_progress: ProgressCallback | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.limiter = limiter
        self.on_progress = on_progress
        self.error_log = error_log
        self._state = RunState.IDLE
        self._token: CancellationToken | None = None
        self._progress: FetchProgress | None = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RunState.RUNNING

    @property
    def progress(self) -> FetchProgress | None:
        return self._progress

    async def start(self, token: CancellationToken | None = None) -> FetchRunResult | None:
        """Run one fetch pass over the pending part numbers.

        Returns:
            FetchRunResult, or None when a run is already active or nothing is pending
        """
        if self.is_running:
            logger.debug("start ignored: run already active")
            return None
        part_numbers = self.store.pending_part_numbers()
        if not part_numbers:
            logger.debug("start ignored: no pending part numbers")
            return None

        self._state = RunState.RUNNING
        self._token = token if token is not None else CancellationToken()
        try:
            return await self._run(part_numbers, self._token)
        finally:
            self._progress = None
            self._token = None
            self._state = RunState.IDLE

    def stop(self) -> None:
        """Request cancellation of the active run and drop queued lookups."""
        if self._token is not None:
            self._token.cancel()
        dropped = self.limiter.clear()
        logger.info(f"fetch stop requested (queued lookups dropped={dropped})")

    def retry_errors(self) -> int:
        """Move ERROR rows back to PENDING for the next run. Does not start one."""
        moved = self.store.reset_errors()
        if moved:
            logger.info(f"retry: {moved} row(s) reset to pending")
        return moved

    async def _run(self, part_numbers: list[str], token: CancellationToken) -> FetchRunResult:
        start_time = datetime.now(UTC)
        total = len(part_numbers)
        succeeded = 0
        failed = 0
        reverted = 0
        fetched = 0
        outcome = RunOutcome.COMPLETED

        logger.info(f"fetching {total} unique part number(s)")
        for part_number in part_numbers:
            self.store.set_status(part_number, FetchStatus.LOADING)

        with ProgressTracker(total, description="Fetching parts") as progress:
            for i, part_number in enumerate(part_numbers):
                if token.cancelled:
                    for remaining in part_numbers[i:]:
                        self.store.set_status(remaining, FetchStatus.PENDING)
                    reverted += total - i
                    outcome = RunOutcome.CANCELLED
                    break

                self._report_progress(FetchProgress(i + 1, total, part_number))
                progress.start_part(part_number)
                fetched += 1
                try:
                    info = await self.client.fetch(part_number)
                except PartFetchError as e:
                    if e.kind is FetchErrorKind.CANCELLED:
                        # discarded by stop() before it started upstream
                        self.store.set_status(part_number, FetchStatus.PENDING)
                        fetched -= 1
                        reverted += 1
                        progress.skip_part()
                        continue
                    failed += 1
                    self._record_failure(part_number, e)
                    progress.finish_part(success=False)
                else:
                    succeeded += 1
                    self.store.apply_enrichment(part_number, info)
                    progress.finish_part(success=True)

            if token.cancelled:
                outcome = RunOutcome.CANCELLED

        self._flush_error_log()

        end_time = datetime.now(UTC)
        result = FetchRunResult(
            outcome=outcome,
            total_parts=total,
            fetched_parts=fetched,
            succeeded=succeeded,
            failed=failed,
            reverted=reverted,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
        )
        logger.info(
            f"fetch {outcome.value}: success={succeeded} failed={failed} reverted={reverted}"
        )
        return result

    def _report_progress(self, progress: FetchProgress) -> None:
        self._progress = progress
        logger.debug(
            f"fetch {progress.current}/{progress.total}", extra={"part_number": progress.part_number}
        )
        if self.on_progress is not None:
            self.on_progress(progress)

    def _record_failure(self, part_number: str, error: PartFetchError) -> None:
        rows = self.store.set_status(part_number, FetchStatus.ERROR, error.message)
        logger.warning(f"{error.message} ({error.kind.name})", extra={"part_number": part_number})
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(
                    part_number=part_number,
                    rows=len(rows),
                    error_type=error.kind.name,
                    message=error.message,
                    status_code=error.status_code,
                )
            )

    def _flush_error_log(self) -> None:
        if self.error_log is None or len(self.error_log) == 0:
            return
        by_type = " ".join(f"{k}={v}" for k, v in self.error_log.counts_by_type().items())
        try:
            path = self.error_log.flush()
        except OSError as e:
            logger.warning(f"error log flush failed: {e}")
            return
        if path is not None:
            logger.info(f"error log written: {path} ({by_type})")
