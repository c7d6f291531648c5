from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""Fetch run models: progress snapshot and aggregated run result."""

__all__ = [
    "RunOutcome",
    "FetchProgress",
    "FetchRunResult",
]


class RunOutcome(Enum):
    """How a fetch run ended."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FetchProgress:
    """Progress of the running fetch pass (1-based current)."""
    current: int
    total: int
    part_number: str


@dataclass(frozen=True)
class FetchRunResult:
    """Aggregated result of one fetch run.

    total_parts counts the unique part numbers snapshotted at start;
    fetched_parts the ones actually dispatched; reverted the ones put back to
    pending because the run was stopped.
    """
    outcome: RunOutcome
    total_parts: int
    fetched_parts: int
    succeeded: int
    failed: int
    reverted: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float

    @property
    def cancelled(self) -> bool:
        return self.outcome is RunOutcome.CANCELLED
