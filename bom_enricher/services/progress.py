from __future__ import annotations

import logging
import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display for a fetch run.

On a TTY a single tqdm bar counts finished part numbers and shows ok/failed
counts as postfix. Without a TTY (CI, piped output) the bar is disabled to
avoid ANSI control sequence spam; large runs log a milestone line every tenth
of the way instead.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]

logger = logging.getLogger(__name__)

# below this many parts a non-TTY run logs no milestones
MILESTONE_MIN_PARTS = 20


def is_tty_enabled() -> bool:
    """Check if TTY output is enabled.

    Returns:
        True if stdout is a TTY and progress should be displayed, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress of one fetch run over ``total_parts`` unique part numbers."""

    def __init__(self, total_parts: int, *, description: str = "Fetching parts") -> None:
        self.total_parts = total_parts
        self.description = description
        self.current_part = 0
        self.succeeded = 0
        self.failed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_parts,
                desc=description,
                unit="part",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        self._milestone_every = (
            max(1, total_parts // 10) if total_parts >= MILESTONE_MIN_PARTS else 0
        )

    @property
    def finished(self) -> int:
        return self.succeeded + self.failed

    def start_part(self, part_number: str) -> None:
        self.current_part += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({part_number})")

    def finish_part(self, success: bool = True) -> None:
        if success:
            self.succeeded += 1
        else:
            self.failed += 1

        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            self.pbar.set_postfix(ok=self.succeeded, failed=self.failed)
        elif self._milestone_every and self.finished % self._milestone_every == 0:
            logger.info(
                f"progress {self.finished}/{self.total_parts} "
                f"(ok={self.succeeded} failed={self.failed})"
            )

    def skip_part(self) -> None:
        """Undo ``start_part`` for a part put back to pending."""
        self.current_part -= 1

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
