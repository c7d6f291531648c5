from __future__ import annotations

from collections.abc import Sequence

from ..models.bom_row import FetchStatus
from ..models.fetch_result import FetchRunResult
from .row_store import RowStore

"""Summary line rendering for an enrichment session.

Format:
SUMMARY rows={n} success={n} error={n} pending={n} skipped={n} passes={n}
total_cost={cost:.2f} elapsed_sec={elapsed}

Row counts come from the store's final state, so retry passes are reflected;
elapsed_sec is the sum over all fetch passes.
"""


def _format_elapsed(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(store: RowStore, results: Sequence[FetchRunResult] = ()) -> str:
    """Render the SUMMARY line for the store and the fetch passes run on it.

    Examples:
        >>> render_summary_line(RowStore())
        'SUMMARY rows=0 success=0 error=0 pending=0 skipped=0 passes=0 total_cost=0.00 elapsed_sec=0'
    """
    counts = store.status_counts()
    elapsed = sum(r.elapsed_seconds for r in results)
    # LOADING only exists mid-run; count it as pending if a summary is taken early
    pending = counts[FetchStatus.PENDING] + counts[FetchStatus.LOADING]
    return (
        f"SUMMARY rows={len(store)} "
        f"success={counts[FetchStatus.SUCCESS]} "
        f"error={counts[FetchStatus.ERROR]} "
        f"pending={pending} "
        f"skipped={counts[FetchStatus.SKIPPED]} "
        f"passes={len(results)} "
        f"total_cost={store.total_cost():.2f} "
        f"elapsed_sec={_format_elapsed(elapsed)}"
    )
