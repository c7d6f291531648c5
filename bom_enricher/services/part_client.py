from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

import httpx

from ..catalog.jlcpcb import CatalogError, PartNotFoundError
from ..models.part_info import PartInfo
from .rate_limiter import RateLimiter, RateLimiterCleared

"""Part info client: one catalog lookup per call, throttled by RateLimiter.

Every lookup is queued through the injected RateLimiter so that all callers
share one throttle budget. Failures surface as PartFetchError with a kind;
nothing is cached here.
"""

__all__ = [
    "FetchErrorKind",
    "PartFetchError",
    "PartSource",
    "PartInfoClient",
]

logger = logging.getLogger(__name__)


class FetchErrorKind(Enum):
    """Classification of a failed part lookup."""
    NOT_FOUND = "not_found"  # well-formed part number, no catalog match
    UPSTREAM = "upstream"  # catalog answered with an error
    NETWORK = "network"  # transport failure
    CANCELLED = "cancelled"  # queued lookup discarded by RateLimiter.clear()

    @property
    def retriable(self) -> bool:
        return self is not FetchErrorKind.NOT_FOUND


class PartFetchError(Exception):
    """Typed failure of PartInfoClient.fetch()."""

    def __init__(
        self,
        message: str,
        kind: FetchErrorKind,
        *,
        part_number: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.part_number = part_number
        self.status_code = status_code


class PartSource(Protocol):
    """Catalog collaborator returning normalized part info."""

    async def lookup(self, part_number: str) -> PartInfo: ...


class PartInfoClient:
    def __init__(self, source: PartSource, limiter: RateLimiter) -> None:
        self.source = source
        self.limiter = limiter

    async def fetch(self, part_number: str) -> PartInfo:
        """Look up ``part_number`` through the rate limiter.

        Raises:
            PartFetchError: Lookup failed or was discarded before it started
        """
        try:
            return await self.limiter.submit(lambda: self._lookup(part_number))
        except RateLimiterCleared as e:
            raise PartFetchError(
                "Fetch cancelled", FetchErrorKind.CANCELLED, part_number=part_number
            ) from e

    async def _lookup(self, part_number: str) -> PartInfo:
        logger.debug(f"lookup part={part_number}")
        try:
            return await self.source.lookup(part_number)
        except PartNotFoundError as e:
            raise PartFetchError(
                e.message, FetchErrorKind.NOT_FOUND, part_number=part_number, status_code=e.status_code
            ) from e
        except CatalogError as e:
            raise PartFetchError(
                e.message, FetchErrorKind.UPSTREAM, part_number=part_number, status_code=e.status_code
            ) from e
        except (httpx.RequestError, OSError) as e:
            # OSError covers TimeoutError and ConnectionError from non-httpx sources
            raise PartFetchError(
                f"Network error: {str(e) or type(e).__name__}", FetchErrorKind.NETWORK, part_number=part_number
            ) from e
        except Exception as e:
            logger.debug(f"unexpected lookup failure part={part_number}: {e!r}")
            raise PartFetchError(
                f"invalid catalog response: {str(e) or type(e).__name__}",
                FetchErrorKind.UPSTREAM,
                part_number=part_number,
            ) from e
