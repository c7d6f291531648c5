from __future__ import annotations

import logging
from typing import Any

import httpx

from ..models.bom_row import is_fetchable_part_number
from ..models.part_info import PartInfo, PriceTier

"""JLCPCB component search adapter.

Queries the JLCPCB SMT component search with the part number as keyword,
picks the exact ``componentCode`` match and normalizes it into PartInfo.
This is the only module that knows the upstream wire format.
"""

__all__ = [
    "DEFAULT_SEARCH_URL",
    "CatalogError",
    "PartNotFoundError",
    "JlcpcbCatalog",
    "parse_prices",
    "normalize_component",
]

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = (
    "https://jlcpcb.com/api/overseas-pcb-order/v1/shoppingCart/smtGood/selectSmtComponentList"
)
DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
IMAGE_BASE_URL = "https://assets.jlcpcb.com/attachments/"
PRODUCT_URL_TEMPLATE = "https://www.lcsc.com/product-detail/{code}.html"


class CatalogError(Exception):
    """Catalog lookup failed with an upstream status code."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PartNotFoundError(CatalogError):
    """No catalog entry matches the part number exactly."""

    def __init__(self, message: str = "Part not found") -> None:
        super().__init__(message, status_code=404)


def parse_prices(price_list: list[dict[str, Any]] | None) -> tuple[PriceTier, ...]:
    """Convert upstream price breaks to tiers sorted by min quantity.

    An ``endNumber`` of -1 marks the open-ended top tier.
    """
    if not price_list:
        return ()
    ordered = sorted(price_list, key=lambda p: p.get("startNumber", 0))
    return tuple(
        PriceTier(
            min_qty=int(p.get("startNumber", 0)),
            max_qty=None if p.get("endNumber", -1) == -1 else int(p["endNumber"]),
            price=float(p.get("productPrice", 0.0)),
        )
        for p in ordered
    )


def normalize_component(component: dict[str, Any]) -> PartInfo:
    code = component["componentCode"]
    image_id = component.get("minImageAccessId")
    return PartInfo(
        part_number=code,
        manufacturer=component.get("componentBrandEn") or "Unknown",
        mpn=component.get("componentModelEn") or "",
        description=component.get("describe") or "",
        package=component.get("componentSpecificationEn") or "",
        stock=max(0, int(component.get("stockCount") or 0)),
        prices=parse_prices(component.get("componentPrices")),
        datasheet=component.get("dataManualUrl") or "",
        image_url=f"{IMAGE_BASE_URL}{image_id}" if image_id else "",
        url=component.get("lcscGoodsUrl") or PRODUCT_URL_TEMPLATE.format(code=code),
    )


class JlcpcbCatalog:
    """Async part lookup against the JLCPCB component search."""

    def __init__(
        self,
        base_url: str = DEFAULT_SEARCH_URL,
        *,
        timeout_seconds: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the catalog adapter.

        Args:
            base_url: Component search endpoint
            timeout_seconds: Per-request timeout
            user_agent: User-Agent header sent upstream
            http_client: Pre-configured client (tests pass one with a MockTransport)
        """
        self.base_url = base_url
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> JlcpcbCatalog:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def lookup(self, part_number: str) -> PartInfo:
        """Fetch and normalize one part.

        Raises:
            CatalogError: Malformed part number (400), upstream HTTP failure or
                unreadable payload
            PartNotFoundError: No exact match
            httpx.RequestError: Connection-level failure
        """
        if not is_fetchable_part_number(part_number):
            raise CatalogError("Invalid LCSC part number format", status_code=400)

        response = await self._client.post(
            self.base_url, json={"keyword": part_number}, headers=self.headers
        )
        if response.status_code >= 400:
            logger.debug(f"catalog http error part={part_number} status={response.status_code}")
            raise CatalogError(
                f"JLCPCB API error: {response.status_code}", status_code=response.status_code
            )
        try:
            data = response.json()
        except ValueError as e:
            raise CatalogError(f"invalid catalog response: {e}", status_code=502) from e
        if not isinstance(data, dict):
            raise CatalogError("invalid catalog response: expected an object", status_code=502)

        payload = data.get("data")
        page = payload.get("componentPageInfo") if isinstance(payload, dict) else None
        listing = page.get("list") if isinstance(page, dict) else None
        if data.get("code") != 200 or not isinstance(listing, list) or not listing:
            raise PartNotFoundError()

        component = next(
            (c for c in listing if isinstance(c, dict) and c.get("componentCode") == part_number),
            None,
        )
        if component is None:
            raise PartNotFoundError()
        try:
            return normalize_component(component)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"invalid catalog response: {e}", status_code=502) from e
