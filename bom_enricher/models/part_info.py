from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Normalized catalog models: PartInfo and PriceTier.

PartInfo is the enrichment record attached to a BOM row after a successful
catalog lookup. It is immutable; a re-fetch replaces it wholesale.

The dict shape accepted by ``PartInfo.from_dict`` is the normalized catalog
payload (camelCase keys) produced by the catalog collaborator.
"""

__all__ = [
    "PriceTier",
    "PartInfo",
]


@dataclass(frozen=True)
class PriceTier:
    """Quantity band with its unit price (USD)."""
    min_qty: int
    max_qty: int | None  # None = unbounded upper end
    price: float

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"price must be non-negative: {self.price}")

    def contains(self, quantity: int) -> bool:
        return quantity >= self.min_qty and (self.max_qty is None or quantity <= self.max_qty)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> PriceTier:
        max_qty = data.get("maxQty")
        return PriceTier(
            min_qty=int(data["minQty"]),
            max_qty=None if max_qty is None else int(max_qty),
            price=float(data["price"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"minQty": self.min_qty, "maxQty": self.max_qty, "price": self.price}


@dataclass(frozen=True)
class PartInfo:
    """Distributor metadata for a single part number.

    Attributes:
        part_number: Distributor part code (e.g. "C17168")
        manufacturer: Manufacturer / brand name
        mpn: Manufacturer part number
        description: Free-text description
        package: Package / specification string (e.g. "0402")
        stock: Units in stock (>= 0)
        prices: Price tiers ordered ascending by min_qty
        datasheet: Datasheet URL ("" when unknown)
        image_url: Product image URL ("" when unknown)
        url: Product page URL
    """
    part_number: str
    manufacturer: str = ""
    mpn: str = ""
    description: str = ""
    package: str = ""
    stock: int = 0
    prices: tuple[PriceTier, ...] = field(default_factory=tuple)
    datasheet: str = ""
    image_url: str = ""
    url: str = ""

    @staticmethod
    def from_dict(data: dict[str, Any]) -> PartInfo:
        """Build a PartInfo from the normalized catalog payload."""
        tiers = sorted(
            (PriceTier.from_dict(p) for p in data.get("prices") or []),
            key=lambda t: t.min_qty,
        )
        return PartInfo(
            part_number=str(data["partNumber"]),
            manufacturer=data.get("manufacturer") or "",
            mpn=data.get("mpn") or "",
            description=data.get("description") or "",
            package=data.get("package") or "",
            stock=max(0, int(data.get("stock") or 0)),
            prices=tuple(tiers),
            datasheet=data.get("datasheet") or "",
            image_url=data.get("imageUrl") or "",
            url=data.get("url") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "partNumber": self.part_number,
            "manufacturer": self.manufacturer,
            "mpn": self.mpn,
            "description": self.description,
            "package": self.package,
            "stock": self.stock,
            "prices": [t.to_dict() for t in self.prices],
            "datasheet": self.datasheet,
            "imageUrl": self.image_url,
            "url": self.url,
        }
