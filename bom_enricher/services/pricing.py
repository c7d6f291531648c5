from __future__ import annotations

from collections.abc import Sequence

from ..models.part_info import PriceTier

"""Quantity-banded price resolution.

A quantity below every tier still gets an indicative price: when no tier
contains the quantity, the first (lowest min_qty) tier's price is used.
An empty tier list has no price (None, never 0).
"""

__all__ = [
    "resolve_unit_price",
    "price_row",
]


def resolve_unit_price(tiers: Sequence[PriceTier], quantity: int) -> float | None:
    """Return the unit price applicable to ``quantity``.

    Tiers are sorted by min_qty before matching; overlapping tiers resolve to
    the first match in ascending order.

    Examples:
        >>> tiers = [PriceTier(1, 9, 0.10), PriceTier(10, 99, 0.08), PriceTier(100, None, 0.05)]
        >>> resolve_unit_price(tiers, 50)
        0.08
        >>> resolve_unit_price(tiers, 0)
        0.1
        >>> resolve_unit_price([], 10) is None
        True
    """
    if not tiers:
        return None
    ordered = sorted(tiers, key=lambda t: t.min_qty)
    for tier in ordered:
        if tier.contains(quantity):
            return tier.price
    return ordered[0].price


def price_row(tiers: Sequence[PriceTier], quantity: int) -> tuple[float | None, float | None]:
    """Return (unit_price, total_price) for a row, or (None, None) if unpriced."""
    unit = resolve_unit_price(tiers, quantity)
    if unit is None:
        return None, None
    return unit, unit * quantity
