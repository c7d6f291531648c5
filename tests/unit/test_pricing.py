from __future__ import annotations

import pytest

from bom_enricher.models.part_info import PriceTier
from bom_enricher.services.pricing import price_row, resolve_unit_price


@pytest.mark.parametrize(
    "quantity,expected",
    [
        (1, 0.10),
        (9, 0.10),
        (10, 0.08),
        (99, 0.08),
        (100, 0.05),
        (100000, 0.05),
    ],
)
def test_resolve_unit_price_picks_containing_tier(tiers, quantity, expected):
    assert resolve_unit_price(tiers, quantity) == expected


def test_quantity_below_every_tier_uses_first_tier():
    tiers = [PriceTier(10, 99, 0.08), PriceTier(100, None, 0.05)]
    assert resolve_unit_price(tiers, 5) == 0.08
    assert resolve_unit_price(tiers, 0) == 0.08


def test_unsorted_tiers_are_sorted_before_matching():
    tiers = [PriceTier(100, None, 0.05), PriceTier(1, 99, 0.10)]
    assert resolve_unit_price(tiers, 50) == 0.10
    # fallback is the lowest min_qty tier, not the first listed
    assert resolve_unit_price([PriceTier(100, None, 0.05), PriceTier(10, 99, 0.08)], 1) == 0.08


def test_overlapping_tiers_resolve_to_first_in_ascending_order():
    tiers = [PriceTier(1, 50, 0.10), PriceTier(10, 99, 0.08)]
    assert resolve_unit_price(tiers, 20) == 0.10


def test_empty_tiers_have_no_price():
    assert resolve_unit_price([], 10) is None
    assert price_row([], 10) == (None, None)


def test_zero_price_tier_is_a_real_price():
    tiers = [PriceTier(1, None, 0.0)]
    assert resolve_unit_price(tiers, 5) == 0.0
    assert price_row(tiers, 5) == (0.0, 0.0)


def test_price_row_multiplies_by_quantity(tiers):
    unit, total = price_row(tiers, 50)
    assert unit == 0.08
    assert total == pytest.approx(4.00)


def test_price_row_zero_quantity(tiers):
    assert price_row(tiers, 0) == (0.10, 0.0)


def test_negative_price_tier_rejected():
    with pytest.raises(ValueError):
        PriceTier(1, None, -0.01)
