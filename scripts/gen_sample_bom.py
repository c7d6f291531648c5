#!/usr/bin/env python3
"""Synthetic BOM generator for load testing the enricher.

Writes a KiCad/JLCPCB-style BOM CSV (Comment, Designator, Footprint, LCSC,
Quantity). A share of the lines reuse a part number from an earlier line so
that fan-out is exercised, and a share carry no or a malformed part number so
that skipped rows show up as well.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

PASSIVES = [
    ("R", "R_0402_1005Metric", ["10k", "4.7k", "100R", "1M", "0R"]),
    ("C", "C_0402_1005Metric", ["100nF/16V", "1uF/10V", "10nF/50V", "22pF/50V"]),
    ("L", "L_0603_1608Metric", ["2.2uH", "10uH"]),
]


def generate_bom(
    lines: int,
    *,
    reuse_ratio: float = 0.2,
    invalid_ratio: float = 0.05,
    seed: int = 42,
) -> pd.DataFrame:
    """Generate a synthetic BOM DataFrame.

    Args:
        lines: Number of BOM lines
        reuse_ratio: Share of lines reusing an earlier part number
        invalid_ratio: Share of lines with an empty or malformed part number
        seed: Random seed for reproducible data

    Returns:
        DataFrame with the BOM columns
    """
    rng = np.random.default_rng(seed)
    records: list[dict[str, object]] = []
    used_parts: list[str] = []
    ref_counters: dict[str, int] = {}

    for _ in range(lines):
        prefix, footprint, values = PASSIVES[rng.integers(len(PASSIVES))]
        quantity = int(rng.integers(1, 40))
        start = ref_counters.get(prefix, 1)
        ref_counters[prefix] = start + quantity
        designator = ",".join(f"{prefix}{n}" for n in range(start, start + quantity))

        roll = rng.random()
        if roll < invalid_ratio:
            part = rng.choice(["", "X123", "c1000"])
        elif used_parts and roll < invalid_ratio + reuse_ratio:
            part = used_parts[rng.integers(len(used_parts))]
        else:
            part = f"C{rng.integers(1000, 2_000_000)}"
            used_parts.append(part)

        records.append(
            {
                "Comment": values[rng.integers(len(values))],
                "Designator": designator,
                "Footprint": footprint,
                "LCSC": part,
                "Quantity": quantity,
            }
        )
    return pd.DataFrame(records)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic BOM CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sample_bom.csv
  %(prog)s big_bom.csv --lines 2000 --reuse 0.3 --seed 7
        """,
    )
    parser.add_argument("output", type=Path, help="Output CSV path")
    parser.add_argument("--lines", type=int, default=200, help="Number of BOM lines (default: 200)")
    parser.add_argument("--reuse", type=float, default=0.2, help="Share of reused part numbers (default: 0.2)")
    parser.add_argument("--invalid", type=float, default=0.05, help="Share of invalid part numbers (default: 0.05)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.lines <= 0:
        print("Error: --lines must be positive", file=sys.stderr)
        return 1
    if not 0 <= args.reuse + args.invalid <= 1:
        print("Error: --reuse + --invalid must be within [0, 1]", file=sys.stderr)
        return 1

    df = generate_bom(args.lines, reuse_ratio=args.reuse, invalid_ratio=args.invalid, seed=args.seed)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(args.output, index=False)
    print(f"Created BOM: {args.output}")
    print(f"  Lines: {len(df):,}")
    print(f"  Unique part numbers: {df['LCSC'].nunique():,}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
