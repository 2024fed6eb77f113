#!/usr/bin/env python
"""
Curve Bootstrap Demo Script

This script demonstrates the curve construction workflow:
1. Load market quotes (CSV or built-in sample)
2. Bootstrap a discount curve and print its nodes
3. Check that every instrument reprices
4. Bump a live quote and rebuild

Usage:
    python run_bootstrap_demo.py [--quotes QUOTES_CSV] [--output-dir OUTPUT_DIR]

The quotes CSV needs columns instrument_type, tenor and quote; optional
columns (start_tenor, fixed_freq, day_count, ...) are passed through.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ratescurve.conventions import CompoundingConvention
from ratescurve.curves import (
    BootstrapConfig,
    IterativeBootstrapper,
    PiecewiseYieldCurve,
    helper_from_quote,
)


SAMPLE_QUOTES = [
    {"instrument_type": "DEPOSIT", "tenor": "1D", "quote": 0.0531},
    {"instrument_type": "DEPOSIT", "tenor": "1M", "quote": 0.0532},
    {"instrument_type": "OIS", "tenor": "3M", "quote": 0.0528},
    {"instrument_type": "OIS", "tenor": "6M", "quote": 0.0520},
    {"instrument_type": "OIS", "tenor": "1Y", "quote": 0.0500},
    {"instrument_type": "OIS", "tenor": "2Y", "quote": 0.0465},
    {"instrument_type": "OIS", "tenor": "3Y", "quote": 0.0445},
    {"instrument_type": "OIS", "tenor": "5Y", "quote": 0.0425},
    {"instrument_type": "OIS", "tenor": "7Y", "quote": 0.0418},
    {"instrument_type": "OIS", "tenor": "10Y", "quote": 0.0415},
    {"instrument_type": "OIS", "tenor": "30Y", "quote": 0.0405},
]


def load_quotes(path: Optional[Path]) -> pd.DataFrame:
    """Load quotes from CSV, or the built-in sample when no path is given."""
    if path is None:
        return pd.DataFrame(SAMPLE_QUOTES)
    return pd.read_csv(path, comment="#")


def build_curve(quotes_df: pd.DataFrame, valuation_date: date, args) -> PiecewiseYieldCurve:
    """Bootstrap a curve and report nodes and repricing."""
    print("\n" + "="*60)
    print("Bootstrapping Curve")
    print("="*60)

    helpers = []
    for _, row in quotes_df.iterrows():
        q = {k: v for k, v in row.items() if pd.notna(v)}
        helper = helper_from_quote(valuation_date, q)
        helpers.append(helper)
        print(f"  Added: {helper.label:<14s} maturity {helper.maturity_date} @ {helper.quote_value:.6f}")

    config = BootstrapConfig(allow_negative_rates=not args.positive_rates)
    handle = PiecewiseYieldCurve(
        valuation_date,
        helpers,
        trait=args.trait,
        interpolation_method=args.interpolation,
        config=config
    )
    handle.rebuild()
    result = handle.result

    print(f"\nBootstrap complete: {len(result.curve)} nodes, {result.iterations} passes")
    print("\nCurve nodes:")
    print(result.curve.to_frame().to_string(index=False))
    print("\nRepricing:")
    print(result.to_frame().to_string(index=False))
    return handle


def bump_and_rebuild(handle: PiecewiseYieldCurve, bump_bp: float) -> None:
    """Bump the last helper's quote and rebuild."""
    print("\n" + "="*60)
    print(f"Bumping {handle.helpers[-1].label} by {bump_bp:+.1f}bp")
    print("="*60)

    before = handle.curve
    quote = handle.helpers[-1].quote
    quote.set_value(quote.value + bump_bp / 10000.0)
    print(f"  Stale after bump: {handle.is_stale}")

    after = handle.rebuild()
    for years in (1.0, 5.0, 10.0, 30.0):
        z0 = before.zero_rate(years, CompoundingConvention.ANNUAL)
        z1 = after.zero_rate(years, CompoundingConvention.ANNUAL)
        print(f"  {years:>5.1f}Y zero: {z0*100:.4f}% -> {z1*100:.4f}% ({(z1 - z0)*1e4:+.2f}bp)")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Curve Bootstrap Demo")
    parser.add_argument(
        "--quotes",
        type=str,
        default=None,
        help="CSV of market quotes (defaults to a built-in USD OIS strip)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Write node and repricing tables as CSV to this directory"
    )
    parser.add_argument("--trait", default="discount", help="discount, zero_rate or forward_rate")
    parser.add_argument("--interpolation", default=None, help="Interpolation method")
    parser.add_argument(
        "--positive-rates",
        action="store_true",
        help="Reject negative forward rates while solving",
    )
    parser.add_argument("--bump-bp", type=float, default=10.0, help="Quote bump for the rebuild step")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log solver progress")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    valuation_date = date(2024, 1, 15)

    print("="*60)
    print("CURVE BOOTSTRAP DEMO")
    print(f"Valuation Date: {valuation_date}")
    print("="*60)

    quotes_df = load_quotes(Path(args.quotes) if args.quotes else None)
    print(f"\nLoaded {len(quotes_df)} quotes")

    handle = build_curve(quotes_df, valuation_date, args)

    if args.output_dir:
        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        handle.curve.to_frame().to_csv(output_dir / "curve_nodes.csv", index=False)
        handle.result.to_frame().to_csv(output_dir / "repricing.csv", index=False)
        print(f"\nTables written to {output_dir}")

    bump_and_rebuild(handle, args.bump_bp)

    print("\n" + "="*60)
    print("DEMO COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
