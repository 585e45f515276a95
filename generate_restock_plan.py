#!/usr/bin/env python3
"""
Restock Plan Generator
======================

Recommends which model/tier to order for a dealer's upcoming empty stock
slots, based on a saved snapshot of the schedule, yard, PGI, handover, tier
and yard capacity feeds.

Usage:
    # Plan for one dealer
    python generate_restock_plan.py --snapshot snapshot.json --dealer frankston

    # Plan as of a fixed date
    python generate_restock_plan.py -s snapshot.yaml -d geelong --today 2026-03-01

    # Machine-readable output
    python generate_restock_plan.py -s snapshot.json -d geelong --json

Examples:
    # Sort the model table by recent handovers
    python generate_restock_plan.py -s snapshot.json -d traralgon --sort recent_handover

    # Use a different settings file
    python generate_restock_plan.py -s snapshot.json -d traralgon --settings my_settings.yaml
"""

import argparse
import json
import logging
import sys
from datetime import datetime

import pandas as pd

from restock_engine.config import config_from_yaml, default_config
from restock_engine.engine import RestockEngine, RestockReport
from restock_engine.model_aggregator import SORT_KEYS
from restock_engine.record_normalizer import parse_date
from restock_engine.snapshot_loader import SnapshotError, load_snapshot


def _fmt(value, suffix: str = "") -> str:
    if value is None:
        return "—"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}{suffix}"


def print_report(report: RestockReport, sort_key: str = "current_stock"):
    """Print a console summary of a planning run."""
    print(f"\n{'=' * 70}")
    print("RESTOCK PLAN")
    print(f"{'=' * 70}")
    print(f"Dealer: {report.dealer_name or '(all dealers)'}")
    print(f"Planning As Of: {report.generated_for.strftime('%d %b %Y')}")

    # Capacity
    print("\n" + "-" * 70)
    print("YARD CAPACITY")
    print("-" * 70)
    yard = report.yard_breakdown
    print(f"Current Yard Stock: {report.current_stock_total} vans")
    print(f"Yard Units: {yard.total} ({yard.stock_count} stock / {yard.customer_count} customer)")
    print(f"Target Max: {_fmt(report.capacity.max_capacity)}")
    print(f"Target Min: {_fmt(report.capacity.min_volume)}")
    if report.fill_percent is not None:
        print(f"Yard Fill: {report.fill_percent}% utilised")
    else:
        print("Yard Fill: Capacity data not set")
    if report.remaining_capacity is not None:
        remaining = report.remaining_capacity
        if remaining >= 0:
            print(f"  {_fmt(remaining)} slots free")
        else:
            print(f"  {_fmt(abs(remaining))} over capacity")

    # Model table
    print("\n" + "-" * 70)
    print("MODEL STOCK")
    print("-" * 70)
    frame = report.model_frame(sort_key=sort_key)
    if frame.empty:
        print("No model activity for this dealer.")
    else:
        with pd.option_context("display.max_columns", None, "display.width", 200):
            print(frame.to_string(index=False))

    # Plans
    print("\n" + "-" * 70)
    print("EMPTY SLOT PLAN")
    print("-" * 70)
    print(f"Capacity Baseline: {report.goals.baseline}")
    goals = ", ".join(f"{tier}={goal}" for tier, goal in report.goals.tier_goals.items())
    print(f"Tier Goals: {goals}")
    if not report.plans:
        print("Nothing to plan: no empty slots found.")
    else:
        print(f"{'Forecast':<12} {'Delivery':<12} {'Tier':<5} {'Model':<20} {'Booked':>7} {'Goal':>5}")
        print("-" * 70)
        for plan in report.plans:
            print(f"{plan.forecast_date.strftime('%d/%m/%Y'):<12} "
                  f"{plan.delivery_date.strftime('%d/%m/%Y'):<12} "
                  f"{plan.tier:<5} {(plan.model or '—'):<20} "
                  f"{plan.model_booked:>7} {plan.model_target:>5}")
            print(f"  {plan.recommendation}")

    # Checkpoint
    print("\n" + "-" * 70)
    print("STOCK MIN CHECKPOINT")
    print("-" * 70)
    checkpoint = report.checkpoint
    if not checkpoint.applicable:
        print("Not applicable: no empty slot to anchor on.")
    else:
        print(f"Nearest Empty Slot: {checkpoint.slot_date.strftime('%d/%m/%Y')}")
        print(f"  Last 90 days:  {checkpoint.past_long_stock:>3} vs {_fmt(checkpoint.long_target)}"
              f"  [{checkpoint.past_long_verdict}]")
        print(f"  Last 30 days:  {checkpoint.past_short_stock:>3} vs {_fmt(checkpoint.short_target)}"
              f"  [{checkpoint.past_short_verdict}]")
        print(f"  Next 90 days:  {checkpoint.future_stock:>3} vs {_fmt(checkpoint.long_target)}"
              f"  [{checkpoint.future_verdict}]")
    print()


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Restock Plan Generator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--snapshot', '-s',
        required=True,
        help='Snapshot file with the feed data (JSON or YAML)'
    )

    parser.add_argument(
        '--dealer', '-d',
        default='',
        help='Dealer slug to plan for (e.g., frankston)'
    )

    parser.add_argument(
        '--today',
        help='Plan as of this date (e.g., "2026-03-01" or "01/03/2026"; default: now)'
    )

    parser.add_argument(
        '--settings',
        help='Settings YAML file (default: settings.yaml in the project root)'
    )

    parser.add_argument(
        '--sort',
        choices=list(SORT_KEYS),
        default='current_stock',
        help='Sort the model table by this column (default: current_stock)'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the full report as JSON instead of tables'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log progress details'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    today = None
    if args.today:
        today = parse_date(args.today)
        if today is None:
            print(f"\nError: could not parse --today value {args.today!r}")
            return 1

    config = config_from_yaml(args.settings) if args.settings else default_config

    try:
        inputs = load_snapshot(args.snapshot)
    except SnapshotError as e:
        print(f"\nError: {e}")
        return 1

    report = RestockEngine(config=config).run(inputs, dealer_slug=args.dealer, today=today)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report, sort_key=args.sort)
        print(f"Completed: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
