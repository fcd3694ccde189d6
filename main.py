#!/usr/bin/env python3
"""
Health Score Pipeline - Main Orchestrator
Collects a window of daily biometrics (Garmin Connect or synthetic demo data),
runs the health score engine and prints the HealthScore, the ReliabilityScore
and the per-domain breakdown.
"""

import argparse
import json
import logging
import os
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional

import numpy as np

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from garmin_collector import GarminCollector
from health_models import HealthScoringResult, RawDailyEntry
from health_score_engine import HealthScoreEngine
from scoring_config import ScoringConfiguration


def setup_argparser() -> argparse.ArgumentParser:
    """Set up command line argument parser."""
    parser = argparse.ArgumentParser(
        description="Health Score Pipeline - Score 90 days of biometrics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score your Garmin history
  python main.py --run

  # Use demo mode with synthetic data
  python main.py --demo

  # Save the full result as JSON
  python main.py --demo --output result.json

Environment Variables:
  GARMIN_EMAIL                   - Your Garmin Connect email
  GARMIN_PASSWORD                - Your Garmin Connect password
  HEALTH_SCORE_GAP_DAYS          - Missing-day run that counts as a data gap (default: 5)
  HEALTH_SCORE_OUTLIER_THRESHOLD - Outlier share that lowers reliability (default: 0.05)
  HEALTH_SCORE_STEPS_THRESHOLD   - Steps for a day to count as active (default: 6000)
        """
    )

    parser.add_argument(
        "--run",
        action="store_true",
        help="Score real Garmin Connect data"
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run in demo mode with synthetic data (no Garmin credentials required)"
    )

    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Last day of the scored window (YYYY-MM-DD format, defaults to today)"
    )

    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Number of days of history to score (default: 90)"
    )

    parser.add_argument(
        "--history-preset",
        type=str,
        default=None,
        choices=list(GarminCollector.HISTORY_PRESETS),
        help="History period preset: minimal (30d), standard (90d), extended (180d), comprehensive (365d)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=7,
        help="Random seed for demo data"
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the full scoring result to this JSON file"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    return parser


def generate_sample_entries(end_date: date, days: int = 90, seed: int = 7) -> List[RawDailyEntry]:
    """Generate a reproducible synthetic history with realistic day-to-day noise."""
    rng = np.random.default_rng(seed)
    entries = []

    for i in range(days):
        day = end_date - timedelta(days=days - 1 - i)
        # occasional missed night on the watch
        worn_overnight = rng.random() > 0.08

        entries.append(RawDailyEntry(
            date=day,
            sleep_hours=round(float(rng.normal(7.4, 0.6)), 2) if worn_overnight else None,
            hrv_ms=round(float(rng.normal(52, 7)), 1) if worn_overnight else None,
            resting_hr=float(round(rng.normal(54, 2))) if worn_overnight else None,
            vo2max=round(float(rng.normal(47, 0.4)), 1) if i % 3 == 0 else None,
            steps=float(max(0, int(rng.normal(9000, 2500)))),
            training_load=float(max(0, int(rng.normal(320, 140)))) if rng.random() > 0.25 else None,
            readiness_score=float(int(np.clip(rng.normal(70, 12), 1, 100))),
            stress_score=float(int(np.clip(rng.normal(32, 9), 1, 100)))
        ))

    return entries


def print_summary(result: HealthScoringResult, verbose: bool) -> None:
    """Print the headline numbers and the per-domain breakdown."""
    print("\n" + "=" * 60)
    print("HEALTH SCORE")
    print("=" * 60)
    print(f"\nHealthScore:      {result.health_score_int} ({result.health_score:.1f})")
    reliability_label = "high" if result.is_high_reliability else "low" if result.is_low_reliability else "moderate"
    print(f"ReliabilityScore: {result.reliability_score_int} ({reliability_label})")

    if result.included_domains:
        print("\nDomains:")
        print("-" * 40)
        for domain in result.included_domains:
            print(f"  {domain.domain_name:<13} {domain.domain_score:5.1f}  "
                  f"weight {domain.normalized_weight:.2f}")
            if verbose:
                for metric in domain.used_metrics:
                    print(f"      {metric.metric_name:<18} {metric.normalized_score:5.1f}  "
                          f"({metric.coverage_tier.value}, {metric.coverage90} days)")

    if result.excluded_domains:
        print(f"\nExcluded: {', '.join(result.excluded_domains)}")

    flagged = [name for name, flag in result.data_gap_flags.items() if flag]
    if flagged:
        print(f"Data gaps: {', '.join(flagged)}")

    print("\n" + "=" * 60)


def save_result(result: HealthScoringResult, output_file: str) -> Path:
    path = Path(output_file)
    with open(path, "w") as f:
        json.dump(result.to_dict(), f, indent=2)
    print(f"Result saved to {path}")
    return path


def collect_garmin_entries(end_date: date, days: Optional[int],
                           history_preset: Optional[str]) -> List[RawDailyEntry]:
    """Authenticate and fetch the history window from Garmin Connect."""
    email = os.environ.get("GARMIN_EMAIL") or os.environ.get("GARMIN_CONNECT_EMAIL")
    password = os.environ.get("GARMIN_PASSWORD")

    if not email or not password:
        print("\nERROR: Garmin credentials not found!")
        print("\nPlease set the following environment variables:")
        print("  export GARMIN_EMAIL='your-email@example.com'")
        print("  export GARMIN_PASSWORD='your-password'")
        print("\nOr run in demo mode: python main.py --demo")
        sys.exit(1)

    collector = GarminCollector(email, password, history_days=days, history_preset=history_preset)
    print(f"History period: {collector.history_days} days")

    print("Authenticating with Garmin Connect...")
    if not collector.authenticate():
        print("Authentication failed!")
        sys.exit(1)

    print("Collecting Garmin data...")
    return collector.collect_entries(end_date)


def run_pipeline(entries: List[RawDailyEntry], output_file: Optional[str],
                 verbose: bool, config: Optional[ScoringConfiguration] = None) -> HealthScoringResult:
    engine = HealthScoreEngine(config or ScoringConfiguration.from_env())
    result = engine.calculate(entries)
    print_summary(result, verbose)

    if output_file:
        save_result(result, output_file)
    if verbose:
        print("\nFull result JSON:")
        print(json.dumps(result.to_dict(), indent=2))
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )

    if args.date:
        try:
            end_date = date.fromisoformat(args.date)
        except ValueError:
            print(f"Invalid date format: {args.date}")
            print("   Please use YYYY-MM-DD format (e.g., 2026-02-06)")
            return 1
    else:
        end_date = date.today()

    try:
        config = ScoringConfiguration.from_env()
    except ValueError as e:
        print(f"Invalid scoring configuration: {e}")
        print("   Check the HEALTH_SCORE_* environment variables")
        return 1

    if args.demo:
        print("\nGenerating sample health data...")
        entries = generate_sample_entries(end_date, days=args.days or 90, seed=args.seed)
    elif args.run:
        entries = collect_garmin_entries(end_date, args.days, args.history_preset)
    else:
        parser.print_help()
        print("\nQuick start:")
        print("   Demo mode:  python main.py --demo")
        print("   Full run:   python main.py --run")
        return 0

    print(f"Scoring {len(entries)} days ending {end_date}...")
    run_pipeline(entries, args.output, args.verbose, config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
