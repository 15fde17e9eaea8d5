#!/usr/bin/env python3
"""Lessor Portfolio Risk Runner.

CLI entry point that loads a lease portfolio from a JSON file, scores every
lessee airline, and prints the per-currency portfolio risk.  Optionally
previews a what-if change to one exposure.

Usage::

    python scripts/run_portfolio.py [--portfolio-file data/portfolio.json] [--store sql]
    python scripts/run_portfolio.py --scenario-currency USD --scenario-airline AAL --scenario-amount 0
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is on ``sys.path`` so that ``lessor_risk.*``
# imports work when this script is invoked directly from the command line.
# ---------------------------------------------------------------------------
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lessor_risk.config import settings  # noqa: E402
from lessor_risk.models.database import create_tables  # noqa: E402
from lessor_risk.pipeline.assessment import PortfolioAssessment, load_portfolio  # noqa: E402
from lessor_risk.pipeline.errors import RiskEngineError  # noqa: E402
from lessor_risk.pipeline.snapshot_cache import (  # noqa: E402
    InMemorySnapshotStore,
    SnapshotStore,
    SqlSnapshotStore,
)
from lessor_risk.pipeline.types import CurrencyRiskResult, RiskConfig  # noqa: E402
from lessor_risk.schemas.schemas import ScenarioRequest  # noqa: E402

logger = logging.getLogger("run_portfolio")


def _configure_logging() -> None:
    """Set up root logger with a clean console format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Assess counterparty risk of a lease portfolio",
    )
    parser.add_argument(
        "--portfolio-file",
        default="data/portfolio.json",
        help="Path to the portfolio JSON file (default: data/portfolio.json)",
    )
    parser.add_argument(
        "--store",
        choices=("memory", "sql"),
        default="memory",
        help="Where risk snapshots are kept (default: memory)",
    )
    parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Recompute every airline even if a fresh snapshot exists",
    )
    parser.add_argument("--scenario-currency", help="Currency group for a what-if run")
    parser.add_argument("--scenario-airline", help="Airline code whose exposure changes")
    parser.add_argument(
        "--scenario-amount",
        type=float,
        help="Hypothetical exposure amount; 0 removes the exposure",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON instead of a summary",
    )
    return parser.parse_args(argv)


def _print_currency(result: CurrencyRiskResult) -> None:
    print(f"\n--- {result.currency} ---")
    print(f"  Total Exposure:    {result.total_exposure:,.2f}")
    print(f"  Base Risk:         {result.base_risk:.1f}")
    print(
        f"  Concentration:     {result.max_concentration:.1%} "
        f"(+{result.concentration_penalty:.0f})"
    )
    print(f"  Adjusted Risk:     {result.adjusted_risk:.1f} ({result.risk_bucket.value})")
    for row in result.rows:
        print(
            f"    {row.airline_code:<6s} {row.airline_name:<28.28s} "
            f"{row.exposure:>16,.2f}  risk {row.risk:5.1f}  {row.risk_bucket.value}"
        )


async def main(argv: list[str] | None = None) -> int:
    """Parse arguments, assess the portfolio and print the results."""
    _configure_logging()
    args = _parse_args(argv)

    store: SnapshotStore
    if args.store == "sql":
        print("Initializing database...")
        await create_tables()
        store = SqlSnapshotStore()
    else:
        store = InMemorySnapshotStore()

    try:
        portfolio = load_portfolio(args.portfolio_file)
        assessment = PortfolioAssessment(
            config=RiskConfig.from_settings(settings),
            store=store,
        )
        summary = await assessment.assess(portfolio, force_refresh=args.force_refresh)

        scenario = None
        if args.scenario_currency and args.scenario_airline and args.scenario_amount is not None:
            scenario = assessment.simulate(
                summary,
                ScenarioRequest(
                    currency=args.scenario_currency,
                    airline_code=args.scenario_airline,
                    new_exposure=args.scenario_amount,
                ),
            )
    except (OSError, ValueError, RiskEngineError):
        logger.exception("Portfolio assessment failed")
        return 1

    if args.json:
        output = summary.to_dict()
        if scenario is not None:
            output["scenario"] = scenario.to_dict()
        print(json.dumps(output, indent=2, default=str))
        return 0

    print(f"=== {settings.APP_TITLE} v{settings.APP_VERSION} ===")
    print(f"Portfolio: {summary.portfolio_name}")
    print(f"Airlines Scored: {len(summary.airline_results)}")
    for code, result in summary.airline_results.items():
        missing = ", ".join(result.metadata.missing_components) or "none"
        print(
            f"  {code:<6s} {result.overall_score:5.1f} {result.risk_bucket.value:<7s} "
            f"missing: {missing}"
        )

    if summary.portfolio.is_multi_currency:
        print("\nNote: exposures span several currencies and are reported separately.")
    for currency in summary.portfolio.currencies:
        _print_currency(summary.portfolio.per_currency[currency])

    if scenario is not None:
        print("\n=== Scenario ===")
        print(f"{args.scenario_airline} -> {args.scenario_amount:,.2f} {scenario.currency}")
        _print_currency(scenario)

    print(f"\nProcessing Time: {summary.processing_time_seconds:.2f}s")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
