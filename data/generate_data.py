#!/usr/bin/env python3
"""Generate a synthetic lease portfolio for the counterparty risk demo.

Produces a portfolio mixing well-known listed carriers, state-owned
carriers with no ticker, a ceased operator, and Faker-generated private
airlines.  Exposures are spread over several currencies, with one lessee
deliberately dominant in USD so the concentration penalty shows up.

Usage::

    python data/generate_data.py

Output:
    data/portfolio.json  -- a ``PortfolioFile`` document.
"""

from __future__ import annotations

import json
import random
import string
from pathlib import Path
from typing import Final

from faker import Faker

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

fake = Faker(["en_US", "en_GB"])

# code, name, jurisdiction, region, subregion, gini, fleet size
KNOWN_AIRLINES: Final[list[tuple[str, str, str, str, str, float, int]]] = [
    ("AAL", "American Airlines", "United States", "Americas", "North America", 41.5, 950),
    ("DAL", "Delta Air Lines", "United States", "Americas", "North America", 41.5, 900),
    ("UAL", "United Airlines", "United States", "Americas", "North America", 41.5, 940),
    ("JBU", "JetBlue Airways", "United States", "Americas", "North America", 41.5, 290),
    ("DLH", "Lufthansa", "Germany", "Europe", "Western Europe", 31.7, 280),
    ("BAW", "British Airways", "United Kingdom", "Europe", "Northern Europe", 32.4, 250),
    ("RYR", "Ryanair", "Ireland", "Europe", "Northern Europe", 30.6, 560),
    ("SIA", "Singapore Airlines", "Singapore", "Asia", "South-Eastern Asia", 45.9, 140),
    ("QFA", "Qantas", "Australia", "Oceania", "Australia and New Zealand", 34.3, 130),
    ("UAE", "Emirates", "United Arab Emirates", "Middle East", "Western Asia", 26.0, 260),
    ("QTR", "Qatar Airways", "Qatar", "Middle East", "Western Asia", 41.1, 230),
]

CEASED_AIRLINES: Final[list[tuple[str, str, str, str]]] = [
    ("AWE", "Andes Wings (ceased)", "Argentina", "Americas"),
]

PRIVATE_REGIONS: Final[list[str]] = ["Africa", "Asia", "Europe", "Americas", "Middle East"]

CURRENCIES: Final[list[str]] = ["USD", "EUR", "GBP"]
CURRENCY_WEIGHTS: Final[list[float]] = [0.6, 0.3, 0.1]

AMOUNT_RANGE: Final[tuple[float, float]] = (5_000_000.0, 60_000_000.0)
DOMINANT_AMOUNT: Final[float] = 400_000_000.0

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _random_code(taken: set[str]) -> str:
    """Return an unused three-letter code starting with X (never a listed carrier)."""
    while True:
        code = "X" + "".join(random.choices(string.ascii_uppercase, k=2))
        if code not in taken:
            taken.add(code)
            return code


def _known_airline(row: tuple[str, str, str, str, str, float, int]) -> dict[str, object]:
    code, name, jurisdiction, region, subregion, gini, fleet_size = row
    return {
        "code": code,
        "name": name,
        "jurisdiction": jurisdiction,
        "active": True,
        "fleet_size": fleet_size,
        "jurisdiction_info": {
            "region": region,
            "subregion": subregion,
            "gini": gini,
        },
    }


def _private_airline(taken: set[str]) -> dict[str, object]:
    """Build a fictitious unlisted carrier with partial country data."""
    airline: dict[str, object] = {
        "code": _random_code(taken),
        "name": f"{fake.last_name()} {random.choice(['Air', 'Airways', 'Aviation'])}",
        "jurisdiction": fake.country(),
        "active": True,
        "fleet_size": random.choice([None, random.randint(3, 120)]),
    }
    # Some private carriers come with region only, some with nothing.
    if random.random() < 0.7:
        airline["jurisdiction_info"] = {"region": random.choice(PRIVATE_REGIONS)}
    return airline


def _exposure(code: str, currency: str, amount: float | None = None) -> dict[str, object]:
    amount = amount if amount is not None else random.uniform(*AMOUNT_RANGE)
    return {
        "airline_code": code,
        "exposure_amount": round(amount, 2),
        "currency": currency,
        "aircraft_count": max(1, int(amount // 45_000_000)),
    }


# ---------------------------------------------------------------------------
# Dataset assembly
# ---------------------------------------------------------------------------


def generate_portfolio(private_count: int = 6) -> dict[str, object]:
    """Assemble a complete portfolio document.

    The first known carrier is given a dominant USD exposure so that the
    USD group crosses the high concentration band.

    Args:
        private_count: Number of Faker-generated private airlines.

    Returns:
        A dict accepted by ``PortfolioFile.model_validate``.
    """
    airlines: list[dict[str, object]] = [_known_airline(row) for row in KNOWN_AIRLINES]
    for code, name, jurisdiction, region in CEASED_AIRLINES:
        airlines.append(
            {
                "code": code,
                "name": name,
                "jurisdiction": jurisdiction,
                "active": False,
                "jurisdiction_info": {"region": region},
            }
        )

    taken = {str(airline["code"]) for airline in airlines}
    airlines.extend(_private_airline(taken) for _ in range(private_count))

    exposures: list[dict[str, object]] = []
    for index, airline in enumerate(airlines):
        code = str(airline["code"])
        if index == 0:
            exposures.append(_exposure(code, "USD", DOMINANT_AMOUNT))
            continue
        currency = random.choices(CURRENCIES, weights=CURRENCY_WEIGHTS, k=1)[0]
        exposures.append(_exposure(code, currency))

    return {
        "name": f"{fake.company()} Leasing Portfolio",
        "description": "Synthetic portfolio for the counterparty risk demo.",
        "airlines": airlines,
        "exposures": exposures,
    }


def _print_summary(portfolio: dict[str, object]) -> None:
    """Print exposure totals per currency."""
    exposures: list[dict] = portfolio["exposures"]  # type: ignore[assignment]
    totals: dict[str, float] = {}
    for exposure in exposures:
        currency = exposure["currency"]
        totals[currency] = totals.get(currency, 0.0) + exposure["exposure_amount"]

    print(f"\n{'=' * 60}")
    print(f"  Portfolio:   {portfolio['name']}")
    print(f"  Airlines:    {len(portfolio['airlines'])}")  # type: ignore[arg-type]
    print(f"  Exposures:   {len(exposures)}")
    print()
    print("  --- Exposure by Currency ---")
    for currency, total in sorted(totals.items()):
        print(f"    {currency:<5s} {total:>18,.2f}")
    print(f"{'=' * 60}\n")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate a synthetic lease portfolio")
    parser.add_argument(
        "--private", type=int, default=6,
        help="Number of private (unlisted) airlines to generate (default: 6)",
    )
    parser.add_argument(
        "--seed", type=int, default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Output file path (default: data/portfolio.json)",
    )
    args = parser.parse_args()

    random.seed(args.seed)
    Faker.seed(args.seed)

    print(f"Generating portfolio with {args.private} private airlines (seed={args.seed})...")
    portfolio = generate_portfolio(private_count=args.private)

    script_dir = Path(__file__).resolve().parent
    output_path = Path(args.output) if args.output else script_dir / "portfolio.json"

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(portfolio, f, indent=2)

    print(f"Generated portfolio -> {output_path}")
    _print_summary(portfolio)
