"""Portfolio risk calculation for lease exposures.

Exposures are grouped by currency and each group is scored independently;
amounts in different currencies are never added together.

Formula per currency group::

    base_risk     = sum(amount * airline_risk) / sum(amount)
    penalty       = 10 if max_share > 0.7 else 5 if max_share > 0.5 else 0
    adjusted_risk = min(100, base_risk + penalty)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from lessor_risk.pipeline.types import (
    NEUTRAL_SCORE,
    BucketTotals,
    CurrencyRiskResult,
    Exposure,
    ExposureRow,
    PortfolioRiskResult,
    RiskBucket,
    RiskConfig,
)

logger = logging.getLogger(__name__)

# Returns the airline's most recent overall score, or ``None`` if never scored.
ScoreLookup = Callable[[str], float | None]


def currency_risk(
    currency: str,
    rows: Sequence[ExposureRow],
    config: RiskConfig,
) -> CurrencyRiskResult:
    """Apply the portfolio formula to one currency's exposure rows.

    Args:
        currency: ISO code of the group.
        rows: Rows with positive exposure.  Not modified.
        config: Bucket thresholds and concentration bands.

    Returns:
        The group's ``CurrencyRiskResult``.  An empty ``rows`` yields zeros
        and a ``Low`` bucket.
    """
    if not rows:
        return CurrencyRiskResult(
            currency=currency,
            total_exposure=0.0,
            base_risk=0.0,
            adjusted_risk=0.0,
            concentration_penalty=0.0,
            max_concentration=0.0,
            risk_bucket=RiskBucket.LOW,
            bucket_totals=BucketTotals(),
            rows=(),
        )

    total_exposure = sum(row.exposure for row in rows)
    base_risk = sum(row.exposure * row.risk for row in rows) / total_exposure
    max_concentration = max(row.exposure for row in rows) / total_exposure
    penalty = config.concentration_penalty(max_concentration)
    adjusted_risk = round(min(100.0, base_risk + penalty), 1)

    totals = {bucket: 0.0 for bucket in RiskBucket}
    for row in rows:
        totals[row.risk_bucket] += row.exposure

    # sorted() is stable, so equal amounts keep insertion order.
    ranked = tuple(sorted(rows, key=lambda row: row.exposure, reverse=True))

    return CurrencyRiskResult(
        currency=currency,
        total_exposure=round(total_exposure, 2),
        base_risk=round(base_risk, 1),
        adjusted_risk=adjusted_risk,
        concentration_penalty=penalty,
        max_concentration=round(max_concentration, 3),
        risk_bucket=config.bucket_for(adjusted_risk),
        bucket_totals=BucketTotals(
            low=round(totals[RiskBucket.LOW], 2),
            medium=round(totals[RiskBucket.MEDIUM], 2),
            high=round(totals[RiskBucket.HIGH], 2),
        ),
        rows=ranked,
    )


class PortfolioRiskCalculator:
    """Exposure-weighted, concentration-adjusted portfolio risk.

    Args:
        config: Bucket thresholds and concentration bands.

    Usage::

        calculator = PortfolioRiskCalculator(config)
        result = calculator.calculate(exposures, cache_scores.get)
        for currency in result.currencies:
            print(currency, result.per_currency[currency].adjusted_risk)
    """

    def __init__(self, config: RiskConfig | None = None) -> None:
        self.config = config or RiskConfig()

    def build_row(self, exposure: Exposure, score: float | None) -> ExposureRow:
        """Join an exposure with its airline's score (neutral 50 if none)."""
        risk = NEUTRAL_SCORE if score is None else score
        return ExposureRow(
            airline_code=exposure.airline_code,
            airline_name=exposure.airline_name,
            exposure=exposure.exposure_amount,
            risk=risk,
            risk_bucket=self.config.bucket_for(risk),
            aircraft_count=exposure.aircraft_count,
        )

    def calculate(
        self,
        exposures: Iterable[Exposure],
        latest_score_lookup: ScoreLookup,
    ) -> PortfolioRiskResult:
        """Score a portfolio separately per currency.

        Args:
            exposures: Lease exposures; each amount must be positive.
            latest_score_lookup: Airline code to latest overall score.

        Returns:
            A ``PortfolioRiskResult``.  An empty portfolio gives empty
            ``per_currency`` and ``currencies``.

        Raises:
            ValueError: An exposure amount is zero or negative.
        """
        groups: dict[str, list[ExposureRow]] = {}
        for exposure in exposures:
            if exposure.exposure_amount <= 0:
                raise ValueError(
                    f"Exposure to {exposure.airline_code} must be positive, "
                    f"got {exposure.exposure_amount}"
                )
            score = latest_score_lookup(exposure.airline_code)
            if score is None:
                logger.warning(
                    "No risk score on file for %s, using neutral %.0f",
                    exposure.airline_code,
                    NEUTRAL_SCORE,
                )
            groups.setdefault(exposure.currency, []).append(
                self.build_row(exposure, score)
            )

        per_currency = {
            currency: currency_risk(currency, rows, self.config)
            for currency, rows in groups.items()
        }
        currencies = tuple(sorted(per_currency))

        for currency in currencies:
            result = per_currency[currency]
            logger.info(
                "Portfolio %s: total=%.2f base=%.1f adjusted=%.1f penalty=%.0f bucket=%s",
                currency,
                result.total_exposure,
                result.base_risk,
                result.adjusted_risk,
                result.concentration_penalty,
                result.risk_bucket.value,
            )

        return PortfolioRiskResult(
            per_currency={currency: per_currency[currency] for currency in currencies},
            currencies=currencies,
        )
