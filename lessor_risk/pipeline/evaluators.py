"""Risk factor evaluators for airline counterparty risk.

Each evaluator scores one risk dimension of a ``RiskContext`` on a 0-100
scale (higher is riskier) and returns a ``ComponentScore``.  Evaluators never
raise for missing inputs: they degrade to a neutral score with ``LOW``
confidence, or to ``None`` when the dimension cannot be assessed at all.
Weights are not owned here; they come from the aggregator's ``RiskConfig``.

Evaluators:
    jurisdiction     -- Regional stability proxy, refined by inequality index.
    scale            -- Fleet size bands.
    asset_liquidity  -- Distress signal for inactive carriers; otherwise
                        unavailable until fleet composition data exists.
    financial        -- Leverage, profitability and liquidity of listed carriers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from lessor_risk.pipeline.fundamentals import (
    FundamentalsProvider,
    RepresentativeFundamentalsProvider,
)
from lessor_risk.pipeline.normalizer import clamp_score, normalize
from lessor_risk.pipeline.types import (
    ASSET_LIQUIDITY,
    FINANCIAL,
    JURISDICTION,
    NEUTRAL_SCORE,
    SCALE,
    ComponentScore,
    Confidence,
    FinancialFundamentals,
    RiskContext,
)

logger = logging.getLogger(__name__)


class RiskFactorEvaluator(ABC):
    """Scores one risk dimension of an airline.

    Subclasses set ``key`` (the weight table key) and ``display_name`` and
    implement ``evaluate``.
    """

    key: str
    display_name: str

    @abstractmethod
    async def evaluate(self, context: RiskContext) -> ComponentScore:
        """Score ``context`` for this dimension."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"


# ---------------------------------------------------------------------------
# Jurisdiction
# ---------------------------------------------------------------------------

STABLE_REGIONS = frozenset({"europe", "americas"})
ELEVATED_REGIONS = frozenset({"asia", "oceania"})
HIGHER_RISK_REGIONS = frozenset({"africa"})

JURISDICTION_BASE_RISK = 40.0
GINI_RANGE = (25.0, 65.0)


def regional_adjustment(region: str | None) -> float:
    """Points added to the jurisdiction base risk for a region name."""
    if not region:
        return 0.0
    region = region.lower()
    if region in STABLE_REGIONS:
        return -15.0
    if region in HIGHER_RISK_REGIONS or "middle east" in region:
        return 20.0
    if region in ELEVATED_REGIONS:
        return 5.0
    return 0.0


class JurisdictionEvaluator(RiskFactorEvaluator):
    """Jurisdiction risk from the airline's country of registration."""

    key = JURISDICTION
    display_name = "Jurisdiction Risk (proxy)"

    async def evaluate(self, context: RiskContext) -> ComponentScore:
        """Evaluate jurisdiction risk.

        Starts from a base of 40, applies a regional adjustment and, when an
        inequality (Gini) index is known, blends 70/30 with the normalised
        index.  Without any jurisdiction data the score is a neutral 50.

        Args:
            context: Airline context.

        Returns:
            A ``ComponentScore``; confidence is ``HIGH`` with a Gini index,
            ``MEDIUM`` with region only and ``LOW`` with no data.
        """
        info = context.jurisdiction_info
        if info is None:
            return ComponentScore(
                score=NEUTRAL_SCORE,
                confidence=Confidence.LOW,
                metadata={
                    "reason": "Jurisdiction data unavailable",
                    "jurisdiction": context.airline.jurisdiction,
                    "note": "Neutral score assigned",
                },
            )

        adjustment = regional_adjustment(info.region)
        risk = JURISDICTION_BASE_RISK + adjustment
        metadata: dict[str, object] = {
            "jurisdiction": context.airline.jurisdiction,
            "region": info.region,
            "subregion": info.subregion,
            "regional_adjustment": adjustment,
        }
        confidence = Confidence.MEDIUM

        if info.gini is not None:
            gini_risk = normalize(info.gini, *GINI_RANGE)
            risk = risk * 0.7 + gini_risk * 0.3
            metadata["gini"] = info.gini
            metadata["gini_risk"] = round(gini_risk, 1)
            confidence = Confidence.HIGH

        score = round(clamp_score(risk), 1)
        logger.debug(
            "Jurisdiction %s: region=%s score=%.1f",
            context.airline.code,
            info.region,
            score,
        )
        return ComponentScore(score=score, confidence=confidence, metadata=metadata)


# ---------------------------------------------------------------------------
# Scale
# ---------------------------------------------------------------------------

# (exclusive upper fleet size, score, label)
FLEET_SIZE_BANDS: tuple[tuple[int, float, str], ...] = (
    (10, 70.0, "very small"),
    (25, 55.0, "small"),
    (50, 45.0, "small-medium"),
    (100, 35.0, "medium"),
    (200, 25.0, "large"),
)
MAJOR_FLEET_BAND: tuple[float, str] = (15.0, "major")


def fleet_size_band(fleet_size: int) -> tuple[float, str]:
    """Return ``(score, label)`` for a positive fleet size."""
    for upper, score, label in FLEET_SIZE_BANDS:
        if fleet_size < upper:
            return score, label
    return MAJOR_FLEET_BAND


class ScaleEvaluator(RiskFactorEvaluator):
    """Scale & network strength from fleet size."""

    key = SCALE
    display_name = "Scale & Network Strength"

    async def evaluate(self, context: RiskContext) -> ComponentScore:
        fleet_size = context.airline.fleet_size or 0
        if fleet_size <= 0:
            return ComponentScore(
                score=NEUTRAL_SCORE,
                confidence=Confidence.LOW,
                metadata={"reason": "Fleet size unknown", "fleet_size": None},
            )

        score, band = fleet_size_band(fleet_size)
        return ComponentScore(
            score=score,
            confidence=Confidence.HIGH,
            metadata={"fleet_size": fleet_size, "band": band},
        )


# ---------------------------------------------------------------------------
# Asset liquidity
# ---------------------------------------------------------------------------

INACTIVE_CARRIER_RISK = 85.0


class AssetLiquidityEvaluator(RiskFactorEvaluator):
    """Fleet & asset liquidity proxy.

    Remarketability of leased aircraft depends on fleet composition, which
    no current data source provides.  Only the inactive-carrier distress
    signal is scored; every other case is reported unavailable so that the
    aggregator reweights it away.
    """

    key = ASSET_LIQUIDITY
    display_name = "Fleet & Asset Liquidity (proxy)"

    async def evaluate(self, context: RiskContext) -> ComponentScore:
        if not context.airline.active:
            return ComponentScore(
                score=INACTIVE_CARRIER_RISK,
                confidence=Confidence.HIGH,
                metadata={
                    "reason": "Airline inactive",
                    "signal": "distress",
                },
            )

        return ComponentScore(
            score=None,
            confidence=Confidence.LOW,
            metadata={
                "reason": "Fleet composition data unavailable",
                "fleet_composition_available": False,
            },
        )


# ---------------------------------------------------------------------------
# Financial strength
# ---------------------------------------------------------------------------

DEBT_WEIGHT = 0.4
PROFITABILITY_WEIGHT = 0.4
LIQUIDITY_WEIGHT = 0.2


def debt_risk(debt_to_equity: float) -> float:
    """Leverage sub-score.  Airlines typically run a D/E of 1-3."""
    if debt_to_equity < 1:
        return 0.0
    if debt_to_equity < 2:
        return 20.0
    if debt_to_equity < 3:
        return 40.0
    if debt_to_equity < 5:
        return 70.0
    return min(100.0, 90 + (debt_to_equity - 5) * 5)


def profitability_risk(profit_margin: float) -> float:
    """Profitability sub-score from net margin in percent."""
    if profit_margin < 0:
        return min(100.0, 80 + abs(profit_margin) * 5)
    if profit_margin < 2:
        return 60 - profit_margin * 10
    if profit_margin < 5:
        return 40 - (profit_margin - 2) * 6.67
    if profit_margin < 10:
        return 20 - (profit_margin - 5) * 3
    return max(0.0, 5 - (profit_margin - 10) * 0.5)


def liquidity_risk(cash_to_debt: float) -> float:
    """Liquidity sub-score from the cash-to-debt ratio."""
    if cash_to_debt >= 1.0:
        return 0.0
    if cash_to_debt >= 0.5:
        return 20.0
    if cash_to_debt >= 0.3:
        return 40.0
    if cash_to_debt >= 0.1:
        return 70.0
    return 90.0


def compute_financial_risk(fundamentals: FinancialFundamentals) -> float:
    """Blend the three sub-scores 40/40/20, clamp, round to one decimal."""
    blended = (
        debt_risk(fundamentals.debt_to_equity) * DEBT_WEIGHT
        + profitability_risk(fundamentals.profit_margin) * PROFITABILITY_WEIGHT
        + liquidity_risk(fundamentals.cash_to_debt) * LIQUIDITY_WEIGHT
    )
    return round(clamp_score(blended), 1)


def describe_financial_risk(score: float) -> str:
    """Short analyst-facing explanation of a financial strength score."""
    if score < 40:
        return "Strong financial position with healthy debt levels and profitability"
    if score < 50:
        return "Moderate financial health with manageable debt"
    if score < 70:
        return "Financial concerns present; elevated debt or profitability issues"
    return "Significant financial stress; high debt burden or operating losses"


class FinancialStrengthEvaluator(RiskFactorEvaluator):
    """Financial strength of publicly traded carriers.

    Args:
        provider: Source of fundamentals when the context carries none.
            Defaults to the bundled representative profiles.
    """

    key = FINANCIAL
    display_name = "Financial Strength"

    def __init__(self, provider: FundamentalsProvider | None = None) -> None:
        self.provider = provider or RepresentativeFundamentalsProvider()

    async def evaluate(self, context: RiskContext) -> ComponentScore:
        """Evaluate financial strength.

        Private carriers (no ticker) and carriers whose fundamentals cannot
        be found are unavailable (``None`` score), not neutral.

        Args:
            context: Airline context.  ``context.fundamentals`` is used when
                present; otherwise the provider is queried by ticker.

        Returns:
            A ``ComponentScore`` with ``HIGH`` confidence for live data and
            ``MEDIUM`` for representative data.
        """
        ticker = context.airline.ticker
        if not ticker:
            return ComponentScore(
                score=None,
                confidence=Confidence.LOW,
                metadata={
                    "reason": "Not publicly traded",
                    "data_source": "none",
                    "note": "Financial data unavailable for private airlines",
                },
            )

        fundamentals = context.fundamentals
        if fundamentals is None:
            fundamentals = await self.provider.get_fundamentals(ticker)

        if fundamentals is None:
            logger.warning(
                "No fundamentals for %s (ticker %s)", context.airline.code, ticker,
            )
            return ComponentScore(
                score=None,
                confidence=Confidence.LOW,
                metadata={
                    "reason": "Financial data unavailable",
                    "ticker": ticker,
                    "data_source": "none",
                },
            )

        score = compute_financial_risk(fundamentals)
        confidence = (
            Confidence.HIGH if fundamentals.data_source == "api" else Confidence.MEDIUM
        )
        logger.debug(
            "Financial %s: ticker=%s score=%.1f source=%s",
            context.airline.code,
            ticker,
            score,
            fundamentals.data_source,
        )
        return ComponentScore(
            score=score,
            confidence=confidence,
            metadata={
                "ticker": ticker,
                "company_name": fundamentals.company_name,
                "data_source": fundamentals.data_source,
                "debt_to_equity": fundamentals.debt_to_equity,
                "profit_margin": fundamentals.profit_margin,
                "cash_to_debt": fundamentals.cash_to_debt,
                "debt_risk": debt_risk(fundamentals.debt_to_equity),
                "profitability_risk": round(
                    profitability_risk(fundamentals.profit_margin), 2
                ),
                "liquidity_risk": liquidity_risk(fundamentals.cash_to_debt),
                "currency": fundamentals.currency,
                "fiscal_year": fundamentals.fiscal_year,
                "description": describe_financial_risk(score),
            },
        )


def default_evaluators(
    provider: FundamentalsProvider | None = None,
) -> list[RiskFactorEvaluator]:
    """The canonical evaluator list, in run order."""
    return [
        JurisdictionEvaluator(),
        ScaleEvaluator(),
        AssetLiquidityEvaluator(),
        FinancialStrengthEvaluator(provider),
    ]
