"""Value types shared by the risk engine.

This module defines the immutable data carried between the engine stages:

- ``RiskConfig``          — injected weight table, bucket thresholds and
  concentration bands.
- ``RiskContext``         — everything known about one airline at scoring time.
- ``ComponentScore``      — output of one risk factor evaluator.
- ``RiskResult``          — aggregated per-airline assessment.
- ``Exposure`` / ``ExposureRow`` — lease exposure input and its ranked form.
- ``CurrencyRiskResult`` / ``PortfolioRiskResult`` / ``ScenarioResult`` —
  portfolio level outputs, always kept separate per currency.

All values are frozen dataclasses.  The only "change" an airline context ever
sees is the aggregator building a new instance with ``dataclasses.replace``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any

from lessor_risk.pipeline.errors import InvalidConfigurationError


class Confidence(str, Enum):
    """Qualitative reliability label attached to a component score."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RiskBucket(str, Enum):
    """Low / Medium / High classification of a 0-100 score."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# Evaluator keys, in the order the aggregator runs them.
JURISDICTION = "jurisdiction"
SCALE = "scale"
ASSET_LIQUIDITY = "asset_liquidity"
FINANCIAL = "financial"

# Weight scheme 2.0: four evaluators, financial strength carries the most.
DEFAULT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        JURISDICTION: 0.25,
        SCALE: 0.20,
        ASSET_LIQUIDITY: 0.20,
        FINANCIAL: 0.35,
    }
)

NEUTRAL_SCORE = 50.0


def _frozen(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only copy of ``mapping``; results are shared through the cache."""
    return MappingProxyType(dict(mapping))


def _plain(value: Any) -> Any:
    """Recursively turn dataclasses, mappings and tuples into dicts and lists.

    ``asdict`` deep-copies anything it does not recognise and cannot copy a
    ``MappingProxyType``, so read-only results are converted here instead.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RiskConfig:
    """Versioned scoring configuration injected into every engine component.

    Attributes:
        weights: Evaluator key to weight.  Evaluators whose key is missing are
            disabled.  Must sum to 1.0.
        low_max: Highest score classified as ``Low``.
        medium_max: Highest score classified as ``Medium``.
        concentration_medium_threshold: Share *above* which the medium
            concentration penalty applies (exclusive bound).
        concentration_high_threshold: Share *above* which the high
            concentration penalty applies (exclusive bound).
        concentration_medium_penalty: Points added for medium concentration.
        concentration_high_penalty: Points added for high concentration.
        result_ttl: Lifetime stamped on a fresh ``RiskResult``.
        version: Tag of the weight/threshold scheme.
    """

    weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    low_max: float = 40.0
    medium_max: float = 70.0
    concentration_medium_threshold: float = 0.5
    concentration_high_threshold: float = 0.7
    concentration_medium_penalty: float = 5.0
    concentration_high_penalty: float = 10.0
    result_ttl: timedelta = timedelta(minutes=60)
    version: str = "2.0"

    def __post_init__(self) -> None:
        weights = dict(self.weights)
        if not weights:
            raise InvalidConfigurationError("Weight table must not be empty")
        negative = [key for key, value in weights.items() if value < 0]
        if negative:
            raise InvalidConfigurationError(f"Negative weights for {negative}")
        total = sum(weights.values())
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise InvalidConfigurationError(
                f"Evaluator weights must sum to 1.0, got {total:.4f}"
            )
        if not self.low_max < self.medium_max:
            raise InvalidConfigurationError(
                f"low_max ({self.low_max}) must be below medium_max ({self.medium_max})"
            )
        if not (
            0 < self.concentration_medium_threshold
            < self.concentration_high_threshold
            <= 1
        ):
            raise InvalidConfigurationError(
                "Concentration thresholds must satisfy 0 < medium < high <= 1"
            )
        object.__setattr__(self, "weights", MappingProxyType(weights))

    def weight_for(self, key: str) -> float | None:
        """Return the configured weight for ``key`` or ``None`` if disabled."""
        return self.weights.get(key)

    def bucket_for(self, score: float) -> RiskBucket:
        """Map a 0-100 score to its risk bucket using this config's thresholds."""
        return score_to_bucket(score, self.low_max, self.medium_max)

    def concentration_penalty(self, max_concentration: float) -> float:
        """Return the additive penalty for the largest-exposure share."""
        if max_concentration > self.concentration_high_threshold:
            return self.concentration_high_penalty
        if max_concentration > self.concentration_medium_threshold:
            return self.concentration_medium_penalty
        return 0.0

    @classmethod
    def from_settings(cls, settings: Any) -> RiskConfig:
        """Build a config from a ``lessor_risk.config.Settings`` instance."""
        return cls(
            weights={
                JURISDICTION: settings.WEIGHT_JURISDICTION,
                SCALE: settings.WEIGHT_SCALE,
                ASSET_LIQUIDITY: settings.WEIGHT_ASSET_LIQUIDITY,
                FINANCIAL: settings.WEIGHT_FINANCIAL,
            },
            low_max=settings.BUCKET_LOW_MAX,
            medium_max=settings.BUCKET_MEDIUM_MAX,
            concentration_medium_threshold=settings.CONCENTRATION_MEDIUM_THRESHOLD,
            concentration_high_threshold=settings.CONCENTRATION_HIGH_THRESHOLD,
            concentration_medium_penalty=settings.CONCENTRATION_MEDIUM_PENALTY,
            concentration_high_penalty=settings.CONCENTRATION_HIGH_PENALTY,
            result_ttl=timedelta(minutes=settings.RESULT_TTL_MINUTES),
            version=settings.RISK_MODEL_VERSION,
        )


def score_to_bucket(score: float, low_max: float, medium_max: float) -> RiskBucket:
    """Classify ``score``: ``<= low_max`` Low, ``<= medium_max`` Medium, else High."""
    if score <= low_max:
        return RiskBucket.LOW
    if score <= medium_max:
        return RiskBucket.MEDIUM
    return RiskBucket.HIGH


# ---------------------------------------------------------------------------
# Airline context
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AirlineIdentity:
    """Identity and static facts of the airline being scored."""

    code: str
    name: str
    jurisdiction: str
    active: bool = True
    fleet_size: int | None = None
    ticker: str | None = None


@dataclass(frozen=True, slots=True)
class JurisdictionInfo:
    """Country-level facts for the airline's jurisdiction.

    Attributes:
        region: Continental region, e.g. ``"Europe"`` or ``"Africa"``.
        subregion: Finer grouping, e.g. ``"Western Asia"``.
        population: Country population, informational only.
        gini: Income inequality index (0-100), used as a stability proxy.
    """

    region: str | None = None
    subregion: str | None = None
    population: int | None = None
    gini: float | None = None


@dataclass(frozen=True, slots=True)
class ActivityData:
    flights_last_24h: int | None = None


@dataclass(frozen=True, slots=True)
class FinancialFundamentals:
    """Latest annual fundamentals of a listed airline.

    Attributes:
        profit_margin: Net income over revenue, in percent.
        data_source: ``"api"`` for live provider data, ``"representative"``
            for the bundled reference profiles.
    """

    ticker: str
    company_name: str
    total_debt: float
    total_equity: float
    cash: float
    revenue: float
    net_income: float
    debt_to_equity: float
    profit_margin: float
    cash_to_debt: float
    currency: str = "USD"
    fiscal_year: str = "Unknown"
    data_source: str = "representative"

    @classmethod
    def from_statements(
        cls,
        ticker: str,
        company_name: str,
        *,
        total_debt: float,
        total_equity: float,
        cash: float,
        revenue: float,
        net_income: float,
        currency: str = "USD",
        fiscal_year: str = "Unknown",
        data_source: str = "api",
    ) -> FinancialFundamentals:
        """Derive the three ratios from raw balance sheet / income statement values."""
        debt_to_equity = total_debt / total_equity if total_equity > 0 else 0.0
        profit_margin = net_income / revenue * 100 if revenue > 0 else 0.0
        cash_to_debt = cash / total_debt if total_debt > 0 else 1.0
        return cls(
            ticker=ticker,
            company_name=company_name,
            total_debt=total_debt,
            total_equity=total_equity,
            cash=cash,
            revenue=revenue,
            net_income=net_income,
            debt_to_equity=debt_to_equity,
            profit_margin=profit_margin,
            cash_to_debt=cash_to_debt,
            currency=currency,
            fiscal_year=fiscal_year,
            data_source=data_source,
        )


@dataclass(frozen=True, slots=True)
class RiskContext:
    """Input bundle for scoring one airline.

    ``financial_data`` is empty on input; the aggregator fills it with the
    financial evaluator's metadata so later evaluators and downstream
    consumers can read it.
    """

    airline: AirlineIdentity
    jurisdiction_info: JurisdictionInfo | None = None
    activity: ActivityData | None = None
    fundamentals: FinancialFundamentals | None = None
    financial_data: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.financial_data is not None:
            object.__setattr__(self, "financial_data", _frozen(self.financial_data))


# ---------------------------------------------------------------------------
# Per-airline results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComponentScore:
    """One risk dimension's evaluation.

    Attributes:
        score: 0-100 risk, or ``None`` when the dimension is unavailable.
        confidence: Reliability of ``score``.
        metadata: Explanatory key/value pairs.
    """

    score: float | None
    confidence: Confidence
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", _frozen(self.metadata))

    @property
    def available(self) -> bool:
        return self.score is not None


@dataclass(frozen=True, slots=True)
class BreakdownEntry:
    dimension: str
    name: str
    score: float | None
    confidence: Confidence
    weight: float
    effective_weight: float


@dataclass(frozen=True, slots=True)
class RiskResultMetadata:
    missing_components: tuple[str, ...] = ()
    reweighted: bool = False
    failed_dimension: str | None = None


@dataclass(frozen=True, slots=True)
class RiskResult:
    """Aggregated risk assessment for a single airline.

    Attributes:
        overall_score: Weighted score in [0, 100], one decimal.
        risk_bucket: Classification of ``overall_score``.
        components: Evaluator key to its ``ComponentScore``.
        breakdown: One entry per enabled evaluator, in run order.
        context: Context as seen by the last evaluator (financial metadata
            back-filled).
        calculated_at: Timestamp of the calculation.
        expires_at: ``calculated_at`` plus the configured result lifetime.
        metadata: Missing components and reweighting flag.
        model_version: Version of the weight/threshold scheme used.

    Mappings inside a result (components, component metadata, back-filled
    financial data) are read-only.
    """

    overall_score: float
    risk_bucket: RiskBucket
    components: Mapping[str, ComponentScore]
    breakdown: tuple[BreakdownEntry, ...]
    context: RiskContext
    calculated_at: datetime
    expires_at: datetime
    metadata: RiskResultMetadata = field(default_factory=RiskResultMetadata)
    model_version: str = "2.0"

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", _frozen(self.components))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation; unavailable scores stay ``None``."""
        data = _plain(self)
        data["calculated_at"] = self.calculated_at.isoformat()
        data["expires_at"] = self.expires_at.isoformat()
        return data


# ---------------------------------------------------------------------------
# Portfolio inputs and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Exposure:
    """One lease exposure to a single airline, in a single currency."""

    airline_code: str
    airline_name: str
    exposure_amount: float
    currency: str
    aircraft_count: int | None = None


@dataclass(frozen=True, slots=True)
class ExposureRow:
    """An exposure joined with its airline's risk, as ranked in results."""

    airline_code: str
    airline_name: str
    exposure: float
    risk: float
    risk_bucket: RiskBucket
    aircraft_count: int | None = None


@dataclass(frozen=True, slots=True)
class BucketTotals:
    low: float = 0.0
    medium: float = 0.0
    high: float = 0.0


@dataclass(frozen=True, slots=True)
class CurrencyRiskResult:
    """Exposure-weighted risk for one currency group.

    Attributes:
        total_exposure: Sum of amounts, two decimals.
        base_risk: Exposure-weighted mean airline score, one decimal.
        adjusted_risk: ``base_risk`` plus concentration penalty, capped at 100.
        concentration_penalty: Points added for the largest single exposure.
        max_concentration: Largest single share of ``total_exposure``, three
            decimals.
        risk_bucket: Classification of ``adjusted_risk``.
        bucket_totals: Amounts split by each exposure's own bucket.
        rows: Exposures sorted by amount, largest first.
    """

    currency: str
    total_exposure: float
    base_risk: float
    adjusted_risk: float
    concentration_penalty: float
    max_concentration: float
    risk_bucket: RiskBucket
    bucket_totals: BucketTotals
    rows: tuple[ExposureRow, ...]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["rows"] = [asdict(row) for row in self.rows]
        return data


@dataclass(frozen=True, slots=True)
class PortfolioRiskResult:
    """Per-currency portfolio risk.  Currencies are never combined."""

    per_currency: Mapping[str, CurrencyRiskResult] = field(default_factory=dict)
    currencies: tuple[str, ...] = ()

    @property
    def is_multi_currency(self) -> bool:
        return len(self.currencies) > 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "currencies": list(self.currencies),
            "per_currency": {
                currency: result.to_dict()
                for currency, result in self.per_currency.items()
            },
        }


@dataclass(frozen=True, slots=True)
class TopExposure:
    airline_code: str
    airline_name: str
    exposure: float
    exposure_share: float  # percent of the currency total
    risk: float
    risk_bucket: RiskBucket


@dataclass(frozen=True, slots=True)
class ScenarioModification:
    """Hypothetical new amount for one airline's exposure."""

    airline_code: str
    new_exposure: float


@dataclass(frozen=True, slots=True)
class ScenarioResult(CurrencyRiskResult):
    top_exposures: tuple[TopExposure, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = CurrencyRiskResult.to_dict(self)
        data["top_exposures"] = [asdict(top) for top in self.top_exposures]
        return data
