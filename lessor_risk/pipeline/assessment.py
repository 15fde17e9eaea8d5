"""Portfolio assessment pipeline.

This module provides the ``PortfolioAssessment`` class that drives a lease
portfolio through the engine: score every lessee airline (reusing fresh
snapshots), then compute per-currency portfolio risk from the latest scores,
and optionally preview a what-if scenario.

Supported sources:
    - JSON portfolio files on disk (``load_portfolio``)
    - In-memory ``PortfolioFile`` objects (``PortfolioAssessment.assess``)
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lessor_risk.config import settings
from lessor_risk.pipeline.portfolio_risk import PortfolioRiskCalculator
from lessor_risk.pipeline.risk_aggregator import RiskAggregator
from lessor_risk.pipeline.scenario import calculate_scenario_risk, scenario_rows_from
from lessor_risk.pipeline.snapshot_cache import RiskSnapshotCache, SnapshotStore
from lessor_risk.pipeline.types import (
    PortfolioRiskResult,
    RiskConfig,
    RiskResult,
    ScenarioResult,
)
from lessor_risk.schemas.schemas import AirlineCreate, PortfolioFile, ScenarioRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssessmentSummary:
    """Outcome of one portfolio assessment run.

    Attributes:
        portfolio_name: Name from the portfolio file.
        airline_results: Airline code to its ``RiskResult``.
        portfolio: Per-currency portfolio risk.
        processing_time_seconds: Wall-clock duration of the run.
    """

    portfolio_name: str
    airline_results: Mapping[str, RiskResult]
    portfolio: PortfolioRiskResult
    processing_time_seconds: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "portfolio_name": self.portfolio_name,
            "airlines": {
                code: result.to_dict() for code, result in self.airline_results.items()
            },
            "portfolio": self.portfolio.to_dict(),
            "processing_time_seconds": self.processing_time_seconds,
        }


def load_portfolio(file_path: str | Path) -> PortfolioFile:
    """Read and validate a portfolio JSON file.

    Raises:
        pydantic.ValidationError: The file content is not a valid portfolio.
    """
    path = Path(file_path)
    logger.info("Loading portfolio from %s", path.resolve())
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    return PortfolioFile.model_validate(data)


class PortfolioAssessment:
    """End-to-end portfolio assessment.

    Args:
        cache: Snapshot cache in front of the aggregator.  Defaults to an
            in-memory cache using ``config``.
        calculator: Portfolio calculator.  Defaults to one using ``config``.
        config: Scoring configuration for the default cache and calculator.
            Defaults to the injected cache's config, else the environment
            settings.
        store: Snapshot store for the default cache.

    Attributes:
        assessed_count: Running total of airlines scored (cached or fresh).
    """

    def __init__(
        self,
        cache: RiskSnapshotCache | None = None,
        calculator: PortfolioRiskCalculator | None = None,
        config: RiskConfig | None = None,
        store: SnapshotStore | None = None,
    ) -> None:
        if config is None:
            config = (
                cache.aggregator.config
                if cache is not None
                else RiskConfig.from_settings(settings)
            )
        self.cache = cache or RiskSnapshotCache(
            RiskAggregator(config=config),
            store=store,
            ttl_hours=settings.SNAPSHOT_TTL_HOURS,
        )
        self.calculator = calculator or PortfolioRiskCalculator(config)
        self.assessed_count: int = 0

    async def assess_airlines(
        self,
        airlines: Iterable[AirlineCreate],
        force_refresh: bool = False,
    ) -> dict[str, RiskResult]:
        """Score each airline in turn.

        Args:
            airlines: Airlines to score.
            force_refresh: Ignore fresh snapshots and recompute.

        Returns:
            Airline code to ``RiskResult``, in input order.
        """
        results: dict[str, RiskResult] = {}
        for airline in airlines:
            context = airline.to_context()
            if force_refresh:
                result = await self.cache.force_recalculate(context)
            else:
                result = await self.cache.get_or_calculate(context)
            results[airline.code] = result
            self.assessed_count += 1
        return results

    async def assess(
        self,
        portfolio: PortfolioFile,
        force_refresh: bool = False,
    ) -> AssessmentSummary:
        """Score the portfolio's airlines and compute its per-currency risk."""
        logger.info(
            "Assessing portfolio %r: %d airline(s), %d exposure(s)",
            portfolio.name,
            len(portfolio.airlines),
            len(portfolio.exposures),
        )
        start_time = time.perf_counter()

        airline_results = await self.assess_airlines(portfolio.airlines, force_refresh)
        scores = {code: result.overall_score for code, result in airline_results.items()}
        portfolio_risk = self.calculator.calculate(portfolio.to_exposures(), scores.get)

        elapsed = time.perf_counter() - start_time
        logger.info(
            "Assessment of %r complete: currencies=%s in %.4fs",
            portfolio.name,
            list(portfolio_risk.currencies),
            elapsed,
        )
        return AssessmentSummary(
            portfolio_name=portfolio.name,
            airline_results=airline_results,
            portfolio=portfolio_risk,
            processing_time_seconds=round(elapsed, 4),
        )

    def simulate(
        self,
        summary: AssessmentSummary,
        request: ScenarioRequest,
    ) -> ScenarioResult:
        """Preview one currency group under a hypothetical exposure change.

        A currency absent from the portfolio simulates an empty group.
        """
        current = summary.portfolio.per_currency.get(request.currency)
        rows = scenario_rows_from(current) if current is not None else []
        return calculate_scenario_risk(
            rows,
            request.currency,
            request.to_modification(),
            self.calculator.config,
        )
