"""Shared fixtures for the risk engine tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from lessor_risk.pipeline.risk_aggregator import RiskAggregator
from lessor_risk.pipeline.types import (
    AirlineIdentity,
    ComponentScore,
    Confidence,
    JurisdictionInfo,
    RiskConfig,
    RiskContext,
)

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    """Clock whose current time only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class StaticEvaluator:
    """Evaluator returning a fixed score and counting its calls."""

    def __init__(self, key: str, score: float | None, display_name: str | None = None) -> None:
        self.key = key
        self.display_name = display_name or key.title()
        self.score = score
        self.calls = 0

    async def evaluate(self, context: RiskContext) -> ComponentScore:
        self.calls += 1
        return ComponentScore(score=self.score, confidence=Confidence.HIGH)


class ExplodingEvaluator:
    key = "scale"
    display_name = "Scale & Network Strength"

    async def evaluate(self, context: RiskContext) -> ComponentScore:
        raise RuntimeError("upstream timeout")


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def config() -> RiskConfig:
    return RiskConfig()


@pytest.fixture
def aggregator(config: RiskConfig, clock: MutableClock) -> RiskAggregator:
    return RiskAggregator(config=config, clock=clock)


@pytest.fixture
def make_context() -> Callable[..., RiskContext]:
    """Factory for airline contexts; every field is optional."""

    def _make(
        code: str = "TST",
        *,
        name: str = "Test Air",
        jurisdiction: str = "Testland",
        active: bool = True,
        fleet_size: int | None = None,
        ticker: str | None = None,
        region: str | None = None,
        gini: float | None = None,
        with_jurisdiction_info: bool | None = None,
    ) -> RiskContext:
        if with_jurisdiction_info is None:
            with_jurisdiction_info = region is not None or gini is not None
        return RiskContext(
            airline=AirlineIdentity(
                code=code,
                name=name,
                jurisdiction=jurisdiction,
                active=active,
                fleet_size=fleet_size,
                ticker=ticker,
            ),
            jurisdiction_info=(
                JurisdictionInfo(region=region, gini=gini) if with_jurisdiction_info else None
            ),
        )

    return _make


@pytest.fixture
def aal_context(make_context: Callable[..., RiskContext]) -> RiskContext:
    """American Airlines with full data: Americas, Gini 45, 950 aircraft."""
    return make_context(
        "AAL",
        name="American Airlines",
        jurisdiction="United States",
        fleet_size=950,
        ticker="AAL",
        region="Americas",
        gini=45.0,
    )
