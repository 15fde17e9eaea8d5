from __future__ import annotations

import json

import pytest

from lessor_risk.pipeline.assessment import PortfolioAssessment, load_portfolio
from lessor_risk.pipeline.risk_aggregator import RiskAggregator
from lessor_risk.pipeline.snapshot_cache import RiskSnapshotCache
from lessor_risk.pipeline.types import RiskBucket, RiskConfig
from lessor_risk.schemas.schemas import ScenarioRequest

PORTFOLIO = {
    "name": "Two Carrier Book",
    "airlines": [
        {
            "code": "AAL",
            "name": "American Airlines",
            "jurisdiction": "United States",
            "fleet_size": 950,
            "jurisdiction_info": {"region": "Americas", "gini": 45.0},
        },
        {"code": "XPR", "name": "Private Air", "jurisdiction": "Nowhere"},
        {"code": "DLH", "name": "Lufthansa", "jurisdiction": "Germany", "fleet_size": 280},
    ],
    "exposures": [
        {"airline_code": "AAL", "exposure_amount": 800.0, "currency": "USD"},
        {"airline_code": "XPR", "exposure_amount": 200.0, "currency": "USD"},
        {"airline_code": "DLH", "exposure_amount": 500.0, "currency": "EUR"},
    ],
}


@pytest.fixture
def portfolio_file(tmp_path):
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps(PORTFOLIO), encoding="utf-8")
    return path


@pytest.fixture
def assessment(config, clock) -> PortfolioAssessment:
    cache = RiskSnapshotCache(RiskAggregator(config=config, clock=clock), clock=clock)
    return PortfolioAssessment(cache=cache, config=config)


class TestPortfolioAssessment:
    async def test_assess_scores_airlines_and_currencies(self, assessment, portfolio_file) -> None:
        summary = await assessment.assess(load_portfolio(portfolio_file))

        assert list(summary.airline_results) == ["AAL", "XPR", "DLH"]
        assert summary.airline_results["AAL"].overall_score == pytest.approx(42.0)
        assert summary.airline_results["XPR"].overall_score == 50.0
        assert summary.portfolio.currencies == ("EUR", "USD")

        usd = summary.portfolio.per_currency["USD"]
        # (800*42 + 200*50) / 1000 = 43.6, share 0.8 -> +10
        assert usd.base_risk == pytest.approx(43.6)
        assert usd.adjusted_risk == pytest.approx(53.6)
        assert usd.risk_bucket is RiskBucket.MEDIUM
        assert summary.processing_time_seconds >= 0

    async def test_second_run_reuses_snapshots(self, assessment, portfolio_file) -> None:
        portfolio = load_portfolio(portfolio_file)
        first = await assessment.assess(portfolio)
        second = await assessment.assess(portfolio)

        assert assessment.assessed_count == 6
        assert second.airline_results["AAL"] is first.airline_results["AAL"]

    async def test_force_refresh_recomputes(self, assessment, portfolio_file, clock) -> None:
        portfolio = load_portfolio(portfolio_file)
        first = await assessment.assess(portfolio)
        clock.advance(minutes=5)
        second = await assessment.assess(portfolio, force_refresh=True)

        assert second.airline_results["AAL"] is not first.airline_results["AAL"]
        assert second.airline_results["AAL"].calculated_at > first.airline_results["AAL"].calculated_at

    async def test_simulate_removing_dominant_exposure(self, assessment, portfolio_file) -> None:
        summary = await assessment.assess(load_portfolio(portfolio_file))

        scenario = assessment.simulate(
            summary, ScenarioRequest(currency="USD", airline_code="AAL", new_exposure=0),
        )

        assert [row.airline_code for row in scenario.rows] == ["XPR"]
        assert scenario.base_risk == 50.0
        assert scenario.adjusted_risk == 60.0
        # the assessed portfolio itself is unchanged
        assert len(summary.portfolio.per_currency["USD"].rows) == 2

    async def test_simulate_unknown_currency(self, assessment, portfolio_file) -> None:
        summary = await assessment.assess(load_portfolio(portfolio_file))
        scenario = assessment.simulate(
            summary, ScenarioRequest(currency="JPY", airline_code="AAL", new_exposure=10),
        )
        assert scenario.rows == ()
        assert scenario.total_exposure == 0.0

    async def test_summary_serialises(self, assessment, portfolio_file) -> None:
        summary = await assessment.assess(load_portfolio(portfolio_file))
        data = json.loads(json.dumps(summary.to_dict(), default=str))
        assert data["portfolio_name"] == "Two Carrier Book"
        assert set(data["portfolio"]["per_currency"]) == {"EUR", "USD"}

    async def test_default_calculator_uses_cache_config(self, clock, portfolio_file) -> None:
        strict = RiskConfig(low_max=20.0, medium_max=45.0)
        cache = RiskSnapshotCache(RiskAggregator(config=strict, clock=clock), clock=clock)
        assessment = PortfolioAssessment(cache=cache)

        assert assessment.calculator.config is strict
        summary = await assessment.assess(load_portfolio(portfolio_file))

        usd = summary.portfolio.per_currency["USD"]
        assert usd.adjusted_risk == pytest.approx(53.6)
        assert usd.risk_bucket is RiskBucket.HIGH
        rows = {row.airline_code: row.risk_bucket for row in usd.rows}
        assert rows == {"AAL": RiskBucket.MEDIUM, "XPR": RiskBucket.HIGH}


def test_load_portfolio_rejects_bad_file(tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"name": "Bad", "exposures": [
        {"airline_code": "AAL", "exposure_amount": 1, "currency": "USD"},
    ]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_portfolio(path)
