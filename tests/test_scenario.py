from __future__ import annotations

import pytest

from lessor_risk.pipeline.portfolio_risk import PortfolioRiskCalculator
from lessor_risk.pipeline.scenario import calculate_scenario_risk, scenario_rows_from
from lessor_risk.pipeline.types import (
    Exposure,
    ExposureRow,
    RiskBucket,
    ScenarioModification,
)


@pytest.fixture
def rows(config) -> tuple[ExposureRow, ...]:
    calculator = PortfolioRiskCalculator(config)
    exposures = [
        Exposure("AAA", "Alpha Air", 600.0, "USD"),
        Exposure("BBB", "Bravo Air", 300.0, "USD"),
        Exposure("CCC", "Charlie Air", 100.0, "USD"),
    ]
    scores = {"AAA": 30.0, "BBB": 60.0, "CCC": 80.0}
    return calculator.calculate(exposures, scores.get).per_currency["USD"].rows


class TestScenario:
    def test_without_modification_matches_current_portfolio(self, rows, config) -> None:
        result = calculate_scenario_risk(rows, "USD", config=config)
        # (600*30 + 300*60 + 100*80) / 1000 = 44, share 0.6 -> +5
        assert result.base_risk == 44.0
        assert result.adjusted_risk == 49.0
        assert result.risk_bucket is RiskBucket.MEDIUM

    def test_changes_one_amount_without_touching_input(self, rows, config) -> None:
        before = list(rows)

        result = calculate_scenario_risk(
            rows, "USD", ScenarioModification("CCC", 600.0), config,
        )

        assert list(rows) == before
        assert all(a is b for a, b in zip(rows, before))
        assert result.total_exposure == 1500.0
        # AAA and CCC tie at 600; AAA came first
        assert [row.airline_code for row in result.rows] == ["AAA", "CCC", "BBB"]
        assert result.max_concentration == 0.4
        assert result.concentration_penalty == 0.0

    def test_zero_amount_removes_exposure(self, rows, config) -> None:
        result = calculate_scenario_risk(
            rows, "USD", ScenarioModification("AAA", 0.0), config,
        )
        assert [row.airline_code for row in result.rows] == ["BBB", "CCC"]
        assert result.total_exposure == 400.0
        # (300*60 + 100*80) / 400 = 65, share 0.75 -> +10
        assert result.base_risk == 65.0
        assert result.adjusted_risk == 75.0
        assert result.risk_bucket is RiskBucket.HIGH

    def test_unknown_airline_is_ignored(self, rows, config) -> None:
        baseline = calculate_scenario_risk(rows, "USD", config=config)
        result = calculate_scenario_risk(
            rows, "USD", ScenarioModification("ZZZ", 5_000.0), config,
        )
        assert result == baseline

    def test_removing_everything_gives_empty_group(self, config) -> None:
        single = (ExposureRow("AAA", "Alpha Air", 100.0, 30.0, RiskBucket.LOW),)
        result = calculate_scenario_risk(
            single, "EUR", ScenarioModification("AAA", -1.0), config,
        )
        assert result.rows == ()
        assert result.top_exposures == ()
        assert result.adjusted_risk == 0.0
        assert result.risk_bucket is RiskBucket.LOW

    def test_top_exposures_are_capped_at_ten(self, config) -> None:
        many = tuple(
            ExposureRow(f"A{index:02d}", f"Airline {index}", float(100 + index), 50.0, RiskBucket.MEDIUM)
            for index in range(12)
        )
        result = calculate_scenario_risk(many, "USD", config=config)

        assert len(result.rows) == 12
        assert len(result.top_exposures) == 10
        assert result.top_exposures[0].airline_code == "A11"

    def test_top_exposure_shares_are_percentages(self, rows, config) -> None:
        result = calculate_scenario_risk(rows, "USD", config=config)
        shares = [top.exposure_share for top in result.top_exposures]
        assert shares == [60.0, 30.0, 10.0]

    def test_to_dict_includes_top_exposures(self, rows, config) -> None:
        data = calculate_scenario_risk(rows, "USD", config=config).to_dict()
        assert data["currency"] == "USD"
        assert data["top_exposures"][0]["airline_code"] == "AAA"
        assert len(data["rows"]) == 3


def test_scenario_rows_from_result(rows, config) -> None:
    result = calculate_scenario_risk(rows, "USD", config=config)
    assert scenario_rows_from(result) == list(result.rows)
