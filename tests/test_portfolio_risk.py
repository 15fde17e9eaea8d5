from __future__ import annotations

import logging

import pytest

from lessor_risk.pipeline.portfolio_risk import PortfolioRiskCalculator, currency_risk
from lessor_risk.pipeline.types import Exposure, RiskBucket, RiskConfig


def _exposure(code: str, amount: float, currency: str = "USD") -> Exposure:
    return Exposure(
        airline_code=code,
        airline_name=f"{code} Airlines",
        exposure_amount=amount,
        currency=currency,
    )


@pytest.fixture
def calculator(config: RiskConfig) -> PortfolioRiskCalculator:
    return PortfolioRiskCalculator(config)


class TestPortfolioRiskCalculator:
    def test_concentrated_portfolio_gets_high_penalty(self, calculator) -> None:
        scores = {"AAA": 50.0, "BBB": 50.0}
        result = calculator.calculate(
            [_exposure("AAA", 800_000), _exposure("BBB", 200_000)], scores.get,
        )

        usd = result.per_currency["USD"]
        assert usd.total_exposure == 1_000_000
        assert usd.base_risk == 50.0
        assert usd.max_concentration == 0.8
        assert usd.concentration_penalty == 10.0
        assert usd.adjusted_risk == 60.0
        assert usd.risk_bucket is RiskBucket.MEDIUM

    def test_adjusted_risk_is_capped(self, calculator) -> None:
        result = calculator.calculate(
            [_exposure("AAA", 900), _exposure("BBB", 100)], {"AAA": 95.0, "BBB": 95.0}.get,
        )
        usd = result.per_currency["USD"]
        assert usd.adjusted_risk == 100.0
        assert usd.risk_bucket is RiskBucket.HIGH

    def test_unscored_airline_counts_as_neutral(self, calculator, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            result = calculator.calculate(
                [_exposure("AAA", 500), _exposure("NEW", 500)], {"AAA": 30.0}.get,
            )

        usd = result.per_currency["USD"]
        assert usd.base_risk == 40.0
        new_row = next(row for row in usd.rows if row.airline_code == "NEW")
        assert new_row.risk == 50.0
        assert "No risk score on file for NEW" in caplog.text

    def test_currencies_are_never_combined(self, calculator) -> None:
        scores = {"AAA": 20.0, "BBB": 80.0, "CCC": 60.0}
        result = calculator.calculate(
            [
                _exposure("AAA", 300, "USD"),
                _exposure("BBB", 100, "EUR"),
                _exposure("CCC", 100, "USD"),
            ],
            scores.get,
        )

        assert result.currencies == ("EUR", "USD")
        assert result.is_multi_currency
        assert result.per_currency["EUR"].total_exposure == 100
        assert result.per_currency["EUR"].base_risk == 80.0
        assert result.per_currency["USD"].total_exposure == 400
        # (300*20 + 100*60) / 400
        assert result.per_currency["USD"].base_risk == 30.0

    def test_rows_ranked_by_amount_with_stable_ties(self, calculator) -> None:
        exposures = [
            _exposure("AAA", 100),
            _exposure("BBB", 300),
            _exposure("CCC", 100),
            _exposure("DDD", 200),
        ]
        result = calculator.calculate(exposures, {}.get)
        codes = [row.airline_code for row in result.per_currency["USD"].rows]
        assert codes == ["BBB", "DDD", "AAA", "CCC"]

    def test_bucket_totals_use_each_airline_bucket(self, calculator) -> None:
        scores = {"LOW": 30.0, "MID": 60.0, "HIGH": 80.0}
        result = calculator.calculate(
            [_exposure("LOW", 100), _exposure("MID", 250), _exposure("HIGH", 150)],
            scores.get,
        )
        totals = result.per_currency["USD"].bucket_totals
        assert (totals.low, totals.medium, totals.high) == (100, 250, 150)

    def test_empty_portfolio(self, calculator) -> None:
        result = calculator.calculate([], {}.get)
        assert result.per_currency == {}
        assert result.currencies == ()
        assert not result.is_multi_currency

    @pytest.mark.parametrize("amount", [0.0, -10.0])
    def test_rejects_non_positive_amounts(self, calculator, amount) -> None:
        with pytest.raises(ValueError):
            calculator.calculate([_exposure("AAA", amount)], {}.get)

    def test_to_dict_keeps_currencies_apart(self, calculator) -> None:
        result = calculator.calculate(
            [_exposure("AAA", 10, "USD"), _exposure("BBB", 10, "GBP")], {}.get,
        )
        data = result.to_dict()
        assert data["currencies"] == ["GBP", "USD"]
        assert data["per_currency"]["GBP"]["rows"][0]["airline_code"] == "BBB"


class TestConcentrationPenalty:
    @pytest.mark.parametrize(
        ("share", "penalty"),
        [(0.3, 0.0), (0.5, 0.0), (0.50001, 5.0), (0.7, 5.0), (0.70001, 10.0), (1.0, 10.0)],
    )
    def test_bands_have_exclusive_lower_bounds(self, config, share, penalty) -> None:
        assert config.concentration_penalty(share) == penalty

    def test_exactly_half_share_adds_nothing(self, calculator) -> None:
        result = calculator.calculate(
            [_exposure("AAA", 500), _exposure("BBB", 500)], {"AAA": 40.0, "BBB": 40.0}.get,
        )
        usd = result.per_currency["USD"]
        assert usd.max_concentration == 0.5
        assert usd.concentration_penalty == 0.0
        assert usd.adjusted_risk == 40.0

    def test_seventy_percent_share_adds_medium_penalty(self, calculator) -> None:
        result = calculator.calculate(
            [_exposure("AAA", 700), _exposure("BBB", 300)], {"AAA": 40.0, "BBB": 40.0}.get,
        )
        assert result.per_currency["USD"].concentration_penalty == 5.0

    def test_injected_bands(self) -> None:
        config = RiskConfig(
            concentration_medium_threshold=0.2,
            concentration_high_threshold=0.4,
            concentration_medium_penalty=2.0,
            concentration_high_penalty=4.0,
        )
        assert config.concentration_penalty(0.3) == 2.0
        assert config.concentration_penalty(0.45) == 4.0


def test_currency_risk_of_no_rows(config) -> None:
    result = currency_risk("JPY", [], config)
    assert result.total_exposure == 0.0
    assert result.adjusted_risk == 0.0
    assert result.risk_bucket is RiskBucket.LOW
    assert result.rows == ()
