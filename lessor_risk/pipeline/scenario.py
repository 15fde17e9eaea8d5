"""What-if analysis for a single currency group.

``calculate_scenario_risk`` re-runs the portfolio formula on an in-memory copy
of one currency's rows with at most one exposure amount changed.  Nothing is
persisted and the caller's rows are left untouched.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from lessor_risk.pipeline.portfolio_risk import currency_risk
from lessor_risk.pipeline.types import (
    CurrencyRiskResult,
    ExposureRow,
    RiskConfig,
    ScenarioModification,
    ScenarioResult,
    TopExposure,
)

logger = logging.getLogger(__name__)

TOP_EXPOSURE_LIMIT = 10


def _apply_modification(
    rows: Sequence[ExposureRow],
    modification: ScenarioModification | None,
) -> list[ExposureRow]:
    scenario_rows = list(rows)
    if modification is None:
        return scenario_rows

    for index, row in enumerate(scenario_rows):
        if row.airline_code == modification.airline_code:
            scenario_rows[index] = dataclasses.replace(
                row, exposure=modification.new_exposure,
            )
            return scenario_rows

    logger.debug(
        "Scenario override for %s ignored: airline not in portfolio",
        modification.airline_code,
    )
    return scenario_rows


def calculate_scenario_risk(
    rows: Sequence[ExposureRow],
    currency: str,
    modification: ScenarioModification | None = None,
    config: RiskConfig | None = None,
) -> ScenarioResult:
    """Preview a currency group's risk under a hypothetical exposure change.

    Args:
        rows: Current rows of the currency group.  Never mutated.
        currency: ISO code of the group.
        modification: New amount for one airline.  Unknown airline codes are
            ignored.  An amount of zero or less removes the exposure.
        config: Thresholds; defaults to ``RiskConfig()``.

    Returns:
        A ``ScenarioResult`` with the top ten exposures and their share of
        the total, in percent.
    """
    config = config or RiskConfig()
    scenario_rows = [
        row for row in _apply_modification(rows, modification) if row.exposure > 0
    ]
    base = currency_risk(currency, scenario_rows, config)

    total = sum(row.exposure for row in base.rows)
    top_exposures = tuple(
        TopExposure(
            airline_code=row.airline_code,
            airline_name=row.airline_name,
            exposure=row.exposure,
            exposure_share=round(row.exposure / total * 100, 1) if total > 0 else 0.0,
            risk=round(row.risk, 1),
            risk_bucket=row.risk_bucket,
        )
        for row in base.rows[:TOP_EXPOSURE_LIMIT]
    )

    return ScenarioResult(
        **{field.name: getattr(base, field.name) for field in dataclasses.fields(base)},
        top_exposures=top_exposures,
    )


def scenario_rows_from(result: CurrencyRiskResult) -> list[ExposureRow]:
    """Rows of a computed currency result, ready to feed a scenario."""
    return list(result.rows)
