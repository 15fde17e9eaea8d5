"""Risk aggregation for the airline counterparty risk engine.

Runs every enabled evaluator against an airline context and combines their
component scores into one overall score.  Components that come back
unavailable (``None``) are dropped and the remaining weights are rescaled so
that they still sum to 1.0.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from lessor_risk.pipeline.errors import EvaluatorFailure
from lessor_risk.pipeline.evaluators import RiskFactorEvaluator, default_evaluators
from lessor_risk.pipeline.types import (
    FINANCIAL,
    NEUTRAL_SCORE,
    BreakdownEntry,
    ComponentScore,
    RiskConfig,
    RiskContext,
    RiskResult,
    RiskResultMetadata,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

WEIGHT_TOLERANCE = 1e-9


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RiskAggregator:
    """Combines evaluator outputs into a ``RiskResult``.

    The overall score is the weighted mean of the available components.  When
    some components are unavailable the result is flagged ``reweighted`` and
    each available breakdown entry carries its rescaled ``effective_weight``.
    An airline with no available component gets the neutral score of 50.

    Args:
        evaluators: Evaluators in run order.  Defaults to
            ``default_evaluators()``.  Evaluators whose key has no weight in
            ``config`` are skipped.
        config: Weight table and bucket thresholds.
        clock: Source of ``calculated_at``; injectable for tests.

    Usage::

        aggregator = RiskAggregator(config=RiskConfig())
        result = await aggregator.aggregate(context)
        print(result.overall_score, result.risk_bucket)
    """

    def __init__(
        self,
        evaluators: Sequence[RiskFactorEvaluator] | None = None,
        config: RiskConfig | None = None,
        clock: Clock = _utcnow,
    ) -> None:
        self.config = config or RiskConfig()
        self.evaluators: tuple[RiskFactorEvaluator, ...] = tuple(
            default_evaluators() if evaluators is None else evaluators
        )
        self.clock = clock

    @property
    def enabled_evaluators(self) -> tuple[RiskFactorEvaluator, ...]:
        return tuple(
            evaluator
            for evaluator in self.evaluators
            if self.config.weight_for(evaluator.key) is not None
        )

    async def _run(
        self,
        evaluator: RiskFactorEvaluator,
        context: RiskContext,
    ) -> ComponentScore:
        try:
            return await evaluator.evaluate(context)
        except Exception as exc:
            logger.error(
                "Evaluator %s raised for %s: %r", evaluator.key, context.airline.code, exc,
            )
            raise EvaluatorFailure(evaluator.key, exc) from exc

    async def aggregate(self, context: RiskContext) -> RiskResult:
        """Score one airline.

        Evaluators run sequentially in declaration order.  After the
        financial evaluator runs, its metadata is copied into a new context
        (``financial_data``) which is what later evaluators receive.

        Args:
            context: Airline context.  Never modified.

        Returns:
            A freshly built ``RiskResult``.

        Raises:
            EvaluatorFailure: An evaluator raised unexpectedly.  Not retried.
        """
        components: dict[str, ComponentScore] = {}
        evaluated: list[tuple[RiskFactorEvaluator, float, ComponentScore]] = []

        for evaluator in self.enabled_evaluators:
            weight = self.config.weights[evaluator.key]
            component = await self._run(evaluator, context)
            components[evaluator.key] = component
            evaluated.append((evaluator, weight, component))

            if evaluator.key == FINANCIAL and component.metadata:
                context = dataclasses.replace(
                    context, financial_data=dict(component.metadata),
                )

        available = [(w, c) for _, w, c in evaluated if c.score is not None]
        total_available_weight = sum(w for w, _ in available)

        if total_available_weight > 0:
            weighted_sum = sum(c.score * w for w, c in available)
            overall = weighted_sum / total_available_weight
        else:
            overall = NEUTRAL_SCORE

        # Float sums of the weight table can land a hair under 1.0.
        reweighted = 0 < total_available_weight < 1.0 - WEIGHT_TOLERANCE

        breakdown: list[BreakdownEntry] = []
        missing: list[str] = []
        for evaluator, weight, component in evaluated:
            if component.score is None:
                missing.append(evaluator.display_name)
                effective = 0.0
            elif reweighted:
                effective = weight / total_available_weight
            else:
                effective = weight
            breakdown.append(
                BreakdownEntry(
                    dimension=evaluator.key,
                    name=evaluator.display_name,
                    score=component.score,
                    confidence=component.confidence,
                    weight=weight,
                    effective_weight=effective,
                )
            )

        overall_score = round(overall, 1)
        risk_bucket = self.config.bucket_for(overall_score)
        calculated_at = self.clock()

        logger.info(
            "Risk for %s: %.1f (%s, reweighted=%s, missing=%s)",
            context.airline.code,
            overall_score,
            risk_bucket.value,
            reweighted,
            missing,
        )

        return RiskResult(
            overall_score=overall_score,
            risk_bucket=risk_bucket,
            components=components,
            breakdown=tuple(breakdown),
            context=context,
            calculated_at=calculated_at,
            expires_at=calculated_at + self.config.result_ttl,
            metadata=RiskResultMetadata(
                missing_components=tuple(missing),
                reweighted=reweighted,
            ),
            model_version=self.config.version,
        )
