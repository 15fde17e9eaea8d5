"""Time-bounded reuse of per-airline risk results.

``RiskSnapshotCache`` sits in front of the ``RiskAggregator``: a stored
result younger than the TTL is returned as-is, anything older is recomputed
and written back.  The aggregator itself knows nothing about caching.

Stores:
    InMemorySnapshotStore -- dict-backed, per process.
    SqlSnapshotStore      -- ``risk_snapshots`` table via SQLAlchemy async.

There is no cross-process coordination.  Two callers may recompute the same
airline at once; each write replaces the whole snapshot so the outcome is
the same either way.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lessor_risk.models.database import RiskSnapshot, async_session
from lessor_risk.pipeline.errors import EvaluatorFailure
from lessor_risk.pipeline.risk_aggregator import Clock, RiskAggregator
from lessor_risk.pipeline.types import (
    NEUTRAL_SCORE,
    ActivityData,
    AirlineIdentity,
    BreakdownEntry,
    ComponentScore,
    Confidence,
    FinancialFundamentals,
    JurisdictionInfo,
    RiskBucket,
    RiskContext,
    RiskResult,
    RiskResultMetadata,
)

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 6.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class SnapshotStore(ABC):
    """Keyed storage of the latest ``RiskResult`` per airline code."""

    @abstractmethod
    async def get(self, airline_code: str) -> RiskResult | None:
        """Return the stored result for ``airline_code`` or ``None``."""

    @abstractmethod
    async def put(self, airline_code: str, result: RiskResult) -> None:
        """Store ``result``, replacing any previous one."""


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self) -> None:
        self._snapshots: dict[str, RiskResult] = {}

    async def get(self, airline_code: str) -> RiskResult | None:
        return self._snapshots.get(airline_code)

    async def put(self, airline_code: str, result: RiskResult) -> None:
        self._snapshots[airline_code] = result


def result_to_row(airline_code: str, result: RiskResult) -> RiskSnapshot:
    """Flatten a ``RiskResult`` into a ``RiskSnapshot`` row."""
    data = result.to_dict()
    return RiskSnapshot(
        airline_code=airline_code,
        overall_score=result.overall_score,
        risk_bucket=result.risk_bucket.value,
        model_version=result.model_version,
        reweighted=result.metadata.reweighted,
        missing_components=list(result.metadata.missing_components),
        components=_jsonable(data["components"]),
        breakdown=_jsonable(data["breakdown"]),
        context=_jsonable(data["context"]),
        calculated_at=result.calculated_at,
        expires_at=result.expires_at,
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (Confidence, RiskBucket)):
        return value.value
    return value


def _context_from_json(data: Mapping[str, Any]) -> RiskContext:
    def optional(cls: type, key: str) -> Any:
        value = data.get(key)
        return cls(**value) if value is not None else None

    return RiskContext(
        airline=AirlineIdentity(**data["airline"]),
        jurisdiction_info=optional(JurisdictionInfo, "jurisdiction_info"),
        activity=optional(ActivityData, "activity"),
        fundamentals=optional(FinancialFundamentals, "fundamentals"),
        financial_data=data.get("financial_data"),
    )


def row_to_result(row: RiskSnapshot) -> RiskResult:
    """Rebuild a ``RiskResult`` from a stored ``RiskSnapshot`` row."""
    components = {
        key: ComponentScore(
            score=value["score"],
            confidence=Confidence(value["confidence"]),
            metadata=value.get("metadata") or {},
        )
        for key, value in row.components.items()
    }
    breakdown = tuple(
        BreakdownEntry(
            dimension=entry["dimension"],
            name=entry["name"],
            score=entry["score"],
            confidence=Confidence(entry["confidence"]),
            weight=entry["weight"],
            effective_weight=entry["effective_weight"],
        )
        for entry in row.breakdown
    )
    return RiskResult(
        overall_score=row.overall_score,
        risk_bucket=RiskBucket(row.risk_bucket),
        components=components,
        breakdown=breakdown,
        context=_context_from_json(row.context),
        calculated_at=_as_utc(row.calculated_at),
        expires_at=_as_utc(row.expires_at),
        metadata=RiskResultMetadata(
            missing_components=tuple(row.missing_components),
            reweighted=row.reweighted,
        ),
        model_version=row.model_version,
    )


class SqlSnapshotStore(SnapshotStore):
    """Snapshot store backed by the ``risk_snapshots`` table.

    Args:
        session_factory: Async session factory; defaults to the shared
            ``lessor_risk.models.database.async_session``.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.session_factory = session_factory or async_session

    async def get(self, airline_code: str) -> RiskResult | None:
        async with self.session_factory() as session:
            row = await session.get(RiskSnapshot, airline_code)
            return row_to_result(row) if row is not None else None

    async def put(self, airline_code: str, result: RiskResult) -> None:
        async with self.session_factory() as session:
            await session.merge(result_to_row(airline_code, result))
            await session.commit()
        logger.debug("Saved risk snapshot for %s", airline_code)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class RiskSnapshotCache:
    """Reuses stored results younger than ``ttl_hours``.

    Args:
        aggregator: Computes fresh results.
        store: Where results are kept; defaults to an in-memory store.
        ttl_hours: Maximum snapshot age before recomputation.
        clock: Current time source; injectable for tests.
        fallback_to_neutral: When ``True`` an ``EvaluatorFailure`` yields a
            neutral, unstored result instead of propagating.

    Usage::

        cache = RiskSnapshotCache(RiskAggregator(), SqlSnapshotStore())
        result = await cache.get_or_calculate(context)
    """

    def __init__(
        self,
        aggregator: RiskAggregator,
        store: SnapshotStore | None = None,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Clock = _utcnow,
        fallback_to_neutral: bool = False,
    ) -> None:
        self.aggregator = aggregator
        self.store = store or InMemorySnapshotStore()
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock
        self.fallback_to_neutral = fallback_to_neutral

    def is_fresh(self, result: RiskResult) -> bool:
        return self.clock() - result.calculated_at < self.ttl

    async def get_or_calculate(self, context: RiskContext) -> RiskResult:
        """Return a cached result if fresh, otherwise compute and store one.

        Raises:
            EvaluatorFailure: An evaluator failed and ``fallback_to_neutral``
                is off.
        """
        code = context.airline.code.upper()
        cached = await self.store.get(code)
        if cached is not None and self.is_fresh(cached):
            age = self.clock() - cached.calculated_at
            logger.info(
                "Using cached risk snapshot for %s (age: %dmin)",
                code,
                age.total_seconds() // 60,
            )
            return cached

        logger.info("Calculating fresh risk for %s", code)
        return await self._calculate_and_store(code, context)

    async def force_recalculate(self, context: RiskContext) -> RiskResult:
        """Bypass the cache, recompute and store."""
        return await self._calculate_and_store(context.airline.code.upper(), context)

    async def latest_score(self, airline_code: str) -> float | None:
        """Latest stored overall score regardless of age."""
        cached = await self.store.get(airline_code.upper())
        return cached.overall_score if cached is not None else None

    async def latest_scores(self, airline_codes: Iterable[str]) -> dict[str, float]:
        """Latest scores for many airlines, keyed by upper-cased code.

        Unscored airlines are omitted.

        The returned dict's ``get`` is a ready-made ``latest_score_lookup``
        for ``PortfolioRiskCalculator.calculate``.
        """
        scores: dict[str, float] = {}
        for code in airline_codes:
            code = code.upper()
            score = await self.latest_score(code)
            if score is not None:
                scores[code] = score
        return scores

    async def _calculate_and_store(self, code: str, context: RiskContext) -> RiskResult:
        try:
            result = await self.aggregator.aggregate(context)
        except EvaluatorFailure as exc:
            if not self.fallback_to_neutral:
                raise
            logger.warning(
                "Falling back to neutral risk for %s: %s failed", code, exc.dimension,
            )
            return self.neutral_result(context, exc.dimension)

        await self.store.put(code, result)
        return result

    def neutral_result(self, context: RiskContext, failed_dimension: str) -> RiskResult:
        """Neutral 50-point result explaining which evaluator failed."""
        config = self.aggregator.config
        calculated_at = self.clock()
        return RiskResult(
            overall_score=NEUTRAL_SCORE,
            risk_bucket=config.bucket_for(NEUTRAL_SCORE),
            components={},
            breakdown=(),
            context=context,
            calculated_at=calculated_at,
            expires_at=calculated_at + config.result_ttl,
            metadata=RiskResultMetadata(
                missing_components=tuple(
                    evaluator.display_name
                    for evaluator in self.aggregator.enabled_evaluators
                ),
                reweighted=False,
                failed_dimension=failed_dimension,
            ),
            model_version=config.version,
        )
