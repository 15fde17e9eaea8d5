"""SQLAlchemy 2.0 async database layer for risk snapshots.

This module provides:

- ``Base``          — declarative base class shared by all ORM models.
- ``RiskSnapshot``  — latest ``RiskResult`` of one airline, one row per airline.
- ``build_engine``  — creates an ``AsyncEngine`` for a URL (WAL on SQLite files).
- ``engine``        — shared ``AsyncEngine`` built from ``settings.DATABASE_URL``.
- ``async_session`` — ``async_sessionmaker`` factory bound to ``engine``.
- ``create_tables`` — coroutine that issues ``CREATE TABLE IF NOT EXISTS``.

Each snapshot write overwrites the airline's row, so concurrent recomputation
of the same airline is harmless: the last writer wins with a complete result.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, String, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from lessor_risk.config import settings

# ---------------------------------------------------------------------------
# Engine & session factory
# ---------------------------------------------------------------------------


def _set_sqlite_wal(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ANN401
    """Enable WAL mode immediately after each new SQLite connection is created.

    WAL mode lets the CLI read snapshots while another process is writing
    freshly computed ones.

    Args:
        dbapi_connection: The raw DBAPI connection handed to the listener by
            SQLAlchemy's ``connect`` event.
        connection_record: Internal SQLAlchemy connection pool record
            (not used here but required by the event signature).
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.close()


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine, registering WAL mode for SQLite backends."""
    new_engine = create_async_engine(database_url, echo=False, future=True, **kwargs)
    if "sqlite" in database_url:
        event.listen(new_engine.sync_engine, "connect", _set_sqlite_wal)
    return new_engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


engine: AsyncEngine = build_engine(settings.DATABASE_URL)

async_session: async_sessionmaker[AsyncSession] = build_session_factory(engine)

# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


# ---------------------------------------------------------------------------
# ORM Models
# ---------------------------------------------------------------------------


class RiskSnapshot(Base):
    """ORM model for the ``risk_snapshots`` table.

    Stores the engine's ``RiskResult`` shape.  Component scores, breakdown
    and context are kept as JSON so the row can be turned back into a
    ``RiskResult`` without recomputation.
    """

    __tablename__ = "risk_snapshots"

    airline_code: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        doc="Upper-cased airline code (ICAO).",
    )
    overall_score: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        doc="Overall risk score in [0, 100], one decimal.",
    )
    risk_bucket: Mapped[str] = mapped_column(
        String,
        nullable=False,
        doc="Low, Medium or High.",
    )
    model_version: Mapped[str] = mapped_column(
        String,
        nullable=False,
        doc="Weight/threshold scheme the score was computed with.",
    )
    reweighted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="True when unavailable components were reweighted away.",
    )
    missing_components: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        doc="Display names of components with no score.",
    )
    components: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        doc="Evaluator key to {score, confidence, metadata}.",
    )
    breakdown: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        doc="Ordered list of breakdown entries.",
    )
    context: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        doc="Airline context as seen by the last evaluator.",
    )
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="When the result was computed.",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Lifetime stamped on the result.",
    )


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create all ORM-mapped tables if they do not already exist.

    Safe to call on every start-up because it is a no-op when tables exist.

    Args:
        bind: Engine to use; defaults to the module-level ``engine``.
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
