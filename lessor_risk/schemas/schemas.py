"""Pydantic v2 schemas for portfolio input files.

This module defines the data transfer objects read by the assessment
pipeline and the CLI:

- ``JurisdictionInfoCreate`` — country facts supplied by a country adapter.
- ``AirlineCreate``          — one airline and everything known about it.
- ``ExposureCreate``         — one lease exposure (airline, amount, currency).
- ``PortfolioFile``          — a named portfolio: airlines plus exposures.
- ``ScenarioRequest``        — a what-if override for one exposure.

The DTOs validate raw input and convert themselves into the engine's frozen
dataclasses (``RiskContext``, ``Exposure``, ``ScenarioModification``).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from lessor_risk.pipeline.fundamentals import ticker_for_airline
from lessor_risk.pipeline.types import (
    ActivityData,
    AirlineIdentity,
    Exposure,
    JurisdictionInfo,
    RiskContext,
    ScenarioModification,
)


def _upper(value: str) -> str:
    return value.strip().upper()


class JurisdictionInfoCreate(BaseModel):
    """Country-level facts for an airline's jurisdiction.

    Attributes:
        region: Continental region, e.g. ``Europe``, ``Americas``, ``Africa``.
        subregion: Finer grouping, e.g. ``Western Europe``.
        population: Country population.  Informational only.
        gini: Income inequality index.  Raises jurisdiction confidence to
            ``HIGH`` when present.
    """

    region: str | None = Field(
        default=None,
        description="Continental region of the jurisdiction.",
    )
    subregion: str | None = Field(
        default=None,
        description="Sub-region of the jurisdiction.",
    )
    population: int | None = Field(
        default=None,
        description="Country population.",
    )
    gini: float | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Gini inequality index (0-100).",
    )


class AirlineCreate(BaseModel):
    """Schema for one airline in a portfolio file.

    Attributes:
        code: ICAO airline code, stored upper-case.
        name: Display name.
        jurisdiction: Country of registration.
        active: ``False`` for carriers that have ceased operations.
        fleet_size: Number of aircraft in service, if known.
        ticker: Market ticker.  When omitted it is looked up from the
            built-in airline/ticker table; unlisted carriers have none.
        jurisdiction_info: Country facts, if a country adapter supplied them.
        flights_last_24h: Observed flight count, if available.
    """

    code: str = Field(
        ...,
        min_length=2,
        description="ICAO airline code.",
    )
    name: str = Field(
        ...,
        description="Airline display name.",
    )
    jurisdiction: str = Field(
        ...,
        description="Country of registration.",
    )
    active: bool = Field(
        default=True,
        description="Whether the airline is currently operating.",
    )
    fleet_size: int | None = Field(
        default=None,
        ge=0,
        description="Number of aircraft in service.",
    )
    ticker: str | None = Field(
        default=None,
        description="Market ticker; looked up from the airline code when omitted.",
    )
    jurisdiction_info: JurisdictionInfoCreate | None = Field(
        default=None,
        description="Country facts for the jurisdiction.",
    )
    flights_last_24h: int | None = Field(
        default=None,
        ge=0,
        description="Flights observed in the last 24 hours.",
    )

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return _upper(value)

    def to_context(self) -> RiskContext:
        """Build the engine's ``RiskContext`` for this airline."""
        info = self.jurisdiction_info
        return RiskContext(
            airline=AirlineIdentity(
                code=self.code,
                name=self.name,
                jurisdiction=self.jurisdiction,
                active=self.active,
                fleet_size=self.fleet_size,
                ticker=self.ticker or ticker_for_airline(self.code),
            ),
            jurisdiction_info=(
                JurisdictionInfo(**info.model_dump()) if info is not None else None
            ),
            activity=(
                ActivityData(flights_last_24h=self.flights_last_24h)
                if self.flights_last_24h is not None
                else None
            ),
        )


class ExposureCreate(BaseModel):
    """Schema for one lease exposure.

    Attributes:
        airline_code: Code of an airline listed in the same file.
        exposure_amount: Outstanding exposure, strictly positive.
        currency: ISO 4217 code.  Exposures are never converted.
        aircraft_count: Number of leased aircraft.
        notes: Free text.
    """

    airline_code: str = Field(
        ...,
        description="ICAO code of the lessee airline.",
    )
    exposure_amount: float = Field(
        ...,
        gt=0,
        description="Exposure amount in ``currency``.  Must be positive.",
    )
    currency: str = Field(
        default="USD",
        pattern=r"^[A-Z]{3}$",
        description="ISO 4217 currency code.",
    )
    aircraft_count: int | None = Field(
        default=None,
        ge=0,
        description="Number of aircraft on lease.",
    )
    notes: str | None = Field(
        default=None,
        description="Free-text notes.",
    )

    @field_validator("airline_code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return _upper(value)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return _upper(value) if isinstance(value, str) else value

    def to_exposure(self, airline_name: str) -> Exposure:
        return Exposure(
            airline_code=self.airline_code,
            airline_name=airline_name,
            exposure_amount=self.exposure_amount,
            currency=self.currency,
            aircraft_count=self.aircraft_count,
        )


class PortfolioFile(BaseModel):
    """A lease portfolio as stored on disk.

    Each airline may appear in at most one exposure, and every exposure must
    reference an airline listed in ``airlines``.
    """

    name: str = Field(
        ...,
        description="Portfolio name.",
    )
    description: str | None = Field(
        default=None,
        description="Free-text description.",
    )
    airlines: list[AirlineCreate] = Field(
        default_factory=list,
        description="Airlines referenced by the exposures.",
    )
    exposures: list[ExposureCreate] = Field(
        default_factory=list,
        description="Lease exposures.",
    )

    @model_validator(mode="after")
    def check_references(self) -> PortfolioFile:
        known = {airline.code for airline in self.airlines}
        seen: set[str] = set()
        for exposure in self.exposures:
            if exposure.airline_code not in known:
                raise ValueError(f"Exposure references unknown airline {exposure.airline_code}")
            if exposure.airline_code in seen:
                raise ValueError(f"Duplicate exposure for airline {exposure.airline_code}")
            seen.add(exposure.airline_code)
        return self

    def to_exposures(self) -> list[Exposure]:
        names = {airline.code: airline.name for airline in self.airlines}
        return [
            exposure.to_exposure(names[exposure.airline_code])
            for exposure in self.exposures
        ]


class ScenarioRequest(BaseModel):
    """What-if override: set one airline's exposure in one currency."""

    currency: str = Field(
        ...,
        pattern=r"^[A-Z]{3}$",
        description="Currency group to simulate.",
    )
    airline_code: str = Field(
        ...,
        description="Airline whose exposure is overridden.",
    )
    new_exposure: float = Field(
        ...,
        description="Hypothetical amount.  Zero or less removes the exposure.",
    )

    @field_validator("airline_code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return _upper(value)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        return _upper(value) if isinstance(value, str) else value

    def to_modification(self) -> ScenarioModification:
        return ScenarioModification(
            airline_code=self.airline_code,
            new_exposure=self.new_exposure,
        )
