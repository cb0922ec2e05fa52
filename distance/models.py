"""Data models for the distance resolution pipeline.

All distances are meters. Models are created fresh for each run and are
never persisted by this process.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)


class DistanceSource(str, Enum):
    """Where a distance value came from."""

    CACHE = "cache"
    PRELIMINARY = "preliminary"
    PROVIDER = "provider"
    NO_COORDS = "no-coords-available"


class DistancePhase(str, Enum):
    """Pipeline tiers, in delivery order."""

    CACHE = "cache"
    PRELIMINARY = "preliminary"
    PROVIDER = "provider"


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def _accept_lng(cls, data: Any) -> Any:
        if isinstance(data, dict) and "lon" not in data and "lng" in data:
            data = {**data, "lon": data["lng"]}
        return data


def _coordinates_or_none(value: Any, label: str) -> Coordinates | None:
    """Parse stored coordinates, treating unusable values as absent."""
    if value is None or isinstance(value, Coordinates):
        return value
    if value is False or (isinstance(value, (dict, list, str)) and not value):
        return None
    try:
        return Coordinates.model_validate(value)
    except ValidationError:
        logger.warning("Ignoring invalid coordinates for %s: %r", label, value)
        return None


class Origin(BaseModel):
    """One truck's last known position."""

    model_config = ConfigDict(frozen=True)

    id: int
    coordinates: Coordinates | None = None
    address: str = ""

    @field_validator("coordinates", mode="before")
    @classmethod
    def _empty_coordinates(cls, value: Any, info: ValidationInfo) -> Any:
        # Bad stored positions (swapped lat/lon, junk strings) count as missing.
        return _coordinates_or_none(value, f"origin {info.data.get('id')}")

    @field_validator("address", mode="before")
    @classmethod
    def _none_address(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "address": self.address}
        if self.coordinates is not None:
            payload["coordinates"] = {
                "lat": self.coordinates.lat,
                "lon": self.coordinates.lon,
            }
        return payload


class DistanceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance: float | None = None
    source: DistanceSource

    @model_validator(mode="after")
    def _distance_matches_source(self) -> DistanceResult:
        if (self.distance is None) != (self.source is DistanceSource.NO_COORDS):
            msg = (
                "distance must be null exactly when source is "
                f"'{DistanceSource.NO_COORDS.value}' (got {self.distance!r}, "
                f"{self.source.value!r})"
            )
            raise ValueError(msg)
        if self.distance is not None and self.distance < 0:
            msg = "distance must not be negative"
            raise ValueError(msg)
        return self


class DistanceUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    result: DistanceResult

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "distance": self.result.distance,
            "source": self.result.source.value,
        }


class PhaseEvent(BaseModel):
    """Results resolved by one tier; carries only that tier's ids."""

    model_config = ConfigDict(frozen=True)

    phase: DistancePhase
    updates: tuple[DistanceUpdate, ...]

    @property
    def ids(self) -> list[int]:
        return [update.id for update in self.updates]

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "phase",
            "phase": self.phase.value,
            "updates": [update.to_payload() for update in self.updates],
        }


class CacheCheckResponse(BaseModel):
    """Backend partition of all origins into cached and uncached."""

    cached: dict[int, DistanceResult] = Field(default_factory=dict)
    uncached: list[Origin] = Field(default_factory=list)
    destination_coordinates: Coordinates | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_cached(cls, data: Any) -> Any:
        """
        Re-tag cached entries as cache hits.

        A cached entry without a distance cannot be reported as a hit, so
        its id moves to ``uncached`` as an origin without coordinates and
        the partition stays complete.
        """
        if not isinstance(data, dict):
            return data
        cached = data.get("cached")
        uncached = data.get("uncached")
        # An empty PHP array serialises as [] rather than {}.
        if cached is None or cached == []:
            cached = {}
        if uncached is None:
            uncached = []
        if not isinstance(cached, dict) or not isinstance(uncached, (list, tuple)):
            return {**data, "cached": cached, "uncached": uncached}

        normalized: dict[Any, Any] = {}
        demoted: list[dict[str, Any]] = []
        for key, entry in cached.items():
            if isinstance(entry, DistanceResult):
                distance = entry.distance
            elif isinstance(entry, dict):
                distance = entry.get("distance")
            else:
                normalized[key] = entry
                continue
            if distance is None:
                logger.warning(
                    "Cached entry %s has no distance; treating as uncached",
                    key,
                )
                demoted.append({"id": key, "coordinates": None})
                continue
            normalized[key] = {"distance": distance, "source": DistanceSource.CACHE}
        return {**data, "cached": normalized, "uncached": [*uncached, *demoted]}

    @field_validator("destination_coordinates", mode="before")
    @classmethod
    def _empty_destination(cls, value: Any) -> Any:
        return _coordinates_or_none(value, "destination")

    @model_validator(mode="after")
    def _check_partition(self) -> CacheCheckResponse:
        uncached_ids = [origin.id for origin in self.uncached]
        if len(uncached_ids) != len(set(uncached_ids)):
            msg = "uncached origins contain duplicate ids"
            raise ValueError(msg)
        overlap = set(self.cached) & set(uncached_ids)
        if overlap:
            msg = f"ids present in both cached and uncached: {sorted(overlap)}"
            raise ValueError(msg)
        return self

    @property
    def total_origins(self) -> int:
        return len(self.cached) + len(self.uncached)


class DistanceStats(BaseModel):
    destination: str
    total_drivers: int = 0
    cache_hits: int = 0
    preliminary_calculations: int = 0
    provider_requests: int = 0
