"""Classification of uncached origins into estimate and provider tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.constants import PRELIMINARY_THRESHOLD_MILES
from distance.geodesic import estimate_miles, miles_to_meters
from distance.models import DistanceResult, DistanceSource, DistanceUpdate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from distance.models import Coordinates, Origin

logger = logging.getLogger(__name__)


@dataclass
class TierPlan:
    estimates: list[DistanceUpdate] = field(default_factory=list)
    provider_origins: list[Origin] = field(default_factory=list)
    no_coords: list[DistanceUpdate] = field(default_factory=list)

    @property
    def local_updates(self) -> list[DistanceUpdate]:
        """Results resolved without the provider."""
        return [*self.estimates, *self.no_coords]


def route_origins(
    uncached: Iterable[Origin],
    destination_coordinates: Coordinates | None,
    threshold_miles: float = PRELIMINARY_THRESHOLD_MILES,
) -> TierPlan:
    """
    Split uncached origins by how their distance will be resolved.

    Origins without coordinates are never sent to the provider. Origins
    farther than ``threshold_miles`` keep the great-circle estimate; the
    rest, boundary included, need a provider lookup. Without destination
    coordinates no estimate exists, so every locatable origin goes to the
    provider.
    """
    plan = TierPlan()
    if destination_coordinates is None:
        logger.warning("Destination has no coordinates; skipping estimate tier")

    for origin in uncached:
        if origin.coordinates is None:
            plan.no_coords.append(
                DistanceUpdate(
                    id=origin.id,
                    result=DistanceResult(
                        distance=None,
                        source=DistanceSource.NO_COORDS,
                    ),
                ),
            )
            continue

        miles = estimate_miles(origin.coordinates, destination_coordinates)
        if miles is not None and miles > threshold_miles:
            plan.estimates.append(
                DistanceUpdate(
                    id=origin.id,
                    result=DistanceResult(
                        distance=miles_to_meters(miles),
                        source=DistanceSource.PRELIMINARY,
                    ),
                ),
            )
        else:
            plan.provider_origins.append(origin)

    logger.debug(
        "Tier plan: %d preliminary, %d provider, %d without coordinates",
        len(plan.estimates),
        len(plan.provider_origins),
        len(plan.no_coords),
    )
    return plan
