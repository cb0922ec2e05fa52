"""Great-circle distance estimates between origins and the destination."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from core.constants import METERS_PER_MILE

if TYPE_CHECKING:
    from distance.models import Coordinates

EARTH_RADIUS_M = 6371008.8


def haversine_meters(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Calculate the great-circle distance using the Haversine formula."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def estimate_miles(
    origin: Coordinates | None,
    destination: Coordinates | None,
) -> float | None:
    """
    Great-circle miles between two points, rounded to two decimals.

    Returns None when either point is missing.
    """
    if origin is None or destination is None:
        return None
    meters = haversine_meters(origin.lon, origin.lat, destination.lon, destination.lat)
    return round(meters / METERS_PER_MILE, 2)


def miles_to_meters(miles: float) -> int:
    return round(miles * METERS_PER_MILE)


def meters_to_display_miles(meters: float | None) -> int | None:
    """Whole miles shown to dispatchers for a distance in meters."""
    if meters is None:
        return None
    return round(meters / METERS_PER_MILE)
