import pytest

from distance.geodesic import (
    estimate_miles,
    meters_to_display_miles,
    miles_to_meters,
)
from distance.models import Coordinates
from tests.distance_fakes import DESTINATION, point_north


def test_estimate_miles_is_rounded_to_two_decimals() -> None:
    assert estimate_miles(point_north(123.456), DESTINATION) == 123.46


def test_estimate_miles_is_symmetric() -> None:
    dallas = Coordinates(lat=32.7767, lon=-96.797)
    houston = Coordinates(lat=29.7604, lon=-95.3698)

    there = estimate_miles(dallas, houston)

    assert there == estimate_miles(houston, dallas)
    assert there == pytest.approx(225, abs=3)


def test_estimate_miles_same_point_is_zero() -> None:
    assert estimate_miles(DESTINATION, DESTINATION) == 0.0


@pytest.mark.parametrize(
    ("origin", "destination"),
    [(None, DESTINATION), (DESTINATION, None), (None, None)],
)
def test_estimate_miles_requires_both_points(origin, destination) -> None:
    assert estimate_miles(origin, destination) is None


def test_unit_conversions() -> None:
    assert miles_to_meters(250) == 402335
    assert meters_to_display_miles(402335) == 250
    assert meters_to_display_miles(3862.0) == 2
    assert meters_to_display_miles(None) is None
