import pytest
from pydantic import ValidationError

from distance.models import (
    CacheCheckResponse,
    Coordinates,
    DistancePhase,
    DistanceResult,
    DistanceSource,
    DistanceUpdate,
    Origin,
    PhaseEvent,
)


def test_coordinates_accept_lng_alias() -> None:
    coords = Coordinates.model_validate({"lat": "31.5", "lng": "-97.1"})

    assert coords.lat == 31.5
    assert coords.lon == -97.1


def test_coordinates_reject_out_of_range() -> None:
    with pytest.raises(ValidationError):
        Coordinates(lat=91, lon=0)


def test_origin_treats_empty_coordinates_as_missing() -> None:
    origin = Origin.model_validate({"id": "12", "coordinates": {}, "address": None})

    assert origin.id == 12
    assert origin.coordinates is None
    assert origin.address == ""
    assert origin.to_payload() == {"id": 12, "address": ""}


def test_distance_result_null_only_without_coordinates() -> None:
    DistanceResult(distance=None, source=DistanceSource.NO_COORDS)

    with pytest.raises(ValidationError):
        DistanceResult(distance=None, source=DistanceSource.PROVIDER)
    with pytest.raises(ValidationError):
        DistanceResult(distance=100.0, source=DistanceSource.NO_COORDS)
    with pytest.raises(ValidationError):
        DistanceResult(distance=-1.0, source=DistanceSource.CACHE)


def test_cache_response_accepts_empty_php_arrays() -> None:
    response = CacheCheckResponse.model_validate(
        {"cached": [], "uncached": [], "destination_coordinates": []},
    )

    assert response.cached == {}
    assert response.destination_coordinates is None
    assert response.total_origins == 0


def test_origin_treats_invalid_coordinates_as_missing() -> None:
    swapped = Origin.model_validate(
        {"id": 4, "coordinates": {"lat": -96.8, "lon": 32.7}},
    )
    junk = Origin.model_validate({"id": 5, "coordinates": {"lat": "n/a", "lon": 1}})

    assert swapped.coordinates is None
    assert junk.coordinates is None


def test_cache_response_keeps_distance_result_entries() -> None:
    response = CacheCheckResponse(
        cached={
            1: DistanceResult(distance=5000.0, source=DistanceSource.CACHE),
            2: DistanceResult(distance=800.0, source=DistanceSource.PROVIDER),
        },
        uncached=[Origin(id=3)],
    )

    assert response.cached[1].distance == 5000.0
    assert response.cached[2].source is DistanceSource.CACHE
    assert response.total_origins == 3


def test_cache_response_moves_entries_without_distance_to_uncached() -> None:
    response = CacheCheckResponse.model_validate(
        {
            "cached": {
                "3": {"distance": None, "source": "cache"},
                "4": {"distance": 900, "source": "cache"},
            },
            "uncached": [],
        },
    )

    assert list(response.cached) == [4]
    assert [origin.id for origin in response.uncached] == [3]
    assert response.uncached[0].coordinates is None
    assert response.total_origins == 2


def test_cache_response_rejects_duplicate_uncached_ids() -> None:
    with pytest.raises(ValidationError):
        CacheCheckResponse.model_validate(
            {
                "cached": {},
                "uncached": [
                    {"id": 1, "address": "a"},
                    {"id": 1, "address": "b"},
                ],
            },
        )


def test_phase_event_payload() -> None:
    event = PhaseEvent(
        phase=DistancePhase.PRELIMINARY,
        updates=(
            DistanceUpdate(
                id=4,
                result=DistanceResult(distance=None, source=DistanceSource.NO_COORDS),
            ),
        ),
    )

    assert event.to_payload() == {
        "type": "phase",
        "phase": "preliminary",
        "updates": [{"id": 4, "distance": None, "source": "no-coords-available"}],
    }
