from distance.models import DistanceSource, Origin
from distance.tiering import route_origins
from tests.distance_fakes import DESTINATION, point_north


def _origin(origin_id: int, miles: float | None) -> Origin:
    coordinates = None if miles is None else point_north(miles)
    return Origin(id=origin_id, coordinates=coordinates, address=f"truck {origin_id}")


def test_route_origins_splits_by_threshold() -> None:
    plan = route_origins(
        [_origin(1, 250), _origin(2, 150), _origin(3, None), _origin(4, 200)],
        DESTINATION,
    )

    assert [update.id for update in plan.estimates] == [1]
    assert plan.estimates[0].result.source is DistanceSource.PRELIMINARY
    assert plan.estimates[0].result.distance == 402335
    assert [origin.id for origin in plan.provider_origins] == [2, 4]
    assert [update.id for update in plan.no_coords] == [3]
    assert plan.no_coords[0].result.distance is None
    assert [update.id for update in plan.local_updates] == [1, 3]


def test_route_origins_custom_threshold() -> None:
    plan = route_origins([_origin(1, 60), _origin(2, 40)], DESTINATION, 50)

    assert [update.id for update in plan.estimates] == [1]
    assert [origin.id for origin in plan.provider_origins] == [2]


def test_route_origins_without_destination_coordinates() -> None:
    plan = route_origins([_origin(1, 900), _origin(2, None)], None)

    assert plan.estimates == []
    assert [origin.id for origin in plan.provider_origins] == [1]
    assert [update.id for update in plan.no_coords] == [2]


def test_route_origins_empty() -> None:
    plan = route_origins([], DESTINATION)

    assert plan.local_updates == []
    assert plan.provider_origins == []
