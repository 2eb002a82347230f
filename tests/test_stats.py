from types import SimpleNamespace

import pytest

from ecolibres.models import ActivityType
from ecolibres.schemas import CompletedRouteIn
from ecolibres.stats import (
    MAX_LEVEL_NAME,
    calculate_level,
    calculate_next_level,
    most_common_activity,
    route_statistics,
)
from ecolibres.store import build_completed_route


def _route(place_id, distance=None, duration=None, activity=None):
    return build_completed_route(
        CompletedRouteIn(
            place_id=place_id,
            place_name=place_id.title(),
            distance_km=distance,
            duration_min=duration,
            activity_type=activity,
        )
    )


def test_route_statistics_totals():
    routes = [
        _route("cascada", distance=3, duration=10),
        _route("paramo", distance=5, duration=20),
        _route("cascada", distance=0, duration=30),
    ]

    stats = route_statistics(routes)

    assert stats.total_routes == 3
    assert stats.unique_places == 2
    assert stats.total_distance == 8
    assert stats.total_duration == 60
    assert stats.most_common_activity is ActivityType.HIKING
    assert stats.last_route is routes[-1]


def test_route_statistics_treats_missing_numbers_as_zero():
    routes = [
        SimpleNamespace(place_id="a", distance_km=None, duration_min=None, activity_type=None),
        SimpleNamespace(place_id="b", distance_km=2.5, duration_min=None, activity_type="swimming"),
    ]

    stats = route_statistics(routes)

    assert stats.total_distance == 2.5
    assert stats.total_duration == 0
    assert stats.unique_places == 2


def test_route_statistics_empty_history():
    stats = route_statistics([])

    assert stats.total_routes == 0
    assert stats.unique_places == 0
    assert stats.total_distance == 0
    assert stats.total_duration == 0
    assert stats.most_common_activity is ActivityType.HIKING
    assert stats.last_route is None


def test_most_common_activity_picks_highest_count():
    routes = [
        _route("a", activity="photography"),
        _route("b", activity="swimming"),
        _route("c", activity="swimming"),
        _route("d"),
    ]
    assert most_common_activity(routes) is ActivityType.SWIMMING


def test_most_common_activity_tie_goes_to_first_seen():
    routes = [
        _route("a", activity="camping"),
        _route("b", activity="photography"),
        _route("c", activity="photography"),
        _route("d", activity="camping"),
    ]
    assert most_common_activity(routes) is ActivityType.CAMPING
    assert most_common_activity(list(reversed(routes))) is ActivityType.CAMPING
    assert most_common_activity(routes[1:]) is ActivityType.PHOTOGRAPHY


def test_most_common_activity_counts_missing_type_as_hiking():
    routes = [
        SimpleNamespace(activity_type=None),
        SimpleNamespace(activity_type=""),
        SimpleNamespace(activity_type="otros"),
    ]
    assert most_common_activity(routes) is ActivityType.HIKING


@pytest.mark.parametrize(
    "distance, km, name",
    [
        (0, 0, "Beginner"),
        (9.9, 0, "Beginner"),
        (10, 10, "Novice Explorer"),
        (24.99, 10, "Novice Explorer"),
        (25, 25, "Adventurer"),
        (50, 50, "Hiking Expert"),
        (199, 100, "Mountain Master"),
        (200, 200, "Living Legend"),
        (10_000, 200, "Living Legend"),
    ],
)
def test_calculate_level(distance, km, name):
    level = calculate_level(distance)
    assert (level.km, level.name) == (km, name)


def test_calculate_next_level_from_zero():
    next_level = calculate_next_level(0)
    assert next_level.km_required == 10
    assert next_level.km_remaining == 10
    assert next_level.name == "Novice Explorer"


def test_calculate_next_level_partway():
    next_level = calculate_next_level(30)
    assert next_level.km_required == 50
    assert next_level.km_remaining == 20
    assert next_level.name == "Hiking Expert"


def test_calculate_next_level_towards_last_threshold():
    next_level = calculate_next_level(450)
    assert next_level.km_required == 500
    assert next_level.km_remaining == 50
    assert next_level.name == "Ecotourism Deity"


@pytest.mark.parametrize("distance", [500, 600])
def test_calculate_next_level_at_maximum(distance):
    next_level = calculate_next_level(distance)
    assert next_level.km_required is None
    assert next_level.km_remaining == 0
    assert next_level.name == MAX_LEVEL_NAME
