"""
Aggregate views over a user's completed routes and the distance levels.

Everything here is pure: the functions only read the route objects handed to
them (anything exposing ``place_id``, ``distance_km``, ``duration_min`` and
``activity_type`` works) and never touch the database.
"""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .models import ActivityType

# Ascending (threshold km, level name).
LEVELS: tuple[tuple[float, str], ...] = (
    (0, "Beginner"),
    (10, "Novice Explorer"),
    (25, "Adventurer"),
    (50, "Hiking Expert"),
    (100, "Mountain Master"),
    (200, "Living Legend"),
)

NEXT_LEVEL_THRESHOLDS: tuple[float, ...] = (0, 10, 25, 50, 100, 200, 500)

LEVEL_NAMES: dict[float, str] = {
    **dict(LEVELS),
    500: "Ecotourism Deity",
}

MAX_LEVEL_NAME = "Maximum level reached!"
UNKNOWN_LEVEL_NAME = "Explorer"


@dataclass(frozen=True)
class Level:
    km: float
    name: str


@dataclass(frozen=True)
class NextLevel:
    km_required: float | None
    km_remaining: float
    name: str


@dataclass
class RouteStatistics:
    total_routes: int
    unique_places: int
    total_distance: float
    total_duration: float
    most_common_activity: ActivityType
    last_route: Any | None


def _activity_of(route: Any) -> ActivityType:
    value = getattr(route, "activity_type", None)
    if not value:
        return ActivityType.HIKING
    return ActivityType(value)


def most_common_activity(routes: Sequence[Any]) -> ActivityType:
    """
    Return the activity type with the most routes.

    Routes without a type count as hiking. On a tie the activity seen first
    in stored order wins. An empty history yields hiking.
    """
    if not routes:
        return ActivityType.HIKING

    counts = Counter(_activity_of(route) for route in routes)
    # most_common() keeps first-encountered order among equal counts.
    activity, _ = counts.most_common(1)[0]
    return activity


def route_statistics(routes: Sequence[Any]) -> RouteStatistics:
    """Summarise a route history; ``last_route`` is the last one stored."""
    return RouteStatistics(
        total_routes=len(routes),
        unique_places=len({route.place_id for route in routes}),
        total_distance=sum((route.distance_km or 0) for route in routes),
        total_duration=sum((route.duration_min or 0) for route in routes),
        most_common_activity=most_common_activity(routes),
        last_route=routes[-1] if routes else None,
    )


def calculate_level(total_distance: float) -> Level:
    for km, name in reversed(LEVELS):
        if total_distance >= km:
            return Level(km=km, name=name)
    # Negative distances only; 0 is the floor.
    km, name = LEVELS[0]
    return Level(km=km, name=name)


def level_name(km: float) -> str:
    return LEVEL_NAMES.get(km, UNKNOWN_LEVEL_NAME)


def calculate_next_level(total_distance: float) -> NextLevel:
    for km in NEXT_LEVEL_THRESHOLDS:
        if total_distance < km:
            return NextLevel(
                km_required=km,
                km_remaining=km - total_distance,
                name=level_name(km),
            )
    return NextLevel(km_required=None, km_remaining=0, name=MAX_LEVEL_NAME)
