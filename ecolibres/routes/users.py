import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_session
from ..errors import ValidationError
from ..models import User
from ..schemas import (
    AchievementIn,
    AchievementListIn,
    AchievementOut,
    AchievementProgressOut,
    AchievementStatsOut,
    AchievementsResponse,
    AchievementsWithStatsResponse,
    CompletedRouteIn,
    CompletedRouteOut,
    LevelOut,
    NextLevelOut,
    Pagination,
    RouteAddedResponse,
    RouteDeletedResponse,
    RouteListResponse,
    RouteStatisticsOut,
    RouteStatsResponse,
    StatsSummary,
    UserDetail,
    UserDetailResponse,
    UserIdentity,
    UserResponse,
    UserSummary,
)
from ..stats import calculate_level, calculate_next_level, route_statistics
from ..store import (
    UserStore,
    get_achievements_progress,
    get_completed_achievements,
    list_completed_routes,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

DEFAULT_USER_LABEL = "Adventurer"


def get_store(session: AsyncSession = Depends(get_session)) -> UserStore:
    return UserStore(session)


def _route_stats(user: User) -> RouteStatisticsOut:
    stats = route_statistics(user.completed_routes)
    return RouteStatisticsOut(
        total_routes=stats.total_routes,
        unique_places=stats.unique_places,
        total_distance=stats.total_distance,
        total_duration=stats.total_duration,
        most_common_activity=stats.most_common_activity.value,
        last_route=(
            CompletedRouteOut.from_model(stats.last_route) if stats.last_route else None
        ),
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_or_update_user(
    payload: UserIdentity, store: UserStore = Depends(get_store)
) -> UserResponse:
    """
    Create the user on first login, or refresh their profile fields.

    The ``uid`` comes from the external identity provider; this service
    trusts it as-is.
    """
    if not payload.uid or not payload.email:
        raise ValidationError("uid and email are required")

    user = await store.find_or_create(payload)
    return UserResponse(
        message="User created or updated",
        user=UserSummary.from_model(user),
    )


@router.get("/{uid}", response_model=UserDetailResponse)
async def get_user(uid: str, store: UserStore = Depends(get_store)) -> UserDetailResponse:
    user = await store.get_user(uid)
    return UserDetailResponse(user=UserDetail.from_model(user))


@router.post("/{uid}/achievements", response_model=AchievementsResponse)
async def add_achievement(
    uid: str, payload: AchievementIn, store: UserStore = Depends(get_store)
) -> AchievementsResponse:
    """Add an achievement, or update the one with the same ``id``."""
    if not payload.id or not payload.name:
        raise ValidationError("Achievement id and nombre are required")

    user = await store.get_user(uid)
    achievements = await store.add_achievement(user, payload)
    return AchievementsResponse(
        message="Achievement saved",
        achievements=[AchievementOut.from_model(a) for a in achievements],
    )


@router.put("/{uid}/achievements", response_model=AchievementsResponse)
async def replace_achievements(
    uid: str, payload: AchievementListIn, store: UserStore = Depends(get_store)
) -> AchievementsResponse:
    if payload.achievements is None:
        raise ValidationError("logros must be an array")

    user = await store.get_user(uid)
    achievements = await store.replace_achievements(user, payload.achievements)
    return AchievementsResponse(
        message="Achievements replaced",
        achievements=[AchievementOut.from_model(a) for a in achievements],
    )


@router.get("/{uid}/achievements", response_model=AchievementsWithStatsResponse)
async def list_achievements(
    uid: str, store: UserStore = Depends(get_store)
) -> AchievementsWithStatsResponse:
    user = await store.get_user(uid)
    progress = get_achievements_progress(user)
    return AchievementsWithStatsResponse(
        achievements=[AchievementOut.from_model(a) for a in user.achievements],
        stats=AchievementStatsOut(
            total=progress.total,
            completed=len(get_completed_achievements(user)),
            progress=progress.progress,
        ),
    )


@router.post("/{uid}/rutas-completadas", response_model=RouteAddedResponse)
async def add_completed_route(
    uid: str, payload: CompletedRouteIn, store: UserStore = Depends(get_store)
) -> RouteAddedResponse:
    """Store a finished route in the user's heat-map history."""
    user = await store.get_user(uid)
    _, total = await store.add_completed_route(user, payload)
    return RouteAddedResponse(
        message="Route saved to your adventure history",
        total_routes=total,
        stats=_route_stats(user),
    )


@router.get("/{uid}/rutas-completadas", response_model=RouteListResponse)
async def list_routes(
    uid: str,
    limit: int | None = Query(None, ge=0),
    offset: int = Query(0, ge=0),
    store: UserStore = Depends(get_store),
) -> RouteListResponse:
    """
    Return the route history newest first.

    ``offset`` and ``limit`` select a window after sorting; without ``limit``
    every route from ``offset`` on is returned.
    """
    user = await store.get_user(uid)
    page = list_completed_routes(user, limit=limit, offset=offset)
    logger.debug("Returning %d of %d routes for user %s", len(page.routes), page.total, uid)
    return RouteListResponse(
        routes=[CompletedRouteOut.from_model(r) for r in page.routes],
        stats=_route_stats(user),
        pagination=Pagination(total=page.total, showing=len(page.routes), offset=page.offset),
    )


@router.get("/{uid}/estadisticas-rutas", response_model=RouteStatsResponse)
async def route_stats_summary(
    uid: str, store: UserStore = Depends(get_store)
) -> RouteStatsResponse:
    """Route totals, achievement progress and the user's distance level."""
    user = await store.get_user(uid)
    stats = _route_stats(user)
    progress = get_achievements_progress(user)
    level = calculate_level(stats.total_distance)
    next_level = calculate_next_level(stats.total_distance)

    return RouteStatsResponse(
        stats=stats,
        achievement_progress=AchievementProgressOut(
            total=progress.total,
            completed=progress.completed,
            progress=progress.progress,
        ),
        summary=StatsSummary(
            user=user.display_name or DEFAULT_USER_LABEL,
            level=LevelOut(km=level.km, name=level.name),
            next_level=NextLevelOut(
                km_required=next_level.km_required,
                km_remaining=next_level.km_remaining,
                name=next_level.name,
            ),
        ),
    )


@router.delete("/{uid}/rutas-completadas/{route_id}", response_model=RouteDeletedResponse)
async def delete_completed_route(
    uid: str, route_id: str, store: UserStore = Depends(get_store)
) -> RouteDeletedResponse:
    user = await store.get_user(uid)
    remaining = await store.delete_completed_route(user, route_id)
    return RouteDeletedResponse(message="Route deleted", total_routes=remaining)
