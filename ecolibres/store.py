"""
Persistent user records and the mutations that keep their invariants.

A user row owns two ordered child collections, achievements and completed
routes. Every mutation validates its input first, changes the in-memory
collection and then commits once, so a single call never leaves a
half-written collection behind.

There is no per-user locking or versioning. Two concurrent read-modify-write
calls on the same user (for example two ``add_achievement`` requests) race,
and the last commit wins.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import NotFoundError, PersistenceError, ValidationError
from .models import Achievement, ActivityType, CompletedRoute, User, as_utc, utcnow
from .schemas import AchievementIn, CompletedRouteIn, UserIdentity

logger = logging.getLogger(__name__)

DEFAULT_GOAL = 100.0

# Fields a caller may overwrite on an existing achievement.
_MERGEABLE_ACHIEVEMENT_FIELDS = (
    "name",
    "description",
    "icon",
    "category",
    "progress",
    "goal",
    "obtained_at",
    "unlocked_at",
)


@dataclass(frozen=True)
class AchievementProgress:
    total: int
    completed: int
    progress: float


@dataclass(frozen=True)
class RoutePage:
    routes: list[CompletedRoute]
    total: int
    offset: int


def _check_progress(achievement_id: str, progress: float, goal: float) -> None:
    if not 0 <= progress <= 100:
        raise ValidationError(
            "Achievement progress must be between 0 and 100",
            {"id": achievement_id, "progreso": progress},
        )
    if goal < 0:
        raise ValidationError(
            "Achievement goal cannot be negative", {"id": achievement_id, "meta": goal}
        )


def merge_achievement(existing: Achievement, data: AchievementIn) -> None:
    """Overwrite the fields present in ``data`` and recompute ``completed``."""
    supplied = data.model_fields_set
    changes = {
        field: getattr(data, field)
        for field in _MERGEABLE_ACHIEVEMENT_FIELDS
        if field in supplied and getattr(data, field) is not None
    }

    progress = changes.get("progress", existing.progress)
    goal = changes.get("goal", existing.goal)
    _check_progress(existing.achievement_id, progress, goal)

    for field, value in changes.items():
        setattr(existing, field, value)
    existing.completed = existing.progress >= existing.goal


def build_achievement(data: AchievementIn, now: datetime | None = None) -> Achievement:
    """Create a new achievement entry; timestamps are always set to ``now``."""
    if not data.id:
        raise ValidationError("Achievement id is required")
    if not data.name:
        raise ValidationError("Achievement name is required", {"id": data.id})

    progress = data.progress if data.progress is not None else 0.0
    goal = data.goal if data.goal is not None else DEFAULT_GOAL
    _check_progress(data.id, progress, goal)

    now = now or utcnow()
    return Achievement(
        achievement_id=data.id,
        name=data.name,
        description=data.description,
        icon=data.icon,
        category=data.category,
        progress=progress,
        goal=goal,
        completed=progress >= goal,
        obtained_at=now,
        unlocked_at=now,
    )


def _parse_activity(value: str | None) -> ActivityType:
    if not value:
        return ActivityType.HIKING
    try:
        return ActivityType(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in ActivityType)
        raise ValidationError(
            f"Unknown activity type {value!r}; expected one of: {allowed}",
            {"tipoActividad": value},
        ) from exc


def build_completed_route(data: CompletedRouteIn, now: datetime | None = None) -> CompletedRoute:
    """Normalise a route payload, applying the defaults of a fresh entry."""
    if not data.place_id or not data.place_name:
        raise ValidationError(
            "lugarId and lugarNombre are required",
            {"lugarId": data.place_id, "lugarNombre": data.place_name},
        )

    now = now or utcnow()
    waypoints = [
        {
            "lat": point.lat,
            "lng": point.lng,
            "timestamp": as_utc(point.timestamp or now).isoformat(),
        }
        for point in data.waypoints or []
    ]
    return CompletedRoute(
        id=str(uuid.uuid4()),
        place_id=data.place_id,
        place_name=data.place_name,
        distance_km=data.distance_km or 0,
        duration_min=data.duration_min or 0,
        waypoints=waypoints,
        completed_at=as_utc(data.completed_at) if data.completed_at else now,
        completed=True,
        activity_type=_parse_activity(data.activity_type),
    )


def get_completed_achievements(user: User) -> list[Achievement]:
    return [achievement for achievement in user.achievements if achievement.completed]


def get_achievements_progress(user: User) -> AchievementProgress:
    total = len(user.achievements)
    completed = len(get_completed_achievements(user))
    return AchievementProgress(
        total=total,
        completed=completed,
        progress=(completed / total) * 100 if total > 0 else 0,
    )


def list_completed_routes(user: User, limit: int | None = None, offset: int = 0) -> RoutePage:
    """
    Return routes newest first, then the ``offset``/``limit`` window.

    The sort is stable, so routes finished at the same instant keep their
    stored order. ``limit=None`` means no upper bound.
    """
    if offset < 0 or (limit is not None and limit < 0):
        raise ValidationError(
            "limit and offset cannot be negative", {"limit": limit, "offset": offset}
        )

    ordered = sorted(
        user.completed_routes, key=lambda route: as_utc(route.completed_at), reverse=True
    )
    end = None if limit is None else offset + limit
    return RoutePage(routes=ordered[offset:end], total=len(ordered), offset=offset)


class UserStore:
    """Reads and writes user records through one async session."""

    def __init__(self, session: AsyncSession, log: logging.Logger | None = None):
        self.session = session
        self.log = log or logger

    async def _commit(self, action: str, user_id: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            self.log.error("Failed to %s for user %s: %s", action, user_id, exc)
            raise PersistenceError(f"Could not {action}", {"uid": user_id}) from exc

    async def _load(self, uid: str) -> User | None:
        try:
            result = await self.session.execute(select(User).where(User.id == uid))
        except SQLAlchemyError as exc:
            self.log.error("Failed to load user %s: %s", uid, exc)
            raise PersistenceError("Could not load user", {"uid": uid}) from exc
        return result.scalar_one_or_none()

    async def get_user(self, uid: str) -> User:
        user = await self._load(uid)
        if user is None:
            raise NotFoundError("User not found", {"uid": uid})
        return user

    async def find_or_create(self, identity: UserIdentity) -> User:
        """
        Upsert a user from identity-provider data.

        Existing records only take non-empty replacements for email, display
        name and photo; empty values keep what is stored. New records need an
        email and start with empty collections.
        """
        uid = (identity.uid or "").strip()
        if not uid:
            raise ValidationError("uid is required")

        user = await self._load(uid)
        now = utcnow()
        if user is not None:
            self.log.debug("Updating existing user %s", uid)
            user.email = identity.email or user.email
            user.display_name = identity.display_name or user.display_name
            user.photo_url = identity.photo_url or user.photo_url
            user.last_seen_at = now
        else:
            if not identity.email:
                raise ValidationError("email is required to create a user", {"uid": uid})
            self.log.info("Creating user %s", uid)
            user = User(
                id=uid,
                email=identity.email,
                display_name=identity.display_name or "",
                photo_url=identity.photo_url or "",
                registered_at=now,
                last_seen_at=now,
                achievements=[],
                completed_routes=[],
            )
            self.session.add(user)

        await self._commit("save user", uid)
        return user

    async def add_achievement(self, user: User, data: AchievementIn) -> list[Achievement]:
        """Insert an achievement, or merge into the one sharing its ``id``."""
        if not data.id:
            raise ValidationError("Achievement id is required")

        existing = next(
            (a for a in user.achievements if a.achievement_id == data.id), None
        )
        if existing is not None:
            merge_achievement(existing, data)
            self.log.info("Updated achievement %s for user %s", data.id, user.id)
        else:
            user.achievements.append(build_achievement(data))
            self.log.info("Added achievement %s for user %s", data.id, user.id)

        await self._commit("save achievement", user.id)
        return user.achievements

    async def replace_achievements(
        self, user: User, items: Iterable[AchievementIn]
    ) -> list[Achievement]:
        """
        Swap the whole achievement collection for ``items``.

        Repeated ids collapse into one entry at the position of their first
        occurrence, later fields merged over earlier ones.
        """
        now = utcnow()
        replacement: dict[str, Achievement] = {}
        for item in items:
            if item.id in replacement:
                merge_achievement(replacement[item.id], item)
            else:
                replacement[item.id or ""] = build_achievement(item, now)

        user.achievements.clear()
        try:
            # Old rows must be gone before rows with the same ids come back.
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise PersistenceError("Could not replace achievements", {"uid": user.id}) from exc
        for achievement in replacement.values():
            user.achievements.append(achievement)
        user.last_seen_at = now

        await self._commit("replace achievements", user.id)
        self.log.info("Replaced achievements for user %s (%d)", user.id, len(replacement))
        return user.achievements

    async def add_completed_route(
        self, user: User, data: CompletedRouteIn
    ) -> tuple[list[CompletedRoute], int]:
        route = build_completed_route(data)
        user.completed_routes.append(route)

        await self._commit("save completed route", user.id)
        total = len(user.completed_routes)
        self.log.info("Route %s added for user %s; total routes: %d", route.id, user.id, total)
        return user.completed_routes, total

    async def delete_completed_route(self, user: User, route_id: str) -> int:
        """Remove one route by its generated id and return how many remain."""
        route = next(
            (r for r in user.completed_routes if str(r.id) == route_id), None
        )
        if route is None:
            raise NotFoundError("Route not found", {"uid": user.id, "rutaId": route_id})

        user.completed_routes.remove(route)
        await self._commit("delete completed route", user.id)
        remaining = len(user.completed_routes)
        self.log.info("Route %s deleted for user %s; remaining: %d", route_id, user.id, remaining)
        return remaining
