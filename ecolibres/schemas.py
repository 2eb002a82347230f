"""Request and response bodies.

JSON keys follow the contract of the EcoLibres web client (``logros``,
``rutasCompletadas``, ``lugarId``...); Python attribute names are English.
"""
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .models import Achievement, CompletedRoute, User


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class UserIdentity(_Body):
    """Profile fields forwarded from the external identity provider."""

    uid: str | None = Field(None, validation_alias=AliasChoices("uid", "_id"))
    email: str | None = None
    display_name: str | None = Field(
        None, validation_alias=AliasChoices("displayName", "name", "nombre")
    )
    photo_url: str | None = Field(
        None,
        validation_alias=AliasChoices("photoURL", "picture", "avatar", "profilePhoto"),
    )


class AchievementIn(_Body):
    id: str | None = None
    name: str | None = Field(None, alias="nombre")
    description: str | None = Field(None, alias="descripcion")
    icon: str | None = Field(None, alias="icono")
    category: str | None = Field(None, alias="categoria")
    progress: float | None = Field(None, alias="progreso")
    goal: float | None = Field(None, alias="meta")
    obtained_at: datetime | None = Field(None, alias="fechaObtencion")
    unlocked_at: datetime | None = Field(None, alias="fecha_desbloqueo")


class AchievementListIn(_Body):
    achievements: list[AchievementIn] | None = Field(None, alias="logros")


class WaypointIn(_Body):
    lat: float
    lng: float
    timestamp: datetime | None = None


class CompletedRouteIn(_Body):
    place_id: str | None = Field(None, alias="lugarId")
    place_name: str | None = Field(None, alias="lugarNombre")
    distance_km: float | None = Field(None, alias="distancia")
    duration_min: float | None = Field(None, alias="duracion")
    waypoints: list[WaypointIn] | None = Field(None, alias="coordenadas")
    completed_at: datetime | None = Field(None, alias="fecha")
    activity_type: str | None = Field(None, alias="tipoActividad")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class AchievementOut(_Body):
    id: str
    name: str = Field(alias="nombre")
    description: str | None = Field(None, alias="descripcion")
    icon: str | None = Field(None, alias="icono")
    category: str | None = Field(None, alias="categoria")
    progress: float = Field(alias="progreso")
    goal: float = Field(alias="meta")
    completed: bool = Field(alias="completado")
    obtained_at: datetime = Field(alias="fechaObtencion")
    unlocked_at: datetime = Field(alias="fecha_desbloqueo")

    @classmethod
    def from_model(cls, achievement: Achievement) -> "AchievementOut":
        return cls(
            id=achievement.achievement_id,
            name=achievement.name,
            description=achievement.description,
            icon=achievement.icon,
            category=achievement.category,
            progress=achievement.progress,
            goal=achievement.goal,
            completed=achievement.completed,
            obtained_at=achievement.obtained_at,
            unlocked_at=achievement.unlocked_at,
        )


class WaypointOut(_Body):
    lat: float
    lng: float
    timestamp: datetime | None = None


class CompletedRouteOut(_Body):
    id: str = Field(alias="_id")
    place_id: str = Field(alias="lugarId")
    place_name: str = Field(alias="lugarNombre")
    distance_km: float = Field(alias="distancia")
    duration_min: float = Field(alias="duracion")
    waypoints: list[WaypointOut] = Field(alias="coordenadas")
    completed_at: datetime = Field(alias="fecha")
    completed: bool = Field(alias="completada")
    activity_type: str = Field(alias="tipoActividad")

    @classmethod
    def from_model(cls, route: CompletedRoute) -> "CompletedRouteOut":
        return cls(
            id=str(route.id),
            place_id=route.place_id,
            place_name=route.place_name,
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            waypoints=[WaypointOut(**point) for point in route.waypoints or []],
            completed_at=route.completed_at,
            completed=route.completed,
            activity_type=route.activity_type.value,
        )


class UserSummary(_Body):
    uid: str
    email: str
    display_name: str = Field(alias="displayName")
    photo_url: str = Field(alias="photoURL")
    achievements: list[AchievementOut] = Field(alias="logros")

    @classmethod
    def from_model(cls, user: User) -> "UserSummary":
        return cls(
            uid=user.id,
            email=user.email,
            display_name=user.display_name,
            photo_url=user.photo_url,
            achievements=[AchievementOut.from_model(a) for a in user.achievements],
        )


class UserDetail(UserSummary):
    registered_at: datetime = Field(alias="fechaRegistro")
    completed_routes: list[CompletedRouteOut] = Field(alias="rutasCompletadas")

    @classmethod
    def from_model(cls, user: User) -> "UserDetail":
        return cls(
            uid=user.id,
            email=user.email,
            display_name=user.display_name,
            photo_url=user.photo_url,
            achievements=[AchievementOut.from_model(a) for a in user.achievements],
            registered_at=user.registered_at,
            completed_routes=[CompletedRouteOut.from_model(r) for r in user.completed_routes],
        )


class RouteStatisticsOut(_Body):
    total_routes: int = Field(alias="totalRutas")
    unique_places: int = Field(alias="lugaresUnicos")
    total_distance: float = Field(alias="distanciaTotal")
    total_duration: float = Field(alias="tiempoTotal")
    most_common_activity: str = Field(alias="actividadMasComun")
    last_route: CompletedRouteOut | None = Field(None, alias="ultimaRuta")


class AchievementStatsOut(_Body):
    total: int
    completed: int = Field(alias="completados")
    progress: float = Field(alias="progreso")


class AchievementProgressOut(_Body):
    total: int
    completed: int
    progress: float


class LevelOut(_Body):
    km: float
    name: str = Field(alias="nombre")


class NextLevelOut(_Body):
    km_required: float | None = Field(alias="kmRequeridos")
    km_remaining: float = Field(alias="kmFaltantes")
    name: str = Field(alias="nombre")


class Pagination(_Body):
    total: int
    showing: int = Field(alias="mostrando")
    offset: int


class StatsSummary(_Body):
    user: str = Field(alias="usuario")
    level: LevelOut = Field(alias="nivel")
    next_level: NextLevelOut = Field(alias="siguienteNivel")


class Envelope(_Body):
    success: bool = True
    message: str | None = None


class UserResponse(Envelope):
    user: UserSummary


class UserDetailResponse(Envelope):
    user: UserDetail


class AchievementsResponse(Envelope):
    achievements: list[AchievementOut] = Field(alias="logros")


class AchievementsWithStatsResponse(AchievementsResponse):
    stats: AchievementStatsOut = Field(alias="estadisticas")


class RouteAddedResponse(Envelope):
    total_routes: int = Field(alias="totalRutas")
    stats: RouteStatisticsOut = Field(alias="estadisticas")


class RouteListResponse(Envelope):
    routes: list[CompletedRouteOut] = Field(alias="rutas")
    stats: RouteStatisticsOut = Field(alias="estadisticas")
    pagination: Pagination = Field(alias="paginacion")


class RouteStatsResponse(Envelope):
    stats: RouteStatisticsOut = Field(alias="estadisticas")
    achievement_progress: AchievementProgressOut = Field(alias="progresoLogros")
    summary: StatsSummary = Field(alias="resumen")


class RouteDeletedResponse(Envelope):
    total_routes: int = Field(alias="totalRutas")


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    details: dict[str, Any] | None = None
