import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ActivityType(str, enum.Enum):
    HIKING = "hiking"
    SWIMMING = "swimming"
    CAMPING = "camping"
    CLIMBING = "climbing"
    WILDLIFE_WATCHING = "wildlife-watching"
    PHOTOGRAPHY = "photography"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "ActivityType | None":
        # Values sent by older clients of the web app.
        return _LEGACY_ACTIVITY_TYPES.get(str(value).lower())


_LEGACY_ACTIVITY_TYPES = {
    "senderismo": ActivityType.HIKING,
    "natacion": ActivityType.SWIMMING,
    "escalada": ActivityType.CLIMBING,
    "observacion": ActivityType.WILDLIFE_WATCHING,
    "fotografia": ActivityType.PHOTOGRAPHY,
    "otros": ActivityType.OTHER,
}


class User(Base):
    __tablename__ = "users"

    # Identity token issued by the external auth provider.
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    photo_url: Mapped[str] = mapped_column(Text, default="", nullable=False)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    achievements: Mapped[list["Achievement"]] = relationship(
        "Achievement",
        back_populates="user",
        order_by="Achievement.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    completed_routes: Mapped[list["CompletedRoute"]] = relationship(
        "CompletedRoute",
        back_populates="user",
        order_by="CompletedRoute.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Achievement(Base):
    __tablename__ = "achievements"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    # Application-assigned id, unique only within the owning user.
    achievement_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    progress: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    goal: Mapped[float] = mapped_column(Float, default=100, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    obtained_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    user: Mapped[User] = relationship("User", back_populates="achievements")


class CompletedRoute(Base):
    __tablename__ = "completed_routes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    place_id: Mapped[str] = mapped_column(String(128), nullable=False)
    place_name: Mapped[str] = mapped_column(String(255), nullable=False)
    distance_km: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    duration_min: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    # [{"lat": float, "lng": float, "timestamp": iso8601}, ...]
    waypoints: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    completed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    activity_type: Mapped[ActivityType] = mapped_column(
        Enum(
            ActivityType,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        default=ActivityType.HIKING,
        nullable=False,
    )

    user: Mapped[User] = relationship("User", back_populates="completed_routes")
