from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.sql import func

from app.db.base import Base


class SceneStatus(str, Enum):
    unshot = "unshot"
    in_progress = "in_progress"
    complete = "complete"


class Scene(Base):
    __tablename__ = "scenes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), index=True, nullable=False)
    show_id: Mapped[int] = mapped_column(ForeignKey("shows.id", ondelete="CASCADE"), index=True, nullable=False)
    scene_number: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[SceneStatus] = mapped_column(
        SAEnum(SceneStatus, name="scene_status"),
        nullable=False,
        default=SceneStatus.unshot,
    )

    scheduled_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True, nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    shooting_day_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_reshoot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # JSON-encoded lists of user ids, NULL when nobody is assigned.
    assigned_actors: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_crew: Mapped[str | None] = mapped_column(Text, nullable=True)

    timer_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    timer_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    @validates("scheduled_time", "timer_start", "timer_end")
    def normalize_to_utc(self, key: str, value: datetime | None) -> datetime | None:
        # Stores without timezone support keep the wall clock only, so persist UTC.
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc)
