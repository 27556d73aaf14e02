from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.scene import SceneStatus
from app.schemas.conflict import ConflictCheckResult
from app.services.conflict_service import as_utc, decode_personnel


class _SceneFields(BaseModel):
    @field_validator("scheduled_time", check_fields=False)
    @classmethod
    def normalize_scheduled_time(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @field_validator("assigned_actors", "assigned_crew", check_fields=False)
    @classmethod
    def dedupe_personnel(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        return list(dict.fromkeys(value))


class SceneCreate(_SceneFields):
    show_id: int
    scene_number: str = Field(min_length=1, max_length=50)
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    location: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=5000)
    scheduled_time: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=1, le=24 * 60)
    shooting_day_number: int | None = Field(default=None, ge=1)
    is_reshoot: bool = False
    assigned_actors: list[int] = Field(default_factory=list, max_length=500)
    assigned_crew: list[int] = Field(default_factory=list, max_length=500)


class SceneUpdate(_SceneFields):
    scene_number: str | None = Field(default=None, min_length=1, max_length=50)
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    location: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=5000)
    status: SceneStatus | None = None
    scheduled_time: datetime | None = None
    duration_minutes: int | None = Field(default=None, ge=1, le=24 * 60)
    shooting_day_number: int | None = Field(default=None, ge=1)
    is_reshoot: bool | None = None
    assigned_actors: list[int] | None = Field(default=None, max_length=500)
    assigned_crew: list[int] | None = Field(default=None, max_length=500)


class SceneOut(BaseModel):
    id: int
    company_id: int
    show_id: int
    scene_number: str
    title: str
    description: str | None = None
    location: str | None = None
    notes: str | None = None
    status: SceneStatus
    scheduled_time: datetime | None = None
    duration_minutes: int | None = None
    shooting_day_number: int | None = None
    is_reshoot: bool
    assigned_actors: list[int]
    assigned_crew: list[int]
    timer_start: datetime | None = None
    timer_end: datetime | None = None
    actual_duration_minutes: int | None = None

    model_config = {"from_attributes": True}

    @field_validator("assigned_actors", "assigned_crew", mode="before")
    @classmethod
    def decode_stored_personnel(cls, value: str | list[int] | None) -> list[int]:
        if isinstance(value, list):
            return value
        return decode_personnel(value)


class SceneWithConflicts(SceneOut):
    conflicts: ConflictCheckResult
