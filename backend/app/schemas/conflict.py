from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ConflictInfo(BaseModel):
    scene_id: int | None = None
    scene_number: str = ""
    scene_title: str = ""
    conflict_type: Literal["time", "resource"]
    conflicting_scene_id: int
    conflicting_scene_number: str
    conflicting_scene_title: str
    # User ids present in both scenes; only set for resource conflicts.
    conflicting_resources: list[int] | None = None


class ConflictCheckResult(BaseModel):
    has_conflicts: bool
    conflicts: list[ConflictInfo]


class ConflictCheckRequest(BaseModel):
    scene_id: int | None = None
    scheduled_time: datetime
    duration_minutes: int | None = Field(default=None, ge=1, le=24 * 60)
    assigned_actors: list[int] = Field(default_factory=list, max_length=500)
    assigned_crew: list[int] = Field(default_factory=list, max_length=500)
    show_id: int | None = None

    @field_validator("assigned_actors", "assigned_crew")
    @classmethod
    def dedupe_personnel(cls, value: list[int]) -> list[int]:
        return list(dict.fromkeys(value))


class ConflictBatchRequest(BaseModel):
    scene_ids: list[int] = Field(default_factory=list, max_length=2000)


class SceneConflictSummary(BaseModel):
    id: int
    show_id: int
    scene_number: str
    title: str
    scheduled_time: datetime | None
    duration_minutes: int | None
    assigned_actors: list[int]
    assigned_crew: list[int]
    has_conflicts: bool
    conflicts: list[ConflictInfo]
