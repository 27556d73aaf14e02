"""Scene scheduling conflict detection.

Two scenes conflict when their shoot windows overlap. The overlap is a
``resource`` conflict when at least one person (actor or crew) is assigned to
both scenes, otherwise a plain ``time`` conflict. Detection only reads scene
state; it never reserves a slot, so concurrent writers can still both save
overlapping scenes.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import json
import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.scene import Scene
from app.schemas.conflict import ConflictCheckResult, ConflictInfo

logger = logging.getLogger(__name__)

DEFAULT_SCENE_DURATION_MINUTES = 60


def decode_personnel(raw: str | None) -> list[int]:
    """Decode a stored JSON list of user ids; anything unreadable is treated as empty."""
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed personnel encoding %r", raw)
        return []
    if not isinstance(parsed, list):
        logger.debug("Ignoring non-list personnel encoding %r", raw)
        return []
    return list(dict.fromkeys(item for item in parsed if isinstance(item, int) and not isinstance(item, bool)))


def encode_personnel(user_ids: Iterable[int]) -> str | None:
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return None
    return json.dumps(ids)


def as_utc(value: datetime) -> datetime:
    # Naive values come back from stores without timezone support and are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def effective_duration(duration_minutes: int | None, default_minutes: int = DEFAULT_SCENE_DURATION_MINUTES) -> int:
    return duration_minutes or default_minutes


def overlaps(start_a: datetime, duration_a: int, start_b: datetime, duration_b: int) -> bool:
    """Half-open interval test: a window ending exactly when another begins does not overlap it."""
    start_a = as_utc(start_a)
    start_b = as_utc(start_b)
    end_a = start_a + timedelta(minutes=duration_a)
    end_b = start_b + timedelta(minutes=duration_b)
    return start_a < end_b and start_b < end_a


def intersect(users_a: Iterable[int], users_b: Iterable[int]) -> set[int]:
    return set(users_a) & set(users_b)


@dataclass(frozen=True)
class ScheduledScene:
    id: int | None
    scheduled_time: datetime | None
    duration_minutes: int | None
    personnel: frozenset[int]
    scene_number: str = ""
    title: str = ""
    show_id: int | None = None

    @classmethod
    def from_model(cls, scene: Scene) -> "ScheduledScene":
        return cls(
            id=scene.id,
            scheduled_time=scene.scheduled_time,
            duration_minutes=scene.duration_minutes,
            personnel=frozenset(decode_personnel(scene.assigned_actors))
            | frozenset(decode_personnel(scene.assigned_crew)),
            scene_number=scene.scene_number,
            title=scene.title,
            show_id=scene.show_id,
        )


def classify(
    subject: ScheduledScene,
    other: ScheduledScene,
    *,
    default_duration_minutes: int = DEFAULT_SCENE_DURATION_MINUTES,
) -> ConflictInfo | None:
    if subject.scheduled_time is None or other.scheduled_time is None or other.id is None:
        return None
    if not overlaps(
        subject.scheduled_time,
        effective_duration(subject.duration_minutes, default_duration_minutes),
        other.scheduled_time,
        effective_duration(other.duration_minutes, default_duration_minutes),
    ):
        return None

    shared = intersect(subject.personnel, other.personnel)
    return ConflictInfo(
        scene_id=subject.id,
        scene_number=subject.scene_number,
        scene_title=subject.title,
        conflict_type="resource" if shared else "time",
        conflicting_scene_id=other.id,
        conflicting_scene_number=other.scene_number,
        conflicting_scene_title=other.title,
        conflicting_resources=sorted(shared) if shared else None,
    )


def scan(
    subject: ScheduledScene,
    candidates: Iterable[ScheduledScene],
    *,
    default_duration_minutes: int = DEFAULT_SCENE_DURATION_MINUTES,
) -> list[ConflictInfo]:
    if subject.scheduled_time is None:
        return []
    conflicts: list[ConflictInfo] = []
    for candidate in candidates:
        if candidate.scheduled_time is None:
            continue
        if subject.id is not None and candidate.id == subject.id:
            continue
        conflict = classify(subject, candidate, default_duration_minutes=default_duration_minutes)
        if conflict is not None:
            conflicts.append(conflict)
    return conflicts


def _candidate_query(company_id: int, *, show_id: int | None = None, exclude_scene_id: int | None = None):
    query = select(Scene).where(Scene.company_id == company_id, Scene.scheduled_time.is_not(None))
    if show_id is not None:
        query = query.where(Scene.show_id == show_id)
    if exclude_scene_id is not None:
        query = query.where(Scene.id != exclude_scene_id)
    return query


def detect_scene_conflicts(
    db: Session,
    *,
    scene_id: int | None,
    scheduled_time: datetime | None,
    duration_minutes: int | None,
    assigned_actors: Iterable[int],
    assigned_crew: Iterable[int],
    company_id: int,
    show_id: int | None = None,
    scene_number: str = "",
    scene_title: str = "",
    default_duration_minutes: int = DEFAULT_SCENE_DURATION_MINUTES,
) -> ConflictCheckResult:
    """Check one scene's schedule against every other scheduled scene in scope.

    Store errors are not caught here; the calling request fails with them.
    """
    if scheduled_time is None:
        return ConflictCheckResult(has_conflicts=False, conflicts=[])

    subject = ScheduledScene(
        id=scene_id,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes,
        personnel=frozenset(assigned_actors) | frozenset(assigned_crew),
        scene_number=scene_number,
        title=scene_title,
        show_id=show_id,
    )
    rows = db.execute(
        _candidate_query(company_id, show_id=show_id, exclude_scene_id=scene_id)
    ).scalars()
    conflicts = scan(
        subject,
        (ScheduledScene.from_model(row) for row in rows),
        default_duration_minutes=default_duration_minutes,
    )
    return ConflictCheckResult(has_conflicts=bool(conflicts), conflicts=conflicts)


def detect_conflicts_for_scene(
    db: Session,
    scene: Scene,
    *,
    default_duration_minutes: int = DEFAULT_SCENE_DURATION_MINUTES,
) -> ConflictCheckResult:
    """Scan a persisted scene against the other scenes of its show."""
    return detect_scene_conflicts(
        db,
        scene_id=scene.id,
        scheduled_time=scene.scheduled_time,
        duration_minutes=scene.duration_minutes,
        assigned_actors=decode_personnel(scene.assigned_actors),
        assigned_crew=decode_personnel(scene.assigned_crew),
        company_id=scene.company_id,
        show_id=scene.show_id,
        scene_number=scene.scene_number,
        scene_title=scene.title,
        default_duration_minutes=default_duration_minutes,
    )


def get_conflicts_for_scenes(
    db: Session,
    scene_ids: Iterable[int],
    company_id: int,
    *,
    default_duration_minutes: int = DEFAULT_SCENE_DURATION_MINUTES,
) -> dict[int, list[ConflictInfo]]:
    """Map each requested scene id to its conflicts; scenes without conflicts are omitted."""
    requested = set(scene_ids)
    if not requested:
        return {}

    subjects = [
        ScheduledScene.from_model(row)
        for row in db.execute(
            _candidate_query(company_id).where(Scene.id.in_(requested))
        ).scalars()
    ]
    if not subjects:
        return {}

    # Each subject is compared within its own show, so one fetch of those shows covers every scan.
    show_ids = {subject.show_id for subject in subjects}
    pool_by_show: dict[int | None, list[ScheduledScene]] = defaultdict(list)
    for row in db.execute(_candidate_query(company_id).where(Scene.show_id.in_(show_ids))).scalars():
        pool_by_show[row.show_id].append(ScheduledScene.from_model(row))

    conflict_map: dict[int, list[ConflictInfo]] = {}
    for subject in subjects:
        conflicts = scan(
            subject,
            pool_by_show[subject.show_id],
            default_duration_minutes=default_duration_minutes,
        )
        if conflicts:
            conflict_map[subject.id] = conflicts
    return conflict_map
