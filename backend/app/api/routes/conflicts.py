from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability
from app.core.config import get_settings
from app.core.permissions import Capability
from app.models.scene import Scene
from app.models.user import User
from app.schemas.conflict import (
    ConflictBatchRequest,
    ConflictCheckRequest,
    ConflictCheckResult,
    ConflictInfo,
    SceneConflictSummary,
)
from app.services.conflict_service import (
    as_utc,
    decode_personnel,
    detect_scene_conflicts,
    get_conflicts_for_scenes,
)

settings = get_settings()
router = APIRouter()


@router.post("/check", response_model=ConflictCheckResult)
def check_scene_conflicts(
    payload: ConflictCheckRequest,
    current_user: User = Depends(require_capability(Capability.view_scenes)),
    db: Session = Depends(get_db),
) -> ConflictCheckResult:
    return detect_scene_conflicts(
        db,
        scene_id=payload.scene_id,
        scheduled_time=payload.scheduled_time,
        duration_minutes=payload.duration_minutes,
        assigned_actors=payload.assigned_actors,
        assigned_crew=payload.assigned_crew,
        company_id=current_user.company_id,
        show_id=payload.show_id,
        default_duration_minutes=settings.scene_default_duration_minutes,
    )


@router.post("/batch", response_model=dict[int, list[ConflictInfo]])
def batch_scene_conflicts(
    payload: ConflictBatchRequest,
    current_user: User = Depends(require_capability(Capability.view_calendar)),
    db: Session = Depends(get_db),
) -> dict[int, list[ConflictInfo]]:
    return get_conflicts_for_scenes(
        db,
        payload.scene_ids,
        current_user.company_id,
        default_duration_minutes=settings.scene_default_duration_minutes,
    )


@router.get("/calendar", response_model=list[SceneConflictSummary])
def calendar_scene_conflicts(
    show_ids: list[int] | None = Query(default=None),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    current_user: User = Depends(require_capability(Capability.view_calendar)),
    db: Session = Depends(get_db),
) -> list[SceneConflictSummary]:
    if start is not None and end is not None and as_utc(end) < as_utc(start):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end must not be before start")

    query = select(Scene).where(
        Scene.company_id == current_user.company_id,
        Scene.scheduled_time.is_not(None),
    )
    if show_ids:
        query = query.where(Scene.show_id.in_(show_ids))
    if start is not None:
        query = query.where(Scene.scheduled_time >= as_utc(start))
    if end is not None:
        query = query.where(Scene.scheduled_time <= as_utc(end))
    scenes = list(db.execute(query.order_by(Scene.scheduled_time, Scene.id)).scalars())

    conflict_map = get_conflicts_for_scenes(
        db,
        [scene.id for scene in scenes],
        current_user.company_id,
        default_duration_minutes=settings.scene_default_duration_minutes,
    )
    return [
        SceneConflictSummary(
            id=scene.id,
            show_id=scene.show_id,
            scene_number=scene.scene_number,
            title=scene.title,
            scheduled_time=scene.scheduled_time,
            duration_minutes=scene.duration_minutes,
            assigned_actors=decode_personnel(scene.assigned_actors),
            assigned_crew=decode_personnel(scene.assigned_crew),
            has_conflicts=scene.id in conflict_map,
            conflicts=conflict_map.get(scene.id, []),
        )
        for scene in scenes
    ]
