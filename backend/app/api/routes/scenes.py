from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.deps import get_authorizer, get_db, require_capability
from app.core.config import get_settings
from app.core.exceptions import ResourceNotFoundError
from app.core.permissions import Authorizer, Capability
from app.models.scene import Scene, SceneStatus
from app.models.show import Show
from app.models.user import User, UserRole
from app.schemas.scene import SceneCreate, SceneOut, SceneUpdate, SceneWithConflicts
from app.services.audit import log_activity
from app.services.conflict_service import (
    as_utc,
    decode_personnel,
    detect_conflicts_for_scene,
    encode_personnel,
)

settings = get_settings()
router = APIRouter()
logger = logging.getLogger(__name__)


def load_company_scene(db: Session, scene_id: int, authorizer: Authorizer) -> Scene:
    scene = db.get(Scene, scene_id)
    if scene is None:
        raise ResourceNotFoundError("Scene", scene_id)
    authorizer.require_company(scene.company_id, "You don't have access to this scene")
    return scene


def _load_company_show(db: Session, show_id: int, company_id: int) -> Show:
    show = db.get(Show, show_id)
    if show is None or show.company_id != company_id:
        raise ResourceNotFoundError("Show", show_id)
    return show


def _validate_personnel(db: Session, company_id: int, user_ids: list[int]) -> None:
    if not user_ids:
        return
    known = set(
        db.execute(select(User.id).where(User.company_id == company_id, User.id.in_(user_ids))).scalars()
    )
    unknown = sorted(set(user_ids) - known)
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown personnel for this company: {unknown}",
        )


def _with_conflicts(db: Session, scene: Scene) -> SceneWithConflicts:
    result = detect_conflicts_for_scene(
        db,
        scene,
        default_duration_minutes=settings.scene_default_duration_minutes,
    )
    if result.has_conflicts:
        resource_count = sum(1 for item in result.conflicts if item.conflict_type == "resource")
        logger.info(
            "Scene %s has %d scheduling conflict(s) (%d resource, %d time)",
            scene.id,
            len(result.conflicts),
            resource_count,
            len(result.conflicts) - resource_count,
        )
    scene_out = SceneOut.model_validate(scene)
    return SceneWithConflicts(**scene_out.model_dump(), conflicts=result)


@router.get("/", response_model=list[SceneOut])
def list_scenes(
    show_id: int | None = Query(default=None),
    location: str | None = Query(default=None, max_length=255),
    actor_id: list[int] | None = Query(default=None),
    current_user: User = Depends(require_capability(Capability.view_scenes)),
    db: Session = Depends(get_db),
) -> list[SceneOut]:
    query = select(Scene).where(Scene.company_id == current_user.company_id)
    if show_id is not None:
        query = query.where(Scene.show_id == show_id)
    if location and location.strip():
        query = query.where(func.lower(Scene.location).contains(location.strip().lower()))
    scenes = list(db.execute(query.order_by(Scene.scene_number, Scene.id)).scalars())

    if current_user.role == UserRole.actor:
        scenes = [scene for scene in scenes if current_user.id in decode_personnel(scene.assigned_actors)]
    if actor_id:
        wanted = set(actor_id)
        scenes = [scene for scene in scenes if wanted.intersection(decode_personnel(scene.assigned_actors))]
    return scenes


@router.get("/{scene_id}", response_model=SceneOut)
def get_scene(
    scene_id: int,
    current_user: User = Depends(require_capability(Capability.view_scenes)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> SceneOut:
    scene = load_company_scene(db, scene_id, authorizer)
    if current_user.role == UserRole.actor and current_user.id not in decode_personnel(scene.assigned_actors):
        raise ResourceNotFoundError("Scene", scene_id)
    return scene


@router.post("/", response_model=SceneWithConflicts, status_code=status.HTTP_201_CREATED)
def create_scene(
    payload: SceneCreate,
    current_user: User = Depends(require_capability(Capability.manage_scenes)),
    db: Session = Depends(get_db),
) -> SceneWithConflicts:
    company_id = current_user.company_id
    _load_company_show(db, payload.show_id, company_id)
    _validate_personnel(db, company_id, payload.assigned_actors + payload.assigned_crew)

    data = payload.model_dump(exclude={"assigned_actors", "assigned_crew"})
    scene = Scene(
        **data,
        company_id=company_id,
        status=SceneStatus.unshot,
        assigned_actors=encode_personnel(payload.assigned_actors),
        assigned_crew=encode_personnel(payload.assigned_crew),
    )
    db.add(scene)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="scene.create",
        entity_type="scene",
        entity_id=scene.id,
        details={"show_id": scene.show_id, "scene_number": scene.scene_number},
    )
    db.commit()
    db.refresh(scene)
    return _with_conflicts(db, scene)


@router.put("/{scene_id}", response_model=SceneWithConflicts)
def update_scene(
    scene_id: int,
    payload: SceneUpdate,
    current_user: User = Depends(require_capability(Capability.manage_scenes)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> SceneWithConflicts:
    scene = load_company_scene(db, scene_id, authorizer)
    data = payload.model_dump(exclude_unset=True)

    for field in ("scene_number", "title", "status", "is_reshoot"):
        if field in data and data[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field} cannot be null",
            )

    for field in ("assigned_actors", "assigned_crew"):
        if field in data:
            user_ids = data.pop(field) or []
            _validate_personnel(db, scene.company_id, user_ids)
            setattr(scene, field, encode_personnel(user_ids))

    for key, value in data.items():
        setattr(scene, key, value)

    log_activity(
        db,
        user=current_user,
        action="scene.update",
        entity_type="scene",
        entity_id=scene.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    db.commit()
    db.refresh(scene)
    return _with_conflicts(db, scene)


@router.delete("/{scene_id}")
def delete_scene(
    scene_id: int,
    current_user: User = Depends(require_capability(Capability.manage_scenes)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> dict:
    scene = load_company_scene(db, scene_id, authorizer)
    log_activity(
        db,
        user=current_user,
        action="scene.delete",
        entity_type="scene",
        entity_id=scene.id,
        details={"show_id": scene.show_id, "scene_number": scene.scene_number},
    )
    db.delete(scene)
    db.commit()
    return {"success": True, "message": "Scene deleted successfully"}


@router.post("/{scene_id}/complete", response_model=SceneOut)
def mark_scene_complete(
    scene_id: int,
    current_user: User = Depends(require_capability(Capability.mark_scene_complete)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> SceneOut:
    scene = load_company_scene(db, scene_id, authorizer)
    scene.status = SceneStatus.complete
    log_activity(db, user=current_user, action="scene.complete", entity_type="scene", entity_id=scene.id)
    db.commit()
    db.refresh(scene)
    return scene


@router.post("/{scene_id}/timer/start", response_model=SceneOut)
def start_scene_timer(
    scene_id: int,
    current_user: User = Depends(require_capability(Capability.manage_timers)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> SceneOut:
    scene = load_company_scene(db, scene_id, authorizer)
    if scene.status == SceneStatus.complete:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot start timer for completed scene")

    scene.status = SceneStatus.in_progress
    scene.timer_start = datetime.now(timezone.utc)
    scene.timer_end = None
    scene.actual_duration_minutes = None
    log_activity(db, user=current_user, action="scene.timer_start", entity_type="scene", entity_id=scene.id)
    db.commit()
    db.refresh(scene)
    return scene


@router.post("/{scene_id}/timer/stop", response_model=SceneOut)
def stop_scene_timer(
    scene_id: int,
    current_user: User = Depends(require_capability(Capability.manage_timers)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> SceneOut:
    scene = load_company_scene(db, scene_id, authorizer)
    if scene.timer_start is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Timer has not been started")
    if scene.status == SceneStatus.complete:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot stop timer for completed scene")

    timer_end = datetime.now(timezone.utc)
    elapsed = timer_end - as_utc(scene.timer_start)
    scene.timer_end = timer_end
    scene.actual_duration_minutes = round(elapsed.total_seconds() / 60)
    log_activity(
        db,
        user=current_user,
        action="scene.timer_stop",
        entity_type="scene",
        entity_id=scene.id,
        details={"actual_duration_minutes": scene.actual_duration_minutes},
    )
    db.commit()
    db.refresh(scene)
    return scene
