from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability
from app.core.exceptions import ResourceNotFoundError
from app.core.permissions import Capability
from app.models.scene import Scene
from app.models.show import Show
from app.models.user import User
from app.schemas.show import ShowCreate, ShowOut, ShowUpdate
from app.services.audit import log_activity

router = APIRouter()


def _load_company_show(db: Session, show_id: int, company_id: int) -> Show:
    show = db.get(Show, show_id)
    if show is None or show.company_id != company_id:
        raise ResourceNotFoundError("Show", show_id)
    return show


@router.get("/", response_model=list[ShowOut])
def list_shows(
    current_user: User = Depends(require_capability(Capability.view_shows)),
    db: Session = Depends(get_db),
) -> list[ShowOut]:
    query = select(Show).where(Show.company_id == current_user.company_id).order_by(Show.title, Show.id)
    return list(db.execute(query).scalars())


@router.post("/", response_model=ShowOut, status_code=status.HTTP_201_CREATED)
def create_show(
    payload: ShowCreate,
    current_user: User = Depends(require_capability(Capability.manage_shows)),
    db: Session = Depends(get_db),
) -> ShowOut:
    show = Show(**payload.model_dump(), company_id=current_user.company_id, created_by_id=current_user.id)
    db.add(show)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="show.create",
        entity_type="show",
        entity_id=show.id,
        details={"title": show.title},
    )
    db.commit()
    db.refresh(show)
    return show


@router.put("/{show_id}", response_model=ShowOut)
def update_show(
    show_id: int,
    payload: ShowUpdate,
    current_user: User = Depends(require_capability(Capability.manage_shows)),
    db: Session = Depends(get_db),
) -> ShowOut:
    show = _load_company_show(db, show_id, current_user.company_id)
    data = payload.model_dump(exclude_unset=True)
    if "title" in data and data["title"] is None:
        data.pop("title")
    if "status" in data and data["status"] is None:
        data.pop("status")

    start_date = data.get("start_date", show.start_date)
    end_date = data.get("end_date", show.end_date)
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date cannot be before start_date")

    for key, value in data.items():
        setattr(show, key, value)
    if data:
        log_activity(
            db,
            user=current_user,
            action="show.update",
            entity_type="show",
            entity_id=show.id,
            details={"fields": sorted(data)},
        )
    db.commit()
    db.refresh(show)
    return show


@router.delete("/{show_id}")
def delete_show(
    show_id: int,
    current_user: User = Depends(require_capability(Capability.manage_shows)),
    db: Session = Depends(get_db),
) -> dict:
    show = _load_company_show(db, show_id, current_user.company_id)
    db.execute(delete(Scene).where(Scene.show_id == show.id))
    log_activity(
        db,
        user=current_user,
        action="show.delete",
        entity_type="show",
        entity_id=show.id,
        details={"title": show.title},
    )
    db.delete(show)
    db.commit()
    return {"success": True}
