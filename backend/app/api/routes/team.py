from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_authorizer, get_db, require_capability
from app.core.exceptions import PermissionDeniedError, ResourceNotFoundError
from app.core.permissions import Authorizer, Capability
from app.core.security import get_password_hash
from app.models.user import User
from app.schemas.user import TeamMemberCreate, TeamMemberUpdate, UserOut
from app.services.audit import log_activity

router = APIRouter()


@router.get("/users", response_model=list[UserOut])
def list_team_members(
    current_user: User = Depends(require_capability(Capability.view_team)),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    query = select(User).where(User.company_id == current_user.company_id).order_by(User.name, User.id)
    return list(db.execute(query).scalars())


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def add_team_member(
    payload: TeamMemberCreate,
    current_user: User = Depends(require_capability(Capability.manage_team)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> UserOut:
    if not authorizer.can_grant_role(payload.role):
        raise PermissionDeniedError(f"You cannot grant the {payload.role.value} role")
    if db.execute(select(User).where(User.email == payload.email)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    member = User(
        company_id=current_user.company_id,
        name=payload.name,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=payload.role,
    )
    db.add(member)
    db.flush()
    log_activity(
        db,
        user=current_user,
        action="team.add",
        entity_type="user",
        entity_id=member.id,
        details={"role": payload.role.value},
    )
    db.commit()
    db.refresh(member)
    return member


@router.patch("/users/{user_id}", response_model=UserOut)
def update_team_member(
    user_id: int,
    payload: TeamMemberUpdate,
    current_user: User = Depends(require_capability(Capability.manage_team)),
    authorizer: Authorizer = Depends(get_authorizer),
    db: Session = Depends(get_db),
) -> UserOut:
    member = db.get(User, user_id)
    if member is None or member.company_id != current_user.company_id:
        raise ResourceNotFoundError("User", user_id)

    changes: dict = {}
    if payload.role is not None and payload.role != member.role:
        if not authorizer.can_grant_role(payload.role) or not authorizer.can_grant_role(member.role):
            raise PermissionDeniedError(f"You cannot grant the {payload.role.value} role")
        member.role = payload.role
        changes["role"] = payload.role.value
    if payload.is_active is not None and payload.is_active != member.is_active:
        if member.id == current_user.id and not payload.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")
        member.is_active = payload.is_active
        changes["is_active"] = payload.is_active

    if changes:
        log_activity(db, user=current_user, action="team.update", entity_type="user", entity_id=member.id, details=changes)
    db.commit()
    db.refresh(member)
    return member
