from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import get_authorizer, get_current_user, get_db
from app.core.config import get_settings
from app.core.permissions import Authorizer
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.company import Company
from app.models.user import User, UserRole
from app.schemas.user import CompanyRegistration, CurrentUserOut, Token, UserLogin, UserOut
from app.services.audit import log_activity
from app.services.rate_limit import enforce_rate_limit

settings = get_settings()
router = APIRouter()
logger = logging.getLogger(__name__)


def _ensure_unregistered(db: Session, payload: CompanyRegistration) -> None:
    if db.execute(select(User).where(User.email == payload.email)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    if db.execute(select(Company).where(Company.name == payload.company_name)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Company name already registered")


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: CompanyRegistration, request: Request, db: Session = Depends(get_db)) -> UserOut:
    enforce_rate_limit(
        request=request,
        scope="auth.register",
        limit=settings.auth_rate_limit_register_max_requests,
        window_seconds=settings.auth_rate_limit_window_seconds,
        identity=payload.email,
    )
    _ensure_unregistered(db, payload)

    try:
        company = Company(name=payload.company_name)
        db.add(company)
        db.flush()
        user = User(
            company_id=company.id,
            name=payload.name,
            email=payload.email,
            hashed_password=get_password_hash(payload.password),
            role=UserRole.admin,
        )
        db.add(user)
        db.flush()
        log_activity(db, user=user, action="company.register", entity_type="company", entity_id=company.id)
        db.commit()
    except IntegrityError as exc:
        # A concurrent registration took the e-mail or the company name after the checks above.
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email or company name already registered",
        ) from exc

    db.refresh(user)
    logger.info("Registered company %s with admin user %s", company.id, user.id)
    return user


@router.post("/login", response_model=Token)
def login(payload: UserLogin, request: Request, db: Session = Depends(get_db)) -> Token:
    enforce_rate_limit(
        request=request,
        scope="auth.login",
        limit=settings.auth_rate_limit_login_max_requests,
        window_seconds=settings.auth_rate_limit_window_seconds,
        identity=payload.email,
    )
    user = db.execute(select(User).where(User.email == payload.email)).scalar_one_or_none()
    if user is None or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is inactive. Please contact your administrator.",
        )

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    access_token = create_access_token(user.id)
    return Token(access_token=access_token, token_type="bearer", user=user)


@router.get("/me", response_model=CurrentUserOut)
def me(
    current_user: User = Depends(get_current_user),
    authorizer: Authorizer = Depends(get_authorizer),
) -> CurrentUserOut:
    user_out = UserOut.model_validate(current_user)
    return CurrentUserOut(
        **user_out.model_dump(),
        capabilities=sorted(capability.value for capability in authorizer.capabilities),
    )
