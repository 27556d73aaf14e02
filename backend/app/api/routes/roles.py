from collections import defaultdict

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.permissions import CAPABILITY_CATALOG, ROLE_BADGES, capabilities_for_role
from app.models.user import User, UserRole
from app.schemas.role import CapabilityCatalogOut, CapabilityOut, RoleOut

router = APIRouter()


@router.get("/", response_model=list[RoleOut])
def list_roles(current_user: User = Depends(get_current_user)) -> list[RoleOut]:
    roles: list[RoleOut] = []
    for role in UserRole:
        badge = ROLE_BADGES[role]
        roles.append(
            RoleOut(
                role=role,
                label=badge.label,
                badge_tone=badge.tone,
                capabilities=sorted(capabilities_for_role(role), key=lambda item: item.value),
            )
        )
    return roles


@router.get("/permissions", response_model=CapabilityCatalogOut)
def list_permissions(current_user: User = Depends(get_current_user)) -> CapabilityCatalogOut:
    ordered = sorted(CAPABILITY_CATALOG, key=lambda item: (item.category, item.display_name))
    permissions = [
        CapabilityOut(
            name=item.capability,
            display_name=item.display_name,
            description=item.description,
            category=item.category,
        )
        for item in ordered
    ]
    grouped: dict[str, list[CapabilityOut]] = defaultdict(list)
    for permission in permissions:
        grouped[permission.category].append(permission)
    return CapabilityCatalogOut(permissions=permissions, grouped_permissions=dict(grouped))
