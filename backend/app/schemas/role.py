from pydantic import BaseModel

from app.core.permissions import BadgeTone, Capability
from app.models.user import UserRole


class RoleOut(BaseModel):
    role: UserRole
    label: str
    badge_tone: BadgeTone
    capabilities: list[Capability]


class CapabilityOut(BaseModel):
    name: Capability
    display_name: str
    description: str
    category: str


class CapabilityCatalogOut(BaseModel):
    permissions: list[CapabilityOut]
    grouped_permissions: dict[str, list[CapabilityOut]]
