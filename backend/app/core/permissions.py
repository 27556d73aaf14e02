"""Capabilities, the system role table and the per-request authorizer.

Role to capability resolution happens once per request: ``Authorizer.for_user``
captures the capability set of the authenticated user and every access check
in the request goes through that object.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from app.core.exceptions import PermissionDeniedError
from app.models.user import User, UserRole


class Capability(str, Enum):
    # Scenes
    manage_scenes = "manage_scenes"
    view_scenes = "view_scenes"
    manage_timers = "manage_timers"
    mark_scene_complete = "mark_scene_complete"
    edit_scene_details = "edit_scene_details"
    manage_scene_scheduling = "manage_scene_scheduling"
    # Team
    manage_team = "manage_team"
    view_team = "view_team"
    edit_own_profile = "edit_own_profile"
    approve_team_members = "approve_team_members"
    view_team_contact_info = "view_team_contact_info"
    # Reports
    manage_reports = "manage_reports"
    view_reports = "view_reports"
    export_reports = "export_reports"
    configure_report_automation = "configure_report_automation"
    # Shows
    manage_shows = "manage_shows"
    view_shows = "view_shows"
    approve_shows = "approve_shows"
    assign_users_to_shows = "assign_users_to_shows"
    # Production houses
    manage_production_houses = "manage_production_houses"
    view_production_houses = "view_production_houses"
    manage_production_house_members = "manage_production_house_members"
    assign_production_house_roles = "assign_production_house_roles"
    # Company
    manage_company = "manage_company"
    manage_roles = "manage_roles"
    manage_recipient_groups = "manage_recipient_groups"
    view_company_settings = "view_company_settings"
    # Communication
    send_announcements = "send_announcements"
    view_announcements = "view_announcements"
    manage_announcements = "manage_announcements"
    send_messages = "send_messages"
    view_messages = "view_messages"
    # Call sheets
    manage_call_sheets = "manage_call_sheets"
    view_call_sheets = "view_call_sheets"
    generate_call_sheets = "generate_call_sheets"
    distribute_call_sheets = "distribute_call_sheets"
    # Actors & casting
    manage_actors = "manage_actors"
    view_actors = "view_actors"
    manage_character_roles = "manage_character_roles"
    assign_actors_to_characters = "assign_actors_to_characters"
    # Crew
    manage_crew = "manage_crew"
    view_crew = "view_crew"
    assign_crew_positions = "assign_crew_positions"
    manage_crew_availability = "manage_crew_availability"
    # Departments & positions
    manage_departments = "manage_departments"
    view_departments = "view_departments"
    manage_positions = "manage_positions"
    view_positions = "view_positions"
    # Calendar & scheduling
    manage_calendar = "manage_calendar"
    view_calendar = "view_calendar"
    manage_shooting_days = "manage_shooting_days"
    check_conflicts = "check_conflicts"


@dataclass(frozen=True)
class CapabilityInfo:
    capability: Capability
    display_name: str
    description: str
    category: str


def _info(capability: Capability, display_name: str, description: str, category: str) -> CapabilityInfo:
    return CapabilityInfo(capability, display_name, description, category)


CAPABILITY_CATALOG: tuple[CapabilityInfo, ...] = (
    _info(Capability.manage_scenes, "Manage Scenes", "Create, edit, and delete scenes", "Scenes"),
    _info(Capability.view_scenes, "View Scenes", "View scene information", "Scenes"),
    _info(Capability.manage_timers, "Manage Scene Timers", "Start and stop scene timers", "Scenes"),
    _info(Capability.mark_scene_complete, "Mark Scenes Complete", "Mark scenes as complete", "Scenes"),
    _info(
        Capability.edit_scene_details,
        "Edit Scene Details",
        "Edit advanced scene details like camera setup, lighting, VFX notes",
        "Scenes",
    ),
    _info(Capability.manage_scene_scheduling, "Manage Scene Scheduling", "Schedule and reschedule scenes", "Scenes"),
    _info(Capability.manage_team, "Manage Team", "Invite, edit, and remove team members", "Team"),
    _info(Capability.view_team, "View Team", "View team member information", "Team"),
    _info(Capability.edit_own_profile, "Edit Own Profile", "Edit your own profile information", "Team"),
    _info(Capability.approve_team_members, "Approve Team Members", "Approve pending team member registrations", "Team"),
    _info(
        Capability.view_team_contact_info,
        "View Team Contact Info",
        "View phone numbers and personal contact information",
        "Team",
    ),
    _info(Capability.manage_reports, "Manage Reports", "Generate and manage production reports", "Reports"),
    _info(Capability.view_reports, "View Reports", "View production reports", "Reports"),
    _info(Capability.export_reports, "Export Reports", "Export reports to PDF or other formats", "Reports"),
    _info(
        Capability.configure_report_automation,
        "Configure Report Automation",
        "Set up automated report generation and distribution",
        "Reports",
    ),
    _info(Capability.manage_shows, "Manage Shows", "Create, edit, and delete shows", "Shows"),
    _info(Capability.view_shows, "View Shows", "View show information", "Shows"),
    _info(Capability.approve_shows, "Approve Shows", "Approve or reject show requests", "Shows"),
    _info(Capability.assign_users_to_shows, "Assign Users to Shows", "Add or remove users from show teams", "Shows"),
    _info(
        Capability.manage_production_houses,
        "Manage Production Houses",
        "Create, edit, and delete production houses",
        "Production Houses",
    ),
    _info(
        Capability.view_production_houses,
        "View Production Houses",
        "View production house information",
        "Production Houses",
    ),
    _info(
        Capability.manage_production_house_members,
        "Manage Production House Members",
        "Add or remove members from production houses",
        "Production Houses",
    ),
    _info(
        Capability.assign_production_house_roles,
        "Assign Production House Roles",
        "Assign roles to production house members",
        "Production Houses",
    ),
    _info(Capability.manage_company, "Manage Company", "Edit company settings and subscription", "Company"),
    _info(Capability.manage_roles, "Manage Roles", "Create and edit custom roles", "Company"),
    _info(
        Capability.manage_recipient_groups,
        "Manage Recipient Groups",
        "Create and edit email recipient groups",
        "Company",
    ),
    _info(
        Capability.view_company_settings,
        "View Company Settings",
        "View company information and settings",
        "Company",
    ),
    _info(Capability.send_announcements, "Send Announcements", "Send announcements to cast and crew", "Communication"),
    _info(Capability.view_announcements, "View Announcements", "View announcements", "Communication"),
    _info(Capability.manage_announcements, "Manage Announcements", "Edit and delete announcements", "Communication"),
    _info(Capability.send_messages, "Send Messages", "Send messages in production messaging", "Communication"),
    _info(
        Capability.view_messages,
        "View Messages",
        "View and receive messages in production messaging",
        "Communication",
    ),
    _info(Capability.manage_call_sheets, "Manage Call Sheets", "Create, edit, and delete call sheets", "Call Sheets"),
    _info(Capability.view_call_sheets, "View Call Sheets", "View and download call sheets", "Call Sheets"),
    _info(Capability.generate_call_sheets, "Generate Call Sheets", "Generate automated call sheets", "Call Sheets"),
    _info(
        Capability.distribute_call_sheets,
        "Distribute Call Sheets",
        "Send call sheets to cast and crew",
        "Call Sheets",
    ),
    _info(Capability.manage_actors, "Manage Actors", "Add, edit, and remove actors", "Actors & Casting"),
    _info(Capability.view_actors, "View Actors", "View actor information and profiles", "Actors & Casting"),
    _info(
        Capability.manage_character_roles,
        "Manage Character Roles",
        "Create and edit character roles",
        "Actors & Casting",
    ),
    _info(
        Capability.assign_actors_to_characters,
        "Assign Actors to Characters",
        "Cast actors in character roles",
        "Actors & Casting",
    ),
    _info(Capability.manage_crew, "Manage Crew", "Add, edit, and remove crew members", "Crew Management"),
    _info(Capability.view_crew, "View Crew", "View crew member information", "Crew Management"),
    _info(
        Capability.assign_crew_positions,
        "Assign Crew Positions",
        "Assign crew to departments and positions",
        "Crew Management",
    ),
    _info(
        Capability.manage_crew_availability,
        "Manage Crew Availability",
        "Track and manage crew availability",
        "Crew Management",
    ),
    _info(
        Capability.manage_departments,
        "Manage Departments",
        "Create, edit, and delete departments",
        "Departments & Positions",
    ),
    _info(Capability.view_departments, "View Departments", "View department information", "Departments & Positions"),
    _info(
        Capability.manage_positions,
        "Manage Positions",
        "Create, edit, and delete positions within departments",
        "Departments & Positions",
    ),
    _info(Capability.view_positions, "View Positions", "View position information", "Departments & Positions"),
    _info(
        Capability.manage_calendar,
        "Manage Calendar",
        "Edit production calendar and scheduling",
        "Calendar & Scheduling",
    ),
    _info(
        Capability.view_calendar,
        "View Calendar",
        "View production calendar and schedule",
        "Calendar & Scheduling",
    ),
    _info(
        Capability.manage_shooting_days,
        "Manage Shooting Days",
        "Plan and organize shooting days",
        "Calendar & Scheduling",
    ),
    _info(
        Capability.check_conflicts,
        "Check Scheduling Conflicts",
        "View and resolve scheduling conflicts",
        "Calendar & Scheduling",
    ),
)

ALL_CAPABILITIES: frozenset[Capability] = frozenset(Capability)

_MANAGER_CAPABILITIES = frozenset(
    {
        Capability.manage_scenes,
        Capability.view_scenes,
        Capability.manage_timers,
        Capability.mark_scene_complete,
        Capability.edit_scene_details,
        Capability.manage_scene_scheduling,
        Capability.manage_team,
        Capability.view_team,
        Capability.approve_team_members,
        Capability.view_team_contact_info,
        Capability.manage_reports,
        Capability.view_reports,
        Capability.export_reports,
        Capability.manage_shows,
        Capability.view_shows,
        Capability.assign_users_to_shows,
        Capability.view_production_houses,
        Capability.manage_production_house_members,
        Capability.view_company_settings,
        Capability.send_announcements,
        Capability.view_announcements,
        Capability.manage_announcements,
        Capability.send_messages,
        Capability.view_messages,
        Capability.manage_call_sheets,
        Capability.view_call_sheets,
        Capability.generate_call_sheets,
        Capability.distribute_call_sheets,
        Capability.manage_actors,
        Capability.view_actors,
        Capability.manage_character_roles,
        Capability.assign_actors_to_characters,
        Capability.manage_crew,
        Capability.view_crew,
        Capability.assign_crew_positions,
        Capability.manage_crew_availability,
        Capability.manage_departments,
        Capability.view_departments,
        Capability.manage_positions,
        Capability.view_positions,
        Capability.manage_calendar,
        Capability.view_calendar,
        Capability.manage_shooting_days,
        Capability.check_conflicts,
        Capability.edit_own_profile,
    }
)

_VIEWER_CAPABILITIES = frozenset(
    {
        Capability.view_scenes,
        Capability.view_team,
        Capability.view_reports,
        Capability.view_shows,
        Capability.view_production_houses,
        Capability.view_company_settings,
        Capability.view_announcements,
        Capability.view_messages,
        Capability.view_call_sheets,
        Capability.view_actors,
        Capability.view_crew,
        Capability.view_departments,
        Capability.view_positions,
        Capability.view_calendar,
        Capability.edit_own_profile,
    }
)

_ACTOR_CAPABILITIES = frozenset(
    {
        Capability.view_scenes,
        Capability.edit_own_profile,
        Capability.view_shows,
        Capability.view_production_houses,
        Capability.view_announcements,
        Capability.view_messages,
        Capability.view_call_sheets,
        Capability.view_calendar,
    }
)

_CREW_CAPABILITIES = frozenset(
    {
        Capability.view_scenes,
        Capability.edit_own_profile,
        Capability.view_shows,
        Capability.view_production_houses,
        Capability.view_announcements,
        Capability.view_messages,
        Capability.send_messages,
        Capability.view_team,
        Capability.view_call_sheets,
        Capability.view_actors,
        Capability.view_crew,
        Capability.view_calendar,
    }
)

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.developer: ALL_CAPABILITIES,
    UserRole.admin: ALL_CAPABILITIES,
    UserRole.manager: _MANAGER_CAPABILITIES,
    UserRole.viewer: _VIEWER_CAPABILITIES,
    UserRole.actor: _ACTOR_CAPABILITIES,
    UserRole.crew: _CREW_CAPABILITIES,
}


class BadgeTone(str, Enum):
    purple = "purple"
    gold = "gold"
    amber = "amber"
    slate = "slate"
    blue = "blue"
    emerald = "emerald"


@dataclass(frozen=True)
class RoleBadge:
    label: str
    tone: BadgeTone


ROLE_BADGES: dict[UserRole, RoleBadge] = {
    UserRole.developer: RoleBadge("Developer", BadgeTone.purple),
    UserRole.admin: RoleBadge("Admin", BadgeTone.gold),
    UserRole.manager: RoleBadge("Manager", BadgeTone.amber),
    UserRole.viewer: RoleBadge("Viewer", BadgeTone.slate),
    UserRole.actor: RoleBadge("Actor", BadgeTone.blue),
    UserRole.crew: RoleBadge("Crew", BadgeTone.emerald),
}


def capabilities_for_role(role: UserRole) -> frozenset[Capability]:
    return ROLE_CAPABILITIES.get(role, frozenset())


class Authorizer:
    """Capability checks for one authenticated user within one request."""

    def __init__(self, *, user_id: int, company_id: int, role: UserRole, capabilities: Iterable[Capability]):
        self.user_id = user_id
        self.company_id = company_id
        self.role = role
        self._capabilities = frozenset(capabilities)

    @classmethod
    def for_user(cls, user: User) -> "Authorizer":
        return cls(
            user_id=user.id,
            company_id=user.company_id,
            role=user.role,
            capabilities=capabilities_for_role(user.role),
        )

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    def has(self, capability: Capability) -> bool:
        return capability in self._capabilities

    def has_any(self, *capabilities: Capability) -> bool:
        return any(item in self._capabilities for item in capabilities)

    def require(self, capability: Capability) -> None:
        if not self.has(capability):
            raise PermissionDeniedError(details={"required": capability.value})

    def require_company(self, company_id: int, message: str = "Access denied") -> None:
        if company_id != self.company_id:
            raise PermissionDeniedError(message)

    def can_manage_scenes(self) -> bool:
        return self.has(Capability.manage_scenes)

    def can_view_scenes(self) -> bool:
        return self.has(Capability.view_scenes)

    def can_manage_timers(self) -> bool:
        return self.has(Capability.manage_timers)

    def can_mark_scene_complete(self) -> bool:
        return self.has(Capability.mark_scene_complete)

    def can_manage_team(self) -> bool:
        return self.has(Capability.manage_team)

    def can_view_team_page(self) -> bool:
        return self.has_any(Capability.manage_team, Capability.view_team)

    def can_view_calendar(self) -> bool:
        return self.has(Capability.view_calendar)

    def can_check_conflicts(self) -> bool:
        return self.has(Capability.check_conflicts)

    def can_grant_role(self, role: UserRole) -> bool:
        if role == UserRole.developer:
            return self.role == UserRole.developer
        return self.can_manage_team()
