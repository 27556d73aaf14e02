"""Seed a demo production company with one account per role and a day of scenes.

Run:
  PYTHONPATH=backend python scripts/seed_demo_production.py
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import os
from typing import Iterable

from sqlalchemy import select

from app.core.config import get_settings
from app.core.permissions import ROLE_BADGES
from app.core.security import get_password_hash
from app.db.bootstrap import ensure_runtime_schema_compatibility
from app.db.session import SessionLocal
from app.models.company import Company
from app.models.scene import Scene
from app.models.show import Show, ShowStatus
from app.models.user import User, UserRole
from app.services.conflict_service import encode_personnel, get_conflicts_for_scenes

DEFAULT_PASSWORD = os.getenv("DEMO_PASSWORD", "DemoPass123!")
COMPANY_NAME = os.getenv("DEMO_COMPANY", "Demo Pictures")
SHOW_TITLE = "The Long Take"
SHOOT_DAY = datetime(2026, 11, 2, 7, 0, tzinfo=timezone.utc)


def _env_email(key: str, default: str) -> str:
    value = os.getenv(key, "").strip()
    return value or default


DEMO_ACCOUNTS = {
    "admin": ("Demo Admin", _env_email("DEMO_ADMIN_EMAIL", "admin.demo@slate.example.com"), UserRole.admin),
    "manager": ("Demo Line Producer", _env_email("DEMO_MANAGER_EMAIL", "manager.demo@slate.example.com"), UserRole.manager),
    "viewer": ("Demo Viewer", _env_email("DEMO_VIEWER_EMAIL", "viewer.demo@slate.example.com"), UserRole.viewer),
    "actor_1": ("Demo Lead", _env_email("DEMO_ACTOR1_EMAIL", "lead.demo@slate.example.com"), UserRole.actor),
    "actor_2": ("Demo Supporting", _env_email("DEMO_ACTOR2_EMAIL", "support.demo@slate.example.com"), UserRole.actor),
    "crew": ("Demo Gaffer", _env_email("DEMO_CREW_EMAIL", "gaffer.demo@slate.example.com"), UserRole.crew),
}


def _upsert_company() -> Company:
    with SessionLocal() as session:
        company = session.execute(select(Company).where(Company.name == COMPANY_NAME)).scalar_one_or_none()
        if company is None:
            company = Company(name=COMPANY_NAME)
            session.add(company)
            session.commit()
            session.refresh(company)
        return company


def _upsert_user(*, company_id: int, name: str, email: str, role: UserRole) -> User:
    with SessionLocal() as session:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing is None:
            existing = User(
                company_id=company_id,
                name=name,
                email=email,
                hashed_password=get_password_hash(DEFAULT_PASSWORD),
                role=role,
                is_active=True,
            )
            session.add(existing)
        else:
            existing.company_id = company_id
            existing.name = name
            existing.role = role
            existing.is_active = True
        session.commit()
        session.refresh(existing)
        return existing


def _reset_show(company_id: int, created_by_id: int, users: dict[str, User]) -> list[int]:
    lead = users["actor_1"].id
    support = users["actor_2"].id
    gaffer = users["crew"].id
    # (scene number, title, location, offset minutes, duration, actors, crew)
    plan = [
        ("1", "Cold open", "Harbor Pier", 0, 90, [lead], [gaffer]),
        ("2", "Market chase", "Old Town", 60, 60, [support], [gaffer]),
        ("3", "Rooftop talk", "Studio B", 240, 45, [lead, support], []),
        ("4", "Night drive", "Studio B", 270, None, [], []),
        ("5", "Epilogue", "Harbor Pier", 480, 30, [lead], [gaffer]),
    ]
    with SessionLocal() as session:
        show = session.execute(
            select(Show).where(Show.company_id == company_id, Show.title == SHOW_TITLE)
        ).scalar_one_or_none()
        if show is not None:
            for scene in session.execute(select(Scene).where(Scene.show_id == show.id)).scalars():
                session.delete(scene)
            session.delete(show)
            session.flush()

        show = Show(
            company_id=company_id,
            title=SHOW_TITLE,
            status=ShowStatus.shooting,
            start_date=SHOOT_DAY.date(),
            created_by_id=created_by_id,
        )
        session.add(show)
        session.flush()

        scenes: list[Scene] = []
        for number, title, location, offset, duration, actors, crew in plan:
            scenes.append(
                Scene(
                    company_id=company_id,
                    show_id=show.id,
                    scene_number=number,
                    title=title,
                    location=location,
                    scheduled_time=SHOOT_DAY + timedelta(minutes=offset),
                    duration_minutes=duration,
                    shooting_day_number=1,
                    assigned_actors=encode_personnel(actors),
                    assigned_crew=encode_personnel(crew),
                )
            )
        session.add_all(scenes)
        session.commit()
        return [scene.id for scene in scenes]


def _print_summary(users: Iterable[tuple[str, User]], company_id: int, scene_ids: list[int]) -> None:
    print("\nDemo accounts ready:")
    for label, user in users:
        print(f"  - {label}: {user.email} | role={ROLE_BADGES[user.role].label}")
    print(f"\nPassword for all demo accounts: {DEFAULT_PASSWORD}")

    with SessionLocal() as session:
        conflict_map = get_conflicts_for_scenes(
            session,
            scene_ids,
            company_id,
            default_duration_minutes=get_settings().scene_default_duration_minutes,
        )
    print("\nScheduling conflicts on the demo shoot day:")
    for scene_id, conflicts in conflict_map.items():
        for conflict in conflicts:
            shared = f" shared={conflict.conflicting_resources}" if conflict.conflicting_resources else ""
            print(
                f"  - scene {conflict.scene_number} vs {conflict.conflicting_scene_number}: "
                f"{conflict.conflict_type}{shared}"
            )


def main() -> None:
    ensure_runtime_schema_compatibility()
    company = _upsert_company()
    created_users: dict[str, User] = {}
    for key, (name, email, role) in DEMO_ACCOUNTS.items():
        created_users[key] = _upsert_user(company_id=company.id, name=name, email=email, role=role)

    scene_ids = _reset_show(company.id, created_users["admin"].id, created_users)
    _print_summary(created_users.items(), company.id, scene_ids)


if __name__ == "__main__":
    main()
