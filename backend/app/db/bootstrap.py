from __future__ import annotations

import logging

from sqlalchemy import inspect

import app.models  # noqa: F401
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "companies": {"id", "name"},
    "users": {"id", "company_id", "email", "role", "is_active"},
    "shows": {"id", "company_id", "title", "status"},
    "scenes": {
        "id",
        "company_id",
        "show_id",
        "scene_number",
        "scheduled_time",
        "duration_minutes",
        "assigned_actors",
        "assigned_crew",
        "timer_start",
        "timer_end",
        "actual_duration_minutes",
    },
    "activity_logs": {"id", "company_id", "action"},
}


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
