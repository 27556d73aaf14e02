import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from app.db import bootstrap


@pytest.fixture
def scratch_engine(monkeypatch):
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(bootstrap, "engine", engine)
    yield engine
    engine.dispose()


def test_bootstrap_creates_required_tables(scratch_engine):
    bootstrap.ensure_runtime_schema_compatibility()

    table_names = set(inspect(scratch_engine).get_table_names())
    assert set(bootstrap.REQUIRED_COLUMNS) <= table_names


def test_bootstrap_rejects_outdated_scene_table(scratch_engine):
    with scratch_engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE scenes (id INTEGER PRIMARY KEY, company_id INTEGER, show_id INTEGER, "
                "scene_number VARCHAR(50), scheduled_time DATETIME, duration_minutes INTEGER, "
                "assigned_actors TEXT, assigned_crew TEXT)"
            )
        )

    with pytest.raises(RuntimeError) as excinfo:
        bootstrap.ensure_runtime_schema_compatibility()

    assert "scenes.timer_start" in str(excinfo.value.__cause__)
