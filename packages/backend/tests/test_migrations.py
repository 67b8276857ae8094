"""Alembic migration tests against a throwaway SQLite file."""

from argparse import Namespace
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

import taskvault

MIGRATIONS_DIR = Path(taskvault.__file__).parent / "db" / "migrations"


def _alembic_config(db_path: Path) -> Config:
    cfg = Config(cmd_opts=Namespace(x=[f"dburl=sqlite+aiosqlite:///{db_path}"]))
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    return cfg


def test_upgrade_creates_schema(tmp_path):
    db_path = tmp_path / "migrated.db"
    command.upgrade(_alembic_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        insp = inspect(engine)
        assert {"users", "tasks", "alembic_version"} <= set(insp.get_table_names())

        users = {c["name"]: c for c in insp.get_columns("users")}
        assert users["password_hash"]["nullable"] is False
        assert {i["name"] for i in insp.get_indexes("tasks")} == {"ix_tasks_user_created"}
    finally:
        engine.dispose()


def test_downgrade_drops_schema(tmp_path):
    db_path = tmp_path / "migrated.db"
    cfg = _alembic_config(db_path)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
