# backend/tests/test_migrations.py
import argparse
import os

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from garagehub.models import Base

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def test_upgrade_head_builds_every_table(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = Config(os.path.join(BACKEND_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(BACKEND_DIR, "alembic"))
    cfg.cmd_opts = argparse.Namespace(x=[f"db_url={url}"])

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert set(Base.metadata.tables) <= tables
    assert "alembic_version" in tables
