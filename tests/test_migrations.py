from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from equitystek.db import Base

ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_head_creates_every_table(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "equitystek" / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)
    cfg.attributes["configure_logger"] = False

    command.upgrade(cfg, "head")

    engine = create_engine(url)
    try:
        insp = inspect(engine)
        tables = set(insp.get_table_names())
        assert set(Base.metadata.tables) <= tables
        assert "alembic_version" in tables

        for name, table in Base.metadata.tables.items():
            cols = {c["name"] for c in insp.get_columns(name)}
            assert {c.name for c in table.columns} == cols, name
    finally:
        engine.dispose()
