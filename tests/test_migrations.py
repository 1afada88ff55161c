"""
Tests for database migration integrity.
These tests ensure migrations can be applied and rolled back properly.
"""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def alembic_config(tmp_path):
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{tmp_path / 'migrations.db'}")
    config.attributes["configure_logger"] = False
    return config


def test_upgrade_creates_expected_tables(alembic_config):
    command.upgrade(alembic_config, "head")

    engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
    inspector = inspect(engine)
    assert {"chat_members", "chat_settings", "teams", "team_members"} <= set(
        inspector.get_table_names()
    )
    indexes = {index["name"] for index in inspector.get_indexes("chat_members")}
    assert "idx_chat_members_chat_first_seen" in indexes
    engine.dispose()


def test_downgrade_removes_tables(alembic_config):
    command.upgrade(alembic_config, "head")
    command.downgrade(alembic_config, "base")

    engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
    assert inspect(engine).get_table_names() == ["alembic_version"]
    engine.dispose()


def test_migration_matches_models(alembic_config):
    """Columns created by the migration match the SQLModel tables."""
    from sqlmodel import SQLModel
    import tagbot.models  # noqa: F401

    command.upgrade(alembic_config, "head")

    engine = create_engine(alembic_config.get_main_option("sqlalchemy.url"))
    inspector = inspect(engine)
    for table_name in ("chat_members", "chat_settings", "teams", "team_members"):
        migrated = {column["name"] for column in inspector.get_columns(table_name)}
        modelled = {column.name for column in SQLModel.metadata.tables[table_name].columns}
        assert migrated == modelled, table_name
    engine.dispose()
