from __future__ import annotations

import argparse
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parent.parent


def _alembic_config(url: str) -> Config:
    # No ini file: keeps alembic from reconfiguring logging mid-session
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.cmd_opts = argparse.Namespace(x=[f"url={url}"])
    return config


class TestMigrations:
    """Alembic upgrade/downgrade against a throwaway SQLite file."""

    def test_upgrade_and_downgrade(self, tmp_path):
        db_file = tmp_path / "statsync.db"
        config = _alembic_config(f"sqlite+aiosqlite:///{db_file}")
        sync_engine = create_engine(f"sqlite:///{db_file}")

        try:
            command.upgrade(config, "head")

            inspector = inspect(sync_engine)
            assert "integration_credentials" in inspector.get_table_names()
            columns = {c["name"] for c in inspector.get_columns("integration_credentials")}
            assert {"tenant_id", "provider", "refresh_error_count", "config"} <= columns
            unique = inspector.get_unique_constraints("integration_credentials")
            assert any(set(u["column_names"]) == {"tenant_id", "provider"} for u in unique)

            command.downgrade(config, "base")

            assert "integration_credentials" not in inspect(sync_engine).get_table_names()
        finally:
            sync_engine.dispose()

    def test_refuses_in_memory_database(self):
        with pytest.raises(RuntimeError):
            command.upgrade(_alembic_config("sqlite+aiosqlite:///:memory:"), "head")
