"""Tests for init_db() migration logic."""

from unittest.mock import patch

import pytest


@pytest.mark.asyncio
async def test_init_db_upgrades_to_head():
    """init_db runs the Alembic upgrade to head with the configured URL."""
    with (
        patch("alembic.command.upgrade") as mock_upgrade,
        patch("pathlib.Path.exists", return_value=True),
    ):
        from cavok.database import init_db, settings

        await init_db()

        mock_upgrade.assert_called_once()
        cfg, target = mock_upgrade.call_args[0]
        assert target == "head"
        assert cfg.get_main_option("sqlalchemy.url") == settings.database_url


@pytest.mark.asyncio
async def test_init_db_missing_config():
    """A missing alembic.ini is reported instead of silently skipping migrations."""
    with (
        patch("alembic.command.upgrade") as mock_upgrade,
        patch("pathlib.Path.exists", return_value=False),
    ):
        from cavok.database import init_db

        with pytest.raises(FileNotFoundError):
            await init_db()

        mock_upgrade.assert_not_called()


@pytest.mark.asyncio
async def test_init_db_propagates_migration_failure():
    """Migration errors surface to the caller."""
    with (
        patch("alembic.command.upgrade", side_effect=RuntimeError("boom")),
        patch("pathlib.Path.exists", return_value=True),
    ):
        from cavok.database import init_db

        with pytest.raises(RuntimeError, match="boom"):
            await init_db()
