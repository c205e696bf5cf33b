"""Unit tests for the Alembic schema migrations."""

import importlib.util
from pathlib import Path
from types import ModuleType
from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa

MIGRATION = (
    Path(__file__).resolve().parents[2]
    / "alembic"
    / "versions"
    / "001_create_oauth_tables.py"
)


def load_migration() -> ModuleType:
    spec = importlib.util.spec_from_file_location("migration_001", MIGRATION)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def created_columns(monkeypatch: pytest.MonkeyPatch, table: str) -> dict[str, sa.Column]:
    module = load_migration()
    op = MagicMock()
    op.f.side_effect = lambda name: name
    monkeypatch.setattr(module, "op", op)

    module.upgrade()

    for call in op.create_table.call_args_list:
        if call.args[0] == table:
            return {c.name: c for c in call.args[1:] if isinstance(c, sa.Column)}
    raise AssertionError(f"{table} was not created")


class TestCreateOAuthTables:
    """Test the initial OAuth2 schema."""

    def test_token_user_id_is_free_text(self, monkeypatch: pytest.MonkeyPatch) -> None:
        columns = created_columns(monkeypatch, "oauth_tokens")

        user_id = columns["user_id"]
        assert isinstance(user_id.type, sa.Text)
        assert user_id.nullable is True

    def test_token_client_and_hash_are_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        columns = created_columns(monkeypatch, "oauth_tokens")

        assert columns["client_db_id"].nullable is False
        assert columns["access_token_hash"].nullable is False
