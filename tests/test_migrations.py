"""Tests for the Alembic revision scripts."""

import importlib.util
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from okrkeeper.models import Base

VERSIONS = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def load_revision(filename: str):
    module_spec = importlib.util.spec_from_file_location(filename.removesuffix(".py"), VERSIONS / filename)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
def connection():
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        yield conn
    engine.dispose()


def run(connection, step):
    context = MigrationContext.configure(connection)
    with Operations.context(context):
        step()


class TestInitialSchema:
    """Tests for 0001_initial_schema."""

    def test_revision_is_root(self):
        revision = load_revision("0001_initial_schema.py")
        assert revision.revision == "0001"
        assert revision.down_revision is None

    def test_upgrade_matches_models(self, connection):
        """Every mapped table and column exists after upgrade."""
        run(connection, load_revision("0001_initial_schema.py").upgrade)
        inspector = inspect(connection)

        assert set(inspector.get_table_names()) == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            columns = {column["name"] for column in inspector.get_columns(name)}
            assert columns == {column.name for column in table.columns}, name

    def test_upgrade_creates_pending_invitation_index(self, connection):
        run(connection, load_revision("0001_initial_schema.py").upgrade)
        indexes = {
            index["name"]: index for index in inspect(connection).get_indexes("invitations")
        }

        assert indexes["uq_pending_invitation"]["unique"]
        assert indexes["uq_pending_invitation"]["column_names"] == ["team_id", "invited_email"]

    def test_downgrade_drops_everything(self, connection):
        revision = load_revision("0001_initial_schema.py")
        run(connection, revision.upgrade)
        run(connection, revision.downgrade)

        assert inspect(connection).get_table_names() == []
