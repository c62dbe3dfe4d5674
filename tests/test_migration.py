"""
Runs the initial Alembic revision against an in-memory SQLite database.
"""
import importlib.util
from pathlib import Path
from types import ModuleType

import pytest
import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

import crowdfund.database

TABLES = {"users", "campaigns", "campaign_images", "transactions"}


def load_revision() -> ModuleType:
    path = (
        Path(crowdfund.database.__file__).parent
        / "migrations"
        / "versions"
        / "001_initial_schema.py"
    )
    spec = importlib.util.spec_from_file_location("initial_schema", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.unit
def test_upgrade_then_downgrade() -> None:
    revision = load_revision()
    engine = sa.create_engine("sqlite://")

    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            revision.upgrade()

        inspector = sa.inspect(conn)
        assert TABLES <= set(inspector.get_table_names())
        email_index = next(
            index for index in inspector.get_indexes("users") if index["name"] == "ix_users_email"
        )
        assert email_index["unique"]

        with Operations.context(MigrationContext.configure(conn)):
            revision.downgrade()

        assert not TABLES & set(sa.inspect(conn).get_table_names())

    engine.dispose()
