from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from projecthub.db.base import Base
import projecthub.models.entities  # noqa: F401

VERSIONS_DIR = Path(__file__).resolve().parents[1] / "alembic" / "versions"


def _load_revision(filename: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"migration_{filename[:-3]}", VERSIONS_DIR / filename)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_schema_matches_models() -> None:
    revision = _load_revision("20260301_0001_initial_schema.py")
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            revision.upgrade()

        inspector = inspect(connection)
        tables = set(inspector.get_table_names())
        assert tables == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            migrated = {column["name"] for column in inspector.get_columns(name)}
            assert migrated == set(table.columns.keys()), name

        with Operations.context(context):
            revision.downgrade()

        assert inspect(connection).get_table_names() == []


def test_revision_chain_starts_here() -> None:
    revision = _load_revision("20260301_0001_initial_schema.py")

    assert revision.revision == "20260301_0001"
    assert revision.down_revision is None
