# tests/test_migrations.py
import importlib.util
import io
from pathlib import Path

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations

VERSIONS = Path(__file__).resolve().parents[1] / "alembic" / "versions"
INITIAL_REVISION = "3f1c2a7d9e40_create_scheduling_tables"


def load_revision(name):
    spec = importlib.util.spec_from_file_location(name, VERSIONS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def render_upgrade(dialect_name: str) -> str:
    """Run the upgrade in offline mode and return the emitted SQL."""
    buffer = io.StringIO()
    context = MigrationContext.configure(
        dialect_name=dialect_name, opts={"as_sql": True, "output_buffer": buffer}
    )
    with Operations.context(context):
        load_revision(INITIAL_REVISION).upgrade()
    return buffer.getvalue()


@pytest.mark.parametrize("dialect_name", ["postgresql", "sqlite"])
def test_active_slot_index_is_partial(dialect_name):
    statements = [s.strip() for s in render_upgrade(dialect_name).split(";")]
    [index] = [s for s in statements if "INDEX uq_appointments_active_slot" in s]
    assert index.startswith("CREATE UNIQUE INDEX")
    assert "WHERE status IN ('pending', 'confirmed')" in index
