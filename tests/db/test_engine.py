"""
Engine setup and transactional scope (ledger_kernel/db/engine.py).
"""

import pytest
from sqlalchemy import inspect, text

from ledger_kernel.db import engine as engine_module
from ledger_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    is_postgres,
    reset_engine,
    session_scope,
)
from ledger_kernel.models.organization import Organization


@pytest.fixture
def module_engine():
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield engine
    reset_engine()


class TestBuildEngine:

    def test_sqlite_foreign_keys_enabled(self, engine):
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar_one() == 1

    def test_tables_created(self, engine):
        tables = set(inspect(engine).get_table_names())
        assert {"companies", "accounts", "periods", "journal_entries", "company_sequences"} <= tables

    def test_unsupported_backend(self):
        with pytest.raises(ValueError):
            build_engine("mysql://localhost/ledger")


class TestModuleEngine:

    def test_not_initialized(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
        assert not is_postgres()

    def test_session_scope_commits(self, module_engine):
        with session_scope() as session:
            session.add(Organization(id="scoped", full_name="Scoped"))

        with get_session() as session:
            assert session.get(Organization, "scoped") is not None

    def test_session_scope_rolls_back(self, module_engine):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(Organization(id="doomed", full_name="Doomed"))
                session.flush()
                raise RuntimeError("abort")

        with get_session() as session:
            assert session.get(Organization, "doomed") is None

    def test_drop_tables(self, module_engine):
        drop_tables()
        assert inspect(get_engine()).get_table_names() == []

    def test_reset(self, module_engine):
        reset_engine()
        assert engine_module._engine is None
        assert engine_module._SessionFactory is None
