"""Unit tests for Engine."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from counter_cache.core.connection import ConnectionConfig, ConnectionManager
from counter_cache.core.engine import Engine
from counter_cache.core.enums import Dialect
from counter_cache.core.exceptions import MultipleRowsError, StatementError
from counter_cache.mapping.threaded import ThreadedMapper
from counter_cache.query.spec import Assignment, Insert, Select, Statement, Update


@pytest.fixture
def engine() -> Iterator[Engine]:
    """Create an engine over a small tags table in SQLite in-memory DB."""
    config = ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)
    manager = ConnectionManager(config)
    eng = Engine(manager)

    # Create the table using raw connection
    with manager.get_connection() as conn:
        conn.execute(
            "CREATE TABLE tags (id INTEGER PRIMARY KEY, parent_id INTEGER, name TEXT, "
            "post_count INTEGER DEFAULT 0)"
        )
        conn.execute("INSERT INTO tags (id, parent_id, name) VALUES (1, NULL, 'python')")
        conn.execute("INSERT INTO tags (id, parent_id, name) VALUES (2, 1, 'django')")
        conn.commit()

    yield eng
    manager.close_pool()


class TestEngine:
    def test_dialect(self, engine: Engine) -> None:
        assert engine.dialect is Dialect.SQLITE

    def test_from_config(self) -> None:
        eng = Engine.from_config(ConnectionConfig(driver="sqlite", database=":memory:"))
        assert eng.dialect is Dialect.SQLITE

    def test_fetch_one_returns_dict(self, engine: Engine) -> None:
        result = engine.fetch_one(Select(table="tags", where=("id = :id",), params={"id": 1}))
        assert result is not None
        assert result["name"] == "python"

    def test_fetch_one_returns_none_on_zero_rows(self, engine: Engine) -> None:
        result = engine.fetch_one(Select(table="tags", where=("id = :id",), params={"id": 99}))
        assert result is None

    def test_fetch_one_raises_multiple_rows(self, engine: Engine) -> None:
        with pytest.raises(MultipleRowsError) as exc_info:
            engine.fetch_one(Select(table="tags", label="tags.all"))
        assert exc_info.value.label == "tags.all"
        assert exc_info.value.row_count == 2

    def test_fetch_all_returns_list_of_dicts(self, engine: Engine) -> None:
        results = engine.fetch_all(Select(table="tags", fields=("name",), order_by=("id",)))
        assert results == [{"name": "python"}, {"name": "django"}]

    def test_fetch_all_with_mapper(self, engine: Engine) -> None:
        roots = engine.fetch_all(Select(table="tags", order_by=("id",)), mapper=ThreadedMapper())
        assert len(roots) == 1
        assert roots[0].children[0].row["name"] == "django"

    def test_fetch_scalar(self, engine: Engine) -> None:
        assert engine.fetch_scalar(Statement("SELECT COUNT(*) FROM tags")) == 2

    def test_fetch_scalar_no_row(self, engine: Engine) -> None:
        assert engine.fetch_scalar(Statement("SELECT id FROM tags WHERE id = 99")) is None

    def test_fetch_scalar_commits_returning_insert(self, engine: Engine) -> None:
        new_id = engine.fetch_scalar(
            Insert(table="tags", values={"id": 3, "name": "sql"}, returning="id")
        )
        assert new_id == 3
        # The pool's only connection must not hold an open transaction
        with engine.connection_manager.get_connection() as conn:
            assert conn.in_transaction is False
        assert engine.fetch_scalar(Statement("SELECT COUNT(*) FROM tags")) == 3

    def test_fetch_scalar_failed_write_rolls_back(self, engine: Engine) -> None:
        with pytest.raises(StatementError):
            engine.fetch_scalar(
                Insert(table="tags", values={"id": 1, "name": "duplicate"}, returning="id")
            )
        with engine.connection_manager.get_connection() as conn:
            assert conn.in_transaction is False

    def test_execute_returns_row_count(self, engine: Engine) -> None:
        affected = engine.execute(
            Update(table="tags", assignments=(Assignment("post_count", "5"),), label="tags.bump")
        )
        assert affected == 2

    def test_execute_commits(self, engine: Engine) -> None:
        engine.execute(Insert(table="tags", values={"id": 3, "name": "sql"}))
        assert engine.fetch_scalar(Statement("SELECT COUNT(*) FROM tags")) == 3

    def test_driver_errors_are_wrapped(self, engine: Engine) -> None:
        with pytest.raises(StatementError, match="missing.table") as exc_info:
            engine.fetch_all(Select(table="missing", label="missing.table"))
        assert exc_info.value.label == "missing.table"
        assert exc_info.value.__cause__ is not None

    def test_failed_write_rolls_back(self, engine: Engine) -> None:
        with pytest.raises(StatementError):
            engine.execute(Insert(table="tags", values={"id": 1, "name": "duplicate"}))
        assert engine.fetch_scalar(Statement("SELECT COUNT(*) FROM tags")) == 2

    def test_table_columns(self, engine: Engine) -> None:
        assert engine.table_columns("tags") == ["id", "parent_id", "name", "post_count"]
        assert engine.table_columns("missing") == []
