"""Unit tests for StatementCompiler and the generated counter statements."""

from __future__ import annotations

import pytest

from counter_cache.core.enums import Dialect, JoinType
from counter_cache.core.exceptions import ConfigurationError
from counter_cache.habtm.config import AssociationConfig
from counter_cache.habtm.models import Association, OwnerModel
from counter_cache.habtm.recompute import counter_update, under_count_query
from counter_cache.query.compiler import StatementCompiler
from counter_cache.query.spec import Assignment, Delete, Exists, Insert, Join, Select, Statement, Update

TAG = Association(
    name="Tag",
    related_table="tags",
    join_table="posts_tags",
    foreign_key="post_id",
    association_foreign_key="tag_id",
)
CATEGORY = Association(
    name="Category",
    related_table="categories",
    join_table="posts_categories",
    foreign_key="post_id",
    association_foreign_key="category_id",
)
POST = OwnerModel(name="Post", table="posts", associations=(TAG, CATEGORY))

UNDER_SQL = (
    "SELECT n.id AS node_id, COUNT(DISTINCT j.post_id) AS under_count "
    "FROM categories AS n "
    "LEFT JOIN categories AS m ON n.lft <= m.lft AND n.rght >= m.rght "
    "LEFT JOIN posts_categories AS j ON j.category_id = m.id "
    "WHERE EXISTS (SELECT 1 FROM categories AS p "
    "WHERE p.id IN (:pending_0) AND n.lft <= p.lft AND n.rght >= p.rght) "
    "GROUP BY n.id"
)
DIRECT_SQL = "SELECT COUNT(*) FROM posts_categories AS j WHERE j.category_id = categories.id"


def tag_config(**overrides) -> AssociationConfig:
    settings = {"direct_count_field": "post_count", "under_count_field": None, "scope": None}
    settings.update(overrides)
    return AssociationConfig(owner=POST, association=TAG, **settings)


def category_config(**overrides) -> AssociationConfig:
    settings = {
        "direct_count_field": "post_count",
        "under_count_field": "under_post_count",
        "scope": None,
    }
    settings.update(overrides)
    return AssociationConfig(owner=POST, association=CATEGORY, **settings)


class TestSelect:
    def test_plain(self) -> None:
        statement = StatementCompiler(Dialect.SQLITE).compile(
            Select(table="tags", fields=("id", "name"), where=("id = :id",), params={"id": 1})
        )
        assert statement.sql == "SELECT id, name FROM tags WHERE id = :id"
        assert statement.params == {"id": 1}

    def test_join_group_order(self) -> None:
        spec = Select(
            table="tags",
            alias="t",
            fields=("t.id", "COUNT(*) AS n"),
            joins=(Join(JoinType.LEFT, "posts_tags", "j", ("j.tag_id = t.id",)),),
            group_by=("t.id",),
            order_by=("t.id",),
            label="tags.usage",
        )
        statement = StatementCompiler(Dialect.POSTGRESQL).compile(spec)
        assert statement.sql == (
            "SELECT t.id, COUNT(*) AS n FROM tags AS t "
            "LEFT JOIN posts_tags AS j ON j.tag_id = t.id GROUP BY t.id ORDER BY t.id"
        )
        assert statement.label == "tags.usage"

    def test_exists_collects_nested_params(self) -> None:
        spec = Select(
            table="tags",
            where=(
                Exists(
                    Select(
                        table="posts_tags",
                        fields=("1",),
                        where=("post_id = :post",),
                        params={"post": 4},
                    )
                ),
            ),
        )
        statement = StatementCompiler(Dialect.SQLITE).compile(spec)
        assert statement.sql == (
            "SELECT * FROM tags WHERE EXISTS (SELECT 1 FROM posts_tags WHERE post_id = :post)"
        )
        assert statement.params == {"post": 4}

    def test_conflicting_params_rejected(self) -> None:
        spec = Select(
            table="tags",
            where=("id = :id", Exists(Select(table="posts_tags", params={"id": 2}))),
            params={"id": 1},
        )
        with pytest.raises(ConfigurationError, match="'id'"):
            StatementCompiler(Dialect.SQLITE).compile(spec)

    def test_unknown_spec(self) -> None:
        with pytest.raises(TypeError):
            StatementCompiler(Dialect.SQLITE).compile(Statement("SELECT 1"))  # type: ignore[arg-type]


class TestUpdate:
    def test_without_assignments(self) -> None:
        with pytest.raises(ConfigurationError):
            StatementCompiler(Dialect.SQLITE).compile(Update(table="tags", assignments=()))

    def test_scalar_subquery_assignment(self) -> None:
        spec = Update(
            table="tags",
            assignments=(Assignment("post_count", Select(table="posts_tags", fields=("COUNT(*)",))),),
            where=("id = :id",),
            params={"id": 3},
        )
        statement = StatementCompiler(Dialect.MYSQL).compile(spec)
        assert statement.sql == "UPDATE tags SET post_count = (SELECT COUNT(*) FROM posts_tags) WHERE id = :id"


class TestInsertDelete:
    def test_insert_returning(self) -> None:
        spec = Insert(table="posts", values={"title": "Hello"}, returning="id")
        statement = StatementCompiler(Dialect.SQLITE).compile(spec)
        assert statement.sql == "INSERT INTO posts (title) VALUES (:v_title) RETURNING id"
        assert statement.params == {"v_title": "Hello"}

    def test_mysql_has_no_returning(self) -> None:
        compiler = StatementCompiler(Dialect.MYSQL)
        statement = compiler.compile(Insert(table="posts", values={"title": "Hello"}, returning="id"))
        assert statement.sql == "INSERT INTO posts (title) VALUES (:v_title)"
        assert not compiler.supports_returning

    def test_insert_without_values(self) -> None:
        with pytest.raises(ConfigurationError):
            StatementCompiler(Dialect.SQLITE).compile(Insert(table="posts", values={}))

    def test_delete(self) -> None:
        spec = Delete(table="posts_tags", where=("post_id = :owner_id",), params={"owner_id": 9})
        statement = StatementCompiler(Dialect.POSTGRESQL).compile(spec)
        assert statement.sql == "DELETE FROM posts_tags WHERE post_id = :owner_id"
        assert statement.params == {"owner_id": 9}


class TestCounterUpdate:
    def test_direct_only(self) -> None:
        statement = StatementCompiler(Dialect.SQLITE).compile(counter_update(tag_config(), {2, 1}))
        assert statement.sql == (
            "UPDATE tags SET post_count = "
            "(SELECT COUNT(*) FROM posts_tags AS j WHERE j.tag_id = tags.id) "
            "WHERE tags.id IN (:pending_0, :pending_1)"
        )
        assert statement.params == {"pending_0": 1, "pending_1": 2}
        assert statement.label == "Post.Tag.recount"

    def test_direct_only_all_rows(self) -> None:
        statement = StatementCompiler(Dialect.SQLITE).compile(counter_update(tag_config(), None))
        assert statement.sql.endswith("WHERE j.tag_id = tags.id)")
        assert statement.params == {}

    def test_scoped_direct_count_joins_owner(self) -> None:
        config = tag_config(scope={"published": 1})
        statement = StatementCompiler(Dialect.SQLITE).compile(counter_update(config, {1}))
        assert (
            "(SELECT COUNT(*) FROM posts_tags AS j INNER JOIN posts AS o ON o.id = j.post_id "
            "WHERE j.tag_id = tags.id AND o.published = :scope_0)"
        ) in statement.sql
        assert statement.params == {"scope_0": 1, "pending_0": 1}

    def test_under_count_derived_table(self) -> None:
        statement = StatementCompiler(Dialect.SQLITE).compile(under_count_query(category_config(), {3}))
        assert statement.sql == UNDER_SQL

    def test_scoped_under_count_filters_in_join(self) -> None:
        config = category_config(scope={"published": 1})
        statement = StatementCompiler(Dialect.SQLITE).compile(under_count_query(config, None))
        assert statement.sql == (
            "SELECT n.id AS node_id, COUNT(DISTINCT o.id) AS under_count "
            "FROM categories AS n "
            "LEFT JOIN categories AS m ON n.lft <= m.lft AND n.rght >= m.rght "
            "LEFT JOIN posts_categories AS j ON j.category_id = m.id "
            "LEFT JOIN posts AS o ON o.id = j.post_id AND o.published = :scope_0 "
            "GROUP BY n.id"
        )

    @pytest.mark.parametrize("dialect", [Dialect.SQLITE, Dialect.POSTGRESQL])
    def test_update_from(self, dialect: Dialect) -> None:
        statement = StatementCompiler(dialect).compile(counter_update(category_config(), {3}))
        assert statement.sql == (
            f"UPDATE categories SET post_count = ({DIRECT_SQL}), under_post_count = x.under_count "
            f"FROM ({UNDER_SQL}) AS x WHERE categories.id = x.node_id"
        )
        assert statement.params == {"pending_0": 3}

    def test_mysql_update_join(self) -> None:
        statement = StatementCompiler(Dialect.MYSQL).compile(counter_update(category_config(), {3}))
        assert statement.sql == (
            f"UPDATE categories INNER JOIN ({UNDER_SQL}) AS x ON categories.id = x.node_id "
            f"SET categories.post_count = ({DIRECT_SQL}), categories.under_post_count = x.under_count"
        )

    def test_under_only(self) -> None:
        config = category_config(direct_count_field=None)
        statement = StatementCompiler(Dialect.SQLITE).compile(counter_update(config, {3}))
        assert statement.sql.startswith("UPDATE categories SET under_post_count = x.under_count FROM")
        assert "COUNT(*)" not in statement.sql
