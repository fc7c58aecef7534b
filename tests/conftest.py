"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from counter_cache.core.connection import ConnectionConfig, ConnectionManager
from counter_cache.core.engine import Engine
from counter_cache.core.schema import SchemaIntrospector
from counter_cache.habtm.behavior import CounterCacheBehavior
from counter_cache.habtm.models import Association, OwnerModel
from counter_cache.query.spec import Select, Statement
from counter_cache.repository.base import OwnerRepository

SCHEMA = [
    "CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT NOT NULL, "
    "published INTEGER NOT NULL DEFAULT 1)",
    "CREATE TABLE tags (id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
    "post_count INTEGER NOT NULL DEFAULT 0)",
    "CREATE TABLE categories (id INTEGER PRIMARY KEY, parent_id INTEGER, lft INTEGER NOT NULL, "
    "rght INTEGER NOT NULL, name TEXT NOT NULL, slug TEXT NOT NULL, "
    "post_count INTEGER NOT NULL DEFAULT 0, under_post_count INTEGER NOT NULL DEFAULT 0)",
    "CREATE TABLE posts_tags (post_id INTEGER NOT NULL, tag_id INTEGER NOT NULL)",
    "CREATE TABLE posts_categories (post_id INTEGER NOT NULL, category_id INTEGER NOT NULL)",
]

TAGS = [(1, "python"), (2, "sql"), (3, "testing")]

# Tech [1, 10]
#   Python [2, 5]
#     Django [3, 4]
#   Rust [6, 7]
#   Go [8, 9]
# Life [11, 14]
#   Cooking [12, 13]
CATEGORIES = [
    (1, None, 1, 10, "Tech", "tech"),
    (2, 1, 2, 5, "Python", "python"),
    (3, 2, 3, 4, "Django", "django"),
    (4, 1, 6, 7, "Rust", "rust"),
    (5, 1, 8, 9, "Go", "go"),
    (6, None, 11, 14, "Life", "life"),
    (7, 6, 12, 13, "Cooking", "cooking"),
]

POST = OwnerModel(
    name="Post",
    table="posts",
    associations=(
        Association(
            name="Tag",
            related_table="tags",
            join_table="posts_tags",
            foreign_key="post_id",
            association_foreign_key="tag_id",
        ),
        Association(
            name="Category",
            related_table="categories",
            join_table="posts_categories",
            foreign_key="post_id",
            association_foreign_key="category_id",
        ),
    ),
)


@pytest.fixture
def sqlite_config() -> ConnectionConfig:
    """SQLite in-memory connection config.

    A single pooled connection: every :memory: connection is its own database.
    """
    return ConnectionConfig(driver="sqlite", database=":memory:", pool_size=1)


@pytest.fixture
def engine(sqlite_config: ConnectionConfig) -> Iterator[Engine]:
    """Engine over a seeded posts / tags / categories schema."""
    eng = Engine(ConnectionManager(sqlite_config))
    for ddl in SCHEMA:
        eng.execute(Statement(ddl))
    for tag_id, name in TAGS:
        eng.execute(
            Statement(
                "INSERT INTO tags (id, name) VALUES (:id, :name)", {"id": tag_id, "name": name}
            )
        )
    for row in CATEGORIES:
        eng.execute(
            Statement(
                "INSERT INTO categories (id, parent_id, lft, rght, name, slug) "
                "VALUES (:id, :parent_id, :lft, :rght, :name, :slug)",
                dict(zip(("id", "parent_id", "lft", "rght", "name", "slug"), row, strict=True)),
            )
        )
    yield eng
    eng.connection_manager.close_pool()


@pytest.fixture
def post_model() -> OwnerModel:
    return POST


@pytest.fixture
def behavior(engine: Engine, post_model: OwnerModel) -> CounterCacheBehavior:
    return CounterCacheBehavior(post_model, SchemaIntrospector(engine))


@pytest.fixture
def posts(engine: Engine, behavior: CounterCacheBehavior) -> OwnerRepository:
    return OwnerRepository(engine, behavior)


@pytest.fixture
def counts(engine: Engine):
    """Read the counter columns of a related table.

    Usage:
        counts("tags") -> {1: 2, 2: 0, ...}
        counts("categories", "under_post_count") -> {1: 3, ...}
    """

    def _counts(table: str, column: str = "post_count") -> dict[int, int]:
        rows = engine.fetch_all(Select(table=table, fields=("id", column), order_by=("id",)))
        return {row["id"]: row[column] for row in rows}

    return _counts
