"""
Example 01: HABTM counter cache

This example keeps tag and category counters of posts up to date, including
the nested-set "under" count of every category, and renders the category menu.
"""

import os
import tempfile

from counter_cache import (
    Association,
    ConnectionConfig,
    CounterCacheBehavior,
    Engine,
    OwnerModel,
    OwnerRepository,
    SchemaIntrospector,
)
from counter_cache.query import Select, Statement


def print_menu(nodes, depth=0):
    for node in nodes:
        marker = "*" if node.selected else ("+" if node.parent_selected else " ")
        print(f"   {marker} {'  ' * depth}{node.text} {node.url_params}")
        print_menu(node.children, depth + 1)


def main():
    # Set up database
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    engine = Engine.from_config(ConnectionConfig(driver="sqlite", database=db_path))
    for ddl in [
        "CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, title TEXT, published INTEGER)",
        "CREATE TABLE tags (id INTEGER PRIMARY KEY, name TEXT, post_count INTEGER DEFAULT 0)",
        """
        CREATE TABLE categories (
            id INTEGER PRIMARY KEY,
            parent_id INTEGER,
            lft INTEGER NOT NULL,
            rght INTEGER NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            post_count INTEGER DEFAULT 0,
            under_post_count INTEGER DEFAULT 0
        )
        """,
        "CREATE TABLE posts_tags (post_id INTEGER, tag_id INTEGER)",
        "CREATE TABLE posts_categories (post_id INTEGER, category_id INTEGER)",
        "INSERT INTO tags (id, name) VALUES (1, 'python'), (2, 'sql')",
        """
        INSERT INTO categories (id, parent_id, lft, rght, name, slug) VALUES
            (1, NULL, 1, 6, 'Programming', 'programming'),
            (2, 1, 2, 3, 'Python', 'python'),
            (3, 1, 4, 5, 'Databases', 'databases')
        """,
    ]:
        engine.execute(Statement(ddl))

    post = OwnerModel(
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
    # Only published posts are counted
    behavior = CounterCacheBehavior(post, SchemaIntrospector(engine), {"scope": {"published": 1}})
    posts = OwnerRepository(engine, behavior)

    print("=== HABTM Counter Cache ===\n")

    print("1. Creating posts:")
    first = posts.create({"title": "ORMs", "published": 1}, {"Tag": [1, 2], "Category": [2]})
    posts.create({"title": "Indexes", "published": 1}, {"Tag": [2], "Category": [3]})
    draft = posts.create({"title": "Draft", "published": 0}, {"Tag": [1], "Category": [3]})
    for row in engine.fetch_all(Select(table="tags", order_by=("id",))):
        print(f"   tag {row['name']}: {row['post_count']} post(s)")
    print()

    print("2. Publishing the draft:")
    posts.update(draft, {"published": 1})
    for row in engine.fetch_all(Select(table="categories", order_by=("lft",))):
        print(f"   {row['name']}: {row['post_count']} direct, {row['under_post_count']} under")
    print()

    print("3. Deleting the first post:")
    posts.delete(first)
    for row in engine.fetch_all(Select(table="tags", order_by=("id",))):
        print(f"   tag {row['name']}: {row['post_count']} post(s)")
    print()

    print("4. Category menu with 'databases' selected:")
    print_menu(behavior.build_menu(engine, "Category", {"selected": {"slug": "databases"}}))

    engine.connection_manager.close_pool()
    os.unlink(db_path)


if __name__ == "__main__":
    main()
