"""Test query composition and SQL generation."""

import uuid
from datetime import datetime, timezone

import pytest

from rowmap import Attribute, Model, Query
from rowmap.core.query import Ordering, ensure_query
from rowmap.sql import SQLBuilder
from rowmap.validation import RelationError

ARTICLE = Model(
    name="article",
    table="articles",
    attributes=[
        Attribute(name="id", type="uuid", primary_key=True),
        Attribute(name="title"),
        Attribute(name="views", type="integer", column="view_count"),
        Attribute(name="published", type="boolean"),
        Attribute(name="created_at", type="timestamp", auto=True),
        Attribute(name="preview", virtual=True, optional=True),
    ],
)


@pytest.fixture
def builder():
    return SQLBuilder("duckdb")


def test_query_is_immutable():
    base = Query("article")
    refined = base.where("title", "x").order_by("title").limit(2).offset(1)

    assert base.filters == ()
    assert base.limit_value is None
    assert refined.limit_value == 2
    assert refined.offset_value == 1


def test_order_by_appends():
    query = Query("article").order_by("title").order_by("-views")

    assert query.ordering == (Ordering("title"), Ordering("views", desc=True))


def test_default_order_only_without_explicit_order():
    query = Query("article", default_order=(Ordering("title"),))

    assert query.effective_order == (Ordering("title"),)
    assert query.order_by("views", desc=True).effective_order == (Ordering("views", desc=True),)


def test_unsupported_operator():
    with pytest.raises(ValueError, match="Unsupported operator"):
        Query("article").where("title", "x", op="~")


def test_in_requires_collection():
    with pytest.raises(ValueError):
        Query("article").where("title", "abc", op="in")


def test_negative_limit():
    with pytest.raises(ValueError):
        Query("article").limit(-1)


def test_ensure_query():
    query = Query("article")

    assert ensure_query(query) is query
    with pytest.raises(RelationError):
        ensure_query([query])


def test_select_all(builder):
    assert builder.select(ARTICLE, Query("article")) == 'SELECT * FROM "articles"'


def test_select_filters_order_and_paging(builder):
    query = Query("article").where("views", 10, op=">=").order_by("title").order_by("views", desc=True)

    sql = builder.select(ARTICLE, query.limit(2).offset(4))

    assert 'WHERE "view_count" >= 10' in sql
    assert 'ORDER BY "title", "view_count" DESC' in sql
    assert "LIMIT 2" in sql
    assert "OFFSET 4" in sql


def test_select_multiple_filters_are_anded(builder):
    sql = builder.select(ARTICLE, Query("article").where("title", "a").where("published", True))

    assert "\"title\" = 'a' AND \"published\" = TRUE" in sql


def test_select_uuid_filter_is_cast(builder):
    key = uuid.UUID("0b6e5cd4-2c7e-4a3b-9f53-7d9f5b7e0c11")

    sql = builder.select(ARTICLE, Query("article").where("id", key))

    assert "CAST('0b6e5cd4-2c7e-4a3b-9f53-7d9f5b7e0c11' AS UUID)" in sql


def test_select_null_filters(builder):
    assert '"title" IS NULL' in builder.select(ARTICLE, Query("article").where("title", None))
    assert 'NOT "title" IS NULL' in builder.select(ARTICLE, Query("article").where("title", None, op="!="))


def test_select_in_and_like(builder):
    assert "\"title\" IN ('a', 'b')" in builder.select(ARTICLE, Query("article").where("title", ["a", "b"], op="in"))
    assert "\"title\" LIKE 'po%'" in builder.select(ARTICLE, Query("article").where("title", "po%", op="like"))


def test_select_empty_in_matches_nothing(builder):
    assert "WHERE FALSE" in builder.select(ARTICLE, Query("article").where("title", [], op="in"))


def test_select_applies_transform_to_values(builder):
    sql = builder.select(ARTICLE, Query("article").where("title", "ABC"), lambda attr, value: value.lower())

    assert "\"title\" = 'abc'" in sql


def test_select_rejects_unknown_and_virtual_attributes(builder):
    with pytest.raises(ValueError):
        builder.select(ARTICLE, Query("article").where("missing", 1))
    with pytest.raises(ValueError):
        builder.select(ARTICLE, Query("article").order_by("preview"))


def test_insert(builder):
    sql = builder.insert(ARTICLE, {"title": "O'Brien", "views": 3})

    assert sql == "INSERT INTO \"articles\" (\"title\", \"view_count\") VALUES ('O''Brien', 3) RETURNING *"


def test_insert_without_values(builder):
    assert builder.insert(ARTICLE, {}) == 'INSERT INTO "articles" DEFAULT VALUES RETURNING *'


def test_update(builder):
    key = uuid.UUID("0b6e5cd4-2c7e-4a3b-9f53-7d9f5b7e0c11")

    sql = builder.update(ARTICLE, key, {"published": False})

    assert sql.startswith('UPDATE "articles" SET "published" = FALSE WHERE "id" = CAST(')
    assert sql.endswith("RETURNING *")


def test_update_requires_values(builder):
    with pytest.raises(ValueError):
        builder.update(ARTICLE, uuid.uuid4(), {})


def test_delete(builder):
    key = uuid.UUID("0b6e5cd4-2c7e-4a3b-9f53-7d9f5b7e0c11")

    assert builder.delete(ARTICLE, key) == (
        "DELETE FROM \"articles\" WHERE \"id\" = CAST('0b6e5cd4-2c7e-4a3b-9f53-7d9f5b7e0c11' AS UUID) "
        'RETURNING "id"'
    )


def test_datetime_literals(builder):
    naive = builder.select(ARTICLE, Query("article").where("created_at", datetime(2020, 7, 20, 20, 20, 6), op=">"))
    aware = builder.select(
        ARTICLE, Query("article").where("created_at", datetime(2020, 7, 20, tzinfo=timezone.utc), op=">")
    )

    assert "CAST('2020-07-20 20:20:06' AS TIMESTAMP)" in naive
    assert "CAST('2020-07-20 00:00:00+00:00' AS TIMESTAMP" in aware
    assert "AS TIMESTAMP)" not in aware


def test_postgres_dialect_quotes_reserved_table():
    user = Model(name="user", attributes=[Attribute(name="id", type="uuid", primary_key=True)])

    assert SQLBuilder("postgres").select(user, Query("user")) == 'SELECT * FROM "user"'
