"""Test the persistence gateway against an in-memory DuckDB database."""

import uuid
from datetime import datetime

import pytest

from rowmap import Attribute, Changeset, Model, Record, change, changeset
from rowmap.core.gateway import Gateway
from rowmap.hashers import check_password, is_password_hash
from rowmap.playground import create_comment, create_post, create_user, create_user_with_posts_comments
from rowmap.validation import HookExecutionError, PersistenceError


def test_insert_returns_stored_record(gateway):
    user = gateway.insert(changeset({"email": "foo@bar.baz", "password": "qweqwe"}, "user"))

    assert isinstance(user, Record)
    assert user.model == "user"
    assert isinstance(user["id"], uuid.UUID)
    assert isinstance(user["created_at"], datetime)
    assert isinstance(user["updated_at"], datetime)
    assert "password_confirmation" not in user


def test_insert_hashes_password(gateway):
    user = gateway.insert(changeset({"email": "foo@bar.baz", "password": "qweqwe"}, "user"))

    assert user["password"] != "qweqwe"
    assert is_password_hash(user["password"])
    assert check_password("qweqwe", user["password"])


def test_insert_lowercases_email(gateway):
    user = gateway.insert(changeset({"email": "Foo@Bar.BAZ", "password": "qweqwe"}, "user"))

    assert user["email"] == "foo@bar.baz"


def test_invalid_changeset_is_returned_without_writing(gateway, monkeypatch):
    monkeypatch.setattr(gateway.adapter, "execute_insert", lambda *a, **kw: pytest.fail("must not write"))
    cs = changeset({"email": "foo@bar.baz", "password": "qweqw"}, "user")

    result = gateway.insert(cs)

    assert result is cs
    assert isinstance(result, Changeset)
    assert result.errors == {"password": ["should be at least 6 characters"]}


def test_failing_validator_prevents_insert(gateway):
    cs = changeset(
        {"email": "foo@bar.baz", "password": "qweqwe", "password_confirmation": "123123"},
        "user",
        validators=["password_match"],
    )

    assert gateway.insert(cs) is cs
    assert gateway.all("user") == []


def test_virtual_attributes_are_not_written(gateway):
    cs = changeset(
        {"email": "foo@bar.baz", "password": "qweqwe", "password_confirmation": "qweqwe"},
        "user",
        validators=["password_match"],
    )

    user = gateway.insert(cs)

    assert isinstance(user, Record)
    assert "password_confirmation" not in user


def test_unique_violation_raises_persistence_error(gateway):
    create_user(gateway, "foo@bar.baz")

    with pytest.raises(PersistenceError) as exc_info:
        gateway.insert(changeset({"email": "FOO@bar.baz", "password": "qweqwe"}, "user"))

    assert exc_info.value.sql.startswith('INSERT INTO "user"')


def test_find_by_attribute(gateway):
    created = create_user(gateway, "foo@bar.baz")

    found = gateway.find_by("user.email", "foo@bar.baz")

    assert found["id"] == created["id"]
    assert found.model == "user"


def test_find_by_applies_before_read_hooks(gateway):
    create_user(gateway, "foo@bar.baz")

    assert gateway.find_by("user/email", "FoO@BaR.bAz")["email"] == "foo@bar.baz"


def test_find_by_missing(gateway):
    assert gateway.find_by("user.email", "nobody@bar.baz") is None


def test_find_by_primary_key(gateway):
    created = create_user(gateway, "foo@bar.baz")

    assert gateway.find("user", created["id"])["email"] == "foo@bar.baz"
    assert gateway.find("user", str(created["id"]))["email"] == "foo@bar.baz"


def test_find_with_invalid_uuid(gateway):
    assert gateway.find("user", "not-a-uuid") is None


def test_find_requires_known_model(gateway):
    with pytest.raises(KeyError):
        gateway.find("account", 1)


def test_all_records(gateway):
    create_user(gateway, "a@bar.baz")
    create_user(gateway, "b@bar.baz")

    assert sorted(user["email"] for user in gateway.all("user")) == ["a@bar.baz", "b@bar.baz"]


def test_all_by_attribute(gateway):
    user = create_user(gateway, "a@bar.baz")
    create_post(gateway, user["id"], "one", "x")
    create_post(gateway, user["id"], "two", "x")
    create_post(gateway, user["id"], "three", "y")

    assert sorted(post["title"] for post in gateway.all("post.content", "x")) == ["one", "two"]


def test_all_with_query(gateway):
    for email in ("c@bar.baz", "a@bar.baz", "b@bar.baz"):
        create_user(gateway, email)

    users = gateway.all(gateway.query("user").order_by("email", desc=True).limit(2))

    assert [user["email"] for user in users] == ["c@bar.baz", "b@bar.baz"]


def test_find_by_query(gateway):
    for email in ("c@bar.baz", "a@bar.baz"):
        create_user(gateway, email)

    assert gateway.find_by(gateway.query("user").order_by("email"))["email"] == "a@bar.baz"


def test_query_operators(gateway):
    user = create_user(gateway, "a@bar.baz")
    for title in ("post-1", "post-2", "draft"):
        create_post(gateway, user["id"], title, "x")

    like = gateway.all(gateway.query("post").where("title", "post-%", op="like").order_by("title"))
    within = gateway.all(gateway.query("post").where("title", ["draft", "post-2"], op="in").order_by("title"))
    empty = gateway.all(gateway.query("post").where("title", [], op="in"))

    assert [p["title"] for p in like] == ["post-1", "post-2"]
    assert [p["title"] for p in within] == ["draft", "post-2"]
    assert empty == []


def test_values_with_quotes_round_trip(gateway):
    user = create_user(gateway, "o'brien@bar.baz")

    post = create_post(gateway, user["id"], "It's here", "'; DROP TABLE post; --")

    assert gateway.find_by("post.title", "It's here")["content"] == "'; DROP TABLE post; --"
    assert gateway.find_by("user.email", "o'brien@bar.baz")["id"] == user["id"]
    assert post["title"] == "It's here"


def test_target_requires_value_for_attribute_path(gateway):
    with pytest.raises(TypeError):
        gateway.all("user.email")
    with pytest.raises(ValueError):
        gateway.all("user", "foo@bar.baz")


def test_update_changes_attributes(gateway):
    user = create_user_with_posts_comments(gateway, "user@bar.baz")
    comment = gateway.find_by("comment.content", "comment-1-1")

    updated = gateway.update(change(comment, {"content": "edited"}))

    assert isinstance(updated, Record)
    assert updated["id"] == comment["id"]
    assert updated["content"] == "edited"
    assert updated["user_id"] == user["id"]
    assert gateway.find("comment", comment["id"])["content"] == "edited"


def test_update_without_changes_reads_the_row(gateway, monkeypatch):
    user = create_user(gateway, "a@bar.baz")
    post = create_post(gateway, user["id"], "title", "content")
    monkeypatch.setattr(gateway.adapter, "execute_update", lambda *a, **kw: pytest.fail("must not write"))

    result = gateway.update(change(post, {"title": "title"}))

    assert result["id"] == post["id"]
    assert result["title"] == "title"


def test_insert_hashes_hash_shaped_password(gateway):
    supplied = "pbkdf2_sha256$1$salt$c29tZWhhc2g="

    user = gateway.insert(changeset({"email": "foo@bar.baz", "password": supplied}, "user"))

    assert user["password"] != supplied
    assert check_password(supplied, user["password"])


def test_update_without_origin_keeps_stored_password(gateway, monkeypatch):
    user = create_user(gateway, "a@bar.baz")
    data = {"id": user["id"], "email": user["email"], "password": user["password"]}
    monkeypatch.setattr(gateway.adapter, "execute_update", lambda *a, **kw: pytest.fail("must not write"))

    result = gateway.update(changeset(data, "user"))

    assert result["password"] == user["password"]
    assert check_password("qweqwe", result["password"])


def test_update_without_origin_writes_only_differing_values(gateway):
    user = create_user(gateway, "a@bar.baz")
    data = {"id": user["id"], "email": "b@bar.baz", "password": user["password"]}

    updated = gateway.update(changeset(data, "user"))

    assert updated["email"] == "b@bar.baz"
    assert updated["password"] == user["password"]
    assert check_password("qweqwe", gateway.find("user", user["id"])["password"])


def test_update_without_origin_hashes_new_password(gateway):
    user = create_user(gateway, "a@bar.baz")

    updated = gateway.update(changeset({"id": user["id"], "email": user["email"], "password": "new-secret"}, "user"))

    assert updated["password"] != "new-secret"
    assert check_password("new-secret", updated["password"])
    assert not check_password("qweqwe", updated["password"])


def test_update_invalid_changeset(gateway):
    user = create_user(gateway, "a@bar.baz")

    cs = change(user, {"email": "broken"})

    assert gateway.update(cs) is cs


def test_update_missing_row(gateway):
    record = Record("post", {"id": uuid.uuid4(), "title": "t", "content": "c", "user_id": uuid.uuid4()})

    with pytest.raises(PersistenceError):
        gateway.update(change(record, {"title": "other"}))


def test_update_requires_primary_key(gateway):
    with pytest.raises(ValueError):
        gateway.update(changeset({"title": "t", "content": "c", "user_id": uuid.uuid4()}, "post"))


def test_save_dispatches_on_primary_key(gateway):
    user = create_user(gateway, "a@bar.baz")

    post = gateway.save(changeset({"title": "t", "content": "c", "user_id": user["id"]}, "post"))
    renamed = gateway.save(change(post, {"title": "renamed"}))

    assert post["title"] == "t"
    assert renamed["id"] == post["id"]
    assert renamed["title"] == "renamed"
    assert len(gateway.all("post")) == 1


def test_delete(gateway):
    user = create_user(gateway, "a@bar.baz")
    post = create_post(gateway, user["id"], "t", "c")

    assert gateway.delete(post) is True
    assert gateway.find("post", post["id"]) is None
    assert gateway.delete(post) is False


def test_delete_referenced_row_fails(gateway):
    user = create_user(gateway, "a@bar.baz")
    create_post(gateway, user["id"], "t", "c")

    with pytest.raises(PersistenceError):
        gateway.delete(user)


def test_delete_requires_primary_key(gateway):
    with pytest.raises(ValueError):
        gateway.delete(Record("post", {"title": "t"}))


def test_comment_requires_existing_post(gateway):
    user = create_user(gateway, "a@bar.baz")

    with pytest.raises(PersistenceError):
        create_comment(gateway, user["id"], uuid.uuid4(), "orphan")


def test_after_read_hooks_apply_to_every_read(adapter, registry):
    adapter.execute_raw("CREATE TABLE tag (id INTEGER PRIMARY KEY, label TEXT)")
    registry.register(
        Model(
            name="tag",
            attributes=[
                Attribute(name="id", type="integer", primary_key=True),
                Attribute(name="label", after_read=["uppercase"]),
            ],
        )
    )
    gateway = Gateway(adapter, registry)

    inserted = gateway.insert(changeset({"id": 1, "label": "python"}, "tag"))

    assert inserted["label"] == "PYTHON"
    assert gateway.find("tag", 1)["label"] == "PYTHON"
    assert adapter.execute("SELECT label FROM tag").fetchone() == ("python",)


def test_hook_failure_prevents_write(adapter, registry):
    adapter.execute_raw("CREATE TABLE tag (id INTEGER PRIMARY KEY, label TEXT)")
    registry.register(
        Model(
            name="tag",
            attributes=[
                Attribute(name="id", type="integer", primary_key=True),
                Attribute(name="label", before_save=["explode"]),
            ],
        )
    )

    @registry.hooks.hook("explode")
    def explode(value):
        raise RuntimeError("boom")

    gateway = Gateway(adapter, registry)

    with pytest.raises(HookExecutionError):
        gateway.insert(changeset({"id": 1, "label": "python"}, "tag"))
    assert adapter.execute("SELECT count(*) FROM tag").fetchone() == (0,)


def test_gateway_uses_current_registry(adapter, blog):
    gateway = Gateway(adapter)

    assert gateway.registry is blog
    assert isinstance(create_user(gateway, "a@bar.baz"), Record)


def test_from_url(blog):
    gateway = Gateway.from_url("duckdb:///:memory:", blog)

    try:
        assert gateway.adapter.dialect == "duckdb"
    finally:
        gateway.close()
