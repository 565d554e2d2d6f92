"""Playground models and helpers for the user / post / comment schema.

Run the bootstrap first (``rowmap migrate`` or :func:`rowmap.migrations.migrate`),
then register the models:

    >>> registry = ModelRegistry()
    >>> define_models(registry)
    >>> gateway = Gateway(DuckDBAdapter(), registry)
    >>> user = create_user_with_posts_comments(gateway, "user-posts@mail.com")
    >>> len(user["posts"].limit(2).resolve())
    2
"""

from collections.abc import Mapping
from typing import Any

from rowmap.core.attribute import Attribute
from rowmap.core.changeset import changeset
from rowmap.core.gateway import Gateway
from rowmap.core.model import Model
from rowmap.core.record import Record
from rowmap.core.registry import ModelRegistry, get_registry
from rowmap.core.relationship import Relationship
from rowmap.validation import PersistenceError

DEFAULT_PASSWORD = "qweqwe"


def _timestamps() -> list[Attribute]:
    return [
        Attribute(name="created_at", type="timestamp", auto=True),
        Attribute(name="updated_at", type="timestamp", auto=True),
    ]


USER = Model(
    name="user",
    description="Account with a unique, case-insensitive email",
    relationships=[
        Relationship(name="posts", type="has_many", model="post", order_by=["title"]),
        Relationship(name="comments", type="has_many", model="comment", order_by=["content"]),
    ],
    attributes=[
        Attribute(name="id", type="uuid", primary_key=True),
        Attribute(
            name="email",
            pattern=r".+@.+\..+",
            message="Invalid email",
            before_save=["lowercase"],
            before_read=["lowercase"],
        ),
        Attribute(name="password", min_length=6, before_save=["password_hash"]),
        Attribute(name="password_confirmation", min_length=6, virtual=True, optional=True),
        *_timestamps(),
    ],
)

POST = Model(
    name="post",
    relationships=[
        Relationship(name="user", type="belongs_to", foreign_key="user_id"),
        Relationship(name="comments", type="has_many", model="comment", order_by=["content"]),
    ],
    attributes=[
        Attribute(name="id", type="uuid", primary_key=True),
        Attribute(name="title"),
        Attribute(name="content"),
        Attribute(name="user_id", type="uuid"),
        *_timestamps(),
    ],
)

COMMENT = Model(
    name="comment",
    relationships=[
        Relationship(name="user", type="belongs_to", foreign_key="user_id"),
        Relationship(name="post", type="belongs_to", foreign_key="post_id"),
    ],
    attributes=[
        Attribute(name="id", type="uuid", primary_key=True),
        Attribute(name="content"),
        Attribute(name="user_id", type="uuid"),
        Attribute(name="post_id", type="uuid"),
        *_timestamps(),
    ],
)


def password_match(record: Mapping[str, Any]) -> bool:
    """Password and confirmation must be equal."""
    return record.get("password") == record.get("password_confirmation")


def define_models(registry: ModelRegistry | None = None) -> ModelRegistry:
    """Register the user, post and comment models and the password_match validator."""
    registry = registry or get_registry()
    for model in (USER, POST, COMMENT):
        registry.register(model)
    registry.validator(
        "user", "password_match", path="password_confirmation", message="Passwords don't match"
    )(password_match)
    return registry


def _insert(gateway: Gateway, model: str, data: Mapping[str, Any]) -> Record:
    result = gateway.insert(changeset(data, model, registry=gateway.registry))
    if not isinstance(result, Record):
        raise PersistenceError(f"Invalid {model}: {result.errors}")
    return result


def create_user(gateway: Gateway, email: str, password: str = DEFAULT_PASSWORD) -> Record:
    return _insert(gateway, "user", {"email": email, "password": password})


def create_post(gateway: Gateway, user_id, title: str, content: str) -> Record:
    return _insert(gateway, "post", {"user_id": user_id, "title": title, "content": content})


def create_comment(gateway: Gateway, user_id, post_id, content: str) -> Record:
    return _insert(gateway, "comment", {"user_id": user_id, "post_id": post_id, "content": content})


def create_user_with_posts_comments(gateway: Gateway, email: str) -> Record:
    """Create a user with three posts carrying two, three and three comments."""
    user = create_user(gateway, email)
    for index, comments in ((1, 2), (2, 3), (3, 3)):
        post = create_post(gateway, user["id"], f"post-{index}", f"content-{index}")
        for number in range(1, comments + 1):
            create_comment(gateway, user["id"], post["id"], f"comment-{index}-{number}")
    return user
