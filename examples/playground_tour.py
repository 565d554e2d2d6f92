"""Walk through changesets, hooks and relations on the playground schema."""

from rowmap import Gateway, ModelRegistry, cast, change, changeset
from rowmap.db.duckdb import DuckDBAdapter
from rowmap.migrations import migrate
from rowmap.playground import create_user_with_posts_comments, define_models

registry = define_models(ModelRegistry())
adapter = DuckDBAdapter()
migrate(adapter)
gateway = Gateway(adapter, registry)

# Validation errors are returned as data
cs = changeset({"user.email": "foo@bar.baz", "user.password": "qweqw"}, registry=registry)
print("Errors:", cs.errors)
print("Insert returns the changeset:", gateway.insert(cs) is cs)

# External input is cast onto the model, unknown keys are dropped
payload = {"Email": "SomE-UseR@mAiL.cOM", "password": "secret!", "password-confirmation": "secret!", "admin": True}
data = cast(payload, "user", registry)
print("Cast:", data)

user = gateway.insert(changeset(data, "user", validators=["password_match"], registry=registry))
print("Stored email:", user["email"])
print("Stored password:", user["password"][:30] + "...")
print("Found with mixed case:", gateway.find_by("user.email", "some-USER@MAIL.com")["id"] == user["id"])

# Relations are resolved explicitly
create_user_with_posts_comments(gateway, "user-posts@mail.com")
author = gateway.find_by("user.email", "user-posts@mail.com")
print(author["posts"])
print("First two posts:", [post["title"] for post in author["posts"].limit(2).resolve()])

loaded = gateway.load_into(author, "comments")
print("Comments:", len(loaded["comments"]))

comment = gateway.find_by("comment.content", "comment-3-3")
edited = gateway.update(change(comment, {"content": "comment-3-3 (edited)"}, registry=registry))
print("Edited:", edited["content"])
users = gateway.all(gateway.query("user").order_by("email", desc=True))
print("Users by email, descending:", [u["email"] for u in users])

gateway.close()
