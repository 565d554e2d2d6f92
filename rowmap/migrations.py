"""Schema bootstrap for the playground tables.

rowmap does not manage migrations. These idempotent statements create the
``user``, ``post`` and ``comment`` tables the playground models describe,
and can be run any number of times.

Relations:
* user has_many post, user has_many comment
* post belongs_to user, post has_many comment
* comment belongs_to user, comment belongs_to post
"""

import logging
from dataclasses import dataclass

from rowmap.db.base import BaseDatabaseAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Migration:
    name: str
    sql: str
    description: str = ""


UUID_EXTENSION = Migration(
    "uuid_extension",
    'CREATE EXTENSION IF NOT EXISTS "uuid-ossp";',
    "Add the uuid-ossp extension for UUID generation",
)

TRIGGER_SET_UPDATED_AT = Migration(
    "trigger_set_updated_at",
    (
        "CREATE OR REPLACE FUNCTION trigger_set_updated_at() "
        "RETURNS TRIGGER AS $$ "
        "BEGIN "
        "  NEW.updated_at = NOW(); "
        "  RETURN NEW; "
        "END; "
        "$$ LANGUAGE plpgsql;"
    ),
    "Function setting updated_at to NOW() whenever a row changes",
)


def _table(name: str, uuid_default: str, columns: list[str]) -> str:
    body = ", ".join(
        [
            f"id uuid DEFAULT {uuid_default} PRIMARY KEY",
            *columns,
            "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL",
            "updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP NOT NULL",
        ]
    )
    return f"CREATE TABLE IF NOT EXISTS {name} ( {body} );"


def _tables(uuid_default: str) -> list[Migration]:
    # "user" is reserved in PostgreSQL, so it is always double quoted.
    return [
        Migration(
            "user_table",
            _table('"user"', uuid_default, ["email TEXT NOT NULL UNIQUE", "password TEXT NOT NULL"]),
            "Create the user table",
        ),
        Migration(
            "post_table",
            _table("post", uuid_default, ["title TEXT", "content TEXT", 'user_id uuid REFERENCES "user"(id)']),
            "Create the post table",
        ),
        Migration(
            "comment_table",
            _table(
                "comment",
                uuid_default,
                ["content TEXT", 'user_id uuid REFERENCES "user"(id)', "post_id uuid REFERENCES post(id)"],
            ),
            "Create the comment table",
        ),
    ]


def _updated_at_trigger(table: str) -> Migration:
    trigger = f"set_updated_at_{table.strip(chr(34))}"
    return Migration(
        f"{trigger}_trigger",
        (
            f"DROP TRIGGER IF EXISTS {trigger} ON {table}; "
            f"CREATE TRIGGER {trigger} BEFORE UPDATE ON {table} "
            f"FOR EACH ROW EXECUTE PROCEDURE trigger_set_updated_at();"
        ),
        f"Keep {table}.updated_at current",
    )


MIGRATIONS: dict[str, list[Migration]] = {
    "postgres": [
        UUID_EXTENSION,
        TRIGGER_SET_UPDATED_AT,
        *_tables("uuid_generate_v4()"),
        *[_updated_at_trigger(table) for table in ('"user"', "post", "comment")],
    ],
    # DuckDB generates UUIDs natively and has no triggers.
    "duckdb": _tables("gen_random_uuid()"),
}


def migrations_for(dialect: str) -> list[Migration]:
    """Get bootstrap statements for a SQLGlot dialect name.

    Raises:
        ValueError: If the dialect has no bootstrap statements
    """
    if dialect not in MIGRATIONS:
        raise ValueError(f"No migrations for dialect '{dialect}'. Must be one of: {', '.join(MIGRATIONS)}")
    return MIGRATIONS[dialect]


def migrate(adapter: BaseDatabaseAdapter) -> list[str]:
    """Run all bootstrap statements for the adapter's dialect, in order.

    Returns:
        Names of the migrations that ran
    """
    applied = []
    for migration in migrations_for(adapter.dialect):
        logger.info("Running migration %s", migration.name)
        adapter.execute_raw(migration.sql)
        applied.append(migration.name)
    return applied
