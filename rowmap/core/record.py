"""Records tagged with their model."""

from typing import Any

NAMESPACE_SEPARATORS = (".", "/")


class Record(dict):
    """A mapping of attribute names to values, tagged with its model name.

    Records read from the database also hold a relation handle under each
    relationship name of their model.
    """

    def __init__(self, model: str, data: Any = (), **kwargs):
        super().__init__(data, **kwargs)
        self.model = model

    def __repr__(self) -> str:
        return f"Record({self.model!r}, {dict.__repr__(self)})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Record) and other.model != self.model:
            return False
        return dict.__eq__(self, other)

    __hash__ = None  # type: ignore[assignment]

    def copy(self) -> "Record":
        return Record(self.model, self)


def split_path(path: str) -> tuple[str | None, str]:
    """Split a namespaced key into (model, attribute).

    Examples:
        >>> split_path("user.email")
        ('user', 'email')
        >>> split_path("email")
        (None, 'email')
    """
    for sep in NAMESPACE_SEPARATORS:
        if sep in path:
            namespace, _, name = path.partition(sep)
            return namespace, name
    return None, path
