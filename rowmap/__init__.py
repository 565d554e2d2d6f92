"""rowmap: changeset validation and relational loading over SQL databases."""

__version__ = "0.1.0"

from rowmap.core.attribute import Attribute
from rowmap.core.changeset import Changeset, cast, change, changeset
from rowmap.core.model import Model
from rowmap.core.query import Query
from rowmap.core.record import Record
from rowmap.core.registry import ModelRegistry, get_registry, register
from rowmap.core.relation import RelationHandle, load_into
from rowmap.core.relationship import Relationship
from rowmap.core.validator import Validator

__all__ = [
    "Attribute",
    "Changeset",
    "Gateway",
    "Model",
    "ModelRegistry",
    "Query",
    "Record",
    "RelationHandle",
    "Relationship",
    "Validator",
    "cast",
    "change",
    "changeset",
    "get_registry",
    "load_into",
    "register",
]


def __getattr__(name):  # Lazy import to avoid importing database drivers on package import
    if name == "Gateway":
        from rowmap.core.gateway import Gateway  # type: ignore

        return Gateway
    raise AttributeError(name)
