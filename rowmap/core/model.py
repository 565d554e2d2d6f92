"""Model definitions."""

from pydantic import BaseModel, Field

from rowmap.core.attribute import Attribute
from rowmap.core.relationship import Relationship


class Model(BaseModel):
    """Model (entity type) definition.

    Models map a record shape onto a physical table. They carry attribute
    descriptors, relationships to other models, and the names of validators
    that run on every changeset of the model.
    """

    name: str = Field(..., description="Unique model name")
    table: str | None = Field(None, description="Physical table name (defaults to name)")
    description: str | None = Field(None, description="Human-readable description")

    attributes: list[Attribute] = Field(default_factory=list, description="Attribute definitions")
    relationships: list[Relationship] = Field(default_factory=list, description="Relationships to other models")
    validators: list[str] = Field(default_factory=list, description="Validators run on every changeset")

    def __hash__(self) -> int:
        return hash(self.name)

    @property
    def table_name(self) -> str:
        return self.table or self.name

    @property
    def primary_key(self) -> Attribute:
        """Get the primary key attribute.

        Raises:
            ValueError: If the model does not declare a primary key
        """
        for attr in self.attributes:
            if attr.primary_key:
                return attr
        raise ValueError(f"Model {self.name} has no primary key")

    @property
    def persisted_attributes(self) -> list[Attribute]:
        """Attributes stored in the table."""
        return [attr for attr in self.attributes if attr.persisted]

    @property
    def writable_attributes(self) -> list[Attribute]:
        """Attributes that may appear in insert and update statements."""
        return [attr for attr in self.attributes if attr.writable]

    def get_attribute(self, name: str) -> Attribute | None:
        """Get attribute by name."""
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None

    def get_attribute_by_column(self, column: str) -> Attribute | None:
        """Get attribute by its column name."""
        for attr in self.attributes:
            if attr.column_name == column:
                return attr
        return None

    def get_relationship(self, name: str) -> Relationship | None:
        """Get relationship by name."""
        for rel in self.relationships:
            if rel.name == name:
                return rel
        return None
