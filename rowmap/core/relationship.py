"""Relationship definitions for models."""

from typing import Literal

from pydantic import BaseModel, Field


class Relationship(BaseModel):
    """Represents a relationship between models.

    Relationship types:
    - belongs_to: This model holds a foreign key to the related model
    - has_many: The related model holds a foreign key back to this model
    """

    name: str = Field(description="Key under which the relation appears on records")
    type: Literal["belongs_to", "has_many"] = Field(description="Type of relationship")
    model: str | None = Field(default=None, description="Related model name (defaults to name)")
    foreign_key: str | None = Field(
        default=None,
        description="Foreign key attribute (defaults to {model}_id for belongs_to, {owner}_id for has_many)",
    )
    order_by: list[str] | None = Field(
        default=None, description="Default ordering for has_many, '-' prefix for descending"
    )

    @property
    def related_model(self) -> str:
        return self.model or self.name

    def foreign_key_for(self, owner: str) -> str:
        """Get the foreign key attribute name.

        For belongs_to the key lives on the owner, for has_many it lives on
        the related model.

        Args:
            owner: Name of the model declaring this relationship
        """
        if self.foreign_key:
            return self.foreign_key
        if self.type == "belongs_to":
            return f"{self.related_model}_id"
        return f"{owner}_id"
