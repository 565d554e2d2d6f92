"""Attribute definitions."""

from typing import Any, Literal

from pydantic import BaseModel, Field

AttributeType = Literal["string", "text", "uuid", "integer", "float", "boolean", "timestamp", "any"]


class Attribute(BaseModel):
    """Attribute (field) definition.

    Attributes describe a single key of a record: its value type, constraints,
    how it is persisted, and which hooks transform it on its way in and out
    of the database.
    """

    name: str = Field(..., description="Attribute name within the model")
    type: AttributeType = Field(default="string", description="Value type")
    column: str | None = Field(None, description="Column name (defaults to name)")
    description: str | None = Field(None, description="Human-readable description")

    # Constraints
    min_length: int | None = Field(None, description="Minimum string length")
    max_length: int | None = Field(None, description="Maximum string length")
    pattern: str | None = Field(None, description="Regular expression the whole value must match")
    minimum: float | None = Field(None, description="Minimum numeric value")
    maximum: float | None = Field(None, description="Maximum numeric value")
    choices: list[Any] | None = Field(None, description="Allowed values")
    message: str | None = Field(None, description="Error message replacing generated constraint messages")

    # Flags
    primary_key: bool = Field(default=False, description="Primary key of the model")
    auto: bool = Field(default=False, description="Filled in by the database, never written")
    virtual: bool = Field(default=False, description="Validated but never persisted")
    optional: bool = Field(default=False, description="May be absent or None")
    default: Any = Field(None, description="Value used on insert when absent")

    # Hooks
    before_save: list[str] = Field(default_factory=list, description="Hooks applied before writing")
    before_read: list[str] = Field(default_factory=list, description="Hooks applied to filter values before reading")
    after_read: list[str] = Field(default_factory=list, description="Hooks applied after reading")

    def __hash__(self) -> int:
        return hash((self.name, self.type))

    @property
    def column_name(self) -> str:
        """Get column name, defaulting to the attribute name."""
        return self.column or self.name

    @property
    def persisted(self) -> bool:
        return not self.virtual

    @property
    def writable(self) -> bool:
        """Whether callers may supply a value that ends up in write statements."""
        return not self.virtual and not self.auto

    @property
    def required(self) -> bool:
        """Whether an insert must provide this attribute.

        Required-ness is explicit: everything is required unless marked
        optional, auto, primary key, or given a default.
        """
        return not (self.optional or self.auto or self.primary_key or self.default is not None)
