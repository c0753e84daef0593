"""World entity models for the LostWorld turn engine.

Items, NPCs and locations share a common shape: identity, two
descriptions, a category, an optional rarity, a position in the sparse
``region:x:y`` grid and a map of typed attributes. Regions are lighter
structural records that only place a cell on the world map.

Attribute metadata (type, description, reference) is shared by every
entity of the same category through the attribute schema library; the
``value`` on each entity is the only per-entity part.

Example:
    >>> sword = Item(id="item_sword_001", name="Sword", region="region_a", x=2, y=3)
    >>> sword.coordinate_key
    'region_a:2:3'
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from lostworld.core.constants import DEFAULT_CATEGORY
from lostworld.models.enums import AttributeType, EntityKind, Rarity


AttributeValue = int | float | bool | str | list[Any] | None
"""Values an attribute may hold; the definition's type narrows it."""


def coordinate_key(region: str, x: int, y: int) -> str:
    """Build the spatial index key for a grid cell.

    Args:
        region: Region id.
        x: X coordinate within the region.
        y: Y coordinate within the region.

    Returns:
        Composite key in the form ``region:x:y``.
    """
    return f"{region}:{x}:{y}"


# =============================================================================
# Attributes
# =============================================================================


class AttributeDefinition(BaseModel):
    """Shared metadata for one attribute name within a (kind, category).

    Definitions are immutable once registered in the schema library.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: AttributeType = Field(description="Value type of the attribute")
    description: str = Field(min_length=1, description="What the attribute measures")
    reference: str = Field(min_length=1, description="Calibration guide for values")
    values: tuple[str, ...] | None = Field(
        default=None,
        description="Allowed values for enum attributes",
    )
    range: tuple[float, float] | None = Field(
        default=None,
        description="Inclusive numeric bounds, when known",
    )

    @field_validator("range", mode="before")
    @classmethod
    def range_from_mapping(cls, v: Any) -> Any:
        """Accept the {"min": .., "max": ..} form used by game rules."""
        if isinstance(v, dict):
            return (v.get("min"), v.get("max"))
        return v

    def default_value(self) -> AttributeValue:
        """Seed value for an entity that gains this attribute without one."""
        match self.type:
            case AttributeType.BOOLEAN:
                return False
            case AttributeType.STRING:
                return ""
            case AttributeType.ARRAY:
                return []
            case AttributeType.ENUM:
                return self.values[0] if self.values else ""
            case _:
                return 0

    def to_attribute(self, value: AttributeValue = None) -> Attribute:
        """Materialize an entity attribute from this definition.

        Args:
            value: Initial value; the type's default when omitted.

        Returns:
            A new Attribute carrying this definition's metadata.
        """
        return Attribute(
            value=self.default_value() if value is None else value,
            type=self.type,
            description=self.description,
            reference=self.reference,
            values=list(self.values) if self.values else None,
        )


class Attribute(BaseModel):
    """A typed, mutable trait on an entity."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    value: AttributeValue = Field(default=None, description="Current value")
    type: AttributeType = Field(description="Value type")
    description: str = Field(default="", description="What the attribute measures")
    reference: str = Field(default="", description="Calibration guide for values")
    values: list[str] | None = Field(default=None, description="Allowed enum values")

    @property
    def definition(self) -> AttributeDefinition:
        """The metadata part of this attribute as a definition."""
        return AttributeDefinition(
            type=self.type,
            description=self.description or "undocumented",
            reference=self.reference or "undocumented",
            values=tuple(self.values) if self.values else None,
        )


# =============================================================================
# Entities
# =============================================================================


class Entity(BaseModel):
    """Common shape of items, NPCs and locations.

    Attributes:
        id: Globally unique id such as ``npc_hans_001``.
        name: Display name.
        visual_description: How the entity looks.
        functional_description: What the entity does in the game.
        category: Category within the kind (``merchant``, ``weapon``).
        rarity: Optional rarity level.
        region: Region id the entity is in.
        x: X coordinate in the region grid.
        y: Y coordinate in the region grid.
        own_attributes: Attribute name to attribute.
    """

    kind: ClassVar[EntityKind]

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: str = Field(min_length=1, description="Unique entity id")
    name: str = Field(min_length=1, description="Display name")
    visual_description: str = Field(default="", description="Appearance")
    functional_description: str = Field(default="", description="Role in the game")
    category: str | None = Field(default=None, description="Category within the kind")
    rarity: Rarity | None = Field(default=None, description="Rarity level")
    region: str = Field(description="Region id")
    x: int = Field(description="X coordinate within the region")
    y: int = Field(description="Y coordinate within the region")
    own_attributes: dict[str, Attribute] = Field(default_factory=dict)

    @computed_field(description="Spatial index key")
    @property
    def coordinate_key(self) -> str:
        return coordinate_key(self.region, self.x, self.y)

    @property
    def effective_category(self) -> str:
        """Category used for schema lookups; ``common`` when unset."""
        return self.category or DEFAULT_CATEGORY

    def attribute_values(self) -> dict[str, AttributeValue]:
        """Attribute values without metadata, as shown to the oracle."""
        return {name: attr.value for name, attr in self.own_attributes.items()}


class Item(Entity):
    """A portable object in the world."""

    kind: ClassVar[EntityKind] = EntityKind.ITEM


class NPC(Entity):
    """A non-player character."""

    kind: ClassVar[EntityKind] = EntityKind.NPC

    purpose: str = Field(default="generic", description="Intended role in the story")


class Location(Entity):
    """A place inside a region."""

    kind: ClassVar[EntityKind] = EntityKind.LOCATION

    location_type: str | None = Field(
        default=None,
        description="town, dungeon, building, wilderness, landmark",
    )


class Region(BaseModel):
    """A cell of the world map grouping a sparse grid of entities."""

    kind: ClassVar[EntityKind] = EntityKind.REGION

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: str = Field(min_length=1, description="Region id")
    name: str = Field(min_length=1, description="Display name")
    region_x: int = Field(description="X position on the world map")
    region_y: int = Field(description="Y position on the world map")
    properties: dict[str, Any] = Field(default_factory=dict, description="Biome, climate, theme")


SpatialEntity = Item | NPC | Location
"""Entities placed in the region grid."""

AnyEntity = Item | NPC | Location | Region
"""Every record the entity memory store holds."""

ENTITY_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.ITEM: Item,
    EntityKind.NPC: NPC,
    EntityKind.LOCATION: Location,
    EntityKind.REGION: Region,
}
"""Model class for each entity kind."""


__all__ = [
    "AttributeValue",
    "coordinate_key",
    "AttributeDefinition",
    "Attribute",
    "Entity",
    "Item",
    "NPC",
    "Location",
    "Region",
    "SpatialEntity",
    "AnyEntity",
    "ENTITY_MODELS",
]
