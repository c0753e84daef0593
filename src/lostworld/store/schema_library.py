"""Self-extending registry of attribute definitions.

The library maps ``kind -> category -> attribute name -> definition``. It
starts from the categories declared by the game rules and grows at
runtime whenever a decision or a spawned entity introduces a new
attribute. Definitions are append-only: the first writer wins and a later
``define`` with different metadata is a no-op.

Example:
    >>> library = AttributeSchemaLibrary()
    >>> morale = AttributeDefinition(
    ...     type=AttributeType.INTEGER, description="Will to keep trading", reference="0-100"
    ... )
    >>> library.define(EntityKind.NPC, "merchant", "morale", morale) is morale
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from lostworld.core.exceptions import SchemaLibraryError
from lostworld.core.logging import get_logger
from lostworld.models.entities import AttributeDefinition
from lostworld.models.enums import SPATIAL_KINDS, EntityKind


logger = get_logger(__name__)


class NamedAttributeDefinition(AttributeDefinition):
    """An attribute definition together with its name, as game rules list them."""

    name: str = Field(min_length=1)

    def definition(self) -> AttributeDefinition:
        """The definition without its name."""
        return AttributeDefinition.model_validate(self.model_dump(exclude={"name"}))


class CategoryDefinition(BaseModel):
    """A category declared by the game rules with its starting attributes."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    attributes: list[NamedAttributeDefinition] = Field(default_factory=list)


class AttributeSchemaLibrary:
    """Append-only ``kind -> category -> name -> definition`` registry."""

    def __init__(self) -> None:
        self._definitions: dict[EntityKind, dict[str, dict[str, AttributeDefinition]]] = {
            kind: {} for kind in SPATIAL_KINDS
        }

    @classmethod
    def from_categories(
        cls,
        categories: Mapping[EntityKind, Iterable[CategoryDefinition]],
    ) -> AttributeSchemaLibrary:
        """Build a library from the categories declared by game rules.

        Categories without attributes are still registered so they show
        up in ``categories_for``.

        Args:
            categories: Category declarations per entity kind.

        Returns:
            A populated library.
        """
        library = cls()
        for kind, declared in categories.items():
            for category in declared:
                library.add_category(kind, category.name)
                for attribute in category.attributes:
                    library.define(kind, category.name, attribute.name, attribute.definition())
        return library

    def _bucket(self, kind: EntityKind) -> dict[str, dict[str, AttributeDefinition]]:
        kind = EntityKind(kind)
        if kind not in self._definitions:
            raise SchemaLibraryError("Regions do not carry attributes", kind=kind.value)
        return self._definitions[kind]

    def resolve(
        self,
        kind: EntityKind,
        category: str,
        attribute_name: str,
    ) -> AttributeDefinition | None:
        """Definition for an attribute, or None if it was never defined."""
        return self._bucket(kind).get(category, {}).get(attribute_name)

    def define(
        self,
        kind: EntityKind,
        category: str,
        attribute_name: str,
        definition: AttributeDefinition,
    ) -> AttributeDefinition:
        """Register a definition unless one already exists.

        Args:
            kind: Entity kind.
            category: Category within the kind; created on first use.
            attribute_name: Attribute being defined.
            definition: Metadata to register.

        Returns:
            The effective definition: the given one, or the earlier one
            that takes precedence.

        Raises:
            SchemaLibraryError: If category or attribute name is blank.
        """
        if not category or not category.strip():
            raise SchemaLibraryError("Category name is required", kind=str(kind))
        if not attribute_name or not attribute_name.strip():
            raise SchemaLibraryError(
                "Attribute name is required", kind=str(kind), category=category
            )

        attributes = self._bucket(kind).setdefault(category, {})
        existing = attributes.get(attribute_name)
        if existing is not None:
            if existing != definition:
                logger.debug(
                    "Attribute redefinition ignored",
                    kind=str(kind),
                    category=category,
                    attribute=attribute_name,
                )
            return existing

        attributes[attribute_name] = definition
        logger.info(
            "Attribute defined",
            kind=str(kind),
            category=category,
            attribute=attribute_name,
            type=definition.type.value,
        )
        return definition

    def add_category(self, kind: EntityKind, category: str) -> None:
        """Register an empty category (no-op if it exists)."""
        self._bucket(kind).setdefault(category, {})

    def categories_for(self, kind: EntityKind) -> tuple[str, ...]:
        """Known categories of one kind, in registration order."""
        return tuple(self._bucket(kind))

    def attributes_for(self, kind: EntityKind, category: str) -> dict[str, AttributeDefinition]:
        """Copy of the definitions registered for one category."""
        return dict(self._bucket(kind).get(category, {}))

    def __len__(self) -> int:
        return sum(
            len(attributes)
            for categories in self._definitions.values()
            for attributes in categories.values()
        )

    def to_dict(self) -> dict[str, dict[str, dict[str, dict]]]:
        """JSON-mode dump of every definition."""
        return {
            kind.value: {
                category: {
                    name: definition.model_dump(mode="json")
                    for name, definition in attributes.items()
                }
                for category, attributes in categories.items()
            }
            for kind, categories in self._definitions.items()
        }

    def to_prompt_text(self) -> str:
        """Render the library for the oracle, one attribute per line."""
        lines = ["=== ATTRIBUTES LIBRARY ==="]
        for kind, categories in self._definitions.items():
            if not categories:
                continue
            lines.append("")
            lines.append(f"{kind.value.upper()} CATEGORIES:")
            for category, attributes in categories.items():
                lines.append(f'  Category: "{category}"')
                if not attributes:
                    lines.append("    (no attributes defined)")
                for name, definition in attributes.items():
                    type_info = definition.type.value
                    if definition.range is not None:
                        low, high = definition.range
                        type_info = f"{type_info} ({low:g}-{high:g})"
                    if definition.values:
                        type_info = f"{type_info} [{', '.join(definition.values)}]"
                    lines.append(
                        f"    - {name} ({type_info}): {definition.description} -> {definition.reference}"
                    )
        return "\n".join(lines)


__all__ = [
    "NamedAttributeDefinition",
    "CategoryDefinition",
    "AttributeSchemaLibrary",
]
