"""Tests for the attribute schema library."""

from __future__ import annotations

import pytest

from lostworld.core.exceptions import SchemaLibraryError
from lostworld.models import AttributeDefinition, AttributeType, EntityKind
from lostworld.store import AttributeSchemaLibrary


class TestDefine:
    """Tests for define and resolve."""

    def test_define_then_resolve(self, morale_definition: AttributeDefinition) -> None:
        """Test a new definition becomes resolvable."""
        library = AttributeSchemaLibrary()

        effective = library.define(EntityKind.NPC, "merchant", "morale", morale_definition)

        assert effective is morale_definition
        assert library.resolve(EntityKind.NPC, "merchant", "morale") == morale_definition

    def test_first_writer_wins(self, morale_definition: AttributeDefinition) -> None:
        """Test a later definition with other metadata is a no-op."""
        library = AttributeSchemaLibrary()
        library.define(EntityKind.NPC, "merchant", "morale", morale_definition)
        other = AttributeDefinition(type=AttributeType.STRING, description="Mood", reference="text")

        effective = library.define(EntityKind.NPC, "merchant", "morale", other)

        assert effective == morale_definition
        assert library.resolve(EntityKind.NPC, "merchant", "morale") == morale_definition

    def test_define_is_idempotent(self, morale_definition: AttributeDefinition) -> None:
        """Test repeating a define leaves the library unchanged."""
        library = AttributeSchemaLibrary()
        library.define(EntityKind.NPC, "merchant", "morale", morale_definition)
        before = library.to_dict()

        library.define(EntityKind.NPC, "merchant", "morale", morale_definition)

        assert library.to_dict() == before
        assert len(library) == 1

    def test_categories_are_scoped(self, morale_definition: AttributeDefinition) -> None:
        """Test definitions do not leak across categories or kinds."""
        library = AttributeSchemaLibrary()
        library.define(EntityKind.NPC, "merchant", "morale", morale_definition)

        assert library.resolve(EntityKind.NPC, "guard", "morale") is None
        assert library.resolve(EntityKind.ITEM, "merchant", "morale") is None

    def test_category_autovivifies(self, morale_definition: AttributeDefinition) -> None:
        """Test an unknown category is created on first define."""
        library = AttributeSchemaLibrary()
        library.define(EntityKind.NPC, "bandit", "morale", morale_definition)

        assert library.categories_for(EntityKind.NPC) == ("bandit",)

    def test_blank_names_rejected(self, morale_definition: AttributeDefinition) -> None:
        """Test blank category or attribute names are rejected."""
        library = AttributeSchemaLibrary()
        with pytest.raises(SchemaLibraryError):
            library.define(EntityKind.NPC, " ", "morale", morale_definition)
        with pytest.raises(SchemaLibraryError):
            library.define(EntityKind.NPC, "merchant", "", morale_definition)

    def test_regions_rejected(self, morale_definition: AttributeDefinition) -> None:
        """Test regions carry no attributes."""
        with pytest.raises(SchemaLibraryError):
            AttributeSchemaLibrary().define(EntityKind.REGION, "plains", "morale", morale_definition)


class TestSeededLibrary:
    """Tests for libraries seeded from rule categories."""

    def test_from_categories(self, library: AttributeSchemaLibrary) -> None:
        """Test rule categories and their attributes are registered."""
        assert library.categories_for(EntityKind.LOCATION) == ("town",)
        assert set(library.attributes_for(EntityKind.NPC, "merchant")) == {"gold"}
        assert library.resolve(EntityKind.ITEM, "weapon", "sharpness").range == (0, 100)

    def test_attributes_for_is_a_copy(self, library: AttributeSchemaLibrary) -> None:
        """Test the returned mapping cannot change the library."""
        library.attributes_for(EntityKind.NPC, "merchant").clear()
        assert library.resolve(EntityKind.NPC, "merchant", "gold") is not None

    def test_prompt_text(self, library: AttributeSchemaLibrary) -> None:
        """Test the oracle rendering lists categories and attributes."""
        text = library.to_prompt_text()

        assert text.startswith("=== ATTRIBUTES LIBRARY ===")
        assert 'Category: "merchant"' in text
        assert "- sharpness (integer (0-100)): How well the blade cuts -> 0 blunt, 100 razor" in text
        assert "(no attributes defined)" in text
