"""Tests for entity generation."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from lostworld.core.config import OracleSettings
from lostworld.core.exceptions import EntityGenerationError, OracleResponseError
from lostworld.engine.generation import (
    GeneratedEntityPayload,
    OpenAIEntityGenerator,
    build_entity,
    parse_generated_entity,
)
from lostworld.models import NPC, EntityKind, EntitySpawn, Item, Location, Rarity
from lostworld.store import AttributeSchemaLibrary, EntityMemoryStore


GENERATED_SWORD = {
    "name": "Rusty Blade",
    "category": "weapon",
    "rarity": "rare",
    "visualDescription": "Orange with rust",
    "functionalDescription": "Still cuts",
    "attributes": {
        "sharpness": {
            "value": 20,
            "type": "integer",
            "description": "How well the blade cuts",
            "reference": "0 blunt, 100 razor",
        },
    },
}


def _spawn(kind: EntityKind = EntityKind.ITEM) -> EntitySpawn:
    return EntitySpawn(
        kind=kind,
        prompt="a rusty blade",
        region="region_a",
        x=4,
        y=2,
        change_reason="dropped by a bandit",
    )


class TestBuildEntity:
    """Tests for build_entity."""

    def test_item(self) -> None:
        """Test items land at the requested cell with their attributes."""
        payload = GeneratedEntityPayload.model_validate(GENERATED_SWORD)

        entity = build_entity(_spawn(), payload, "item_rusty_blade_001")

        assert isinstance(entity, Item)
        assert entity.id == "item_rusty_blade_001"
        assert (entity.region, entity.x, entity.y) == ("region_a", 4, 2)
        assert entity.rarity is Rarity.RARE
        assert entity.attribute_values() == {"sharpness": 20}

    def test_npc_default_purpose(self) -> None:
        """Test NPCs without a purpose get a generic one."""
        payload = GeneratedEntityPayload(name="Greta")

        entity = build_entity(_spawn(EntityKind.NPC), payload, "npc_greta_001")

        assert isinstance(entity, NPC)
        assert entity.purpose == "generic"

    def test_location_type(self) -> None:
        payload = GeneratedEntityPayload(name="Forge", location_type="building")

        entity = build_entity(_spawn(EntityKind.LOCATION), payload, "location_forge_001")

        assert isinstance(entity, Location)
        assert entity.location_type == "building"


class TestParseGeneratedEntity:
    """Tests for parse_generated_entity."""

    def test_fenced(self) -> None:
        payload = parse_generated_entity("```json\n" + json.dumps(GENERATED_SWORD) + "\n```")

        assert payload.name == "Rusty Blade"
        assert payload.attributes["sharpness"].value == 20

    def test_invalid_json(self) -> None:
        with pytest.raises(OracleResponseError, match="not valid JSON"):
            parse_generated_entity("a blade")

    def test_missing_name(self) -> None:
        """Test a nameless entity is rejected."""
        with pytest.raises(OracleResponseError, match="entity shape"):
            parse_generated_entity(json.dumps({"category": "weapon"}))


class TestOpenAIEntityGenerator:
    """Tests for OpenAIEntityGenerator."""

    def _generator(self, client: MagicMock) -> OpenAIEntityGenerator:
        return OpenAIEntityGenerator(
            settings=OracleSettings(generation_model="test/fast"),
            client=client,
        )

    def test_generates_with_reserved_id(
        self, store: EntityMemoryStore, library: AttributeSchemaLibrary
    ) -> None:
        """Test the generated entity gets an id from the host allocator."""
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=json.dumps(GENERATED_SWORD)))]
        )

        entity = self._generator(client).generate(
            _spawn(), allocate_id=store.allocate_id, library=library, rules="Magic is rare."
        )

        assert entity.id.startswith("item_")
        assert not store.contains(entity.id)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test/fast"
        assert "sharpness" in kwargs["messages"][0]["content"]
        assert "Create: a rusty blade" in kwargs["messages"][1]["content"]
        assert kwargs["messages"][1]["content"].startswith("Magic is rare.")

    def test_request_failure(
        self, store: EntityMemoryStore, library: AttributeSchemaLibrary
    ) -> None:
        """Test SDK errors become EntityGenerationError."""
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        )

        with pytest.raises(EntityGenerationError, match="request failed"):
            self._generator(client).generate(
                _spawn(), allocate_id=store.allocate_id, library=library
            )

    def test_bad_answer(self, store: EntityMemoryStore, library: AttributeSchemaLibrary) -> None:
        """Test unparseable answers become EntityGenerationError."""
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="nothing"))]
        )

        with pytest.raises(EntityGenerationError, match="not valid JSON"):
            self._generator(client).generate(
                _spawn(), allocate_id=store.allocate_id, library=library
            )
