"""Entity generation port used by the spawn effect.

A generator turns one ``EntitySpawn`` request into a fully formed item,
NPC or location. Each spawn is independently fallible: a generator
raises ``EntityGenerationError`` and the turn controller skips that one
spawn.

``OpenAIEntityGenerator`` asks an OpenAI-compatible model for the base
description and attributes of the entity, then assembles the model with
an id reserved by the host.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from pydantic import Field, ValidationError

from lostworld.core.config import OracleSettings, get_settings
from lostworld.core.exceptions import EntityGenerationError, OracleResponseError
from lostworld.core.logging import get_logger
from lostworld.engine.oracle import CODE_FENCE, create_openai_client
from lostworld.models.decision import EntitySpawn, WireModel
from lostworld.models.entities import NPC, Attribute, Item, Location, SpatialEntity
from lostworld.models.enums import EntityKind, Rarity
from lostworld.store.schema_library import AttributeSchemaLibrary


logger = get_logger(__name__)


IdAllocator = Callable[[EntityKind, str], str]


class GeneratedEntityPayload(WireModel):
    """Wire shape of a generated entity."""

    name: str = Field(min_length=1)
    category: str | None = None
    rarity: Rarity = Rarity.COMMON
    visual_description: str = ""
    functional_description: str = ""
    purpose: str | None = None
    location_type: str | None = None
    attributes: dict[str, Attribute] = Field(default_factory=dict)


def build_entity(
    spawn: EntitySpawn,
    payload: GeneratedEntityPayload,
    entity_id: str,
) -> SpatialEntity:
    """Assemble an entity model from a generated payload.

    Args:
        spawn: The spawn request (kind and position).
        payload: Generated content.
        entity_id: Id reserved for the entity.

    Returns:
        The new entity, placed at the requested cell.
    """
    common: dict[str, Any] = {
        "id": entity_id,
        "name": payload.name,
        "category": payload.category,
        "rarity": payload.rarity,
        "visual_description": payload.visual_description,
        "functional_description": payload.functional_description,
        "region": spawn.region,
        "x": spawn.x,
        "y": spawn.y,
        "own_attributes": payload.attributes,
    }
    match spawn.kind:
        case EntityKind.NPC:
            return NPC(**common, purpose=payload.purpose or "generic")
        case EntityKind.LOCATION:
            return Location(**common, location_type=payload.location_type)
        case _:
            return Item(**common)


class EntityGenerator(ABC):
    """Port producing one entity per spawn request."""

    @abstractmethod
    def generate(
        self,
        spawn: EntitySpawn,
        *,
        allocate_id: IdAllocator,
        library: AttributeSchemaLibrary,
        rules: str = "",
    ) -> SpatialEntity:
        """Generate one entity.

        Args:
            spawn: What to generate and where.
            allocate_id: Reserves a unique id for a kind and name.
            library: Known attributes, offered to the generator for reuse.
            rules: Static rules document.

        Returns:
            The generated entity, not yet registered anywhere.

        Raises:
            EntityGenerationError: If the entity could not be generated.
        """


GENERATION_SYSTEM_PROMPT = """You create a single {kind} for a narrative role-playing game.

Respond with one JSON object with these keys:
name, category, rarity (common|rare|epic|legendary), visualDescription,
functionalDescription,{extra} attributes.

"attributes" maps attribute names to objects with value, type
(integer|number|string|boolean|enum|array), description and reference.
Prefer attributes that already exist for the chosen category:

{library}"""


class OpenAIEntityGenerator(EntityGenerator):
    """Entity generator backed by an OpenAI-compatible chat completions API."""

    def __init__(
        self,
        *,
        settings: OracleSettings | None = None,
        client: Any = None,
    ) -> None:
        self.settings = settings or get_settings().oracle
        self._client = client

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            self._client = create_openai_client(self.settings)
        return self._client

    def generate(
        self,
        spawn: EntitySpawn,
        *,
        allocate_id: IdAllocator,
        library: AttributeSchemaLibrary,
        rules: str = "",
    ) -> SpatialEntity:
        from openai import OpenAIError

        extra = {
            EntityKind.NPC: " purpose,",
            EntityKind.LOCATION: " locationType,",
        }.get(spawn.kind, "")
        system_prompt = GENERATION_SYSTEM_PROMPT.format(
            kind=spawn.kind.value,
            extra=extra,
            library=library.to_prompt_text(),
        )
        user_prompt = (
            f"{rules.strip()}\n\n" if rules else ""
        ) + f"Create: {spawn.prompt}\nPlaced at {spawn.region}:{spawn.x}:{spawn.y}."

        model = self.settings.generation_model
        try:
            response = self._get_client().chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                response_format={"type": "json_object"},
                timeout=self.settings.timeout_seconds,
            )
        except OpenAIError as exc:
            raise EntityGenerationError(
                f"Entity generation request failed: {exc}",
                model=model,
                provider=self.settings.provider,
            ) from exc

        content = response.choices[0].message.content if response.choices else ""
        try:
            payload = parse_generated_entity(content or "")
        except OracleResponseError as exc:
            raise EntityGenerationError(
                exc.message,
                model=model,
                provider=self.settings.provider,
                details=exc.details,
            ) from exc

        entity = build_entity(spawn, payload, allocate_id(spawn.kind, payload.name))
        logger.info(
            "Entity generated",
            entity_id=entity.id,
            entity_kind=spawn.kind.value,
            category=entity.category,
        )
        return entity


def parse_generated_entity(text: str) -> GeneratedEntityPayload:
    """Parse a generated entity, tolerating a markdown code fence.

    Raises:
        OracleResponseError: If the text is not a valid entity object.
    """
    match = CODE_FENCE.match(text)
    body = match.group(1) if match else text.strip()
    try:
        return GeneratedEntityPayload.model_validate(json.loads(body))
    except json.JSONDecodeError as exc:
        raise OracleResponseError(f"Generated entity is not valid JSON: {exc.msg}") from exc
    except ValidationError as exc:
        raise OracleResponseError(
            "Generated entity does not match the entity shape",
            details={"errors": exc.error_count()},
        ) from exc


__all__ = [
    "IdAllocator",
    "GeneratedEntityPayload",
    "build_entity",
    "EntityGenerator",
    "OpenAIEntityGenerator",
    "parse_generated_entity",
]
