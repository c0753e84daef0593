"""Enumeration types for the LostWorld turn engine.

These enums close the vocabulary of the world model: entity kinds,
attribute value types, rarities, change sources for the history tracker,
and the facets used to tag timeline entries.
"""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    """Kinds of entities held by the entity memory store."""

    ITEM = "item"
    """Portable objects (weapons, tools, keys)."""

    NPC = "npc"
    """Non-player characters."""

    LOCATION = "location"
    """Places within a region (towns, dungeons, buildings)."""

    REGION = "region"
    """Structural world-map cell; carries no attributes."""

    @property
    def is_spatial(self) -> bool:
        """Whether entities of this kind live in the region:x:y grid."""
        return self is not EntityKind.REGION

    @property
    def plural(self) -> str:
        """Collection name used by coordinate lookups (items, npcs, locations)."""
        return f"{self.value}s"


SPATIAL_KINDS: tuple[EntityKind, ...] = (
    EntityKind.ITEM,
    EntityKind.NPC,
    EntityKind.LOCATION,
)
"""Kinds that can be spawned, summarised and carry attributes."""

MOVABLE_KINDS: tuple[EntityKind, ...] = (EntityKind.ITEM, EntityKind.NPC)
"""Kinds a decision may relocate."""


class AttributeType(StrEnum):
    """Value types an entity attribute may hold."""

    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"

    @property
    def is_numeric(self) -> bool:
        """Whether definitions of this type must be seeded with a number."""
        return self in (AttributeType.INTEGER, AttributeType.NUMBER)


class Rarity(StrEnum):
    """Rarity levels shared by all generated entities."""

    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class ChangeSource(StrEnum):
    """Origin of an entity mutation recorded in the history tracker."""

    PLAYER_ACTION = "player_action"
    """Direct consequence of something the player did."""

    ORCHESTRATOR = "orchestrator"
    """Applied by the turn controller from an oracle decision."""

    SYSTEM = "system"
    """Engine bookkeeping (seeding, migrations)."""

    MANUAL = "manual"
    """Edited by hand through a developer tool."""


class EventType(StrEnum):
    """Semantic event type facet of a timeline entry."""

    DIALOGUE = "dialogue"
    GENERATION = "generation"
    ENTITY_CHANGE = "entityChange"
    TURN_PROGRESSION = "turnProgression"
    TURN_GOAL = "turnGoal"
    TURN_FAILURE = "turnFailure"
    PLAYER_ACTION = "playerAction"
    STATUS_CHANGE = "statusChange"
    NONE = "none"


class OracleId(StrEnum):
    """Originating process facet of a timeline entry."""

    ADVISOR = "advisorLLM"
    TURN_PROGRESSION = "turnProgressionLLM"
    ORCHESTRATOR = "orchestratorLLM"
    NONE = "none"


class Actor(StrEnum):
    """Responsible actor facet of a timeline entry."""

    USER = "user"
    AI = "ai"
    NONE = "none"


__all__ = [
    "EntityKind",
    "SPATIAL_KINDS",
    "MOVABLE_KINDS",
    "AttributeType",
    "Rarity",
    "ChangeSource",
    "EventType",
    "OracleId",
    "Actor",
]
