"""Pydantic V2 models for the LostWorld turn engine.

Submodules:
    enums: Closed vocabularies (EntityKind, AttributeType, EventType, ...)
    entities: World entities and attribute definitions
    player: Tiered player stats, status and position
    decision: Oracle wire payload and the validated Decision

Example:
    >>> from lostworld.models import NPC, EntityKind
    >>> hans = NPC(id="npc_hans_001", name="Hans", category="merchant",
    ...            region="region_a", x=1, y=1)
    >>> hans.kind is EntityKind.NPC
    True
"""

from __future__ import annotations

# =============================================================================
# Enumerations
# =============================================================================
from lostworld.models.enums import (
    MOVABLE_KINDS,
    SPATIAL_KINDS,
    Actor,
    AttributeType,
    ChangeSource,
    EntityKind,
    EventType,
    OracleId,
    Rarity,
)

# =============================================================================
# Entities
# =============================================================================
from lostworld.models.entities import (
    ENTITY_MODELS,
    NPC,
    AnyEntity,
    Attribute,
    AttributeDefinition,
    AttributeValue,
    Entity,
    Item,
    Location,
    Region,
    SpatialEntity,
    coordinate_key,
)

# =============================================================================
# Player
# =============================================================================
from lostworld.models.player import PlayerStat, PlayerState, PlayerStatus, roll_over

# =============================================================================
# Decision
# =============================================================================
from lostworld.models.decision import (
    AttributeChange,
    AttributeChangePayload,
    Decision,
    DecisionPayload,
    DefineAttribute,
    EntityGenerationPayload,
    EntityMove,
    EntityMovePayload,
    EntitySpawn,
    StatChange,
    StatChangePayload,
    StatusChange,
    StatusChangePayload,
    TurnGoal,
    TurnGoalPayload,
    UpdateAttributeValue,
)


__all__ = [
    # Enums
    "EntityKind",
    "SPATIAL_KINDS",
    "MOVABLE_KINDS",
    "AttributeType",
    "Rarity",
    "ChangeSource",
    "EventType",
    "OracleId",
    "Actor",
    # Entities
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
    # Player
    "roll_over",
    "PlayerStat",
    "PlayerStatus",
    "PlayerState",
    # Decision wire
    "DecisionPayload",
    "TurnGoalPayload",
    "EntityGenerationPayload",
    "EntityMovePayload",
    "AttributeChangePayload",
    "StatusChangePayload",
    "StatChangePayload",
    # Decision typed
    "Decision",
    "TurnGoal",
    "EntitySpawn",
    "EntityMove",
    "DefineAttribute",
    "UpdateAttributeValue",
    "AttributeChange",
    "StatusChange",
    "StatChange",
]
