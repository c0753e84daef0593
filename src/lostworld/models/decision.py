"""Decision contract between the turn controller and the oracle.

Two layers live here:

- The *wire* models (``DecisionPayload`` and friends) mirror the JSON the
  oracle returns, with camelCase keys. They are deliberately lenient:
  optional reasons and goals are accepted so that the validator can report
  every missing piece at once instead of failing on the first one.
- The *typed* models (``Decision`` and its effects) are what the executor
  consumes. Attribute changes are split into the tagged variants
  ``DefineAttribute`` and ``UpdateAttributeValue``.

Only ``lostworld.engine.validation`` converts one into the other.

Example:
    >>> payload = DecisionPayload.model_validate({
    ...     "turnGoal": {"text": "Find the smith", "changeReason": "sword is blunt"},
    ...     "turnProgression": "The market wakes up.",
    ... })
    >>> payload.turn_goal.text
    'Find the smith'
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lostworld.models.entities import AttributeDefinition, AttributeValue
from lostworld.models.enums import EntityKind


# =============================================================================
# Wire Models
# =============================================================================


class WireModel(BaseModel):
    """Base for oracle wire models: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TurnGoalPayload(WireModel):
    """Goal the oracle sets for the next turn."""

    text: str | None = None
    change_reason: str | None = None


class EntityGenerationPayload(WireModel):
    """Request to spawn a new entity."""

    type: str = Field(description="item, npc or location")
    prompt: str = Field(default="", description="What to generate")
    region: str
    x: int
    y: int
    change_reason: str | None = None


class EntityMovePayload(WireModel):
    """Request to relocate an item or NPC."""

    entity_id: str
    entity_type: str = Field(description="item or npc")
    new_region: str
    new_x: int
    new_y: int
    change_reason: str | None = None


class AttributeChangePayload(WireModel):
    """Attribute change; carries schema fields only when defining a new one."""

    entity_id: str
    entity_type: str = Field(description="item, npc or location")
    attribute_name: str
    new_value: AttributeValue = None
    change_reason: str | None = None
    type: str | None = Field(default=None, description="Set only for new attributes")
    description: str | None = Field(default=None, description="Set only for new attributes")
    reference: str | None = Field(default=None, description="Set only for new attributes")
    values: list[str] | None = Field(default=None, description="Allowed values for enum types")

    @property
    def carries_schema_fields(self) -> bool:
        """Whether any of type/description/reference is present."""
        return any(
            field is not None for field in (self.type, self.description, self.reference)
        )


class StatusChangePayload(WireModel):
    """Deltas to the player's health and energy."""

    health: int = 0
    energy: int = 0
    change_reason: str | None = None


class StatChangePayload(WireModel):
    """Delta to one player stat."""

    stat_name: str
    delta: int
    change_reason: str | None = None


class DecisionPayload(WireModel):
    """Raw decision object as returned by the oracle."""

    turn_goal: TurnGoalPayload | None = None
    turn_progression: str | None = None
    entity_generation: list[EntityGenerationPayload] = Field(default_factory=list)
    entity_moves: list[EntityMovePayload] = Field(default_factory=list)
    attribute_changes: list[AttributeChangePayload] = Field(default_factory=list)
    status_changes: StatusChangePayload | None = None
    stat_changes: list[StatChangePayload] = Field(default_factory=list)

    @classmethod
    def response_schema(cls) -> dict[str, Any]:
        """JSON schema of the wire shape, as sent to the oracle."""
        return cls.model_json_schema(by_alias=True)


# =============================================================================
# Typed Decision
# =============================================================================


class Effect(BaseModel):
    """Base for validated effects. Every effect carries a reason."""

    model_config = ConfigDict(frozen=True)

    change_reason: str = Field(min_length=1)


class TurnGoal(Effect):
    """Goal for the next turn."""

    text: str


class EntitySpawn(Effect):
    """Spawn one entity at a grid cell."""

    kind: EntityKind
    prompt: str
    region: str
    x: int
    y: int


class EntityMove(Effect):
    """Move one item or NPC to a new grid cell."""

    entity_id: str
    entity_kind: EntityKind
    new_region: str
    new_x: int
    new_y: int


class DefineAttribute(Effect):
    """Introduce a new attribute on an entity and seed its value."""

    effect: Literal["define"] = "define"
    entity_id: str
    entity_kind: EntityKind
    attribute_name: str
    definition: AttributeDefinition
    value: AttributeValue = None


class UpdateAttributeValue(Effect):
    """Change the value of an attribute the entity already has."""

    effect: Literal["update"] = "update"
    entity_id: str
    entity_kind: EntityKind
    attribute_name: str
    new_value: AttributeValue


AttributeChange = DefineAttribute | UpdateAttributeValue


class StatusChange(Effect):
    """Health and energy deltas."""

    health_delta: int
    energy_delta: int


class StatChange(Effect):
    """Delta to one named stat."""

    stat_name: str
    delta: int


class Decision(BaseModel):
    """A structurally valid decision, ready for execution."""

    model_config = ConfigDict(frozen=True)

    turn_goal: TurnGoal
    turn_progression: str
    entity_generation: tuple[EntitySpawn, ...] = ()
    entity_moves: tuple[EntityMove, ...] = ()
    attribute_changes: tuple[AttributeChange, ...] = ()
    status_change: StatusChange | None = None
    stat_changes: tuple[StatChange, ...] = ()

    @property
    def effect_count(self) -> int:
        """Number of effects besides the summary and the goal."""
        return (
            len(self.entity_generation)
            + len(self.entity_moves)
            + len(self.attribute_changes)
            + (1 if self.status_change else 0)
            + len(self.stat_changes)
        )


__all__ = [
    "WireModel",
    "TurnGoalPayload",
    "EntityGenerationPayload",
    "EntityMovePayload",
    "AttributeChangePayload",
    "StatusChangePayload",
    "StatChangePayload",
    "DecisionPayload",
    "Effect",
    "TurnGoal",
    "EntitySpawn",
    "EntityMove",
    "DefineAttribute",
    "UpdateAttributeValue",
    "AttributeChange",
    "StatusChange",
    "StatChange",
    "Decision",
]
