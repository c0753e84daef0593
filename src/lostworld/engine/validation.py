"""Structural validation of oracle decisions.

Validation is independent of game semantics: it never looks at the
stores, only at the shape of the payload. It runs to completion and
collects every problem before raising, so a rejected decision is
described by one ``DecisionValidationError`` and nothing is executed.
The same invalid payload is rejected the same way every time.

The validator is also the only place that turns the lenient wire payload
into the typed ``Decision``. Attribute changes that carry any schema
field (type, description, reference) become ``DefineAttribute`` and must
carry all three; the rest become ``UpdateAttributeValue`` and must carry
a ``newValue``.
"""

from __future__ import annotations

from lostworld.core.constants import MAX_ENTITY_GENERATIONS_PER_TURN
from lostworld.core.exceptions import DecisionValidationError
from lostworld.core.logging import get_logger
from lostworld.models.decision import (
    AttributeChange,
    AttributeChangePayload,
    Decision,
    DecisionPayload,
    DefineAttribute,
    EntityMove,
    EntitySpawn,
    StatChange,
    StatusChange,
    TurnGoal,
    UpdateAttributeValue,
)
from lostworld.models.entities import AttributeDefinition
from lostworld.models.enums import MOVABLE_KINDS, SPATIAL_KINDS, AttributeType, EntityKind


logger = get_logger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _kind(value: str, allowed: tuple[EntityKind, ...]) -> EntityKind | None:
    try:
        kind = EntityKind(value)
    except ValueError:
        return None
    return kind if kind in allowed else None


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def validate_decision(
    payload: DecisionPayload,
    *,
    max_generations: int = MAX_ENTITY_GENERATIONS_PER_TURN,
    turn: int | None = None,
) -> Decision:
    """Check a wire payload and convert it into a typed decision.

    Args:
        payload: Decision as received from the oracle.
        max_generations: Upper bound on spawn requests.
        turn: Turn being validated, for error context.

    Returns:
        The validated decision.

    Raises:
        DecisionValidationError: Listing every violated rule.
    """
    problems: list[str] = []

    # Turn goal and summary
    turn_goal: TurnGoal | None = None
    if payload.turn_goal is None:
        problems.append("turnGoal is required")
    else:
        if _blank(payload.turn_goal.text):
            problems.append("turnGoal.text is required")
        if _blank(payload.turn_goal.change_reason):
            problems.append("turnGoal.changeReason is required")
        if not problems:
            turn_goal = TurnGoal(
                text=payload.turn_goal.text.strip(),
                change_reason=payload.turn_goal.change_reason.strip(),
            )

    if _blank(payload.turn_progression):
        problems.append("turnProgression is required")

    # Entity generation
    spawns: list[EntitySpawn] = []
    if len(payload.entity_generation) > max_generations:
        problems.append(
            f"entityGeneration has {len(payload.entity_generation)} entries, "
            f"at most {max_generations} allowed"
        )
    for index, generation in enumerate(payload.entity_generation):
        path = f"entityGeneration[{index}]"
        kind = _kind(generation.type, SPATIAL_KINDS)
        if kind is None:
            problems.append(f"{path}.type must be item, npc or location, got {generation.type!r}")
        if _blank(generation.change_reason):
            problems.append(f"{path}.changeReason is required")
        if kind is not None and not _blank(generation.change_reason):
            spawns.append(
                EntitySpawn(
                    kind=kind,
                    prompt=generation.prompt,
                    region=generation.region,
                    x=generation.x,
                    y=generation.y,
                    change_reason=generation.change_reason.strip(),
                )
            )

    # Entity moves
    moves: list[EntityMove] = []
    for index, move in enumerate(payload.entity_moves):
        path = f"entityMoves[{index}]"
        kind = _kind(move.entity_type, MOVABLE_KINDS)
        if kind is None:
            problems.append(f"{path}.entityType must be item or npc, got {move.entity_type!r}")
        if _blank(move.change_reason):
            problems.append(f"{path}.changeReason is required")
        if kind is not None and not _blank(move.change_reason):
            moves.append(
                EntityMove(
                    entity_id=move.entity_id,
                    entity_kind=kind,
                    new_region=move.new_region,
                    new_x=move.new_x,
                    new_y=move.new_y,
                    change_reason=move.change_reason.strip(),
                )
            )

    # Attribute changes
    changes: list[AttributeChange] = []
    for index, change in enumerate(payload.attribute_changes):
        converted = _validate_attribute_change(change, f"attributeChanges[{index}]", problems)
        if converted is not None:
            changes.append(converted)

    # Player deltas
    status_change: StatusChange | None = None
    if payload.status_changes is not None:
        if _blank(payload.status_changes.change_reason):
            problems.append("statusChanges.changeReason is required")
        else:
            status_change = StatusChange(
                health_delta=payload.status_changes.health,
                energy_delta=payload.status_changes.energy,
                change_reason=payload.status_changes.change_reason.strip(),
            )

    stat_changes: list[StatChange] = []
    for index, stat in enumerate(payload.stat_changes):
        path = f"statChanges[{index}]"
        ok = True
        if _blank(stat.stat_name):
            problems.append(f"{path}.statName is required")
            ok = False
        if _blank(stat.change_reason):
            problems.append(f"{path}.changeReason is required")
            ok = False
        if ok:
            stat_changes.append(
                StatChange(
                    stat_name=stat.stat_name,
                    delta=stat.delta,
                    change_reason=stat.change_reason.strip(),
                )
            )

    if problems:
        logger.warning("Decision rejected", turn=turn, problems=problems)
        raise DecisionValidationError(
            f"Decision rejected with {len(problems)} problem(s)",
            problems=problems,
            turn=turn,
        )

    return Decision(
        turn_goal=turn_goal,
        turn_progression=payload.turn_progression.strip(),
        entity_generation=tuple(spawns),
        entity_moves=tuple(moves),
        attribute_changes=tuple(changes),
        status_change=status_change,
        stat_changes=tuple(stat_changes),
    )


def _validate_attribute_change(
    change: AttributeChangePayload,
    path: str,
    problems: list[str],
) -> AttributeChange | None:
    """Classify one attribute change, appending any problems found."""
    start = len(problems)

    kind = _kind(change.entity_type, SPATIAL_KINDS)
    if kind is None:
        problems.append(f"{path}.entityType must be item, npc or location, got {change.entity_type!r}")
    if _blank(change.entity_id):
        problems.append(f"{path}.entityId is required")
    if _blank(change.attribute_name):
        problems.append(f"{path}.attributeName is required")
    if _blank(change.change_reason):
        problems.append(f"{path}.changeReason is required")

    if not change.carries_schema_fields:
        if change.new_value is None:
            problems.append(f"{path}.newValue is required when updating an attribute")
        if len(problems) > start:
            return None
        return UpdateAttributeValue(
            entity_id=change.entity_id,
            entity_kind=kind,
            attribute_name=change.attribute_name,
            new_value=change.new_value,
            change_reason=change.change_reason.strip(),
        )

    # New attribute: type, description and reference are all required
    attribute_type: AttributeType | None = None
    if _blank(change.type):
        problems.append(f"{path}.type is required for a new attribute")
    else:
        try:
            attribute_type = AttributeType(change.type.strip())
        except ValueError:
            problems.append(f"{path}.type {change.type!r} is not a known attribute type")
    if _blank(change.description):
        problems.append(f"{path}.description is required for a new attribute")
    if _blank(change.reference):
        problems.append(f"{path}.reference is required for a new attribute")
    if attribute_type is not None and attribute_type.is_numeric and not _is_number(change.new_value):
        problems.append(f"{path}.newValue must be a number for a new {attribute_type.value} attribute")

    if len(problems) > start:
        return None
    return DefineAttribute(
        entity_id=change.entity_id,
        entity_kind=kind,
        attribute_name=change.attribute_name,
        definition=AttributeDefinition(
            type=attribute_type,
            description=change.description.strip(),
            reference=change.reference.strip(),
            values=tuple(change.values) if change.values else None,
        ),
        value=change.new_value,
        change_reason=change.change_reason.strip(),
    )


__all__ = [
    "validate_decision",
]
