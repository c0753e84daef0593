"""World snapshot assembled at the start of every turn.

Building the snapshot is pure: it reads the timeline, the entity store,
the schema library and the player state, and writes nothing. Entities
are summarised as id, name, position and attribute values only; attribute
metadata lives in the library text so it is sent once, not per entity.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from lostworld.core.constants import WORLD_CONTEXT_LOOKBACK_TURNS
from lostworld.models.entities import AttributeValue, SpatialEntity
from lostworld.models.enums import SPATIAL_KINDS, EntityKind, OracleId
from lostworld.models.player import PlayerState, PlayerStat, PlayerStatus
from lostworld.store.entity_store import EntityMemoryStore
from lostworld.store.schema_library import AttributeSchemaLibrary
from lostworld.timeline.log import TimelineEntry, TimelineLog


@dataclass(frozen=True)
class EntitySummary:
    """Bounded view of one entity for the oracle."""

    id: str
    name: str
    kind: EntityKind
    region: str
    x: int
    y: int
    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    @classmethod
    def of(cls, entity: SpatialEntity) -> EntitySummary:
        return cls(
            id=entity.id,
            name=entity.name,
            kind=entity.kind,
            region=entity.region,
            x=entity.x,
            y=entity.y,
            attributes=entity.attribute_values(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "region": self.region,
            "x": self.x,
            "y": self.y,
            "attributes": self.attributes,
        }


@dataclass(frozen=True)
class WorldSnapshot:
    """Everything the oracle sees for one turn.

    Attributes:
        turn: Turn being decided.
        player_action: What the player did this turn, if anything.
        entities: Entity summaries grouped by kind.
        current_turn_entries: Timeline entries of the turn being decided.
        previous_turn_entries: Timeline entries of the turn before.
        world_context: Recent entries written by other oracles or the player.
        player_stats: Player stats by name.
        player_status: Player health and energy.
        player_position: ``(region, x, y)`` of the player, if known.
        attribute_library: Schema library rendered as text.
        rules: Static rules document.
    """

    turn: int
    player_action: str | None
    entities: dict[EntityKind, tuple[EntitySummary, ...]]
    current_turn_entries: tuple[TimelineEntry, ...]
    previous_turn_entries: tuple[TimelineEntry, ...]
    world_context: tuple[TimelineEntry, ...]
    player_stats: dict[str, PlayerStat]
    player_status: PlayerStatus
    player_position: tuple[str, int, int] | None
    attribute_library: str
    rules: str = ""

    @property
    def entity_count(self) -> int:
        return sum(len(group) for group in self.entities.values())

    def to_prompt_text(self) -> str:
        """Serialize the snapshot as prompt context."""
        sections: list[str] = []
        if self.rules:
            sections.append(f"=== GAME RULES ===\n{self.rules.strip()}")

        sections.append(self.attribute_library)

        summary = {
            kind.plural: [entity.to_dict() for entity in group]
            for kind, group in self.entities.items()
        }
        sections.append("=== ENTITY SUMMARY ===\n" + json.dumps(summary, indent=2, ensure_ascii=False))

        player_lines = ["=== PLAYER ==="]
        if self.player_position is not None:
            region, x, y = self.player_position
            player_lines.append(f"Location: {region}:{x}:{y}")
        status = self.player_status
        player_lines.append(
            f"Health: {status.health}/{status.max_health}  Energy: {status.energy}/{status.max_energy}"
        )
        for name, stat in self.player_stats.items():
            player_lines.append(f"- {name}: {stat.value}/100 (tier {stat.tier}: {stat.tier_name})")
        sections.append("\n".join(player_lines))

        if self.world_context:
            sections.append(
                "=== WORLD CONTEXT ===\n" + TimelineLog.format_entries(self.world_context)
            )
        sections.append(
            f"=== PREVIOUS TURN ({self.turn - 1}) ===\n"
            + (TimelineLog.format_entries(self.previous_turn_entries) or "(nothing recorded)")
        )
        sections.append(
            f"=== CURRENT TURN ({self.turn}) ===\n"
            + (TimelineLog.format_entries(self.current_turn_entries) or "(nothing recorded)")
        )
        if self.player_action:
            sections.append(f"=== PLAYER ACTION ===\n{self.player_action}")
        return "\n\n".join(sections)


def build_snapshot(
    *,
    turn: int,
    timeline: TimelineLog,
    store: EntityMemoryStore,
    library: AttributeSchemaLibrary,
    player: PlayerState,
    rules: str = "",
    player_action: str | None = None,
    world_context_lookback: int | None = WORLD_CONTEXT_LOOKBACK_TURNS,
) -> WorldSnapshot:
    """Assemble the snapshot for one turn without touching any store.

    Args:
        turn: Turn being decided.
        timeline: Timeline to slice.
        store: Entity store to summarise.
        library: Attribute library to render.
        player: Player state to copy.
        rules: Static rules document.
        player_action: Player input for this turn.
        world_context_lookback: Past turns of other oracles' entries to
            include; None for unlimited.

    Returns:
        An immutable snapshot.
    """
    entities = {
        kind: tuple(EntitySummary.of(entity) for entity in store.all(kind))
        for kind in SPATIAL_KINDS
    }
    position = (player.region, player.x, player.y) if player.region else None
    return WorldSnapshot(
        turn=turn,
        player_action=player_action,
        entities=entities,
        current_turn_entries=timeline.entries_for_turn(turn),
        previous_turn_entries=timeline.entries_for_turn(turn - 1),
        world_context=timeline.world_context(
            OracleId.TURN_PROGRESSION, turn, world_context_lookback
        ),
        player_stats={name: stat.model_copy() for name, stat in player.stats.items()},
        player_status=player.status.model_copy(),
        player_position=position,
        attribute_library=library.to_prompt_text(),
        rules=rules,
    )


__all__ = [
    "EntitySummary",
    "WorldSnapshot",
    "build_snapshot",
]
