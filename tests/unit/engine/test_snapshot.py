"""Tests for world snapshot assembly."""

from __future__ import annotations

from lostworld.engine.snapshot import build_snapshot
from lostworld.models import Actor, EntityKind, EventType, OracleId, PlayerState
from lostworld.store import AttributeSchemaLibrary, EntityMemoryStore
from lostworld.timeline import TimelineLog, TimelineTags


def _fill(timeline: TimelineLog) -> None:
    for turn in (1, 2, 3):
        timeline.append(
            TimelineTags.build(
                event=EventType.TURN_PROGRESSION,
                oracle=OracleId.TURN_PROGRESSION,
                actor=Actor.AI,
            ),
            f"summary {turn}",
            turn,
        )
        timeline.append(
            TimelineTags.build(event=EventType.DIALOGUE, oracle=OracleId.ADVISOR, actor=Actor.USER),
            f"asked advisor {turn}",
            turn,
        )


class TestBuildSnapshot:
    """Tests for build_snapshot."""

    def test_is_pure(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
    ) -> None:
        """Test building a snapshot writes nothing."""
        _fill(timeline)
        before = (store.to_dict(), timeline.entries, library.to_dict(), player.model_dump())

        build_snapshot(turn=3, timeline=timeline, store=store, library=library, player=player)

        assert (store.to_dict(), timeline.entries, library.to_dict(), player.model_dump()) == before

    def test_turn_slices(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
    ) -> None:
        """Test current and previous turn entries are sliced out."""
        _fill(timeline)

        snapshot = build_snapshot(turn=3, timeline=timeline, store=store, library=library, player=player)

        assert [e.text for e in snapshot.current_turn_entries] == ["summary 3", "asked advisor 3"]
        assert [e.text for e in snapshot.previous_turn_entries] == ["summary 2", "asked advisor 2"]

    def test_world_context_window(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
    ) -> None:
        """Test world context holds other oracles' entries from past turns."""
        _fill(timeline)

        snapshot = build_snapshot(
            turn=3,
            timeline=timeline,
            store=store,
            library=library,
            player=player,
            world_context_lookback=1,
        )

        assert [e.text for e in snapshot.world_context] == ["asked advisor 2"]

    def test_entity_summary(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
    ) -> None:
        """Test entities are summarised without attribute metadata."""
        snapshot = build_snapshot(turn=1, timeline=timeline, store=store, library=library, player=player)

        sword = snapshot.entities[EntityKind.ITEM][0]
        assert sword.to_dict() == {
            "id": "item_sword_001",
            "name": "Sword",
            "region": "region_a",
            "x": 2,
            "y": 3,
            "attributes": {"sharpness": 40},
        }
        assert snapshot.entity_count == 3
        assert snapshot.player_position == ("region_a", 1, 1)

    def test_player_copied(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
    ) -> None:
        """Test later player changes do not leak into the snapshot."""
        snapshot = build_snapshot(turn=1, timeline=timeline, store=store, library=library, player=player)

        player.status.apply_delta(-50, 0)
        player.apply_stat_delta("strength", 5)

        assert snapshot.player_status.health == 100
        assert snapshot.player_stats["strength"].value == 90

    def test_prompt_text(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
    ) -> None:
        """Test the prompt rendering carries every section."""
        _fill(timeline)

        text = build_snapshot(
            turn=3,
            timeline=timeline,
            store=store,
            library=library,
            player=player,
            rules="Magic is rare.",
            player_action="I greet Hans",
        ).to_prompt_text()

        assert "=== GAME RULES ===\nMagic is rare." in text
        assert "=== ATTRIBUTES LIBRARY ===" in text
        assert '"id": "npc_hans_001"' in text
        assert "Location: region_a:1:1" in text
        assert "- strength: 90/100 (tier 1: Tier 1)" in text
        assert "=== PREVIOUS TURN (2) ===" in text
        assert "=== PLAYER ACTION ===\nI greet Hans" in text
