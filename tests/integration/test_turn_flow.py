"""Integration tests for multi-turn play.

Drives several turns through the runner and checks that the stores,
the timeline and the player evolve consistently.
"""

from __future__ import annotations

import json
from typing import Any

from doubles import FakeGenerator, ScriptedOracle, decision
from lostworld.core.config import EngineSettings, RetrySettings
from lostworld.core.exceptions import OracleTimeoutError
from lostworld.engine import TurnController, TurnRunner
from lostworld.models import Actor, EntityKind, EventType, OracleId, PlayerState
from lostworld.store import AttributeSchemaLibrary, EntityMemoryStore
from lostworld.timeline import TimelineLog, TimelineTags


SCRIPT = [
    decision(
        goal="Reach the forge",
        summary="Hans packs his cart.",
        entityGeneration=[
            {"type": "location", "prompt": "forge", "region": "region_a", "x": 5, "y": 5,
             "changeReason": "The smith opened shop"},
        ],
        statusChanges={"health": 0, "energy": -20, "changeReason": "Early start"},
    ),
    OracleTimeoutError("Oracle did not answer"),
    decision(
        goal="Get the sword sharpened",
        summary="Hans drags the sword to the forge.",
        entityMoves=[
            {"entityId": "item_sword_001", "entityType": "item", "newRegion": "region_a",
             "newX": 5, "newY": 5, "changeReason": "Hans brought it"},
        ],
        statChanges=[{"statName": "strength", "delta": 15, "changeReason": "Pushed the cart"}],
    ),
    decision(
        goal="Pay the smith",
        summary="Sparks fly as the blade is ground.",
        attributeChanges=[
            {"entityId": "item_sword_001", "entityType": "item", "attributeName": "sharpness",
             "newValue": 95, "changeReason": "Ground at the forge"},
            {"entityId": "location_forge_001", "entityType": "location", "attributeName": "heat",
             "newValue": 80, "changeReason": "Bellows running", "type": "integer",
             "description": "Temperature of the hearth", "reference": "0 cold, 100 white hot"},
        ],
    ),
]


def _play(
    store: EntityMemoryStore,
    timeline: TimelineLog,
    library: AttributeSchemaLibrary,
    player: PlayerState,
    generator: FakeGenerator,
) -> tuple[TurnController, list[Any]]:
    controller = TurnController.headless(
        store=store,
        timeline=timeline,
        library=library,
        player=player,
        oracle=ScriptedOracle(*SCRIPT),
        generator=generator,
        settings=EngineSettings(world_context_lookback=2),
        rules="Magic is rare.",
    )
    runner = TurnRunner(
        controller,
        retry=RetrySettings(max_attempts=2, wait_min_seconds=0, wait_max_seconds=0),
        sleep=lambda seconds: None,
    )
    results = [runner.play_turn(action) for action in ("I follow Hans", "I help", "I watch")]
    return controller, results


class TestTurnFlow:
    """Test several turns played back to back."""

    def test_world_state_after_three_turns(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
        generator: FakeGenerator,
    ) -> None:
        """Entities, library and player reflect every applied effect."""
        controller, results = _play(store, timeline, library, player, generator)

        assert [r.succeeded for r in results] == [True, True, True]
        assert controller.current_turn == 4

        forge_cell = store.entities_at("region_a", 5, 5)
        assert forge_cell.ids() == {"location_forge_001", "item_sword_001"}
        assert store.by_id(EntityKind.ITEM, "item_sword_001").own_attributes["sharpness"].value == 95
        forge = store.by_id(EntityKind.LOCATION, "location_forge_001")
        assert forge.own_attributes["heat"].value == 80
        assert library.resolve(EntityKind.LOCATION, "common", "heat") is not None

        assert player.status.energy == 80
        assert (player.stats["strength"].value, player.stats["strength"].tier) == (5, 2)

    def test_timeline_after_three_turns(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
        generator: FakeGenerator,
    ) -> None:
        """The failed attempt and every goal land on the right turns."""
        _play(store, timeline, library, player, generator)

        failures = timeline.with_tags("type:turnFailure")
        assert [entry.turn for entry in failures] == [2]

        goals = timeline.with_tags("type:turnGoal")
        assert [(g.turn, g.text) for g in goals] == [
            (2, "Reach the forge"),
            (3, "Get the sword sharpened"),
            (4, "Pay the smith"),
        ]
        summaries = timeline.with_tags("type:turnProgression", "actor:ai")
        assert [s.turn for s in summaries] == [1, 2, 3]

        sword_moves = [
            e for e in timeline.with_tags("locationUpdate") if "name: Sword" in e.text
        ]
        assert len(sword_moves) == 1
        assert sword_moves[0].turn == 2

    def test_world_context_from_other_oracles(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
        generator: FakeGenerator,
    ) -> None:
        """Advisor dialogue reaches later snapshots but not the advisor's own history."""
        timeline.append(
            TimelineTags.build(
                event=EventType.DIALOGUE,
                oracle=OracleId.ADVISOR,
                actor=Actor.USER,
                location=TimelineTags.at("region_a", 1, 1),
            ),
            "Should I trust Hans?",
            1,
        )

        controller, _ = _play(store, timeline, library, player, generator)

        last_snapshot = controller.oracle.snapshots[-1]
        assert last_snapshot.turn == 3
        assert [e.text for e in last_snapshot.world_context] == ["Should I trust Hans?"]
        assert timeline.dialogue_history(OracleId.ADVISOR, 4) == (timeline.entries[0],)

    def test_state_serializes(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
        generator: FakeGenerator,
    ) -> None:
        """Stores dump to plain JSON after play."""
        _play(store, timeline, library, player, generator)

        dumped = json.loads(json.dumps({"entities": store.to_dict(), "library": library.to_dict()}))

        assert {e["id"] for e in dumped["entities"]["locations"]} == {
            "location_market_001",
            "location_forge_001",
        }
        assert store.history.stats().total_entries >= 4
