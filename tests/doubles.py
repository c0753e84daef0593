"""Test doubles shared by the unit and integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from lostworld.core.exceptions import EntityGenerationError
from lostworld.engine.generation import EntityGenerator, IdAllocator
from lostworld.engine.oracle import DecisionOracle
from lostworld.engine.snapshot import WorldSnapshot
from lostworld.models import (
    NPC,
    Attribute,
    DecisionPayload,
    EntityKind,
    EntitySpawn,
    Item,
    Location,
)


if TYPE_CHECKING:
    from lostworld.models import SpatialEntity
    from lostworld.store import AttributeSchemaLibrary


class ScriptedOracle(DecisionOracle):
    """Oracle answering from a fixed script.

    Each script step is a decision dict (camelCase, as on the wire), a
    ready ``DecisionPayload`` or an exception instance to raise. The last
    step repeats once the script runs out.
    """

    def __init__(self, *steps: dict[str, Any] | DecisionPayload | Exception) -> None:
        self.steps = list(steps)
        self.snapshots: list[WorldSnapshot] = []

    @property
    def calls(self) -> int:
        return len(self.snapshots)

    def decide(self, snapshot: WorldSnapshot) -> DecisionPayload:
        self.snapshots.append(snapshot)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, DecisionPayload):
            return step
        return DecisionPayload.model_validate(step)


class FakeGenerator(EntityGenerator):
    """Generator building entities from canned names and attributes.

    A spawn whose prompt contains ``"fail"`` raises EntityGenerationError;
    one containing ``"crash"`` raises a plain KeyError, as a buggy host
    generator might.
    """

    def __init__(self, attributes: dict[str, Attribute] | None = None) -> None:
        self.attributes = attributes or {}
        self.requests: list[EntitySpawn] = []

    def generate(
        self,
        spawn: EntitySpawn,
        *,
        allocate_id: IdAllocator,
        library: AttributeSchemaLibrary,
        rules: str = "",
    ) -> SpatialEntity:
        self.requests.append(spawn)
        if "fail" in spawn.prompt:
            raise EntityGenerationError("Generator refused the prompt")
        if "crash" in spawn.prompt:
            raise KeyError("portrait")

        name = spawn.prompt.title() or "Thing"
        common: dict[str, Any] = {
            "id": allocate_id(spawn.kind, name),
            "name": name,
            "region": spawn.region,
            "x": spawn.x,
            "y": spawn.y,
            "own_attributes": {k: v.model_copy() for k, v in self.attributes.items()},
        }
        if spawn.kind is EntityKind.NPC:
            return NPC(**common, category="merchant")
        if spawn.kind is EntityKind.LOCATION:
            return Location(**common, location_type="building")
        return Item(**common, category="weapon")


def decision(
    *,
    goal: str | None = "Find the smith",
    goal_reason: str | None = "The sword needs sharpening",
    summary: str | None = "The market wakes up.",
    **effects: Any,
) -> dict[str, Any]:
    """Build a wire decision dict with a goal, a summary and extra keys."""
    payload: dict[str, Any] = {
        "turnGoal": {"text": goal, "changeReason": goal_reason},
        "turnProgression": summary,
    }
    payload.update(effects)
    return payload
