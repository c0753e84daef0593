"""Turn engine: snapshot, oracle, validation and execution.

Submodules:
    snapshot: Read-only world context handed to the oracle
    oracle: Decision oracle port and OpenAI-compatible adapter
    validation: Structural checks turning a payload into a Decision
    generation: Entity generation port for spawn effects
    callbacks: Host callback surface receiving effects
    turn_controller: Validate-then-execute turn pipeline
    runner: Re-entrancy guard and retry policy around the controller
"""

from __future__ import annotations

from lostworld.engine.callbacks import TurnCallbacks, WorldCallbacks
from lostworld.engine.generation import (
    EntityGenerator,
    GeneratedEntityPayload,
    OpenAIEntityGenerator,
    build_entity,
    parse_generated_entity,
)
from lostworld.engine.oracle import (
    DecisionOracle,
    OpenAIDecisionOracle,
    create_openai_client,
    parse_decision_text,
)
from lostworld.engine.runner import TurnRunner
from lostworld.engine.snapshot import EntitySummary, WorldSnapshot, build_snapshot
from lostworld.engine.turn_controller import (
    EffectOutcome,
    FailureKind,
    TurnController,
    TurnPhase,
    TurnResult,
    TurnStatus,
)
from lostworld.engine.validation import validate_decision


__all__ = [
    # Callbacks
    "TurnCallbacks",
    "WorldCallbacks",
    # Generation
    "EntityGenerator",
    "GeneratedEntityPayload",
    "OpenAIEntityGenerator",
    "build_entity",
    "parse_generated_entity",
    # Oracle
    "DecisionOracle",
    "OpenAIDecisionOracle",
    "create_openai_client",
    "parse_decision_text",
    # Snapshot
    "EntitySummary",
    "WorldSnapshot",
    "build_snapshot",
    # Turns
    "EffectOutcome",
    "FailureKind",
    "TurnController",
    "TurnPhase",
    "TurnResult",
    "TurnStatus",
    "TurnRunner",
    "validate_decision",
]
