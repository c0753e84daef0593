"""Turn controller: validate-then-execute pipeline for one world turn.

A turn moves through these phases::

    IDLE -> BUILDING_CONTEXT -> AWAITING_DECISION -> VALIDATING -> EXECUTING -> IDLE
                                        |                 |
                                        +----> FAILED <---+-----> IDLE

- BUILDING_CONTEXT assembles a ``WorldSnapshot`` and writes nothing.
- AWAITING_DECISION makes exactly one oracle call. A transport failure
  records a single ``type:turnFailure`` timeline entry and ends the turn.
- VALIDATING checks the whole decision before anything is applied. A
  rejected decision leaves every store exactly as it was.
- EXECUTING applies effects in a fixed order: summary, spawns, moves,
  attribute changes, player status, player stats, and finally the goal
  for the next turn. A failing effect is logged and skipped; the rest of
  the turn still completes.

The turn counter advances only after EXECUTING finishes. Re-entrancy is
guarded by the caller (see ``lostworld.engine.runner``), not here.

Example:
    >>> controller = TurnController.headless(
    ...     store=store, timeline=timeline, library=library, player=player, oracle=oracle
    ... )
    >>> result = controller.run_turn("I ask Hans about the sword")  # doctest: +SKIP
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import ValidationError

from lostworld.core.config import EngineSettings
from lostworld.core.constants import (
    MAX_ENTITY_GENERATIONS_PER_TURN,
    WORLD_CONTEXT_LOOKBACK_TURNS,
)
from lostworld.core.exceptions import (
    DecisionValidationError,
    EntityGenerationError,
    EntityNotFoundError,
    LostWorldError,
    OracleTransportError,
    PlayerStateError,
    SchemaLibraryError,
    TurnExecutionError,
)
from lostworld.core.logging import get_logger, turn_context
from lostworld.engine.callbacks import TurnCallbacks, WorldCallbacks
from lostworld.engine.generation import EntityGenerator
from lostworld.engine.oracle import DecisionOracle
from lostworld.engine.snapshot import WorldSnapshot, build_snapshot
from lostworld.engine.validation import validate_decision
from lostworld.models.decision import (
    DefineAttribute,
    Decision,
    EntityMove,
    EntitySpawn,
    StatChange,
    StatusChange,
    UpdateAttributeValue,
)
from lostworld.models.entities import Entity, SpatialEntity
from lostworld.models.enums import Actor, ChangeSource, EntityKind, EventType, OracleId
from lostworld.models.player import PlayerState
from lostworld.store.entity_store import EntityMemoryStore
from lostworld.store.schema_library import AttributeSchemaLibrary
from lostworld.timeline.log import TimelineLog
from lostworld.timeline.tags import TimelineTags


logger = get_logger(__name__)


# =============================================================================
# Turn Status
# =============================================================================


class TurnPhase(StrEnum):
    """Phase of the turn state machine."""

    IDLE = "idle"
    """No turn in progress."""

    BUILDING_CONTEXT = "building_context"
    """Assembling the world snapshot."""

    AWAITING_DECISION = "awaiting_decision"
    """Waiting for the oracle's answer."""

    VALIDATING = "validating"
    """Checking the decision's structure."""

    EXECUTING = "executing"
    """Applying effects."""

    FAILED = "failed"
    """The turn ended without advancing."""


class TurnStatus(StrEnum):
    """Outcome of a turn."""

    COMPLETED = "completed"
    """Decision executed; the turn counter advanced."""

    FAILED = "failed"
    """Transport or validation failure; the turn counter is unchanged."""


class FailureKind(StrEnum):
    """Why a turn failed."""

    TRANSPORT = "transport"
    """The oracle could not be reached or answered garbage."""

    VALIDATION = "validation"
    """The decision was structurally invalid."""


@dataclass
class EffectOutcome:
    """Result of applying (or skipping) one effect.

    Attributes:
        effect: Effect type (``spawn``, ``move``, ``define_attribute``, ...).
        target: Entity id, stat name or cell the effect addressed.
        applied: Whether the effect took place.
        message: Reason the effect was skipped, if it was.
    """

    effect: str
    target: str | None = None
    applied: bool = True
    message: str = ""


@dataclass
class TurnResult:
    """Result of running one turn.

    Attributes:
        status: Whether the turn completed or failed.
        turn: Turn that was processed.
        current_turn: Turn counter after processing.
        decision: Validated decision, if validation passed.
        failure: Failure class, if the turn failed.
        error: Error message, if the turn failed.
        problems: Validation problems, if the decision was rejected.
        outcomes: Per-effect outcomes, in execution order.
        spawned_ids: Ids of entities created by this turn.
    """

    status: TurnStatus
    turn: int
    current_turn: int
    decision: Decision | None = None
    failure: FailureKind | None = None
    error: str = ""
    problems: list[str] = field(default_factory=list)
    outcomes: list[EffectOutcome] = field(default_factory=list)
    spawned_ids: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == TurnStatus.COMPLETED

    @property
    def skipped(self) -> list[EffectOutcome]:
        """Effects that could not be applied."""
        return [outcome for outcome in self.outcomes if not outcome.applied]


# =============================================================================
# Turn Controller
# =============================================================================


class TurnController:
    """Runs one turn at a time against the world stores.

    The controller reads the timeline, entity store, schema library and
    player state to build its snapshot, owns the schema library during
    execution, and sends every other effect through ``TurnCallbacks``.

    Attributes:
        callbacks: Host callbacks receiving effects.
        oracle: Decision oracle.
        generator: Entity generator for spawn effects (optional).
        rules: Static rules document included in every snapshot.
    """

    def __init__(
        self,
        *,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
        callbacks: TurnCallbacks,
        oracle: DecisionOracle,
        generator: EntityGenerator | None = None,
        rules: str = "",
        current_turn: int = 1,
        max_generations: int = MAX_ENTITY_GENERATIONS_PER_TURN,
        world_context_lookback: int | None = WORLD_CONTEXT_LOOKBACK_TURNS,
    ) -> None:
        """Initialize the controller.

        Args:
            store: Entity store (read for snapshots).
            timeline: Timeline (read for snapshots).
            library: Attribute schema library (read and extended).
            player: Player state (read for snapshots).
            callbacks: Host callbacks receiving effects.
            oracle: Decision oracle.
            generator: Entity generator; spawns are skipped without one.
            rules: Static rules document.
            current_turn: Turn number to start from.
            max_generations: Spawn limit per decision.
            world_context_lookback: Past turns of other oracles' entries
                shown in the snapshot; None for unlimited.
        """
        self._store = store
        self._timeline = timeline
        self._library = library
        self._player = player
        self.callbacks = callbacks
        self.oracle = oracle
        self.generator = generator
        self.rules = rules
        self._current_turn = current_turn
        self._max_generations = max_generations
        self._world_context_lookback = world_context_lookback
        self._phase = TurnPhase.IDLE
        self._listeners: list[Callable[[TurnResult], None]] = []

        logger.info(
            "TurnController initialized",
            current_turn=current_turn,
            entities=store.count(),
            attributes=len(library),
        )

    @classmethod
    def headless(
        cls,
        *,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        library: AttributeSchemaLibrary,
        player: PlayerState,
        oracle: DecisionOracle,
        generator: EntityGenerator | None = None,
        settings: EngineSettings | None = None,
        rules: str | None = None,
    ) -> TurnController:
        """Build a controller wired to in-process stores via ``WorldCallbacks``.

        Args:
            store: Entity store.
            timeline: Timeline log.
            library: Attribute schema library.
            player: Player state.
            oracle: Decision oracle.
            generator: Entity generator.
            settings: Engine settings; defaults apply when omitted.
            rules: Rules document; read from the settings when omitted.

        Returns:
            A ready controller.
        """
        settings = settings or EngineSettings()
        controller: TurnController
        callbacks = WorldCallbacks(
            store,
            timeline,
            player,
            turn_provider=lambda: controller.current_turn,
        )
        controller = cls(
            store=store,
            timeline=timeline,
            library=library,
            player=player,
            callbacks=callbacks,
            oracle=oracle,
            generator=generator,
            rules=settings.load_rules_document() if rules is None else rules,
            current_turn=settings.starting_turn,
            max_generations=settings.max_entity_generations,
            world_context_lookback=settings.world_context_lookback,
        )
        return controller

    @property
    def current_turn(self) -> int:
        """Turn that the next ``run_turn`` will process."""
        return self._current_turn

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    def add_turn_listener(self, listener: Callable[[TurnResult], None]) -> None:
        """Register a function called with every TurnResult."""
        self._listeners.append(listener)

    def _notify(self, result: TurnResult) -> None:
        for listener in self._listeners:
            try:
                listener(result)
            except Exception:
                logger.exception("Turn listener failed")

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def build_snapshot(self, player_action: str | None = None) -> WorldSnapshot:
        """Assemble the read-only snapshot for the current turn."""
        return build_snapshot(
            turn=self._current_turn,
            timeline=self._timeline,
            store=self._store,
            library=self._library,
            player=self._player,
            rules=self.rules,
            player_action=player_action,
            world_context_lookback=self._world_context_lookback,
        )

    def run_turn(self, player_action: str | None = None) -> TurnResult:
        """Run one full turn.

        Args:
            player_action: What the player did this turn, if anything.

        Returns:
            TurnResult describing the outcome. Transport and validation
            failures are reported here, not raised.

        Raises:
            TurnExecutionError: If applying effects fails unexpectedly.
        """
        turn = self._current_turn
        with turn_context(turn):
            try:
                return self._run(turn, player_action)
            finally:
                self._phase = TurnPhase.IDLE

    def _run(self, turn: int, player_action: str | None) -> TurnResult:
        self._phase = TurnPhase.BUILDING_CONTEXT
        snapshot = self.build_snapshot(player_action)
        logger.info("Turn started", entities=snapshot.entity_count)

        self._phase = TurnPhase.AWAITING_DECISION
        try:
            payload = self.oracle.decide(snapshot)
        except OracleTransportError as exc:
            result = self._fail_transport(turn, exc)
            self._notify(result)
            return result

        self._phase = TurnPhase.VALIDATING
        try:
            decision = validate_decision(
                payload, max_generations=self._max_generations, turn=turn
            )
        except DecisionValidationError as exc:
            result = self._fail_validation(turn, exc)
            self._notify(result)
            return result

        self._phase = TurnPhase.EXECUTING
        try:
            result = self.execute(decision, turn)
        except LostWorldError:
            self._phase = TurnPhase.FAILED
            raise
        except Exception as exc:
            self._phase = TurnPhase.FAILED
            raise TurnExecutionError(
                f"Executing the decision failed: {exc}", turn=turn
            ) from exc

        self._current_turn = turn + 1
        result.current_turn = self._current_turn
        logger.info(
            "Turn completed",
            effects=decision.effect_count,
            skipped=len(result.skipped),
            next_turn=self._current_turn,
        )
        self._notify(result)
        return result

    def _fail_transport(self, turn: int, exc: OracleTransportError) -> TurnResult:
        self._phase = TurnPhase.FAILED
        logger.error("Turn failed: no decision", error=exc.message, error_type=type(exc).__name__)
        self.callbacks.append_timeline(
            self._tags(EventType.TURN_FAILURE, extras=[type(exc).__name__]),
            f"Turn {turn} failed: {exc.message}",
            turn,
        )
        return TurnResult(
            status=TurnStatus.FAILED,
            turn=turn,
            current_turn=self._current_turn,
            failure=FailureKind.TRANSPORT,
            error=exc.message,
        )

    def _fail_validation(self, turn: int, exc: DecisionValidationError) -> TurnResult:
        self._phase = TurnPhase.FAILED
        logger.error("Turn failed: decision rejected", problems=exc.problems)
        return TurnResult(
            status=TurnStatus.FAILED,
            turn=turn,
            current_turn=self._current_turn,
            failure=FailureKind.VALIDATION,
            error=exc.message,
            problems=list(exc.problems),
        )

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self, decision: Decision, turn: int) -> TurnResult:
        """Apply a validated decision in the fixed effect order.

        Does not advance the turn counter; ``run_turn`` does that.

        Args:
            decision: Validated decision.
            turn: Turn the effects belong to.

        Returns:
            A completed TurnResult with per-effect outcomes.
        """
        result = TurnResult(
            status=TurnStatus.COMPLETED,
            turn=turn,
            current_turn=turn,
            decision=decision,
        )

        # 1. Narrative summary
        self.callbacks.append_timeline(
            self._tags(EventType.TURN_PROGRESSION, actor=Actor.AI, location=self._player_location()),
            decision.turn_progression,
            turn,
        )
        result.outcomes.append(EffectOutcome("summary"))

        # 2. Entity generation
        for spawn in decision.entity_generation:
            outcome = self._guarded("spawn", f"{spawn.region}:{spawn.x}:{spawn.y}", self._spawn, spawn, turn)
            if outcome.applied and outcome.target:
                result.spawned_ids.append(outcome.target)
            result.outcomes.append(outcome)

        # 3. Entity moves
        for move in decision.entity_moves:
            result.outcomes.append(self._guarded("move", move.entity_id, self._move, move, turn))

        # 4. Attribute changes
        for change in decision.attribute_changes:
            match change:
                case DefineAttribute():
                    outcome = self._guarded(
                        "define_attribute", change.entity_id, self._define_attribute, change, turn
                    )
                case UpdateAttributeValue():
                    outcome = self._guarded(
                        "update_attribute", change.entity_id, self._update_attribute, change, turn
                    )
            result.outcomes.append(outcome)

        # 5. Player status
        if decision.status_change is not None:
            result.outcomes.append(
                self._guarded("status", "player", self._apply_status, decision.status_change, turn)
            )

        # 6. Player stats
        for stat_change in decision.stat_changes:
            result.outcomes.append(
                self._guarded("stat", stat_change.stat_name, self._apply_stat, stat_change, turn)
            )

        # 7. Goal for the next turn
        self.callbacks.append_timeline(
            self._tags(EventType.TURN_GOAL),
            decision.turn_goal.text,
            turn + 1,
        )
        result.outcomes.append(EffectOutcome("turn_goal"))
        return result

    def _guarded(
        self,
        effect: str,
        target: str,
        apply: Callable[..., str | None],
        *args: object,
    ) -> EffectOutcome:
        """Apply one effect; log and skip it if it fails."""
        try:
            applied_target = apply(*args)
        except (LostWorldError, ValidationError) as exc:
            message = exc.message if isinstance(exc, LostWorldError) else str(exc)
            logger.warning("Effect skipped", effect=effect, target=target, reason=message)
            return EffectOutcome(effect, target, applied=False, message=message)
        except Exception as exc:
            # Host generators and callbacks may raise anything
            logger.exception("Effect failed unexpectedly", effect=effect, target=target)
            return EffectOutcome(
                effect, target, applied=False, message=f"{type(exc).__name__}: {exc}"
            )
        return EffectOutcome(effect, applied_target or target)

    def _spawn(self, spawn: EntitySpawn, turn: int) -> str:
        if self.generator is None:
            raise EntityGenerationError("No entity generator configured")

        entity = self.generator.generate(
            spawn,
            allocate_id=self.callbacks.allocate_id,
            library=self._library,
            rules=self.rules,
        )
        entity = self._align_attributes(entity)
        self.callbacks.add_entity(entity, spawn.kind, reason=spawn.change_reason)
        self._register_attributes(entity)
        self.callbacks.append_timeline(
            self._tags(
                EventType.GENERATION,
                location=TimelineTags.at(spawn.region, spawn.x, spawn.y),
                extras=[spawn.kind.value],
            ),
            f"name: {entity.name} location x: {spawn.x}, location y: {spawn.y}, "
            f"regionname: {spawn.region} reason: {spawn.change_reason}",
            turn,
        )
        return entity.id

    def _align_attributes(self, entity: SpatialEntity) -> SpatialEntity:
        """Adopt existing library definitions without defining anything new."""
        category = entity.effective_category
        aligned = {}
        for name, attribute in entity.own_attributes.items():
            if not name.strip():
                raise SchemaLibraryError(
                    "Attribute name is required", kind=str(entity.kind), category=category
                )
            definition = self._library.resolve(entity.kind, category, name) or attribute.definition
            aligned[name] = definition.to_attribute(attribute.value)
        return entity.model_copy(update={"own_attributes": aligned})

    def _register_attributes(self, entity: SpatialEntity) -> None:
        """Define a stored entity's attributes the library does not know yet."""
        category = entity.effective_category
        for name, attribute in entity.own_attributes.items():
            self._library.define(entity.kind, category, name, attribute.definition)

    def _require(self, kind: EntityKind, entity_id: str) -> SpatialEntity:
        entity = self.callbacks.get_by_id(kind, entity_id)
        if entity is None:
            raise EntityNotFoundError(
                "Decision references an unknown entity",
                entity_id=entity_id,
                entity_kind=kind.value,
            )
        return entity

    def _commit(self, entity: Entity, reason: str) -> None:
        if not self.callbacks.update_entity(entity, entity.kind, reason, ChangeSource.ORCHESTRATOR):
            raise EntityNotFoundError(
                "Entity disappeared before it could be updated",
                entity_id=entity.id,
                entity_kind=entity.kind.value,
            )

    def _move(self, move: EntityMove, turn: int) -> str:
        entity = self._require(move.entity_kind, move.entity_id)
        old_location = TimelineTags.at(entity.region, entity.x, entity.y)
        new_location = TimelineTags.at(move.new_region, move.new_x, move.new_y)

        moved = entity.model_copy(
            update={"region": move.new_region, "x": move.new_x, "y": move.new_y}
        )
        self._commit(moved, move.change_reason)
        self.callbacks.append_timeline(
            self._tags(EventType.ENTITY_CHANGE, location=new_location, extras=["locationUpdate"]),
            f"name: {entity.name} reason: {move.change_reason} "
            f"oldlocation: {old_location} newlocation: {new_location}",
            turn,
        )
        return entity.id

    def _define_attribute(self, change: DefineAttribute, turn: int) -> str:
        entity = self._require(change.entity_kind, change.entity_id)
        definition = self._library.define(
            change.entity_kind,
            entity.effective_category,
            change.attribute_name,
            change.definition,
        )
        attribute = definition.to_attribute(change.value)

        attributes = dict(entity.own_attributes)
        attributes[change.attribute_name] = attribute
        self._commit(entity.model_copy(update={"own_attributes": attributes}), change.change_reason)
        self.callbacks.append_timeline(
            self._tags(
                EventType.ENTITY_CHANGE,
                location=TimelineTags.at(entity.region, entity.x, entity.y),
                extras=["attributeUpdate"],
            ),
            f"name: {entity.name} reason: {change.change_reason} "
            f"newattribute: {change.attribute_name}={attribute.value} (type: {definition.type.value})",
            turn,
        )
        return entity.id

    def _update_attribute(self, change: UpdateAttributeValue, turn: int) -> str:
        entity = self._require(change.entity_kind, change.entity_id)
        current = entity.own_attributes.get(change.attribute_name)
        if current is not None:
            old_value = current.value
            attribute = current.model_copy(update={"value": change.new_value})
        else:
            # Known to the category but not yet on this entity
            definition = self._library.resolve(
                change.entity_kind, entity.effective_category, change.attribute_name
            )
            if definition is None:
                raise SchemaLibraryError(
                    "Attribute is neither on the entity nor in the library",
                    kind=change.entity_kind.value,
                    category=entity.effective_category,
                    attribute_name=change.attribute_name,
                )
            old_value = None
            attribute = definition.to_attribute(change.new_value)

        attributes = dict(entity.own_attributes)
        attributes[change.attribute_name] = attribute
        self._commit(entity.model_copy(update={"own_attributes": attributes}), change.change_reason)
        self.callbacks.append_timeline(
            self._tags(
                EventType.ENTITY_CHANGE,
                location=TimelineTags.at(entity.region, entity.x, entity.y),
                extras=["attributeUpdate"],
            ),
            f"name: {entity.name} reason: {change.change_reason} "
            f"old attribute: {change.attribute_name}={old_value} "
            f"newattribute: {change.attribute_name}={change.new_value}",
            turn,
        )
        return entity.id

    def _apply_status(self, change: StatusChange, turn: int) -> str:
        self.callbacks.update_player_status(change.health_delta, change.energy_delta, change.change_reason)
        self.callbacks.append_timeline(
            self._tags(EventType.STATUS_CHANGE, location=self._player_location(), extras=["playerStatus"]),
            f"health: {change.health_delta:+d} energy: {change.energy_delta:+d} "
            f"reason: {change.change_reason}",
            turn,
        )
        return "player"

    def _apply_stat(self, change: StatChange, turn: int) -> str:
        if not self.callbacks.update_player_stat(change.stat_name, change.delta, change.change_reason):
            raise PlayerStateError("Player has no such stat", stat_name=change.stat_name)
        self.callbacks.append_timeline(
            self._tags(EventType.STATUS_CHANGE, location=self._player_location(), extras=["playerStat"]),
            f"stat: {change.stat_name} delta: {change.delta:+d} reason: {change.change_reason}",
            turn,
        )
        return change.stat_name

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _tags(
        event: EventType,
        *,
        actor: Actor = Actor.NONE,
        location: str | None = None,
        extras: list[str] | None = None,
    ) -> TimelineTags:
        return TimelineTags.build(
            event=event,
            oracle=OracleId.TURN_PROGRESSION,
            actor=actor,
            location=location,
            extras=extras or (),
        )

    def _player_location(self) -> str:
        if self._player.region is None:
            return TimelineTags.UNKNOWN
        return TimelineTags.at(self._player.region, self._player.x, self._player.y)


__all__ = [
    "TurnPhase",
    "TurnStatus",
    "FailureKind",
    "EffectOutcome",
    "TurnResult",
    "TurnController",
]
