"""Collaborator callback surface used by the turn controller.

The controller never writes to entity storage, player state or the
timeline directly. Every effect goes through a ``TurnCallbacks``
implementation owned by the embedding application, which keeps the
engine portable across front ends and persistence layers.

``WorldCallbacks`` is the headless implementation binding the surface to
an ``EntityMemoryStore``, a ``TimelineLog`` and a ``PlayerState``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from lostworld.core.logging import get_logger
from lostworld.models.entities import SpatialEntity
from lostworld.models.enums import ChangeSource, EntityKind
from lostworld.models.player import PlayerState
from lostworld.store.entity_store import EntityMemoryStore
from lostworld.timeline.log import TimelineEntry, TimelineLog
from lostworld.timeline.tags import TimelineTags


logger = get_logger(__name__)


class TurnCallbacks(ABC):
    """Effects the turn controller may request from its host."""

    @abstractmethod
    def get_by_id(self, kind: EntityKind, entity_id: str) -> SpatialEntity | None:
        """Current state of an entity, or None if it does not exist."""

    @abstractmethod
    def update_entity(
        self,
        entity: SpatialEntity,
        kind: EntityKind,
        reason: str | None = None,
        source: ChangeSource = ChangeSource.ORCHESTRATOR,
    ) -> bool:
        """Persist a changed entity. Returns False if it no longer exists."""

    @abstractmethod
    def add_entity(
        self,
        entity: SpatialEntity,
        kind: EntityKind,
        reason: str | None = None,
    ) -> None:
        """Register a newly generated entity."""

    @abstractmethod
    def allocate_id(self, kind: EntityKind, name: str) -> str:
        """Reserve an id for an entity about to be generated."""

    @abstractmethod
    def update_player_status(self, health_delta: int, energy_delta: int, reason: str) -> None:
        """Apply health and energy deltas to the player."""

    @abstractmethod
    def update_player_stat(self, stat_name: str, delta: int, reason: str) -> bool:
        """Apply a delta to one player stat. Returns False if the stat is unknown."""

    @abstractmethod
    def append_timeline(
        self,
        tags: TimelineTags | Iterable[str],
        text: str,
        turn: int | None = None,
    ) -> TimelineEntry | None:
        """Append a timeline entry, to the current turn unless one is given."""


class WorldCallbacks(TurnCallbacks):
    """Callbacks writing straight into in-process stores.

    Attributes:
        store: Entity memory store receiving entity effects.
        timeline: Timeline receiving entries.
        player: Player state receiving deltas.
    """

    def __init__(
        self,
        store: EntityMemoryStore,
        timeline: TimelineLog,
        player: PlayerState,
        *,
        turn_provider: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the callbacks.

        Args:
            store: Entity memory store.
            timeline: Timeline log.
            player: Player state.
            turn_provider: Returns the current turn for timeline entries
                appended without an explicit turn.
        """
        self.store = store
        self.timeline = timeline
        self.player = player
        self._turn_provider = turn_provider

    def _current_turn(self) -> int:
        if self._turn_provider is not None:
            return self._turn_provider()
        entries = self.timeline.entries
        return entries[-1].turn if entries else 0

    def get_by_id(self, kind: EntityKind, entity_id: str) -> SpatialEntity | None:
        return self.store.by_id(kind, entity_id)

    def update_entity(
        self,
        entity: SpatialEntity,
        kind: EntityKind,
        reason: str | None = None,
        source: ChangeSource = ChangeSource.ORCHESTRATOR,
    ) -> bool:
        return self.store.update(entity, kind, reason=reason, source=source) is not None

    def add_entity(
        self,
        entity: SpatialEntity,
        kind: EntityKind,
        reason: str | None = None,
    ) -> None:
        self.store.add(entity, kind, reason=reason, source=ChangeSource.ORCHESTRATOR)

    def allocate_id(self, kind: EntityKind, name: str) -> str:
        return self.store.allocate_id(kind, name)

    def update_player_status(self, health_delta: int, energy_delta: int, reason: str) -> None:
        self.player.status.apply_delta(health_delta, energy_delta)
        logger.info(
            "Player status changed",
            health_delta=health_delta,
            energy_delta=energy_delta,
            health=self.player.status.health,
            energy=self.player.status.energy,
            reason=reason,
        )

    def update_player_stat(self, stat_name: str, delta: int, reason: str) -> bool:
        stat = self.player.apply_stat_delta(stat_name, delta)
        if stat is None:
            return False
        logger.info(
            "Player stat changed",
            stat=stat_name,
            delta=delta,
            value=stat.value,
            tier=stat.tier,
            reason=reason,
        )
        return True

    def append_timeline(
        self,
        tags: TimelineTags | Iterable[str],
        text: str,
        turn: int | None = None,
    ) -> TimelineEntry | None:
        return self.timeline.append(tags, text, self._current_turn() if turn is None else turn)


__all__ = [
    "TurnCallbacks",
    "WorldCallbacks",
]
