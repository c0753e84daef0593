"""Bounded per-entity change history.

Every mutation that goes through the entity memory store leaves one
``EntityHistoryEntry`` holding full JSON snapshots of the entity before
and after the change. History is kept for audit and debugging only and
never feeds back into gameplay.

Each entity keeps its most recent ``max_per_entity`` entries; older ones
are dropped first.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from itertools import count
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lostworld.core.constants import MAX_HISTORY_PER_ENTITY
from lostworld.models.enums import ChangeSource, EntityKind


Snapshot = dict[str, Any]


def diff_fields(previous: Snapshot | None, new: Snapshot) -> tuple[str, ...]:
    """Top-level field names whose values differ between two snapshots.

    A missing previous snapshot (entity creation) reports every field.
    """
    if previous is None:
        return tuple(sorted(new))
    keys = set(previous) | set(new)
    return tuple(sorted(key for key in keys if previous.get(key) != new.get(key)))


class EntityHistoryEntry(BaseModel):
    """Before/after record of one entity mutation."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    entity_type: EntityKind
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    sequence: int = Field(ge=0, description="Global recording order")
    previous_state: Snapshot | None
    new_state: Snapshot
    change_source: ChangeSource
    reason: str | None = None
    changed_fields: tuple[str, ...] = ()

    @property
    def is_creation(self) -> bool:
        """True for the entry recorded when the entity was added."""
        return self.previous_state is None


@dataclass(frozen=True)
class HistoryStats:
    """Aggregate counts over all recorded history."""

    total_entries: int
    unique_entities: int
    entries_by_type: dict[EntityKind, int] = field(default_factory=dict)
    entries_by_source: dict[ChangeSource, int] = field(default_factory=dict)


class EntityHistoryTracker:
    """Per-entity ring buffers of history entries."""

    def __init__(self, max_per_entity: int = MAX_HISTORY_PER_ENTITY) -> None:
        """Initialize an empty tracker.

        Args:
            max_per_entity: Entries kept per entity before the oldest is dropped.
        """
        self._max_per_entity = max_per_entity
        self._history: dict[str, deque[EntityHistoryEntry]] = {}
        self._sequence = count()

    @property
    def max_per_entity(self) -> int:
        return self._max_per_entity

    def record(
        self,
        entity_id: str,
        entity_type: EntityKind,
        previous_state: Snapshot | None,
        new_state: Snapshot,
        change_source: ChangeSource,
        reason: str | None = None,
    ) -> EntityHistoryEntry:
        """Record one change.

        Snapshots are expected to be detached JSON-mode dumps; the tracker
        stores them as given.

        Returns:
            The recorded entry.
        """
        entry = EntityHistoryEntry(
            entity_id=entity_id,
            entity_type=entity_type,
            sequence=next(self._sequence),
            previous_state=previous_state,
            new_state=new_state,
            change_source=change_source,
            reason=reason,
            changed_fields=diff_fields(previous_state, new_state),
        )
        bucket = self._history.setdefault(entity_id, deque(maxlen=self._max_per_entity))
        bucket.append(entry)
        return entry

    def for_entity(self, entity_id: str) -> tuple[EntityHistoryEntry, ...]:
        """History of one entity, oldest first."""
        return tuple(self._history.get(entity_id, ()))

    def all_entries(self) -> tuple[EntityHistoryEntry, ...]:
        """History of every entity, newest first."""
        entries = [entry for bucket in self._history.values() for entry in bucket]
        entries.sort(key=lambda entry: entry.sequence, reverse=True)
        return tuple(entries)

    def by_type(self, entity_type: EntityKind) -> tuple[EntityHistoryEntry, ...]:
        """Newest-first history restricted to one entity kind."""
        return tuple(e for e in self.all_entries() if e.entity_type == entity_type)

    def by_source(self, change_source: ChangeSource) -> tuple[EntityHistoryEntry, ...]:
        """Newest-first history restricted to one change source."""
        return tuple(e for e in self.all_entries() if e.change_source == change_source)

    def stats(self) -> HistoryStats:
        """Count entries by entity kind and by change source."""
        entries = self.all_entries()
        by_type = Counter(entry.entity_type for entry in entries)
        by_source = Counter(entry.change_source for entry in entries)
        return HistoryStats(
            total_entries=len(entries),
            unique_entities=len(self._history),
            entries_by_type={kind: by_type.get(kind, 0) for kind in EntityKind},
            entries_by_source={source: by_source.get(source, 0) for source in ChangeSource},
        )

    def clear(self, entity_id: str | None = None) -> None:
        """Drop history for one entity, or for all entities when no id is given."""
        if entity_id is None:
            self._history.clear()
        else:
            self._history.pop(entity_id, None)


__all__ = [
    "Snapshot",
    "diff_fields",
    "EntityHistoryEntry",
    "HistoryStats",
    "EntityHistoryTracker",
]
