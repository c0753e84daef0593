"""Authoritative registry of world entities with a spatial index.

The store owns every item, NPC, location and region in a save. Spatial
entities are indexed by the composite key ``region:x:y`` so a cell lookup
is a single dict access. A reverse index (entity id to cell key) lets
removals and moves touch exactly one bucket.

``update`` is the only legal way to change an entity: it computes a
before/after diff, records it in the history tracker and re-indexes the
entity when its coordinates changed. Reads hand out deep copies, so a
caller cannot change stored state behind the store's back.

Operations on unknown ids are logged and skipped rather than raised;
the turn controller treats a missing target as a stale reference.

Example:
    >>> store = EntityMemoryStore()
    >>> store.seed([Item(id="item_sword_001", name="Sword", region="region_a", x=2, y=3)])
    >>> [item.id for item in store.entities_at("region_a", 2, 3).items]
    ['item_sword_001']
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from lostworld.core.config import EngineSettings, get_settings
from lostworld.core.constants import ENTITY_ID_SEQUENCE_WIDTH, MAX_HISTORY_PER_ENTITY
from lostworld.core.exceptions import DuplicateEntityError, EntityStoreError
from lostworld.core.logging import get_logger
from lostworld.models.entities import (
    NPC,
    Item,
    Location,
    Region,
    SpatialEntity,
    coordinate_key,
)
from lostworld.models.enums import SPATIAL_KINDS, ChangeSource, EntityKind
from lostworld.store.history import EntityHistoryEntry, EntityHistoryTracker


logger = get_logger(__name__)


_SLUG_STRIP = re.compile(r"[^a-z0-9\s]")
_SLUG_SPACES = re.compile(r"\s+")


def slugify(name: str) -> str:
    """Lowercase a display name into an id fragment (``Old Hans`` -> ``old_hans``)."""
    cleaned = _SLUG_STRIP.sub("", name.lower()).strip()
    return _SLUG_SPACES.sub("_", cleaned) or "unnamed"


@dataclass
class CoordinateEntities:
    """Everything standing on one grid cell."""

    locations: list[Location] = field(default_factory=list)
    npcs: list[NPC] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.locations) + len(self.npcs) + len(self.items)

    def ids(self) -> set[str]:
        """Ids of every entity on the cell."""
        return {e.id for e in (*self.locations, *self.npcs, *self.items)}


class EntityMemoryStore:
    """Registry, spatial index and change history for world entities."""

    def __init__(
        self,
        *,
        history: EntityHistoryTracker | None = None,
        max_history_per_entity: int = MAX_HISTORY_PER_ENTITY,
    ) -> None:
        """Initialize an empty store.

        Args:
            history: Tracker to record changes into; a new one by default.
            max_history_per_entity: Cap used when creating the tracker.
        """
        self._history = history or EntityHistoryTracker(max_history_per_entity)
        self._registry: dict[EntityKind, dict[str, SpatialEntity]] = {
            kind: {} for kind in SPATIAL_KINDS
        }
        self._regions: dict[str, Region] = {}
        # cell key -> kind -> ordered ids
        self._cells: dict[str, dict[EntityKind, dict[str, None]]] = {}
        self._cell_of: dict[str, str] = {}
        self._id_counters: dict[tuple[EntityKind, str], int] = {}

    @classmethod
    def from_settings(cls, settings: EngineSettings | None = None) -> EntityMemoryStore:
        """Create an empty store sized by the engine settings."""
        settings = settings or get_settings().engine
        return cls(max_history_per_entity=settings.max_history_per_entity)

    @property
    def history(self) -> EntityHistoryTracker:
        return self._history

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def entities_at(self, region: str, x: int, y: int) -> CoordinateEntities:
        """Entities on one cell, grouped by kind; empty lists if unoccupied."""
        bucket = self._cells.get(coordinate_key(region, x, y), {})
        result = CoordinateEntities()
        for kind in SPATIAL_KINDS:
            target = getattr(result, kind.plural)
            for entity_id in bucket.get(kind, {}):
                target.append(self._registry[kind][entity_id].model_copy(deep=True))
        return result

    def by_id(self, kind: EntityKind, entity_id: str) -> SpatialEntity | Region | None:
        """Detached copy of one entity, or None if unknown."""
        if kind is EntityKind.REGION:
            region = self._regions.get(entity_id)
            return region.model_copy(deep=True) if region else None
        entity = self._registry[EntityKind(kind)].get(entity_id)
        return entity.model_copy(deep=True) if entity else None

    def all(self, kind: EntityKind) -> tuple[SpatialEntity | Region, ...]:
        """Detached copies of every entity of one kind, in insertion order."""
        source = self._regions if kind is EntityKind.REGION else self._registry[EntityKind(kind)]
        return tuple(entity.model_copy(deep=True) for entity in source.values())

    def contains(self, entity_id: str) -> bool:
        """Whether any kind holds an entity with this id."""
        return entity_id in self._regions or any(
            entity_id in bucket for bucket in self._registry.values()
        )

    def kind_of(self, entity_id: str) -> EntityKind | None:
        """Kind of a registered entity, or None if unknown."""
        if entity_id in self._regions:
            return EntityKind.REGION
        for kind, bucket in self._registry.items():
            if entity_id in bucket:
                return kind
        return None

    def count(self, kind: EntityKind | None = None) -> int:
        """Number of stored entities, optionally of one kind."""
        if kind is EntityKind.REGION:
            return len(self._regions)
        if kind is not None:
            return len(self._registry[EntityKind(kind)])
        return len(self._regions) + sum(len(b) for b in self._registry.values())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def allocate_id(self, kind: EntityKind, name: str) -> str:
        """Next free sequential id such as ``npc_hans_001``.

        Args:
            kind: Kind of the entity being created.
            name: Display name the slug is derived from.

        Returns:
            An id not yet used by any stored entity.
        """
        slug = slugify(name)
        counter_key = (EntityKind(kind), slug)
        sequence = self._id_counters.get(counter_key, 0)
        while True:
            sequence += 1
            candidate = f"{kind.value}_{slug}_{sequence:0{ENTITY_ID_SEQUENCE_WIDTH}d}"
            if not self.contains(candidate):
                break
        self._id_counters[counter_key] = sequence
        return candidate

    def seed(
        self,
        entities: Iterable[SpatialEntity] = (),
        regions: Iterable[Region] = (),
    ) -> None:
        """Bulk-load an initial world without recording history.

        Raises:
            DuplicateEntityError: If an id is already present.
        """
        for region in regions:
            self._insert_region(region)
        loaded = 0
        for entity in entities:
            self._insert(entity)
            loaded += 1
        logger.info("Entity store seeded", entities=loaded, regions=len(self._regions))

    def add(
        self,
        entity: SpatialEntity,
        kind: EntityKind | None = None,
        *,
        reason: str | None = None,
        source: ChangeSource = ChangeSource.SYSTEM,
    ) -> EntityHistoryEntry:
        """Insert a new entity into the registry and the spatial index.

        Args:
            entity: Entity to add; the store keeps its own copy.
            kind: Expected kind; defaults to the entity's own.
            reason: Why the entity was created.
            source: Who created it.

        Returns:
            The creation history entry (``previous_state`` is None).

        Raises:
            DuplicateEntityError: If the id is already registered.
            EntityStoreError: If ``kind`` does not match the entity.
        """
        self._check_kind(entity, kind)
        self._insert(entity)
        logger.info(
            "Entity added",
            entity_id=entity.id,
            entity_kind=entity.kind.value,
            cell=entity.coordinate_key,
            source=source.value,
        )
        return self._history.record(
            entity.id,
            entity.kind,
            None,
            entity.model_dump(mode="json"),
            source,
            reason,
        )

    def update(
        self,
        entity: SpatialEntity,
        kind: EntityKind | None = None,
        reason: str | None = None,
        source: ChangeSource = ChangeSource.SYSTEM,
    ) -> EntityHistoryEntry | None:
        """Replace a stored entity, recording the change and re-indexing.

        Args:
            entity: New state of the entity; matched by id.
            kind: Expected kind; defaults to the entity's own.
            reason: Why the entity changed.
            source: Who changed it.

        Returns:
            The history entry, or None if the id is unknown.
        """
        self._check_kind(entity, kind)
        current = self._registry[entity.kind].get(entity.id)
        if current is None:
            logger.warning(
                "Update skipped for unknown entity",
                entity_id=entity.id,
                entity_kind=entity.kind.value,
            )
            return None

        previous_state = current.model_dump(mode="json")
        stored = entity.model_copy(deep=True)
        new_state = stored.model_dump(mode="json")
        entry = self._history.record(
            entity.id, entity.kind, previous_state, new_state, source, reason
        )

        if current.coordinate_key != stored.coordinate_key:
            self._unindex(entity.id, entity.kind)
            self._index(stored)
        self._registry[entity.kind][entity.id] = stored

        logger.debug(
            "Entity updated",
            entity_id=entity.id,
            entity_kind=entity.kind.value,
            changed_fields=list(entry.changed_fields),
            source=source.value,
        )
        return entry

    def remove(self, entity_id: str, kind: EntityKind) -> SpatialEntity | None:
        """Remove an entity from the registry and its spatial bucket.

        Returns:
            The removed entity, or None if the id is unknown.
        """
        kind = EntityKind(kind)
        if kind is EntityKind.REGION:
            raise EntityStoreError("Regions cannot be removed", entity_id=entity_id, entity_kind=kind)
        entity = self._registry[kind].pop(entity_id, None)
        if entity is None:
            logger.warning("Remove skipped for unknown entity", entity_id=entity_id, entity_kind=kind.value)
            return None
        self._unindex(entity_id, kind)
        logger.info("Entity removed", entity_id=entity_id, entity_kind=kind.value)
        return entity

    # -------------------------------------------------------------------------
    # Regions
    # -------------------------------------------------------------------------

    def add_region(self, region: Region) -> None:
        """Register a region.

        Raises:
            DuplicateEntityError: If the id is already registered.
        """
        self._insert_region(region)
        logger.info("Region added", region_id=region.id, region_x=region.region_x, region_y=region.region_y)

    def region_by_id(self, region_id: str) -> Region | None:
        """Detached copy of a region, or None if unknown."""
        region = self._regions.get(region_id)
        return region.model_copy(deep=True) if region else None

    def region_at(self, region_x: int, region_y: int) -> Region | None:
        """Region placed at a world-map position, if any."""
        for region in self._regions.values():
            if region.region_x == region_x and region.region_y == region_y:
                return region.model_copy(deep=True)
        return None

    def update_region(
        self,
        region: Region,
        reason: str | None = None,
        source: ChangeSource = ChangeSource.SYSTEM,
    ) -> EntityHistoryEntry | None:
        """Replace a stored region, recording the change.

        Returns:
            The history entry, or None if the region is unknown.
        """
        current = self._regions.get(region.id)
        if current is None:
            logger.warning("Update skipped for unknown region", region_id=region.id)
            return None
        stored = region.model_copy(deep=True)
        entry = self._history.record(
            region.id,
            EntityKind.REGION,
            current.model_dump(mode="json"),
            stored.model_dump(mode="json"),
            source,
            reason,
        )
        self._regions[region.id] = stored
        return entry

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, list[dict]]:
        """JSON-mode dump of every stored entity, grouped by kind."""
        dump: dict[str, list[dict]] = {
            EntityKind.REGION.plural: [r.model_dump(mode="json") for r in self._regions.values()]
        }
        for kind in SPATIAL_KINDS:
            dump[kind.plural] = [e.model_dump(mode="json") for e in self._registry[kind].values()]
        return dump

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_kind(entity: SpatialEntity, kind: EntityKind | None) -> None:
        if not entity.kind.is_spatial:
            raise EntityStoreError("Use the region methods for regions", entity_id=entity.id)
        if kind is not None and EntityKind(kind) is not entity.kind:
            raise EntityStoreError(
                f"Entity is a {entity.kind.value}, not a {EntityKind(kind).value}",
                entity_id=entity.id,
                entity_kind=entity.kind.value,
            )

    def _insert(self, entity: SpatialEntity) -> None:
        if self.contains(entity.id):
            raise DuplicateEntityError(
                "Entity id already registered",
                entity_id=entity.id,
                entity_kind=entity.kind.value,
            )
        stored = entity.model_copy(deep=True)
        self._registry[entity.kind][entity.id] = stored
        self._index(stored)

    def _insert_region(self, region: Region) -> None:
        if self.contains(region.id):
            raise DuplicateEntityError(
                "Region id already registered",
                entity_id=region.id,
                entity_kind=EntityKind.REGION.value,
            )
        self._regions[region.id] = region.model_copy(deep=True)

    def _index(self, entity: SpatialEntity) -> None:
        key = entity.coordinate_key
        self._cells.setdefault(key, {}).setdefault(entity.kind, {})[entity.id] = None
        self._cell_of[entity.id] = key

    def _unindex(self, entity_id: str, kind: EntityKind) -> None:
        key = self._cell_of.pop(entity_id, None)
        if key is None:
            return
        bucket = self._cells.get(key, {})
        bucket.get(kind, {}).pop(entity_id, None)
        if not any(bucket.values()):
            self._cells.pop(key, None)


__all__ = [
    "slugify",
    "CoordinateEntities",
    "EntityMemoryStore",
]
