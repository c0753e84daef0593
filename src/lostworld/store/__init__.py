"""World state stores owned by the turn controller.

Submodules:
    entity_store: Entity registry with spatial index
    history: Bounded per-entity change history
    schema_library: Append-only attribute definition registry
"""

from __future__ import annotations

from lostworld.store.entity_store import CoordinateEntities, EntityMemoryStore, slugify
from lostworld.store.history import (
    EntityHistoryEntry,
    EntityHistoryTracker,
    HistoryStats,
    diff_fields,
)
from lostworld.store.schema_library import (
    AttributeSchemaLibrary,
    CategoryDefinition,
    NamedAttributeDefinition,
)


__all__ = [
    "CoordinateEntities",
    "EntityMemoryStore",
    "slugify",
    "EntityHistoryEntry",
    "EntityHistoryTracker",
    "HistoryStats",
    "diff_fields",
    "AttributeSchemaLibrary",
    "CategoryDefinition",
    "NamedAttributeDefinition",
]
