"""LostWorld - AI-driven narrative RPG turn engine.

An external reasoning service decides how the world reacts to the
player each turn; the engine validates that decision in full and only
then applies it.

ARCHITECTURE:
- Python owns TRUTH (entity store, attribute library, timeline, player)
- The oracle proposes a DECISION; it never writes state itself
- A rejected decision changes nothing; a failed effect is skipped alone

Example:
    >>> from lostworld import (
    ...     AttributeSchemaLibrary, EntityMemoryStore, OpenAIDecisionOracle,
    ...     PlayerState, TimelineLog, TurnController, TurnRunner,
    ... )
    >>> controller = TurnController.headless(
    ...     store=EntityMemoryStore(),
    ...     timeline=TimelineLog(),
    ...     library=AttributeSchemaLibrary(),
    ...     player=PlayerState(name="Ada", region="region_a", x=0, y=0),
    ...     oracle=OpenAIDecisionOracle(),
    ... )  # doctest: +SKIP
    >>> result = TurnRunner(controller).play_turn("I open the gate")  # doctest: +SKIP

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 entities, player state and decision payloads.
    timeline: Append-only tagged event log.
    store: Entity memory store, history and attribute schema library.
    engine: Snapshot, oracle, validation, turn controller and runner.
"""

from __future__ import annotations

# Core
from lostworld.core.config import Settings, get_settings
from lostworld.core.exceptions import LostWorldError
from lostworld.core.logging import configure_logging, get_logger

# Models
from lostworld.models import (
    NPC,
    Decision,
    DecisionPayload,
    EntityKind,
    EventType,
    Item,
    Location,
    PlayerState,
    Region,
)

# Stores
from lostworld.store import AttributeSchemaLibrary, EntityMemoryStore
from lostworld.timeline import TimelineLog, TimelineTags

# Engine
from lostworld.engine import (
    DecisionOracle,
    OpenAIDecisionOracle,
    OpenAIEntityGenerator,
    TurnController,
    TurnResult,
    TurnRunner,
    WorldCallbacks,
)


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "LostWorldError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "NPC",
    "Decision",
    "DecisionPayload",
    "EntityKind",
    "EventType",
    "Item",
    "Location",
    "PlayerState",
    "Region",
    # Stores
    "AttributeSchemaLibrary",
    "EntityMemoryStore",
    "TimelineLog",
    "TimelineTags",
    # Engine
    "DecisionOracle",
    "OpenAIDecisionOracle",
    "OpenAIEntityGenerator",
    "TurnController",
    "TurnResult",
    "TurnRunner",
    "WorldCallbacks",
]
