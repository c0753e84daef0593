"""Engine-wide constants for the LostWorld turn engine.

These are the defaults behind the configurable settings in
``lostworld.core.config`` plus fixed rules of the world model.
"""

from __future__ import annotations

# =============================================================================
# Entity Memory Store
# =============================================================================

MAX_HISTORY_PER_ENTITY = 100
"""Number of history entries kept per entity before the oldest is dropped."""

ENTITY_ID_SEQUENCE_WIDTH = 3
"""Zero-padded width of the sequence suffix in entity ids (npc_hans_001)."""

DEFAULT_CATEGORY = "common"
"""Category assumed for entities that were created without one."""

# =============================================================================
# Decision Contract
# =============================================================================

MAX_ENTITY_GENERATIONS_PER_TURN = 10
"""Upper bound on spawns a single decision may request."""

NUMERIC_ATTRIBUTE_TYPES = frozenset({"integer", "number"})
"""Attribute types whose definition requires a seed value."""

# =============================================================================
# Player Stats (tier system)
# =============================================================================

STAT_VALUE_MIN = 0
"""Lowest value a stat holds within a tier."""

STAT_VALUE_MAX = 100
"""Value at which a stat rolls over into the next tier."""

STAT_TIER_MIN = 1
"""Lowest stat tier."""

STAT_TIER_MAX = 5
"""Highest stat tier."""

DEFAULT_TIER_NAMES = ("Tier 1", "Tier 2", "Tier 3", "Tier 4", "Tier 5")
"""Tier labels used when game rules do not provide their own."""

# =============================================================================
# Timeline
# =============================================================================

WORLD_CONTEXT_LOOKBACK_TURNS = 3
"""Default number of past turns included as world context."""

LOCATION_UNKNOWN = "unknown"
"""Location facet for events whose location cannot be resolved."""

LOCATION_NONE = "none"
"""Location facet for locationless events (turn goals, summaries)."""
