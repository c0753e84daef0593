"""Player stats, status and position.

Stats use a tier system: each stat holds a value in 0..100 inside one of
five tiers. Deltas that push the value past either bound roll over into
the neighbouring tier with the remainder carried along:

- ``value >= 100`` while ``tier < 5``: subtract 100 and advance a tier.
- ``value < 0`` while ``tier > 1``: add 100 and drop a tier.
- At tier 5 the value is capped at 100; at tier 1 it is floored at 0.

Example:
    >>> stat = PlayerStat(value=90, tier=1)
    >>> stat.apply_delta(25)
    1
    >>> (stat.value, stat.tier)
    (15, 2)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field

from lostworld.core.constants import (
    DEFAULT_TIER_NAMES,
    STAT_TIER_MAX,
    STAT_TIER_MIN,
    STAT_VALUE_MAX,
    STAT_VALUE_MIN,
)


def roll_over(value: int, tier: int) -> tuple[int, int]:
    """Re-base a raw stat value into 0..100, shifting tiers as needed.

    Args:
        value: Raw value after a delta was added (may be out of range).
        tier: Tier the value was accumulated in.

    Returns:
        ``(value, tier)`` with value in 0..100 and tier in 1..5.
    """
    while value >= STAT_VALUE_MAX and tier < STAT_TIER_MAX:
        value -= STAT_VALUE_MAX
        tier += 1
    while value < STAT_VALUE_MIN and tier > STAT_TIER_MIN:
        value += STAT_VALUE_MAX
        tier -= 1

    if tier >= STAT_TIER_MAX:
        tier = STAT_TIER_MAX
        value = min(value, STAT_VALUE_MAX)
    if tier <= STAT_TIER_MIN:
        tier = STAT_TIER_MIN
        value = max(value, STAT_VALUE_MIN)
    return value, tier


class PlayerStat(BaseModel):
    """A single tiered player stat (strength, charisma, ...)."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    value: int = Field(default=0, ge=STAT_VALUE_MIN, le=STAT_VALUE_MAX)
    tier: int = Field(default=STAT_TIER_MIN, ge=STAT_TIER_MIN, le=STAT_TIER_MAX)
    tier_names: tuple[str, str, str, str, str] = Field(default=DEFAULT_TIER_NAMES)

    @computed_field(description="Label of the current tier")
    @property
    def tier_name(self) -> str:
        return self.tier_names[self.tier - 1]

    def apply_delta(self, delta: int) -> int:
        """Add a delta to the stat, rolling over tiers.

        Args:
            delta: Amount to add (negative to decrease).

        Returns:
            Number of tiers gained (negative if tiers were lost).
        """
        value, tier = roll_over(self.value + delta, self.tier)
        shift = tier - self.tier
        self.tier = tier
        self.value = value
        return shift


class PlayerStatus(BaseModel):
    """Health and energy pools."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    health: int = Field(default=100, ge=0)
    max_health: int = Field(default=100, ge=1)
    energy: int = Field(default=100, ge=0)
    max_energy: int = Field(default=100, ge=1)

    def apply_delta(self, health_delta: int, energy_delta: int) -> None:
        """Apply health and energy deltas, clamped to ``[0, max]``."""
        self.health = max(0, min(self.max_health, self.health + health_delta))
        self.energy = max(0, min(self.max_energy, self.energy + energy_delta))


class PlayerState(BaseModel):
    """Externally owned player state the turn controller sends deltas to."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    name: str = Field(default="Player")
    stats: dict[str, PlayerStat] = Field(default_factory=dict)
    status: PlayerStatus = Field(default_factory=PlayerStatus)
    region: str | None = Field(default=None, description="Region the player is in")
    x: int = Field(default=0)
    y: int = Field(default=0)
    current_location_id: str | None = Field(default=None)

    def apply_stat_delta(self, stat_name: str, delta: int) -> PlayerStat | None:
        """Apply a delta to a named stat.

        Returns:
            The updated stat, or None if the player has no such stat.
        """
        stat = self.stats.get(stat_name)
        if stat is None:
            return None
        stat.apply_delta(delta)
        return stat


__all__ = [
    "roll_over",
    "PlayerStat",
    "PlayerStatus",
    "PlayerState",
]
