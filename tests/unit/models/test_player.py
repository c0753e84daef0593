"""Tests for player stats, status and the tier roll-over rule."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lostworld.models import PlayerStat, PlayerState, PlayerStatus, roll_over


class TestRollOver:
    """Tests for the stat tier roll-over rule."""

    @pytest.mark.parametrize(
        ("value", "tier", "expected"),
        [
            (115, 1, (15, 2)),
            (100, 1, (0, 2)),
            (-5, 2, (95, 1)),
            (400, 1, (0, 5)),
            (140, 5, (100, 5)),
            (-40, 1, (0, 1)),
            (-210, 3, (0, 1)),
            (50, 3, (50, 3)),
        ],
    )
    def test_roll_over(self, value: int, tier: int, expected: tuple[int, int]) -> None:
        """Test values re-base into 0..100 with tier shifts and end clamps."""
        assert roll_over(value, tier) == expected


class TestPlayerStat:
    """Tests for PlayerStat."""

    def test_apply_delta_advances_tier(self) -> None:
        """Test a positive delta past 100 moves up a tier."""
        stat = PlayerStat(value=90, tier=1)

        shift = stat.apply_delta(25)

        assert shift == 1
        assert (stat.value, stat.tier) == (15, 2)

    def test_apply_delta_drops_tier(self) -> None:
        """Test a negative delta below 0 moves down a tier."""
        stat = PlayerStat(value=5, tier=2)

        shift = stat.apply_delta(-10)

        assert shift == -1
        assert (stat.value, stat.tier) == (95, 1)

    def test_tier_name(self) -> None:
        """Test the tier label follows the tier."""
        stat = PlayerStat(
            value=0,
            tier=3,
            tier_names=("Weak", "Average", "Strong", "Mighty", "Legendary"),
        )
        assert stat.tier_name == "Strong"

    def test_value_bounds(self) -> None:
        """Test stored values stay within 0..100."""
        with pytest.raises(ValidationError):
            PlayerStat(value=101)


class TestPlayerStatus:
    """Tests for PlayerStatus."""

    def test_clamps_to_bounds(self) -> None:
        """Test health and energy clamp to [0, max]."""
        status = PlayerStatus(health=90, energy=10)

        status.apply_delta(30, -25)

        assert status.health == 100
        assert status.energy == 0


class TestPlayerState:
    """Tests for PlayerState."""

    def test_apply_known_stat(self) -> None:
        """Test a delta on a known stat."""
        player = PlayerState(stats={"strength": PlayerStat(value=10)})

        stat = player.apply_stat_delta("strength", 5)

        assert stat is not None
        assert player.stats["strength"].value == 15

    def test_apply_unknown_stat(self) -> None:
        """Test a delta on an unknown stat is ignored."""
        player = PlayerState()
        assert player.apply_stat_delta("luck", 5) is None
        assert player.stats == {}
