"""Pytest configuration and shared fixtures.

This module provides common fixtures for all tests in
the LostWorld turn engine test suite.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import pytest

from doubles import FakeGenerator, ScriptedOracle
from lostworld.engine.turn_controller import TurnController
from lostworld.models import (
    NPC,
    Attribute,
    AttributeDefinition,
    AttributeType,
    DecisionPayload,
    EntityKind,
    Item,
    Location,
    PlayerStat,
    PlayerState,
    Region,
)
from lostworld.store import (
    AttributeSchemaLibrary,
    CategoryDefinition,
    EntityMemoryStore,
    NamedAttributeDefinition,
)
from lostworld.timeline import TimelineLog


if TYPE_CHECKING:
    from collections.abc import Generator


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from lostworld.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "LOSTWORLD_ORACLE_OPENROUTER_API_KEY": "test-openrouter-key",
        "LOSTWORLD_ORACLE_MODEL": "test/model",
        "LOSTWORLD_DEBUG": "true",
        "LOSTWORLD_LOG_LEVEL": "DEBUG",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# World Fixtures
# =============================================================================


@pytest.fixture
def sword() -> Item:
    """A sword lying on the market square."""
    return Item(
        id="item_sword_001",
        name="Sword",
        category="weapon",
        region="region_a",
        x=2,
        y=3,
        own_attributes={
            "sharpness": Attribute(
                value=40,
                type=AttributeType.INTEGER,
                description="How well the blade cuts",
                reference="0 blunt, 100 razor",
            ),
        },
    )


@pytest.fixture
def hans() -> NPC:
    """Hans the merchant."""
    return NPC(
        id="npc_hans_001",
        name="Hans",
        category="merchant",
        purpose="trader",
        region="region_a",
        x=1,
        y=1,
    )


@pytest.fixture
def market() -> Location:
    """The market square."""
    return Location(
        id="location_market_001",
        name="Market",
        location_type="town",
        region="region_a",
        x=1,
        y=1,
    )


@pytest.fixture
def region_a() -> Region:
    return Region(id="region_a", name="Lowlands", region_x=0, region_y=0)


@pytest.fixture
def store(sword: Item, hans: NPC, market: Location, region_a: Region) -> EntityMemoryStore:
    """Entity store seeded with a region, a sword, Hans and the market."""
    store = EntityMemoryStore()
    store.seed([sword, hans, market], regions=[region_a])
    return store


@pytest.fixture
def library() -> AttributeSchemaLibrary:
    """Schema library seeded the way game rules declare categories."""
    categories: dict[EntityKind, Iterable[CategoryDefinition]] = {
        EntityKind.ITEM: [
            CategoryDefinition(
                name="weapon",
                attributes=[
                    NamedAttributeDefinition(
                        name="sharpness",
                        type=AttributeType.INTEGER,
                        description="How well the blade cuts",
                        reference="0 blunt, 100 razor",
                        range=(0, 100),
                    ),
                ],
            ),
        ],
        EntityKind.NPC: [
            CategoryDefinition(
                name="merchant",
                attributes=[
                    NamedAttributeDefinition(
                        name="gold",
                        type=AttributeType.INTEGER,
                        description="Coins carried",
                        reference="0 broke, 1000 rich",
                    ),
                ],
            ),
        ],
        EntityKind.LOCATION: [CategoryDefinition(name="town")],
    }
    return AttributeSchemaLibrary.from_categories(categories)


@pytest.fixture
def timeline() -> TimelineLog:
    return TimelineLog()


@pytest.fixture
def player() -> PlayerState:
    """Player standing on the market square."""
    return PlayerState(
        name="Ada",
        region="region_a",
        x=1,
        y=1,
        stats={
            "strength": PlayerStat(value=90, tier=1),
            "charisma": PlayerStat(value=5, tier=2),
        },
    )


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator(
        attributes={
            "edge": Attribute(
                value=10,
                type=AttributeType.INTEGER,
                description="Edge quality",
                reference="0-100",
            ),
        }
    )


@pytest.fixture
def morale_definition() -> AttributeDefinition:
    return AttributeDefinition(
        type=AttributeType.INTEGER,
        description="Will to keep trading",
        reference="0 broken, 100 eager",
    )


@pytest.fixture
def make_controller(
    store: EntityMemoryStore,
    timeline: TimelineLog,
    library: AttributeSchemaLibrary,
    player: PlayerState,
    generator: FakeGenerator,
) -> Any:
    """Factory building a headless controller around a scripted oracle."""

    def _make(*steps: dict[str, Any] | DecisionPayload | Exception) -> TurnController:
        return TurnController.headless(
            store=store,
            timeline=timeline,
            library=library,
            player=player,
            oracle=ScriptedOracle(*steps),
            generator=generator,
            rules="Magic is rare.",
        )

    return _make
