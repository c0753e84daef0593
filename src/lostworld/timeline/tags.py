"""Typed timeline tags.

Every timeline entry carries four facets plus free-form extras:

====================  ===============================================
Facet                 Wire form
====================  ===============================================
location              ``loc:<region>:<x>:<y>``, ``loc:unknown``, ``loc:none``
event type            ``type:<EventType>``
originating oracle    ``llm:<OracleId>``
responsible actor     ``actor:<Actor>``
====================  ===============================================

``TimelineTags`` packs them into an immutable set of strings. Consumers
filter by membership, never by position, so build tags through the
helpers here instead of concatenating strings.

Example:
    >>> tags = TimelineTags.build(
    ...     event=EventType.ENTITY_CHANGE,
    ...     oracle=OracleId.TURN_PROGRESSION,
    ...     location=TimelineTags.at("region_a", 5, 5),
    ...     extras=["locationUpdate"],
    ... )
    >>> "type:entityChange" in tags
    True
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from lostworld.core.constants import LOCATION_NONE, LOCATION_UNKNOWN
from lostworld.core.exceptions import TimelineError
from lostworld.models.enums import Actor, EventType, OracleId


LOCATION_PREFIX = "loc:"
EVENT_PREFIX = "type:"
ORACLE_PREFIX = "llm:"
ACTOR_PREFIX = "actor:"


def location_tag(location: str | None) -> str:
    """Tag for a location facet value (``region:x:y``, unknown or none)."""
    value = (location or "").strip() or LOCATION_NONE
    return f"{LOCATION_PREFIX}{value}"


def event_tag(event: EventType) -> str:
    """Tag for an event type facet."""
    return f"{EVENT_PREFIX}{EventType(event).value}"


def oracle_tag(oracle: OracleId) -> str:
    """Tag for an originating oracle facet."""
    return f"{ORACLE_PREFIX}{OracleId(oracle).value}"


def actor_tag(actor: Actor) -> str:
    """Tag for a responsible actor facet."""
    return f"{ACTOR_PREFIX}{Actor(actor).value}"


ACTOR_TAGS = frozenset({actor_tag(Actor.USER), actor_tag(Actor.AI)})
"""Tags marking an entry as spoken by the player or an oracle."""


@dataclass(frozen=True, slots=True)
class TimelineTags:
    """Immutable set of tag strings for one timeline entry."""

    values: frozenset[str]

    @classmethod
    def build(
        cls,
        *,
        event: EventType = EventType.NONE,
        oracle: OracleId = OracleId.NONE,
        actor: Actor = Actor.NONE,
        location: str | None = None,
        extras: Iterable[str] = (),
    ) -> TimelineTags:
        """Build the standard four facets plus extras.

        Args:
            event: Semantic event type.
            oracle: Process that produced the entry.
            actor: Who is responsible for the event.
            location: Facet value from ``at``/``UNKNOWN``; None means ``none``.
            extras: Additional free-form tags.

        Returns:
            The packed tag set.
        """
        values = {
            location_tag(location),
            event_tag(event),
            oracle_tag(oracle),
            actor_tag(actor),
        }
        values.update(extra.strip() for extra in extras if extra and extra.strip())
        return cls(frozenset(values))

    @classmethod
    def of(cls, tags: TimelineTags | Iterable[str]) -> TimelineTags:
        """Coerce raw tag strings (e.g. from a collaborator) into a tag set.

        Raises:
            TimelineError: If no non-blank tag is supplied.
        """
        if isinstance(tags, TimelineTags):
            return tags
        if isinstance(tags, str):
            tags = [tags]
        values = frozenset(tag.strip() for tag in tags if tag and tag.strip())
        if not values:
            raise TimelineError("Timeline entries need at least one tag")
        return cls(values)

    @staticmethod
    def at(region: str, x: int, y: int) -> str:
        """Location facet value for a concrete grid cell."""
        return f"{region}:{x}:{y}"

    UNKNOWN = LOCATION_UNKNOWN
    NONE = LOCATION_NONE

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.values))

    def __contains__(self, tag: object) -> bool:
        return tag in self.values

    def __len__(self) -> int:
        return len(self.values)

    def has_all(self, tags: Iterable[str]) -> bool:
        """Whether every given tag is present."""
        return self.values.issuperset(tags)

    def has_any(self, tags: Iterable[str]) -> bool:
        """Whether at least one given tag is present."""
        return not self.values.isdisjoint(tags)

    def _facet(self, prefix: str) -> str | None:
        for tag in self.values:
            if tag.startswith(prefix):
                return tag[len(prefix):]
        return None

    @property
    def event(self) -> str | None:
        """Event type facet value, if present."""
        return self._facet(EVENT_PREFIX)

    @property
    def location(self) -> str | None:
        """Location facet value, if present."""
        return self._facet(LOCATION_PREFIX)

    @property
    def oracle(self) -> str | None:
        """Originating oracle facet value, if present."""
        return self._facet(ORACLE_PREFIX)

    @property
    def actor(self) -> str | None:
        """Actor facet value, if present."""
        return self._facet(ACTOR_PREFIX)

    def __str__(self) -> str:
        return ", ".join(self)


__all__ = [
    "LOCATION_PREFIX",
    "EVENT_PREFIX",
    "ORACLE_PREFIX",
    "ACTOR_PREFIX",
    "ACTOR_TAGS",
    "location_tag",
    "event_tag",
    "oracle_tag",
    "actor_tag",
    "TimelineTags",
]
