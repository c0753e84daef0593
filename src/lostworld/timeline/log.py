"""Append-only, tag-indexed event history.

The timeline is the causal log every other component builds context
from. Entries are immutable once appended and there is no removal
operation; filtering by tag membership is the only access pattern.

Windowing follows one rule everywhere: with a lookback of ``K`` turns
an entry is visible when ``current_turn - K <= entry.turn < current_turn``.
A lookback of ``None`` means unlimited. The current turn itself is never
part of a window, so an oracle cannot reason about its own pending
decision.

Example:
    >>> log = TimelineLog()
    >>> entry = log.append(
    ...     TimelineTags.build(event=EventType.TURN_PROGRESSION), "Dawn breaks.", turn=1
    ... )
    >>> log.with_tags("type:turnProgression") == (entry,)
    True
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from lostworld.core.logging import get_logger
from lostworld.models.enums import EventType, OracleId
from lostworld.timeline.tags import ACTOR_TAGS, TimelineTags, event_tag, oracle_tag


logger = get_logger(__name__)


EntryPredicate = Callable[["TimelineEntry"], bool]


class TimelineEntry(BaseModel):
    """One immutable timeline record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    sequence: int = Field(ge=0, description="Insertion position in the log")
    tags: frozenset[str] = Field(min_length=1)
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    turn: int

    @property
    def facets(self) -> TimelineTags:
        """Tags as a typed tag set."""
        return TimelineTags(self.tags)

    def format(self) -> str:
        """Render as ``[Turn N] [tags]: text``."""
        return f"[Turn {self.turn}] [{self.facets}]: {self.text}"


class TimelineLog:
    """Insertion-ordered, append-only list of timeline entries."""

    def __init__(self, entries: Iterable[TimelineEntry] = ()) -> None:
        """Initialize the log, optionally from previously saved entries.

        Args:
            entries: Entries to restore, in their original order.
        """
        self._entries: list[TimelineEntry] = list(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TimelineEntry]:
        return iter(tuple(self._entries))

    @property
    def entries(self) -> tuple[TimelineEntry, ...]:
        """Snapshot of every entry in insertion order."""
        return tuple(self._entries)

    def append(
        self,
        tags: TimelineTags | Iterable[str],
        text: str,
        turn: int,
    ) -> TimelineEntry:
        """Append one entry.

        Args:
            tags: Typed tag set, or raw tag strings from a collaborator.
            text: Entry text.
            turn: Turn the entry belongs to.

        Returns:
            The appended entry.

        Raises:
            TimelineError: If no tag is given.
        """
        tag_set = TimelineTags.of(tags)
        entry = TimelineEntry(
            sequence=len(self._entries),
            tags=tag_set.values,
            text=text,
            turn=turn,
        )
        self._entries.append(entry)
        logger.debug(
            "Timeline entry appended",
            entry_id=entry.id,
            turn=turn,
            event_type=tag_set.event,
        )
        return entry

    def query(self, predicate: EntryPredicate | None = None) -> tuple[TimelineEntry, ...]:
        """Return entries matching a predicate, in insertion order.

        Args:
            predicate: Filter over entries; None selects everything.

        Returns:
            Matching entries. The result is a fresh tuple so repeated
            queries are independent of each other.
        """
        if predicate is None:
            return tuple(self._entries)
        return tuple(entry for entry in self._entries if predicate(entry))

    def entries_for_turn(self, turn: int) -> tuple[TimelineEntry, ...]:
        """All entries recorded for one turn."""
        return self.query(lambda entry: entry.turn == turn)

    def with_tags(self, *tags: str, match_all: bool = True) -> tuple[TimelineEntry, ...]:
        """Entries carrying all (or, with ``match_all=False``, any) of the tags."""
        wanted = frozenset(tags)
        if match_all:
            return self.query(lambda entry: wanted <= entry.tags)
        return self.query(lambda entry: not wanted.isdisjoint(entry.tags))

    def window(self, current_turn: int, lookback: int | None = None) -> tuple[TimelineEntry, ...]:
        """Entries from the last ``lookback`` turns, excluding the current turn."""
        return self.query(_window_predicate(current_turn, lookback))

    def dialogue_history(
        self,
        oracle: OracleId,
        current_turn: int,
        lookback: int | None = None,
    ) -> tuple[TimelineEntry, ...]:
        """Conversation entries for one oracle.

        Selects entries tagged with the oracle's own tag and with a
        ``user`` or ``ai`` actor tag.
        """
        own_tag = oracle_tag(oracle)
        in_window = _window_predicate(current_turn, lookback)
        return self.query(
            lambda entry: in_window(entry)
            and own_tag in entry.tags
            and not ACTOR_TAGS.isdisjoint(entry.tags)
        )

    def world_context(
        self,
        oracle: OracleId,
        current_turn: int,
        lookback: int | None = None,
        event_types: Iterable[EventType] | None = None,
    ) -> tuple[TimelineEntry, ...]:
        """World events an oracle did not produce itself.

        Args:
            oracle: Oracle whose own entries are excluded.
            current_turn: Turn being prepared; never included.
            lookback: Number of past turns, or None for unlimited.
            event_types: Allow-list of event types; None admits every type.

        Returns:
            Matching entries in insertion order.
        """
        own_tag = oracle_tag(oracle)
        in_window = _window_predicate(current_turn, lookback)
        allowed = None if event_types is None else frozenset(event_tag(e) for e in event_types)
        return self.query(
            lambda entry: in_window(entry)
            and own_tag not in entry.tags
            and (allowed is None or not allowed.isdisjoint(entry.tags))
        )

    def latest(self, *tags: str, turn: int | None = None) -> TimelineEntry | None:
        """Most recent entry with all the given tags, optionally for one turn."""
        wanted = frozenset(tags)
        for entry in reversed(self._entries):
            if wanted <= entry.tags and (turn is None or entry.turn == turn):
                return entry
        return None

    @staticmethod
    def format_entries(entries: Iterable[TimelineEntry]) -> str:
        """Render entries one per line for prompt context."""
        return "\n".join(entry.format() for entry in entries)


def _window_predicate(current_turn: int, lookback: int | None) -> EntryPredicate:
    if lookback is None:
        return lambda entry: entry.turn < current_turn
    min_turn = current_turn - lookback
    return lambda entry: min_turn <= entry.turn < current_turn


__all__ = [
    "EntryPredicate",
    "TimelineEntry",
    "TimelineLog",
]
