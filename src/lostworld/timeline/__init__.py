"""Append-only timeline log and its typed tags.

Example:
    >>> from lostworld.timeline import TimelineLog, TimelineTags
    >>> from lostworld.models import EventType
    >>> log = TimelineLog()
    >>> _ = log.append(TimelineTags.build(event=EventType.TURN_GOAL), "Reach the gate", 2)
"""

from __future__ import annotations

from lostworld.timeline.log import EntryPredicate, TimelineEntry, TimelineLog
from lostworld.timeline.tags import (
    ACTOR_TAGS,
    TimelineTags,
    actor_tag,
    event_tag,
    location_tag,
    oracle_tag,
)


__all__ = [
    "EntryPredicate",
    "TimelineEntry",
    "TimelineLog",
    "ACTOR_TAGS",
    "TimelineTags",
    "actor_tag",
    "event_tag",
    "location_tag",
    "oracle_tag",
]
