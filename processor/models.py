"""Data models for event processing."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Event:
    """Event listing extracted from a search result fragment.

    Identity is the canonical ``link``; ``date`` and ``time`` are empty
    strings when they could not be found.
    """
    city: str
    title: str
    date: str
    time: str
    link: str


@dataclass
class PageResult:
    """Events parsed from a single search page."""
    events: List[Event]
    total: int


@dataclass
class CycleResult:
    """Result of one fetch/diff/persist/notify cycle."""
    fetched: int = 0
    new_events: List[Event] = field(default_factory=list)
    notified: bool = False
    saved: bool = False
    error: Optional[str] = None
