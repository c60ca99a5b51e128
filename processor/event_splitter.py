"""Partition events into actionable (application) and ordinary items."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Pattern, Tuple

from processor.models import Event, SplitResult

DEFAULT_TITLE_PATTERN = re.compile(r'^\s*apply\b', re.IGNORECASE)

DEFAULT_KEYWORDS = (
    'application',
    'apply to',
    'apply for',
    'apply now',
)


@dataclass(frozen=True)
class SplitOptions:
    """Heuristics for recognizing call-to-action events."""
    title_pattern: Pattern = DEFAULT_TITLE_PATTERN
    keywords: Tuple[str, ...] = field(default=DEFAULT_KEYWORDS)


def _require_aware(now: datetime) -> None:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")


def is_actionable(event: Event, options: Optional[SplitOptions] = None) -> bool:
    """True if the title or description reads as an application call."""
    options = options or SplitOptions()
    title = event.title or ''
    description = event.description or ''

    if options.title_pattern.search(title):
        return True

    haystack = f"{title} {description}".casefold()
    return any(keyword.casefold() in haystack for keyword in options.keywords)


def is_forward_active(event: Event, now: datetime) -> bool:
    """True if the event has no end or has not ended yet."""
    _require_aware(now)
    if event.end is None:
        return True
    return event.end > now


def is_currently_live(event: Event, now: datetime) -> bool:
    """True if now falls inside the event window (open-ended when no end)."""
    _require_aware(now)
    if event.start > now:
        return False
    return event.end is None or now <= event.end


def split_events(
    events: Iterable[Event],
    now: datetime,
    options: Optional[SplitOptions] = None
) -> SplitResult:
    """
    Route each event to the actionable or ordinary surface.

    An event is actionable only while it is both an application call and
    forward-active at ``now``. Input order is kept within each bucket.

    Args:
        events: Canonical events
        now: Reference instant (timezone-aware)
        options: Matching heuristics (default: SplitOptions())

    Returns:
        SplitResult with ordinary and actionable lists
    """
    _require_aware(now)
    ordinary: List[Event] = []
    actionable: List[Event] = []

    for event in events:
        if is_actionable(event, options) and is_forward_active(event, now):
            actionable.append(event)
        else:
            ordinary.append(event)

    return SplitResult(ordinary=ordinary, actionable=actionable)


def select_live(actionable: Iterable[Event], now: datetime) -> List[Event]:
    """Subset of actionable events whose window contains ``now``."""
    return [event for event in actionable if is_currently_live(event, now)]


def select_upcoming(ordinary: Iterable[Event], now: datetime) -> List[Event]:
    """
    Ordinary events that have not started yet, soonest first.

    Args:
        ordinary: Events routed to the calendar surface
        now: Reference instant (timezone-aware)

    Returns:
        Events with start strictly after ``now``, sorted by (start, id)
    """
    _require_aware(now)
    upcoming = [event for event in ordinary if event.start > now]
    return sorted(upcoming, key=lambda event: (event.start, event.id))
