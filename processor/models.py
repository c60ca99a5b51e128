"""Data models for event processing."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union


class EventValidationError(ValueError):
    """Raised when a raw record cannot become a canonical Event."""


class FeedParseError(Exception):
    """Raised when the calendar feed payload cannot be parsed."""


@dataclass(frozen=True)
class PlainText:
    """Title carried as ordinary text."""
    text: str


@dataclass(frozen=True)
class EncodedText:
    """Title carried in the legacy =XX byte-escape encoding."""
    raw: str


TitleCarrier = Union[PlainText, EncodedText]


@dataclass
class RawEvent:
    """Raw calendar component from the feed source."""
    uid: Optional[str]
    summary: Optional[TitleCarrier]
    start: Any
    end: Any = None
    description: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class Event:
    """Canonical, normalized event."""
    id: str
    title: str
    start: datetime
    end: Optional[datetime]
    description: str
    url: Optional[str]
    hosting_org: Tuple[str, ...]
    primary_org: str
    primary_org_color: str
    primary_org_emoji: str
    org_emojis: str = ''
    location: str = ''


@dataclass(frozen=True)
class OrgClassification:
    """Organizations detected for an event."""
    hosting_org: Tuple[str, ...]
    primary_org: str


@dataclass(frozen=True)
class FieldChange:
    """Old and new value of a tracked field."""
    from_value: Any
    to_value: Any


@dataclass
class EventChange:
    """Field-level changes of one event present in both snapshots."""
    id: str
    changes: Dict[str, FieldChange]


@dataclass
class DiffResult:
    """Result of comparing two event sets."""
    added: List[Event] = field(default_factory=list)
    updated: List[EventChange] = field(default_factory=list)
    removed: List[Event] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view; instants become ISO strings."""
        def _plain(value):
            return value.isoformat() if isinstance(value, datetime) else value

        return {
            'added': [event.id for event in self.added],
            'updated': [
                {
                    'id': change.id,
                    'changes': {
                        name: {
                            'from': _plain(delta.from_value),
                            'to': _plain(delta.to_value)
                        }
                        for name, delta in change.changes.items()
                    }
                }
                for change in self.updated
            ],
            'removed': [event.id for event in self.removed]
        }


@dataclass
class SplitResult:
    """Events partitioned for the two display surfaces."""
    ordinary: List[Event]
    actionable: List[Event]


@dataclass
class CommitResult:
    """Result of a snapshot commit."""
    written: bool
    diff: DiffResult
    report: List[str]
    event_count: int
