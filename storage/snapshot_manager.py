"""Snapshot manager for idempotent event persistence."""
import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime
from typing import List, Optional

from processor.event_processor import format_instant, parse_instant
from processor.models import CommitResult, DiffResult, Event
from storage.diff_engine import diff_events

logger = logging.getLogger(__name__)


class SnapshotManager:
    """Manager for the JSON snapshot consumed by the presentation layer."""

    def __init__(self, path: str):
        """
        Initialize the snapshot manager.

        Args:
            path: Location of the snapshot JSON file
        """
        self.path = path
        logger.info(f"Initialized SnapshotManager for file: {path}")

    def load_snapshot(self) -> List[Event]:
        """
        Read the persisted snapshot.

        A missing, unreadable or corrupt file is treated as an empty snapshot.

        Returns:
            List of Event objects
        """
        data = self._read_bytes()
        if data is None:
            return []
        return self.deserialize(data)

    def commit(self, current: List[Event]) -> CommitResult:
        """
        Persist the current events if they differ from the snapshot on disk.

        Args:
            current: Complete event list from this run

        Returns:
            CommitResult with the diff, change report and write flag
        """
        existing_data = self._read_bytes()
        previous = self.deserialize(existing_data) if existing_data is not None else []

        diff = diff_events(previous, current)
        report = self.build_change_report(diff)
        for line in report:
            logger.info(line)

        new_data = self.serialize(current)

        if (existing_data is not None and
                self.fingerprint(existing_data) == self.fingerprint(new_data)):
            logger.info("No changes")
            return CommitResult(
                written=False,
                diff=diff,
                report=report,
                event_count=len(current)
            )

        self._atomic_write(new_data)
        logger.info(f"Snapshot updated with {len(current)} events")

        return CommitResult(
            written=True,
            diff=diff,
            report=report,
            event_count=len(current)
        )

    def serialize(self, events: List[Event]) -> bytes:
        """
        Serialize events deterministically.

        Args:
            events: Events in any order

        Returns:
            UTF-8 encoded, pretty-printed JSON array
        """
        ordered = sorted(events, key=lambda event: (event.start, event.id))
        items = [self._event_to_item(event) for event in ordered]
        text = json.dumps(items, indent=2, ensure_ascii=False)
        return (text + '\n').encode('utf-8')

    def deserialize(self, data: bytes) -> List[Event]:
        """
        Parse snapshot bytes back into events.

        Args:
            data: Snapshot file contents

        Returns:
            List of Event objects; empty if the payload is corrupt
        """
        try:
            items = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Corrupt snapshot {self.path}, treating as empty: {e}")
            return []

        if not isinstance(items, list):
            logger.warning(
                f"Snapshot {self.path} is not a JSON array, treating as empty"
            )
            return []

        events = []
        for item in items:
            event = self._item_to_event(item)
            if event:
                events.append(event)
        return events

    @staticmethod
    def fingerprint(data: bytes) -> str:
        """SHA256 hex digest of snapshot bytes."""
        return hashlib.sha256(data).hexdigest()

    @staticmethod
    def build_change_report(diff: DiffResult) -> List[str]:
        """
        Render one human-readable line per added, updated or removed event.

        Args:
            diff: Result of the diff engine

        Returns:
            List of report lines
        """
        def _show(value):
            if value is None:
                return 'null'
            if isinstance(value, datetime):
                return format_instant(value)
            return repr(value)

        lines = []
        for event in diff.added:
            lines.append(
                f"Added: {event.title} ({event.id}) at {format_instant(event.start)}"
            )
        for change in diff.updated:
            deltas = '; '.join(
                f"{name}: {_show(delta.from_value)} -> {_show(delta.to_value)}"
                for name, delta in change.changes.items()
            )
            lines.append(f"Updated: {change.id}: {deltas}")
        for event in diff.removed:
            lines.append(f"Removed: {event.title} ({event.id})")
        return lines

    def _read_bytes(self) -> Optional[bytes]:
        try:
            with open(self.path, 'rb') as f:
                return f.read()
        except FileNotFoundError:
            logger.info(f"No snapshot at {self.path}, starting empty")
            return None
        except OSError as e:
            logger.warning(f"Could not read snapshot {self.path}: {e}")
            return None

    def _atomic_write(self, data: bytes) -> None:
        """
        Replace the snapshot file without exposing a partial write.

        Args:
            data: New snapshot contents

        Raises:
            OSError: If the temporary file cannot be written or moved
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(
            dir=directory,
            prefix=f".{os.path.basename(self.path)}.",
            suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _item_to_event(self, item: dict) -> Optional[Event]:
        """
        Convert a snapshot item to an Event object.

        Args:
            item: Decoded JSON object

        Returns:
            Event object or None if conversion fails
        """
        try:
            event_id = item['id']
            title = item['title']
            if not isinstance(event_id, str) or not event_id:
                raise ValueError(f"snapshot item has invalid id {event_id!r}")
            if not isinstance(title, str) or not title:
                raise ValueError(f"snapshot item {event_id} has invalid title")

            start = parse_instant(item['start'])
            if start is None:
                raise ValueError(f"snapshot item {event_id} has no start")

            hosting_org = item.get('hostingOrg') or ['Campus']
            if (not isinstance(hosting_org, list) or
                    not all(isinstance(key, str) and key for key in hosting_org)):
                raise ValueError(
                    f"snapshot item {event_id} has invalid hostingOrg {hosting_org!r}"
                )
            hosting_org = tuple(hosting_org)

            primary_org = item.get('primaryOrg') or hosting_org[0]
            if not isinstance(primary_org, str):
                raise ValueError(f"snapshot item {event_id} has invalid primaryOrg")

            return Event(
                id=event_id,
                title=title,
                start=start,
                end=parse_instant(item.get('end')),
                description=item.get('description') or '',
                url=item.get('url'),
                hosting_org=hosting_org,
                primary_org=primary_org,
                primary_org_color=item.get('primaryOrgColor') or '',
                primary_org_emoji=item.get('primaryOrgEmoji') or '',
                org_emojis=item.get('orgEmojis') or '',
                location=item.get('location') or ''
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Failed to convert snapshot item to Event: {e}")
            return None

    def _event_to_item(self, event: Event) -> dict:
        """
        Convert an Event object to a snapshot item with stable key order.

        Args:
            event: Event object

        Returns:
            Dictionary ready for JSON encoding
        """
        return {
            'id': event.id,
            'title': event.title,
            'start': format_instant(event.start),
            'end': format_instant(event.end) if event.end else None,
            'description': event.description,
            'url': event.url,
            'hostingOrg': list(event.hosting_org),
            'primaryOrg': event.primary_org,
            'primaryOrgColor': event.primary_org_color,
            'primaryOrgEmoji': event.primary_org_emoji,
            'orgEmojis': event.org_emojis,
            'location': event.location
        }
