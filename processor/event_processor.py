"""Event processor for validating and normalizing calendar records."""
import logging
import re
from datetime import date, datetime, time, timezone
from typing import Any, List, Optional, Tuple

from processor.models import Event, EventValidationError, RawEvent
from processor.org_classifier import OrgClassifier
from processor.text_normalizer import decode_title, normalize

logger = logging.getLogger(__name__)


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse a feed value into a UTC instant.

    Args:
        value: datetime, date, or ISO 8601 string ('Z' suffix allowed)

    Returns:
        Timezone-aware UTC datetime, or None if value is empty

    Raises:
        ValueError: If the value cannot be interpreted as an instant
    """
    if value is None or value == '':
        return None

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        value = datetime.fromisoformat(text)
    elif isinstance(value, date) and not isinstance(value, datetime):
        # All-day entries start at midnight UTC
        value = datetime.combine(value, time.min)

    if not isinstance(value, datetime):
        raise ValueError(f"Unsupported instant type: {type(value).__name__}")

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_instant(value: datetime) -> str:
    """Format a UTC instant as ISO 8601 with a 'Z' suffix."""
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


class EventProcessor:
    """Processor for turning raw feed records into canonical events."""

    DEFAULT_TITLE = 'No title'
    DETAILS_SEPARATOR = '---'
    DETAILS_URL_PATTERN = re.compile(r'event details:\s*(\S+)', re.IGNORECASE)

    def __init__(self, classifier: Optional[OrgClassifier] = None):
        """
        Initialize the processor.

        Args:
            classifier: Org classifier to use (default: built-in registry)
        """
        self.classifier = classifier or OrgClassifier()

    def process_events(self, raw_events: List[RawEvent]) -> List[Event]:
        """
        Filter and normalize raw feed records.

        Cancelled and start-less records are dropped. Records that fail
        validation are skipped and logged; the rest are still processed.

        Args:
            raw_events: Records from the feed source

        Returns:
            List of canonical Event objects with unique ids
        """
        processed_events = []
        seen_ids = set()

        for raw in raw_events:
            if self._is_cancelled(raw):
                logger.info(f"Skipping cancelled event '{raw.uid}'")
                continue

            if raw.start is None or raw.start == '':
                logger.warning(f"Skipping event '{raw.uid}' without start")
                continue

            try:
                event = self.normalize_event(raw)
            except EventValidationError as e:
                logger.warning(f"Failed to process event '{raw.uid}': {e}")
                continue

            if event.id in seen_ids:
                logger.warning(f"Duplicate event id '{event.id}', keeping first")
                continue

            seen_ids.add(event.id)
            processed_events.append(event)

        logger.info(
            f"Processed {len(processed_events)} valid events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events

    def normalize_event(self, raw: RawEvent) -> Event:
        """
        Convert a single raw record into a canonical Event.

        Args:
            raw: Raw feed record

        Returns:
            Event object

        Raises:
            EventValidationError: If the start instant is missing or invalid
        """
        title = decode_title(raw.summary) or self.DEFAULT_TITLE

        try:
            start = parse_instant(raw.start)
        except (TypeError, ValueError) as e:
            raise EventValidationError(f"invalid start {raw.start!r}: {e}") from e
        if start is None:
            raise EventValidationError("missing required field: start")

        try:
            end = parse_instant(raw.end)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid end for event '{title}': {e}")
            end = None

        description, url = self.split_description(raw.description, raw.url)
        location = normalize(raw.location)

        uid = raw.uid.strip() if isinstance(raw.uid, str) else ''
        event_id = uid or self.generate_event_id(title, start)

        orgs = self.classifier.classify(title, description, location)

        return Event(
            id=event_id,
            title=title,
            start=start,
            end=end,
            description=description,
            url=url,
            hosting_org=orgs.hosting_org,
            primary_org=orgs.primary_org,
            primary_org_color=self.classifier.color_of(orgs.primary_org),
            primary_org_emoji=self.classifier.emoji_of(orgs.primary_org),
            org_emojis=self.classifier.emojis_of(orgs.hosting_org),
            location=location
        )

    def split_description(
        self,
        raw_description: Optional[str],
        explicit_url: Optional[str]
    ) -> Tuple[str, Optional[str]]:
        """
        Separate the description body from its trailing details section.

        Args:
            raw_description: Description text as supplied by the feed
            explicit_url: URL supplied on the raw record, if any

        Returns:
            Tuple of (normalized description, registration url)
        """
        url = normalize(explicit_url) or None
        if not isinstance(raw_description, str):
            return '', url

        body, separator, details = raw_description.partition(self.DETAILS_SEPARATOR)
        if separator:
            match = self.DETAILS_URL_PATTERN.search(details)
            if match:
                url = match.group(1)

        return normalize(body), url

    def generate_event_id(self, title: str, start: datetime) -> str:
        """
        Synthesize an identifier for a record without a feed UID.

        Args:
            title: Normalized event title
            start: Event start instant

        Returns:
            Identifier of the form '<title>-<start>'
        """
        return f"{title}-{format_instant(start)}"

    def _is_cancelled(self, raw: RawEvent) -> bool:
        return isinstance(raw.status, str) and raw.status.strip().upper() == 'CANCELLED'
