"""Calendar feed source for iCalendar (ICS) endpoints."""
import logging
import time
from typing import Any, List, Optional

import requests
from icalendar import Calendar

from processor.models import EncodedText, FeedParseError, PlainText, RawEvent

logger = logging.getLogger(__name__)


class IcsFeedSource:
    """Fetches and parses a remote ICS calendar feed."""

    DEFAULT_URL = (
        "https://involvement.ubalt.edu/ics"
        "?group_ids=72934,23888,23844,23864&school=ubalt"
    )

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: int = 30,
        max_retries: int = 3
    ):
        """
        Initialize the feed source.

        Args:
            url: ICS endpoint to fetch
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts before giving up (default: 3)
        """
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries

    def fetch_events(self) -> List[RawEvent]:
        """
        Fetch every VEVENT component from the feed.

        Returns:
            List of RawEvent objects (cancelled entries included)

        Raises:
            requests.RequestException: If all retry attempts fail
            FeedParseError: If the payload is not a valid calendar
        """
        logger.info(f"Fetching calendar feed from {self.url}")

        ics_content = self._fetch_ics()
        events = self._parse_events(ics_content)

        logger.info(f"Successfully fetched {len(events)} events")
        return events

    def _fetch_ics(self) -> bytes:
        """
        Fetch the ICS payload with retry logic.

        Returns:
            Raw response body

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Fetching calendar feed (attempt {attempt + 1}/{self.max_retries})"
                )
                response = requests.get(self.url, timeout=self.timeout)
                response.raise_for_status()
                return response.content

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _parse_events(self, ics_content: bytes) -> List[RawEvent]:
        """
        Parse VEVENT components from ICS content.

        Args:
            ics_content: ICS payload

        Returns:
            List of RawEvent objects

        Raises:
            FeedParseError: If the payload cannot be parsed
        """
        try:
            calendar = Calendar.from_ical(ics_content)
        except (ValueError, IndexError, KeyError) as e:
            raise FeedParseError(f"Invalid calendar feed: {e}") from e

        events = []
        for component in calendar.walk('VEVENT'):
            try:
                events.append(self._parse_component(component))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(
                    f"Failed to parse event component {component.get('UID')}: {e}"
                )
                continue

        return events

    def _parse_component(self, component) -> RawEvent:
        """
        Convert a single VEVENT into a RawEvent.

        Args:
            component: icalendar VEVENT component

        Returns:
            RawEvent object
        """
        return RawEvent(
            uid=self._text(component.get('UID')),
            summary=self._title_carrier(component.get('SUMMARY')),
            start=self._instant(component.get('DTSTART')),
            end=self._instant(component.get('DTEND')),
            description=self._text(component.get('DESCRIPTION')),
            status=self._text(component.get('STATUS')),
            location=self._text(component.get('LOCATION')),
            url=self._text(component.get('URL'))
        )

    def _title_carrier(self, prop: Any) -> Optional[Any]:
        """Tag SUMMARY as legacy-encoded when it declares quoted-printable."""
        if prop is None:
            return None

        params = getattr(prop, 'params', None) or {}
        encoding = str(params.get('ENCODING', '')).upper()
        if encoding == 'QUOTED-PRINTABLE':
            return EncodedText(str(prop))
        return PlainText(str(prop))

    @staticmethod
    def _instant(prop: Any) -> Any:
        if prop is None:
            return None
        return prop.dt

    @staticmethod
    def _text(prop: Any) -> Optional[str]:
        if prop is None:
            return None
        return str(prop)
