"""Unit tests for EventProcessor."""
from datetime import date, datetime, timedelta, timezone

import pytest

from processor.event_processor import EventProcessor, format_instant, parse_instant
from processor.models import EncodedText, EventValidationError, PlainText, RawEvent
from processor.org_classifier import DEFAULT_ORG_COLORS, DEFAULT_ORG_EMOJIS


def make_raw(**overrides):
    """Build a RawEvent with sensible defaults."""
    fields = {
        'uid': 'evt-1@involvement.ubalt.edu',
        'summary': PlainText('NSLS Speaker Broadcast'),
        'start': datetime(2024, 1, 15, 19, 0, tzinfo=timezone.utc),
        'end': datetime(2024, 1, 15, 21, 0, tzinfo=timezone.utc),
        'description': 'Join us for the broadcast.',
        'status': 'CONFIRMED',
        'location': 'Student Center 002',
        'url': None,
    }
    fields.update(overrides)
    return RawEvent(**fields)


class TestEventProcessor:
    """Test cases for EventProcessor class."""

    def test_normalize_event_valid_record(self):
        """Test a complete record becomes a canonical Event."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw())

        assert event.id == 'evt-1@involvement.ubalt.edu'
        assert event.title == 'NSLS Speaker Broadcast'
        assert event.start == datetime(2024, 1, 15, 19, 0, tzinfo=timezone.utc)
        assert event.end == datetime(2024, 1, 15, 21, 0, tzinfo=timezone.utc)
        assert event.description == 'Join us for the broadcast.'
        assert event.url is None
        assert event.hosting_org == ('NSLS',)
        assert event.primary_org == 'NSLS'
        assert event.primary_org_color == DEFAULT_ORG_COLORS['NSLS']
        assert event.primary_org_emoji == DEFAULT_ORG_EMOJIS['NSLS']
        assert event.org_emojis == DEFAULT_ORG_EMOJIS['NSLS']
        assert event.location == 'Student Center 002'

    def test_normalize_event_synthesizes_id(self):
        """Test id falls back to '<title>-<start>' without a UID."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(uid=None))

        assert event.id == 'NSLS Speaker Broadcast-2024-01-15T19:00:00Z'

    def test_normalize_event_keeps_inner_uid_whitespace(self):
        """Test feed UIDs are only trimmed, never collapsed."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(uid='  group 72934  evt\t9 \n'))

        assert event.id == 'group 72934  evt\t9'

    def test_normalize_event_blank_uid_synthesizes_id(self):
        """Test a whitespace-only UID falls back to the synthesized id."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(uid='   '))

        assert event.id == 'NSLS Speaker Broadcast-2024-01-15T19:00:00Z'

    def test_normalize_event_default_title(self):
        """Test missing or blank titles fall back to 'No title'."""
        processor = EventProcessor()

        assert processor.normalize_event(make_raw(summary=None)).title == 'No title'
        assert processor.normalize_event(
            make_raw(summary=PlainText('   \r\n '))
        ).title == 'No title'

    def test_normalize_event_decodes_encoded_title(self):
        """Test legacy-encoded titles are decoded and normalized."""
        processor = EventProcessor()

        event = processor.normalize_event(
            make_raw(summary=EncodedText('Caf=E9  Social'))
        )

        assert event.title == 'Café Social'

    def test_normalize_event_keeps_plain_title_literal(self):
        """Test plain titles are not run through legacy decoding."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(summary=PlainText('Save 50=25')))

        assert event.title == 'Save 50=25'

    def test_normalize_event_missing_start_raises(self):
        """Test a record without start is a validation error."""
        processor = EventProcessor()

        with pytest.raises(EventValidationError):
            processor.normalize_event(make_raw(start=None))

    def test_normalize_event_invalid_start_raises(self):
        """Test an unparseable start is a validation error."""
        processor = EventProcessor()

        with pytest.raises(EventValidationError):
            processor.normalize_event(make_raw(start='not-a-date'))

    def test_normalize_event_invalid_end_is_dropped(self):
        """Test an unparseable end is treated as absent."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(end='garbage'))

        assert event.end is None

    def test_normalize_event_extracts_details_url(self):
        """Test the 'Event Details' link after the separator becomes url."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(
            description=(
                'Apply for the spring\r\nleadership cohort.\n'
                '---\nEvent Details: https://involvement.ubalt.edu/rsvp?id=42 \n'
                'Add to calendar'
            ),
            url='https://example.com/ignored'
        ))

        assert event.description == 'Apply for the spring leadership cohort.'
        assert event.url == 'https://involvement.ubalt.edu/rsvp?id=42'

    def test_normalize_event_details_match_is_case_insensitive(self):
        """Test the details label is matched regardless of case."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(
            description='Body---EVENT DETAILS:   https://x.example/e/1'
        ))

        assert event.description == 'Body'
        assert event.url == 'https://x.example/e/1'

    def test_normalize_event_without_separator_uses_explicit_url(self):
        """Test url comes from the raw record when there is no separator."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(
            description='Event Details: https://not-used.example',
            url='https://example.com/event/123'
        ))

        assert event.description == 'Event Details: https://not-used.example'
        assert event.url == 'https://example.com/event/123'

    def test_normalize_event_separator_without_details(self):
        """Test a details section without a link keeps the explicit url."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(
            description='Body\n---\nRoom change pending',
            url=None
        ))

        assert event.description == 'Body'
        assert event.url is None

    def test_normalize_event_missing_optional_fields(self):
        """Test absent description, location and end default cleanly."""
        processor = EventProcessor()

        event = processor.normalize_event(make_raw(
            summary=PlainText('Unrelated lecture'),
            description=None,
            location=None,
            end=None
        ))

        assert event.description == ''
        assert event.location == ''
        assert event.end is None
        assert event.hosting_org == ('Campus',)
        assert event.primary_org == 'Campus'

    def test_process_events_filters_cancelled(self):
        """Test cancelled records are dropped."""
        processor = EventProcessor()

        processed = processor.process_events([
            make_raw(uid='a', status='CANCELLED'),
            make_raw(uid='b', status='cancelled'),
            make_raw(uid='c', status=None),
        ])

        assert [event.id for event in processed] == ['c']

    def test_process_events_skips_invalid_and_continues(self):
        """Test invalid records are skipped while others are processed."""
        processor = EventProcessor()

        processed = processor.process_events([
            make_raw(uid='valid-1'),
            make_raw(uid='no-start', start=None),
            make_raw(uid='bad-start', start='31/31/2024'),
            make_raw(uid='valid-2'),
        ])

        assert [event.id for event in processed] == ['valid-1', 'valid-2']

    def test_process_events_deduplicates_ids(self):
        """Test the first record wins when ids collide."""
        processor = EventProcessor()

        processed = processor.process_events([
            make_raw(uid='dup', summary=PlainText('First')),
            make_raw(uid='dup', summary=PlainText('Second')),
        ])

        assert len(processed) == 1
        assert processed[0].title == 'First'


class TestInstants:
    """Test cases for instant parsing and formatting."""

    def test_parse_iso_string_with_z(self):
        """Test 'Z' suffixed strings parse as UTC."""
        assert parse_instant('2024-01-15T19:00:00Z') == datetime(
            2024, 1, 15, 19, 0, tzinfo=timezone.utc
        )

    def test_parse_converts_offsets_to_utc(self):
        """Test offset-aware values are converted to UTC."""
        eastern = timezone(timedelta(hours=-5))

        parsed = parse_instant(datetime(2024, 1, 15, 14, 0, tzinfo=eastern))

        assert parsed == datetime(2024, 1, 15, 19, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_naive_is_utc(self):
        """Test naive datetimes are interpreted as UTC."""
        parsed = parse_instant(datetime(2024, 1, 15, 19, 0))

        assert parsed.tzinfo == timezone.utc

    def test_parse_date_is_midnight_utc(self):
        """Test all-day dates start at midnight UTC."""
        assert parse_instant(date(2024, 1, 16)) == datetime(
            2024, 1, 16, tzinfo=timezone.utc
        )

    def test_parse_empty_is_none(self):
        """Test missing values parse to None."""
        assert parse_instant(None) is None
        assert parse_instant('') is None

    def test_parse_invalid_raises(self):
        """Test garbage raises ValueError."""
        with pytest.raises(ValueError):
            parse_instant('invalid-date')

    def test_format_instant(self):
        """Test UTC instants format with a 'Z' suffix."""
        assert format_instant(
            datetime(2024, 1, 15, 19, 0, tzinfo=timezone.utc)
        ) == '2024-01-15T19:00:00Z'
