"""Batch job that syncs the campus calendar feed into the events snapshot."""
import json
import logging
import os
import sys
import time
from typing import Any, Dict

from processor.event_processor import EventProcessor
from scraper.ics_feed import IcsFeedSource
from storage.snapshot_manager import SnapshotManager


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter on stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def run_sync() -> Dict[str, Any]:
    """
    Fetch, normalize and persist calendar events.

    Configuration comes from FEED_URL, SNAPSHOT_PATH, LOG_LEVEL,
    TIMEOUT_SECONDS and MAX_RETRIES.

    Returns:
        Summary dict with status 'ok' or 'error'
    """
    feed_url = os.environ.get('FEED_URL', IcsFeedSource.DEFAULT_URL)
    snapshot_path = os.environ.get('SNAPSHOT_PATH', 'events.json')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(f"Sync started for {feed_url} -> {snapshot_path}")

    try:
        timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
        max_retries = int(os.environ.get('MAX_RETRIES', '3'))

        feed = IcsFeedSource(
            url=feed_url,
            timeout=timeout_seconds,
            max_retries=max_retries
        )
        processor = EventProcessor()
        snapshot_manager = SnapshotManager(snapshot_path)

        # A failed fetch must leave the published snapshot untouched
        try:
            raw_events = feed.fetch_events()
            logger.info(f"Fetched {len(raw_events)} raw events from feed")
        except Exception as e:
            logger.error(
                f"Failed to fetch calendar feed: {str(e)}",
                exc_info=True
            )
            duration = time.time() - start_time
            return {
                'status': 'error',
                'message': 'Failed to fetch calendar feed',
                'error': str(e),
                'error_type': type(e).__name__,
                'note': 'Previous snapshot remains published',
                'duration_seconds': round(duration, 2)
            }

        events = processor.process_events(raw_events)
        result = snapshot_manager.commit(events)

        duration = time.time() - start_time
        logger.info(
            f"Sync completed in {round(duration, 2)}s: "
            f"{len(result.diff.added)} added, {len(result.diff.updated)} updated, "
            f"{len(result.diff.removed)} removed, written={result.written}"
        )

        return {
            'status': 'ok',
            'message': 'Snapshot updated' if result.written else 'No changes',
            'statistics': {
                'raw_events_fetched': len(raw_events),
                'valid_events_processed': len(events),
                'events_added': len(result.diff.added),
                'events_updated': len(result.diff.updated),
                'events_removed': len(result.diff.removed),
                'written': result.written
            },
            'duration_seconds': round(duration, 2)
        }

    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"Sync failed: {str(e)}", exc_info=True)
        return {
            'status': 'error',
            'message': 'Sync failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        }


def main() -> int:
    """Run the sync and map its outcome to a process exit code."""
    summary = run_sync()
    print(json.dumps(summary, ensure_ascii=False))
    return 0 if summary['status'] == 'ok' else 1


if __name__ == '__main__':
    sys.exit(main())
