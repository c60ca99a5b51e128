"""Field-level comparison of two event snapshots."""
import logging
from typing import Dict, List

from processor.models import DiffResult, Event, EventChange, FieldChange

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ('title', 'start', 'end', 'description', 'url')


def field_changes(previous: Event, current: Event) -> Dict[str, FieldChange]:
    """
    Compare the tracked fields of two versions of the same event.

    Args:
        previous: Event from the prior snapshot
        current: Event from the candidate snapshot

    Returns:
        Mapping of changed field name to FieldChange (empty if unchanged)
    """
    changes = {}
    for name in TRACKED_FIELDS:
        old_value = getattr(previous, name)
        new_value = getattr(current, name)
        if old_value != new_value:
            changes[name] = FieldChange(from_value=old_value, to_value=new_value)
    return changes


def diff_events(previous: List[Event], current: List[Event]) -> DiffResult:
    """
    Compare two event sets keyed by id.

    Args:
        previous: Events from the persisted snapshot
        current: Events from this run

    Returns:
        DiffResult with added, updated and removed buckets sorted by id
    """
    previous_by_id = {event.id: event for event in previous}
    current_by_id = {event.id: event for event in current}

    added = [
        current_by_id[event_id] for event_id in sorted(current_by_id)
        if event_id not in previous_by_id
    ]

    removed = [
        previous_by_id[event_id] for event_id in sorted(previous_by_id)
        if event_id not in current_by_id
    ]

    updated = []
    for event_id in sorted(current_by_id):
        if event_id not in previous_by_id:
            continue
        changes = field_changes(previous_by_id[event_id], current_by_id[event_id])
        if changes:
            updated.append(EventChange(id=event_id, changes=changes))

    logger.info(
        f"Diff: {len(added)} added, {len(updated)} updated, "
        f"{len(removed)} removed"
    )
    return DiffResult(added=added, updated=updated, removed=removed)
