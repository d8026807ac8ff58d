# mengaji/backend/modules/schedule.py

from datetime import time
from typing import Iterable, Optional

from ..models.db_models import SchoolClass


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """
    Half-open interval overlap: [start_a, end_a) and [start_b, end_b) share
    an instant iff start_a < end_b and start_b < end_a.
    Back-to-back slots (09:00-10:00 and 10:00-11:00) do not overlap.
    """
    return start_a < end_b and start_b < end_a


def is_valid_interval(start: time, end: time) -> bool:
    """A class slot lives within one day, so the end must be strictly later than the start."""
    return start < end


def find_schedule_conflict(existing_classes: Iterable[SchoolClass], start: time, end: time) -> Optional[SchoolClass]:
    """
    Finds the first active class whose time slot overlaps the proposed one.

    Args:
        existing_classes: Classes of the same teacher on the same weekday.
        start: Proposed start time.
        end: Proposed end time.

    Returns:
        The conflicting class, or None when the slot is free. Inactive
        classes never conflict.
    """
    for existing in existing_classes:
        if not existing.is_active:
            continue
        if intervals_overlap(start, end, existing.start_time, existing.end_time):
            return existing
    return None
