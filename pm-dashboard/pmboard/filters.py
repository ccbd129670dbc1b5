"""Filter engine for the board and timeline views."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional

from .models import DateRange, FilterState, Task, as_utc


def _start_bound(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _end_bound(value: Optional[date]) -> Optional[datetime]:
    # End bound covers the whole day it falls on.
    if value is None:
        return None
    if isinstance(value, datetime):
        value = as_utc(value).date()
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def _matches_dates(task: Task, date_range: DateRange) -> bool:
    start = _start_bound(date_range.start)
    end = _end_bound(date_range.end)
    deadline = as_utc(task.deadline)
    if start and deadline < start:
        return False
    if end and deadline > end:
        return False
    return True


def matches(task: Task, filters: FilterState) -> bool:
    if filters.assignee and (task.assignee is None or task.assignee.id != filters.assignee):
        return False

    if filters.priority and task.priority != filters.priority:
        return False

    if filters.tags and not any(tag in filters.tags for tag in task.tags):
        return False

    needle = filters.search.strip().lower()
    if needle and needle not in task.title.lower() and needle not in task.description.lower():
        return False

    if filters.date_range.start or filters.date_range.end:
        return _matches_dates(task, filters.date_range)

    return True


def apply_filters(tasks: Iterable[Task], filters: FilterState) -> List[Task]:
    """Visible subset of ``tasks`` in original order."""
    return [t for t in tasks if matches(t, filters)]
