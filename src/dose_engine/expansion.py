"""Occurrence expansion: recurring schedules to dated occurrences.

Pure and deterministic. Windowing policy (e.g. hiding days before today in
a live calendar) is the caller's decision; the expander emits whatever the
requested window contains.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, timedelta

from .models import ALL_DAYS, Occurrence, Schedule
from .utils import sunday_weekday, time_sort_key


def iter_window(window_start: date, window_days: int) -> Iterator[date]:
    for day_offset in range(max(window_days, 0)):
        yield window_start + timedelta(days=day_offset)


def effective_days(schedule: Schedule) -> frozenset[int]:
    """Weekdays (Sunday=0) a schedule fires on; ``daily`` means every day."""
    if schedule.frequency == "daily":
        return frozenset(ALL_DAYS)
    return frozenset(schedule.days_of_week)


def expand(
    schedules: Iterable[Schedule],
    window_start: date,
    window_days: int,
) -> list[Occurrence]:
    """Emit one occurrence per enabled schedule per matching day in the window.

    The window is ``[window_start, window_start + window_days)``. Output is
    ordered by day, then schedule time, then input order.
    """
    enabled = [(schedule, effective_days(schedule)) for schedule in schedules if schedule.enabled]
    if not enabled:
        return []

    occurrences: list[Occurrence] = []
    for local_day in iter_window(window_start, window_days):
        weekday = sunday_weekday(local_day)
        day_rows = [
            Occurrence(
                schedule_id=schedule.id,
                date=local_day,
                time=schedule.time,
                peptide_name=schedule.peptide_name,
                amount=schedule.amount,
                compound_id=schedule.compound_id,
            )
            for schedule, days in enabled
            if weekday in days
        ]
        day_rows.sort(key=lambda occ: time_sort_key(occ.time))
        occurrences.extend(day_rows)
    return occurrences
