"""Day classification: occurrences plus the raw dose log, labelled per day.

An occurrence is ``completed`` when a same-day log entry corresponds to it,
``missed`` when its day is strictly before the reference day, and
``pending`` otherwise. Log entries that no occurrence consumed are kept as
ad hoc ``completed`` rows, so a day with only unscheduled doses still shows
up. Status is recomputed on every call; nothing is stored.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from .dedup import dose_matches_occurrence, find_matching_dose
from .expansion import effective_days
from .models import (
    ClassifiedDay,
    ClassifiedOccurrence,
    DayStatus,
    DoseEntry,
    Occurrence,
    OccurrenceStatus,
    Schedule,
)
from .utils import local_date, local_time_label, sunday_weekday, time_sort_key


def _status_for(occurrence: Occurrence, *, logged: bool, reference_date: date) -> OccurrenceStatus:
    if logged:
        return "completed"
    if occurrence.date < reference_date:
        return "missed"
    return "pending"


def classify_occurrence(
    occurrence: Occurrence,
    dose_log: Iterable[DoseEntry],
    reference_date: date,
    *,
    timezone_name: str | None = None,
) -> ClassifiedOccurrence:
    match = find_matching_dose(occurrence, dose_log, timezone_name=timezone_name)
    return ClassifiedOccurrence(
        **occurrence.model_dump(),
        status=_status_for(occurrence, logged=match is not None, reference_date=reference_date),
        logged_at=match.date if match is not None else None,
    )


def _ad_hoc_row(entry: DoseEntry, day: date, timezone_name: str | None) -> ClassifiedOccurrence:
    return ClassifiedOccurrence(
        schedule_id=None,
        date=day,
        time=local_time_label(entry.date, timezone_name),
        peptide_name=entry.peptide_name,
        amount=entry.amount,
        compound_id=entry.compound_id,
        status="completed",
        logged_at=entry.date,
    )


def classify(
    occurrences: Iterable[Occurrence],
    dose_log: Sequence[DoseEntry],
    reference_date: date,
    *,
    timezone_name: str | None = None,
    window_start: date | None = None,
    window_end: date | None = None,
) -> list[ClassifiedDay]:
    """Group occurrences and log entries into classified days, ascending.

    ``window_start``/``window_end`` (inclusive) bound which log days appear
    as ad hoc rows; occurrences are taken as given.
    """
    occurrences_by_day: dict[date, list[Occurrence]] = defaultdict(list)
    for occurrence in occurrences:
        occurrences_by_day[occurrence.date].append(occurrence)

    entries_by_day: dict[date, list[DoseEntry]] = defaultdict(list)
    for entry in dose_log:
        day = local_date(entry.date, timezone_name)
        if window_start is not None and day < window_start:
            continue
        if window_end is not None and day > window_end:
            continue
        entries_by_day[day].append(entry)

    result: list[ClassifiedDay] = []
    for day in sorted(set(occurrences_by_day) | set(entries_by_day)):
        day_entries = entries_by_day.get(day, [])
        consumed: set[int] = set()
        rows: list[ClassifiedOccurrence] = []

        for occurrence in occurrences_by_day.get(day, []):
            match_index = next(
                (
                    idx
                    for idx, entry in enumerate(day_entries)
                    if dose_matches_occurrence(occurrence, entry)
                ),
                None,
            )
            logged_at = None
            if match_index is not None:
                consumed.add(match_index)
                logged_at = day_entries[match_index].date
            rows.append(
                ClassifiedOccurrence(
                    **occurrence.model_dump(),
                    status=_status_for(
                        occurrence,
                        logged=match_index is not None,
                        reference_date=reference_date,
                    ),
                    logged_at=logged_at,
                )
            )

        for idx, entry in enumerate(day_entries):
            if idx not in consumed:
                rows.append(_ad_hoc_row(entry, day, timezone_name))

        rows.sort(key=lambda row: time_sort_key(row.time))
        result.append(ClassifiedDay(date=day, occurrences=rows))

    return result


def weekly_status(
    schedules: Iterable[Schedule],
    dose_log: Iterable[DoseEntry],
    reference_date: date,
    *,
    timezone_name: str | None = None,
) -> list[DayStatus]:
    """Sunday..Saturday strip for the week containing ``reference_date``.

    ``completed`` is day-level: any logged dose counts, matching or not.
    """
    scheduled_weekdays: set[int] = set()
    for schedule in schedules:
        if schedule.enabled:
            scheduled_weekdays |= effective_days(schedule)

    logged_days = {local_date(entry.date, timezone_name) for entry in dose_log}
    week_start = reference_date - timedelta(days=sunday_weekday(reference_date))

    strip: list[DayStatus] = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        strip.append(
            DayStatus(
                date=day,
                weekday=offset,
                scheduled=offset in scheduled_weekdays,
                completed=day in logged_days,
                is_past=day < reference_date,
                is_today=day == reference_date,
            )
        )
    return strip
