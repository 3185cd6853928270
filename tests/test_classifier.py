from __future__ import annotations

from datetime import date, datetime

from dose_engine.classifier import classify, classify_occurrence, weekly_status
from dose_engine.models import DoseEntry, Occurrence, Schedule

WEDNESDAY = date(2026, 2, 4)


def _occurrence(day: date, *, schedule_id: str = "s1", time: str = "09:00") -> Occurrence:
    return Occurrence(
        schedule_id=schedule_id,
        date=day,
        time=time,
        peptide_name="BPC-157 250mcg",
        amount="250",
    )


def _dose(name: str, when: datetime) -> DoseEntry:
    return DoseEntry(peptide_name=name, amount="250", date=when)


def test_past_unlogged_is_missed_and_future_is_pending() -> None:
    yesterday = _occurrence(date(2026, 2, 3))
    tomorrow = _occurrence(date(2026, 2, 5))

    days = classify([yesterday, tomorrow], [], WEDNESDAY)

    assert [d.date for d in days] == [date(2026, 2, 3), date(2026, 2, 5)]
    assert days[0].occurrences[0].status == "missed"
    assert days[1].occurrences[0].status == "pending"


def test_unlogged_occurrence_today_is_still_pending() -> None:
    result = classify_occurrence(_occurrence(WEDNESDAY), [], WEDNESDAY)
    assert result.status == "pending"
    assert result.logged_at is None


def test_logged_occurrence_is_completed_with_log_time() -> None:
    logged_at = datetime(2026, 2, 3, 9, 12)
    days = classify([_occurrence(date(2026, 2, 3))], [_dose("BPC-157", logged_at)], WEDNESDAY)

    row = days[0].occurrences[0]
    assert row.status == "completed"
    assert row.logged_at == logged_at
    assert row.is_scheduled
    assert len(days[0].occurrences) == 1


def test_unscheduled_dose_appears_as_ad_hoc_completed_row() -> None:
    days = classify([], [_dose("TB-500", datetime(2026, 2, 1, 10, 15))], WEDNESDAY)

    assert len(days) == 1
    row = days[0].occurrences[0]
    assert row.schedule_id is None
    assert not row.is_scheduled
    assert row.status == "completed"
    assert row.time == "10:15"
    assert row.peptide_name == "TB-500"


def test_scheduled_and_ad_hoc_rows_share_a_day_sorted_by_time() -> None:
    day = date(2026, 2, 3)
    log = [
        _dose("BPC-157", datetime(2026, 2, 3, 9, 5)),
        _dose("TB-500", datetime(2026, 2, 3, 7, 30)),
    ]
    days = classify([_occurrence(day)], log, WEDNESDAY)

    assert [(row.time, row.status, row.schedule_id) for row in days[0].occurrences] == [
        ("07:30", "completed", None),
        ("09:00", "completed", "s1"),
    ]
    assert len(days[0].by_status("completed")) == 2


def test_one_log_entry_completes_every_matching_occurrence_that_day() -> None:
    day = date(2026, 2, 3)
    occurrences = [
        _occurrence(day, schedule_id="morning", time="08:00"),
        _occurrence(day, schedule_id="evening", time="20:00"),
    ]
    days = classify(occurrences, [_dose("BPC-157", datetime(2026, 2, 3, 8, 1))], WEDNESDAY)

    statuses = {row.schedule_id: row.status for row in days[0].occurrences}
    assert statuses == {"morning": "completed", "evening": "completed"}
    # The entry is not repeated as an ad hoc row.
    assert all(row.is_scheduled for row in days[0].occurrences)


def test_window_bounds_hide_log_days_outside_range() -> None:
    log = [
        _dose("TB-500", datetime(2026, 1, 20, 10, 0)),
        _dose("TB-500", datetime(2026, 2, 4, 10, 0)),
    ]
    days = classify([], log, WEDNESDAY, window_start=WEDNESDAY, window_end=WEDNESDAY)
    assert [d.date for d in days] == [WEDNESDAY]


def test_days_without_anything_are_omitted() -> None:
    assert classify([], [], WEDNESDAY) == []


def test_weekly_status_strip_runs_sunday_to_saturday() -> None:
    schedule = Schedule.model_validate(
        {"id": "s1", "peptide": "BPC-157", "daysOfWeek": [1, 3, 5], "time": "09:00"}
    )
    log = [_dose("anything", datetime(2026, 2, 2, 9, 0))]

    strip = weekly_status([schedule], log, WEDNESDAY)

    assert [d.date for d in strip][0] == date(2026, 2, 1)
    assert [d.weekday for d in strip] == list(range(7))
    assert [d.scheduled for d in strip] == [False, True, False, True, False, True, False]
    assert strip[1].completed and strip[1].is_past
    assert not strip[3].completed and strip[3].is_today
    assert not strip[5].is_past


def test_rows_sort_chronologically_for_unpadded_hours() -> None:
    day = date(2026, 2, 3)
    log = [_dose("TB-500", datetime(2026, 2, 3, 10, 0))]
    days = classify([_occurrence(day, time="9:00")], log, WEDNESDAY)

    assert [row.time for row in days[0].occurrences] == ["9:00", "10:00"]
