"""Adherence percentage, day streaks and progress achievements.

All three work at day granularity: any logged dose satisfies a day,
whether or not it corresponds to the compound that was scheduled.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from .expansion import effective_days
from .models import CompoundCount, DoseEntry, ProgressSummary, Schedule, StreakSummary
from .utils import local_date, local_today, sunday_weekday

DEFAULT_ADHERENCE_WINDOW_DAYS = 7
TOP_COMPOUNDS_LIMIT = 4

# (achievement id, minimum total doses)
_DOSE_COUNT_ACHIEVEMENTS: tuple[tuple[str, int], ...] = (
    ("first_dose", 1),
    ("dedicated", 50),
    ("century", 100),
)
# (achievement id, minimum streak length)
_STREAK_ACHIEVEMENTS: tuple[tuple[str, int], ...] = (
    ("week_streak", 7),
    ("month_streak", 30),
)


def _percent_half_up(numerator: int, denominator: int) -> int:
    return (numerator * 200 + denominator) // (2 * denominator)


def _logged_days(dose_log: Iterable[DoseEntry], timezone_name: str | None) -> set[date]:
    return {local_date(entry.date, timezone_name) for entry in dose_log}


def compute_adherence(
    schedules: Iterable[Schedule],
    dose_log: Iterable[DoseEntry],
    window_days: int = DEFAULT_ADHERENCE_WINDOW_DAYS,
    *,
    today: date | None = None,
    timezone_name: str | None = None,
) -> int:
    """Share of scheduled days in the trailing window that got any dose.

    The window is the ``window_days`` days ending with today. Returns 100
    when nothing is scheduled in the window.
    """
    today = today or local_today(timezone_name)
    scheduled_weekdays: set[int] = set()
    for schedule in schedules:
        if schedule.enabled:
            scheduled_weekdays |= effective_days(schedule)
    if not scheduled_weekdays:
        return 100

    logged = _logged_days(dose_log, timezone_name)
    scheduled_days = 0
    satisfied_days = 0
    for offset in range(max(window_days, 0)):
        day = today - timedelta(days=offset)
        if sunday_weekday(day) not in scheduled_weekdays:
            continue
        scheduled_days += 1
        if day in logged:
            satisfied_days += 1

    if scheduled_days == 0:
        return 100
    return _percent_half_up(satisfied_days, scheduled_days)


def _best_run(days: Iterable[date]) -> int:
    best = 0
    run = 0
    previous: date | None = None
    for day in sorted(days):
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    return best


def compute_streak(
    dose_log: Iterable[DoseEntry],
    *,
    today: date | None = None,
    timezone_name: str | None = None,
) -> StreakSummary:
    """Consecutive logged days counting back from today.

    If today has no dose yet the count starts from yesterday instead, so an
    unfinished day does not break the streak. ``best`` is the longest run
    anywhere in the log.
    """
    today = today or local_today(timezone_name)
    logged = _logged_days(dose_log, timezone_name)

    cursor = today
    if cursor not in logged:
        cursor -= timedelta(days=1)
    current = 0
    while cursor in logged:
        current += 1
        cursor -= timedelta(days=1)

    return StreakSummary(current=current, best=max(_best_run(logged), current))


def compute_progress(
    dose_log: Sequence[DoseEntry],
    *,
    today: date | None = None,
    timezone_name: str | None = None,
) -> ProgressSummary:
    streak = compute_streak(dose_log, today=today, timezone_name=timezone_name)
    total = len(dose_log)

    counts = Counter(entry.peptide_name for entry in dose_log)
    top_compounds = [
        CompoundCount(name=name, count=count, percentage=_percent_half_up(count, total))
        for name, count in counts.most_common(TOP_COMPOUNDS_LIMIT)
    ]

    achievements = [name for name, minimum in _DOSE_COUNT_ACHIEVEMENTS if total >= minimum]
    longest = max(streak.current, streak.best)
    achievements.extend(name for name, minimum in _STREAK_ACHIEVEMENTS if longest >= minimum)

    return ProgressSummary(
        total_doses=total,
        streak=streak,
        top_compounds=top_compounds,
        achievements=achievements,
    )
