from __future__ import annotations

from datetime import date, datetime, timezone

from dose_engine.dedup import doses_on_day, find_matching_dose, is_logged
from dose_engine.models import DoseEntry, Occurrence

MONDAY = date(2026, 2, 2)


def _occurrence(name: str = "BPC-157 250mcg", day: date = MONDAY, **extra) -> Occurrence:
    return Occurrence(
        schedule_id="s1",
        date=day,
        time="09:00",
        peptide_name=name,
        amount="250",
        **extra,
    )


def _dose(name: str, when: datetime, **extra) -> DoseEntry:
    return DoseEntry(peptide_name=name, amount="250", date=when, **extra)


def test_short_log_name_satisfies_longer_schedule_label() -> None:
    log = [_dose("BPC-157", datetime(2026, 2, 2, 10, 0))]
    assert is_logged(_occurrence("BPC-157 250mcg"), log)


def test_longer_log_name_satisfies_shorter_schedule_label() -> None:
    log = [_dose("bpc-157 250mcg (abdomen)", datetime(2026, 2, 2, 10, 0))]
    assert is_logged(_occurrence("BPC-157"), log)


def test_dose_on_another_day_does_not_count() -> None:
    log = [_dose("BPC-157", datetime(2026, 2, 3, 0, 5))]
    assert not is_logged(_occurrence(), log)


def test_unrelated_compound_does_not_count() -> None:
    log = [_dose("TB-500", datetime(2026, 2, 2, 10, 0))]
    assert not is_logged(_occurrence(), log)


def test_mismatched_compound_ids_override_name_match() -> None:
    log = [_dose("BPC-157", datetime(2026, 2, 2, 10, 0), compound_id="c2")]
    assert not is_logged(_occurrence(compound_id="c1"), log)


def test_local_day_decides_which_occurrence_a_dose_belongs_to() -> None:
    # 03:00 UTC on Feb 3 is still the evening of Feb 2 in New York.
    log = [_dose("BPC-157", datetime(2026, 2, 3, 3, 0, tzinfo=timezone.utc))]
    assert is_logged(_occurrence(), log, timezone_name="America/New_York")
    assert not is_logged(_occurrence(), log, timezone_name="UTC")


def test_find_matching_dose_returns_first_in_log_order() -> None:
    first = _dose("BPC-157", datetime(2026, 2, 2, 20, 0))
    second = _dose("BPC-157 250mcg", datetime(2026, 2, 2, 8, 0))
    assert find_matching_dose(_occurrence(), [first, second]) is first


def test_doses_on_day_filters_by_local_day() -> None:
    monday = _dose("BPC-157", datetime(2026, 2, 2, 23, 59))
    tuesday = _dose("BPC-157", datetime(2026, 2, 3, 0, 0))
    assert doses_on_day([monday, tuesday], MONDAY) == [monday]
