from __future__ import annotations

from datetime import timezone

import pytest

from dose_engine.errors import ScheduleValidationError
from dose_engine.models import (
    Compound,
    DoseEntry,
    Schedule,
    ScheduleDraft,
    sanitize_days_of_week,
    validate_schedule_draft,
)


def test_sanitize_days_of_week_drops_unparseable_entries() -> None:
    raw = ["1", 3, "x", 9, True, 2.0, 2.5, None, 3, " 5 "]
    assert sanitize_days_of_week(raw) == [1, 2, 3, 5]


def test_sanitize_days_of_week_non_list_degrades_to_no_days() -> None:
    assert sanitize_days_of_week("1,2,3") == []
    assert sanitize_days_of_week(None) == []


def test_schedule_loads_persisted_json_and_keeps_unknown_keys() -> None:
    schedule = Schedule.model_validate(
        {
            "id": 1717000000000,
            "peptide": "BPC-157 250mcg",
            "amount": 250,
            "frequency": "fortnightly",
            "daysOfWeek": ["1", "x", 3],
            "time": "09:00",
            "enabled": True,
            "createdAt": "2026-02-01T08:00:00.000Z",
            "color": "#10B981",
        }
    )
    assert schedule.id == "1717000000000"
    assert schedule.amount == "250"
    assert schedule.frequency == "weekly"
    assert schedule.days_of_week == [1, 3]
    assert schedule.notification_ids == []

    stored = schedule.to_storage()
    assert stored["peptide"] == "BPC-157 250mcg"
    assert stored["daysOfWeek"] == [1, 3]
    assert stored["color"] == "#10B981"


def test_schedule_with_garbage_enabled_flag_is_disabled() -> None:
    schedule = Schedule.model_validate(
        {"id": "s1", "peptide": "BPC-157", "daysOfWeek": [1], "enabled": "maybe"}
    )
    assert schedule.enabled is False


def test_compound_coerces_numeric_id_and_status() -> None:
    compound = Compound.model_validate({"id": 12, "name": "Semaglutide", "status": "Paused"})
    assert compound.id == "12"
    assert compound.status == "paused"
    assert Compound.model_validate({"id": "a", "name": "x", "status": "Active"}).status == "active"


def test_dose_entry_parses_utc_iso_timestamps() -> None:
    entry = DoseEntry.model_validate(
        {"date": "2026-02-01T10:00:00.000Z", "peptide": "BPC-157", "amount": "250", "type": "Injection"}
    )
    assert entry.date.tzinfo is not None
    assert entry.date.astimezone(timezone.utc).hour == 10
    assert entry.peptide_name == "BPC-157"


def test_validate_draft_expands_daily_to_all_days() -> None:
    draft = ScheduleDraft(peptide_name="BPC-157", frequency="daily", days_of_week=[], time="08:00")
    assert validate_schedule_draft(draft).days_of_week == [0, 1, 2, 3, 4, 5, 6]


def test_validate_draft_requires_days_for_enabled_weekly_schedule() -> None:
    draft = ScheduleDraft(peptide_name="BPC-157", frequency="weekly", days_of_week=[], time="08:00")
    with pytest.raises(ScheduleValidationError) as excinfo:
        validate_schedule_draft(draft)
    assert excinfo.value.field == "daysOfWeek"


def test_validate_draft_allows_disabled_schedule_without_days() -> None:
    draft = ScheduleDraft(
        peptide_name="BPC-157", frequency="biweekly", days_of_week=[], time="08:00", enabled=False
    )
    assert validate_schedule_draft(draft) is draft


def test_validate_draft_rejects_bad_time_and_blank_name() -> None:
    with pytest.raises(ScheduleValidationError, match="time"):
        validate_schedule_draft(ScheduleDraft(peptide_name="BPC-157", days_of_week=[1], time="25:00"))
    with pytest.raises(ScheduleValidationError, match="peptide"):
        validate_schedule_draft(ScheduleDraft(peptide_name="  ", days_of_week=[1], time="09:00"))
