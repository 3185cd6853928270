from __future__ import annotations

from dose_engine.models import Compound, Schedule
from dose_engine.reconcile import reconcile, schedule_matches_compound


def _schedule(schedule_id: str, name: str, **extra) -> Schedule:
    return Schedule.model_validate(
        {"id": schedule_id, "peptide": name, "daysOfWeek": [1], "time": "09:00", **extra}
    )


def _compound(compound_id: str, name: str) -> Compound:
    return Compound(id=compound_id, name=name)


def test_schedule_for_untracked_compound_is_orphaned() -> None:
    tirz = _schedule("a", "Tirzepatide 10mg")
    sema = _schedule("b", "Semaglutide 1mg")

    result = reconcile([tirz, sema], [_compound("c1", "Semaglutide")])

    assert [s.id for s in result.kept] == ["b"]
    assert [s.id for s in result.removed] == ["a"]


def test_no_tracked_compounds_orphans_every_schedule() -> None:
    schedules = [_schedule("a", "Semaglutide"), _schedule("b", "BPC-157")]
    result = reconcile(schedules, [])
    assert result.kept == []
    assert [s.id for s in result.removed] == ["a", "b"]


def test_empty_inputs() -> None:
    result = reconcile([], [])
    assert result.kept == []
    assert result.removed == []


def test_compound_id_survives_a_rename() -> None:
    schedule = _schedule("a", "Old label", compoundId="c1")
    assert schedule_matches_compound(schedule, _compound("c1", "New name"))
    assert reconcile([schedule], [_compound("c1", "New name")]).removed == []


def test_conflicting_compound_id_is_not_rescued_by_name() -> None:
    schedule = _schedule("a", "BPC-157", compoundId="c9")
    result = reconcile([schedule], [_compound("c1", "BPC-157")])
    assert [s.id for s in result.removed] == ["a"]


def test_reconcile_is_idempotent_on_kept() -> None:
    compounds = [_compound("c1", "Semaglutide"), _compound("c2", "BPC")]
    schedules = [
        _schedule("a", "Semaglutide 1mg"),
        _schedule("b", "bpc-157"),
        _schedule("c", "Ipamorelin"),
    ]
    first = reconcile(schedules, compounds)
    second = reconcile(first.kept, compounds)
    assert second.kept == first.kept
    assert second.removed == []
