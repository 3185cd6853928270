"""Orphan reconciliation between schedules and the tracked compound set."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models import Compound, ReconcileResult, Schedule
from .utils import identifiers_or_names_correspond

logger = logging.getLogger(__name__)


def schedule_matches_compound(schedule: Schedule, compound: Compound) -> bool:
    return identifiers_or_names_correspond(
        schedule.compound_id,
        schedule.peptide_name,
        compound.id,
        compound.name,
    )


def reconcile(
    schedules: Sequence[Schedule],
    active_compounds: Iterable[Compound],
) -> ReconcileResult:
    """Split schedules into kept and orphaned.

    With no tracked compounds every schedule is orphaned, so reminders
    cannot outlive a full reset. Otherwise a schedule survives iff it
    corresponds to at least one compound. Running this again on ``kept``
    with the same compounds returns ``kept`` unchanged.
    """
    compounds = list(active_compounds)
    if not compounds:
        return ReconcileResult(kept=[], removed=list(schedules))

    kept: list[Schedule] = []
    removed: list[Schedule] = []
    for schedule in schedules:
        if any(schedule_matches_compound(schedule, compound) for compound in compounds):
            kept.append(schedule)
        else:
            removed.append(schedule)

    if removed:
        logger.debug(
            "Orphaned %d schedule(s): %s",
            len(removed),
            [schedule.peptide_name for schedule in removed],
        )
    return ReconcileResult(kept=kept, removed=removed)
