"""Match scheduled occurrences against the free-text dose log."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from .models import DoseEntry, Occurrence
from .utils import identifiers_or_names_correspond, local_date


def doses_on_day(
    dose_log: Iterable[DoseEntry],
    day: date,
    *,
    timezone_name: str | None = None,
) -> list[DoseEntry]:
    """Log entries whose local calendar day equals ``day``."""
    return [entry for entry in dose_log if local_date(entry.date, timezone_name) == day]


def dose_matches_occurrence(occurrence: Occurrence, entry: DoseEntry) -> bool:
    return identifiers_or_names_correspond(
        occurrence.compound_id,
        occurrence.peptide_name,
        entry.compound_id,
        entry.peptide_name,
    )


def find_matching_dose(
    occurrence: Occurrence,
    dose_log: Iterable[DoseEntry],
    *,
    timezone_name: str | None = None,
) -> DoseEntry | None:
    """First same-day log entry corresponding to the occurrence; no ranking."""
    for entry in doses_on_day(dose_log, occurrence.date, timezone_name=timezone_name):
        if dose_matches_occurrence(occurrence, entry):
            return entry
    return None


def is_logged(
    occurrence: Occurrence,
    dose_log: Iterable[DoseEntry],
    *,
    timezone_name: str | None = None,
) -> bool:
    return find_matching_dose(occurrence, dose_log, timezone_name=timezone_name) is not None
