"""Data model for schedules, the dose log and derived occurrence views.

Persisted models (Compound, Schedule, DoseEntry) keep the JSON key names
used by the key-value store (``peptide``, ``daysOfWeek``, ...) as aliases
and retain unknown keys so a rewrite never drops fields written by other
clients. Loading never raises for a malformed ``daysOfWeek``; the value is
sanitized instead.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ScheduleValidationError
from .utils import canonical_name, parse_hhmm

Frequency = Literal["daily", "weekly", "biweekly"]
OccurrenceStatus = Literal["completed", "pending", "missed"]
CompoundStatus = Literal["active", "paused"]
ReminderKind = Literal["dose_reminder", "dose_advance_reminder", "streak_reminder"]

FREQUENCIES: tuple[str, ...] = ("daily", "weekly", "biweekly")
ALL_DAYS: tuple[int, ...] = (0, 1, 2, 3, 4, 5, 6)


def sanitize_days_of_week(raw: Any) -> list[int]:
    """Coerce persisted weekday entries to sorted unique ints in 0..6.

    Numeric strings and integral floats are accepted; booleans, blanks,
    unparseable tokens and out-of-range values are dropped.
    """
    if not isinstance(raw, (list, tuple, set)):
        return []
    result: set[int] = set()
    for item in raw:
        if isinstance(item, bool):
            continue
        value: int | None = None
        if isinstance(item, int):
            value = item
        elif isinstance(item, float):
            if item.is_integer():
                value = int(item)
        elif isinstance(item, str):
            try:
                value = int(item.strip())
            except ValueError:
                value = None
        if value is not None and 0 <= value <= 6:
            result.add(value)
    return sorted(result)


def _coerce_text(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class _Persisted(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Compound(_Persisted):
    id: str
    name: str
    category: str | None = None
    status: CompoundStatus = "active"

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _coerce_text(value)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() == "paused":
            return "paused"
        return "active"


class _ScheduleFields(_Persisted):
    peptide_name: str = Field(alias="peptide")
    compound_id: str | None = Field(default=None, alias="compoundId")
    amount: str = ""
    frequency: Frequency = "weekly"
    days_of_week: list[int] = Field(default_factory=list, alias="daysOfWeek")
    time: str = "09:00"
    enabled: bool = True

    @field_validator("amount", "compound_id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _coerce_text(value)

    @field_validator("frequency", mode="before")
    @classmethod
    def normalize_frequency(cls, value: Any) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in FREQUENCIES else "weekly"

    @field_validator("days_of_week", mode="before")
    @classmethod
    def sanitize_days(cls, value: Any) -> list[int]:
        return sanitize_days_of_week(value)

    @field_validator("time", mode="before")
    @classmethod
    def coerce_time(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("enabled", mode="before")
    @classmethod
    def coerce_enabled(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return float(value) > 0.0
        if isinstance(value, str):
            return value.strip().lower() in {"true", "yes", "y", "1"}
        return False


class ScheduleDraft(_ScheduleFields):
    """A schedule as submitted for creation, before an id is assigned."""


class Schedule(_ScheduleFields):
    id: str
    notification_ids: list[str] = Field(default_factory=list, alias="notificationIds")
    created_at: dt.datetime | None = Field(default=None, alias="createdAt")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_text(value)

    @field_validator("notification_ids", mode="before")
    @classmethod
    def coerce_notification_ids(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None]


class ScheduledDose(Schedule):
    """A schedule resolved onto one concrete day, with its local fire time."""

    scheduled_time: dt.datetime


class DoseDraft(_Persisted):
    peptide_name: str = Field(alias="peptide")
    amount: str = ""
    type: str | None = None
    category: str | None = None
    compound_id: str | None = Field(default=None, alias="compoundId")

    @field_validator("amount", "compound_id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        return _coerce_text(value)


class DoseEntry(DoseDraft):
    date: dt.datetime


class Occurrence(BaseModel):
    model_config = ConfigDict(frozen=True)

    schedule_id: str
    date: dt.date
    time: str
    peptide_name: str
    amount: str
    compound_id: str | None = None


class ClassifiedOccurrence(BaseModel):
    model_config = ConfigDict(frozen=True)

    schedule_id: str | None
    date: dt.date
    time: str
    peptide_name: str
    amount: str
    compound_id: str | None = None
    status: OccurrenceStatus
    logged_at: dt.datetime | None = None

    @property
    def is_scheduled(self) -> bool:
        return self.schedule_id is not None


class ClassifiedDay(BaseModel):
    date: dt.date
    occurrences: list[ClassifiedOccurrence] = Field(default_factory=list)

    def by_status(self, status: OccurrenceStatus) -> list[ClassifiedOccurrence]:
        return [occ for occ in self.occurrences if occ.status == status]


class ReconcileResult(BaseModel):
    kept: list[Schedule] = Field(default_factory=list)
    removed: list[Schedule] = Field(default_factory=list)


class StreakSummary(BaseModel):
    current: int = 0
    best: int = 0


class DayStatus(BaseModel):
    date: dt.date
    weekday: int
    scheduled: bool
    completed: bool
    is_past: bool
    is_today: bool


class CompoundCount(BaseModel):
    name: str
    count: int
    percentage: int


class ProgressSummary(BaseModel):
    total_doses: int
    streak: StreakSummary
    top_compounds: list[CompoundCount] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)


class ReminderIntent(BaseModel):
    """A weekly trigger, or a daily one when ``weekday`` is None."""

    model_config = ConfigDict(frozen=True)

    schedule_id: str | None
    kind: ReminderKind
    weekday: int | None
    hour: int
    minute: int
    title: str
    body: str


def validate_schedule_draft(draft: ScheduleDraft) -> ScheduleDraft:
    """Enforce creation-time invariants and normalize ``daily`` to all days."""
    if canonical_name(draft.peptide_name) is None:
        raise ScheduleValidationError("peptide", "a compound name is required")
    if parse_hhmm(draft.time) is None:
        raise ScheduleValidationError("time", f"expected 24-hour HH:MM, got {draft.time!r}")
    if draft.frequency == "daily":
        return draft.model_copy(update={"days_of_week": list(ALL_DAYS)})
    if draft.enabled and not draft.days_of_week:
        raise ScheduleValidationError(
            "daysOfWeek", "select at least one day for a non-daily schedule"
        )
    return draft
