"""Key-value storage collaborator for schedules, doses and tracked compounds.

The engine only needs get/set by key. ``DoseStore`` layers the schedule and
dose-log operations on top of any ``KeyValueStore``: an in-memory store for
tests and local runs, or a Postgres table via psycopg.

Rows that fail model validation are dropped with a warning instead of
failing the whole read; the engine functions downstream assume well-typed
input.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import date, datetime, time, timezone
from typing import Any, Protocol, TypeVar

import psycopg
from psycopg.rows import dict_row
from pydantic import BaseModel, ValidationError

from .errors import StorageError
from .expansion import effective_days
from .models import (
    Compound,
    DoseDraft,
    DoseEntry,
    Schedule,
    ScheduleDraft,
    ScheduledDose,
)
from .utils import parse_hhmm, sunday_weekday

logger = logging.getLogger(__name__)

SCHEDULES_KEY = "user_dose_schedules"
DOSE_HISTORY_KEY = "user_dose_history"
COMPOUNDS_KEY = "user_peptides"

ModelT = TypeVar("ModelT", bound=BaseModel)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def remove(self, *keys: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store; values round-trip through JSON like a real backend."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def remove(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)


class PostgresKeyValueStore:
    """JSONB key-value rows scoped by namespace (one namespace per user)."""

    def __init__(self, conn: psycopg.AsyncConnection[Any], namespace: str) -> None:
        self._conn = conn
        self._namespace = namespace

    async def ensure_schema(self) -> None:
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv_store (
                        namespace TEXT NOT NULL,
                        key TEXT NOT NULL,
                        value JSONB NOT NULL,
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        PRIMARY KEY (namespace, key)
                    )
                    """
                )
        except psycopg.Error as exc:
            raise StorageError(f"Failed to create kv_store table: {exc}") from exc

    async def get(self, key: str) -> Any | None:
        try:
            async with self._conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    "SELECT value FROM kv_store WHERE namespace = %s AND key = %s",
                    (self._namespace, key),
                )
                row = await cur.fetchone()
        except psycopg.Error as exc:
            raise StorageError(f"Failed to read key={key!r}: {exc}") from exc
        if row is None:
            return None
        value = row["value"]
        # psycopg decodes JSONB already; plain TEXT columns come back as str.
        if isinstance(value, str):
            return json.loads(value)
        return value

    async def set(self, key: str, value: Any) -> None:
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO kv_store (namespace, key, value, updated_at)
                    VALUES (%s, %s, %s, NOW())
                    ON CONFLICT (namespace, key) DO UPDATE SET
                        value = EXCLUDED.value,
                        updated_at = NOW()
                    """,
                    (self._namespace, key, json.dumps(value)),
                )
        except psycopg.Error as exc:
            raise StorageError(f"Failed to write key={key!r}: {exc}") from exc

    async def remove(self, *keys: str) -> None:
        if not keys:
            return
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM kv_store WHERE namespace = %s AND key = ANY(%s)",
                    (self._namespace, list(keys)),
                )
        except psycopg.Error as exc:
            raise StorageError(f"Failed to remove keys={list(keys)!r}: {exc}") from exc


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DoseStore:
    """Schedule, dose-log and compound operations over a key-value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._kv = kv
        self._clock = clock
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    async def _load_rows(self, key: str, model: type[ModelT]) -> list[ModelT]:
        raw = await self._kv.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Ignoring non-list value under key=%s", key)
            return []
        rows: list[ModelT] = []
        for idx, item in enumerate(raw):
            if not isinstance(item, dict):
                logger.warning("Dropping non-object row %d under key=%s", idx, key)
                continue
            try:
                rows.append(model.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "Dropping malformed row %d under key=%s: %s",
                    idx,
                    key,
                    exc.errors(include_url=False),
                )
        return rows

    # -- schedules ---------------------------------------------------------

    async def get_schedules(self) -> list[Schedule]:
        return await self._load_rows(SCHEDULES_KEY, Schedule)

    async def replace_schedules(self, schedules: Sequence[Schedule]) -> None:
        await self._kv.set(SCHEDULES_KEY, [schedule.to_storage() for schedule in schedules])

    async def save_schedule(self, draft: ScheduleDraft) -> list[Schedule]:
        """Assign an id and creation time, append, and return the full list."""
        schedules = await self.get_schedules()
        schedule = Schedule.model_validate(
            {
                **draft.to_storage(),
                "id": self._id_factory(),
                "createdAt": self._clock().isoformat(),
            }
        )
        schedules.append(schedule)
        await self.replace_schedules(schedules)
        return schedules

    async def update_schedule(self, schedule_id: str, **updates: Any) -> list[Schedule]:
        schedules = await self.get_schedules()
        for idx, schedule in enumerate(schedules):
            if schedule.id == schedule_id:
                schedules[idx] = schedule.model_copy(update=updates)
                await self.replace_schedules(schedules)
                break
        return schedules

    async def delete_schedule(self, schedule_id: str) -> None:
        schedules = await self.get_schedules()
        await self.replace_schedules([s for s in schedules if s.id != schedule_id])

    async def delete_schedules_by_peptide(
        self, peptide_name: str, *, compound_id: str | None = None
    ) -> None:
        """Delete schedules whose label contains ``peptide_name`` (or share ``compound_id``)."""
        needle = peptide_name.strip().lower()
        schedules = await self.get_schedules()
        remaining = [
            schedule
            for schedule in schedules
            if not (
                (compound_id is not None and schedule.compound_id == compound_id)
                or (needle and needle in schedule.peptide_name.lower())
            )
        ]
        await self.replace_schedules(remaining)
        logger.info(
            "Deleted schedules for peptide=%s, remaining=%d",
            peptide_name,
            len(remaining),
            extra={"dose_removed": len(schedules) - len(remaining)},
        )

    async def clear_all_schedules(self) -> None:
        await self._kv.set(SCHEDULES_KEY, [])
        logger.info("Cleared all schedules")

    async def get_scheduled_doses_for_date(self, day: date) -> list[ScheduledDose]:
        """Enabled schedules firing on ``day``, with local fire times, earliest first."""
        weekday = sunday_weekday(day)
        result: list[ScheduledDose] = []
        for schedule in await self.get_schedules():
            if not schedule.enabled or weekday not in effective_days(schedule):
                continue
            parsed = parse_hhmm(schedule.time)
            if parsed is None:
                logger.warning(
                    "Schedule %s has malformed time=%r; skipping", schedule.id, schedule.time
                )
                continue
            hour, minute = parsed
            result.append(
                ScheduledDose(
                    **schedule.model_dump(),
                    scheduled_time=datetime.combine(day, time(hour, minute)),
                )
            )
        result.sort(key=lambda dose: dose.scheduled_time)
        return result

    # -- dose log ----------------------------------------------------------

    async def get_dose_history(self) -> list[DoseEntry]:
        return await self._load_rows(DOSE_HISTORY_KEY, DoseEntry)

    async def save_dose(self, draft: DoseDraft) -> None:
        """Stamp the dose with the current time and prepend it (newest first)."""
        raw = await self._kv.get(DOSE_HISTORY_KEY)
        history = raw if isinstance(raw, list) else []
        entry = DoseEntry.model_validate({**draft.to_storage(), "date": self._clock().isoformat()})
        await self._kv.set(DOSE_HISTORY_KEY, [entry.to_storage(), *history])

    async def clear_dose_history(self) -> None:
        await self._kv.remove(DOSE_HISTORY_KEY)

    # -- tracked compounds -------------------------------------------------

    async def get_active_compounds(self) -> list[Compound]:
        return await self._load_rows(COMPOUNDS_KEY, Compound)

    async def save_active_compounds(self, compounds: Sequence[Compound]) -> None:
        await self._kv.set(COMPOUNDS_KEY, [compound.to_storage() for compound in compounds])
