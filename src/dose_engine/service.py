"""Caller-side orchestration around the pure engine functions.

``DoseTracker`` owns the data-loading sequence the engine itself stays out
of: read schedules and compounds fresh from storage, reconcile orphans,
then expand and classify. Mutations write storage first and only then
instruct the notification adapter; adapter failures are logged and
swallowed because the next ``sync_all`` recovers them, while a lost
schedule write would not be recoverable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel

from .adherence import compute_adherence, compute_progress, compute_streak
from .classifier import classify, weekly_status
from .config import Config
from .errors import ScheduleNotFoundError
from .expansion import expand
from .metrics import record_adapter_call, record_calendar_load, record_reconcile
from .models import (
    ClassifiedDay,
    Compound,
    DayStatus,
    DoseDraft,
    ProgressSummary,
    Schedule,
    ScheduleDraft,
    StreakSummary,
    validate_schedule_draft,
)
from .notifications import NotificationSyncAdapter
from .reconcile import reconcile
from .storage import DoseStore
from .utils import canonical_name, local_today, resolve_timezone_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StalenessPolicy:
    """Reload throttle for repeated view-focus triggers.

    Purely a performance guard: the engine is idempotent, so reloading more
    often is always correct.
    """

    min_interval_seconds: float = 2.0

    def is_stale(self, last_loaded_at: float | None, now: float) -> bool:
        if last_loaded_at is None:
            return True
        return now - last_loaded_at > self.min_interval_seconds


class Dashboard(BaseModel):
    timezone_context: dict[str, Any]
    today: ClassifiedDay
    weekly_status: list[DayStatus]
    adherence_percent: int
    streak: StreakSummary
    progress: ProgressSummary


class DoseTracker:
    def __init__(
        self,
        store: DoseStore,
        adapter: NotificationSyncAdapter,
        *,
        timezone_name: str | None = None,
        calendar_window_days: int = 60,
        adherence_window_days: int = 7,
        staleness: StalenessPolicy | None = None,
    ) -> None:
        self._store = store
        self._adapter = adapter
        self._timezone_context = resolve_timezone_context(timezone_name)
        self._timezone_name: str | None = self._timezone_context["timezone"]
        self._calendar_window_days = calendar_window_days
        self._adherence_window_days = adherence_window_days
        self._staleness = staleness or StalenessPolicy()

    @classmethod
    def from_config(
        cls, config: Config, store: DoseStore, adapter: NotificationSyncAdapter
    ) -> "DoseTracker":
        return cls(
            store,
            adapter,
            timezone_name=config.timezone,
            calendar_window_days=config.calendar_window_days,
            adherence_window_days=config.adherence_window_days,
            staleness=StalenessPolicy(config.reload_interval_seconds),
        )

    @property
    def timezone_name(self) -> str | None:
        return self._timezone_name

    def _today(self, today: date | None) -> date:
        return today or local_today(self._timezone_name)

    async def _notify(self, operation: str, *args: Any) -> None:
        try:
            await getattr(self._adapter, operation)(*args)
        except Exception as exc:
            record_adapter_call(operation, success=False)
            logger.warning(
                "Notification adapter %s failed: %s",
                operation,
                exc,
                extra={"dose_adapter_operation": operation},
            )
            return
        record_adapter_call(operation, success=True)

    # -- reads -------------------------------------------------------------

    async def load_schedules(self) -> list[Schedule]:
        """Fresh schedules with orphans removed from storage."""
        schedules = await self._store.get_schedules()
        compounds = await self._store.get_active_compounds()
        result = reconcile(schedules, compounds)
        record_reconcile(len(result.removed))
        if not result.removed:
            return result.kept

        if result.kept:
            await self._store.replace_schedules(result.kept)
        else:
            await self._store.clear_all_schedules()
        logger.info(
            "Removed %d orphaned schedule(s), kept %d",
            len(result.removed),
            len(result.kept),
            extra={"dose_removed": [s.id for s in result.removed]},
        )
        for schedule in result.removed:
            if schedule.notification_ids:
                await self._notify("cancel_for_schedule", schedule.notification_ids)
        return result.kept

    async def calendar(
        self,
        *,
        today: date | None = None,
        window_days: int | None = None,
    ) -> list[ClassifiedDay]:
        """Logged doses on any day plus scheduled occurrences from today forward."""
        today = self._today(today)
        schedules = await self.load_schedules()
        dose_log = await self._store.get_dose_history()
        days = self._calendar_window_days if window_days is None else window_days
        occurrences = expand(schedules, today, days)
        record_calendar_load()
        return classify(occurrences, dose_log, today, timezone_name=self._timezone_name)

    async def refresh(
        self,
        *,
        last_loaded_at: float | None,
        now: float,
        today: date | None = None,
    ) -> list[ClassifiedDay] | None:
        """Calendar if the last load is stale under the policy, else None."""
        if not self._staleness.is_stale(last_loaded_at, now):
            return None
        return await self.calendar(today=today)

    async def day_detail(self, day: date, *, today: date | None = None) -> ClassifiedDay:
        today = self._today(today)
        schedules = await self.load_schedules()
        dose_log = await self._store.get_dose_history()
        classified = classify(
            expand(schedules, day, 1),
            dose_log,
            today,
            timezone_name=self._timezone_name,
            window_start=day,
            window_end=day,
        )
        return classified[0] if classified else ClassifiedDay(date=day)

    async def dashboard(self, *, today: date | None = None) -> Dashboard:
        today = self._today(today)
        schedules = await self.load_schedules()
        dose_log = await self._store.get_dose_history()
        tz = self._timezone_name

        classified_today = classify(
            expand(schedules, today, 1),
            dose_log,
            today,
            timezone_name=tz,
            window_start=today,
            window_end=today,
        )
        return Dashboard(
            timezone_context=self._timezone_context,
            today=classified_today[0] if classified_today else ClassifiedDay(date=today),
            weekly_status=weekly_status(schedules, dose_log, today, timezone_name=tz),
            adherence_percent=compute_adherence(
                schedules,
                dose_log,
                self._adherence_window_days,
                today=today,
                timezone_name=tz,
            ),
            streak=compute_streak(dose_log, today=today, timezone_name=tz),
            progress=compute_progress(dose_log, today=today, timezone_name=tz),
        )

    # -- schedule mutations ------------------------------------------------

    async def create_schedule(self, draft: ScheduleDraft) -> Schedule:
        validated = validate_schedule_draft(draft)
        schedules = await self._store.save_schedule(validated)
        created = schedules[-1]
        logger.info(
            "Created schedule %s for %s",
            created.id,
            created.peptide_name,
            extra={"dose_schedule_id": created.id},
        )
        await self._notify("sync_all")
        return created

    async def _require_schedule(self, schedule_id: str) -> Schedule:
        for schedule in await self._store.get_schedules():
            if schedule.id == schedule_id:
                return schedule
        raise ScheduleNotFoundError(schedule_id)

    async def delete_schedule(self, schedule_id: str) -> None:
        schedule = await self._require_schedule(schedule_id)
        await self._store.delete_schedule(schedule_id)
        if schedule.notification_ids:
            await self._notify("cancel_for_schedule", schedule.notification_ids)

    async def set_schedule_enabled(self, schedule_id: str, enabled: bool) -> Schedule:
        schedule = await self._require_schedule(schedule_id)
        await self._store.update_schedule(schedule_id, enabled=enabled)
        await self._notify("sync_all")
        return schedule.model_copy(update={"enabled": enabled})

    async def log_dose(self, draft: DoseDraft) -> None:
        await self._store.save_dose(draft)

    # -- tracked compounds -------------------------------------------------

    async def track_compound(self, compound: Compound) -> list[Compound]:
        compounds = await self._store.get_active_compounds()
        compounds = [c for c in compounds if c.id != compound.id]
        compounds.append(compound)
        await self._store.save_active_compounds(compounds)
        return compounds

    async def remove_compound(self, compound_id: str) -> None:
        """Untrack a compound, delete its schedules, then cancel their reminders."""
        compounds = await self._store.get_active_compounds()
        target = next((c for c in compounds if c.id == compound_id), None)
        if target is None:
            logger.warning("remove_compound: unknown compound id=%s", compound_id)
            return

        needle = target.name.strip().lower()
        doomed = [
            s
            for s in await self._store.get_schedules()
            if s.compound_id == compound_id or (needle and needle in s.peptide_name.lower())
        ]
        await self._store.save_active_compounds([c for c in compounds if c.id != compound_id])
        await self._store.delete_schedules_by_peptide(target.name, compound_id=compound_id)
        for schedule in doomed:
            if schedule.notification_ids:
                await self._notify("cancel_for_schedule", schedule.notification_ids)

    async def clear_compounds(self) -> None:
        schedules = await self._store.get_schedules()
        await self._store.save_active_compounds([])
        await self._store.clear_all_schedules()
        for schedule in schedules:
            if schedule.notification_ids:
                await self._notify("cancel_for_schedule", schedule.notification_ids)

    async def _set_compound_status(self, name: str, status: str) -> bool:
        target = canonical_name(name)
        compounds = await self._store.get_active_compounds()
        changed = False
        for idx, compound in enumerate(compounds):
            if canonical_name(compound.name) == target and compound.status != status:
                compounds[idx] = compound.model_copy(update={"status": status})
                changed = True
        if changed:
            await self._store.save_active_compounds(compounds)
        return changed

    async def pause_compound(self, name: str) -> None:
        await self._set_compound_status(name, "paused")
        await self._notify("pause_for_compound", name)

    async def resume_compound(self, name: str) -> None:
        await self._set_compound_status(name, "active")
        await self._notify("resume_for_compound", name)
