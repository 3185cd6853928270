"""Notification Sync Adapter boundary and reminder planning.

The engine never delivers notifications. After a storage write it tells an
adapter what changed; the adapter owns the reminder handles it stores on
schedules (``notification_ids``). ``plan_reminders`` is the pure part: the
weekly reminder triggers a schedule implies.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from .expansion import effective_days
from .models import ReminderIntent, Schedule
from .storage import DoseStore
from .utils import names_correspond, parse_hhmm

logger = logging.getLogger(__name__)

DEFAULT_ADVANCE_MINUTES = 15
DEFAULT_STREAK_REMINDER_HOUR = 20
STREAK_REMINDER_ID = "streak_reminder"
_MINUTES_PER_DAY = 24 * 60


class NotificationSyncAdapter(Protocol):
    async def cancel_for_schedule(self, notification_ids: Sequence[str]) -> None: ...

    async def sync_all(self) -> None: ...

    async def pause_for_compound(self, name: str) -> None: ...

    async def resume_for_compound(self, name: str) -> None: ...


def plan_reminders(
    schedule: Schedule,
    *,
    advance_minutes: int = DEFAULT_ADVANCE_MINUTES,
) -> list[ReminderIntent]:
    """Weekly reminder triggers for an enabled schedule.

    One ``dose_reminder`` per firing weekday at the schedule time, plus a
    ``dose_advance_reminder`` ``advance_minutes`` earlier. An advance
    reminder that crosses midnight fires on the previous weekday.
    """
    if not schedule.enabled:
        return []
    parsed = parse_hhmm(schedule.time)
    if parsed is None:
        logger.warning("Cannot plan reminders for schedule %s: bad time=%r", schedule.id, schedule.time)
        return []
    hour, minute = parsed

    intents: list[ReminderIntent] = []
    for weekday in sorted(effective_days(schedule)):
        intents.append(
            ReminderIntent(
                schedule_id=schedule.id,
                kind="dose_reminder",
                weekday=weekday,
                hour=hour,
                minute=minute,
                title=f"Time for {schedule.peptide_name}",
                body=f"Your scheduled dose: {schedule.amount} units",
            )
        )
        if advance_minutes <= 0:
            continue
        advance_at = hour * 60 + minute - advance_minutes
        advance_weekday = weekday
        if advance_at < 0:
            advance_at += _MINUTES_PER_DAY
            advance_weekday = (weekday - 1) % 7
        intents.append(
            ReminderIntent(
                schedule_id=schedule.id,
                kind="dose_advance_reminder",
                weekday=advance_weekday,
                hour=advance_at // 60,
                minute=advance_at % 60,
                title=f"Upcoming: {schedule.peptide_name}",
                body=f"Dose reminder in {advance_minutes} minutes ({schedule.amount} units)",
            )
        )
    return intents


def plan_streak_reminder(hour: int = DEFAULT_STREAK_REMINDER_HOUR, minute: int = 0) -> ReminderIntent:
    """Daily end-of-day nudge to keep the logging streak going."""
    return ReminderIntent(
        schedule_id=None,
        kind="streak_reminder",
        weekday=None,
        hour=hour,
        minute=minute,
        title="Don't break your streak!",
        body="You haven't logged a dose today. Keep your progress going!",
    )


def reminder_id(intent: ReminderIntent) -> str:
    if intent.kind == "streak_reminder":
        return STREAK_REMINDER_ID
    return f"{intent.schedule_id}:{intent.kind}:{intent.weekday}:{intent.hour:02d}{intent.minute:02d}"


class ReminderPlanAdapter:
    """Adapter that keeps planned reminders in memory and records their ids on schedules.

    Stands in for a platform scheduler where none is available; a platform
    adapter would hand each ``ReminderIntent`` to the OS instead.
    """

    def __init__(
        self,
        store: DoseStore,
        *,
        advance_minutes: int = DEFAULT_ADVANCE_MINUTES,
        streak_reminder_hour: int | None = DEFAULT_STREAK_REMINDER_HOUR,
    ) -> None:
        self._store = store
        self._advance_minutes = advance_minutes
        self._streak_reminder_hour = streak_reminder_hour
        self.planned: dict[str, ReminderIntent] = {}

    def _plan(self, schedule: Schedule) -> list[str]:
        ids: list[str] = []
        for intent in plan_reminders(schedule, advance_minutes=self._advance_minutes):
            handle = reminder_id(intent)
            self.planned[handle] = intent
            ids.append(handle)
        return ids

    def schedule_streak_reminder(self) -> str | None:
        """Replace any planned streak reminder with one at the configured hour."""
        for handle in [h for h, i in self.planned.items() if i.kind == "streak_reminder"]:
            del self.planned[handle]
        if self._streak_reminder_hour is None:
            return None
        intent = plan_streak_reminder(self._streak_reminder_hour)
        handle = reminder_id(intent)
        self.planned[handle] = intent
        return handle

    async def cancel_for_schedule(self, notification_ids: Sequence[str]) -> None:
        for handle in notification_ids:
            if self.planned.pop(handle, None) is None:
                logger.debug("Reminder %s was not planned; nothing to cancel", handle)

    async def sync_all(self) -> None:
        """Drop every planned reminder and re-plan from enabled, unpaused schedules.

        The daily streak reminder is re-planned once, not per schedule.
        """
        self.planned.clear()
        paused = [c.name for c in await self._store.get_active_compounds() if c.status == "paused"]
        schedules = await self._store.get_schedules()
        synced = 0
        for schedule in schedules:
            if any(names_correspond(schedule.peptide_name, name) for name in paused):
                ids: list[str] = []
            else:
                ids = self._plan(schedule)
            if ids:
                synced += 1
            if ids != schedule.notification_ids:
                await self._store.update_schedule(schedule.id, notification_ids=ids)
        self.schedule_streak_reminder()
        logger.info("Synced reminders for %d schedule(s)", synced)

    async def pause_for_compound(self, name: str) -> None:
        schedules = await self._store.get_schedules()
        matched = [s for s in schedules if names_correspond(s.peptide_name, name)]
        for schedule in matched:
            if schedule.notification_ids:
                await self.cancel_for_schedule(schedule.notification_ids)
                await self._store.update_schedule(schedule.id, notification_ids=[])
        logger.info("Paused %d schedule(s) for %s", len(matched), name)

    async def resume_for_compound(self, name: str) -> None:
        schedules = await self._store.get_schedules()
        matched = [s for s in schedules if s.enabled and names_correspond(s.peptide_name, name)]
        for schedule in matched:
            ids = self._plan(schedule)
            await self._store.update_schedule(schedule.id, notification_ids=ids)
        logger.info("Resumed %d schedule(s) for %s", len(matched), name)
