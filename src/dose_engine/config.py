import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Config:
    database_url: str | None = None
    user_id: str = "local"
    timezone: str | None = None
    calendar_window_days: int = 60
    adherence_window_days: int = 7
    advance_reminder_minutes: int = 15
    streak_reminder_hour: int | None = 20
    reload_interval_seconds: float = 2.0
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> "Config":
        database_url = os.environ.get("DATABASE_URL", "").strip() or None
        timezone = os.environ.get("DOSE_TIMEZONE", "").strip() or None
        streak_raw = os.environ.get("DOSE_STREAK_REMINDER_HOUR", "").strip().lower() or "20"
        streak_reminder_hour = None if streak_raw in ("off", "none") else int(streak_raw)

        return cls(
            database_url=database_url,
            user_id=os.environ.get("DOSE_USER_ID", "local"),
            timezone=timezone,
            calendar_window_days=int(os.environ.get("DOSE_CALENDAR_WINDOW_DAYS", "60")),
            adherence_window_days=int(os.environ.get("DOSE_ADHERENCE_WINDOW_DAYS", "7")),
            advance_reminder_minutes=int(os.environ.get("DOSE_ADVANCE_REMINDER_MINUTES", "15")),
            streak_reminder_hour=streak_reminder_hour,
            reload_interval_seconds=float(os.environ.get("DOSE_RELOAD_INTERVAL_SECONDS", "2.0")),
            log_format=os.environ.get("DOSE_LOG_FORMAT", "json"),
        )
