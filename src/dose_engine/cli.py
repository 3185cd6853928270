"""CLI entry point for inspecting calendar, adherence and reconciliation views."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Sequence

import psycopg

from .config import Config
from .logging import setup_logging
from .metrics import get_metrics
from .notifications import ReminderPlanAdapter
from .service import DoseTracker
from .storage import DoseStore, KeyValueStore, MemoryKeyValueStore, PostgresKeyValueStore
from .utils import resolve_timezone_context

logger = logging.getLogger(__name__)


def _parse_day(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {raw!r}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dose-engine",
        description="Resolve dose schedules into calendar, adherence and streak views.",
    )
    parser.add_argument(
        "--snapshot",
        type=Path,
        help="JSON file with store keys (user_dose_schedules, user_dose_history, "
        "user_peptides) used instead of DATABASE_URL.",
    )
    parser.add_argument(
        "--today",
        type=_parse_day,
        help="Reference day (defaults to the local current day).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    calendar = sub.add_parser("calendar", help="Classified days for the calendar window.")
    calendar.add_argument("--days", type=int, default=None, help="Window length in days.")

    day = sub.add_parser("day", help="Classified view of a single day.")
    day.add_argument("--date", type=_parse_day, required=True, dest="day")

    sub.add_parser("stats", help="Dashboard: weekly strip, adherence, streak, progress.")
    sub.add_parser("reconcile", help="Remove orphaned schedules and print what is kept.")
    return parser


async def _execute(tracker: DoseTracker, args: argparse.Namespace) -> Any:
    if args.command == "calendar":
        days = await tracker.calendar(today=args.today, window_days=args.days)
        return [d.model_dump(mode="json") for d in days]
    if args.command == "day":
        detail = await tracker.day_detail(args.day, today=args.today)
        return detail.model_dump(mode="json")
    if args.command == "stats":
        dashboard = await tracker.dashboard(today=args.today)
        return dashboard.model_dump(mode="json")
    kept = await tracker.load_schedules()
    return {
        "kept": [s.to_storage() for s in kept],
        "metrics": get_metrics(),
    }


async def _run_with_store(config: Config, kv: KeyValueStore, args: argparse.Namespace) -> Any:
    store = DoseStore(kv)
    adapter = ReminderPlanAdapter(
        store,
        advance_minutes=config.advance_reminder_minutes,
        streak_reminder_hour=config.streak_reminder_hour,
    )
    tracker = DoseTracker.from_config(config, store, adapter)
    return await _execute(tracker, args)


async def _run(args: argparse.Namespace) -> int:
    config = Config.from_env()
    setup_logging(
        config.log_format,
        user_id=config.user_id,
        timezone_context=resolve_timezone_context(config.timezone),
    )

    if args.snapshot is not None:
        snapshot = json.loads(args.snapshot.read_text(encoding="utf-8"))
        result = await _run_with_store(config, MemoryKeyValueStore(snapshot), args)
    elif config.database_url:
        async with await psycopg.AsyncConnection.connect(
            config.database_url, autocommit=True
        ) as conn:
            kv = PostgresKeyValueStore(conn, config.user_id)
            await kv.ensure_schema()
            result = await _run_with_store(config, kv, args)
    else:
        logger.warning("No DATABASE_URL or --snapshot given; using an empty in-memory store")
        result = await _run_with_store(config, MemoryKeyValueStore(), args)

    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
