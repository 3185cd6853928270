"""In-memory engine metrics.

Callers run on a single event loop, so plain dicts are safe.
"""

import time

_start_time = time.monotonic()

_metrics: dict = {
    "reconcile_runs": 0,
    "schedules_orphaned": 0,
    "adapter_failures": 0,
    "calendar_loads": 0,
    "adapter_calls": {},
}


def record_reconcile(removed: int) -> None:
    _metrics["reconcile_runs"] += 1
    _metrics["schedules_orphaned"] += removed


def record_adapter_call(operation: str, success: bool) -> None:
    """Record a single Notification Sync Adapter invocation."""
    op = _metrics["adapter_calls"].setdefault(operation, {
        "invocations": 0,
        "failures": 0,
    })
    op["invocations"] += 1
    if not success:
        op["failures"] += 1
        _metrics["adapter_failures"] += 1


def record_calendar_load() -> None:
    _metrics["calendar_loads"] += 1


def get_metrics() -> dict:
    """Return a snapshot of current metrics."""
    return {
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
        "reconcile_runs": _metrics["reconcile_runs"],
        "schedules_orphaned": _metrics["schedules_orphaned"],
        "adapter_failures": _metrics["adapter_failures"],
        "calendar_loads": _metrics["calendar_loads"],
        "adapter_calls": {
            name: dict(stats)
            for name, stats in _metrics["adapter_calls"].items()
        },
    }


def reset_metrics() -> None:
    _metrics["reconcile_runs"] = 0
    _metrics["schedules_orphaned"] = 0
    _metrics["adapter_failures"] = 0
    _metrics["calendar_loads"] = 0
    _metrics["adapter_calls"] = {}
