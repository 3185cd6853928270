"""Recurring dose schedule resolution and adherence engine."""

from .adherence import compute_adherence, compute_progress, compute_streak
from .classifier import classify, weekly_status
from .dedup import is_logged
from .expansion import expand
from .reconcile import reconcile
from .utils import local_day_key

__all__ = [
    "classify",
    "compute_adherence",
    "compute_progress",
    "compute_streak",
    "expand",
    "is_logged",
    "local_day_key",
    "reconcile",
    "weekly_status",
]
