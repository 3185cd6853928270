"""Error types raised at the caller boundary of the dose engine.

Engine functions themselves never raise for well-typed input; these
errors cover invalid user input on schedule creation and storage
backend failures.
"""

from __future__ import annotations


class DoseEngineError(Exception):
    """Base class for dose engine errors."""


class ScheduleValidationError(DoseEngineError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class ScheduleNotFoundError(DoseEngineError):
    def __init__(self, schedule_id: str) -> None:
        super().__init__(f"Unknown schedule id={schedule_id!r}")
        self.schedule_id = schedule_id


class StorageError(DoseEngineError):
    """Raised when the key-value backend cannot complete a read or write."""
