from __future__ import annotations

from typing import Any


class ConflictError(RuntimeError):
    """State conflict the caller may retry once the other party is done."""


class ReplayConsistencyError(RuntimeError):
    """A game log that cannot be replayed as stored."""

    def __init__(self, message: str, *, offending_record: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.offending_record = offending_record or {}
