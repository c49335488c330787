"""Exception hierarchy for cache and analytics failures."""

from __future__ import annotations

from typing import Any, Mapping


class LaborInsightsError(Exception):
    """Base class for all domain-level errors in labor insights."""

    default_message = "Labor insights error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class InvalidDateError(LaborInsightsError, ValueError):
    """Raised when a date cannot be normalized to YYYY-MM-DD."""

    default_message = "Invalid date"


class InvalidBackupFormatError(LaborInsightsError):
    """Raised when a backup snapshot is malformed; nothing is imported."""

    default_message = "Invalid backup format"


class StoreUnavailableError(LaborInsightsError):
    """Underlying persistence is unreachable, locked, or closed."""

    default_message = "Partition store is unavailable"


class FetchError(LaborInsightsError):
    """A fetch capability failed to produce records for a partition."""

    default_message = "Partition fetch failed"
