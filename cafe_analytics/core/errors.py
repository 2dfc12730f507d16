"""Domain error taxonomy for the analytics engine.

Services raise these instead of ``HTTPException`` so that the aggregation
code stays usable outside a request. ``cafe_analytics.main`` registers the
handlers that turn them into JSON responses.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


class AnalyticsError(Exception):
    """Base class for every error raised by the engine."""

    code = "analytics_error"

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_payload(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.code, "context": self.context}


class ValidationError(AnalyticsError):
    """Caller supplied an invalid report request or budget payload."""

    code = "validation_error"


class NotFoundError(AnalyticsError):
    code = "not_found"


class SourceUnavailable(AnalyticsError):
    """A precomputed or derived source could not be read.

    Recovered locally by the fallback strategy; only reaches the caller when
    no fallback exists for the source.
    """

    code = "source_unavailable"


class ComputationError(AnalyticsError):
    """Both primary and fallback paths failed, or the ledger is unreachable."""

    code = "computation_error"


@dataclass(slots=True)
class ItemFailure:
    index: int
    reason: str
    item: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {"index": self.index, "reason": self.reason, "item": self.item}


class PartialWriteError(AnalyticsError):
    """A bulk write applied some items and rejected others."""

    code = "partial_write"

    def __init__(self, message: str, *, applied: list[Any], failures: list[ItemFailure]) -> None:
        super().__init__(
            message,
            context={"applied_count": len(applied), "failed_count": len(failures)},
        )
        self.applied = applied
        self.failures = failures


def describe_field_errors(errors: Iterable[Mapping[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic error entries into ``{"field", "message"}`` pairs."""

    return [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": str(error.get("msg", ""))}
        for error in errors
    ]
