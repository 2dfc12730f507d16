"""Primary-then-fallback computation strategy.

A rollup first asks its precomputed source. If that source raises
``SourceUnavailable`` the rollup is recomputed once from finer-grained data.
There is no retry loop: a failing fallback becomes a ``ComputationError``.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from cafe_analytics.core.errors import ComputationError, SourceUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SourceMode(str, enum.Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class FallbackResult(Generic[T]):
    value: T
    mode: SourceMode


def compute_with_fallback(
    primary: Callable[[], T],
    fallback: Callable[[], T],
    *,
    source: str,
) -> FallbackResult[T]:
    try:
        return FallbackResult(value=primary(), mode=SourceMode.PRIMARY)
    except SourceUnavailable as exc:
        logger.warning("Primary source %s unavailable, recomputing from ledger: %s", source, exc.message)
        primary_error = exc

    try:
        value = fallback()
    except (SourceUnavailable, ComputationError) as exc:
        logger.error("Fallback for %s failed: %s", source, exc)
        raise ComputationError(
            f"Could not compute {source} from primary or fallback source.",
            context={
                "source": source,
                "primary_error": primary_error.message,
                "fallback_error": str(exc),
            },
        ) from exc
    return FallbackResult(value=value, mode=SourceMode.FALLBACK)
