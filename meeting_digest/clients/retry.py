"""Exponential backoff for calls to external providers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from meeting_digest.errors import PipelineError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number *attempt* (1-based), doubling up to *max_delay*."""
    return min(base_delay * 2 ** (attempt - 1), max_delay)


def call_with_retry(
    fn: Callable[[], T],
    *,
    max_retries: int,
    base_delay: float = 2.0,
    max_delay: float = 10.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    label: str = "call",
) -> T:
    """Call *fn* up to *max_retries* times.

    A ``PipelineError`` whose code is not retryable is raised immediately.
    The last exception is re-raised once attempts run out.
    """
    attempts = max(1, max_retries)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as exc:
            if isinstance(exc, PipelineError) and not exc.retryable:
                raise
            if attempt >= attempts:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                label,
                attempt,
                attempts,
                delay,
                exc,
            )
            sleep(delay)
    raise AssertionError("unreachable")
