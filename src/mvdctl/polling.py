#!/usr/bin/env python3
"""
Generic readiness polling.

await_ready() is the single retry loop used by every wait in the pipelines
(ingress controller, key workloads). A timeout is returned as a result, not
raised, because callers disagree on what it means: the ingress wait treats it
as fatal, the workload wait only warns.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def _attempts_for(timeout: float, interval: float) -> int:
    # round() absorbs float noise such as 3 * 0.1 / 0.1 == 3.0000000000000004
    return math.ceil(round(timeout / interval, 9))


@dataclass(frozen=True)
class PollSpec:
    """Bounded retry policy: max_attempts == ceil(timeout / interval)."""

    timeout: float
    interval: float
    max_attempts: int

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        expected = _attempts_for(self.timeout, self.interval)
        if self.max_attempts != expected:
            raise ValueError(
                f"max_attempts ({self.max_attempts}) must equal "
                f"ceil(timeout / interval) = {expected}"
            )

    @classmethod
    def from_timeout(cls, timeout: float, interval: float) -> "PollSpec":
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        return cls(timeout=timeout, interval=interval, max_attempts=_attempts_for(timeout, interval))

    @classmethod
    def from_attempts(cls, max_attempts: int, interval: float) -> "PollSpec":
        return cls(timeout=max_attempts * interval, interval=interval, max_attempts=max_attempts)


class PollOutcome(Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    attempts: int

    @property
    def ready(self) -> bool:
        return self.outcome is PollOutcome.READY


def await_ready(
    predicate: Callable[[], bool],
    spec: PollSpec,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, int], None]] = None,
) -> PollResult:
    """
    Evaluate predicate until it returns True or max_attempts is exhausted.

    Args:
        predicate: Zero-argument check; an exception counts as "not ready".
        spec: Retry bounds.
        sleep: Injected for tests.
        on_retry: Called as on_retry(attempt, max_attempts) after each failed
            attempt that will be retried (progress output).

    Returns:
        PollResult with READY on the first successful evaluation, or
        TIMED_OUT after exactly spec.max_attempts evaluations.
    """
    for attempt in range(1, spec.max_attempts + 1):
        try:
            if predicate():
                return PollResult(PollOutcome.READY, attempt)
        except Exception as e:
            logger.debug(f"Readiness check raised on attempt {attempt}: {e}")

        if attempt < spec.max_attempts:
            if on_retry is not None:
                on_retry(attempt, spec.max_attempts)
            sleep(spec.interval)

    return PollResult(PollOutcome.TIMED_OUT, spec.max_attempts)
