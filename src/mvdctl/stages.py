#!/usr/bin/env python3
"""
Stage sequencer.

A pipeline is an ordered list of Stage values. Each stage carries its own
idempotency check (skip_predicate) and failure policy, so the skip/abort
logic is data the sequencer interprets rather than inline branching.

Outcome rules:
- skip_predicate() true      -> SKIPPED, action never called
- action returns              -> OK (WARNED if a returned fragment warned/failed)
- action raises, FATAL        -> FAILED, pipeline stops, FatalStageError
- action raises, WARN_CONTINUE -> WARNED, next stage runs
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from .errors import FatalStageError

logger = logging.getLogger(__name__)


class FailurePolicy(Enum):
    FATAL = "fatal"
    WARN_CONTINUE = "warn-continue"


class Outcome(Enum):
    OK = "ok"
    SKIPPED = "skipped"
    WARNED = "warned"
    FAILED = "failed"


@dataclass(frozen=True)
class StageRecord:
    stage: str
    outcome: Outcome
    note: str = ''


StageAction = Callable[[], Optional[Sequence[StageRecord]]]


def _never_skip() -> bool:
    return False


@dataclass(frozen=True)
class Stage:
    name: str
    action: StageAction
    failure_policy: FailurePolicy = FailurePolicy.FATAL
    skip_predicate: Callable[[], bool] = _never_skip
    skip_note: str = 'already satisfied'
    description: str = ''


@dataclass
class PipelineSummary:
    """Ordered stage records; observational only, never drives control flow."""

    title: str = 'pipeline'
    records: list[StageRecord] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    aborted: bool = False

    def add(self, record: StageRecord) -> None:
        self.records.append(record)

    def outcome_of(self, stage: str) -> Optional[Outcome]:
        for record in self.records:
            if record.stage == stage:
                return record.outcome
        return None

    def with_outcome(self, outcome: Outcome) -> list[StageRecord]:
        return [r for r in self.records if r.outcome is outcome]

    @property
    def failed(self) -> bool:
        return any(r.outcome is Outcome.FAILED for r in self.records)

    @property
    def duration_seconds(self) -> int:
        return int(time.time() - self.started_at)

    def counts(self) -> dict[str, int]:
        counts = {o.value: 0 for o in Outcome}
        for record in self.records:
            counts[record.outcome.value] += 1
        return counts


class Reporter:
    """Receives sequencer events. The base class ignores them."""

    def stage_started(self, stage: Stage, index: int, total: int) -> None:
        pass

    def record(self, record: StageRecord) -> None:
        pass

    def summary(self, summary: PipelineSummary) -> None:
        pass


def _failure_message(stage: Stage, exc: Exception) -> str:
    if isinstance(exc, FatalStageError):
        if exc.stage == stage.name:
            return exc.message
        return f"{exc.stage}: {exc.message}"
    return str(exc) or type(exc).__name__


class StageSequencer:
    def __init__(self, reporter: Optional[Reporter] = None, title: str = 'pipeline') -> None:
        self.reporter = reporter or Reporter()
        self.title = title

    def _record(self, summary: PipelineSummary, record: StageRecord) -> None:
        summary.add(record)
        self.reporter.record(record)

    def run(self, stages: Sequence[Stage], summary: Optional[PipelineSummary] = None) -> PipelineSummary:
        """
        Run stages in order and return the accumulated summary.

        Records are appended to `summary` when one is given (e.g. a
        confirmation step recorded before the stages start).

        Raises:
            FatalStageError: A FATAL stage failed; the summary (including the
                FAILED record) is attached and has already been reported.
        """
        if summary is None:
            summary = PipelineSummary(title=self.title)
        total = len(stages)

        for index, stage in enumerate(stages, 1):
            self.reporter.stage_started(stage, index, total)
            try:
                if stage.skip_predicate():
                    logger.debug(f"Stage '{stage.name}' skipped: {stage.skip_note}")
                    self._record(summary, StageRecord(stage.name, Outcome.SKIPPED, stage.skip_note))
                    continue

                fragments = list(stage.action() or [])
            except Exception as e:
                message = _failure_message(stage, e)
                if stage.failure_policy is FailurePolicy.FATAL:
                    logger.debug(f"Stage '{stage.name}' failed (fatal): {message}", exc_info=True)
                    self._record(summary, StageRecord(stage.name, Outcome.FAILED, message))
                    summary.aborted = True
                    self.reporter.summary(summary)
                    raise FatalStageError(stage.name, message, summary) from e

                logger.debug(f"Stage '{stage.name}' failed (continuing): {message}", exc_info=True)
                self._record(summary, StageRecord(stage.name, Outcome.WARNED, message))
                continue

            for fragment in fragments:
                self._record(summary, fragment)

            degraded = [f for f in fragments if f.outcome in (Outcome.WARNED, Outcome.FAILED)]
            if degraded:
                note = f"{len(degraded)} of {len(fragments)} item(s) need attention"
                self._record(summary, StageRecord(stage.name, Outcome.WARNED, note))
            else:
                self._record(summary, StageRecord(stage.name, Outcome.OK))

        self.reporter.summary(summary)
        return summary
