#!/usr/bin/env python3
"""Console reporter: stage banners, per-record lines and the final summary."""

from __future__ import annotations

from typing import Optional

from . import console
from .stages import Outcome, PipelineSummary, Reporter, Stage, StageRecord

_OUTCOME_LABELS = {
    Outcome.OK: 'ok',
    Outcome.SKIPPED: 'skipped',
    Outcome.WARNED: 'WARNED',
    Outcome.FAILED: 'FAILED',
}


def format_record(record: StageRecord) -> str:
    line = f"{record.stage:<40} {_OUTCOME_LABELS[record.outcome]}"
    if record.note:
        line += f"  ({record.note})"
    return line


def render_summary_lines(summary: PipelineSummary) -> list[str]:
    counts = summary.counts()
    lines = [format_record(r) for r in summary.records]
    lines.append('-' * 60)
    lines.append(
        f"ok={counts['ok']} skipped={counts['skipped']} "
        f"warned={counts['warned']} failed={counts['failed']} "
        f"duration={summary.duration_seconds}s"
    )
    return lines


class ConsoleReporter(Reporter):
    """Prints sequencer progress; hints are appended after the summary table."""

    def __init__(self, hints: Optional[list[str]] = None) -> None:
        self.hints = list(hints or [])

    def stage_started(self, stage: Stage, index: int, total: int) -> None:
        label = stage.description or stage.name
        print(flush=True)
        console.info(f">>> Stage {index}/{total}: {label}")

    def record(self, record: StageRecord) -> None:
        # Item fragments (name:item) are narrated by the stage itself.
        if ':' in record.stage:
            return
        if record.outcome is Outcome.SKIPPED:
            console.info(f"Skipped '{record.stage}': {record.note}")
        elif record.outcome is Outcome.WARNED:
            console.warn(f"'{record.stage}' finished with warnings: {record.note}")
        elif record.outcome is Outcome.FAILED:
            console.error(f"'{record.stage}' failed: {record.note}")

    def summary(self, summary: PipelineSummary) -> None:
        console.rule()
        if summary.aborted:
            console.error(f"{summary.title.upper()} ABORTED")
        elif summary.with_outcome(Outcome.WARNED):
            console.warn(f"{summary.title.upper()} COMPLETED WITH WARNINGS")
        else:
            console.success(f"{summary.title.upper()} COMPLETED")
        console.rule('-')
        for line in render_summary_lines(summary):
            print(line, flush=True)
        if self.hints and not summary.aborted:
            console.rule('-')
            for hint in self.hints:
                print(hint, flush=True)
        console.rule()
