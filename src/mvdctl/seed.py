#!/usr/bin/env python3
"""Run the post-deploy seed script. Best effort: never fails the pipeline."""

from __future__ import annotations

from pathlib import Path

from .console import info, success, warn
from .errors import ExecutionError
from .runner import CommandRunner
from .stages import Outcome, StageRecord


def manual_hint(script_path: Path, work_dir: Path) -> str:
    try:
        shown = f"./{script_path.relative_to(work_dir)}"
    except ValueError:
        shown = str(script_path)
    return f"run it manually later: {shown}"


def invoke_seed(runner: CommandRunner, script_path: Path, work_dir: Path, stage: str = 'seed') -> list[StageRecord]:
    if not script_path.is_file():
        hint = manual_hint(script_path, work_dir)
        warn(f"Seed script not found: {script_path}. The dataspace stays uninitialized.")
        warn(f"  {hint}")
        return [StageRecord(f"{stage}:script", Outcome.WARNED, f"not found; {hint}")]

    info(f"Running seed script {script_path}...")
    try:
        result = runner.run('bash', [str(script_path)], cwd=work_dir, capture=False)
    except ExecutionError as e:
        warn(f"Seed script could not start: {e}")
        return [StageRecord(f"{stage}:script", Outcome.WARNED, str(e))]

    if not result.ok:
        warn(f"Seed finished with warnings (exit {result.exit_code}). Verify the results.")
        return [StageRecord(f"{stage}:script", Outcome.WARNED, f"exit {result.exit_code}")]

    success("Seeding complete")
    return [StageRecord(f"{stage}:script", Outcome.OK)]
