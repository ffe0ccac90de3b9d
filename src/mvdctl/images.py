#!/usr/bin/env python3
"""Load locally built docker images into the kind cluster."""

from __future__ import annotations

from typing import Iterable

from .console import info, success, warn
from .errors import ExecutionError
from .runner import CommandRunner
from .stages import Outcome, StageRecord


def image_present(runner: CommandRunner, image: str) -> bool:
    return runner.run('docker', ['image', 'inspect', image]).ok


def load_all(runner: CommandRunner, images: Iterable[str], cluster_name: str, stage: str = 'load-images') -> list[StageRecord]:
    """
    Import each image into the cluster, one record per image.

    Never aborts: an image missing locally is SKIPPED, a failed import is
    FAILED, and the remaining images are attempted either way. A partial
    local build is common and should not block the deployment.
    """
    records = []
    for image in images:
        name = f"{stage}:{image}"
        try:
            if not image_present(runner, image):
                info(f"  Image not found locally: {image} (skipping)")
                records.append(StageRecord(name, Outcome.SKIPPED, 'not found locally'))
                continue

            info(f"  kind load docker-image {image} -n {cluster_name}")
            result = runner.run('kind', ['load', 'docker-image', image, '-n', cluster_name])
        except ExecutionError as e:
            warn(f"  Could not load {image}: {e}")
            records.append(StageRecord(name, Outcome.FAILED, str(e)))
            continue

        if result.ok:
            records.append(StageRecord(name, Outcome.OK, 'loaded'))
        else:
            warn(f"  Loading {image} failed: {result.output or result.exit_code}")
            records.append(StageRecord(name, Outcome.FAILED, result.output or f"exit {result.exit_code}"))

    loaded = sum(1 for r in records if r.outcome is Outcome.OK)
    success(f"Image loading finished: {loaded}/{len(records)} loaded")
    return records
