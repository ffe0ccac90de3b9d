#!/usr/bin/env python3
"""Wait for key workloads in the dataspace namespace to come up."""

from __future__ import annotations

import re
import time
from typing import Callable, Iterable

from .config_constants import READY_POD_STATUSES
from .console import info, success, warn
from .polling import PollSpec, await_ready
from .runner import CommandRunner
from .stages import Outcome, StageRecord


def pod_ready(pod_table: str, name: str) -> bool:
    """
    True when a pod whose NAME matches `name` (regex search) has STATUS
    Running or Completed in `kubectl get pods --no-headers` output.
    """
    pattern = re.compile(name)
    for line in pod_table.splitlines():
        columns = line.split()
        if len(columns) < 3:
            continue
        if pattern.search(columns[0]) and columns[2] in READY_POD_STATUSES:
            return True
    return False


def get_pod_table(runner: CommandRunner, namespace: str) -> str:
    result = runner.run('kubectl', ['get', 'pods', '-n', namespace, '--no-headers'])
    if not result.ok:
        raise RuntimeError(f"kubectl get pods failed: {result.output or result.exit_code}")
    return result.stdout


def show_pods(runner: CommandRunner, namespace: str) -> None:
    info(f"Pods in namespace '{namespace}':")
    result = runner.run('kubectl', ['get', 'pods', '-n', namespace])
    for line in result.stdout.splitlines():
        print(f"  {line}", flush=True)
    if not result.ok:
        raise RuntimeError(f"kubectl get pods exited with {result.exit_code}: {result.stderr.strip()}")


def wait_all(
    runner: CommandRunner,
    names: Iterable[str],
    namespace: str,
    spec: PollSpec,
    *,
    sleep: Callable[[float], None] = time.sleep,
    stage: str = 'wait-workloads',
) -> list[StageRecord]:
    """
    Poll each named workload independently.

    A timeout is recorded WARNED and does not stop waiting on the rest; the
    deployment may finish with some workloads still starting.
    """
    records = []
    for name in names:
        def _retry(attempt: int, max_attempts: int, name=name) -> None:
            info(f"  Waiting for {name}... (attempt {attempt}/{max_attempts})")

        result = await_ready(
            lambda name=name: pod_ready(get_pod_table(runner, namespace), name),
            spec,
            sleep=sleep,
            on_retry=_retry,
        )

        if result.ready:
            success(f"{name} is running")
            records.append(StageRecord(f"{stage}:{name}", Outcome.OK, f"ready after {result.attempts} attempt(s)"))
        else:
            warn(
                f"{name} did not reach Running in time. "
                f"Check 'kubectl get pods -n {namespace}' and the pod logs."
            )
            records.append(StageRecord(
                f"{stage}:{name}",
                Outcome.WARNED,
                f"not ready after {result.attempts} attempts ({spec.timeout:g}s)",
            ))
    return records
