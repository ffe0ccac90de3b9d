"""
Shared fixtures: a recording fake CommandRunner, so no test touches docker,
kind, kubectl or terraform.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional, Union

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from mvdctl.config import Configuration  # noqa: E402
from mvdctl.errors import ExecutionError  # noqa: E402
from mvdctl.runner import CommandRunner, ExecutionResult  # noqa: E402

Response = Union[ExecutionResult, Exception, Callable[[tuple], ExecutionResult]]


def result(exit_code: int = 0, stdout: str = '', stderr: str = '') -> ExecutionResult:
    return ExecutionResult((), exit_code, stdout, stderr)


class FakeRunner(CommandRunner):
    """
    Responses are matched on the command prefix, longest prefix first.
    Unmatched commands succeed with empty output.

    A response registered without `times` repeats forever, and a later
    on() for the same prefix replaces it. `times=n` queues a response for
    the next n calls ahead of whatever follows.
    """

    def __init__(self, available: Optional[set] = None) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.kwargs: list[dict] = []
        self.responses: dict[tuple[str, ...], list[Response]] = {}
        self._repeating: set[tuple[str, ...]] = set()
        self.available = available

    def on(self, *prefix: str, response: Response = None, times: Optional[int] = None) -> "FakeRunner":
        response = response if response is not None else result()
        prefix = tuple(prefix)
        entries = self.responses.setdefault(prefix, [])
        if prefix in self._repeating:
            entries.pop()
        if times is None:
            entries.append(response)
            self._repeating.add(prefix)
        else:
            entries.extend([response] * times)
            self._repeating.discard(prefix)
        return self

    def which(self, program: str) -> Optional[str]:
        if self.available is None or program in self.available:
            return f"/usr/bin/{program}"
        return None

    def run(self, program, args=(), *, cwd=None, env=None, capture=True, timeout=None):
        cmd = (program, *args)
        self.calls.append(cmd)
        self.kwargs.append({'cwd': cwd, 'env': env, 'capture': capture})

        for prefix in sorted(self.responses, key=len, reverse=True):
            if cmd[:len(prefix)] != prefix:
                continue
            entries = self.responses[prefix]
            # The last response repeats once the queue is down to one entry
            response = entries.pop(0) if len(entries) > 1 else entries[0]
            if isinstance(response, Exception):
                raise response
            if callable(response):
                return response(cmd)
            return ExecutionResult(cmd, response.exit_code, response.stdout, response.stderr)
        return ExecutionResult(cmd, 0, '', '')

    def called(self, *prefix: str) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call[:len(prefix)] == prefix]


def not_found(program: str) -> ExecutionError:
    return ExecutionError(program, "not found")


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config(tmp_path) -> Configuration:
    return Configuration(
        work_dir=tmp_path,
        cluster_config_path=tmp_path / "deployment" / "kind.config.yaml",
        infra_dir=tmp_path / "deployment",
        seed_script_path=tmp_path / "seed-k8s.sh",
        images=("controlplane:latest", "dataplane:latest"),
        key_resources=("consumer-postgres", "provider-vault"),
        workload_attempts=3,
        workload_interval=0.01,
        ingress_timeout=0.03,
        ingress_interval=0.01,
    )


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()
