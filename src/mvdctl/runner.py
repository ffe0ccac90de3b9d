#!/usr/bin/env python3
"""
Command execution port.

Every external tool (docker, kind, kubectl, terraform, gradle, bash) is
reached through a CommandRunner. A non-zero exit code is returned as data in
the ExecutionResult; only a program that cannot be started at all raises
ExecutionError.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .console import info
from .errors import ExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    args: tuple[str, ...]
    exit_code: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Stripped stdout, falling back to stderr (for error messages)."""
        return self.stdout.strip() or self.stderr.strip()

    def lines(self) -> list[str]:
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


class CommandRunner:
    """Interface for running external programs."""

    def run(
        self,
        program: str,
        args: Sequence[str] = (),
        *,
        cwd: Optional[Path] = None,
        env: Optional[dict] = None,
        capture: bool = True,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        raise NotImplementedError

    def which(self, program: str) -> Optional[str]:
        raise NotImplementedError


class SubprocessRunner(CommandRunner):
    """
    Run programs with subprocess.

    capture=True collects stdout/stderr silently. capture=False streams the
    merged output live, prefixed with the program name, and still returns it.
    """

    def which(self, program: str) -> Optional[str]:
        return shutil.which(program)

    def run(
        self,
        program: str,
        args: Sequence[str] = (),
        *,
        cwd: Optional[Path] = None,
        env: Optional[dict] = None,
        capture: bool = True,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        cmd = [program, *args]
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd or '.'})")

        try:
            if capture:
                proc = subprocess.run(
                    cmd,
                    cwd=cwd,
                    env=env,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
                result = ExecutionResult(tuple(cmd), proc.returncode, proc.stdout or '', proc.stderr or '')
            else:
                result = self._run_streaming(cmd, cwd=cwd, env=env, timeout=timeout)
        except FileNotFoundError as e:
            raise ExecutionError(program, "not found") from e
        except PermissionError as e:
            raise ExecutionError(program, "permission denied") from e
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(program, f"timed out after {timeout}s") from e
        except OSError as e:
            raise ExecutionError(program, str(e)) from e

        logger.debug(f"  exit code: {result.exit_code}")
        return result

    def _run_streaming(self, cmd: list[str], cwd, env, timeout) -> ExecutionResult:
        tag = Path(cmd[0]).name.upper()
        info(f"Running: {' '.join(cmd)}")

        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )

        if proc.stdout is None:
            proc.kill()
            proc.wait()
            raise OSError(f"no stdout pipe for {cmd[0]}")

        stdout_lines = []
        try:
            for line in proc.stdout:
                print(f"  [{tag}] {line.rstrip()}", flush=True)
                stdout_lines.append(line)
            proc.wait(timeout=timeout)
        except BaseException:
            # Kill the child on interrupt or timeout.
            proc.kill()
            proc.wait()
            raise

        return ExecutionResult(tuple(cmd), proc.returncode, ''.join(stdout_lines), '')
