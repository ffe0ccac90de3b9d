#!/usr/bin/env python3
"""
Preflight checks, run before any stage with side effects.

Verifies required executables, a running container runtime and the JVM
major version. Any failure raises PreflightError; the pipeline never starts
degraded.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .errors import ExecutionError, PreflightError
from .runner import CommandRunner

logger = logging.getLogger(__name__)

JAVA_VERSION_PATTERN = re.compile(r'version\s+"([^"]+)"')


@dataclass(frozen=True)
class PreflightReport:
    tools: tuple[str, ...]
    java_version_line: str = ''
    java_major: Optional[int] = None


def parse_java_major(version_output: str) -> tuple[Optional[int], str]:
    """
    Extract the major version from `java -version` output.

    Handles both modern ("17.0.2") and legacy ("1.8.0_292") numbering.

    Returns:
        (major or None, first output line)
    """
    lines = [line for line in version_output.splitlines() if line.strip()]
    first_line = lines[0].strip() if lines else ''

    match = JAVA_VERSION_PATTERN.search(version_output)
    if not match:
        return None, first_line

    parts = re.split(r'[._+-]', match.group(1))
    try:
        major = int(parts[0])
        if major == 1 and len(parts) > 1:
            major = int(parts[1])
    except ValueError:
        return None, first_line
    return major, first_line


def find_missing_tools(runner: CommandRunner, tools: Iterable[str]) -> list[str]:
    return [tool for tool in tools if runner.which(tool) is None]


def container_runtime_running(runner: CommandRunner, runtime_program: str = 'docker') -> bool:
    try:
        return runner.run(runtime_program, ['info'], timeout=30).ok
    except ExecutionError as e:
        logger.debug(f"{runtime_program} info could not run: {e}")
        return False


def check_preflight(
    runner: CommandRunner,
    tools: Iterable[str],
    *,
    min_java_major: Optional[int] = 17,
    java_program: str = 'java',
    runtime_program: str = 'docker',
) -> PreflightReport:
    """
    Verify tooling before the pipeline starts.

    Args:
        runner: Command execution port.
        tools: Executables that must be on PATH.
        min_java_major: Minimum JVM major version; None disables the check.
        java_program: JVM launcher to query.
        runtime_program: Container runtime that must answer `info`.

    Raises:
        PreflightError: Listing every problem found, not just the first.
    """
    tools = tuple(dict.fromkeys(tools))
    missing = find_missing_tools(runner, tools)

    runtime_unavailable = False
    if runtime_program in tools and runtime_program not in missing:
        runtime_unavailable = not container_runtime_running(runner, runtime_program)

    version_too_low = False
    java_major = None
    java_line = ''
    if min_java_major is not None and java_program in tools and java_program not in missing:
        try:
            result = runner.run(java_program, ['-version'], timeout=30)
            # java -version prints to stderr
            java_major, java_line = parse_java_major(result.stderr or result.stdout)
        except ExecutionError as e:
            logger.debug(f"{java_program} -version could not run: {e}")
        version_too_low = java_major is None or java_major < min_java_major

    if missing or runtime_unavailable or version_too_low:
        raise PreflightError(
            missing=missing,
            version_too_low=version_too_low,
            runtime_unavailable=runtime_unavailable,
            detected=java_line,
            min_java_major=min_java_major or 0,
        )

    return PreflightReport(tools=tools, java_version_line=java_line, java_major=java_major)


def wsl_windows_mount_hint(work_dir: Path, home: Optional[Path] = None) -> Optional[dict[str, str]]:
    """
    Detect a work dir on the Windows filesystem under WSL (/mnt/c/...).

    Gradle and Docker are slow there and prone to file locks. Returns the
    environment override to apply to the build (GRADLE_USER_HOME in the
    Linux home), or None when the work dir is fine.
    """
    if not str(work_dir).startswith('/mnt/c/'):
        return None
    home = home or Path.home()
    return {'GRADLE_USER_HOME': str(home / '.gradle')}
