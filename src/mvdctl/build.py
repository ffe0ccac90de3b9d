#!/usr/bin/env python3
"""
Optional build step: compile with Gradle and build the docker images.

Images must be built with -Ppersistence=true, since Postgres and Vault
depend on it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .console import info, success
from .errors import FatalStageError
from .runner import CommandRunner


def gradle_command(work_dir: Path) -> str:
    """Prefer the project wrapper, fall back to a system gradle."""
    wrapper = work_dir / 'gradlew'
    if wrapper.is_file():
        return str(wrapper)
    return 'gradle'


def build_images(runner: CommandRunner, work_dir: Path, extra_env: Optional[dict] = None) -> None:
    gradle = gradle_command(work_dir)
    env = None
    if extra_env:
        env = {**os.environ, **extra_env}

    info("Compiling (gradle build) and dockerizing (-Ppersistence=true dockerize)...")
    for args in (['build'], ['-Ppersistence=true', 'dockerize']):
        result = runner.run(gradle, args, cwd=work_dir, env=env, capture=False)
        if not result.ok:
            raise FatalStageError('build', f"{Path(gradle).name} {' '.join(args)} exited with {result.exit_code}")
    success("Build and dockerize complete")
