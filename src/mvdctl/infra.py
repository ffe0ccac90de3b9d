#!/usr/bin/env python3
"""
Terraform operations.

apply_infra() is two-phase (init, then apply) and any failure is fatal:
partially applied infrastructure must be inspected before a retry.
clean_infra_state() removes the local state the teardown owns.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .config_constants import TERRAFORM_CACHE_DIR, TERRAFORM_LOCK_FILE, TERRAFORM_STATE_GLOB
from .console import info, success, warn
from .errors import FatalStageError
from .runner import CommandRunner

logger = logging.getLogger(__name__)


def apply_infra(runner: CommandRunner, infra_dir: Path) -> None:
    """
    Run `terraform init -input=false` then `terraform apply -auto-approve`.

    Raises:
        FatalStageError: Missing directory, or non-zero exit from either phase.
    """
    if not infra_dir.is_dir():
        raise FatalStageError('apply-infra', f"Terraform directory does not exist: {infra_dir}")

    info(f"Deploying with Terraform in {infra_dir}...")

    init = runner.run('terraform', ['init', '-input=false'], cwd=infra_dir, capture=False)
    if not init.ok:
        raise FatalStageError('terraform-init', f"terraform init exited with {init.exit_code}")

    apply = runner.run('terraform', ['apply', '-auto-approve'], cwd=infra_dir, capture=False)
    if not apply.ok:
        raise FatalStageError('terraform-apply', f"terraform apply exited with {apply.exit_code}")

    success("Terraform applied")


def clean_infra_state(infra_dir: Path) -> list[Path]:
    """
    Remove Terraform state, lock file and module cache from infra_dir.

    Only the top level of infra_dir is searched for state files. Each path
    is removed independently; one that cannot be removed is warned about and
    the rest are still attempted.

    Returns:
        Paths that were removed.
    """
    removed: list[Path] = []

    candidates = sorted(infra_dir.glob(TERRAFORM_STATE_GLOB)) + [infra_dir / TERRAFORM_LOCK_FILE]
    for path in candidates:
        if not path.is_file():
            continue
        try:
            path.unlink()
        except OSError as e:
            warn(f"  Could not remove {path}: {e}")
            continue
        info(f"  Removed: {path}")
        removed.append(path)

    cache_dir = infra_dir / TERRAFORM_CACHE_DIR
    if cache_dir.is_dir():
        try:
            shutil.rmtree(cache_dir)
        except OSError as e:
            warn(f"  Could not remove {cache_dir}/: {e}")
        else:
            info(f"  Removed: {cache_dir}/")
            removed.append(cache_dir)

    if not removed:
        logger.debug(f"No Terraform state to remove in {infra_dir}")
    return removed
