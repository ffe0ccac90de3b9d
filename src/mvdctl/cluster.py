#!/usr/bin/env python3
"""
kind cluster, docker container and ingress-nginx operations.

State is never cached: every check queries kind/docker/kubectl again, since
the cluster can change outside this process.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .console import info, success, warn
from .errors import FatalStageError
from .render_utils import render_to_sibling
from .runner import CommandRunner
from .stages import Outcome, StageRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# kind cluster
# ---------------------------------------------------------------------------

def cluster_exists(runner: CommandRunner, cluster_name: str) -> bool:
    """True when `kind get clusters` lists cluster_name exactly."""
    result = runner.run('kind', ['get', 'clusters'])
    if not result.ok:
        logger.debug(f"kind get clusters failed (exit {result.exit_code}): {result.stderr.strip()}")
        return False
    return cluster_name in result.lines()


def resolve_cluster_config(config_path: Path, context: dict) -> Path:
    """
    Return the kind config file to pass to `kind create cluster`.

    A `*.j2` path is rendered with Jinja2 first. A missing file is fatal.
    """
    if not config_path.is_file():
        raise FatalStageError('create-cluster', f"kind config not found: {config_path}")
    if config_path.suffix == '.j2':
        return render_to_sibling(config_path, context)
    return config_path


def create_cluster(runner: CommandRunner, cluster_name: str, config_path: Path, context: Optional[dict] = None) -> None:
    kind_config = resolve_cluster_config(config_path, context or {'cluster_name': cluster_name})
    info(f"Creating kind cluster '{cluster_name}' with {kind_config}...")
    result = runner.run(
        'kind', ['create', 'cluster', '-n', cluster_name, '--config', str(kind_config)],
        capture=False,
    )
    if not result.ok:
        raise FatalStageError('create-cluster', f"kind create cluster exited with {result.exit_code}")
    success(f"kind cluster '{cluster_name}' created")


def delete_cluster(runner: CommandRunner, cluster_name: str) -> None:
    info(f"Deleting kind cluster '{cluster_name}'...")
    result = runner.run('kind', ['delete', 'cluster', '--name', cluster_name], capture=False)
    if not result.ok:
        raise RuntimeError(f"kind delete cluster exited with {result.exit_code}")
    success(f"Cluster '{cluster_name}' deleted")


# ---------------------------------------------------------------------------
# docker containers
# ---------------------------------------------------------------------------

def list_containers(runner: CommandRunner, name_filter: str) -> list[str]:
    """IDs of all containers (any state) whose name contains name_filter."""
    result = runner.run('docker', ['ps', '-a', '--filter', f'name={name_filter}', '--format', '{{.ID}}'])
    if not result.ok:
        raise RuntimeError(f"docker ps failed: {result.output or result.exit_code}")
    return result.lines()


def describe_containers(runner: CommandRunner, name_filter: str) -> list[str]:
    result = runner.run(
        'docker', ['ps', '-a', '--filter', f'name={name_filter}', '--format', '{{.Names}} ({{.ID}})'],
    )
    return result.lines() if result.ok else []


def remove_containers(runner: CommandRunner, container_ids: list[str], stage: str = 'remove-containers') -> list[StageRecord]:
    """
    Force-remove each container independently.

    A failed removal is recorded WARNED and the remaining containers are
    still attempted.
    """
    records = []
    for container_id in container_ids:
        info(f"Removing container {container_id}...")
        try:
            result = runner.run('docker', ['rm', '-f', container_id])
        except Exception as e:
            warn(f"  Failed to remove {container_id}: {e}")
            records.append(StageRecord(f"{stage}:{container_id}", Outcome.WARNED, str(e)))
            continue

        if result.ok:
            records.append(StageRecord(f"{stage}:{container_id}", Outcome.OK, 'removed'))
        else:
            warn(f"  Failed to remove {container_id}: {result.output}")
            records.append(StageRecord(f"{stage}:{container_id}", Outcome.WARNED, result.output or f"exit {result.exit_code}"))
    return records


# ---------------------------------------------------------------------------
# ingress-nginx
# ---------------------------------------------------------------------------

def namespace_exists(runner: CommandRunner, namespace: str) -> bool:
    return runner.run('kubectl', ['get', 'ns', namespace]).ok


def install_ingress(runner: CommandRunner, manifest_url: str) -> None:
    info("Installing Ingress NGINX for kind...")
    result = runner.run('kubectl', ['apply', '-f', manifest_url], capture=False)
    if not result.ok:
        raise FatalStageError('install-ingress', f"kubectl apply exited with {result.exit_code}")


def ingress_controller_ready(runner: CommandRunner, namespace: str, selector: str) -> bool:
    """True when every pod matching selector has condition Ready=True."""
    result = runner.run('kubectl', [
        'get', 'pods',
        '--namespace', namespace,
        '--selector', selector,
        '-o', 'jsonpath={.items[*].status.conditions[?(@.type=="Ready")].status}',
    ])
    if not result.ok:
        return False
    statuses = result.stdout.split()
    return bool(statuses) and all(status == 'True' for status in statuses)
