#!/usr/bin/env python3
"""
Teardown pipeline: the reverse of deploy.

1. Confirm      prompt unless --yes; anything but y/Y aborts untouched
2. Containers   docker rm -f every container whose name matches the cluster
3. Cluster      kind delete cluster
4. Infra state  remove terraform.tfstate*, .terraform.lock.hcl, .terraform/

Every step after confirmation is best effort and independent. Missing
resources are recorded as "not found", so running teardown against a clean
environment succeeds.

Containers vs. infra state: Terraform only manages objects inside the kind
cluster, which disappear with the cluster; step 4 removes local state files
and does not run `terraform destroy`. Step 2 covers what lives outside the
cluster: the kind node containers themselves and any ad hoc containers named
after the cluster.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .cluster import cluster_exists, delete_cluster, describe_containers, list_containers, remove_containers
from .config import Configuration
from .console import info, rule, warn
from .infra import clean_infra_state
from .reporting import ConsoleReporter
from .runner import CommandRunner
from .stages import FailurePolicy, Outcome, PipelineSummary, Reporter, Stage, StageRecord, StageSequencer

CONFIRM_PROMPT = (
    "This will permanently delete the MVD cluster, Terraform state, "
    "and Docker containers. Continue? (y/N): "
)


@dataclass(frozen=True)
class TeardownResult:
    aborted: bool
    summary: PipelineSummary


def confirm(input_func: Callable[[str], str] = input) -> bool:
    """Ask for confirmation; only 'y' or 'Y' proceeds. EOF counts as no."""
    try:
        answer = input_func(CONFIRM_PROMPT)
    except EOFError:
        return False
    return answer.strip() in ('y', 'Y')


def _remove_matching_containers(runner: CommandRunner, cluster_name: str) -> list[StageRecord]:
    container_ids = list_containers(runner, cluster_name)
    info("Found containers:")
    for line in describe_containers(runner, cluster_name):
        info(f"  - {line}")
    return remove_containers(runner, container_ids)


def _clean_state(config: Configuration) -> list[StageRecord]:
    removed = clean_infra_state(config.infra_dir)
    if not removed:
        return [StageRecord('clean-infra-state:files', Outcome.SKIPPED, 'no state files present')]
    return [StageRecord('clean-infra-state:files', Outcome.OK, f"{len(removed)} path(s) removed")]


def build_teardown_stages(runner: CommandRunner, config: Configuration) -> list[Stage]:
    name = config.cluster_name
    return [
        Stage(
            name='remove-containers',
            description=f"Remove docker containers matching '{name}'",
            action=lambda: _remove_matching_containers(runner, name),
            skip_predicate=lambda: not list_containers(runner, name),
            skip_note='not found',
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
        Stage(
            name='delete-cluster',
            description=f"Delete kind cluster '{name}'",
            action=lambda: delete_cluster(runner, name),
            skip_predicate=lambda: not cluster_exists(runner, name),
            skip_note='not found',
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
        Stage(
            name='clean-infra-state',
            description=f"Clean Terraform state in {config.infra_dir}",
            action=lambda: _clean_state(config),
            skip_predicate=lambda: not config.infra_dir.is_dir(),
            skip_note='not found',
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
    ]


def run_teardown(
    runner: CommandRunner,
    config: Configuration,
    *,
    reporter: Optional[Reporter] = None,
    input_func: Callable[[str], str] = input,
) -> TeardownResult:
    """
    Confirm, then run the best-effort teardown stages.

    Never raises for missing resources or individual step failures.
    """
    rule()
    info("MVD cleanup")
    rule()
    info(f"Target cluster: {config.cluster_name}")
    info(f"Terraform dir:  {config.infra_dir}")

    if not config.confirm and not confirm(input_func):
        warn("Aborted by user.")
        summary = PipelineSummary(title='teardown')
        summary.add(StageRecord('confirm', Outcome.SKIPPED, 'aborted by user'))
        return TeardownResult(aborted=True, summary=summary)

    sequencer = StageSequencer(
        reporter=reporter if reporter is not None else ConsoleReporter([
            "Your system is clean and ready for a fresh deployment.",
        ]),
        title='teardown',
    )
    summary = PipelineSummary(title='teardown')
    summary.add(StageRecord('confirm', Outcome.OK, '--yes' if config.confirm else 'confirmed'))
    summary = sequencer.run(build_teardown_stages(runner, config), summary)
    return TeardownResult(aborted=False, summary=summary)
