#!/usr/bin/env python3
"""
Deploy pipeline for the MVD on kind.

Stage order:
    build            optional gradle build + dockerize          fatal
    create-cluster   skipped when the kind cluster exists       fatal
    load-images      per-image, never aborts                    warn
    install-ingress  skipped when ingress-nginx ns exists       fatal
    wait-ingress     controller pod Ready                       fatal
    apply-infra      terraform init + apply                     fatal
    show-pods        print the namespace pod table              warn
    wait-workloads   key pods Running/Completed                 warn
    seed             post-deploy seed script                    warn
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from .build import build_images
from .cluster import (
    cluster_exists,
    create_cluster,
    ingress_controller_ready,
    install_ingress,
    namespace_exists,
)
from .config import Configuration, build_config_debug_lines
from .console import debug, info, rule, success, warn
from .errors import FatalStageError
from .images import load_all
from .infra import apply_infra
from .polling import PollSpec, await_ready
from .preflight import check_preflight, wsl_windows_mount_hint
from .reporting import ConsoleReporter
from .runner import CommandRunner
from .seed import invoke_seed
from .stages import FailurePolicy, PipelineSummary, Reporter, Stage, StageSequencer
from .workloads import show_pods, wait_all


def wait_for_ingress(
    runner: CommandRunner,
    config: Configuration,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    spec = PollSpec.from_timeout(config.ingress_timeout, config.ingress_interval)
    info(f"Waiting for Ingress Controller (timeout {spec.timeout:g}s)...")
    result = await_ready(
        lambda: ingress_controller_ready(runner, config.ingress_namespace, config.ingress_selector),
        spec,
        sleep=sleep,
        on_retry=lambda attempt, total: info(f"  Ingress controller not ready (attempt {attempt}/{total})"),
    )
    if not result.ready:
        raise FatalStageError(
            'wait-ingress',
            f"ingress controller not ready within {spec.timeout:g}s "
            f"(kubectl get pods -n {config.ingress_namespace})",
        )
    success("Ingress ready")


def build_deploy_stages(
    runner: CommandRunner,
    config: Configuration,
    *,
    sleep: Callable[[float], None] = time.sleep,
    build_env: Optional[dict] = None,
) -> list[Stage]:
    """Assemble the ordered deploy stages for config."""
    workload_spec = PollSpec.from_attempts(config.workload_attempts, config.workload_interval)

    return [
        Stage(
            name='build',
            description='Build and dockerize (gradle)',
            action=lambda: build_images(runner, config.work_dir, build_env),
            skip_predicate=lambda: not config.build,
            skip_note='build not requested (--build); using existing local images',
        ),
        Stage(
            name='create-cluster',
            description=f"Create kind cluster '{config.cluster_name}'",
            action=lambda: create_cluster(
                runner, config.cluster_name, config.cluster_config_path, config.to_dict(),
            ),
            skip_predicate=lambda: cluster_exists(runner, config.cluster_name),
            skip_note=f"cluster '{config.cluster_name}' already exists",
        ),
        Stage(
            name='load-images',
            description='Load local images into kind',
            action=lambda: load_all(runner, config.images, config.cluster_name),
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
        Stage(
            name='install-ingress',
            description='Install Ingress NGINX',
            action=lambda: install_ingress(runner, config.ingress_manifest_url),
            skip_predicate=lambda: namespace_exists(runner, config.ingress_namespace),
            skip_note=f"namespace '{config.ingress_namespace}' already exists",
        ),
        Stage(
            name='wait-ingress',
            description='Wait for Ingress Controller',
            action=lambda: wait_for_ingress(runner, config, sleep),
        ),
        Stage(
            name='apply-infra',
            description='Terraform init and apply',
            action=lambda: apply_infra(runner, config.infra_dir),
        ),
        Stage(
            name='show-pods',
            description=f"Check pods in namespace '{config.namespace}'",
            action=lambda: show_pods(runner, config.namespace),
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
        Stage(
            name='wait-workloads',
            description='Wait for key pods',
            action=lambda: wait_all(runner, config.key_resources, config.namespace, workload_spec, sleep=sleep),
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
        Stage(
            name='seed',
            description='Seed the dataspace',
            action=lambda: invoke_seed(runner, config.seed_script_path, config.work_dir),
            failure_policy=FailurePolicy.WARN_CONTINUE,
        ),
    ]


def deploy_hints(config: Configuration) -> list[str]:
    ns = config.namespace
    return [
        f"Images:         {', '.join(config.images)}",
        f"Terraform dir:  {config.infra_dir}",
        f"Seed script:    {config.seed_script_path}",
        f"Pods:           kubectl get pods -n {ns}",
        "Try the APIs:   http://127.0.0.1/<provider|consumer|issuer>/...",
        f"If it fails:    kubectl describe pod <pod> -n {ns}; kubectl logs <pod> -n {ns}",
    ]


def run_deploy(
    runner: CommandRunner,
    config: Configuration,
    *,
    reporter: Optional[Reporter] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineSummary:
    """
    Run preflight checks and the deploy stages.

    Raises:
        PreflightError: Tools missing; nothing was touched.
        FatalStageError: A fatal stage failed; earlier effects stay in place.
    """
    rule()
    info("MVD deployment")
    rule()
    for line in build_config_debug_lines(config):
        info(line)
    debug("Resolved configuration:", **config.to_dict())

    info("Checking dependencies...")
    report = check_preflight(
        runner,
        [*config.required_tools, *config.seed_tools],
        min_java_major=config.min_java_major,
    )
    if report.java_version_line:
        info(f"Java: {report.java_version_line}")
    success("Dependencies OK")

    build_env = wsl_windows_mount_hint(config.work_dir)
    if build_env:
        warn("Working under /mnt/c (Windows FS): Gradle and Docker may be slow and hit file locks.")
        warn("  Move the repository under /home/<user>/... for better performance.")
        info(f"Using GRADLE_USER_HOME={build_env['GRADLE_USER_HOME']}")

    sequencer = StageSequencer(
        reporter=reporter if reporter is not None else ConsoleReporter(deploy_hints(config)),
        title='deploy',
    )
    return sequencer.run(build_deploy_stages(runner, config, sleep=sleep, build_env=build_env))
