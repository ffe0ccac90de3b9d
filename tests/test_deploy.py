"""
Deploy pipeline tests (stage order, idempotent skips, fatal vs. warn).
"""

from dataclasses import replace
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))
from conftest import FakeRunner, result  # noqa: E402
from mvdctl.deploy import build_deploy_stages, run_deploy  # noqa: E402
from mvdctl.errors import FatalStageError, PreflightError  # noqa: E402
from mvdctl.stages import FailurePolicy, Outcome, Reporter  # noqa: E402

STAGE_ORDER = [
    'build', 'create-cluster', 'load-images', 'install-ingress', 'wait-ingress',
    'apply-infra', 'show-pods', 'wait-workloads', 'seed',
]

PODS = """\
consumer-postgres-0   1/1   Running   0   1m
provider-vault-0      1/1   Running   0   1m
"""


JAVA_17 = 'openjdk version "17.0.2" 2022-01-18\n'


def healthy_runner(cluster_exists=True, ingress_installed=True) -> FakeRunner:
    runner = FakeRunner()
    runner.on('java', '-version', response=result(stderr=JAVA_17))
    runner.on('kind', 'get', 'clusters', response=result(stdout="mvd\n" if cluster_exists else ""))
    runner.on('kubectl', 'get', 'ns', response=result(0 if ingress_installed else 1))
    runner.on('kubectl', 'get', 'pods', '--namespace', response=result(stdout="True"))
    runner.on('kubectl', 'get', 'pods', '-n', 'mvd', '--no-headers', response=result(stdout=PODS))
    return runner


@pytest.fixture
def deploy_config(config):
    config.infra_dir.mkdir(parents=True)
    return config


def _deploy(runner, config, no_sleep):
    return run_deploy(runner, config, reporter=Reporter(), sleep=no_sleep)


class TestStageList:
    def test_order_and_policies(self, deploy_config):
        stages = build_deploy_stages(FakeRunner(), deploy_config)

        assert [s.name for s in stages] == STAGE_ORDER
        warn_stages = {s.name for s in stages if s.failure_policy is FailurePolicy.WARN_CONTINUE}
        assert warn_stages == {'load-images', 'show-pods', 'wait-workloads', 'seed'}


class TestExistingCluster:
    def test_cluster_creation_skipped_and_later_stages_run(self, deploy_config, no_sleep):
        runner = healthy_runner(cluster_exists=True)

        summary = _deploy(runner, deploy_config, no_sleep)

        assert summary.outcome_of('create-cluster') is Outcome.SKIPPED
        assert not runner.called('kind', 'create')
        assert summary.outcome_of('apply-infra') is Outcome.OK
        assert summary.outcome_of('seed') is not None
        assert runner.called('terraform', 'apply')

    def test_existing_ingress_namespace_skips_install(self, deploy_config, no_sleep):
        runner = healthy_runner(ingress_installed=True)

        summary = _deploy(runner, deploy_config, no_sleep)

        assert summary.outcome_of('install-ingress') is Outcome.SKIPPED
        assert not runner.called('kubectl', 'apply')

    def test_build_skipped_unless_requested(self, deploy_config, no_sleep):
        runner = healthy_runner()

        summary = _deploy(runner, deploy_config, no_sleep)

        assert summary.outcome_of('build') is Outcome.SKIPPED
        assert not runner.called('gradle')


class TestFreshCluster:
    def test_creates_cluster_and_installs_ingress(self, deploy_config, no_sleep):
        deploy_config.cluster_config_path.write_text("kind: Cluster\n")
        runner = healthy_runner(cluster_exists=False, ingress_installed=False)

        summary = _deploy(runner, deploy_config, no_sleep)

        assert runner.called('kind', 'create', 'cluster') == [(
            'kind', 'create', 'cluster', '-n', 'mvd', '--config', str(deploy_config.cluster_config_path),
        )]
        assert runner.called('kubectl', 'apply', '-f')
        assert summary.outcome_of('create-cluster') is Outcome.OK
        assert summary.outcome_of('install-ingress') is Outcome.OK

    def test_missing_kind_config_is_fatal(self, deploy_config, no_sleep):
        runner = healthy_runner(cluster_exists=False)

        with pytest.raises(FatalStageError) as excinfo:
            _deploy(runner, deploy_config, no_sleep)

        assert excinfo.value.stage == 'create-cluster'
        assert 'kind config not found' in excinfo.value.message
        assert not runner.called('terraform')

    def test_build_runs_when_requested(self, deploy_config, no_sleep):
        runner = healthy_runner()

        _deploy(runner, replace(deploy_config, build=True), no_sleep)

        assert runner.called('gradle') == [
            ('gradle', 'build'),
            ('gradle', '-Ppersistence=true', 'dockerize'),
        ]


class TestFatalStages:
    def test_ingress_timeout_is_fatal(self, deploy_config, no_sleep):
        runner = healthy_runner()
        runner.on('kubectl', 'get', 'pods', '--namespace', response=result(stdout="False"))

        with pytest.raises(FatalStageError) as excinfo:
            _deploy(runner, deploy_config, no_sleep)

        assert excinfo.value.stage == 'wait-ingress'
        assert not runner.called('terraform')

    def test_terraform_failure_stops_before_seed(self, deploy_config, no_sleep):
        (deploy_config.seed_script_path).write_text("exit 0\n")
        runner = healthy_runner()
        runner.on('terraform', 'apply', response=result(1))

        with pytest.raises(FatalStageError) as excinfo:
            _deploy(runner, deploy_config, no_sleep)

        assert excinfo.value.stage == 'apply-infra'
        summary = excinfo.value.summary
        assert summary.outcome_of('apply-infra') is Outcome.FAILED
        assert summary.outcome_of('seed') is None
        assert not runner.called('bash')

    def test_missing_infra_dir_is_fatal(self, config, no_sleep):
        runner = healthy_runner()

        with pytest.raises(FatalStageError) as excinfo:
            _deploy(runner, config, no_sleep)

        assert excinfo.value.stage == 'apply-infra'

    def test_preflight_failure_runs_no_stage(self, deploy_config, no_sleep):
        runner = FakeRunner(available=set())

        with pytest.raises(PreflightError):
            run_deploy(runner, deploy_config, reporter=Reporter(), sleep=no_sleep)

        assert runner.calls == []

    def test_old_java_blocks_every_stage(self, deploy_config, no_sleep):
        runner = healthy_runner()
        runner.on('java', '-version', response=result(stderr='openjdk version "11.0.20" 2023-07-18\n'))

        with pytest.raises(PreflightError) as excinfo:
            _deploy(runner, deploy_config, no_sleep)

        assert excinfo.value.version_too_low
        assert runner.called('docker', 'info')
        assert not runner.called('kind')
        assert not runner.called('terraform')


class TestSoftFailures:
    def test_stuck_workload_still_reaches_seed(self, deploy_config, no_sleep):
        runner = healthy_runner()
        runner.on('kubectl', 'get', 'pods', '-n', 'mvd', '--no-headers',
                  response=result(stdout="consumer-postgres-0   0/1   Pending   0   1m\n"))

        summary = _deploy(runner, deploy_config, no_sleep)

        assert summary.outcome_of('wait-workloads:consumer-postgres') is Outcome.WARNED
        assert summary.outcome_of('wait-workloads') is Outcome.WARNED
        assert summary.outcome_of('seed') is not None
        assert not summary.aborted

    def test_missing_seed_script_completes_with_warning(self, deploy_config, no_sleep):
        runner = healthy_runner()

        summary = _deploy(runner, deploy_config, no_sleep)

        assert summary.outcome_of('seed:script') is Outcome.WARNED
        assert summary.outcome_of('seed') is Outcome.WARNED
        assert not summary.aborted

    def test_missing_images_do_not_stop_deploy(self, deploy_config, no_sleep):
        runner = healthy_runner()
        runner.on('docker', 'image', 'inspect', response=result(1))

        summary = _deploy(runner, deploy_config, no_sleep)

        assert summary.outcome_of('load-images') is Outcome.OK
        assert summary.outcome_of('load-images:controlplane:latest') is Outcome.SKIPPED
        assert summary.outcome_of('apply-infra') is Outcome.OK
