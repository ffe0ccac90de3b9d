#!/usr/bin/env python3
"""
Entry points: mvd-deploy and mvd-teardown.

Exit codes:
    0    pipeline completed (warnings allowed) or teardown aborted by the user
    1    preflight failure, fatal stage failure or invalid configuration
    130  interrupted (no cleanup is attempted)
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import build_configuration
from .console import configure_logging, error, info, interrupted
from .deploy import run_deploy
from .errors import ConfigError, FatalStageError, PreflightError
from .runner import SubprocessRunner
from .teardown import run_teardown


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group('Configuration')
    group.add_argument('-c', '--config', type=Path, default=None, metavar='PATH',
                       help='TOML config file (default: mvd.toml[.j2] in the work dir if present)')
    group.add_argument('-d', '--work-dir', type=Path, default=None, metavar='PATH',
                       help='Repository working directory (default: current directory)')
    group.add_argument('-n', '--cluster-name', default=None, metavar='NAME',
                       help='kind cluster name (default: mvd)')
    group.add_argument('--infra-dir', type=Path, default=None, metavar='PATH',
                       help='Terraform directory (default: deployment)')
    group.add_argument('--log-level', default=None, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       type=str.upper, help='Log level (default: INFO)')
    group.add_argument('--print-config', action='store_true',
                       help='Print the resolved configuration as TOML and exit')
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")


def parse_deploy_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """
    Parse command-line arguments for mvd-deploy.
    """
    parser = argparse.ArgumentParser(
        prog='mvd-deploy',
        description='Deploy the Minimum Viable Dataspace to a local kind cluster',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Deploy with existing local images
  %(prog)s

  # Rebuild images first
  %(prog)s --build

  # Custom cluster and seed script
  %(prog)s -n mvd-dev --seed-script ./seed-k8s.sh
        '''
    )
    _add_common_arguments(parser)
    parser.add_argument('--namespace', default=None, help='Workload namespace (default: mvd)')
    parser.add_argument('--cluster-config', type=Path, default=None, metavar='PATH',
                        help='kind cluster config (default: deployment/kind.config.yaml)')
    parser.add_argument('--seed-script', type=Path, default=None, metavar='PATH',
                        help='Post-deploy seed script (default: seed-k8s.sh)')
    parser.add_argument('--images', default=None, metavar='LIST',
                        help='Comma-separated images to load into kind')
    parser.add_argument('--key-resources', default=None, metavar='LIST',
                        help='Comma-separated pod names to wait for')
    parser.add_argument('--build', action='store_true', default=None,
                        help='Run gradle build + dockerize before deploying')
    return parser.parse_args(argv)


def parse_teardown_arguments(argv: Optional[list] = None) -> argparse.Namespace:
    """
    Parse command-line arguments for mvd-teardown.
    """
    parser = argparse.ArgumentParser(
        prog='mvd-teardown',
        description='Remove the MVD kind cluster, its containers and Terraform state',
    )
    _add_common_arguments(parser)
    parser.add_argument('-y', '--yes', dest='confirm', action='store_true', default=None,
                        help='Non-interactive mode (skip the confirmation prompt)')
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace, names: list[str]) -> dict:
    return {name: getattr(args, name, None) for name in names}


def _print_config_and_exit(config) -> int:
    print(config.to_toml(), end='')
    return 0


def deploy_main(argv: Optional[list] = None) -> int:
    args = parse_deploy_arguments(argv)
    configure_logging(args.log_level or os.environ.get('MVD_LOG_LEVEL', 'INFO'))

    try:
        config = build_configuration(
            _overrides(args, [
                'work_dir', 'cluster_name', 'infra_dir', 'log_level', 'namespace',
                'images', 'key_resources', 'build',
            ]) | {
                'cluster_config_path': args.cluster_config,
                'seed_script_path': args.seed_script,
            },
            config_path=args.config,
        )
    except ConfigError as e:
        error(str(e))
        return 1

    configure_logging(config.log_level)
    if args.print_config:
        return _print_config_and_exit(config)

    try:
        run_deploy(SubprocessRunner(), config)
    except PreflightError as e:
        error(str(e))
        return 1
    except FatalStageError as e:
        error(f"Deployment stopped at stage '{e.stage}': {e.message}")
        error("Effects of earlier stages were left in place. Inspect, then rerun or run mvd-teardown.")
        return 1
    return 0


def teardown_main(argv: Optional[list] = None) -> int:
    args = parse_teardown_arguments(argv)
    configure_logging(args.log_level or os.environ.get('MVD_LOG_LEVEL', 'INFO'))

    try:
        config = build_configuration(
            _overrides(args, ['work_dir', 'cluster_name', 'infra_dir', 'log_level', 'confirm']),
            config_path=args.config,
        )
    except ConfigError as e:
        error(str(e))
        return 1

    configure_logging(config.log_level)
    if args.print_config:
        return _print_config_and_exit(config)

    result = run_teardown(SubprocessRunner(), config)
    if result.aborted:
        info("Nothing was changed.")
    return 0


def _guard(entry, argv: Optional[list] = None) -> int:
    try:
        return entry(argv)
    except KeyboardInterrupt:
        print(flush=True)
        interrupted("Interrupted by user; no cleanup was attempted")
        return 130


def deploy(argv: Optional[list] = None) -> None:
    """Console script for mvd-deploy."""
    sys.exit(_guard(deploy_main, argv))


def teardown(argv: Optional[list] = None) -> None:
    """Console script for mvd-teardown."""
    sys.exit(_guard(teardown_main, argv))


if __name__ == '__main__':
    deploy()
