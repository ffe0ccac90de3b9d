#!/usr/bin/env python3
"""
Configuration for the deploy and teardown pipelines.

Built once at startup and passed read-only everywhere. Sources, lowest to
highest precedence:

1. Defaults from config_constants
2. TOML config file (--config, else mvd.toml / mvd.toml.j2 in the work dir)
3. MVD_* environment variables
4. Command-line arguments

Relative paths are resolved against work_dir.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from . import config_constants as defaults
from .errors import ConfigError
from .render_utils import dump_toml, load_toml_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Configuration:
    cluster_name: str = defaults.DEFAULT_CLUSTER_NAME
    work_dir: Path = field(default_factory=Path.cwd)
    namespace: str = defaults.DEFAULT_NAMESPACE
    cluster_config_path: Path = Path(defaults.DEFAULT_CLUSTER_CONFIG)
    infra_dir: Path = Path(defaults.DEFAULT_INFRA_DIR)
    seed_script_path: Path = Path(defaults.DEFAULT_SEED_SCRIPT)
    images: tuple[str, ...] = tuple(defaults.DEFAULT_IMAGES)
    key_resources: tuple[str, ...] = tuple(defaults.DEFAULT_KEY_RESOURCES)
    confirm: bool = False
    build: bool = False
    ingress_manifest_url: str = defaults.INGRESS_MANIFEST_URL
    ingress_namespace: str = defaults.INGRESS_NAMESPACE
    ingress_selector: str = defaults.INGRESS_SELECTOR
    ingress_timeout: float = defaults.INGRESS_TIMEOUT
    ingress_interval: float = defaults.INGRESS_INTERVAL
    workload_attempts: int = defaults.DEFAULT_WORKLOAD_ATTEMPTS
    workload_interval: float = defaults.DEFAULT_WORKLOAD_INTERVAL
    required_tools: tuple[str, ...] = tuple(defaults.REQUIRED_TOOLS)
    seed_tools: tuple[str, ...] = tuple(defaults.SEED_TOOLS)
    min_java_major: int = defaults.MIN_JAVA_MAJOR
    log_level: str = 'INFO'

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data

    def to_toml(self) -> str:
        return dump_toml(self.to_dict())


# Field name -> environment variable (without prefix)
ENV_FIELDS = {
    'cluster_name': 'CLUSTER_NAME',
    'work_dir': 'WORK_DIR',
    'namespace': 'NAMESPACE',
    'cluster_config_path': 'CLUSTER_CONFIG',
    'infra_dir': 'INFRA_DIR',
    'seed_script_path': 'SEED_SCRIPT',
    'images': 'IMAGES',
    'key_resources': 'KEY_RESOURCES',
    'log_level': 'LOG_LEVEL',
}

_PATH_FIELDS = {'work_dir', 'cluster_config_path', 'infra_dir', 'seed_script_path'}
_LIST_FIELDS = {'images', 'key_resources', 'required_tools', 'seed_tools'}
_FLOAT_FIELDS = {'ingress_timeout', 'ingress_interval', 'workload_interval'}
_INT_FIELDS = {'workload_attempts', 'min_java_major'}
_BOOL_FIELDS = {'confirm', 'build'}


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(',') if item.strip()]


def _coerce(name: str, value: Any, source: str) -> Any:
    try:
        if name in _PATH_FIELDS:
            return Path(str(value)).expanduser()
        if name in _LIST_FIELDS:
            items = _split_list(value) if isinstance(value, str) else [str(v) for v in value]
            return tuple(items)
        if name in _FLOAT_FIELDS:
            return float(value)
        if name in _INT_FIELDS:
            if isinstance(value, bool):
                raise TypeError("boolean is not an integer")
            return int(value)
        if name in _BOOL_FIELDS:
            if isinstance(value, str):
                return value.strip().lower() in ('1', 'true', 'yes', 'y')
            return bool(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for '{name}' from {source}: {value!r} ({e})") from e


def find_config_file(work_dir: Path) -> Optional[Path]:
    """Return mvd.toml.j2 or mvd.toml from work_dir, template first."""
    for name in (defaults.CONFIG_TEMPLATE, defaults.CONFIG_FILE):
        candidate = work_dir / name
        if candidate.is_file():
            return candidate
    return None


def _file_values(path: Path) -> dict[str, Any]:
    raw = load_toml_config(path)
    # Accept both a flat file and one nested under [mvd]
    if isinstance(raw.get('mvd'), dict) and len(raw) == 1:
        raw = raw['mvd']

    known = {f.name for f in fields(Configuration)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown keys in {path}: {', '.join(unknown)}")
    return {key: _coerce(key, value, str(path)) for key, value in raw.items()}


def _env_values(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, suffix in ENV_FIELDS.items():
        env_key = f"{defaults.ENV_PREFIX}{suffix}"
        raw = environ.get(env_key)
        if raw is not None and raw.strip():
            values[name] = _coerce(name, raw, env_key)
    return values


def build_configuration(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Configuration:
    """
    Merge all configuration sources into one Configuration.

    Args:
        overrides: Command-line values; None entries are ignored.
        config_path: Explicit config file (must exist).
        environ: Environment mapping (default: os.environ).

    Raises:
        ConfigError: Invalid values, unknown keys or a missing explicit file.
    """
    environ = os.environ if environ is None else environ
    cli_values = {
        key: _coerce(key, value, 'command line')
        for key, value in (overrides or {}).items()
        if value is not None
    }
    env_values = _env_values(environ)

    # work_dir is needed before the config file can be located
    work_dir = cli_values.get('work_dir') or env_values.get('work_dir') or Path.cwd()
    work_dir = Path(work_dir).resolve()

    if config_path is not None:
        config_file: Optional[Path] = Path(config_path)
        if not config_file.is_absolute():
            config_file = work_dir / config_file
    else:
        config_file = find_config_file(work_dir)

    merged: dict[str, Any] = {}
    if config_file is not None:
        logger.debug(f"Loading config file: {config_file}")
        merged.update(_file_values(config_file))
    merged.update(env_values)
    merged.update(cli_values)

    if 'work_dir' in merged:
        work_dir = Path(merged['work_dir'])
        if not work_dir.is_absolute():
            work_dir = (Path.cwd() / work_dir)
        work_dir = work_dir.resolve()
    merged['work_dir'] = work_dir

    for name in _PATH_FIELDS - {'work_dir'}:
        default = next(f.default for f in fields(Configuration) if f.name == name)
        path = Path(merged.get(name, default))
        merged[name] = path if path.is_absolute() else work_dir / path

    config = Configuration(**merged)
    _validate(config)
    return config


def _validate(config: Configuration) -> None:
    if not config.cluster_name.strip():
        raise ConfigError("cluster_name must not be empty")
    if not config.namespace.strip():
        raise ConfigError("namespace must not be empty")
    if config.workload_attempts < 1:
        raise ConfigError(f"workload_attempts must be >= 1, got {config.workload_attempts}")
    if config.workload_interval <= 0 or config.ingress_interval <= 0:
        raise ConfigError("poll intervals must be positive")
    if config.ingress_timeout <= 0:
        raise ConfigError("ingress_timeout must be positive")
    for name in config.key_resources:
        try:
            re.compile(name)
        except re.error as e:
            raise ConfigError(f"key_resources entry {name!r} is not a valid pattern: {e}") from e


def build_config_debug_lines(config: Configuration) -> list[str]:
    """Return lines describing the resolved configuration (banner output)."""
    return [
        f"Cluster name:   {config.cluster_name}",
        f"Working dir:    {config.work_dir}",
        f"Kind config:    {config.cluster_config_path}",
        f"Terraform dir:  {config.infra_dir}",
        f"Seed script:    {config.seed_script_path}",
        f"Namespace:      {config.namespace}",
    ]
