#!/usr/bin/env python3
"""Jinja2/TOML rendering helpers for config files and the kind cluster config."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Optional

import tomli_w
from jinja2 import StrictUndefined, Template, TemplateError

from .errors import ConfigError

logger = logging.getLogger(__name__)


def build_template_context(values: Optional[dict] = None) -> dict:
    """
    Build Jinja2 template context with values + env.
    """
    return {
        **(values or {}),
        "env": dict(os.environ),
    }


def render_jinja2(template_path: Path, context: dict) -> str:
    """
    Render a Jinja2 template file. Undefined variables are errors.
    """
    logger.debug(f"Rendering Jinja2 template: {template_path}")

    if not template_path.exists():
        raise FileNotFoundError(f"Template file not found: {template_path}")

    template_content = template_path.read_text(encoding='utf-8')
    logger.debug(f"  Template size: {len(template_content)} bytes")

    try:
        rendered = Template(template_content, undefined=StrictUndefined).render(**context)
    except TemplateError as e:
        raise ConfigError(f"Failed to render template {template_path}: {e}") from e

    logger.debug(f"  Rendered output size: {len(rendered)} bytes")
    return rendered


def parse_toml_string(toml_text: str, source: str) -> dict:
    """
    Parse TOML from a string with fail-fast error context.
    """
    try:
        return tomllib.loads(toml_text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse TOML from {source}: {e}") from e


def load_toml_config(path: Path) -> dict:
    """Load a TOML file, rendering it with Jinja2 first when it ends in .j2."""
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    if path.suffix == '.j2':
        text = render_jinja2(path, build_template_context())
    else:
        text = path.read_text(encoding='utf-8')
    return parse_toml_string(text, str(path))


def render_to_sibling(template_path: Path, context: dict) -> Path:
    """
    Render `name.ext.j2` into `name.ext` next to it and return the output path.
    """
    output_path = template_path.with_suffix('')
    rendered = render_jinja2(template_path, build_template_context(context))
    output_path.write_text(rendered, encoding='utf-8')
    logger.debug(f"Rendered {template_path.name} -> {output_path}")
    return output_path


def dump_toml(data: dict[str, Any]) -> str:
    """Serialize a config mapping with tomli_w (paths stringified, None dropped)."""

    def _clean(value):
        if isinstance(value, dict):
            return {k: _clean(v) for k, v in value.items() if v is not None}
        if isinstance(value, (list, tuple)):
            return [_clean(v) for v in value]
        if isinstance(value, Path):
            return str(value)
        return value

    return tomli_w.dumps(_clean(data))
