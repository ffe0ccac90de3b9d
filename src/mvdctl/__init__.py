"""mvdctl: deploy and tear down the local Minimum Viable Dataspace on kind."""

from __future__ import annotations

import os
from datetime import datetime, timezone


def _resolve_version() -> str:
	"""Installed distribution version, else MVDCTL_BUILD_VERSION, else a date stamp."""
	try:
		from importlib.metadata import PackageNotFoundError, version

		return version("mvdctl")
	except PackageNotFoundError:
		pass
	override = os.getenv("MVDCTL_BUILD_VERSION")
	if override:
		return override
	return datetime.now(timezone.utc).strftime("%Y%m%d")


__version__ = _resolve_version()
