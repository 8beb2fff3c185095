"""Version utilities for OPL Manager."""

from __future__ import annotations

from importlib import metadata

DISTRIBUTION_NAME = "opl-manager"


def load_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "0.1.0"
