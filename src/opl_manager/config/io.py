"""Config I/O utilities."""

from __future__ import annotations

import json
import os
import logging
from typing import Any, Dict, Mapping, Optional

import yaml

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "OPL_MANAGER_CONFIG"


def get_config_path(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    path = str(env.get(CONFIG_PATH_ENV) or "").strip()
    return path or None


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Read a YAML or JSON config file into a dict.

    A missing file yields an empty dict; unreadable or malformed content
    raises ConfigurationError.
    """
    if not os.path.exists(config_path):
        logger.debug("Config file not found, using defaults: %s", config_path)
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as exc:
        raise ConfigurationError(f"Unable to read config file: {exc}", setting=CONFIG_PATH_ENV) from exc

    try:
        if config_path.lower().endswith(".json"):
            data = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Invalid config file {config_path}: {exc}", setting=CONFIG_PATH_ENV) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}", setting=CONFIG_PATH_ENV)
    return data
