"""Tool and path settings (config file overlaid by environment variables)."""

from __future__ import annotations

import os
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..exceptions import ConfigurationError
from .io import get_config_path, load_config_file

logger = logging.getLogger(__name__)

CONVERTER_COMMAND_ENV = "POPS_CONVERTER_CMD"
ELF_TEMPLATE_ENV = "POPS_ELF_TEMPLATE"
BINMERGE_PATH_ENV = "BINMERGE_PATH"
RESOURCE_ROOT_ENV = "OPL_MANAGER_RESOURCE_ROOT"
CATALOG_DIR_ENV = "OPL_MANAGER_CATALOG_DIR"

ENV_OVERRIDES: Dict[str, str] = {
    CONVERTER_COMMAND_ENV: "converter_command",
    ELF_TEMPLATE_ENV: "elf_template",
    BINMERGE_PATH_ENV: "binmerge_path",
    RESOURCE_ROOT_ENV: "resource_root",
    CATALOG_DIR_ENV: "catalog_dir",
}


class ToolSettings(BaseModel):
    """External tool locations and overrides consumed by the core."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Shell command template with {cue} and {vcd} placeholders.
    converter_command: Optional[str] = None
    elf_template: Optional[str] = None
    binmerge_path: Optional[str] = None
    # Root searched first for bundled tools (packaged resources).
    resource_root: Optional[str] = None
    # Directory searched first for the *-gameslist.txt catalogs.
    catalog_dir: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ToolSettings:
    """Build settings from an optional config file and the environment.

    Environment variables win over file values.
    """
    env = os.environ if environ is None else environ
    path = config_path or get_config_path(env)
    data: Dict[str, Any] = load_config_file(path) if path else {}

    for env_name, field_name in ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value:
            data[field_name] = value

    try:
        settings = ToolSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}", setting=path) from exc
    logger.debug("Settings loaded (config file: %s)", path or "none")
    return settings


def resolve_settings(settings: Optional[ToolSettings]) -> ToolSettings:
    """Return ``settings`` or a freshly loaded instance."""
    return settings if settings is not None else load_settings()
