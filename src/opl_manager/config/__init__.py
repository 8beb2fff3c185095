# ruff: noqa: F401
"""OPL Manager - configuration package (tool settings and config file I/O)."""

from .io import CONFIG_PATH_ENV, get_config_path, load_config_file
from .settings import (
    BINMERGE_PATH_ENV,
    CATALOG_DIR_ENV,
    CONVERTER_COMMAND_ENV,
    ELF_TEMPLATE_ENV,
    RESOURCE_ROOT_ENV,
    ToolSettings,
    load_settings,
    resolve_settings,
)

__all__ = [
    'BINMERGE_PATH_ENV',
    'CATALOG_DIR_ENV',
    'CONFIG_PATH_ENV',
    'CONVERTER_COMMAND_ENV',
    'ELF_TEMPLATE_ENV',
    'RESOURCE_ROOT_ENV',
    'ToolSettings',
    'get_config_path',
    'load_config_file',
    'load_settings',
    'resolve_settings',
]
