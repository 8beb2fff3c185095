from __future__ import annotations

from pathlib import Path

import pytest

from opl_manager.core import catalog

_TOOL_ENV_VARS = (
    "POPS_CONVERTER_CMD",
    "POPS_ELF_TEMPLATE",
    "BINMERGE_PATH",
    "OPL_MANAGER_CONFIG",
    "OPL_MANAGER_RESOURCE_ROOT",
    "OPL_MANAGER_CATALOG_DIR",
    "OPL_MANAGER_LOG_JSON",
    "OPL_MANAGER_LOG_LEVEL",
)


def pytest_configure() -> None:
    """Ensure pytest base temp directory exists for CI runs."""

    repo_root = Path(__file__).resolve().parents[2]
    base_temp = repo_root / "temp" / "pytest"
    base_temp.mkdir(parents=True, exist_ok=True)


@pytest.fixture(autouse=True)
def _isolated_tool_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's POPS/binmerge setup out of the tests."""
    for name in _TOOL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    catalog.set_default_catalog(None)
    yield
    catalog.set_default_catalog(None)
