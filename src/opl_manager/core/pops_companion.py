"""POPS companion files: the per-game launcher ELF and conf_apps.cfg entries.

OPL starts a POPS game through ``POPS/XX.<vcd name>.ELF``, a copy of the
POPSTARTER launcher, and lists it in ``conf_apps.cfg`` as
``(PSX) <label>=mass:/POPS/<elf>``.
"""

from __future__ import annotations

import os
import re
import shutil
import logging
from typing import List, Optional

from ..config import ELF_TEMPLATE_ENV, ToolSettings, resolve_settings
from ..exceptions import BaseError
from ..security.security_utils import sanitize_conf_label
from ..utils.text_io import read_text
from .models import OperationResult

logger = logging.getLogger(__name__)

POPS_DIR = "POPS"
POPSTARTER_NAME = "POPSTARTER.ELF"
CONF_APPS_NAME = "conf_apps.cfg"

_ELF_STUB_RE = re.compile(r"^XX\..+\.ELF$", re.IGNORECASE)

MISSING_TEMPLATE_MESSAGE = (
    f"Missing POPS ELF template. Set {ELF_TEMPLATE_ENV} or place the {POPSTARTER_NAME} file in {POPS_DIR}."
)


def elf_name_for(vcd_path: str) -> str:
    """``/x/POPS/Game.VCD`` -> ``XX.Game.ELF``."""
    stem = os.path.splitext(os.path.basename(vcd_path))[0]
    return f"XX.{stem}.ELF"


def conf_apps_path(opl_root: str) -> str:
    return os.path.join(opl_root, CONF_APPS_NAME)


def _elf_marker(elf_name: str) -> str:
    return f"/{POPS_DIR}/{elf_name}"


def find_elf_template(opl_root: str, settings: ToolSettings) -> Optional[str]:
    if settings.elf_template:
        return settings.elf_template

    pops_dir = os.path.join(opl_root, POPS_DIR)
    popstarter = os.path.join(pops_dir, POPSTARTER_NAME)
    if os.path.isfile(popstarter):
        return popstarter

    try:
        with os.scandir(pops_dir) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except FileNotFoundError:
        return None
    for entry in entries:
        if entry.is_file() and _ELF_STUB_RE.match(entry.name):
            return entry.path
    return None


def ensure_pops_elf(vcd_path: str, opl_root: str, settings: Optional[ToolSettings] = None) -> OperationResult:
    """Create the launcher stub for ``vcd_path`` unless it already exists."""
    try:
        template = find_elf_template(opl_root, resolve_settings(settings))
        if not template:
            logger.error(MISSING_TEMPLATE_MESSAGE, extra={"location": "pops"})
            return OperationResult.fail(MISSING_TEMPLATE_MESSAGE)

        pops_dir = os.path.join(opl_root, POPS_DIR)
        elf_name = elf_name_for(vcd_path)
        target = os.path.join(pops_dir, elf_name)
        if os.path.exists(target):
            return OperationResult.ok(target, skipped=True, elf_name=elf_name)

        os.makedirs(pops_dir, exist_ok=True)
        shutil.copyfile(template, target)
        logger.info("Created POPS launcher %s", elf_name, extra={"location": "pops"})
        return OperationResult.ok(target, elf_name=elf_name)
    except (BaseError, OSError) as exc:
        return OperationResult.fail(str(exc) or "Failed to create POPS ELF.")


def remove_pops_elf(opl_root: str, elf_name: str) -> OperationResult:
    target = os.path.join(opl_root, POPS_DIR, elf_name)
    try:
        os.remove(target)
    except FileNotFoundError:
        return OperationResult.ok(target, skipped=True)
    except OSError as exc:
        return OperationResult.fail(str(exc))
    return OperationResult.ok(target)


def _read_registry(path: str) -> Optional[str]:
    try:
        return read_text(path)
    except FileNotFoundError:
        return None


def _write_registry(path: str, lines: List[str]) -> None:
    content = "\n".join(lines) + "\n" if lines else ""
    with open(path, "w", encoding="utf-8", newline="\n") as handle:
        handle.write(content)


def add_to_conf_apps(opl_root: str, game_name: Optional[str], elf_name: str) -> OperationResult:
    """Register ``elf_name`` in conf_apps.cfg; existing registrations are left alone."""
    path = conf_apps_path(opl_root)
    label = sanitize_conf_label(game_name or elf_name)
    entry = f"(PSX) {label}=mass:{_elf_marker(elf_name)}"
    try:
        content = _read_registry(path) or ""
        lines = [line for line in content.splitlines() if line.strip()]
        if any(_elf_marker(elf_name) in line for line in lines):
            return OperationResult.ok(path, skipped=True)
        _write_registry(path, lines + [entry])
    except (OSError, ValueError) as exc:
        return OperationResult.fail(str(exc) or "Failed to update conf_apps.cfg.")
    logger.info("Added %s to %s", elf_name, CONF_APPS_NAME, extra={"location": "pops"})
    return OperationResult.ok(path)


def remove_from_conf_apps(opl_root: str, elf_name: str) -> OperationResult:
    """Drop every registry line pointing at ``elf_name``; rewrites only on change."""
    path = conf_apps_path(opl_root)
    try:
        content = _read_registry(path)
        if content is None:
            return OperationResult.ok(path, skipped=True)
        lines = [line.strip() for line in content.splitlines() if line.strip()]
        kept = [line for line in lines if _elf_marker(elf_name) not in line]
        if len(kept) == len(lines):
            return OperationResult.ok(path, skipped=True)
        _write_registry(path, kept)
    except (OSError, ValueError) as exc:
        return OperationResult.fail(str(exc) or "Failed to update conf_apps.cfg.")
    logger.info("Removed %s from %s", elf_name, CONF_APPS_NAME, extra={"location": "pops"})
    return OperationResult.ok(path)
