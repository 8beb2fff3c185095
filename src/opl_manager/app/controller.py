"""Controller layer: core operations wrapped into uniform, non-raising results.

Every function here returns a plain dict (``success`` plus operation
specific keys, or ``message`` on failure) so a UI or IPC adapter can pass
results through without catching exceptions.
"""

from __future__ import annotations

import os
import logging
from typing import Any, Dict, Optional

from ..config import ToolSettings, resolve_settings
from ..exceptions import BaseError
from ..core.artwork import download_art_by_game_id, list_art_files
from ..core.file_utils import move_file as _move_file
from ..core.game_id_scanner import scan_game_id
from ..core.library import delete_game_and_related_files, list_game_files, rename_game_file
from ..core.models import ProgressCallback, StageCallback
from ..core.pops_companion import add_to_conf_apps, ensure_pops_elf
from ..core.pops_converter import convert_cue_to_vcd, is_bundled_cue2pops_available
from ..utils.external_tools import CommandRunner

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]


def _failure(exc: Exception, fallback: str) -> Payload:
    logger.error("%s: %s", fallback, exc)
    return {"success": False, "message": str(exc) or fallback}


def get_games_files(opl_root: str) -> Payload:
    try:
        return {"success": True, "data": list_game_files(opl_root)}
    except (BaseError, OSError) as exc:
        return _failure(exc, "Failed to list game files.")


def get_art_folder(opl_root: str) -> Payload:
    try:
        return {"success": True, "data": list_art_files(opl_root)}
    except (BaseError, OSError) as exc:
        return _failure(exc, "Failed to read the ART folder.")


def download_art(art_dir: str, game_id: str, system: str = "PS2") -> Payload:
    return download_art_by_game_id(art_dir, game_id, system)


def rename_game(path: str, game_id: str, game_name: str) -> Payload:
    return rename_game_file(path, game_id, game_name).as_dict()


def identify_game(file_path: str) -> Payload:
    return scan_game_id(file_path).as_dict()


def convert_to_vcd(
    sheet_path: str,
    output_path: str,
    on_progress: ProgressCallback = None,
    on_stage: StageCallback = None,
    settings: Optional[ToolSettings] = None,
    runner: Optional[CommandRunner] = None,
) -> Payload:
    try:
        settings = resolve_settings(settings)
    except BaseError as exc:
        return _failure(exc, "Conversion failed.")
    return convert_cue_to_vcd(sheet_path, output_path, on_progress, on_stage, settings, runner).as_dict()


def cue2pops_available(settings: Optional[ToolSettings] = None) -> bool:
    try:
        return is_bundled_cue2pops_available(settings)
    except BaseError as exc:
        logger.warning("Could not check for bundled cue2pops: %s", exc)
        return False


def move(source: str, dest: str, on_progress: ProgressCallback = None) -> Payload:
    return _move_file(source, dest, on_progress).as_dict()


def ensure_elf(vcd_path: str, opl_root: str, settings: Optional[ToolSettings] = None) -> Payload:
    try:
        settings = resolve_settings(settings)
    except BaseError as exc:
        return _failure(exc, "Failed to create POPS ELF.")
    return ensure_pops_elf(vcd_path, opl_root, settings).as_dict()


def register_app(opl_root: str, game_name: Optional[str], elf_name: str) -> Payload:
    return add_to_conf_apps(opl_root, game_name, elf_name).as_dict()


def delete_game(
    opl_root: str,
    game_id: str,
    path: str,
    filename: str,
    extension: str,
    parent_path: str,
) -> Payload:
    return delete_game_and_related_files(opl_root, game_id, path, filename, extension, parent_path).as_dict()


def import_pops_game(
    sheet_path: str,
    opl_root: str,
    vcd_name: str,
    game_name: Optional[str] = None,
    on_progress: ProgressCallback = None,
    on_stage: StageCallback = None,
    settings: Optional[ToolSettings] = None,
    runner: Optional[CommandRunner] = None,
) -> Payload:
    """Convert a CUE/BIN into ``POPS/<vcd_name>.VCD`` and install its launcher and registry entry."""
    output_path = os.path.join(opl_root, "POPS", f"{vcd_name}.VCD")
    converted = convert_to_vcd(sheet_path, output_path, on_progress, on_stage, settings, runner)
    if not converted.get("success"):
        return converted

    elf = ensure_elf(output_path, opl_root, settings)
    if not elf.get("success"):
        return {"success": False, "message": elf.get("message"), "newPath": output_path}

    registry = register_app(opl_root, game_name, elf["elfName"])
    if not registry.get("success"):
        return {"success": False, "message": registry.get("message"), "newPath": output_path}

    return {"success": True, "newPath": output_path, "elfName": elf["elfName"]}
