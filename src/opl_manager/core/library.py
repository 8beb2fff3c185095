"""OPL library maintenance: listing, renaming and deleting installed games."""

from __future__ import annotations

import os
import logging
from typing import Any, Dict, List

from .models import DeleteResult, OperationResult
from .pops_companion import CONF_APPS_NAME, POPS_DIR, remove_from_conf_apps

logger = logging.getLogger(__name__)

GAME_DIRS = ("CD", "DVD", POPS_DIR)
GAME_EXTENSIONS = (".iso", ".zso", ".vcd")
ART_DIR = "ART"


def list_game_files(opl_root: str) -> List[Dict[str, Any]]:
    """Game images in the CD, DVD and POPS folders of an OPL root."""
    files: List[Dict[str, Any]] = []
    for folder in GAME_DIRS:
        parent = os.path.join(opl_root, folder)
        try:
            with os.scandir(parent) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except FileNotFoundError:
            continue
        for entry in entries:
            if not entry.is_file() or entry.name.startswith("."):
                continue
            name, ext = os.path.splitext(entry.name)
            if ext.lower() not in GAME_EXTENSIONS:
                continue
            stat = entry.stat()
            files.append({
                "extension": ext,
                "name": name,
                "parent_path": parent,
                "path": entry.path,
                "size": stat.st_size,
                "modified": stat.st_mtime,
            })
    return files


def rename_game_file(path: str, game_id: str, game_name: str) -> OperationResult:
    """Rename to OPL's ``<game_id>.<game_name><ext>`` convention in place."""
    ext = os.path.splitext(path)[1]
    new_path = os.path.join(os.path.dirname(path), f"{game_id}.{game_name}{ext}")
    try:
        os.rename(path, new_path)
    except OSError as exc:
        logger.error("Rename failed for %s: %s", path, exc)
        return OperationResult.fail(str(exc))
    logger.info("Renamed %s -> %s", os.path.basename(path), os.path.basename(new_path))
    return OperationResult.ok(new_path)


class _DeletionLedger:
    def __init__(self) -> None:
        self.removed: List[str] = []
        self.missing: List[str] = []
        self.errors: List[Dict[str, str]] = []

    def remove(self, path: str) -> None:
        try:
            os.remove(path)
            self.removed.append(path)
        except FileNotFoundError:
            self.missing.append(path)
        except OSError as exc:
            self.errors.append({"path": path, "message": str(exc)})

    def result(self) -> DeleteResult:
        return DeleteResult(
            success=not self.errors,
            removed=self.removed,
            missing=self.missing,
            errors=self.errors,
        )


def delete_game_and_related_files(
    opl_root: str,
    game_id: str,
    path: str,
    filename: str,
    extension: str,
    parent_path: str,
) -> DeleteResult:
    """Delete a game image with its artwork and, for POPS games, its launcher and registry entry."""
    ledger = _DeletionLedger()
    ledger.remove(path)

    art_dir = os.path.join(opl_root, ART_DIR)
    prefix = f"{game_id.upper()}_"
    try:
        with os.scandir(art_dir) as it:
            art_files = [entry.path for entry in it if entry.is_file() and entry.name.upper().startswith(prefix)]
    except FileNotFoundError:
        art_files = []
    except OSError as exc:
        ledger.errors.append({"path": art_dir, "message": str(exc)})
        art_files = []
    for art_file in sorted(art_files):
        ledger.remove(art_file)

    is_pops = extension.lower() == ".vcd" or parent_path.rstrip("/\\").upper().endswith(POPS_DIR)
    if is_pops:
        stem = filename[:-len(extension)] if extension and filename.endswith(extension) else filename
        elf_name = f"XX.{stem}.ELF"
        ledger.remove(os.path.join(opl_root, POPS_DIR, elf_name))
        registry = remove_from_conf_apps(opl_root, elf_name)
        if not registry.success:
            ledger.errors.append({"path": os.path.join(opl_root, CONF_APPS_NAME), "message": registry.message or ""})

    result = ledger.result()
    logger.info(
        "Deleted %s: %d removed, %d missing, %d errors",
        filename, len(result.removed), len(result.missing), len(result.errors),
    )
    return result
