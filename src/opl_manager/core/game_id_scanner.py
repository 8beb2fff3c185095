"""Disc image identification by scanning raw bytes for product codes."""

from __future__ import annotations

import os
import re
import logging
from enum import Enum
from typing import Optional, Pattern, Tuple

from ..exceptions import BaseError
from .catalog import CatalogStore, get_default_catalog, normalize_code
from .cue_sheet import resolve_first_reference
from .models import GameIdResult

logger = logging.getLogger(__name__)

SCAN_CHUNK_BYTES = 1024 * 1024
SCAN_OVERLAP_CHARS = 64

NO_ID_MESSAGE = "Could not locate a game ID inside the provided file."

_PS1_EXTENSIONS = (".vcd", ".cue")


def _compile_code_pattern(prefixes: Tuple[str, ...]) -> Pattern[str]:
    return re.compile(r"(?:%s)_[0-9]{3}\.[0-9]{2}(?:;1)?" % "|".join(prefixes))


class ProductCodeFamily(Enum):
    PS2 = (
        "SLUS", "SCUS", "SLES", "SCES", "SLPM", "SLPS", "SCPS",
        "SCPM", "SLAJ", "SCAJ", "SLKA", "SCKA", "SCED", "SCCS",
    )
    PS1 = (
        "SLUS", "SLES", "SCUS", "SCES", "SLPS", "SCPS",
        "SLPM", "SCED", "SLED", "SLKA", "SCKA", "SIPS",
    )

    def __init__(self, *prefixes: str):
        self.prefixes = prefixes
        self.pattern = _compile_code_pattern(prefixes)

    @classmethod
    def for_path(cls, file_path: str) -> "ProductCodeFamily":
        ext = os.path.splitext(file_path)[1].lower()
        return cls.PS1 if ext in _PS1_EXTENSIONS else cls.PS2


def _find_code(handle, pattern: Pattern[str]) -> Optional[str]:
    carry = ""
    while True:
        data = handle.read(SCAN_CHUNK_BYTES)
        if not data:
            return None
        text = carry + data.decode("latin-1")
        match = pattern.search(text)
        if match:
            return match.group(0)
        carry = text[-SCAN_OVERLAP_CHARS:]


def scan_game_id(file_path: str, catalog: Optional[CatalogStore] = None) -> GameIdResult:
    """Find the first product code embedded in a disc image.

    ``.cue`` sheets are resolved to their first referenced data file before
    scanning. The display name comes from the catalog when one is available.
    """
    family = ProductCodeFamily.for_path(file_path)
    scan_path = file_path
    try:
        if file_path.lower().endswith(".cue"):
            scan_path = resolve_first_reference(file_path)
        with open(scan_path, "rb") as handle:
            raw_code = _find_code(handle, family.pattern)
    except (OSError, BaseError) as exc:
        logger.error("Game ID scan failed for %s: %s", file_path, exc)
        return GameIdResult(success=False, message=str(exc) or "Failed while reading file contents.")

    if raw_code is None:
        logger.info("No game ID found in %s", scan_path)
        return GameIdResult(success=False, message=NO_ID_MESSAGE)

    game_id = raw_code[:-2] if raw_code.endswith(";1") else raw_code
    formatted = normalize_code(game_id)
    store = catalog if catalog is not None else get_default_catalog()
    game_name = store.lookup(family.name, formatted)
    logger.info("Detected game ID %s (%s)", formatted, game_name or "unknown title")
    return GameIdResult(success=True, game_id=game_id, formatted_game_id=formatted, game_name=game_name)
