"""Product code to display name lookup backed by flat text catalogs.

Each catalog line is ``<CODE> <name words...>``. Catalogs are loaded lazily,
once per family, from the first candidate location that yields entries.
A family with no usable catalog stays unresolved for the life of the store.
"""

from __future__ import annotations

import os
import logging
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Union

from ..config import load_settings
from ..exceptions import ConfigurationError
from ..utils.external_tools import PACKAGE_DIR
from ..utils.text_io import read_text

logger = logging.getLogger(__name__)

CATALOG_FILES: Dict[str, str] = {
    "PS2": "ps2-gameslist.txt",
    "PS1": "ps1-gameslist.txt",
}

CatalogReader = Callable[[str], str]


def normalize_code(raw_code: str) -> str:
    """``SLUS_203.12`` -> ``SLUS-20312``."""
    return raw_code.replace("_", "-", 1).replace(".", "").upper()


def parse_catalog(content: str) -> Dict[str, str]:
    entries: Dict[str, str] = {}
    for line in content.splitlines():
        parts = line.strip().split()
        if len(parts) < 2:
            continue
        entries[parts[0].upper()] = " ".join(parts[1:])
    return entries


def _family_key(family: Union[str, object]) -> str:
    return str(getattr(family, "name", family)).upper()


class CatalogStore:
    """Lazily loaded, per-family catalog maps."""

    def __init__(
        self,
        catalog_dir: Optional[str] = None,
        reader: Optional[CatalogReader] = None,
        search_dirs: Optional[List[str]] = None,
    ):
        self.catalog_dir = catalog_dir
        self._reader = reader or read_text
        self._search_dirs = search_dirs
        self._lock = threading.Lock()
        self._loaded: Dict[str, Optional[Mapping[str, str]]] = {}

    @classmethod
    def from_mappings(cls, mappings: Mapping[str, Mapping[str, str]]) -> "CatalogStore":
        """Store pre-populated with fixed maps; families absent from ``mappings`` are misses."""
        store = cls(search_dirs=[])
        for family in CATALOG_FILES:
            data = mappings.get(family)
            store._loaded[family] = (
                MappingProxyType({code.upper(): name for code, name in data.items()}) if data else None
            )
        return store

    def candidate_paths(self, family: str) -> List[str]:
        file_name = CATALOG_FILES[family]
        if self._search_dirs is not None:
            dirs = list(self._search_dirs)
        else:
            dirs = [
                str(PACKAGE_DIR.parent / "assets"),
                str(PACKAGE_DIR.parent.parent / "assets"),
                str(Path.cwd() / "assets"),
            ]
        if self.catalog_dir:
            dirs.insert(0, self.catalog_dir)
        return [os.path.join(directory, file_name) for directory in dirs]

    def _load(self, family: str) -> Optional[Mapping[str, str]]:
        for candidate in self.candidate_paths(family):
            try:
                entries = parse_catalog(self._reader(candidate))
            except (OSError, UnicodeDecodeError):
                continue
            if entries:
                logger.debug("Loaded %d %s catalog entries from %s", len(entries), family, candidate)
                return MappingProxyType(entries)
        logger.debug("No %s catalog found; names will be unavailable", family)
        return None

    def get(self, family: Union[str, object]) -> Optional[Mapping[str, str]]:
        key = _family_key(family)
        if key not in CATALOG_FILES:
            raise ValueError(f"Unknown catalog family: {family}")
        if key in self._loaded:
            return self._loaded[key]
        with self._lock:
            if key not in self._loaded:
                self._loaded[key] = self._load(key)
            return self._loaded[key]

    def lookup(self, family: Union[str, object], normalized_code: str) -> Optional[str]:
        catalog = self.get(family)
        if catalog is None:
            return None
        return catalog.get(normalized_code.upper())


_default_catalog: Optional[CatalogStore] = None
_default_lock = threading.Lock()


def get_default_catalog() -> CatalogStore:
    global _default_catalog
    with _default_lock:
        if _default_catalog is None:
            try:
                catalog_dir = load_settings().catalog_dir
            except ConfigurationError as exc:
                logger.warning("Ignoring catalog directory setting: %s", exc)
                catalog_dir = None
            _default_catalog = CatalogStore(catalog_dir=catalog_dir)
        return _default_catalog


def set_default_catalog(store: Optional[CatalogStore]) -> None:
    """Replace (or reset, with ``None``) the process-wide store."""
    global _default_catalog
    with _default_lock:
        _default_catalog = store
