"""OPL artwork: listing the ART folder and fetching covers from the art database."""

from __future__ import annotations

import os
import base64
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

ART_DB_BASE_URL = "https://raw.githubusercontent.com/Luden02/psx-ps2-opl-art-database/refs/heads/main"
ART_TYPES = ("COV", "ICO", "SCR")
ART_EXTENSIONS = (".jpg", ".png")
REQUEST_TIMEOUT_SECONDS = 30


def _parse_art_name(file_name: str) -> Dict[str, str]:
    """``SLUS_203.12_COV.png`` -> game id ``SLUS_203.12``, type ``COV``."""
    parts = file_name.split("_")
    game_id = "_".join(parts[:2]) if len(parts) > 1 else parts[0]
    art_type = parts[2].split(".")[0] if len(parts) > 2 else ""
    return {"game_id": game_id, "type": art_type}


def list_art_files(opl_root: str, include_content: bool = True) -> List[Dict[str, Any]]:
    art_dir = os.path.join(opl_root, "ART")
    with os.scandir(art_dir) as it:
        entries = sorted(it, key=lambda entry: entry.name)

    art_files: List[Dict[str, Any]] = []
    for entry in entries:
        if not entry.is_file() or entry.name.startswith("."):
            continue
        name, ext = os.path.splitext(entry.name)
        if ext.lower() not in ART_EXTENSIONS:
            continue
        item: Dict[str, Any] = {"name": name, "extension": ext, "path": entry.path}
        item.update(_parse_art_name(entry.name))
        if include_content:
            with open(entry.path, "rb") as handle:
                item["base64"] = base64.b64encode(handle.read()).decode("ascii")
        art_files.append(item)
    return art_files


def art_url(system: str, game_id: str, art_type: str) -> str:
    return f"{ART_DB_BASE_URL}/{system}/{game_id}/{game_id}_{art_type}.png"


def download_art_by_game_id(
    art_dir: str,
    game_id: str,
    system: str = "PS2",
    session: Optional[requests.Session] = None,
) -> Dict[str, Any]:
    """Fetch the COV/ICO/SCR images for ``game_id`` into ``art_dir``.

    Each art type is reported separately with either ``saved_path`` or
    ``error``; a missing image does not stop the others.
    """
    http = session or requests
    results: List[Dict[str, Any]] = []
    for art_type in ART_TYPES:
        file_name = f"{game_id}_{art_type}.png"
        url = art_url(system, game_id, art_type)
        item: Dict[str, Any] = {"name": game_id, "type": art_type, "url": url}
        try:
            response = http.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
            if response.status_code != 200:
                raise requests.HTTPError(f"Failed to download {file_name}: {response.status_code}")
            os.makedirs(art_dir, exist_ok=True)
            save_path = os.path.join(art_dir, file_name)
            with open(save_path, "wb") as handle:
                handle.write(response.content)
            item["saved_path"] = save_path
            logger.info("Downloaded %s", file_name, extra={"location": "art"})
        except (requests.RequestException, OSError) as exc:
            logger.warning("Art download failed for %s: %s", file_name, exc, extra={"location": "art"})
            item["error"] = str(exc)
        results.append(item)
    return {"success": True, "data": results}
