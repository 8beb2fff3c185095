"""Public API surface for UI and integrations.

Centralizes stable imports to keep adapters decoupled from core internals.
"""

from __future__ import annotations

from ..core.models import (
    ConversionProgress,
    DeleteResult,
    GameIdResult,
    MoveProgress,
    OperationResult,
    ProgressCallback,
    StageCallback,
)
from ..logging_config import set_log_emitter
from .controller import (
    convert_to_vcd,
    cue2pops_available,
    delete_game,
    download_art,
    ensure_elf,
    get_art_folder,
    get_games_files,
    identify_game,
    import_pops_game,
    move,
    register_app,
    rename_game,
)
from .progress_streams import ProgressEvent, convert_cue_to_vcd_stream, move_file_stream

__all__ = [
    "ConversionProgress",
    "DeleteResult",
    "GameIdResult",
    "MoveProgress",
    "OperationResult",
    "ProgressCallback",
    "ProgressEvent",
    "StageCallback",
    "convert_cue_to_vcd_stream",
    "convert_to_vcd",
    "cue2pops_available",
    "delete_game",
    "download_art",
    "ensure_elf",
    "get_art_folder",
    "get_games_files",
    "identify_game",
    "import_pops_game",
    "move",
    "move_file_stream",
    "register_app",
    "rename_game",
    "set_log_emitter",
]
