"""Result and progress types shared by the core operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class OperationResult:
    success: bool
    message: Optional[str] = None
    new_path: Optional[str] = None
    skipped: bool = False
    elf_name: Optional[str] = None

    @classmethod
    def ok(cls, new_path: Optional[str] = None, **kwargs: Any) -> "OperationResult":
        return cls(success=True, new_path=new_path, **kwargs)

    @classmethod
    def fail(cls, message: str) -> "OperationResult":
        return cls(success=False, message=message)

    def as_dict(self) -> Dict[str, Any]:
        data = _compact({
            "success": self.success,
            "message": self.message,
            "newPath": self.new_path,
            "elfName": self.elf_name,
        })
        if self.skipped:
            data["skipped"] = True
        return data


@dataclass(frozen=True)
class GameIdResult:
    success: bool
    game_id: Optional[str] = None
    formatted_game_id: Optional[str] = None
    game_name: Optional[str] = None
    message: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return _compact({
            "success": self.success,
            "gameId": self.game_id,
            "formattedGameId": self.formatted_game_id,
            "gameName": self.game_name,
            "message": self.message,
        })


@dataclass(frozen=True)
class MergeResult:
    result_sheet_path: str
    merged: bool
    # Owned by the caller when set; must be removed once the sheet is consumed.
    temp_dir: Optional[str] = None


@dataclass(frozen=True)
class DeleteResult:
    success: bool
    removed: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "removed": list(self.removed),
            "missing": list(self.missing),
            "errors": [dict(item) for item in self.errors],
        }


@dataclass(frozen=True)
class ConversionProgress:
    percent: float
    written_mb: float
    total_mb: float

    def as_dict(self) -> Dict[str, float]:
        return {"percent": self.percent, "writtenMB": self.written_mb, "totalMB": self.total_mb}


@dataclass(frozen=True)
class MoveProgress:
    percent: float
    copied_mb: float
    total_mb: float
    elapsed: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "percent": self.percent,
            "copiedMB": self.copied_mb,
            "totalMB": self.total_mb,
            "elapsed": self.elapsed,
        }


StageCallback = Optional[Callable[[str], None]]
ProgressCallback = Optional[Callable[[Union[ConversionProgress, MoveProgress]], None]]

BYTES_PER_MB = 1024 * 1024


def to_mb(num_bytes: int) -> float:
    return round(num_bytes / BYTES_PER_MB, 2)


def notify(callback: Optional[Callable[[Any], None]], payload: Any) -> None:
    """Invoke a listener; its failures are logged and never abort the job."""
    if callback is None:
        return
    try:
        callback(payload)
    except Exception:
        logger.exception("Listener callback failed")
