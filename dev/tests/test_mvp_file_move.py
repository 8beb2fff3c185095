from __future__ import annotations

import errno
import os
from pathlib import Path
from typing import List

import pytest

from opl_manager.core import file_utils
from opl_manager.core.file_utils import MoveOperation, move_file
from opl_manager.core.models import MoveProgress


def _cross_device_rename(src: str, dst: str) -> None:
    raise OSError(errno.EXDEV, "Invalid cross-device link", src)


def test_same_volume_move_uses_rename(tmp_path: Path) -> None:
    source = tmp_path / "Game.iso"
    source.write_bytes(b"iso")
    dest_dir = tmp_path / "DVD"
    dest_dir.mkdir()

    result = move_file(str(source), str(dest_dir))

    assert result.success
    assert result.new_path == str(dest_dir / "Game.iso")
    assert (dest_dir / "Game.iso").read_bytes() == b"iso"
    assert not source.exists()


def test_destination_parent_is_created(tmp_path: Path) -> None:
    source = tmp_path / "a.bin"
    source.write_bytes(b"a")
    target = tmp_path / "deep" / "nested" / "b.bin"

    result = move_file(str(source), str(target))

    assert result.success
    assert target.exists()


def test_cross_device_move_copies_with_progress(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(file_utils.os, "rename", _cross_device_rename)
    monkeypatch.setattr(file_utils, "COPY_CHUNK_BYTES", 1024)
    payload = os.urandom(10 * 1024 + 17)
    source = tmp_path / "src" / "Game.VCD"
    source.parent.mkdir()
    source.write_bytes(payload)
    progress: List[MoveProgress] = []

    result = move_file(str(source), str(tmp_path / "dst" / "Game.VCD"), progress.append, progress_interval=0.0)

    assert result.success
    assert (tmp_path / "dst" / "Game.VCD").read_bytes() == payload
    assert not source.exists()
    assert progress
    assert progress[-1].percent == 100.0
    percents = [p.percent for p in progress]
    assert percents == sorted(percents)


def test_cross_device_progress_is_throttled(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(file_utils.os, "rename", _cross_device_rename)
    monkeypatch.setattr(file_utils, "COPY_CHUNK_BYTES", 16)
    source = tmp_path / "big.iso"
    source.write_bytes(b"\x00" * 1024)
    progress: List[MoveProgress] = []

    result = move_file(str(source), str(tmp_path / "out.iso"), progress.append, progress_interval=3600)

    assert result.success
    assert progress == []


def test_failed_copy_removes_partial_destination(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(file_utils.os, "rename", _cross_device_rename)

    def broken_copy(operation, on_progress, interval):
        Path(operation.dest_path).write_bytes(b"partial")
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(file_utils, "_stream_copy", broken_copy)
    source = tmp_path / "Game.iso"
    source.write_bytes(b"data")
    target = tmp_path / "out" / "Game.iso"

    result = move_file(str(source), str(target))

    assert not result.success
    assert "No space left" in (result.message or "")
    assert not target.exists()
    assert source.exists()


def test_other_rename_errors_are_reported(tmp_path: Path) -> None:
    result = move_file(str(tmp_path / "missing.iso"), str(tmp_path / "dest.iso"))

    assert not result.success
    assert result.message


def test_move_operation_clamps_copied_bytes() -> None:
    operation = MoveOperation(source_path="a", dest_path="b", total_bytes=100)

    operation.advance(60)
    operation.advance(60)
    operation.advance(-5)

    assert operation.copied_bytes == 100
    assert operation.progress().percent == 100.0
