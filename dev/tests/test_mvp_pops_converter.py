from __future__ import annotations

import os
import sys
import time
from pathlib import Path
from typing import List, Sequence

import pytest

from opl_manager.config import ToolSettings
from opl_manager.core.models import ConversionProgress
from opl_manager.core.pops_converter import (
    MISSING_CONVERTER_MESSAGE,
    NO_OUTPUT_MESSAGE,
    OutputSizePoller,
    convert_cue_to_vcd,
    find_recent_vcd_files,
)
from opl_manager.utils.external_tools import CommandResult


def _single_track(tmp_path: Path, size: int = 4096) -> Path:
    (tmp_path / "game.bin").write_bytes(b"\x01" * size)
    sheet = tmp_path / "game.cue"
    sheet.write_text('FILE "game.bin" BINARY\n  TRACK 01 MODE2/2352\n', encoding="utf-8")
    return sheet


class ShellRunner:
    """Fake runner: the shell command writes ``payload`` to ``target``."""

    def __init__(self, target: Path, payload: bytes = b"VCD", exit_code: int = 0, stderr: str = "") -> None:
        self.target = target
        self.payload = payload
        self.exit_code = exit_code
        self.stderr = stderr
        self.commands: List[str] = []

    def run_executable(self, executable: str, args: Sequence[str]) -> CommandResult:
        if list(args[:1]) == ["--outdir"]:
            Path(args[1], f"{args[3]}.cue").write_text('FILE "merged.bin" BINARY\n', encoding="utf-8")
            Path(args[1], "merged.bin").write_bytes(b"\x02" * 1000)
            return CommandResult(0, "", "")
        raise AssertionError("unexpected executable call")

    def run_shell(self, command: str) -> CommandResult:
        self.commands.append(command)
        if self.exit_code == 0:
            self.target.write_bytes(self.payload)
        return CommandResult(self.exit_code, "", self.stderr)


@pytest.mark.integration
def test_end_to_end_with_converter_command(tmp_path: Path) -> None:
    sheet = _single_track(tmp_path, size=2 * 1024 * 1024)
    script = tmp_path / "fake_cue2pops.py"
    script.write_text(
        "import sys, pathlib\n"
        "cue = pathlib.Path(sys.argv[1])\n"
        "out = pathlib.Path(sys.argv[2])\n"
        "out.write_bytes((cue.parent / 'game.bin').read_bytes())\n",
        encoding="utf-8",
    )
    settings = ToolSettings(converter_command=f'"{sys.executable}" "{script}" {{cue}} {{vcd}}')
    output = tmp_path / "POPS" / "Game.VCD"
    progress: List[ConversionProgress] = []
    stages: List[str] = []

    result = convert_cue_to_vcd(str(sheet), str(output), progress.append, stages.append, settings=settings)

    assert result.success, result.message
    assert result.new_path == str(output)
    assert output.read_bytes() == (tmp_path / "game.bin").read_bytes()
    assert stages == ["Importing...", "Finalizing...", "Done"]
    assert progress
    assert progress[-1].percent == 100
    assert progress[-1].total_mb == 2.0
    assert all(p.percent <= 99.9 for p in progress[:-1])


def test_missing_converter_fails_and_still_reports_done(tmp_path: Path) -> None:
    sheet = _single_track(tmp_path)
    stages: List[str] = []

    result = convert_cue_to_vcd(
        str(sheet),
        str(tmp_path / "POPS" / "Game.VCD"),
        on_stage=stages.append,
        settings=ToolSettings(converter_command="cue2pops --no-placeholders"),
    )

    assert not result.success
    assert result.message == MISSING_CONVERTER_MESSAGE
    assert stages == ["Done"]


def test_converter_failure_message_uses_stderr(tmp_path: Path) -> None:
    sheet = _single_track(tmp_path)
    output = tmp_path / "POPS" / "Game.VCD"
    runner = ShellRunner(output, exit_code=1, stderr="cue2pops: bad sector\n")

    result = convert_cue_to_vcd(
        str(sheet), str(output), settings=ToolSettings(converter_command="conv {cue} {vcd}"), runner=runner
    )

    assert not result.success
    assert result.message == "cue2pops: bad sector"
    assert runner.commands == [f'conv "{sheet}" "{output}"']


def test_output_under_other_name_is_renamed(tmp_path: Path) -> None:
    sheet = _single_track(tmp_path)
    pops = tmp_path / "POPS"
    output = pops / "Game.VCD"
    runner = ShellRunner(pops / "GAME_OTHER.vcd")

    result = convert_cue_to_vcd(
        str(sheet), str(output), settings=ToolSettings(converter_command="conv {cue} {vcd}"), runner=runner
    )

    assert result.success
    assert output.exists()
    assert not (pops / "GAME_OTHER.vcd").exists()


def test_no_output_detected(tmp_path: Path) -> None:
    sheet = _single_track(tmp_path)
    pops = tmp_path / "POPS"
    runner = ShellRunner(tmp_path / "elsewhere.bin")

    result = convert_cue_to_vcd(
        str(sheet), str(pops / "Game.VCD"), settings=ToolSettings(converter_command="conv {cue} {vcd}"), runner=runner
    )

    assert not result.success
    assert result.message == NO_OUTPUT_MESSAGE


def test_multi_track_sheet_is_merged_and_temp_dir_removed(tmp_path: Path) -> None:
    (tmp_path / "t1.bin").write_bytes(b"\x00" * 10)
    (tmp_path / "t2.bin").write_bytes(b"\x00" * 10)
    sheet = tmp_path / "multi.cue"
    sheet.write_text('FILE "t1.bin" BINARY\nFILE "t2.bin" BINARY\n', encoding="utf-8")
    output = tmp_path / "POPS" / "Multi.VCD"
    runner = ShellRunner(output)
    stages: List[str] = []
    progress: List[ConversionProgress] = []

    result = convert_cue_to_vcd(
        str(sheet),
        str(output),
        on_progress=progress.append,
        on_stage=stages.append,
        settings=ToolSettings(converter_command="conv {cue} {vcd}", binmerge_path="binmerge"),
        runner=runner,
    )

    assert result.success
    assert stages == ["Merging BIN/CUE...", "Importing...", "Finalizing...", "Done"]
    merged_sheet = runner.commands[0].split('"')[1]
    assert os.path.basename(merged_sheet) == "multi_merged.cue"
    assert not os.path.exists(os.path.dirname(merged_sheet))
    # size comes from the merged sheet's single track
    assert progress[-1].total_mb == round(1000 / (1024 * 1024), 2)


def test_failing_progress_listener_does_not_abort(tmp_path: Path) -> None:
    sheet = _single_track(tmp_path)
    output = tmp_path / "POPS" / "Game.VCD"

    def explode(_progress: ConversionProgress) -> None:
        raise RuntimeError("listener crashed")

    result = convert_cue_to_vcd(
        str(sheet),
        str(output),
        on_progress=explode,
        settings=ToolSettings(converter_command="conv {cue} {vcd}"),
        runner=ShellRunner(output),
    )

    assert result.success


def test_poller_caps_percent_below_100(tmp_path: Path) -> None:
    output = tmp_path / "out.vcd"
    output.write_bytes(b"\x00" * 300)
    seen: List[ConversionProgress] = []

    poller = OutputSizePoller(str(output), total_bytes=200, on_progress=seen.append, interval=0.01)
    poller.start()
    deadline = time.time() + 5
    while not seen and time.time() < deadline:
        time.sleep(0.01)
    poller.stop()

    assert seen
    assert seen[0].percent == 99.9
    assert not poller.is_alive()


def test_find_recent_vcd_files_newest_first(tmp_path: Path) -> None:
    old = tmp_path / "old.vcd"
    new = tmp_path / "new.VCD"
    other = tmp_path / "note.txt"
    for path in (old, new, other):
        path.write_bytes(b"x")
    now = time.time()
    os.utime(old, (now - 100, now - 100))
    os.utime(new, (now, now))

    assert find_recent_vcd_files(str(tmp_path), now - 10) == [str(new)]
    assert find_recent_vcd_files(str(tmp_path), now - 1000) == [str(new), str(old)]
    assert find_recent_vcd_files(str(tmp_path / "missing"), 0) == []
