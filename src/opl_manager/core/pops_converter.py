"""CUE/BIN to POPS VCD conversion through an external converter.

The converter is either the bundled cue2pops binary or a user shell command
template (``POPS_CONVERTER_CMD``) with ``{cue}`` and ``{vcd}`` placeholders.
Progress is estimated by sampling the size of the output file while the
converter runs.
"""

from __future__ import annotations

import os
import time
import shutil
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from ..config import CONVERTER_COMMAND_ENV, ToolSettings, resolve_settings
from ..exceptions import BaseError
from ..utils.external_tools import (
    CUE2POPS_TOOL_DIR,
    CommandRunner,
    build_converter_command,
    check_result,
    find_bundled_tool,
    get_default_runner,
)
from .binmerge import merge_if_needed
from .cue_sheet import total_referenced_size
from .models import (
    BYTES_PER_MB,
    ConversionProgress,
    OperationResult,
    ProgressCallback,
    StageCallback,
    notify,
    to_mb,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0
# Output files modified up to this long before the converter started still count.
RECENT_OUTPUT_SLACK_SECONDS = 0.5

MISSING_CONVERTER_MESSAGE = (
    f"Missing converter. Bundle cue2pops.exe or set {CONVERTER_COMMAND_ENV} "
    "with {cue} and {vcd} placeholders."
)
NO_OUTPUT_MESSAGE = "Conversion completed but no VCD output was detected in the POPS directory."


class ConversionStage(Enum):
    MERGING = "Merging BIN/CUE..."
    IMPORTING = "Importing..."
    FINALIZING = "Finalizing..."
    DONE = "Done"


@dataclass
class ConversionJob:
    input_sheet_path: str
    output_path: str
    total_bytes: int = 0
    merged_temp_dir: Optional[str] = None
    stage: ConversionStage = ConversionStage.IMPORTING


def _progress_for(written: int, total: int) -> ConversionProgress:
    percent = min(99.9, written / total * 100)
    return ConversionProgress(percent=round(percent, 1), written_mb=to_mb(written), total_mb=to_mb(total))


class OutputSizePoller(threading.Thread):
    """Samples the output file size once per interval until stopped."""

    def __init__(
        self,
        output_path: str,
        total_bytes: int,
        on_progress: Callable[[ConversionProgress], None],
        interval: float = POLL_INTERVAL_SECONDS,
    ):
        super().__init__(name="vcd-progress", daemon=True)
        self.output_path = output_path
        self.total_bytes = total_bytes
        self.on_progress = on_progress
        self.interval = interval
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                written = os.path.getsize(self.output_path)
            except OSError:
                continue
            notify(self.on_progress, _progress_for(written, self.total_bytes))

    def stop(self) -> None:
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=self.interval * 2)


def is_bundled_cue2pops_available(settings: Optional[ToolSettings] = None) -> bool:
    settings = resolve_settings(settings)
    return find_bundled_tool(CUE2POPS_TOOL_DIR, settings.resource_root) is not None


def select_converter(
    sheet_path: str,
    output_path: str,
    settings: ToolSettings,
) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(bundled_exe, shell_command)``; at most one is set."""
    bundled = find_bundled_tool(CUE2POPS_TOOL_DIR, settings.resource_root)
    if bundled:
        return bundled, None
    return None, build_converter_command(settings.converter_command, sheet_path, output_path)


def find_recent_vcd_files(directory: str, since: float) -> List[str]:
    """``.vcd`` files in ``directory`` modified at or after ``since``, newest first."""
    candidates: List[Tuple[float, str]] = []
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except FileNotFoundError:
        return []
    for entry in entries:
        if not entry.is_file() or os.path.splitext(entry.name)[1].lower() != ".vcd":
            continue
        mtime = entry.stat().st_mtime
        if mtime >= since:
            candidates.append((mtime, entry.path))
    candidates.sort(key=lambda item: item[0], reverse=True)
    return [path for _, path in candidates]


def _set_stage(job: ConversionJob, stage: ConversionStage, on_stage: StageCallback) -> None:
    job.stage = stage
    notify(on_stage, stage.value)


def convert_cue_to_vcd(
    sheet_path: str,
    output_path: str,
    on_progress: ProgressCallback = None,
    on_stage: StageCallback = None,
    settings: Optional[ToolSettings] = None,
    runner: Optional[CommandRunner] = None,
) -> OperationResult:
    """Convert a CUE/BIN set into a single POPS VCD image at ``output_path``."""
    job = ConversionJob(input_sheet_path=sheet_path, output_path=output_path)
    poller: Optional[OutputSizePoller] = None
    try:
        settings = resolve_settings(settings)
        runner = runner or get_default_runner()

        merge = merge_if_needed(sheet_path, on_stage=on_stage, settings=settings, runner=runner)
        if merge.merged:
            job.stage = ConversionStage.MERGING
        job.merged_temp_dir = merge.temp_dir
        effective_sheet = merge.result_sheet_path
        job.total_bytes = total_referenced_size(effective_sheet)

        bundled, command = select_converter(effective_sheet, output_path, settings)
        if not bundled and not command:
            logger.error(MISSING_CONVERTER_MESSAGE, extra={"location": "cue2pops"})
            return OperationResult.fail(MISSING_CONVERTER_MESSAGE)

        os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
        start = time.time() - RECENT_OUTPUT_SLACK_SECONDS

        _set_stage(job, ConversionStage.IMPORTING, on_stage)
        report_progress = on_progress is not None and job.total_bytes > 0
        if report_progress:
            poller = OutputSizePoller(output_path, job.total_bytes, on_progress)
            poller.start()

        if bundled:
            logger.info("Converting with bundled cue2pops: %s", bundled, extra={"location": "cue2pops"})
            check_result(runner.run_executable(bundled, [effective_sheet, output_path]), "Converter")
        else:
            logger.info("Converting with %s", CONVERTER_COMMAND_ENV, extra={"location": "cue2pops"})
            check_result(runner.run_shell(command), "Converter")

        _set_stage(job, ConversionStage.FINALIZING, on_stage)
        if poller is not None:
            poller.stop()
        if report_progress:
            total_mb = round(job.total_bytes / BYTES_PER_MB, 2)
            notify(on_progress, ConversionProgress(percent=100, written_mb=total_mb, total_mb=total_mb))

        if os.path.exists(output_path):
            return OperationResult.ok(output_path)

        recent = find_recent_vcd_files(os.path.dirname(os.path.abspath(output_path)), start)
        if not recent:
            logger.error(NO_OUTPUT_MESSAGE, extra={"location": "cue2pops"})
            return OperationResult.fail(NO_OUTPUT_MESSAGE)

        detected = recent[0]
        if os.path.abspath(detected) != os.path.abspath(output_path):
            logger.info("Renaming detected output %s -> %s", detected, output_path)
            try:
                os.rename(detected, output_path)
            except OSError as exc:
                return OperationResult.fail(
                    str(exc) or "Unable to rename the generated VCD to the expected filename."
                )
        return OperationResult.ok(output_path)
    except (BaseError, OSError) as exc:
        logger.error("Conversion failed: %s", exc, extra={"location": "cue2pops"})
        return OperationResult.fail(str(exc) or "Conversion failed.")
    finally:
        _set_stage(job, ConversionStage.DONE, on_stage)
        if poller is not None:
            poller.stop()
        if job.merged_temp_dir:
            try:
                shutil.rmtree(job.merged_temp_dir)
            except OSError as exc:
                logger.debug("Could not remove merge temp dir %s: %s", job.merged_temp_dir, exc)
