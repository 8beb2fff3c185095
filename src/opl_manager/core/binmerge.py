"""Multi-track BIN/CUE merging through the external binmerge tool."""

from __future__ import annotations

import os
import shutil
import logging
import tempfile
from typing import Optional

from ..config import BINMERGE_PATH_ENV, ToolSettings, resolve_settings
from ..exceptions import ConfigurationError, NotFoundError
from ..security.security_utils import sanitize_filename
from ..utils.external_tools import (
    BINMERGE_TOOL_DIR,
    CommandRunner,
    check_result,
    find_bundled_tool,
    get_default_runner,
)
from .cue_sheet import count_file_entries
from .models import MergeResult, StageCallback, notify

logger = logging.getLogger(__name__)

MERGE_STAGE = "Merging BIN/CUE..."


def locate_binmerge(settings: ToolSettings) -> Optional[str]:
    if settings.binmerge_path:
        return settings.binmerge_path
    return find_bundled_tool(BINMERGE_TOOL_DIR, settings.resource_root)


def _remove_dir(path: str) -> None:
    shutil.rmtree(path, ignore_errors=True)


def merge_if_needed(
    sheet_path: str,
    on_stage: StageCallback = None,
    settings: Optional[ToolSettings] = None,
    runner: Optional[CommandRunner] = None,
) -> MergeResult:
    """Merge a multi-FILE sheet into a single-track sheet.

    Sheets with at most one FILE entry are returned untouched. On success
    the caller owns ``temp_dir`` and must remove it.

    Raises:
        ConfigurationError: binmerge could not be located
        ExternalToolError: binmerge exited non-zero
        NotFoundError: binmerge succeeded without producing the merged sheet
    """
    entries = count_file_entries(sheet_path)
    if entries <= 1:
        return MergeResult(result_sheet_path=sheet_path, merged=False)

    notify(on_stage, MERGE_STAGE)
    logger.info("Multi-track CUE detected (%d tracks). Running binmerge...", entries,
                extra={"location": "binmerge"})

    settings = resolve_settings(settings)
    binmerge = locate_binmerge(settings)
    if not binmerge:
        raise ConfigurationError(
            f"Multi-track BIN/CUE detected but binmerge is missing. "
            f"Set {BINMERGE_PATH_ENV} or bundle binmerge.",
            setting=BINMERGE_PATH_ENV,
        )

    runner = runner or get_default_runner()
    temp_dir = tempfile.mkdtemp(prefix="binmerge-")
    base_name = sanitize_filename(f"{os.path.splitext(os.path.basename(sheet_path))[0]}_merged")
    logger.debug("binmerge: %s", binmerge, extra={"location": "binmerge"})
    logger.debug("binmerge output dir: %s", temp_dir, extra={"location": "binmerge"})

    try:
        check_result(
            runner.run_executable(binmerge, ["--outdir", temp_dir, sheet_path, base_name]),
            "binmerge",
        )
        merged_sheet = os.path.join(temp_dir, f"{base_name}.cue")
        if not os.path.isfile(merged_sheet):
            raise NotFoundError("binmerge did not produce a merged CUE sheet.", path=merged_sheet)
    except Exception:
        _remove_dir(temp_dir)
        raise

    logger.info("binmerge completed: %s", merged_sheet, extra={"location": "binmerge"})
    return MergeResult(result_sheet_path=merged_sheet, merged=True, temp_dir=temp_dir)
