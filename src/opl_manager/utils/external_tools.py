"""External tools integration (bundled binaries and configured commands)."""

from __future__ import annotations

import os
import sys
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..exceptions import ExternalToolError

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parents[1]

CUE2POPS_TOOL_DIR = "cue2pops"
BINMERGE_TOOL_DIR = "binmerge"

CUE_PLACEHOLDER = "{cue}"
VCD_PLACEHOLDER = "{vcd}"


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def failure_message(self, tool_label: str) -> str:
        """stderr, else stdout, else a generic exit-code message."""
        message = (self.stderr or "").strip() or (self.stdout or "").strip()
        return message or f"{tool_label} exited with code {self.exit_code}"


def _quote_arg(value: str) -> str:
    if not value:
        return '""'
    if any(ch in value for ch in (" ", "\t", "\"")):
        return '"' + value.replace('"', '\\"') + '"'
    return value


def _stringify_command(cmd: Union[str, Sequence[str]]) -> str:
    if isinstance(cmd, str):
        return cmd
    if isinstance(cmd, (list, tuple)):
        return " ".join(_quote_arg(str(part)) for part in cmd)
    return str(cmd)


class CommandRunner:
    """Runs external programs to completion with captured output.

    Tests substitute a fake with the same two methods.
    """

    def run_executable(self, executable: str, args: Sequence[str]) -> CommandResult:
        cmd: List[str] = [str(executable)] + [str(arg) for arg in args]
        logger.debug("Running: %s", _stringify_command(cmd))
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except OSError as exc:
            raise ExternalToolError(str(exc), tool=str(executable)) from exc
        return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")

    def run_shell(self, command: str) -> CommandResult:
        logger.debug("Running shell command: %s", command)
        try:
            completed = subprocess.run(command, shell=True, capture_output=True, text=True, errors="replace")
        except OSError as exc:
            raise ExternalToolError(str(exc), tool=command) from exc
        return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")


_default_runner = CommandRunner()


def get_default_runner() -> CommandRunner:
    return _default_runner


def check_result(result: CommandResult, tool_label: str) -> CommandResult:
    """Raise ExternalToolError for a non-zero exit."""
    if not result.success:
        raise ExternalToolError(
            result.failure_message(tool_label),
            tool=tool_label,
            exit_code=result.exit_code,
            details={'stdout': result.stdout, 'stderr': result.stderr},
        )
    return result


# ---------------------------------------------------------------------------
# Bundled tool discovery
# ---------------------------------------------------------------------------

def platform_dir() -> str:
    if os.name == "nt":
        return "windows-x64"
    if sys.platform == "darwin":
        return "darwin-x64"
    return "linux-x64"


def executable_name(base: str) -> str:
    return f"{base}.exe" if os.name == "nt" else base


def find_first_existing(
    candidates: Iterable[Union[str, Path]],
    exists: Callable[[str], bool] = os.path.exists,
) -> Optional[str]:
    """Return the first candidate for which ``exists`` is true."""
    for candidate in candidates:
        if not candidate:
            continue
        path = str(candidate)
        try:
            if exists(path):
                return path
        except OSError:
            continue
    return None


def search_roots(resource_root: Optional[str] = None) -> List[Path]:
    """Ordered roots searched for bundled resources."""
    roots: List[Path] = []
    if resource_root:
        base = Path(resource_root).resolve()
        roots.append(base / "app.asar.unpacked")
        roots.append(base)
    roots.append(Path.cwd())
    roots.append(PACKAGE_DIR.parent)
    roots.append(PACKAGE_DIR.parent.parent)
    return roots


def bundled_tool_candidates(tool_dir: str, resource_root: Optional[str] = None) -> List[Path]:
    relative = Path("assets") / "tools" / tool_dir / platform_dir() / executable_name(tool_dir)
    return [root / relative for root in search_roots(resource_root)]


def find_bundled_tool(
    tool_dir: str,
    resource_root: Optional[str] = None,
    exists: Callable[[str], bool] = os.path.exists,
) -> Optional[str]:
    found = find_first_existing(bundled_tool_candidates(tool_dir, resource_root), exists=exists)
    if found:
        logger.debug("Bundled %s found: %s", tool_dir, found)
    return found


def build_converter_command(template: Optional[str], cue_path: str, vcd_path: str) -> Optional[str]:
    """Substitute {cue}/{vcd} into a shell command template.

    Quoted placeholders keep their quotes; bare placeholders become
    double-quoted paths. Returns None when the template does not end up
    containing both paths.
    """
    if not template:
        return None

    command = template
    for placeholder, value in ((CUE_PLACEHOLDER, cue_path), (VCD_PLACEHOLDER, vcd_path)):
        command = command.replace(f'"{placeholder}"', f'"{value}"')
        command = command.replace(f"'{placeholder}'", f"'{value}'")
    command = command.replace(CUE_PLACEHOLDER, f'"{cue_path}"')
    command = command.replace(VCD_PLACEHOLDER, f'"{vcd_path}"')

    if cue_path not in command or vcd_path not in command:
        return None
    return command
