#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""OPL Manager - command line interface.

Examples:
    opl-manager scan /games/Game.iso
    opl-manager convert /rips/Game.cue /mnt/opl/POPS/Game.VCD
    opl-manager import-pops /rips/Game.cue /mnt/opl --name "Game Title"
    opl-manager move /downloads/Game.iso /mnt/opl/DVD
    opl-manager list /mnt/opl
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from .app import controller
from .core.models import ConversionProgress, MoveProgress
from .exceptions import ConfigurationError
from .logging_config import setup_logging
from .version import load_version

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(prog="opl-manager", description="OPL Manager - Open PS2 Loader library tools")
    parser.add_argument("--version", action="store_true", help="Show version information")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--log-dir", default=None, help="Directory for log files (default: ./logs)")
    parser.add_argument("--no-log-file", action="store_true", help="Disable log files")

    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser("scan", help="Detect the game ID of a disc image")
    scan.add_argument("path")

    convert = sub.add_parser("convert", help="Convert a CUE/BIN set to a POPS VCD")
    convert.add_argument("cue")
    convert.add_argument("vcd")

    import_pops = sub.add_parser("import-pops", help="Convert a CUE/BIN and install it into an OPL root")
    import_pops.add_argument("cue")
    import_pops.add_argument("opl_root")
    import_pops.add_argument("--name", default=None, help="Display name for conf_apps.cfg")
    import_pops.add_argument("--vcd-name", default=None, help="VCD file name without extension")

    move = sub.add_parser("move", help="Move a file, falling back to copy across volumes")
    move.add_argument("source")
    move.add_argument("dest")

    listing = sub.add_parser("list", help="List game images in an OPL root")
    listing.add_argument("opl_root")

    return parser.parse_args(argv)


def _print_progress(progress: Any) -> None:
    if isinstance(progress, ConversionProgress):
        print(f"  {progress.percent:5.1f}% ({progress.written_mb:.2f}/{progress.total_mb:.2f} MB)")
    elif isinstance(progress, MoveProgress):
        print(f"  {progress.percent:5.1f}% ({progress.copied_mb:.2f}/{progress.total_mb:.2f} MB) "
              f"- {progress.elapsed:.1f}s elapsed")


def _print_stage(stage: str) -> None:
    print(stage)


def _emit(result: Dict[str, Any], as_json: bool) -> int:
    if as_json:
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    elif result.get("success"):
        for key, value in result.items():
            if key not in ("success", "data"):
                print(f"{key}: {value}")
        for item in result.get("data") or []:
            print(f"{item.get('path')}  ({item.get('size', 0)} bytes)")
    else:
        print(f"Error: {result.get('message') or 'operation failed'}", file=sys.stderr)
    return 0 if result.get("success") else 1


def _vcd_name_for(cue_path: str) -> str:
    return os.path.splitext(os.path.basename(cue_path))[0]


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the command line tool."""
    args = parse_arguments(argv)

    if args.version:
        print(f"OPL Manager v{load_version()}")
        return 0

    setup_logging(
        log_level="DEBUG" if args.debug else None,
        log_dir=args.log_dir,
        enable_file_logging=not args.no_log_file,
        enable_console_logging=not args.json,
    )

    if not args.command:
        print("No command given. Use --help for usage.", file=sys.stderr)
        return 2

    on_progress = None if args.json else _print_progress
    on_stage = None if args.json else _print_stage

    try:
        if args.command == "scan":
            result = controller.identify_game(args.path)
        elif args.command == "convert":
            result = controller.convert_to_vcd(args.cue, args.vcd, on_progress, on_stage)
        elif args.command == "import-pops":
            result = controller.import_pops_game(
                args.cue,
                args.opl_root,
                args.vcd_name or _vcd_name_for(args.cue),
                game_name=args.name,
                on_progress=on_progress,
                on_stage=on_stage,
            )
        elif args.command == "move":
            result = controller.move(args.source, args.dest, on_progress)
        else:
            result = controller.get_games_files(args.opl_root)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        result = {"success": False, "message": str(exc)}

    return _emit(result, args.json)


if __name__ == "__main__":
    raise SystemExit(main())
