"""CUE sheet parsing: referenced data files, their sizes and FILE counts."""

from __future__ import annotations

import os
import re
import logging
from typing import List

from ..exceptions import FileOperationError, SheetParseError
from ..utils.text_io import decode_text

logger = logging.getLogger(__name__)

QUOTED_FILE_RE = re.compile(r'^FILE\s+"(.+?)"\s+\w+', re.IGNORECASE)
BARE_FILE_RE = re.compile(r'^FILE\s+(.+?)\s+\w+', re.IGNORECASE)
FILE_ENTRY_RE = re.compile(r'^\s*FILE\s+', re.IGNORECASE | re.MULTILINE)


def read_sheet_text(sheet_path: str) -> str:
    """Read a sheet as text.

    UTF-8 first; sheets written by older rippers in a legacy code page are
    decoded with the encoding chardet detects. Undecodable bytes are replaced.
    """
    try:
        with open(sheet_path, 'rb') as handle:
            raw = handle.read()
    except OSError as exc:
        raise FileOperationError(str(exc), file_path=sheet_path, operation="read") from exc

    return decode_text(raw)


def _parse_reference(line: str) -> str:
    match = QUOTED_FILE_RE.match(line) or BARE_FILE_RE.match(line)
    return match.group(1) if match else ""


def extract_references(sheet_path: str) -> List[str]:
    """Absolute paths of every FILE entry, in declaration order."""
    sheet_dir = os.path.dirname(os.path.abspath(sheet_path))
    references: List[str] = []
    for line in read_sheet_text(sheet_path).splitlines():
        trimmed = line.strip()
        if not trimmed.upper().startswith("FILE"):
            continue
        reference = _parse_reference(trimmed)
        if reference:
            references.append(os.path.abspath(os.path.join(sheet_dir, reference)))
    return references


def resolve_first_reference(sheet_path: str) -> str:
    references = extract_references(sheet_path)
    if not references:
        raise SheetParseError(
            "Unable to locate a referenced BIN file in the CUE sheet.",
            sheet_path=sheet_path,
        )
    return references[0]


def total_referenced_size(sheet_path: str) -> int:
    """Sum of the sizes of referenced regular files; missing ones are skipped."""
    total = 0
    for reference in extract_references(sheet_path):
        try:
            if os.path.isfile(reference):
                total += os.path.getsize(reference)
        except OSError:
            continue
    return total


def count_file_entries(sheet_path: str) -> int:
    return len(FILE_ENTRY_RE.findall(read_sheet_text(sheet_path)))
