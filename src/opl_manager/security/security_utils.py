#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
OPL Manager - Sanitization Utilities

Name cleanup for files handed to external tools and for labels written
into the OPL application registry.
"""

import re

_UNSAFE_FILENAME_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f-\x9f]')
_CONF_LABEL_RE = re.compile(r'["\r\n]')


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """Sanitize filenames for safe use across file systems."""
    if not filename:
        raise ValueError("Filename must not be empty")

    sanitized = _UNSAFE_FILENAME_RE.sub('_', filename)
    sanitized = sanitized.strip(' .')

    if not sanitized:
        sanitized = "unknown_file"

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def sanitize_conf_label(label: str) -> str:
    """Strip quotes and line breaks so a label fits on one registry line."""
    return _CONF_LABEL_RE.sub('', label or '').strip()
