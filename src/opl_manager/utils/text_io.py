"""Lenient text decoding for files written by other tools."""

from __future__ import annotations

import logging

import chardet

logger = logging.getLogger(__name__)


def decode_text(raw: bytes) -> str:
    """Decode ``raw`` as UTF-8, else as the encoding chardet detects.

    Bytes that still do not decode are replaced, so this never raises.
    """
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    detected = chardet.detect(raw) or {}
    encoding = detected.get("encoding")
    if encoding:
        logger.debug("Detected encoding %s (confidence: %s)", encoding, detected.get("confidence"))
        try:
            return raw.decode(encoding, errors="replace")
        except LookupError:
            logger.debug("Unknown detected encoding %s, falling back to UTF-8", encoding)
    return raw.decode("utf-8", errors="replace")


def read_text(path: str) -> str:
    """Read ``path`` with :func:`decode_text`. ``OSError`` propagates."""
    with open(path, "rb") as handle:
        return decode_text(handle.read())
