"""File relocation with a streamed cross-device fallback."""

from __future__ import annotations

import errno
import os
import time
import logging
from dataclasses import dataclass, field

from .models import MoveProgress, OperationResult, ProgressCallback, notify, to_mb

logger = logging.getLogger(__name__)

COPY_CHUNK_BYTES = 1024 * 1024
PROGRESS_INTERVAL_SECONDS = 1.0


@dataclass
class MoveOperation:
    source_path: str
    dest_path: str
    total_bytes: int
    copied_bytes: int = 0
    start_time: float = field(default_factory=time.monotonic)

    def advance(self, num_bytes: int) -> None:
        self.copied_bytes = min(self.total_bytes, self.copied_bytes + max(0, num_bytes))

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def progress(self) -> MoveProgress:
        if self.total_bytes > 0:
            percent = round(self.copied_bytes / self.total_bytes * 100, 1)
        else:
            percent = 100.0
        return MoveProgress(
            percent=percent,
            copied_mb=to_mb(self.copied_bytes),
            total_mb=to_mb(self.total_bytes),
            elapsed=round(self.elapsed, 1),
        )


def resolve_destination(source: str, dest: str) -> str:
    if os.path.isdir(dest):
        return os.path.join(dest, os.path.basename(source))
    return dest


def _stream_copy(operation: MoveOperation, on_progress: ProgressCallback, interval: float) -> None:
    last_report = time.monotonic()
    with open(operation.source_path, "rb") as src, open(operation.dest_path, "wb") as dst:
        while True:
            chunk = src.read(COPY_CHUNK_BYTES)
            if not chunk:
                break
            dst.write(chunk)
            operation.advance(len(chunk))
            now = time.monotonic()
            if now - last_report >= interval:
                progress = operation.progress()
                logger.debug(
                    "Progress: %.1f%% (%.2f/%.2f MB) - %.1fs elapsed",
                    progress.percent, progress.copied_mb, progress.total_mb, progress.elapsed,
                )
                notify(on_progress, progress)
                last_report = now


def _discard_partial(path: str) -> None:
    try:
        os.remove(path)
    except OSError as exc:
        logger.debug("Could not remove partial copy %s: %s", path, exc)


def move_file(
    source: str,
    dest: str,
    on_progress: ProgressCallback = None,
    progress_interval: float = PROGRESS_INTERVAL_SECONDS,
) -> OperationResult:
    """Move ``source`` to ``dest`` (a file path or an existing directory).

    A plain rename is tried first. When source and destination sit on
    different volumes the file is copied in chunks, reporting progress at
    most once per ``progress_interval`` seconds, and the source is removed
    after the copy completes.
    """
    target = resolve_destination(source, dest)
    logger.info("Moving file from %s to %s", source, target)

    try:
        os.makedirs(os.path.dirname(os.path.abspath(target)), exist_ok=True)
    except OSError as exc:
        return OperationResult.fail(str(exc))

    try:
        os.rename(source, target)
        logger.debug("File moved using rename")
        return OperationResult.ok(target)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            logger.error("Move failed: %s", exc)
            return OperationResult.fail(str(exc))

    logger.info("Cross-device move detected, starting file copy...")
    try:
        operation = MoveOperation(source_path=source, dest_path=target, total_bytes=os.path.getsize(source))
        _stream_copy(operation, on_progress, progress_interval)
    except OSError as exc:
        logger.error("Cross-device copy failed: %s", exc)
        _discard_partial(target)
        return OperationResult.fail(str(exc))

    try:
        os.remove(source)
    except OSError as exc:
        logger.warning("Copied %s but could not remove the source: %s", source, exc)

    logger.info(
        "File copied successfully: %.2f MB in %.2fs", to_mb(operation.total_bytes), operation.elapsed
    )
    return OperationResult.ok(target)
