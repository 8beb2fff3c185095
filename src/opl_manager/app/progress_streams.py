"""Async progress streams: long-running operations as event iterators.

Each stream runs the blocking operation in a worker thread and yields
``stage``/``progress`` events as they arrive, then a final ``result`` event.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from ..config import ToolSettings
from ..utils.async_utils import run_blocking
from ..utils.external_tools import CommandRunner
from .controller import convert_to_vcd, move


@dataclass(frozen=True)
class ProgressEvent:
    kind: str
    message: Optional[str] = None
    progress: Optional[Any] = None
    result: Optional[Any] = None


def _queue_event(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue, event: ProgressEvent) -> None:
    loop.call_soon_threadsafe(queue.put_nowait, event)


async def _drain(task: asyncio.Task, queue: asyncio.Queue) -> AsyncIterator[ProgressEvent]:
    while True:
        if task.done() and queue.empty():
            break
        try:
            event = await asyncio.wait_for(queue.get(), timeout=0.05)
            yield event
        except asyncio.TimeoutError:
            continue
    yield ProgressEvent(kind="result", result=task.result())


async def convert_cue_to_vcd_stream(
    sheet_path: str,
    output_path: str,
    settings: Optional[ToolSettings] = None,
    runner: Optional[CommandRunner] = None,
) -> AsyncIterator[ProgressEvent]:
    """Run a conversion in a worker thread, yielding stage, progress and result events."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def stage_cb(stage: str) -> None:
        _queue_event(loop, queue, ProgressEvent(kind="stage", message=stage))

    def progress_cb(progress: Any) -> None:
        _queue_event(loop, queue, ProgressEvent(kind="progress", progress=progress))

    task = asyncio.create_task(
        run_blocking(convert_to_vcd, sheet_path, output_path, progress_cb, stage_cb, settings, runner)
    )
    async for event in _drain(task, queue):
        yield event


async def move_file_stream(
    source: str,
    dest: str,
) -> AsyncIterator[ProgressEvent]:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def progress_cb(progress: Any) -> None:
        _queue_event(loop, queue, ProgressEvent(kind="progress", progress=progress))

    task = asyncio.create_task(run_blocking(move, source, dest, progress_cb))
    async for event in _drain(task, queue):
        yield event
