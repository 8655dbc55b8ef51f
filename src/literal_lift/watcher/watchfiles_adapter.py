from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from watchfiles import Change, awatch

from literal_lift.core.languages import is_supported_source
from literal_lift.core.ports.watcher import ChangeHandler

logger = logging.getLogger(__name__)


class WatchfilesWatcher:
    """Watch a directory for changed JSX and TSX sources and hand them to a callback.

    Implements the ``FileWatcherPort`` protocol. Deleted files and type declaration
    files are not forwarded.
    """

    def __init__(self, directory: str | Path, on_change: ChangeHandler) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watching %s for source changes", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped watching %s", self._directory)

    async def _watch(self) -> None:
        async for changes in awatch(self._directory):
            paths = {
                Path(p)
                for change, p in changes
                if change != Change.deleted and is_supported_source(Path(p)) and not p.endswith(".d.ts")
            }
            if not paths:
                continue
            logger.info("Detected changes in %d source file(s)", len(paths))
            try:
                await self._on_change(paths)
            except Exception:
                logger.exception("Error while handling changes to %s", ", ".join(sorted(map(str, paths))))
