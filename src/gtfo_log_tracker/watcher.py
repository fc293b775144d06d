"""Live watcher for the GTFO session log directory.

Uses watchdog to monitor the user data folder (non-recursive) while the game
runs. Every created or modified session log is re-read from the start and
the last story log read and the last expedition selected in it are reported
as ``LogRead`` / ``LevelSelected`` events.
"""

from __future__ import annotations

import asyncio
import contextlib
import errno
import logging
import os
from collections.abc import AsyncIterator, Iterable
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .catalog import Catalog
from .extraction import DEFAULT_RULES, ExtractionRules, latest_data, read_lines
from .logfiles import is_session_log
from .models import GameEvent, LevelSelected, LogRead

logger = logging.getLogger(__name__)

OBSERVER_JOIN_TIMEOUT = 5.0


class WatchState(str, Enum):
    """Lifecycle of a watch session. FAILED is terminal."""

    NOT_WATCHING = "not_watching"
    WATCHING = "watching"
    FAILED = "failed"


class GameLogWatcher:
    """Watches a GTFO user data folder and emits game events.

    Features:
    - One asyncio task owns the watch loop (``run``)
    - The watchdog observer thread only hands changed paths to that task
    - Events go out one at a time, in detection order, on a caller queue
    - A log already known to be read is never reported again
    - A level is reported only when it differs from the last one reported
    - ``stop()`` ends the loop at its next wait for a file change
    """

    def __init__(
        self,
        log_dir: Path,
        catalog: Catalog,
        *,
        rules: ExtractionRules = DEFAULT_RULES,
        known_ids: Iterable[int] = (),
    ) -> None:
        self._log_dir = Path(log_dir)
        self._catalog = catalog
        self._rules = rules
        self._known_ids: set[int] = set(known_ids)
        self._level: str | None = None

        self._state = WatchState.NOT_WATCHING
        self._error: BaseException | None = None
        self._observer: Observer | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._changes: asyncio.Queue[Path] | None = None
        self._stop_event = asyncio.Event()

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def error(self) -> BaseException | None:
        """The error that moved the session to FAILED, if any."""
        return self._error

    @property
    def known_ids(self) -> frozenset[int]:
        return frozenset(self._known_ids)

    # --- Lifecycle ---

    async def run(self, output: asyncio.Queue[GameEvent]) -> None:
        """
        Watch the directory until stopped, putting events on ``output``.

        Returns when ``stop()`` is called or when the watch cannot be
        established (state FAILED). Cancelling the task running this
        coroutine also stops the watch.

        Raises:
            RuntimeError: If this watcher is already running.
        """
        if self._state is WatchState.FAILED:
            logger.error(
                "Watcher for '%s' failed earlier and will not restart: %s",
                self._log_dir,
                self._error,
            )
            return
        if self._state is WatchState.WATCHING:
            raise RuntimeError(f"Already watching '{self._log_dir}'")

        self._loop = asyncio.get_running_loop()
        self._changes = asyncio.Queue()

        try:
            self._start_observer()
        except OSError as e:
            self._state = WatchState.FAILED
            self._error = e
            logger.error("Unable to watch '%s' for changes - %s", self._log_dir, e)
            return

        self._state = WatchState.WATCHING
        logger.info("Watching '%s' for changes", self._log_dir)

        try:
            while True:
                path = await self._next_change()
                if path is None:
                    break
                for event in await self.scan(path):
                    await output.put(event)
        finally:
            await self._stop_observer()
            self._stop_event.clear()
            self._changes = None
            if self._state is WatchState.WATCHING:
                self._state = WatchState.NOT_WATCHING
            logger.info("Stopped watching '%s'", self._log_dir)

    def stop(self) -> None:
        """Ask the watch loop to finish. Safe to call from any thread."""
        loop = self._loop
        if loop is not None and loop.is_running():
            loop.call_soon_threadsafe(self._stop_event.set)
        else:
            self._stop_event.set()

    async def events(self, queue_size: int = 1) -> AsyncIterator[GameEvent]:
        """
        Iterate over live events until the watch ends.

        The queue between the watch loop and the consumer holds at most
        ``queue_size`` events, so a slow consumer holds back detection.

        Example:
            >>> async for event in watcher.events():
            ...     if isinstance(event, LogRead):
            ...         read_ids.add(event.id)
        """
        queue: asyncio.Queue[GameEvent] = asyncio.Queue(maxsize=queue_size)
        task = asyncio.create_task(self.run(queue))

        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait(
                    {getter, task}, return_when=asyncio.FIRST_COMPLETED
                )
                if getter in done:
                    yield getter.result()
                    continue

                getter.cancel()
                while not queue.empty():
                    yield queue.get_nowait()
                task.result()
                return
        finally:
            if not task.done():
                self.stop()
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    # --- Scanning ---

    async def scan(self, path: Path) -> list[GameEvent]:
        """
        Re-read a changed file and return the events it produces.

        Files that are not session logs produce nothing. A file that cannot
        be read is logged and produces nothing.
        """
        if not is_session_log(path.name):
            return []

        try:
            lines = await asyncio.to_thread(read_lines, path)
        except OSError as e:
            logger.warning("Failed to read file change - %s: %s", path, e)
            return []

        log_id, level = latest_data(lines, self._catalog, self._rules)

        events: list[GameEvent] = []
        if log_id is not None and log_id not in self._known_ids:
            self._known_ids.add(log_id)
            logger.info("New log read: %d", log_id)
            events.append(LogRead(log_id))
        if level is not None and level != self._level:
            self._level = level
            logger.info("Level selected: %s", level)
            events.append(LevelSelected(level))
        return events

    async def _next_change(self) -> Path | None:
        """Wait for the next changed path, or None once stop is requested."""
        assert self._changes is not None
        getter = asyncio.ensure_future(self._changes.get())
        stopper = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (getter, stopper):
                if not task.done():
                    task.cancel()

        if self._stop_event.is_set():
            return None
        return getter.result()

    # --- Observer thread ---

    def _start_observer(self) -> None:
        if not self._log_dir.is_dir():
            raise FileNotFoundError(errno.ENOENT, "No such directory", str(self._log_dir))

        observer = Observer()
        observer.daemon = True
        observer.schedule(_LogDirEventHandler(self), str(self._log_dir), recursive=False)
        observer.start()
        self._observer = observer

    async def _stop_observer(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        # join off the loop so pending callbacks keep running meanwhile
        await asyncio.to_thread(observer.join, OBSERVER_JOIN_TIMEOUT)

    def _on_file_event(self, path: Path) -> None:
        """Hand a changed path to the watch loop (called on the observer thread)."""
        loop, changes = self._loop, self._changes
        if loop is None or changes is None:
            return
        try:
            loop.call_soon_threadsafe(changes.put_nowait, path)
        except RuntimeError:
            # Event loop already closed; the watch is over.
            logger.debug("Dropped change for %s after shutdown", path)


class _LogDirEventHandler(FileSystemEventHandler):
    """Watchdog event handler that delegates to GameLogWatcher."""

    def __init__(self, watcher: GameLogWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def _forward(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._watcher._on_file_event(Path(os.fsdecode(event.src_path)))
