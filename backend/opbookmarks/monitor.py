"""Change monitor - re-exports when the 1Password 8 database commits"""

import logging
import os
import queue
import time
from enum import Enum
from pathlib import Path
from typing import Callable

from watchdog.events import EVENT_TYPE_DELETED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Queue sentinel that ends the receive loop
_STOP = object()


class WatchSetupError(Exception):
    """The watch path could not be observed"""


class MonitorState(str, Enum):
    IDLE = "idle"
    DEBOUNCED = "debounced"


class _QueueHandler(FileSystemEventHandler):
    """Forwards every watchdog event to the monitor's queue"""

    def __init__(self, events: queue.Queue):
        super().__init__()
        self.events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        self.events.put(event)


class ChangeMonitor:
    """
    Single-threaded loop over filesystem events under the watch path.

    The observer thread only enqueues events. The loop, running on the
    caller's thread, looks for the removal of the SQLite journal file, which
    1Password 8 deletes after merging a transaction into its database, waits
    out the debounce window and then calls `on_change` once. Commit signals
    that pile up during the window or during a running cycle are folded into
    a single follow-up cycle.
    """

    def __init__(
        self,
        watch_path: Path,
        on_change: Callable[[], object],
        journal_name: str = "1password.sqlite-journal",
        debounce_seconds: float = 0.0,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.watch_path = Path(watch_path)
        self.on_change = on_change
        self.journal_name = journal_name
        self.debounce_seconds = debounce_seconds
        self.observer_factory = observer_factory
        self.events: queue.Queue = queue.Queue()
        self.state = MonitorState.IDLE
        self.cycles = 0
        self._observer = None

    def is_commit_signal(self, event: FileSystemEvent) -> bool:
        if event.event_type != EVENT_TYPE_DELETED:
            return False
        return Path(os.fsdecode(event.src_path)).name == self.journal_name

    def submit(self, event: FileSystemEvent) -> None:
        self.events.put(event)

    def start(self) -> None:
        """Schedule a recursive observer on the watch path"""
        if not self.watch_path.is_dir():
            raise WatchSetupError(f"Watch path is not a directory: {self.watch_path}")

        observer = self.observer_factory()
        try:
            observer.schedule(_QueueHandler(self.events), str(self.watch_path), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchSetupError(f"Cannot watch {self.watch_path}: {e}") from e
        self._observer = observer

    def stop(self) -> None:
        """Ask the loop to return; safe to call from another thread"""
        self.events.put(_STOP)

    def run(self) -> None:
        """Block, running an export cycle per committed store transaction"""
        if self._observer is None:
            self.start()

        logger.info(f"Watching 1Password 8 data folder for changes ({self.watch_path})")
        try:
            while self.step(timeout=1.0):
                pass
        finally:
            self._shutdown()

    def step(self, timeout: float | None = None) -> bool:
        """
        Handle the next queued event.

        Returns:
            False once the loop should end (stopped, or the observer died)
        """
        try:
            event = self.events.get(timeout=timeout)
        except queue.Empty:
            return self._observer_alive()

        if event is _STOP:
            return False

        if not self.is_commit_signal(event):
            logger.debug(f"Ignoring {event.event_type} of {os.fsdecode(event.src_path)}")
            return True

        logger.info("1Password 8 data file changed. Updating metadata files...")
        self.state = MonitorState.DEBOUNCED
        self._debounce()

        try:
            self.on_change()
        except Exception:
            logger.exception("Export cycle failed")
        finally:
            self.cycles += 1
            self.state = MonitorState.IDLE
        return True

    def _debounce(self) -> None:
        """Drain the queue until the debounce window closes or a stop arrives"""
        deadline = time.monotonic() + self.debounce_seconds
        while True:
            remaining = max(deadline - time.monotonic(), 0.0)
            try:
                event = self.events.get(timeout=remaining)
            except queue.Empty:
                return

            if event is _STOP:
                # run the pending export first, then let the loop see the stop
                self.events.put(_STOP)
                return
            if self.is_commit_signal(event):
                logger.debug("Folding another commit signal into the pending export")
            else:
                logger.debug(f"Ignoring {event.event_type} of {os.fsdecode(event.src_path)}")

    def _observer_alive(self) -> bool:
        if self._observer is not None and not self._observer.is_alive():
            logger.error("watch error: file system observer stopped unexpectedly")
            return False
        return True

    def _shutdown(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            if self._observer.is_alive():
                self._observer.join()
            self._observer = None
