import os
import time
import queue
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

from watchdog.observers import Observer
from watchdog.events import FileSystemEvent, FileSystemEventHandler

from rstrtr.errors import WatchError
from rstrtr.settings import WATCH_DEBOUNCE_SECONDS
from rstrtr.watch.events import WatchEvent, classify, coalesce

log = logging.getLogger(__name__)

OBSERVER_JOIN_TIMEOUT = 5.0
# Minimum seconds between attempts to restart a dead observer.
OBSERVER_RESTART_INTERVAL = 5.0


class Debouncer:
    """
    Coalesces bursts of events with a timer that restarts on every new event.
    The burst is emitted once the timer lapses without further events.
    """

    def __init__(self, interval: float, emit: Callable[[WatchEvent], None]):
        self.interval = interval
        self._emit = emit
        self._lock = threading.Lock()
        self._pending: List[WatchEvent] = []
        self._timer: Optional[threading.Timer] = None
        self._token = 0

    def push(self, kind: WatchEvent) -> None:
        """Records an event and restarts the quiet-period timer."""
        with self._lock:
            self._pending.append(kind)
            if self._timer is not None:
                self._timer.cancel()
            self._token += 1
            self._timer = threading.Timer(self.interval, self._flush, args=(self._token,))
            self._timer.daemon = True
            self._timer.name = "WatchDebounceTimer"
            self._timer.start()

    def _flush(self, token: int) -> None:
        with self._lock:
            # A newer event restarted the window after this timer fired.
            if token != self._token:
                return
            pending, self._pending = self._pending, []
            self._timer = None
        event = coalesce(pending)
        if event is not None:
            self._emit(event)

    def cancel(self) -> None:
        """Drops any pending burst without emitting it."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = []
            self._token += 1


class ControlFileEventHandler(FileSystemEventHandler):
    """A watchdog event handler that forwards events about the control file."""

    def __init__(self, control_path: Path, on_event: Callable[[WatchEvent], None], on_error: Callable[[Exception], None]):
        super().__init__()
        self.control_path = control_path
        self.on_event = on_event
        self.on_error = on_error

    def on_any_event(self, event: FileSystemEvent) -> None:
        """The main event handler method for watchdog, called on any change in the watched directory."""
        try:
            kind = classify(event, self.control_path)
            if kind is None:
                return
            log.debug(f"Watchdog event: {event.event_type} on {event.src_path} -> {kind.name}")
            self.on_event(kind)
        except Exception as e:
            # Surfaced to the consumer, which logs it and keeps polling.
            self.on_error(e)


class WatchStream:
    """
    A debounced stream of WatchEvents for a single control file.

    A watchdog observer thread feeds a FIFO queue; the supervisor drains it
    with `poll()`. The observer watches the file's parent directory
    non-recursively and only events about the control file are kept.
    """

    def __init__(self, path: Union[str, os.PathLike], debounce_seconds: float = WATCH_DEBOUNCE_SECONDS, observer_factory: Callable[[], Observer] = Observer):
        self.path = Path(os.path.abspath(path))
        self._queue: "queue.Queue[Union[WatchEvent, Exception]]" = queue.Queue()
        self._debouncer = Debouncer(debounce_seconds, self._queue.put)
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._next_restart_at = 0.0

    @classmethod
    def open(cls, path: Union[str, os.PathLike], debounce_seconds: float = WATCH_DEBOUNCE_SECONDS) -> "WatchStream":
        """
        Creates a stream and starts watching `path`.

        :raises WatchError: If the path does not exist or the observer cannot be started.
        """
        stream = cls(path, debounce_seconds)
        stream.start()
        return stream

    def start(self) -> None:
        """Starts the observer thread."""
        if not self.path.exists():
            raise WatchError(f"Cannot watch '{self.path}': path does not exist.")
        try:
            self._observer = self._start_observer()
        except OSError as e:
            raise WatchError(f"Cannot watch '{self.path}': {e}") from e
        log.debug(f"Watching control file '{self.path}'.")

    def _start_observer(self) -> Observer:
        observer = self._observer_factory()
        handler = ControlFileEventHandler(self.path, self._debouncer.push, self._queue.put)
        observer.schedule(handler, str(self.path.parent), recursive=False)
        observer.name = "ControlFileObserver"
        observer.start()
        return observer

    def _check_observer_health(self) -> None:
        """Reschedules the observer if its thread died."""
        if self._observer is None or self._observer.is_alive():
            return
        now = time.monotonic()
        if now < self._next_restart_at:
            return
        log.error("Watchdog observer thread has stopped unexpectedly. Restarting observer.")
        self._observer.stop()
        try:
            self._observer = self._start_observer()
            log.info("Observer restarted.")
        except OSError as e:
            self._next_restart_at = now + OBSERVER_RESTART_INTERVAL
            log.error(f"Failed to restart watchdog observer, retrying in {OBSERVER_RESTART_INTERVAL:.0f}s: {e}")

    def poll(self, timeout: float) -> Optional[WatchEvent]:
        """
        Waits up to `timeout` seconds for the next event.

        :return: The next event, or None if nothing happened or reading events failed.
        """
        self._check_observer_health()
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if isinstance(item, Exception):
            log.error(f"Error reading control file events: {item}")
            return None
        return item

    def close(self) -> None:
        """Stops the observer and drops any pending burst."""
        self._debouncer.cancel()
        if self._observer is not None:
            self._observer.stop()
            if self._observer.is_alive():
                self._observer.join(timeout=OBSERVER_JOIN_TIMEOUT)
            self._observer = None
        log.debug(f"Stopped watching '{self.path}'.")

    def __enter__(self) -> "WatchStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
